# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry Info

Single responsibility: Describe the registry's handlers and message schemas
"""

from skills_registry.models.registry_models import InfoResponse, MessageSchema, ProcessInfo

REGISTRY_NAME = "Agent Skills Registry"
REGISTRY_VERSION = "2.1.0"
PROTOCOL_VERSION = "1.0"

HANDLERS = [
    "Info",
    "Register-Skill",
    "Record-Download",
    "Search-Skills",
    "List-Skills",
    "Get-Skill",
    "Get-Skill-Versions",
    "Get-Download-Stats",
]

MESSAGE_SCHEMAS = {
    "Info": MessageSchema(required=["Action"]),
    "Register-Skill": MessageSchema(
        required=["Action", "Name", "Version", "Description", "Author", "ContentId"],
        optional=["Tags", "Dependencies", "License"],
    ),
    "Record-Download": MessageSchema(
        required=["Action", "Name"],
        optional=["Version", "Requester", "Timestamp"],
    ),
    "Search-Skills": MessageSchema(required=["Action"], optional=["Query"]),
    "List-Skills": MessageSchema(
        required=["Action"],
        optional=["Limit", "Offset", "Author", "FilterTags", "FilterName"],
    ),
    "Get-Skill": MessageSchema(required=["Action", "Name"], optional=["Version"]),
    "Get-Skill-Versions": MessageSchema(required=["Action", "Name"]),
    "Get-Download-Stats": MessageSchema(
        required=["Action"],
        optional=["Scope", "Name", "Version", "TimeRange"],
    ),
}


def build_info() -> InfoResponse:
    """Build the self-describing Info payload."""
    return InfoResponse(
        process=ProcessInfo(
            name=REGISTRY_NAME,
            version=REGISTRY_VERSION,
            protocol_version=PROTOCOL_VERSION,
            capabilities=["register", "search", "list", "retrieve", "versions", "download-stats"],
            message_schemas=MESSAGE_SCHEMAS,
        ),
        handlers=list(HANDLERS),
        documentation={
            "selfDocumenting": True,
            "description": "Decentralized registry for agent skills with registration, "
                           "search, version history and download statistics",
        },
    )
