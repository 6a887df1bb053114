# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for the Agent Skills Registry
"""

from setuptools import setup, find_packages

setup(
    name="skills-registry",
    version="2.1.0",
    description="Decentralized agent skills registry, dual-path client and dependency installer",
    author="Jason Cafarelli",
    packages=find_packages(include=["skills_registry", "skills_registry.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.5.0",
        "httpx>=0.27.0",
        "PyYAML>=6.0",
        "fastapi>=0.110.0",
        "python-gnupg>=0.5.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "skills=skills_registry.cli:main",
        ]
    },
)
