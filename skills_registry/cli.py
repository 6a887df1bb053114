# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
skills - command line entry point.

Usage:
    skills search [QUERY]
    skills info
    skills versions NAME
    skills stats (--all | NAME) [--range 7|30|all]
    skills install NAME[@VERSION] [--global] [--force] [--verbose]
    skills publish DIRECTORY
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import httpx

from skills_registry.client.registry_client import create_registry_client
from skills_registry.collaborators.signer import GPGSigner, Signer
from skills_registry.collaborators.storage import GatewayStorage
from skills_registry.core.config import get_config
from skills_registry.core.errors import get_exit_code, SkillsError, UserCancelledError
from skills_registry.core.logging import configure_logging
from skills_registry.models.install_models import InstallOptions
from skills_registry.services.installer import SkillInstaller
from skills_registry.services.publisher import SkillPublisher

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="skills", description="Agent skills registry client")
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Search skills by name, description, author or tag")
    search.add_argument("query", nargs="?", default="")

    sub.add_parser("info", help="Show registry capabilities")

    versions = sub.add_parser("versions", help="List published versions of a skill")
    versions.add_argument("name")

    stats = sub.add_parser("stats", help="Show download statistics")
    stats.add_argument("name", nargs="?")
    stats.add_argument("--all", action="store_true", help="Aggregate over every skill")
    stats.add_argument("--range", dest="time_range", choices=["7", "30", "all"], default="all")

    install = sub.add_parser("install", help="Install a skill and its dependencies")
    install.add_argument("spec", help="name or name@version")
    install.add_argument("--global", dest="global_install", action="store_true",
                         help="Install into ~/.claude/skills")
    install.add_argument("--force", action="store_true", help="Reinstall installed skills")
    install.add_argument("--verbose", action="store_true", help="Print the dependency tree")

    publish = sub.add_parser("publish", help="Bundle, sign, upload and register a skill directory")
    publish.add_argument("directory", help="Directory containing SKILL.md")
    return parser


def _print_json(payload):
    print(json.dumps(payload, indent=2, default=str))


async def run(args: argparse.Namespace, signer: Optional[Signer] = None) -> int:
    config = get_config()
    if args.command == "publish" and signer is None:
        signer = GPGSigner.from_config(config)

    async with httpx.AsyncClient(follow_redirects=True) as http:
        client = create_registry_client(config, http_client=http)

        if args.command == "search":
            result = await client.search(args.query)
            for skill in result.results:
                print(f"{skill.name}@{skill.version}  {skill.description}")
            print(f"{result.total} result(s)")

        elif args.command == "info":
            _print_json((await client.info()).to_wire())

        elif args.command == "versions":
            _print_json((await client.get_skill_versions(args.name)).to_wire())

        elif args.command == "stats":
            if not args.all and not args.name:
                raise SkillsError("Provide a skill name or --all", status_code=400)
            stats = await client.get_download_stats(
                name=args.name,
                scope="all" if args.all else None,
                time_range=args.time_range,
            )
            _print_json(stats.to_wire())

        elif args.command == "install":
            installer = SkillInstaller(client, GatewayStorage.from_config(http, config), config=config)
            options = InstallOptions(
                force=args.force,
                global_install=args.global_install,
                verbose=args.verbose,
            )
            result = await installer.install(args.spec, options)
            if result.tree:
                print(result.tree)
            print(
                f"Installed {len(result.installed)}, skipped {len(result.skipped)} "
                f"into {result.install_location} ({result.elapsed:.1f}s)"
            )

        elif args.command == "publish":
            publisher = SkillPublisher(client, GatewayStorage.from_config(http, config), signer)
            ack = await publisher.publish(Path(args.directory))
            print(f"Published {ack.name}@{ack.version}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        configure_logging(get_config())
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("Cancelled", file=sys.stderr)
        return get_exit_code(UserCancelledError())
    except SkillsError as e:
        print(f"{type(e).__name__}: {e.message}", file=sys.stderr)
        return get_exit_code(e)


if __name__ == "__main__":
    sys.exit(main())
