"""
Chronolog CLI - timeline journal sync from the command line.

Usage:
    chronolog auth login [--password P] [--backend-url URL]
    chronolog auth logout
    chronolog auth status
    chronolog sync [--watch SECONDS] [--json]
    chronolog status [--json]
    chronolog upload FILE
    chronolog cleanup [--yes]
    chronolog import FILE
    chronolog links check [--json]
    chronolog migrate
"""

import argparse
import logging
import sys

from chronolog.cli.commands import (
    cmd_auth,
    cmd_cleanup,
    cmd_import,
    cmd_links,
    cmd_migrate,
    cmd_status,
    cmd_sync,
    cmd_upload,
)
from chronolog.errors import ChronologError
from chronolog.logging_config import setup_chronolog_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chronolog",
        description="Timeline journal with local-first sync",
    )
    parser.add_argument("--backend-url", "-b", help="Backend URL (or CHRONOLOG_BACKEND_URL)")
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # auth
    p_auth = subparsers.add_parser("auth", help="Log in and out of the backend")
    auth_sub = p_auth.add_subparsers(dest="auth_action", required=True)

    auth_login = auth_sub.add_parser("login", help="Log in with the shared password")
    auth_login.add_argument("--password", "-p", help="Password (prompted if omitted)")
    auth_login.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    auth_logout = auth_sub.add_parser("logout", help="Revoke this device's token")
    auth_logout.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    auth_status = auth_sub.add_parser("status", help="Show saved credentials")
    auth_status.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    # sync
    p_sync = subparsers.add_parser("sync", help="Pull remote changes and push local ones")
    p_sync.add_argument("--watch", "-w", type=float, metavar="SECONDS",
                        help="Keep syncing at this interval")
    p_sync.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    p_status = subparsers.add_parser("status", help="Show sync status")
    p_status.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    # images
    p_upload = subparsers.add_parser("upload", help="Upload an image")
    p_upload.add_argument("file", help="Image file (jpeg, png, gif or webp)")

    p_cleanup = subparsers.add_parser("cleanup", help="Delete unreferenced images")
    p_cleanup.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")
    p_cleanup.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    # data
    p_import = subparsers.add_parser("import", help="Replace local data with an exported bundle")
    p_import.add_argument("file", help="Exported JSON bundle")

    p_links = subparsers.add_parser("links", help="Inspect links between entries")
    links_sub = p_links.add_subparsers(dest="links_action", required=True)
    links_check = links_sub.add_parser("check", help="Report one-way or dangling links")
    links_check.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    subparsers.add_parser("migrate", help="Import legacy backend data into tables")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING)
    setup_chronolog_logging(args.log_level)

    try:
        if args.command == "auth":
            cmd_auth(args)
        elif args.command == "sync":
            cmd_sync(args)
        elif args.command == "status":
            cmd_status(args)
        elif args.command == "upload":
            cmd_upload(args)
        elif args.command == "cleanup":
            cmd_cleanup(args)
        elif args.command == "import":
            cmd_import(args)
        elif args.command == "links":
            cmd_links(args)
        elif args.command == "migrate":
            cmd_migrate(args)
    except ChronologError as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
