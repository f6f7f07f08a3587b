"""CLI command handlers."""

from chronolog.cli.commands.auth import cmd_auth
from chronolog.cli.commands.import_cmd import cmd_import
from chronolog.cli.commands.links import cmd_links
from chronolog.cli.commands.sync import cmd_cleanup, cmd_migrate, cmd_status, cmd_sync, cmd_upload

__all__ = [
    "cmd_auth",
    "cmd_cleanup",
    "cmd_import",
    "cmd_links",
    "cmd_migrate",
    "cmd_status",
    "cmd_sync",
    "cmd_upload",
]
