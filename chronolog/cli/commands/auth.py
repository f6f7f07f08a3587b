"""Authentication commands for Chronolog CLI."""

import getpass
import json
import sys

from chronolog.cli.commands.helpers import run_with
from chronolog.credentials import get_credentials_path, load_credentials, token_is_current
from chronolog.utils import mask_secret


def _read_password(args) -> str:
    if args.password:
        return args.password
    try:
        return getpass.getpass("Password: ")
    except (EOFError, KeyboardInterrupt):
        print("\nAborted.")
        sys.exit(1)


def cmd_auth(args):
    """Handle auth subcommands."""
    if args.auth_action == "login":
        password = _read_password(args)
        if not password:
            print("✗ Password is required")
            sys.exit(1)

        async def login(orchestrator):
            return orchestrator.backend_url, await orchestrator.login(password)

        backend_url, result = run_with(args, login)
        if args.json:
            print(json.dumps({"success": result.success, "error": result.error,
                              "backend_url": backend_url}, indent=2))
        elif result.success:
            print("✓ Logged in")
            print(f"  Backend: {backend_url}")
            print(f"  Credentials saved to {get_credentials_path()}")
        else:
            print(f"✗ Login failed: {result.error}")
        if not result.success:
            sys.exit(1)

    elif args.auth_action == "logout":

        async def logout(orchestrator):
            await orchestrator.logout()

        run_with(args, logout)
        if args.json:
            print(json.dumps({"status": "logged_out"}, indent=2))
        else:
            print("✓ Logged out")

    elif args.auth_action == "status":
        creds = load_credentials()
        status = {
            "authenticated": token_is_current(creds),
            "backend_url": creds.get("backend_url") if creds else None,
            "token": mask_secret(creds.get("auth_token", "")) if creds else None,
            "token_expires": creds.get("token_expires") if creds else None,
        }
        if args.json:
            print(json.dumps(status, indent=2))
        elif status["authenticated"]:
            print("✓ Authenticated")
            print(f"  Backend: {status['backend_url']}")
            print(f"  Token:   {status['token']}")
        else:
            print("✗ Not authenticated")
            print("  Run `chronolog auth login` to log in")
