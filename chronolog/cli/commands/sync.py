"""Sync, image and maintenance commands for Chronolog CLI."""

import json
import mimetypes
import sys
from datetime import datetime
from pathlib import Path

from chronolog.cli.commands.helpers import run_with
from chronolog.errors import ChronologError

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")


def _format_ms(value) -> str:
    if not value:
        return "never"
    return datetime.fromtimestamp(value / 1000).isoformat(timespec="seconds")


def _print_result(result, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
        return
    if result.skipped:
        print("⚠️  A sync is already running; skipped")
        return
    if not result.success:
        print(f"✗ Sync failed: {'; '.join(result.errors)}")
        return
    pulled = "pulled remote changes, " if result.pulled else ""
    print(f"✓ Synced: {pulled}{result.pushed} pushed, {result.deleted} deleted")


def cmd_sync(args):
    """Run one sync cycle, or keep syncing with --watch."""
    if args.watch:

        async def watch(orchestrator):
            print(f"Syncing every {args.watch:g}s (Ctrl+C to stop)")
            await orchestrator.run_periodic(args.watch)

        try:
            run_with(args, watch)
        except KeyboardInterrupt:
            print("\nStopped.")
        return

    async def once(orchestrator):
        return await orchestrator.sync()

    result = run_with(args, once)
    _print_result(result, args.json)
    if not result.success:
        sys.exit(1)


def cmd_status(args):
    async def status(orchestrator):
        return orchestrator.status()

    data = run_with(args, status)
    if args.json:
        print(json.dumps(data, indent=2))
        return

    print("Sync Status")
    print("=" * 40)
    print(f"  State:       {data['state']}")
    print(f"  Backend:     {data['backendUrl']}")
    print(f"  Logged in:   {'yes' if data['isLoggedIn'] else 'no'}")
    print(f"  Last sync:   {_format_ms(data['lastSynced'])}")
    if not data["isLoggedIn"]:
        print()
        print("💡 Run `chronolog auth login` to authenticate")


def cmd_upload(args):
    path = Path(args.file)
    if not path.exists():
        print(f"✗ File not found: {path}")
        sys.exit(1)

    content_type = mimetypes.guess_type(path.name)[0]
    if content_type not in ALLOWED_IMAGE_TYPES:
        print(f"✗ Unsupported image type: {content_type or path.suffix}")
        sys.exit(1)

    async def upload(orchestrator):
        return await orchestrator.upload_image(path.read_bytes(), path.name, content_type)

    try:
        url = run_with(args, upload)
    except ChronologError as e:
        print(f"✗ Upload failed: {e}")
        sys.exit(1)
    print(f"✓ Uploaded: {url}")
    print(f"  Embed in an entry as: ![{path.stem}]({url})")


def cmd_cleanup(args):
    if not args.yes:
        print("This permanently deletes every stored image no entry or media item references.")
        print("Continue? [y/N]: ", end="", flush=True)
        try:
            answer = input().strip().lower()
        except (EOFError, KeyboardInterrupt):
            answer = ""
        if answer not in ("y", "yes"):
            print("Aborted.")
            return

    async def cleanup(orchestrator):
        return await orchestrator.cleanup_images(confirm=True)

    try:
        result = run_with(args, cleanup)
    except ChronologError as e:
        print(f"✗ Cleanup failed: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps({
            "deleted": result.deleted,
            "kept": result.kept,
            "totalImages": result.total_images,
            "usedImages": result.used_images,
        }, indent=2))
        return
    print(f"✓ Removed {result.deleted_count} of {result.total_images} images "
          f"({result.used_images} in use)")


def cmd_migrate(args):
    async def migrate(orchestrator):
        return await orchestrator.migrate_legacy()

    try:
        result = run_with(args, migrate)
    except ChronologError as e:
        print(f"✗ Migration failed: {e}")
        sys.exit(1)
    print(json.dumps(result, indent=2))
