"""Import an exported bundle into the local store."""

import sys
from pathlib import Path

from chronolog.errors import ValidationError
from chronolog.storage.local import LocalStore


def cmd_import(args):
    path = Path(args.file)
    if not path.exists():
        print(f"✗ File not found: {path}")
        sys.exit(1)

    try:
        bundle = LocalStore().import_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        print(f"✗ Import failed: {e}")
        sys.exit(1)

    print(f"✓ Imported {len(bundle.entries)} entries, "
          f"{len(bundle.content_types)} content types, "
          f"{len(bundle.media_items)} media items")
    print("  Run `chronolog sync` to push them to the backend")
