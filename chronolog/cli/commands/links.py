"""Check entry links in the local store."""

import json
import sys

from chronolog.storage.local import LocalStore


def cmd_links(args):
    if args.links_action == "check":
        problems = LocalStore().asymmetric_links()

        if args.json:
            print(json.dumps(
                {"symmetric": not problems,
                 "asymmetric": [{"source": s, "target": t} for s, t in problems]},
                indent=2,
            ))
        elif not problems:
            print("✓ All links are symmetric")
        else:
            print(f"✗ {len(problems)} one-way link(s):")
            for source, target in problems:
                print(f"  {source} -> {target}")

        if problems:
            sys.exit(1)
