"""Bidirectional entry links over an id-indexed arena.

Links are plain id references stored on each entry. Symmetry is maintained
by the operations here writing both sides, not by any structural graph.
"""

from dataclasses import replace
from typing import Dict, Iterable, List, Tuple

from chronolog.errors import ValidationError
from chronolog.types import Entry

EntryArena = Dict[str, Entry]


def build_arena(entries: Iterable[Entry]) -> EntryArena:
    """Index entries by id (insertion order preserved)."""
    return {entry.id: entry for entry in entries}


def _check_pair(arena: EntryArena, a: str, b: str) -> None:
    if a == b:
        raise ValidationError(f"Cannot link entry {a!r} to itself")
    missing = [i for i in (a, b) if i not in arena]
    if missing:
        raise ValidationError(f"Unknown entry id(s): {', '.join(missing)}")


def link_entries(arena: EntryArena, a: str, b: str) -> EntryArena:
    """Return a new arena where ``a`` and ``b`` reference each other.

    Entries already linked are left as the same objects.
    """
    _check_pair(arena, a, b)
    result = dict(arena)
    for source, target in ((a, b), (b, a)):
        entry = result[source]
        if target not in entry.linked_entries:
            result[source] = replace(entry, linked_entries=entry.linked_entries + (target,))
    return result


def unlink_entries(arena: EntryArena, a: str, b: str) -> EntryArena:
    """Return a new arena with the link between ``a`` and ``b`` removed on both sides."""
    _check_pair(arena, a, b)
    result = dict(arena)
    for source, target in ((a, b), (b, a)):
        entry = result[source]
        if target in entry.linked_entries:
            result[source] = replace(
                entry,
                linked_entries=tuple(i for i in entry.linked_entries if i != target),
            )
    return result


def drop_entry(arena: EntryArena, entry_id: str) -> EntryArena:
    """Remove an entry and every reference to it from the other entries."""
    if entry_id not in arena:
        raise ValidationError(f"Unknown entry id: {entry_id}")
    result = {}
    for key, entry in arena.items():
        if key == entry_id:
            continue
        if entry_id in entry.linked_entries:
            entry = replace(
                entry,
                linked_entries=tuple(i for i in entry.linked_entries if i != entry_id),
            )
        result[key] = entry
    return result


def find_asymmetric_links(arena: EntryArena) -> List[Tuple[str, str]]:
    """List (source, target) pairs where target does not link back.

    Links to ids that are not in the arena are reported too. Nothing is
    repaired here.
    """
    problems = []
    for entry in arena.values():
        for target in entry.linked_entries:
            other = arena.get(target)
            if other is None or entry.id not in other.linked_entries:
                problems.append((entry.id, target))
    return problems
