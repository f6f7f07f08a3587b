"""Reference-identity diff between two snapshots of identifiable records.

Records are treated as immutable values. A changed record must be a new
object (``dataclasses.replace``); a record mutated in place keeps its
reference and is NOT reported. That is a precondition of the callers, not
something this module tries to detect.
"""

from dataclasses import dataclass, field
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class DiffResult(Generic[T]):
    """Writes needed to bring a remote snapshot up to date with a local one."""

    changed: List[T] = field(default_factory=list)
    deleted_ids: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.changed and not self.deleted_ids


def compute_diff(
    prev: Sequence[T],
    current: Sequence[T],
    delete_filter: Optional[Callable[[T], bool]] = None,
) -> DiffResult[T]:
    """Compare two collections by ``id`` using reference equality.

    Args:
        prev: Previous snapshot (e.g. what was last pushed).
        current: Current items.
        delete_filter: Optional predicate over ``prev`` items; only ids for
            which it returns True are reported as deleted (used to keep
            built-in content types out of the delete set).

    Returns:
        DiffResult with items in ``current`` that are new or whose object
        differs from ``prev``, and ids present in ``prev`` but missing from
        ``current``. Runs in O(len(prev) + len(current)).
    """
    prev_by_id = {item.id: item for item in prev}

    changed = [item for item in current if prev_by_id.get(item.id) is not item]

    current_ids = {item.id for item in current}
    deleted_ids = [
        item.id
        for item in prev
        if item.id not in current_ids and (delete_filter is None or delete_filter(item))
    ]

    return DiffResult(changed=changed, deleted_ids=deleted_ids)
