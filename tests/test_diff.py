"""Tests for chronolog.sync.diff."""

from dataclasses import dataclass, replace

from chronolog.sync.diff import compute_diff


@dataclass(frozen=True)
class Item:
    id: str
    value: int = 0
    built_in: bool = False


class TestComputeDiff:

    def test_new_items_are_changed(self):
        a, b = Item("a"), Item("b")
        result = compute_diff([a], [a, b])
        assert result.changed == [b]
        assert result.deleted_ids == []

    def test_shared_references_are_unchanged(self):
        a, b = Item("a"), Item("b")
        result = compute_diff([a, b], [a, b])
        assert result.is_empty

    def test_replaced_object_is_changed_even_if_equal(self):
        a = Item("a", 1)
        copy = replace(a)
        assert copy == a
        result = compute_diff([a], [copy])
        assert result.changed == [copy]

    def test_missing_ids_are_deleted(self):
        a, b = Item("a"), Item("b")
        result = compute_diff([a, b], [b])
        assert result.changed == []
        assert result.deleted_ids == ["a"]

    def test_delete_filter_guards_builtins(self):
        builtin, custom = Item("task", built_in=True), Item("mood")
        result = compute_diff([builtin, custom], [], delete_filter=lambda i: not i.built_in)
        assert result.deleted_ids == ["mood"]

    def test_mixed_changes(self):
        a1, b1 = Item("a", 1), Item("b", 1)
        b2, c1 = replace(b1, value=2), Item("c", 1)
        result = compute_diff([a1, b1], [b2, c1])
        assert result.changed == [b2, c1]
        assert result.deleted_ids == ["a"]

    def test_in_place_mutation_is_not_detected(self):
        # Documented precondition: records must be replaced, not mutated.
        class Mutable:
            def __init__(self, id, value):
                self.id = id
                self.value = value

        m = Mutable("m", 1)
        before = [m]
        m.value = 2
        assert compute_diff(before, [m]).is_empty

    def test_empty_inputs(self):
        assert compute_diff([], []).is_empty
