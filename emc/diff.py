"""
Diff Trees and the Diff Merge Engine
====================================

A diff describes how a value changed. It is either a *leaf*, a ``Change``
carrying the change type together with the old and new value, or a
*structural* node: a plain ``dict`` mapping child keys to child diffs, mirroring
the shape of the changed object.

    {
        "x": {
            "a": Change(ChangeType.CHANGE, old_value=1, new_value=3),
        },
        "y": Change(ChangeType.ADD, old_value=None, new_value=[1]),
    }

Diffs produced within one batch are folded together with ``merge_diff`` so the
batch summary holds exactly one node per path, relative to the values the batch
started from.

Sameness
--------

``is_same`` decides whether two values are "the same value" for change
detection. Immutable scalars (numbers, strings, bytes, numpy scalars, ``None``)
compare by value; everything else compares by identity. A list rebuilt with the
same items is therefore a change, while ``1`` and ``1.0`` are not.
"""

import numbers
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

import numpy as np


class ChangeType(Enum):
    """Types of changes a leaf diff can describe."""

    ADD = "add"
    CHANGE = "change"
    REMOVE = "remove"


@dataclass(frozen=True)
class Change:
    """
    Leaf diff node: a single value change.

    Attributes:
        change_type: ADD, CHANGE or REMOVE
        old_value: Value before the change (None if the key did not exist)
        new_value: Value after the change (None if the key was removed)
    """

    change_type: ChangeType
    old_value: Any = None
    new_value: Any = None

    def __repr__(self) -> str:
        if self.change_type is ChangeType.ADD:
            return f"Change(ADD -> {self.new_value!r})"
        if self.change_type is ChangeType.REMOVE:
            return f"Change(REMOVE {self.old_value!r})"
        return f"Change(CHANGE {self.old_value!r} -> {self.new_value!r})"


DiffNode = Union[Change, Dict[Any, "DiffNode"]]

_SCALAR_TYPES = (numbers.Number, str, bytes, np.generic, type(None))
_BOOL_TYPES = (bool, np.bool_)


def is_same(a: Any, b: Any) -> bool:
    """Return True when ``a`` and ``b`` are the same value for change detection."""
    if a is b:
        return True
    # True == 1 in Python, but switching between them is a change
    if isinstance(a, _BOOL_TYPES) != isinstance(b, _BOOL_TYPES):
        return False
    if isinstance(a, _SCALAR_TYPES) and isinstance(b, _SCALAR_TYPES):
        # numpy scalar comparisons return numpy booleans
        return bool(a == b)
    return False


def purge(node: Optional[DiffNode]) -> Optional[DiffNode]:
    """
    Drop diff nodes that describe no change.

    Empty structural nodes and CHANGE leaves whose old and new values are the
    same collapse to None.
    """
    if node is None:
        return None
    if isinstance(node, Change):
        if node.change_type is ChangeType.CHANGE and is_same(
            node.old_value, node.new_value
        ):
            return None
        return node
    if not node:
        return None
    return node


def child_of(value: Any, key: Any) -> Any:
    """Read ``value[key]`` for mapping values, None for anything else."""
    if isinstance(value, Mapping):
        return value.get(key)
    return None


def merge_changes(x: Optional[Change], y: Optional[Change]) -> Optional[Change]:
    """
    Merge two successive leaf changes of the same path.

    The change type is derived as follows:

        ┌──────────┬────────┬──────────────┐
        │ earlier  │ later  │ result       │
        ├──────────┼────────┼──────────────┤
        │ add      │ change │ add          │
        │ add      │ remove │ no change    │
        │ change   │ change │ change       │
        │ change   │ remove │ remove       │
        │ remove   │ add    │ change       │
        └──────────┴────────┴──────────────┘
    """
    if x is None:
        return y
    if y is None:
        return x

    # Added then removed within the batch: nothing happened
    if x.change_type is ChangeType.ADD and y.change_type is ChangeType.REMOVE:
        return None

    if x.change_type is ChangeType.ADD:
        change_type = ChangeType.ADD
    elif y.change_type is ChangeType.REMOVE:
        change_type = ChangeType.REMOVE
    else:
        change_type = ChangeType.CHANGE

    return purge(Change(change_type, x.old_value, y.new_value))


def merge_diff(
    stored: Optional[DiffNode],
    merging: Optional[DiffNode],
    current: Any,
    previous: Any,
) -> Optional[DiffNode]:
    """
    Fold a freshly produced diff into the diff accumulated for the same path.

    Neither input tree is modified; a new tree is returned (or None when the
    merge nets out to no change).

        ┌──────────────┬──────────────┬────────────────────────────────────────────┐
        │ stored       │ merging      │ action                                     │
        ├──────────────┼──────────────┼────────────────────────────────────────────┤
        │ missing      │ any          │ use merging                                │
        │ any          │ missing      │ keep stored                                │
        │ leaf         │ leaf         │ merge_changes                              │
        │ leaf         │ structural   │ keep stored, refresh its new_value         │
        │ structural   │ leaf         │ use merging, old_value from before batch   │
        │ structural   │ structural   │ merge children present in merging          │
        └──────────────┴──────────────┴────────────────────────────────────────────┘

    The result is not guaranteed minimal for deeply divergent edits, but it is
    deterministic and never loses a net change.

    Args:
        stored: Diff accumulated so far for this path
        merging: Diff produced by the latest mutation of this path
        current: Value at this path right now
        previous: Value at this path when the batch started

    Returns:
        The merged diff node, or None
    """
    if stored is None:
        return merging
    if merging is None:
        return stored

    if isinstance(stored, Change):
        if isinstance(merging, Change):
            return merge_changes(stored, merging)

        # The path exists again if a structural change reached it
        change_type = (
            ChangeType.CHANGE
            if stored.change_type is ChangeType.REMOVE
            else stored.change_type
        )
        return purge(replace(stored, change_type=change_type, new_value=current))

    if isinstance(merging, Change):
        return purge(replace(merging, old_value=previous))

    result = dict(stored)
    for key, node in merging.items():
        merged = merge_diff(
            stored.get(key),
            node,
            child_of(current, key),
            child_of(previous, key),
        )
        if merged is None:
            result.pop(key, None)
        else:
            result[key] = merged

    return purge(result)


def iter_changes(node: Optional[DiffNode], path: tuple = ()):
    """
    Yield ``(path, change)`` for every leaf of a diff tree, depth first.

    Example:
        >>> list(iter_changes({"x": {"a": Change(ChangeType.ADD, None, 1)}}))
        [(('x', 'a'), Change(ADD -> 1))]
    """
    if node is None:
        return
    if isinstance(node, Change):
        yield path, node
        return
    for key, child in node.items():
        yield from iter_changes(child, path + (key,))
