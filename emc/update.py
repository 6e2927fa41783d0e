"""
Update Algebra
==============

Immutable-style structural updates driven by a declarative command tree.
``update(source, commands)`` returns a new value together with the diff between
``source`` and the new value; ``source`` itself is never modified.

Available commands:

- ``$set`` replaces the value.
- ``$push`` appends an item to a copy of a sequence.
- ``$unshift`` prepends an item to a copy of a sequence.
- ``$merge`` shallow-merges a mapping into a copy of the current mapping.
- ``$defaults`` like ``$merge`` but only fills keys the mapping does not have.
- ``$invoke`` calls a factory with the old value, then performs ``$set``.

Commands can be nested under property keys and combined freely:

    from emc.update import update

    new_value, diff = update(
        source,
        {
            "foo": {"bar": {"$set": 1}},
            "alice": {"$push": 1},
            "tom": {"jack": {"$set": {"x": 1}}},
        },
    )

The diff mirrors the shape of the commands, with a ``Change`` leaf for every
modified property:

    {
        "foo": {"bar": Change(ChangeType.CHANGE, old_value=0, new_value=1)},
        "alice": Change(ChangeType.CHANGE, old_value=[], new_value=[1]),
        "tom": {"jack": Change(ChangeType.ADD, old_value=None, new_value={"x": 1})},
    }

When no command modifies anything, ``source`` is returned as-is together with
``None``.

If the top level of ``commands`` is itself a command, it applies to ``source``
as a whole:

    update([1, 2, 3], {"$push": 4})  # ([1, 2, 3, 4], Change(CHANGE ...))
"""

import functools
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .diff import Change, ChangeType, DiffNode, is_same

UpdateResult = Tuple[Any, Optional[DiffNode]]
Path = Union[None, str, Sequence[str]]

_ROOT = "$root"


# ============================================================================
# SEQUENCE HELPERS
# ============================================================================


@functools.singledispatch
def _append(sequence: Any, item: Any) -> Any:
    raise TypeError(f"Cannot push onto value of type {type(sequence).__name__}")


@_append.register(list)
def _(sequence: list, item: Any) -> list:
    result = list(sequence)
    result.append(item)
    return result


@_append.register(tuple)
def _(sequence: tuple, item: Any) -> tuple:
    return sequence + (item,)


@_append.register(np.ndarray)
def _(sequence: np.ndarray, item: Any) -> np.ndarray:
    return np.append(sequence, item)


@functools.singledispatch
def _prepend(sequence: Any, item: Any) -> Any:
    raise TypeError(f"Cannot unshift onto value of type {type(sequence).__name__}")


@_prepend.register(list)
def _(sequence: list, item: Any) -> list:
    return [item] + sequence


@_prepend.register(tuple)
def _(sequence: tuple, item: Any) -> tuple:
    return (item,) + sequence


@_prepend.register(np.ndarray)
def _(sequence: np.ndarray, item: Any) -> np.ndarray:
    return np.insert(sequence, 0, item)


# ============================================================================
# COMMANDS
# ============================================================================


class Command(ABC):
    """
    A single update command.

    ``execute`` reads ``container[key]``, computes the new value and returns it
    with the diff describing the change. The container is never modified.
    """

    key: str

    @abstractmethod
    def execute(self, container: Mapping, key: Any, argument: Any) -> UpdateResult:
        pass


class SetCommand(Command):
    key = "$set"

    def execute(self, container: Mapping, key: Any, argument: Any) -> UpdateResult:
        old_value = container.get(key)
        if key in container and is_same(argument, old_value):
            return old_value, None
        change_type = ChangeType.CHANGE if key in container else ChangeType.ADD
        return argument, Change(change_type, old_value, argument)


class PushCommand(Command):
    key = "$push"

    def execute(self, container: Mapping, key: Any, argument: Any) -> UpdateResult:
        sequence = container.get(key)
        result = _append(sequence, argument)
        return result, Change(ChangeType.CHANGE, sequence, result)


class UnshiftCommand(Command):
    key = "$unshift"

    def execute(self, container: Mapping, key: Any, argument: Any) -> UpdateResult:
        sequence = container.get(key)
        result = _prepend(sequence, argument)
        return result, Change(ChangeType.CHANGE, sequence, result)


class MergeCommand(Command):
    key = "$merge"

    def execute(self, container: Mapping, key: Any, argument: Any) -> UpdateResult:
        target = container.get(key)
        if target is None:
            new_value = dict(argument)
            change_type = ChangeType.CHANGE if key in container else ChangeType.ADD
            return new_value, Change(change_type, target, new_value)

        new_value = dict(target)
        diff = {}
        for property_name, property_value in argument.items():
            value, property_diff = SET.execute(new_value, property_name, property_value)
            if property_diff is not None:
                diff[property_name] = property_diff
                new_value[property_name] = value

        if not diff:
            return target, None
        return new_value, diff


class DefaultsCommand(Command):
    key = "$defaults"

    def execute(self, container: Mapping, key: Any, argument: Any) -> UpdateResult:
        target = container.get(key)
        extensions = {
            property_name: property_value
            for property_name, property_value in argument.items()
            if target is None or property_name not in target
        }
        return MERGE.execute(container, key, extensions)


class InvokeCommand(Command):
    key = "$invoke"

    def execute(self, container: Mapping, key: Any, argument: Any) -> UpdateResult:
        factory: Callable[[Any], Any] = argument
        return SET.execute(container, key, factory(container.get(key)))


SET = SetCommand()
MERGE = MergeCommand()

# Lookup order decides which command wins when a node names several
COMMANDS: Dict[str, Command] = {
    command.key: command
    for command in (
        SET,
        PushCommand(),
        UnshiftCommand(),
        MERGE,
        DefaultsCommand(),
        InvokeCommand(),
    )
}


def find_command(node: Any) -> Optional[Command]:
    """Return the command a command-tree node applies, or None for a nested node."""
    if not isinstance(node, Mapping):
        return None
    for name, command in COMMANDS.items():
        if name in node:
            return command
    return None


def is_command(node: Any) -> bool:
    return find_command(node) is not None


# ============================================================================
# UPDATE
# ============================================================================


def update(source: Any, commands: Mapping) -> UpdateResult:
    """
    Apply ``commands`` to ``source`` without modifying it.

    Args:
        source: The source value, a mapping unless ``commands`` is a root command
        commands: The command tree

    Returns:
        Tuple ``(new_value, diff)``. ``diff`` is None when nothing changed, in
        which case ``new_value`` is ``source`` itself.
    """
    root_command = find_command(commands)
    if root_command is not None:
        wrapper = {_ROOT: source}
        return root_command.execute(wrapper, _ROOT, commands[root_command.key])

    result = {} if source is None else dict(source)
    diff = {}
    for key, property_commands in commands.items():
        command = find_command(property_commands)
        if command is not None:
            new_value, property_diff = command.execute(
                result, key, property_commands[command.key]
            )
        else:
            child = result.get(key)
            new_value, property_diff = update(
                {} if child is None else child, property_commands
            )

        if property_diff is not None:
            result[key] = new_value
            diff[key] = property_diff

    if not diff:
        return source, None
    return result, diff


# ============================================================================
# SHORTCUTS
# ============================================================================


def _build_path_object(path: Path, command: Dict[str, Any]) -> Mapping:
    if path is None:
        return command

    if isinstance(path, str):
        path = [path]

    result: Dict[str, Any] = {}
    current = result
    for key in path[:-1]:
        current[key] = {}
        current = current[key]
    current[path[-1]] = command
    return result


def set_in(source: Any, path: Path, value: Any) -> Any:
    """
    Shortcut for a ``$set`` command.

    Args:
        source: The source value
        path: Key or list of keys for a nested property; None applies the
            command to ``source`` itself
        value: The new value

    Returns:
        The updated value
    """
    result, _ = update(source, _build_path_object(path, {"$set": value}))
    return result


def push_in(source: Any, path: Path, value: Any) -> Any:
    """Shortcut for a ``$push`` command, see ``set_in``."""
    result, _ = update(source, _build_path_object(path, {"$push": value}))
    return result


def unshift_in(source: Any, path: Path, value: Any) -> Any:
    """Shortcut for a ``$unshift`` command, see ``set_in``."""
    result, _ = update(source, _build_path_object(path, {"$unshift": value}))
    return result


def merge_in(source: Any, path: Path, value: Mapping) -> Any:
    """Shortcut for a ``$merge`` command, see ``set_in``."""
    result, _ = update(source, _build_path_object(path, {"$merge": value}))
    return result


def defaults_in(source: Any, path: Path, value: Mapping) -> Any:
    """Shortcut for a ``$defaults`` command, see ``set_in``."""
    result, _ = update(source, _build_path_object(path, {"$defaults": value}))
    return result


def invoke_in(source: Any, path: Path, factory: Callable[[Any], Any]) -> Any:
    """Shortcut for a ``$invoke`` command, see ``set_in``."""
    result, _ = update(source, _build_path_object(path, {"$invoke": factory}))
    return result
