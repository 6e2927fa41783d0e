"""
EMC Model - Observable Key/Value Store
======================================

``Model`` is a mutable key/value store that tells observers about every change
to its properties.

Events
------

- ``beforechange`` fires before a property is added, changed or removed. It
  carries ``name``, ``change_type``, ``old_value``, ``new_value``,
  ``actual_value`` and ``diff``. Handlers can cancel the change with
  ``event.prevent_default()`` or replace the value to commit by assigning
  ``event.actual_value``.
- ``change`` and ``change:<name>`` fire right after a property changed, with
  ``name``, ``change_type``, ``old_value``, ``new_value`` and ``diff``.
- ``update`` fires once per batch, on the next turn of the event loop, with the
  merged ``diff`` of every change made during the batch.

Basic Usage
-----------

```python
from emc import Model

model = Model({"x": 1})
model.on("change", lambda event: print(event.name, event.old_value, event.new_value))
model.on("update", lambda event: print("batch", event.diff))

model.set("x", 2)                       # x 1 2
model.update({"y": {"$set": [1]}})      # y None [1]
model.update({"y": {"$push": 2}})       # y [1] [1, 2]

model.flush()  # batch {'x': Change(CHANGE 1 -> 2), 'y': Change(ADD -> [1, 2])}
```

Every mutation runs through one commit pipeline:

    beforechange -> assign -> merge diff into batch -> change -> re-evaluate dependents

``silent=True`` skips both notifications for that mutation. Whether silent
changes still appear in the ``update`` summary is controlled by the
``batch_silent_changes`` option (on by default).

Computed properties (see ``emc.computed``) are defined with
``define_computed_property`` and re-evaluated through the same pipeline when
their dependencies change. They never fire ``beforechange``.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Union

from .computed import ComputedProperty, ComputedRegistry, Getter, PropertyKind
from .diff import Change, ChangeType, DiffNode, is_same, merge_diff
from .events import EventTarget
from .exceptions import (
    DisposedError,
    InvalidArgumentError,
    ReadOnlyComputedPropertyError,
)
from .scheduling import Scheduler, get_default_scheduler
from .update import COMMANDS, update

# ============================================================================
# BATCH STATE
# ============================================================================


@dataclass
class _BatchState:
    """
    Mutable bookkeeping of one model between two ``update`` notifications.

    Attributes:
        diff: Accumulated diff, keyed by top-level property name
        old_values: Value of each touched property when the batch started
        scheduled: A deferred ``update`` task is outstanding
        propagation_holds: Scopes deferring computed re-evaluation
        beforechange_holds: Scopes suppressing ``beforechange``
        touched: Names committed while propagation was held
    """

    diff: Dict[str, DiffNode] = field(default_factory=dict)
    old_values: Dict[str, Any] = field(default_factory=dict)
    scheduled: bool = False
    propagation_holds: int = 0
    beforechange_holds: int = 0
    touched: Dict[str, None] = field(default_factory=dict)

    def reset(self) -> None:
        self.diff = {}
        self.old_values = {}


# ============================================================================
# PROPERTY ACCESS STRATEGIES
# ============================================================================


class _NormalAccess:
    """Reads and writes plain properties straight through the store."""

    def __init__(self, model: "Model"):
        self._model = model

    def get(self, name: str) -> Any:
        return self._model._store.get(name)

    def set(self, name: str, value: Any, silent: bool) -> None:
        self._model._set_value(name, value, silent)

    def remove(self, name: str, silent: bool) -> None:
        self._model._remove_value(name, silent)

    def update(self, name: str, commands: Mapping, silent: bool) -> None:
        store = self._model._store
        # An absent property is not the same as one holding None
        container = {name: store[name]} if name in store else {}
        result, diff = update(container, {name: commands})
        if diff is None:
            return
        self._model._set_value(name, result[name], silent, diff[name])


class _ComputedAccess:
    """Reads and writes computed properties through their descriptors."""

    def __init__(self, model: "Model"):
        self._model = model

    def get(self, name: str) -> Any:
        store = self._model._store
        if name not in store:
            # First evaluation establishes the value, it is not a change
            store[name] = self._model._computed.descriptor(name).get(self._model)
            logging.debug(f"Computed property '{name}' evaluated lazily")
        return store[name]

    def set(self, name: str, value: Any, silent: bool) -> None:
        model = self._model
        descriptor = model._computed.descriptor(name)
        if not descriptor.writable:
            raise ReadOnlyComputedPropertyError(name)

        try:
            with model._holding_propagation(suppress_beforechange=True):
                descriptor.set(model, value, silent=silent)
        finally:
            model._reevaluate(descriptor.dependencies, silent)

    def remove(self, name: str, silent: bool) -> None:
        raise ReadOnlyComputedPropertyError(name)

    def update(self, name: str, commands: Mapping, silent: bool) -> None:
        new_value, diff = update(self.get(name), commands)
        if diff is None:
            return
        self.set(name, new_value, silent)


# ============================================================================
# MODEL
# ============================================================================


class Model(EventTarget):
    """
    Observable key/value store with computed properties and batched diffs.

    Args:
        initial_data: Optional mapping the store is seeded from (copied)
        scheduler: Scheduler running the deferred ``update`` notification;
            defaults to ``emc.scheduling.get_default_scheduler()``
        batch_silent_changes: Whether ``silent`` mutations are included in
            the ``update`` diff

    Raises:
        InvalidArgumentError: If ``initial_data`` is not a mapping
    """

    def __init__(
        self,
        initial_data: Optional[Mapping[str, Any]] = None,
        *,
        scheduler: Optional[Scheduler] = None,
        batch_silent_changes: bool = True,
    ):
        super().__init__()

        if initial_data is not None and not isinstance(initial_data, Mapping):
            raise InvalidArgumentError(
                f"Initial data must be a mapping, got {type(initial_data).__name__}"
            )

        self._store: Dict[str, Any] = dict(initial_data or {})
        self._batch = _BatchState()
        self._computed = ComputedRegistry()
        self._scheduler = scheduler if scheduler is not None else get_default_scheduler()
        self._batch_silent_changes = batch_silent_changes
        self._disposed = False

        self._strategies = {
            PropertyKind.NORMAL: _NormalAccess(self),
            PropertyKind.COMPUTED: _ComputedAccess(self),
        }

    # ------------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------------

    def get(self, name: str) -> Any:
        """
        Get the value of a property.

        Returns:
            The value, or None if the property does not exist

        Raises:
            DisposedError: The model is disposed
            InvalidArgumentError: ``name`` is not provided
        """
        self._ensure_alive()
        self._check_name(name)
        return self._access(name).get(name)

    def has(self, name: str) -> bool:
        """Check whether a property exists (even with a None value)."""
        self._check_name(name)
        if self._disposed:
            return False
        return name in self._store

    def has_value(self, name: str) -> bool:
        """Check whether a property exists and is not None."""
        self._check_name(name)
        if self._disposed:
            return False
        return self.has(name) and self._store[name] is not None

    def has_readable_value(self, name: str) -> bool:
        """Check whether a property exists and is neither None nor an empty string."""
        self._check_name(name)
        if self._disposed:
            return False
        if not self.has_value(name):
            return False
        value = self._store[name]
        return not (isinstance(value, str) and value == "")

    def dump(self) -> Dict[str, Any]:
        """
        Dump the model as a plain dict.

        The result is a shallow copy: modifying it does not affect the model.
        """
        if self._disposed:
            return {}
        return dict(self._store)

    # ------------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------------

    def set(self, name: str, value: Any, *, silent: bool = False) -> Any:
        """
        Set the value of a property.

        Args:
            name: The property name
            value: The new value
            silent: Skip ``beforechange`` and ``change`` notifications

        Returns:
            ``value``

        Raises:
            DisposedError: The model is disposed
            InvalidArgumentError: ``name`` is not provided
            ReadOnlyComputedPropertyError: ``name`` is a computed property
                without a setter
        """
        self._ensure_alive()
        self._check_name(name)
        self._access(name).set(name, value, silent)
        return value

    def remove(self, name: str, *, silent: bool = False) -> None:
        """
        Remove a property. Removing a missing property does nothing.

        Raises:
            DisposedError: The model is disposed
            InvalidArgumentError: ``name`` is not provided
            ReadOnlyComputedPropertyError: ``name`` is a computed property
        """
        self._ensure_alive()
        self._check_name(name)
        self._access(name).remove(name, silent)

    def fill(self, extension: Mapping[str, Any], *, silent: bool = False) -> Mapping[str, Any]:
        """
        Set every key of ``extension``, one ``set`` per key, in order.

        Returns:
            ``extension``
        """
        self._ensure_alive()
        if extension is None:
            raise InvalidArgumentError("Argument extension is not provided")

        for name, value in extension.items():
            self.set(name, value, silent=silent)
        return extension

    def update(self, commands: Mapping[str, Any], *, silent: bool = False) -> None:
        """
        Update properties with a command tree, see ``emc.update.update``.

        Each top-level key is a property; its diff is the structural diff the
        command produced, and diffs of repeated updates within one batch are
        merged so each path has a single entry. Commands applying to the whole
        store (``{"$set": ...}`` at the top level) are rejected.

        Computed properties depending on several updated properties are
        re-evaluated once, after all commands ran.

        Raises:
            DisposedError: The model is disposed
            InvalidArgumentError: ``commands`` is not a mapping or holds a root command
        """
        self._ensure_alive()
        if commands is None or not isinstance(commands, Mapping):
            raise InvalidArgumentError("Argument commands is not provided")

        root_commands = [key for key in commands if key in COMMANDS]
        if root_commands:
            raise InvalidArgumentError(
                f"Root command {root_commands[0]} cannot be applied to a model"
            )

        touched: Dict[str, None] = {}
        try:
            with self._holding_propagation() as touched:
                for name, property_commands in commands.items():
                    self._check_name(name)
                    self._access(name).update(name, property_commands, silent)
        finally:
            # Commands that ran before a failure stay committed
            self._reevaluate(touched, silent)

    def define_computed_property(
        self,
        name: str,
        dependencies: Iterable[str],
        getter_or_descriptor: Union[Getter, Mapping[str, Any]],
    ) -> ComputedProperty:
        """
        Define a computed property.

        Meant to be called while the model is being constructed, before it is
        handed out to observers.

        Args:
            name: The property name
            dependencies: Names of the properties the value is derived from
            getter_or_descriptor: A getter ``get(model)``, or a mapping with
                ``get``, optional ``set(model, value, silent=...)`` and optional
                ``evaluate``

        Returns:
            The registered descriptor

        Raises:
            InvalidArgumentError: Missing getter or name already computed
            CircularDependencyError: The definition closes a dependency cycle
        """
        self._ensure_alive()
        self._check_name(name)

        descriptor = ComputedProperty.from_definition(
            name, dependencies, getter_or_descriptor
        )
        self._computed.define(descriptor)

        # A plain value stored under the same name is not a valid cache
        self._store.pop(name, None)
        if descriptor.evaluate:
            self._store[name] = descriptor.get(self)
        return descriptor

    def clone(self) -> "Model":
        """Create a new model holding a copy of the current properties."""
        self._ensure_alive()
        return Model(
            self.dump(),
            scheduler=self._scheduler,
            batch_silent_changes=self._batch_silent_changes,
        )

    def get_as_model(self, name: str) -> "Model":
        """
        Wrap a mapping property in a new model.

        A property that is not a mapping gives an empty model.
        """
        value = self.get(name)
        return Model(
            value if isinstance(value, Mapping) else None,
            scheduler=self._scheduler,
            batch_silent_changes=self._batch_silent_changes,
        )

    def flush(self) -> Optional[Dict[str, DiffNode]]:
        """
        Fire the pending ``update`` notification now.

        Returns:
            The delivered diff, or None if the batch holds no change
        """
        if self._disposed:
            return None
        return self._deliver_batch()

    def dispose(self) -> None:
        """Release observers, properties and batch state. Safe to call twice."""
        if self._disposed:
            return

        self.destroy_events()
        self._store.clear()
        self._batch.reset()
        self._batch.touched.clear()
        self._computed.clear()
        self._disposed = True
        logging.debug(f"Disposed {type(self).__name__} {id(self):#x}")

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __repr__(self) -> str:
        if self._disposed:
            return f"{type(self).__name__}(disposed)"
        return f"{type(self).__name__}({self._store!r})"

    # ------------------------------------------------------------------------
    # Commit pipeline
    # ------------------------------------------------------------------------

    def _access(self, name: str):
        return self._strategies[self._computed.resolve(name)]

    def _set_value(
        self,
        name: str,
        value: Any,
        silent: bool,
        diff: Optional[DiffNode] = None,
        fire_beforechange: bool = True,
    ) -> None:
        """Core of ``set``, ``update`` and computed re-evaluation."""
        exists = name in self._store
        old_value = self._store.get(name)
        if exists and is_same(old_value, value):
            return

        if exists or self._computed.resolve(name) is PropertyKind.COMPUTED:
            change_type = ChangeType.CHANGE
        else:
            change_type = ChangeType.ADD

        if fire_beforechange and not silent and not self._batch.beforechange_holds:
            event = self.fire(
                "beforechange",
                name=name,
                change_type=change_type,
                old_value=old_value,
                new_value=value,
                actual_value=value,
                diff=diff,
            )
            if event.is_default_prevented():
                logging.debug(f"Change of '{name}' prevented by beforechange handler")
                return
            # A replaced value invalidates the diff the command produced
            if not is_same(event.actual_value, value):
                diff = None
                value = event.actual_value

        self._assign(name, value, change_type, silent, diff)

    def _remove_value(self, name: str, silent: bool) -> None:
        if name not in self._store:
            return

        if not silent and not self._batch.beforechange_holds:
            event = self.fire(
                "beforechange",
                name=name,
                change_type=ChangeType.REMOVE,
                old_value=self._store[name],
                new_value=None,
                actual_value=None,
                diff=None,
            )
            if event.is_default_prevented():
                logging.debug(f"Removal of '{name}' prevented by beforechange handler")
                return

        self._assign(name, None, ChangeType.REMOVE, silent, None)

    def _assign(
        self,
        name: str,
        value: Any,
        change_type: ChangeType,
        silent: bool,
        diff: Optional[DiffNode],
    ) -> None:
        old_value = self._store.get(name)
        if change_type is ChangeType.CHANGE and is_same(old_value, value):
            return

        if not silent or self._batch_silent_changes:
            if name not in self._batch.old_values:
                self._batch.old_values[name] = old_value

        if change_type is ChangeType.REMOVE:
            del self._store[name]
        else:
            self._store[name] = value

        if not silent or self._batch_silent_changes:
            node = diff if diff is not None else Change(change_type, old_value, value)
            self._merge_update_diff(name, node)

        logging.debug(f"Committed {change_type.value} of '{name}'")

        if not silent:
            payload = dict(
                name=name,
                change_type=change_type,
                old_value=old_value,
                new_value=value,
                diff=diff,
            )
            self.fire("change", **payload)
            self.fire(f"change:{name}", **payload)

        self._reevaluate((name,), silent)

    # ------------------------------------------------------------------------
    # Computed property propagation
    # ------------------------------------------------------------------------

    @contextmanager
    def _holding_propagation(
        self, suppress_beforechange: bool = False
    ) -> Iterator[Dict[str, None]]:
        """
        Defer re-evaluation of computed properties for the duration of the block.

        Yields the (ordered) names committed inside the block; the caller
        re-evaluates their dependents once the block is done.
        """
        batch = self._batch
        outer_touched = batch.touched
        touched: Dict[str, None] = {}
        batch.touched = touched
        batch.propagation_holds += 1
        if suppress_beforechange:
            batch.beforechange_holds += 1
        try:
            yield touched
        finally:
            batch.propagation_holds -= 1
            if suppress_beforechange:
                batch.beforechange_holds -= 1
            batch.touched = outer_touched

    def _reevaluate(self, names: Iterable[str], silent: bool) -> None:
        """Re-evaluate computed properties depending on ``names``."""
        if self._disposed:
            return

        if self._batch.propagation_holds:
            for name in names:
                self._batch.touched[name] = None
            return

        for descriptor in self._computed.dependents_of(names):
            if self._disposed:
                return
            logging.debug(f"Re-evaluating computed property '{descriptor.name}'")
            self._set_value(
                descriptor.name,
                descriptor.get(self),
                silent,
                fire_beforechange=False,
            )

    # ------------------------------------------------------------------------
    # Batched update notification
    # ------------------------------------------------------------------------

    def _merge_update_diff(self, name: str, node: DiffNode) -> None:
        merged = merge_diff(
            self._batch.diff, {name: node}, self._store, self._batch.old_values
        )
        self._batch.diff = merged if merged is not None else {}
        self._schedule_update_event()

    def _schedule_update_event(self) -> None:
        """Schedule the ``update`` notification, at most one task at a time."""
        if self._batch.scheduled:
            return
        # Left unscheduled when the scheduler cannot run it; the next change
        # or flush() delivers the batch
        scheduled = self._scheduler.call_soon(self._fire_update_event)
        self._batch.scheduled = bool(scheduled)

    def _fire_update_event(self) -> None:
        self._batch.scheduled = False
        # Do not fire on a disposed model
        if self._disposed:
            return
        self._deliver_batch()

    def _deliver_batch(self) -> Optional[Dict[str, DiffNode]]:
        diff = self._batch.diff
        self._batch.reset()
        if not diff:
            return None
        logging.debug(f"Firing update with {len(diff)} changed properties")
        self.fire("update", diff=diff)
        return diff

    # ------------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------------

    def _ensure_alive(self) -> None:
        if self._disposed:
            raise DisposedError()

    @staticmethod
    def _check_name(name: Any) -> None:
        if not name:
            raise InvalidArgumentError("Argument name is not provided")


def create_model(
    initial_data: Optional[Mapping[str, Any]] = None,
    scheduler: Optional[Scheduler] = None,
    batch_silent_changes: bool = True,
) -> Model:
    """
    Create a model with the specified settings.

    Args:
        initial_data: Mapping the model is seeded from
        scheduler: Scheduler for the deferred ``update`` notification
        batch_silent_changes: Whether silent changes are part of ``update`` diffs

    Returns:
        Configured Model instance
    """
    return Model(
        initial_data,
        scheduler=scheduler,
        batch_silent_changes=batch_silent_changes,
    )
