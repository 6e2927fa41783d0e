"""
EMC - Evented Model & Computed properties

An observable key/value model with cancellable change notifications, computed
properties that re-evaluate when their dependencies change, and structural
updates whose diffs are merged into one batched notification.
"""

from .computed import ComputedProperty, PropertyKind
from .diff import Change, ChangeType, is_same, merge_diff
from .events import Event, EventTarget, Subscription
from .exceptions import (
    CircularDependencyError,
    DisposedError,
    EMCError,
    InvalidArgumentError,
    ReadOnlyComputedPropertyError,
)
from .model import Model, create_model
from .scheduling import (
    AsyncioScheduler,
    ManualScheduler,
    get_default_scheduler,
    set_default_scheduler,
)
from .update import (
    defaults_in,
    invoke_in,
    merge_in,
    push_in,
    set_in,
    unshift_in,
    update,
)

__version__ = "0.1.0"

__all__ = [
    # Model
    "Model",
    "create_model",
    # Computed properties
    "ComputedProperty",
    "PropertyKind",
    # Diffs
    "Change",
    "ChangeType",
    "is_same",
    "merge_diff",
    # Update algebra
    "update",
    "set_in",
    "push_in",
    "unshift_in",
    "merge_in",
    "defaults_in",
    "invoke_in",
    # Events
    "Event",
    "EventTarget",
    "Subscription",
    # Scheduling
    "AsyncioScheduler",
    "ManualScheduler",
    "get_default_scheduler",
    "set_default_scheduler",
    # Exceptions
    "EMCError",
    "InvalidArgumentError",
    "DisposedError",
    "ReadOnlyComputedPropertyError",
    "CircularDependencyError",
]
