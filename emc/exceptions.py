"""
EMC Exceptions
==============

Error kinds raised by the model and its computed property engine. Every error
is raised synchronously at the point of the call; nothing is retried and no
partial progress is left behind.

Cancelling a change from a ``beforechange`` handler is not an error and never
raises: the mutation simply does not happen.
"""

from typing import Sequence


class EMCError(Exception):
    """Base class for all errors raised by emc."""

    pass


class InvalidArgumentError(EMCError, ValueError):
    """Raised when a required argument is missing or structurally wrong."""

    pass


class DisposedError(EMCError, RuntimeError):
    """Raised when a mutator or getter is used on a disposed model."""

    def __init__(self, message: str = "This model is disposed"):
        super().__init__(message)


class ReadOnlyComputedPropertyError(EMCError, AttributeError):
    """Raised when writing to a computed property that has no setter."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Computed property '{name}' is read-only")


class CircularDependencyError(EMCError):
    """Raised when a computed property definition would close a dependency cycle."""

    def __init__(self, path: Sequence[str]):
        self.path = tuple(path)
        super().__init__(
            "Circular dependency between computed properties: "
            + " -> ".join(self.path)
        )
