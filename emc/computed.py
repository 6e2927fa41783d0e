"""
Computed Properties
===================

A computed property is a model property whose value is derived from other
properties by a getter. Its value is cached in the model's store under its own
name and re-evaluated whenever one of its declared dependencies changes.

    class Rectangle(Model):
        def __init__(self, initial_data=None):
            super().__init__(initial_data)
            self.define_computed_property(
                "size",
                ["width", "height"],
                {
                    "get": lambda model: f"{model.get('width')}*{model.get('height')}",
                    "set": set_size,
                    "evaluate": True,
                },
            )

This module holds the definition side: the immutable ``ComputedProperty``
descriptor, the ``PropertyKind`` resolver and the ``ComputedRegistry`` that
indexes descriptors by name and by dependency. Evaluation runs through the
model's commit pipeline (see ``emc.model``).

Lifecycle
---------

A computed property is *uninitialized* until its value is first cached, which
happens at definition time when ``evaluate`` is true, otherwise on the first
``get`` or the first re-evaluation triggered by a dependency change.
"""

from dataclasses import dataclass
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from .exceptions import InvalidArgumentError
from .util.dependency_graph import DependencyGraph

if TYPE_CHECKING:
    from .model import Model

Getter = Callable[["Model"], Any]
Setter = Callable[..., None]


class PropertyKind(Enum):
    """How a property name is resolved by the model."""

    NORMAL = "normal"
    COMPUTED = "computed"


@dataclass(frozen=True)
class ComputedProperty:
    """
    Descriptor of a computed property.

    Attributes:
        name: Property name
        dependencies: Names the value is derived from
        get: Getter called with the model
        set: Optional setter called as ``set(model, value, silent=...)``; it
            is expected to write the dependencies
        evaluate: Evaluate and cache immediately on definition
    """

    name: str
    dependencies: Tuple[str, ...]
    get: Getter
    set: Optional[Setter] = None
    evaluate: bool = False

    @property
    def writable(self) -> bool:
        return self.set is not None

    @classmethod
    def from_definition(
        cls,
        name: str,
        dependencies: Iterable[str],
        getter_or_descriptor: Union[Getter, Mapping[str, Any]],
    ) -> "ComputedProperty":
        """
        Build a descriptor from a getter or a ``{"get", "set", "evaluate"}`` mapping.

        Raises:
            InvalidArgumentError: If no getter is given
        """
        if isinstance(dependencies, str):
            dependencies = [dependencies]
        # dict.fromkeys keeps declaration order while dropping duplicates
        dependencies = tuple(dict.fromkeys(dependencies))

        if callable(getter_or_descriptor):
            return cls(name, dependencies, getter_or_descriptor)

        if not isinstance(getter_or_descriptor, Mapping) or not callable(
            getter_or_descriptor.get("get")
        ):
            raise InvalidArgumentError(
                f"Computed property '{name}' requires a get function"
            )

        return cls(
            name,
            dependencies,
            getter_or_descriptor["get"],
            getter_or_descriptor.get("set"),
            bool(getter_or_descriptor.get("evaluate", False)),
        )


class ComputedRegistry:
    """
    Table of computed property descriptors owned by one model.

    Keeps the reverse-dependency index (dependency -> dependents) in a
    ``DependencyGraph``, which also rejects circular definitions.
    """

    def __init__(self):
        self._descriptors: Dict[str, ComputedProperty] = {}
        self._order: Dict[str, int] = {}
        self._graph = DependencyGraph()

    def define(self, descriptor: ComputedProperty) -> None:
        """
        Register a descriptor.

        Raises:
            InvalidArgumentError: If ``descriptor.name`` is already computed
            CircularDependencyError: If the definition closes a cycle
        """
        if descriptor.name in self._descriptors:
            raise InvalidArgumentError(
                f"Computed property '{descriptor.name}' is already defined"
            )

        self._graph.add_edges(descriptor.name, descriptor.dependencies)
        self._order[descriptor.name] = len(self._order)
        self._descriptors[descriptor.name] = descriptor

    def resolve(self, name: str) -> PropertyKind:
        if name in self._descriptors:
            return PropertyKind.COMPUTED
        return PropertyKind.NORMAL

    def descriptor(self, name: str) -> ComputedProperty:
        return self._descriptors[name]

    def dependents_of(self, names: Iterable[str]) -> Tuple[ComputedProperty, ...]:
        """
        Computed properties depending directly on any of ``names``.

        Each dependent appears once, in registration order.
        """
        found = set()
        for name in names:
            found.update(self._graph.dependents_of(name))
        return tuple(
            self._descriptors[name] for name in sorted(found, key=self._order.__getitem__)
        )

    def clear(self) -> None:
        self._descriptors.clear()
        self._order.clear()
        self._graph.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._descriptors

    def __iter__(self):
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)
