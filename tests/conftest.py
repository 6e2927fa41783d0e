"""
Shared pytest fixtures and configuration for EMC tests.
"""

import pytest

from emc import ManualScheduler, Model


class Recorder:
    """Collects the events a model fires."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    @property
    def count(self):
        return len(self.events)

    @property
    def last(self):
        return self.events[-1]

    def names(self):
        return [event.name for event in self.events]

    def for_name(self, name):
        return [event for event in self.events if event.name == name]


def set_size(model, value, silent=False):
    width, height = (
        [int(part) for part in value.split("*")] if value else [None, None]
    )
    model.set("width", width, silent=silent)
    model.set("height", height, silent=silent)


class Rectangle(Model):
    """Model with a writable, a lazy and an eager computed property."""

    def __init__(self, initial_data=None, **kwargs):
        super().__init__(initial_data, **kwargs)

        def size(model):
            if not model.has("width") or not model.has("height"):
                return None
            return f"{model.get('width')}*{model.get('height')}"

        self.define_computed_property(
            "size",
            ["width", "height"],
            {"get": size, "set": set_size, "evaluate": True},
        )
        self.define_computed_property(
            "perimeter",
            ["width", "height"],
            lambda model: model.get("width") * 2 + model.get("height") * 2,
        )
        self.define_computed_property(
            "shorter_edge",
            ["width", "height"],
            {
                "get": lambda model: min(model.get("width"), model.get("height")),
                "evaluate": True,
            },
        )


@pytest.fixture
def scheduler():
    """Scheduler that only runs deferred tasks when asked to."""
    return ManualScheduler()


@pytest.fixture
def model(scheduler):
    """Provide a fresh, empty Model driven by the manual scheduler."""
    return Model(scheduler=scheduler)


@pytest.fixture
def rectangle(scheduler):
    """A 2*3 Rectangle driven by the manual scheduler."""
    return Rectangle({"width": 2, "height": 3}, scheduler=scheduler)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_recorder():
    """Factory for several independent recorders in one test."""
    return Recorder
