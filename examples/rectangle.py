"""
Computed properties on a Model subclass.

``size`` is writable: setting it writes ``width`` and ``height``.
``area`` is only computed the first time it is read.
"""

from rich.console import Console

from emc import ManualScheduler, Model
from emc.display import print_diff

console = Console()


def set_size(model, value, silent=False):
    width, height = (int(part) for part in value.split("x"))
    model.set("width", width, silent=silent)
    model.set("height", height, silent=silent)


class Rectangle(Model):
    def __init__(self, width, height, **kwargs):
        super().__init__({"width": width, "height": height}, **kwargs)

        self.define_computed_property(
            "size",
            ["width", "height"],
            {
                "get": lambda model: f"{model.get('width')}x{model.get('height')}",
                "set": set_size,
                "evaluate": True,
            },
        )
        self.define_computed_property(
            "area", ["width", "height"], lambda model: model.get("width") * model.get("height")
        )


scheduler = ManualScheduler()
rectangle = Rectangle(2, 3, scheduler=scheduler)

rectangle.on("change", lambda event: print(f"{event.name} = {event.new_value!r}"))
rectangle.on("update", lambda event: print_diff(event.diff, console=console, title="batch"))

print("area:", rectangle.get("area"))

print("\nSetting width")
rectangle.set("width", 4)

print("\nSetting size")
rectangle.set("size", "10x20")

print("\nUpdating both edges at once")
rectangle.update({"width": {"$set": 5}, "height": {"$invoke": lambda height: height // 2}})

# One notification for everything above.
print()
scheduler.run_pending()
