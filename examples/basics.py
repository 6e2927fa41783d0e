import asyncio

from emc import Model
from emc.display import model_table, print_diff
from rich.console import Console

console = Console()

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Observing changes")
print("-" * 100)
print()

model = Model({"name": "Alice", "age": 30})

log_change = lambda event: print(
    f"{event.name}: {event.old_value!r} -> {event.new_value!r} ({event.change_type.value})"
)

# Every committed change fires "change", then "change:<name>".
model.on("change", log_change)
model.on("change:age", lambda event: print("  age observers notified"))

model.set("name", "Smith")
model.set("age", 31)
model.set("age", 31)  # Same value, nothing fires
model.remove("name")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Vetoing and rewriting changes")
print("-" * 100)
print()


def guard_age(event):
    if event.name != "age":
        return
    if event.new_value < 0:
        print(f"  refusing age {event.new_value}")
        event.prevent_default()
    elif event.new_value > 150:
        print(f"  clamping age {event.new_value}")
        event.actual_value = 150


model.on("beforechange", guard_age)

model.set("age", -5)
model.set("age", 200)
print("age is now", model.get("age"))

# Silent changes skip beforechange and change entirely.
model.set("age", -1, silent=True)
print("age after silent set", model.get("age"))

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Structural updates")
print("-" * 100)
print()

model.set("profile", {"tags": ["admin"], "address": {"city": "Paris"}})

# Commands describe the change; the value is replaced by an updated copy.
model.update(
    {
        "profile": {
            "tags": {"$push": "editor"},
            "address": {"$merge": {"zip": "75001"}},
        }
    }
)

console.print(model_table(model))

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Batched update notification")
print("-" * 100)
print()


async def main():
    batched = Model({"count": 0})
    batched.on("update", lambda event: print_diff(event.diff, console=console))

    # All of these land in one "update" event on the next loop iteration.
    for _ in range(10):
        batched.update({"count": {"$invoke": lambda count: count + 1}})
    batched.set("status", "done")

    await asyncio.sleep(0)


asyncio.run(main())
