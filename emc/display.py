"""
Rich Rendering of Diffs and Models
==================================

Helpers to inspect what a batch changed while debugging:

    from emc.display import print_diff

    model.on("update", lambda event: print_diff(event.diff))

Diffs render as a tree, one branch per structural key and one line per leaf:

    update
    ├── x
    │   └── a  change  1 → 3
    └── y  add  [1]
"""

from typing import Any, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from .diff import Change, ChangeType, DiffNode

_STYLES = {
    ChangeType.ADD: "green",
    ChangeType.CHANGE: "yellow",
    ChangeType.REMOVE: "red",
}


def _change_label(key: Any, change: Change) -> Text:
    label = Text(str(key), style="bold")
    label.append(f"  {change.change_type.value}  ", style=_STYLES[change.change_type])
    if change.change_type is ChangeType.ADD:
        label.append(repr(change.new_value))
    elif change.change_type is ChangeType.REMOVE:
        label.append(repr(change.old_value), style="strike")
    else:
        label.append(f"{change.old_value!r} → {change.new_value!r}")
    return label


def _add_branches(tree: Tree, node: DiffNode) -> None:
    for key, child in node.items():
        if isinstance(child, Change):
            tree.add(_change_label(key, child))
        else:
            _add_branches(tree.add(Text(str(key), style="bold")), child)


def diff_tree(diff: Optional[DiffNode], title: str = "update") -> Tree:
    """Build a ``rich`` tree for a diff; a leaf diff becomes a single branch."""
    tree = Tree(Text(title, style="bold cyan"))
    if diff is None:
        tree.add(Text("no changes", style="dim"))
    elif isinstance(diff, Change):
        tree.add(_change_label("(root)", diff))
    else:
        _add_branches(tree, diff)
    return tree


def model_table(model, title: Optional[str] = None) -> Table:
    """Tabulate the current properties of a model."""
    table = Table(title=title or type(model).__name__)
    table.add_column("Property", style="bold")
    table.add_column("Value")
    for name, value in model.dump().items():
        table.add_row(str(name), repr(value))
    return table


def print_diff(
    diff: Optional[DiffNode], console: Optional[Console] = None, title: str = "update"
) -> None:
    """Print a diff tree to ``console`` (stdout by default)."""
    (console or Console()).print(diff_tree(diff, title))
