"""Tests for the rich rendering helpers."""

import pytest
from rich.console import Console

from emc import Change, ChangeType
from emc.display import diff_tree, model_table, print_diff


def render(renderable):
    console = Console(record=True, width=100, color_system=None)
    console.print(renderable)
    return console.export_text()


@pytest.mark.unit
class TestDiffTree:
    def test_structural_diff(self):
        diff = {
            "x": {"a": Change(ChangeType.CHANGE, 1, 3)},
            "y": Change(ChangeType.ADD, None, [1]),
            "z": Change(ChangeType.REMOVE, "gone", None),
        }

        text = render(diff_tree(diff))

        assert text.splitlines()[0].strip() == "update"
        assert "a  change  1" in text
        assert "y  add  [1]" in text
        assert "z  remove  'gone'" in text

    def test_leaf_diff(self):
        text = render(diff_tree(Change(ChangeType.CHANGE, 1, 2), title="root"))

        assert "root" in text
        assert "(root)  change" in text

    def test_no_diff(self):
        assert "no changes" in render(diff_tree(None))


@pytest.mark.unit
def test_model_table(model):
    model.fill({"greeting": "hello", "count": 2})

    text = render(model_table(model))

    assert "Model" in text
    assert "greeting" in text
    assert "'hello'" in text


@pytest.mark.unit
def test_print_diff_uses_given_console():
    console = Console(record=True, width=100, color_system=None)

    print_diff({"x": Change(ChangeType.ADD, None, 1)}, console=console, title="batch")

    text = console.export_text()
    assert text.startswith("batch")
    assert "x  add  1" in text
