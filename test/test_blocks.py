"""
Block composition tests.

Test classes:
    TestBlockTypeRegistry — registration, lookup, instance creation
    TestStyleClasses      — style map compilation
    TestTreeEditing       — add / remove / update with typed failures
    TestTreeRendering     — depth-first composition, idempotence
    TestTreeLoadExport    — nested record import / export
"""

from __future__ import annotations

import pytest

from pagebuilder.blocks.models import BlockInstance, BlockTypeDescriptor
from pagebuilder.blocks.registry import BlockTypeRegistry
from pagebuilder.blocks.styles import compile_style_classes
from pagebuilder.blocks.tree import BlockTree
from pagebuilder.exceptions import (
    BlockNotFoundError,
    DuplicateBlockTypeError,
    InvalidOperationError,
    NotAContainerError,
    UnknownBlockTypeError,
    ValidationError,
)

# ══════════════════════════════════════════════════════════════════════════════
# 1. TestBlockTypeRegistry
# ══════════════════════════════════════════════════════════════════════════════


class TestBlockTypeRegistry:
    def test_builtin_types_registered_in_order(self, block_registry):
        assert [d.id for d in block_registry.all_types()] == ["hero", "text", "grid"]
        assert block_registry.require("grid").is_container
        assert not block_registry.require("text").is_container

    def test_duplicate_type_rejected(self, block_registry):
        with pytest.raises(DuplicateBlockTypeError):
            block_registry.register_type(BlockTypeDescriptor(id="text"))

    def test_unknown_type(self, block_registry):
        assert block_registry.get("carousel") is None
        with pytest.raises(UnknownBlockTypeError) as exc_info:
            block_registry.create_instance("carousel")
        assert exc_info.value.type_id == "carousel"

    def test_create_instance_merges_defaults(self, block_registry):
        block = block_registry.create_instance(
            "hero",
            {"config": {"title": "Welcome"}, "styles": {"padding": "lg"}},
        )
        assert block.config["title"] == "Welcome"
        assert block.config["buttonText"] == "Get Started"
        assert block.styles["padding"] == "lg"
        assert block.styles["textAlign"] == "center"

    def test_create_instance_does_not_share_defaults(self, block_registry):
        first = block_registry.create_instance("text")
        first.config["content"] = "changed"
        second = block_registry.create_instance("text")
        assert second.config["content"] != "changed"
        assert block_registry.require("text").default_config["content"] != "changed"

    def test_generated_ids_are_unique(self, block_registry):
        ids = {block_registry.create_instance("text").id for _ in range(50)}
        assert len(ids) == 50
        assert all(block_id.startswith("text-") for block_id in ids)

    def test_type_without_renderer_uses_generic(self):
        registry = BlockTypeRegistry()
        registry.register_type(BlockTypeDescriptor(id="spacer"))
        tree = BlockTree(registry)
        tree.add_root(registry.create_instance("spacer", block_id="s1"))
        assert tree.render() == '<div data-block-id="s1" data-block-type="spacer"></div>'

    def test_descriptor_to_dict(self, block_registry):
        data = block_registry.require("grid").to_dict()
        assert data["id"] == "grid"
        assert data["is_container"] is True
        assert data["default_config"] == {"columns": 2, "gap": "16px"}


# ══════════════════════════════════════════════════════════════════════════════
# 2. TestStyleClasses
# ══════════════════════════════════════════════════════════════════════════════


class TestStyleClasses:
    def test_known_values_map_to_classes(self):
        styles = {"padding": "md", "margin": "sm", "textAlign": "center", "backgroundColor": "white"}
        assert compile_style_classes(styles) == "py-8 my-2 text-center bg-white"

    def test_unknown_values_are_ignored(self):
        assert compile_style_classes({"padding": "huge", "fontFamily": "serif"}) == ""

    def test_none_value_is_empty(self):
        assert compile_style_classes({"padding": "none", "textAlign": "left"}) == "text-left"

    def test_responsive_overrides(self):
        styles = {"textAlign": "center", "responsive": {"md": {"textAlign": "left"}, "tv": {"textAlign": "right"}}}
        assert compile_style_classes(styles) == "text-center md:text-left"


# ══════════════════════════════════════════════════════════════════════════════
# 3. TestTreeEditing
# ══════════════════════════════════════════════════════════════════════════════


class TestTreeEditing:
    def test_add_child_to_container(self, block_tree):
        grid = block_tree.add_root(block_tree.create_instance("grid", block_id="g1"))
        text = block_tree.add_child(grid.id, block_tree.create_instance("text", block_id="t1"))
        assert grid.children == ["t1"]
        assert block_tree.parent_of("t1") is grid
        assert block_tree.children("g1") == [text]

    def test_add_child_at_position(self, block_tree):
        block_tree.add_root(block_tree.create_instance("grid", block_id="g1"))
        for block_id in ("a", "c"):
            block_tree.add_child("g1", block_tree.create_instance("text", block_id=block_id))
        block_tree.add_child("g1", block_tree.create_instance("text", block_id="b"), position=1)
        assert block_tree.get("g1").children == ["a", "b", "c"]

    def test_add_child_to_non_container_is_rejected(self, block_tree):
        block_tree.add_root(block_tree.create_instance("text", block_id="t1"))
        child = block_tree.create_instance("text", block_id="t2")
        with pytest.raises(NotAContainerError):
            block_tree.add_child("t1", child)
        assert block_tree.get("t1").children == []
        assert block_tree.parent_of("t2") is None

    def test_add_child_to_missing_parent(self, block_tree):
        with pytest.raises(BlockNotFoundError):
            block_tree.add_child("nope", block_tree.create_instance("text"))

    def test_attaching_twice_is_rejected(self, block_tree):
        block_tree.add_root(block_tree.create_instance("grid", block_id="g1"))
        block_tree.add_root(block_tree.create_instance("grid", block_id="g2"))
        text = block_tree.add_child("g1", block_tree.create_instance("text", block_id="t1"))
        with pytest.raises(InvalidOperationError):
            block_tree.add_child("g2", text)
        assert block_tree.get("g2").children == []

    def test_block_cannot_contain_itself(self, block_tree):
        outer = block_tree.create_instance("grid", block_id="outer")
        inner = block_tree.create_instance("grid", block_id="inner")
        block_tree.add_root(inner)
        # outer is detached but already knows inner as a child
        outer.children.append("inner")
        with pytest.raises(InvalidOperationError):
            block_tree.add_child("inner", outer)

    def test_reusing_an_id_is_rejected(self, block_tree):
        block_tree.create_instance("text", block_id="dup")
        with pytest.raises(InvalidOperationError):
            block_tree.create_instance("text", block_id="dup")

    def test_foreign_block_with_same_id_is_rejected(self, block_tree, block_registry):
        block_tree.add_root(block_tree.create_instance("text", block_id="t1"))
        impostor = block_registry.create_instance("text", block_id="t1")
        with pytest.raises(InvalidOperationError):
            block_tree.add_root(impostor)

    def test_external_block_can_be_attached(self, block_tree, block_registry):
        block = block_registry.create_instance("text", block_id="ext")
        block_tree.add_root(block)
        assert block_tree.get("ext") is block

    def test_unknown_type_is_rejected_on_attach(self, block_tree):
        with pytest.raises(UnknownBlockTypeError):
            block_tree.add_root(BlockInstance(id="x", type_id="carousel"))
        assert "x" not in block_tree

    def test_remove_child_discards_subtree(self, block_tree):
        block_tree.add_root(block_tree.create_instance("grid", block_id="g1"))
        block_tree.add_child("g1", block_tree.create_instance("grid", block_id="g2"))
        block_tree.add_child("g2", block_tree.create_instance("text", block_id="t1"))

        removed = block_tree.remove_child("g1", "g2")

        assert removed.id == "g2"
        assert block_tree.get("g1").children == []
        assert "g2" not in block_tree
        assert "t1" not in block_tree

    def test_remove_child_not_under_parent(self, block_tree):
        block_tree.add_root(block_tree.create_instance("grid", block_id="g1"))
        block_tree.add_root(block_tree.create_instance("text", block_id="t1"))
        with pytest.raises(BlockNotFoundError):
            block_tree.remove_child("g1", "t1")

    def test_remove_root(self, block_tree):
        block_tree.add_root(block_tree.create_instance("text", block_id="t1"))
        block_tree.remove_root("t1")
        assert block_tree.roots() == []
        with pytest.raises(BlockNotFoundError):
            block_tree.remove_root("t1")

    def test_update_merges_in_place(self, block_tree):
        block_tree.add_root(block_tree.create_instance("hero", block_id="h1"))
        block = block_tree.update("h1", config={"title": "New"}, styles={"padding": "xl"})
        assert block.config["title"] == "New"
        assert block.config["subtitle"]
        assert block.styles["padding"] == "xl"

    def test_walk_is_depth_first(self, block_tree):
        block_tree.add_root(block_tree.create_instance("grid", block_id="g1"))
        block_tree.add_child("g1", block_tree.create_instance("grid", block_id="g2"))
        block_tree.add_child("g2", block_tree.create_instance("text", block_id="t1"))
        block_tree.add_child("g1", block_tree.create_instance("text", block_id="t2"))
        block_tree.add_root(block_tree.create_instance("hero", block_id="h1"))
        assert [(b.id, depth) for b, depth in block_tree.walk()] == [
            ("g1", 0),
            ("g2", 1),
            ("t1", 2),
            ("t2", 1),
            ("h1", 0),
        ]


# ══════════════════════════════════════════════════════════════════════════════
# 4. TestTreeRendering
# ══════════════════════════════════════════════════════════════════════════════


class TestTreeRendering:
    def test_text_nested_inside_grid(self, block_tree):
        grid = block_tree.add_root(block_tree.create_instance("grid", block_id="g1"))
        block_tree.add_child(grid.id, block_tree.create_instance("text", {"config": {"content": "hi"}}, block_id="t1"))

        html = block_tree.render()

        grid_open = html.index('data-block-id="g1"')
        text_at = html.index("<p>hi</p>")
        grid_close = html.rindex("</div>")
        assert grid_open < text_at < grid_close
        assert html.startswith('<div data-block-id="g1" data-block-type="grid" class="grid grid-cols-1 md:grid-cols-2"')
        assert 'style="gap: 16px"' in html

    def test_render_is_idempotent(self, block_tree):
        block_tree.add_root(block_tree.create_instance("hero", block_id="h1"))
        grid = block_tree.add_root(block_tree.create_instance("grid", block_id="g1"))
        block_tree.add_child(grid.id, block_tree.create_instance("text", block_id="t1"))
        assert block_tree.render() == block_tree.render()

    def test_siblings_render_in_order(self, block_tree):
        block_tree.add_root(block_tree.create_instance("grid", {"config": {"columns": 3}}, block_id="g1"))
        for word in ("one", "two", "three"):
            block_tree.add_child("g1", block_tree.create_instance("text", {"config": {"content": word}}))
        html = block_tree.render()
        assert html.index("one") < html.index("two") < html.index("three")
        assert "md:grid-cols-3" in html

    def test_style_classes_applied(self, block_tree):
        block_tree.add_root(block_tree.create_instance("text", {"styles": {"textAlign": "right"}}, block_id="t1"))
        assert 'class="py-8 my-2 text-right bg-transparent"' in block_tree.render()

    def test_config_values_are_escaped(self, block_tree):
        block_tree.add_root(block_tree.create_instance("text", {"config": {"content": "<b>x</b>"}}))
        assert "&lt;b&gt;x&lt;/b&gt;" in block_tree.render()

    def test_placeholders_pass_through_render(self, block_tree):
        block_tree.add_root(block_tree.create_instance("text", {"config": {"content": "Hello {{ user.name }}"}}))
        assert "Hello {{ user.name }}" in block_tree.render()

    def test_hero_optional_parts(self, block_tree):
        block_tree.add_root(
            block_tree.create_instance("hero", {"config": {"title": "T", "subtitle": "", "buttonText": ""}})
        )
        html = block_tree.render()
        assert "<h1" in html
        assert "<a " not in html
        assert "mt-4 text-lg" not in html

    def test_render_selected_roots(self, block_tree):
        block_tree.add_root(block_tree.create_instance("text", {"config": {"content": "first"}}, block_id="a"))
        block_tree.add_root(block_tree.create_instance("text", {"config": {"content": "second"}}, block_id="b"))
        html = block_tree.render(["b"])
        assert "second" in html
        assert "first" not in html


# ══════════════════════════════════════════════════════════════════════════════
# 5. TestTreeLoadExport
# ══════════════════════════════════════════════════════════════════════════════


class TestTreeLoadExport:
    def test_load_nested_records(self, block_tree):
        roots = block_tree.load(
            [
                {
                    "id": "g1",
                    "typeId": "grid",
                    "children": [{"id": "t1", "type": "text", "config": {"content": "hi"}}],
                }
            ]
        )
        assert [root.id for root in roots] == ["g1"]
        assert block_tree.get("t1").config["content"] == "hi"
        assert block_tree.parent_of("t1").id == "g1"

    def test_load_sorts_siblings_by_order(self, block_tree):
        block_tree.load(
            [
                {"id": "b", "typeId": "text", "order": 2},
                {"id": "a", "typeId": "text", "order": 1},
            ]
        )
        assert [root.id for root in block_tree.roots()] == ["a", "b"]

    def test_load_rejects_children_under_non_container(self, block_tree):
        with pytest.raises(NotAContainerError):
            block_tree.load([{"typeId": "text", "children": [{"typeId": "text"}]}])

    def test_failed_load_leaves_tree_untouched(self, block_tree):
        block_tree.add_root(block_tree.create_instance("text", block_id="keep"))
        with pytest.raises(UnknownBlockTypeError):
            block_tree.load([{"typeId": "text"}, {"typeId": "carousel"}])
        assert [root.id for root in block_tree.roots()] == ["keep"]
        assert len(block_tree) == 1

    def test_load_requires_type(self, block_tree):
        with pytest.raises(ValidationError):
            block_tree.load([{"id": "x"}])

    def test_load_rejects_duplicate_ids(self, block_tree):
        with pytest.raises(InvalidOperationError):
            block_tree.load([{"id": "x", "typeId": "text"}, {"id": "x", "typeId": "text"}])

    def test_export_matches_load_format(self, block_tree):
        records = [
            {
                "id": "g1",
                "typeId": "grid",
                "config": {"columns": 3},
                "children": [{"id": "t1", "typeId": "text", "config": {"content": "hi"}}],
            }
        ]
        block_tree.load(records)
        exported = block_tree.to_dict()
        assert exported[0]["id"] == "g1"
        assert exported[0]["config"] == {"columns": 3, "gap": "16px"}
        assert exported[0]["children"][0]["order"] == 0

        copy = BlockTree(block_tree.registry)
        copy.load(exported)
        assert copy.render() == block_tree.render()
