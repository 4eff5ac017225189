"""
Built-in block types: hero, text and grid.

Each type renders through a Jinja2 template in ``pagebuilder/templates/blocks``.
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from pagebuilder.blocks.models import BlockInstance, BlockTypeDescriptor
from pagebuilder.blocks.registry import BlockTypeRegistry
from pagebuilder.blocks.styles import compile_style_classes

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "blocks"

_environment = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


class TemplateBlockRenderer:
    """Render procedure backed by a block template."""

    def __init__(self, template_name: str, environment: Environment = _environment) -> None:
        self.template_name = template_name
        self.environment = environment

    def __call__(self, instance: BlockInstance, children: str) -> str:
        template = self.environment.get_template(self.template_name)
        return template.render(
            block=instance,
            config=instance.config,
            classes=compile_style_classes(instance.styles),
            children=Markup(children),
        )


HERO = BlockTypeDescriptor(
    id="hero",
    name="Hero Section",
    description="Main section with title and call to action",
    category="content",
    default_config={
        "title": "Make an Impact",
        "subtitle": "A subtitle describing your value proposition",
        "buttonText": "Get Started",
        "buttonUrl": "#",
    },
    default_styles={
        "padding": "md",
        "margin": "sm",
        "textAlign": "center",
        "backgroundColor": "transparent",
    },
)

TEXT = BlockTypeDescriptor(
    id="text",
    name="Text Block",
    description="Paragraph of text",
    category="content",
    default_config={
        "content": "This is a paragraph of content. Edit it to add your own text.",
    },
    default_styles={
        "padding": "md",
        "margin": "sm",
        "textAlign": "left",
        "backgroundColor": "transparent",
    },
)

GRID = BlockTypeDescriptor(
    id="grid",
    name="Column Grid",
    description="Columns to organize other blocks",
    category="layout",
    default_config={
        "columns": 2,
        "gap": "16px",
    },
    is_container=True,
)

BUILTIN_BLOCKS: list[tuple[BlockTypeDescriptor, str]] = [
    (HERO, "hero.html"),
    (TEXT, "text.html"),
    (GRID, "grid.html"),
]


def register_builtin_blocks(registry: BlockTypeRegistry) -> BlockTypeRegistry:
    for descriptor, template_name in BUILTIN_BLOCKS:
        registry.register_type(descriptor, TemplateBlockRenderer(template_name))
    return registry
