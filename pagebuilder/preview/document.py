"""Assemble the complete preview document around transformed content."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from pagebuilder.config import settings
from pagebuilder.plugins.manager import PreviewFragment

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "preview"

_environment = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def assemble_document(
    content: str,
    fragments: Iterable[PreviewFragment] = (),
    title: str | None = None,
    lang: str | None = None,
) -> str:
    """
    Wrap ``content`` in the base preview shell.

    Fragments are injected into the head in the order given; the caller
    passes them sorted by descending preview priority.  Content and fragment
    markup are inserted verbatim, the title is escaped.
    """
    template = _environment.get_template("document.html")
    return template.render(
        content=Markup(content),
        fragments=[{"name": fragment.name, "markup": Markup(fragment.markup)} for fragment in fragments],
        title=title or settings.preview_title,
        lang=lang or settings.preview_lang,
    )
