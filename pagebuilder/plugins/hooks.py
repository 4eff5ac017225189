"""
Plugin Hook Constants

Names of the optional capability hooks a plugin can provide.
Hook names follow the `category.action` convention.
"""

from __future__ import annotations

# ── Preview ───────────────────────────────────────────────────────────────────
HOOK_PREVIEW_FRAGMENT = "preview.fragment"

# ── Editor ────────────────────────────────────────────────────────────────────
HOOK_SNIPPETS = "editor.snippets"

# ── Lifecycle ─────────────────────────────────────────────────────────────────
HOOK_ON_READY = "lifecycle.ready"

# ── Master list ───────────────────────────────────────────────────────────────
ALL_HOOKS: list[str] = [
    HOOK_PREVIEW_FRAGMENT,
    HOOK_SNIPPETS,
    HOOK_ON_READY,
]
