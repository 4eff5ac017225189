"""
Pytest configuration and fixtures for page builder tests.

Every fixture builds fresh registries; nothing is shared between tests.
"""

import os
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH120

from pagebuilder.blocks.builtin import register_builtin_blocks  # noqa: E402
from pagebuilder.blocks.registry import BlockTypeRegistry  # noqa: E402
from pagebuilder.blocks.tree import BlockTree  # noqa: E402
from pagebuilder.plugins.base import PluginBase, PluginMeta  # noqa: E402
from pagebuilder.runtime import PageBuilderRuntime  # noqa: E402


class StubPlugin(PluginBase):
    """Configurable plugin used across the test suite."""

    def __init__(
        self,
        name: str,
        dependencies: list[str] | None = None,
        priority: int = 50,
        fail: bool = False,
        fragment: str | None = None,
        calls: list[str] | None = None,
    ) -> None:
        self._meta = PluginMeta(
            name=name,
            version="1.0.0",
            description=f"{name} stub",
            dependencies=list(dependencies or []),
            preview_priority=priority,
        )
        self._fail = fail
        self._fragment = fragment
        self.calls = calls if calls is not None else []
        self.init_count = 0

    @property
    def meta(self) -> PluginMeta:
        return self._meta

    async def init(self, context):
        self.init_count += 1
        self.calls.append(f"init:{self._meta.name}")
        if self._fail:
            raise RuntimeError(f"{self._meta.name} exploded")
        return {"name": self._meta.name}

    async def on_ready(self) -> None:
        self.calls.append(f"ready:{self._meta.name}")

    def supply_preview_fragment(self) -> str:
        if self._fragment is None:
            raise RuntimeError("no fragment")
        return self._fragment


@pytest.fixture
def stub_plugin():
    return StubPlugin


@pytest.fixture
def block_registry() -> BlockTypeRegistry:
    return register_builtin_blocks(BlockTypeRegistry())


@pytest.fixture
def block_tree(block_registry) -> BlockTree:
    return BlockTree(block_registry)


@pytest.fixture
def plugins_config_file(tmp_path, monkeypatch):
    """Point the plugin loader at an empty temp location (defaults apply)."""
    from pagebuilder.plugins import loader as loader_module

    path = tmp_path / "plugins_config.json"
    monkeypatch.setattr(loader_module, "_PLUGINS_CONFIG_FILE", path)
    return path


@pytest.fixture
def runtime(plugins_config_file) -> PageBuilderRuntime:
    return PageBuilderRuntime(debounce=0.01)


@pytest.fixture
def app(runtime):
    from main import create_app

    return create_app(runtime=runtime)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
