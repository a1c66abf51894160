"""Shared pytest fixtures for closuredeps tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from closuredeps.config.settings import DepsSettings
from closuredeps.services.graph import GraphService

BASE_JS = "var goog = goog || {};\n"

# ---------------------------------------------------------------------------
# Fixture trees
# ---------------------------------------------------------------------------

DEPENDENCIES = {
    "goog/base.js": BASE_JS,
    "lib/food.js": "goog.provide('food');\n",
    "lib/fruit.js": "goog.provide('fruit');\n\ngoog.require('food');\n",
    "lib/banana.js": "goog.provide('fruit.banana');\n\ngoog.require('fruit');\n",
    "lib/util.js": "function noop() {}\n",
}

DEPENDENCIES_MAIN = {
    "goog/base.js": BASE_JS,
    "lib/fuel.js": "goog.provide('fuel');\n",
    "lib/vehicle.js": "goog.provide('vehicle');\ngoog.require('fuel');\n",
    "lib/car.js": "goog.provide('vehicle.car');\ngoog.require('vehicle');\n",
    "lib/boat.js": "goog.provide('vehicle.boat');\ngoog.require('vehicle');\n",
    "lib/truck.js": "goog.provide('vehicle.truck');\ngoog.require('vehicle');\n",
    "main-car.js": "goog.require('vehicle.car');\n\nvar car = new vehicle.car();\n",
    "main-boat.js": "goog.require('vehicle.boat');\n\nvar boat = new vehicle.boat();\n",
}

DEPENDENCIES_EXTRA = {
    "goog/base.js": BASE_JS,
    "src/parent.js": "goog.provide('parent');\n",
    "src/child.js": "goog.provide('child');\ngoog.require('parent');\n",
    "extern/jquery.js": "var jQuery = function () {};\n",
}


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Write *files* (relative path -> source) below *root*."""
    for relative, source in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
    return root


@pytest.fixture
def write_files() -> Callable[[Path, dict[str, str]], Path]:
    return write_tree


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def deps_tree(tmp_path: Path) -> Path:
    """Library-only tree: food <- fruit <- fruit.banana."""
    return write_tree(tmp_path, DEPENDENCIES)


@pytest.fixture
def main_tree(tmp_path: Path) -> Path:
    """Vehicle library plus ``main-*.js`` entry modules."""
    return write_tree(tmp_path, DEPENDENCIES_MAIN)


@pytest.fixture
def extra_tree(tmp_path: Path) -> Path:
    """Two-module library plus an undeclared extern file."""
    return write_tree(tmp_path, DEPENDENCIES_EXTRA)


# ---------------------------------------------------------------------------
# Settings and services
# ---------------------------------------------------------------------------


def make_settings(root: Path, **sections: Any) -> DepsSettings:
    """Settings rooted at *root* with the watcher off and synchronous events."""
    sections.setdefault("watch", {"enabled": False})
    sections.setdefault("events", {"sync": True})
    return DepsSettings.from_cli(root=root, **sections)


@pytest.fixture
def settings_factory() -> Callable[..., DepsSettings]:
    return make_settings


@pytest.fixture
def service_factory() -> Iterator[Callable[..., GraphService]]:
    """Build GraphServices that are stopped when the test ends.

    Usage: ``service_factory(root, graph={"lib": [...]}, start=True)``.
    """
    services: list[GraphService] = []

    def _make(root: Path, *, start: bool = True, **sections: Any) -> GraphService:
        service = GraphService(make_settings(root, **sections))
        services.append(service)
        if start:
            service.start().result(timeout=30)
        return service

    yield _make
    for service in services:
        service.stop()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop CLOSUREDEPS_* variables leaking in from the environment."""
    for key in list(os.environ):
        if key.startswith("CLOSUREDEPS_"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Restore root logger state after each test (the CLI reconfigures it)."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    deps = logging.getLogger("closuredeps")
    deps_level = deps.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    deps.setLevel(deps_level)
