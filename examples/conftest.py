"""Fixtures for the example apps under ``examples/``.

Every example directory holds an ``app.py`` that builds a module-level
``app`` plus a ``test_app.py`` that talks to it through ``TestClient``.
Examples keep their data at module level (the task store, chat rooms, the
user table), so each test gets a freshly executed copy of ``app.py``.
"""

import importlib.util
from pathlib import Path
from types import ModuleType

import pytest

from smallapi import App

EXAMPLES = Path(__file__).parent


def load_example(directory: Path) -> ModuleType:
    """Execute ``directory/app.py`` as a new module and return it."""
    source = directory / "app.py"
    if not source.is_file():
        pytest.fail(f"{directory.relative_to(EXAMPLES)} has no app.py")
    spec = importlib.util.spec_from_file_location(f"smallapi_example_{directory.name}", source)
    if spec is None or spec.loader is None:
        pytest.fail(f"cannot import {source}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def example_module(request: pytest.FixtureRequest) -> ModuleType:
    """The ``app.py`` module next to the requesting test file."""
    return load_example(Path(request.path).parent)


@pytest.fixture
def example_app(example_module: ModuleType) -> App:
    app = getattr(example_module, "app", None)
    if not isinstance(app, App):
        pytest.fail(f"{example_module.__file__} does not define an App named 'app'")
    return app
