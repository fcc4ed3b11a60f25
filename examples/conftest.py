"""Shared fixtures for the taltree examples.

Every example directory holds an ``app.py`` that builds a module-level
``engine`` plus a few render functions, and a ``test_app.py`` beside it.
"""

import runpy
from pathlib import Path
from types import SimpleNamespace

import pytest


@pytest.fixture
def example(request: pytest.FixtureRequest) -> SimpleNamespace:
    """The sibling ``app.py``, executed afresh for each test.

    Re-running the file gives every test its own engine, so modifiers a
    test registers never leak into the next one.
    """
    app_path = Path(request.path).with_name("app.py")
    namespace = runpy.run_path(str(app_path), run_name=f"example_{app_path.parent.name}")
    return SimpleNamespace(**namespace)
