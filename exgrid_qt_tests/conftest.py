import os

import pytest
from PyQt5.QtWidgets import QApplication

# Ensure headless Qt on CI/CLI runs.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    """Ensure a single QApplication exists for Qt-based tests."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app
