import io
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hlx.logging_config import LoggerRegistry  # noqa: E402


class FakeTerminal(io.StringIO):
    """In-memory stream that reports itself as an interactive terminal."""

    def isatty(self) -> bool:
        return True


@pytest.fixture(autouse=True)
def _no_colour_env(monkeypatch):
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("FORCE_COLOR", raising=False)


@pytest.fixture
def console():
    return io.StringIO()


@pytest.fixture
def registry(console):
    return LoggerRegistry(stream=console, colour=False)
