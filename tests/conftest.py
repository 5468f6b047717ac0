"""Shared test fixtures for shellcred.

Provides isolated config directories, a fake home and root directory for
discovery, a controllable clock, a provisioning cache on disk, and helpers
for running CLI commands. Fixtures are discovered by pytest automatically.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator

import pytest

from shellcred.cache import ProvisionCache
from shellcred.importer import ImportInput
from shellcred.output import reset_output

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(*parts: str) -> str:
    return FIXTURES_DIR.joinpath(*parts).read_text(encoding="utf-8")


@pytest.fixture
def fixture_text() -> Callable[..., str]:
    """Read a file from tests/fixtures, e.g. ``fixture_text("aws", "credentials")``."""
    return load_fixture


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> Iterator[None]:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation. The same
    goes for the log handler installed by the root callback.
    """
    yield
    reset_output()
    logger = logging.getLogger("shellcred")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every XDG directory into tmp_path and clear SHELLCRED_* overrides."""
    monkeypatch.setattr("shellcred.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["SHELLCRED_CACHE_DIR", "SHELLCRED_TTL_SECONDS", "SHELLCRED_TIMEOUT"]:
        monkeypatch.delenv(var, raising=False)
    return tmp_path


# ---------------------------------------------------------------------------
# Discovery sandbox
# ---------------------------------------------------------------------------


class Sandbox:
    """A fake home and root directory plus an environment, for ImportInput."""

    def __init__(self, base: Path) -> None:
        self.home = base / "home"
        self.root = base / "root"
        self.home.mkdir(parents=True)
        self.root.mkdir(parents=True)
        self.env: dict[str, str] = {}

    def write(self, path: str, content: str) -> Path:
        """Write *content* at *path*: ``~/...`` under home, anything else under root."""
        if path.startswith("~"):
            target = self.home / path[1:].lstrip("/")
        else:
            target = self.root / path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    def input(self) -> ImportInput:
        return ImportInput(env=dict(self.env), home_dir=self.home, root_dir=self.root)


@pytest.fixture
def sandbox(tmp_path: Path) -> Sandbox:
    return Sandbox(tmp_path / "sandbox")


# ---------------------------------------------------------------------------
# Time and randomness
# ---------------------------------------------------------------------------


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


# ---------------------------------------------------------------------------
# Provisioning cache
# ---------------------------------------------------------------------------


@pytest.fixture
def provision_cache(tmp_path: Path, clock: FakeClock) -> Iterator[ProvisionCache]:
    cache = ProvisionCache(tmp_path / "pcache", clock=clock)
    yield cache
    cache.close()


@pytest.fixture
def make_cache(tmp_path: Path) -> Iterator[Callable[..., ProvisionCache]]:
    """Open additional caches over the same directory (e.g. a second process)."""
    opened: list[ProvisionCache] = []

    def _open(**kwargs) -> ProvisionCache:
        cache = ProvisionCache(tmp_path / "pcache", **kwargs)
        opened.append(cache)
        return cache

    yield _open
    for cache in opened:
        cache.close()


# ---------------------------------------------------------------------------
# CLI runner
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()
