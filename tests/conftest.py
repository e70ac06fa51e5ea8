"""Shared test fixtures for the memory_kb test suite.

Design:
- tmp_home: Isolated knowledge base directory (MEMORY_KB_HOME points at it)
- store / entry_index / kb: Real file store and Whoosh index under tmp_home
- runner: CliRunner for command tests
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Generator

import pytest
from click.testing import CliRunner

from memory_kb.core import KnowledgeBase
from memory_kb.indexer.whoosh_index import EntryIndex
from memory_kb.models import Entry, EntryType
from memory_kb.storage import FileStore


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def reset_package_logger() -> Generator[None, None, None]:
    """Undo configure_logging() after each test so caplog sees package records."""
    logger = logging.getLogger("memory_kb")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    for handler in logger.handlers[:]:
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.setLevel(level)
    logger.propagate = True


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture
def tmp_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Create an isolated knowledge base home and point MEMORY_KB_HOME at it."""
    home = tmp_path / "memory"
    home.mkdir()
    monkeypatch.setenv("MEMORY_KB_HOME", str(home))
    monkeypatch.setenv("MEMORY_KB_LOG_LEVEL", "WARNING")
    yield home


@pytest.fixture
def store(tmp_home: Path) -> FileStore:
    """File store writing to tmp_home/entries."""
    return FileStore(tmp_home / "entries")


@pytest.fixture
def entry_index(tmp_home: Path, store: FileStore) -> Generator[EntryIndex, None, None]:
    """Open (and build) an empty search index under tmp_home/search."""
    ix = EntryIndex(tmp_home / "search", store).open()
    yield ix
    ix.close()


@pytest.fixture
def kb(tmp_home: Path) -> Generator[KnowledgeBase, None, None]:
    """Knowledge base service over tmp_home."""
    service = KnowledgeBase.open(tmp_home)
    yield service
    service.index.close()


# ─────────────────────────────────────────────────────────────────────────────
# Entry Helpers
# ─────────────────────────────────────────────────────────────────────────────


def make_entry(name: str, **fields) -> Entry:
    """Build an entry with a fixed creation time unless one is given."""
    fields.setdefault("created", datetime(2024, 1, 15, 12, 0, tzinfo=UTC))
    fields.setdefault("modified", fields["created"])
    return Entry(name=name, **fields)


@pytest.fixture
def timeline_entries() -> list[Entry]:
    """Six dated events from 2000 to 2008; E1 to E3 have no end date."""
    dates = [
        ("2000", ""),
        ("2000-02", ""),
        ("2001-03-01", ""),
        ("2002-03-10", "2003-01-02"),
        ("2003-03-22", "2004-02-10"),
        ("2004-01-01", "2008-01-02"),
    ]
    return [
        make_entry(f"E{i}", type=EntryType.EVENT, start=start, end=end)
        for i, (start, end) in enumerate(dates, start=1)
    ]
