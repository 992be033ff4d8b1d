"""Shared test fixtures for the topickb test suite.

Design:
- repo / hierarchy / kb: in-memory stores, fresh per test
- tmp_store: isolated JSON store root via TOPICKB_STORE_ROOT
- cli_invoke: CliRunner bound to tmp_store
- Async tests use pytest-asyncio (@pytest.mark.asyncio)
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Generator

import pytest
from click.testing import CliRunner

from topickb.cli import cli
from topickb.core import KnowledgeBase
from topickb.hierarchy import TopicHierarchy
from topickb.models import Topic
from topickb.store import MemoryStore
from topickb.topics import TopicRepository


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def reset_package_logger() -> Generator[None, None, None]:
    """Drop handlers the CLI attached so they don't outlive CliRunner's streams."""
    yield
    logger = logging.getLogger("topickb")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def repo() -> TopicRepository:
    return TopicRepository(MemoryStore("topics"), MemoryStore("topic_versions"))


@pytest.fixture
def hierarchy(repo: TopicRepository) -> TopicHierarchy:
    return TopicHierarchy(repo)


@pytest.fixture
def kb() -> KnowledgeBase:
    return KnowledgeBase.open()


@pytest.fixture
def tmp_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point TOPICKB_STORE_ROOT at an empty directory under tmp_path."""
    store_root = tmp_path / "store"
    store_root.mkdir()
    monkeypatch.setenv("TOPICKB_STORE_ROOT", str(store_root))
    return store_root


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture
def cli_invoke(runner: CliRunner, tmp_store: Path):
    """Helper for invoking the CLI against tmp_store.

    Usage:
        def test_add(cli_invoke):
            result = cli_invoke(["add", "Root"])
            assert result.exit_code == 0
    """

    def _invoke(args: list[str], catch_exceptions: bool = False):
        return runner.invoke(
            cli,
            args,
            catch_exceptions=catch_exceptions,
            env={"TOPICKB_STORE_ROOT": str(tmp_store)},
        )

    return _invoke


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions (for test code, not fixtures)
# ─────────────────────────────────────────────────────────────────────────────


def make_topic(topic_id: str, name: str | None = None, parent: str | None = None) -> Topic:
    """Build a Topic value directly, without a repository.

    Usage in tests:
        from conftest import make_topic
        root = make_topic("a", "Root")
    """
    now = datetime(2024, 1, 15, tzinfo=UTC)
    return Topic(
        id=topic_id,
        name=name or topic_id,
        content=f"content of {name or topic_id}",
        version=1,
        parent_topic_id=parent,
        created_at=now,
        updated_at=now,
    )
