"""Unit tests for the one-shot sync command."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from syncdocs import cli
from syncdocs.registry.service import RepositoryRegistryService
from syncdocs.registry.storage import init_registry_storage
from tests.unit.sync_test_helpers import FakeTreeClient

if typ.TYPE_CHECKING:
    from pathlib import Path


async def _register(database_url: str, *urls: str) -> list[int]:
    engine = create_async_engine(database_url)
    try:
        await init_registry_storage(engine)
        service = RepositoryRegistryService(
            async_sessionmaker(engine, expire_on_commit=False), FakeTreeClient()
        )
        return [
            (await service.create_repository(url, "docs", "md", "main")).id
            for url in urls
        ]
    finally:
        await engine.dispose()


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Return a sqlite URL unique to the test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch) -> FakeTreeClient:
    """Swap in a fake GitHub client and silence logging setup."""
    client = FakeTreeClient({"docs/a.md": "A"})
    monkeypatch.setattr(cli, "GitHubContentsClient", lambda _config: client)
    monkeypatch.setattr(cli, "configure_logging", lambda _level: ("INFO", False))
    monkeypatch.delenv("SYNCDOCS_SYNC_CONCURRENCY", raising=False)
    monkeypatch.delenv("SYNCDOCS_FILE_TIMEOUT_SECONDS", raising=False)
    return client


def test_single_repository_success(
    database_url: str,
    fake_client: FakeTreeClient,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Syncing one repository exits 0 and reports the file count."""
    [repository_id] = asyncio.run(_register(database_url, "https://github.com/o/a"))

    code = cli.main(
        ["--database-url", database_url, "--repository-id", str(repository_id)]
    )

    assert code == 0
    assert "synced (1 files" in capsys.readouterr().out
    assert fake_client.closed


def test_fleet_pass_reports_failures(
    database_url: str,
    fake_client: FakeTreeClient,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """A pass with failed runs exits 1."""
    asyncio.run(
        _register(database_url, "https://github.com/o/a", "https://github.com/o/b")
    )
    fake_client.fetch_errors["docs/a.md"] = TimeoutError()

    code = cli.main(["--database-url", database_url])

    assert code == 1
    assert "2 failed" in capsys.readouterr().out


def test_unknown_repository_exits_1(
    database_url: str,
    fake_client: FakeTreeClient,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """A missing repository id is reported, not raised."""
    del fake_client

    code = cli.main(
        ["--database-url", database_url, "--init-db", "--repository-id", "99"]
    )

    assert code == 1
    assert "not found" in capsys.readouterr().out


def test_missing_database_url_is_a_usage_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Without a URL the parser exits with status 2."""
    monkeypatch.delenv("SYNCDOCS_DATABASE_URL", raising=False)

    with pytest.raises(SystemExit) as excinfo:
        cli.main([])

    assert excinfo.value.code == 2  # noqa: PLR2004
