"""Unit tests for the per-repository sync engine."""

from __future__ import annotations

import asyncio
import base64

import httpx
import pytest

from syncdocs.github.client import GitHubContentsClient, GitHubContentsConfig
from syncdocs.github.errors import GitHubAPIError, GitHubNotFoundError
from syncdocs.registry.errors import RepositoryNotFoundError, RepositoryStoreError
from syncdocs.registry.models import SyncState
from syncdocs.sync import (
    SyncEngine,
    SyncEngineConfig,
    SyncInProgressError,
    SyncPersistenceError,
)
from tests.helpers.femtologging_capture import capture_femto_logs
from tests.unit.sync_test_helpers import FakeTreeClient, InMemoryStore, make_config

_PREVIOUS_DOCUMENT = "---\nFile: docs/old.md\n---\n\nold\n\n\n"


def _engine(
    store: InMemoryStore, client: FakeTreeClient, *, file_timeout_s: float = 5.0
) -> SyncEngine:
    return SyncEngine(
        store, client, config=SyncEngineConfig(file_timeout_s=file_timeout_s)
    )


def _store_with_previous_document() -> InMemoryStore:
    store = InMemoryStore(make_config(1))
    store.records[1].status = SyncState.SUCCESS
    store.records[1].document = _PREVIOUS_DOCUMENT
    return store


async def _wait_for_fetch(client: FakeTreeClient) -> None:
    for _ in range(100):
        if client.fetch_calls:
            return
        await asyncio.sleep(0)
    pytest.fail("Expected the run to reach the fetch stage")


@pytest.mark.asyncio
async def test_run_one_aggregates_matching_files_in_path_order() -> None:
    """Eligible files are fetched sorted by path and persisted as one document."""
    client = FakeTreeClient(
        {
            "docs/b.md": "# B",
            "docs/c.txt": "plain",
            "docs/a.md": "# A",
            "docs/guides/setup.MD": "setup",
        }
    )
    store = InMemoryStore(make_config(1))

    outcome = await _engine(store, client).run_one(1)

    expected = (
        "---\nFile: docs/a.md\n---\n\n# A\n\n\n"
        "---\nFile: docs/b.md\n---\n\n# B\n\n\n"
        "---\nFile: docs/guides/setup.MD\n---\n\nsetup\n\n\n"
    )
    assert outcome.succeeded, f"Expected success, got {outcome.error}"
    assert outcome.files_synced == 3  # noqa: PLR2004
    assert outcome.document == expected
    assert client.fetch_calls == ["docs/a.md", "docs/b.md", "docs/guides/setup.MD"]
    record = store.records[1]
    assert record.status is SyncState.SUCCESS
    assert record.document == expected
    assert record.error is None
    assert record.synced_at is not None, "Expected last sync time to be stamped"
    assert store.writes_for(1) == ["mark_syncing", "load_config", "mark_success"]


@pytest.mark.asyncio
async def test_run_one_lists_configured_branch_and_path() -> None:
    """The stored branch and docs path drive the listing call."""
    client = FakeTreeClient()
    store = InMemoryStore(make_config(1, branch="release", docs_path="handbook"))

    await _engine(store, client).run_one(1)

    assert client.list_calls == [("octo", "reef", "handbook", "release")]


@pytest.mark.asyncio
async def test_run_one_with_no_eligible_files_persists_empty_document() -> None:
    """A listing with nothing eligible is a success with an empty document."""
    client = FakeTreeClient({"docs/c.txt": "plain"})
    store = _store_with_previous_document()

    outcome = await _engine(store, client).run_one(1)

    assert outcome.succeeded
    assert outcome.files_synced == 0
    assert store.records[1].document == "", "Expected the document to be replaced"
    assert client.fetch_calls == []


@pytest.mark.asyncio
async def test_listing_failure_marks_failed_and_keeps_document() -> None:
    """A failed listing records the error and leaves the old document."""
    client = FakeTreeClient({"docs/a.md": "# A"})
    client.listing_error = GitHubAPIError("rate limited", status_code=403)
    store = _store_with_previous_document()

    outcome = await _engine(store, client).run_one(1)

    message = "failed to list repository contents (branch: main): rate limited"
    assert outcome.state is SyncState.FAILED
    assert outcome.error == message
    assert store.records[1].status is SyncState.FAILED
    assert store.records[1].error == message
    assert store.records[1].document == _PREVIOUS_DOCUMENT
    assert client.fetch_calls == [], "Expected no fetches after a listing failure"


@pytest.mark.asyncio
async def test_first_fetch_failure_aborts_the_run() -> None:
    """Files after the first failed fetch are not requested."""
    client = FakeTreeClient({"docs/a.md": "A", "docs/b.md": "B", "docs/c.md": "C"})
    client.fetch_errors["docs/b.md"] = GitHubNotFoundError("octo", "reef", "docs/b.md")
    store = _store_with_previous_document()

    outcome = await _engine(store, client).run_one(1)

    assert outcome.state is SyncState.FAILED
    assert outcome.error == (
        "failed to get content for file 'docs/b.md' (branch: main): "
        "path not found in octo/reef: docs/b.md"
    )
    assert client.fetch_calls == ["docs/a.md", "docs/b.md"]
    assert store.records[1].document == _PREVIOUS_DOCUMENT, (
        "Expected a failed run to keep the previous document"
    )
    assert "mark_success" not in store.writes_for(1)


@pytest.mark.asyncio
async def test_slow_fetch_times_out() -> None:
    """A fetch exceeding the per-file timeout fails the run."""
    client = FakeTreeClient({"docs/a.md": "A"})
    client.fetch_delays["docs/a.md"] = 5.0
    store = InMemoryStore(make_config(1))

    outcome = await _engine(store, client, file_timeout_s=0.05).run_one(1)

    assert outcome.state is SyncState.FAILED
    assert outcome.error == (
        "failed to get content for file 'docs/a.md' (branch: main): "
        "timed out after 0.05s"
    )


@pytest.mark.asyncio
async def test_concurrent_run_for_same_repository_is_rejected() -> None:
    """A second run while one is active raises without touching the store."""
    client = FakeTreeClient({"docs/a.md": "A"})
    client.fetch_gate = asyncio.Event()
    store = InMemoryStore(make_config(1))
    engine = _engine(store, client)

    first = asyncio.create_task(engine.run_one(1))
    await _wait_for_fetch(client)

    assert engine.is_syncing(1)
    with pytest.raises(SyncInProgressError):
        await engine.run_one(1)
    assert store.writes_for(1).count("mark_syncing") == 1, (
        "Expected the rejected run to leave the store alone"
    )

    client.fetch_gate.set()
    outcome = await first

    assert outcome.succeeded
    assert not engine.is_syncing(1), "Expected the slot to be released"


@pytest.mark.asyncio
async def test_runs_for_different_repositories_proceed_together() -> None:
    """Single-flight is per repository id."""
    client = FakeTreeClient({"docs/a.md": "A"})
    store = InMemoryStore(make_config(1), make_config(2, name="kelp"))
    engine = _engine(store, client)

    first, second = await asyncio.gather(engine.run_one(1), engine.run_one(2))

    assert first.succeeded
    assert second.succeeded


@pytest.mark.asyncio
async def test_missing_repository_raises_not_found() -> None:
    """A deleted record surfaces as RepositoryNotFoundError."""
    engine = _engine(InMemoryStore(), FakeTreeClient())

    with pytest.raises(RepositoryNotFoundError):
        await engine.run_one(99)

    assert not engine.is_syncing(99)


@pytest.mark.asyncio
async def test_mark_syncing_store_error_does_not_abort() -> None:
    """Failing to mark syncing is logged and the run continues."""
    client = FakeTreeClient({"docs/a.md": "A"})
    store = InMemoryStore(make_config(1))
    store.failures["mark_syncing"] = RepositoryStoreError("mark_syncing", "locked")

    outcome = await _engine(store, client).run_one(1)

    assert outcome.succeeded
    assert store.records[1].status is SyncState.SUCCESS


@pytest.mark.asyncio
async def test_config_load_failure_marks_failed() -> None:
    """A failure loading configuration is recorded as the run's error."""
    store = InMemoryStore(make_config(1))
    store.failures["load_config"] = RepositoryStoreError("load_config", "timeout")

    outcome = await _engine(store, FakeTreeClient()).run_one(1)

    assert outcome.state is SyncState.FAILED
    assert outcome.error == (
        "failed to fetch repository details: "
        "repository store load_config failed: timeout"
    )
    assert store.records[1].status is SyncState.FAILED


@pytest.mark.asyncio
async def test_persistence_failure_raises_and_records_failure() -> None:
    """A document that cannot be stored raises SyncPersistenceError."""
    client = FakeTreeClient({"docs/a.md": "A"})
    store = _store_with_previous_document()
    store.failures["mark_success"] = RepositoryStoreError("mark_success", "disk full")
    engine = _engine(store, client)

    with pytest.raises(SyncPersistenceError, match="repository 1"):
        await engine.run_one(1)

    record = store.records[1]
    assert record.status is SyncState.FAILED, "Expected record not left syncing"
    assert record.error is not None
    assert record.error.startswith(
        "failed to persist aggregated document for repository 1"
    )
    assert record.document == _PREVIOUS_DOCUMENT, (
        "Expected the previous document to stay in place"
    )
    assert not engine.is_syncing(1)


@pytest.mark.asyncio
async def test_cancelled_run_records_failure_and_releases_slot() -> None:
    """Cancellation marks the record failed before propagating."""
    client = FakeTreeClient({"docs/a.md": "A"})
    client.fetch_gate = asyncio.Event()
    store = InMemoryStore(make_config(1))
    engine = _engine(store, client)

    task = asyncio.create_task(engine.run_one(1))
    await _wait_for_fetch(client)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert store.records[1].status is SyncState.FAILED
    assert store.records[1].error == "sync cancelled"
    assert not engine.is_syncing(1)


@pytest.mark.asyncio
async def test_unexpected_error_is_recorded_and_reraised() -> None:
    """Errors outside the expected taxonomy still leave a failed record."""
    store = InMemoryStore(make_config(1))
    store.failures["mark_syncing"] = RuntimeError("driver exploded")
    engine = _engine(store, FakeTreeClient())

    with pytest.raises(RuntimeError, match="driver exploded"):
        await engine.run_one(1)

    assert store.records[1].status is SyncState.FAILED
    assert store.records[1].error == "unexpected sync error: driver exploded"


@pytest.mark.asyncio
async def test_rerun_after_failure_recovers() -> None:
    """A later successful run clears the previous error."""
    client = FakeTreeClient({"docs/a.md": "A"})
    client.listing_error = GitHubAPIError("unavailable", status_code=503)
    store = InMemoryStore(make_config(1))
    engine = _engine(store, client)

    failed = await engine.run_one(1)
    client.listing_error = None
    recovered = await engine.run_one(1)

    assert failed.state is SyncState.FAILED
    assert recovered.succeeded
    assert store.records[1].error is None


@pytest.mark.asyncio
async def test_completed_run_emits_event() -> None:
    """A successful run logs a completion event with its file count."""
    client = FakeTreeClient({"docs/a.md": "A", "docs/b.md": "B"})
    store = InMemoryStore(make_config(1))

    with capture_femto_logs("syncdocs.sync.observability") as capture:
        await _engine(store, client).run_one(1)
        record = capture.wait_for(
            lambda rec: "[sync.run.completed]" in rec.message
        )

    assert record.level == "INFO"
    assert "repository_id=1" in record.message
    assert "files_synced=2" in record.message


@pytest.mark.asyncio
async def test_rerun_with_reordered_listing_gives_identical_document() -> None:
    """The document depends on the file set, not the host's listing order."""
    files = {
        "docs/b.md": "# B\n",
        "docs/a.md": "# A",
        "docs/c.txt": "skipped",
        "docs/guides/z.md": "zeta",
        "docs/Guides/upper.md": "upper",
    }
    forward = FakeTreeClient(files)
    backward = FakeTreeClient(dict(reversed(list(files.items()))))
    store = InMemoryStore(make_config(1))
    engine = _engine(store, forward)

    first = await engine.run_one(1)
    second = await _engine(store, backward).run_one(1)
    third = await engine.run_one(1)

    assert first.succeeded, f"Expected success, got {first.error}"
    assert second.document == first.document, (
        "Expected listing order not to change the document"
    )
    assert third.document.encode() == first.document.encode(), (
        "Expected a rerun to be byte-identical"
    )
    assert backward.fetch_calls == forward.fetch_calls[:4], (
        "Expected the same fetch order for both listings"
    )


def _encoded_file(path: str, text: str) -> dict[str, str]:
    return {
        "type": "file",
        "path": path,
        "sha": f"sha-{path}",
        "encoding": "base64",
        "content": base64.b64encode(text.encode()).decode(),
    }


@pytest.mark.asyncio
async def test_missing_nested_directory_still_syncs_reachable_files() -> None:
    """A subdirectory that 404s mid-walk is skipped and the run succeeds."""
    routes: dict[str, object] = {
        "/repos/octo/reef/contents/docs": [
            {"type": "dir", "path": "docs/gone", "sha": "sha-gone"},
            {"type": "dir", "path": "docs/guides", "sha": "sha-guides"},
            _encoded_file("docs/index.md", "index"),
        ],
        "/repos/octo/reef/contents/docs/guides": [
            _encoded_file("docs/guides/setup.md", "setup"),
        ],
        "/repos/octo/reef/contents/docs/index.md": _encoded_file(
            "docs/index.md", "index"
        ),
        "/repos/octo/reef/contents/docs/guides/setup.md": _encoded_file(
            "docs/guides/setup.md", "setup"
        ),
    }

    def _handler(request: httpx.Request) -> httpx.Response:
        if request.url.path not in routes:
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(200, json=routes[request.url.path])

    client = GitHubContentsClient(
        GitHubContentsConfig(token="test-token", api_url="https://api.test"),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(_handler)),
    )
    store = InMemoryStore(make_config(1))

    try:
        with capture_femto_logs("syncdocs.github.client") as capture:
            outcome = await _engine(store, client).run_one(1)
            warning = capture.wait_for(
                lambda rec: "[github.contents.path_missing]" in rec.message
            )
    finally:
        await client.aclose()

    assert outcome.succeeded, f"Expected success, got {outcome.error}"
    assert outcome.document == (
        "---\nFile: docs/guides/setup.md\n---\n\nsetup\n\n\n"
        "---\nFile: docs/index.md\n---\n\nindex\n\n\n"
    )
    assert store.records[1].status is SyncState.SUCCESS
    assert warning.is_warning, f"Expected a warning, got {warning.level}"
    assert "'docs/gone'" in warning.message
