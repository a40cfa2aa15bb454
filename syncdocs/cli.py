"""One-shot sync of a single repository or every tracked repository."""

from __future__ import annotations

import argparse
import asyncio
import os

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from syncdocs.config import SyncConfig
from syncdocs.github.client import GitHubContentsClient, GitHubContentsConfig
from syncdocs.logging import configure_logging
from syncdocs.registry.errors import RepositoryNotFoundError
from syncdocs.registry.storage import init_registry_storage
from syncdocs.registry.store import SQLAlchemyRepositoryStore
from syncdocs.sync.engine import SyncEngine, SyncEngineConfig
from syncdocs.sync.errors import SyncError
from syncdocs.sync.fleet import FleetDriver


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database-url",
        default=os.environ.get("SYNCDOCS_DATABASE_URL", ""),
        help="SQLAlchemy async URL (default: $SYNCDOCS_DATABASE_URL)",
    )
    parser.add_argument(
        "--repository-id",
        type=int,
        default=None,
        help="Sync only this repository; all repositories when omitted",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create the repositories table before syncing",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("SYNCDOCS_LOG_LEVEL", "INFO"),
        help="Log level (default: $SYNCDOCS_LOG_LEVEL or INFO)",
    )
    return parser


async def _run(args: argparse.Namespace) -> int:
    sync_config = SyncConfig.from_env()
    db_engine = create_async_engine(args.database_url)
    store = SQLAlchemyRepositoryStore(
        async_sessionmaker(db_engine, expire_on_commit=False)
    )
    client = GitHubContentsClient(GitHubContentsConfig.from_env())
    try:
        if args.init_db:
            await init_registry_storage(db_engine)
        engine = SyncEngine(
            store,
            client,
            config=SyncEngineConfig(file_timeout_s=sync_config.file_timeout_s),
        )
        if args.repository_id is None:
            result = await FleetDriver(
                engine, store, concurrency=sync_config.concurrency
            ).run_all()
            print(
                f"synced {result.dispatched} repositories: "
                f"{result.succeeded} succeeded, {result.failed} failed, "
                f"{result.skipped} skipped, {result.errored} errored"
            )
            return 0 if result.failed == 0 and result.errored == 0 else 1

        try:
            outcome = await engine.run_one(args.repository_id)
        except (RepositoryNotFoundError, SyncError) as exc:
            print(f"repository {args.repository_id}: {exc}")
            return 1
        if outcome.error is not None:
            print(f"repository {args.repository_id} failed: {outcome.error}")
            return 1
        print(
            f"repository {args.repository_id} synced "
            f"({outcome.files_synced} files, {len(outcome.document)} characters)"
        )
        return 0
    finally:
        await client.aclose()
        await db_engine.dispose()


def main(argv: list[str] | None = None) -> int:
    """Run a sync pass from the command line.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 when every requested run succeeded, 1 otherwise, 2 for
        usage errors.

    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.database_url.strip():
        parser.error("--database-url or SYNCDOCS_DATABASE_URL is required")
    configure_logging(args.log_level)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
