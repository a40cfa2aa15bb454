"""Repository sync engine and its drivers.

Public API
----------
SyncEngine
    Runs the list, filter, sort, fetch, aggregate and persist pipeline for
    one repository under a single-flight guard.
FleetDriver
    Runs the engine for every tracked repository with bounded concurrency.
SyncTaskExecutor
    Owns background runs submitted by the management API.
PeriodicSyncScheduler
    Triggers the fleet driver on a fixed interval.

Example:
Sync one repository:

>>> engine = SyncEngine(store, client)
>>> outcome = await engine.run_one(7)
>>> outcome.state
<SyncState.SUCCESS: 'success'>

"""

from syncdocs.sync.aggregate import aggregate_documents, format_block
from syncdocs.sync.engine import RepositoryStore, SyncEngine, SyncEngineConfig
from syncdocs.sync.errors import SyncError, SyncInProgressError, SyncPersistenceError
from syncdocs.sync.executor import ExecutorClosedError, SyncTaskExecutor
from syncdocs.sync.filters import (
    ExtensionFilter,
    clean_extension_list,
    parse_extensions,
    path_suffix,
)
from syncdocs.sync.fleet import FleetDriver
from syncdocs.sync.models import FleetResult, SyncOutcome
from syncdocs.sync.scheduler import PeriodicSyncScheduler
from syncdocs.sync.singleflight import SingleFlightRegistry

__all__ = [
    "ExecutorClosedError",
    "ExtensionFilter",
    "FleetDriver",
    "FleetResult",
    "PeriodicSyncScheduler",
    "RepositoryStore",
    "SingleFlightRegistry",
    "SyncEngine",
    "SyncEngineConfig",
    "SyncError",
    "SyncInProgressError",
    "SyncOutcome",
    "SyncPersistenceError",
    "SyncTaskExecutor",
    "aggregate_documents",
    "clean_extension_list",
    "format_block",
    "parse_extensions",
    "path_suffix",
]
