"""Unit tests for basic auth and lifespan middleware."""

from __future__ import annotations

import base64
from unittest import mock

import falcon
import falcon.asgi
import falcon.testing
import pytest

from syncdocs.api.app import create_app
from syncdocs.api.health.resources import ReadinessState, ReadyResource
from syncdocs.api.middleware import LifespanManager, LifespanResources
from syncdocs.config import AuthConfig
from tests.unit.api_test_helpers import make_dependencies


def _basic(username: str, password: str) -> dict[str, str]:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def auth_client() -> falcon.testing.TestClient:
    """Return a client for an app protected by admin:s3cret."""
    deps = make_dependencies(auth=AuthConfig(username="admin", password="s3cret"))
    return falcon.testing.TestClient(create_app(deps))


class TestBasicAuth:
    """BasicAuthMiddleware on /api routes."""

    def test_valid_credentials_pass(
        self, auth_client: falcon.testing.TestClient
    ) -> None:
        """Matching credentials reach the resource."""
        result = auth_client.simulate_get(
            "/api/repositories", headers=_basic("admin", "s3cret")
        )

        assert result.status == falcon.HTTP_200

    @pytest.mark.parametrize(
        "headers",
        [
            {},
            _basic("admin", "wrong"),
            _basic("root", "s3cret"),
            {"Authorization": "Bearer abc"},
            {"Authorization": "Basic !!!not-base64"},
            {"Authorization": f"Basic {base64.b64encode(b'nocolon').decode()}"},
        ],
    )
    def test_missing_or_wrong_credentials_rejected(
        self, auth_client: falcon.testing.TestClient, headers: dict[str, str]
    ) -> None:
        """Anything but the configured pair gets 401 with a challenge."""
        result = auth_client.simulate_get("/api/repositories", headers=headers)

        assert result.status == falcon.HTTP_401
        assert result.headers["www-authenticate"] == 'Basic realm="syncdocs"'

    def test_password_may_contain_colons(self) -> None:
        """Only the first colon separates user from password."""
        deps = make_dependencies(auth=AuthConfig(username="admin", password="a:b"))
        client = falcon.testing.TestClient(create_app(deps))

        result = client.simulate_get(
            "/api/repositories", headers=_basic("admin", "a:b")
        )

        assert result.status == falcon.HTTP_200

    @pytest.mark.parametrize("path", ["/health", "/ready"])
    def test_probes_stay_open(
        self, auth_client: falcon.testing.TestClient, path: str
    ) -> None:
        """Health probes never require credentials."""
        assert auth_client.simulate_get(path).status == falcon.HTTP_200


def _resources(
    *, scheduler_stops_cleanly: bool = True
) -> tuple[LifespanResources, dict[str, mock.MagicMock]]:
    db_engine = mock.MagicMock()
    db_engine.dispose = mock.AsyncMock()
    executor = mock.MagicMock()
    executor.aclose = mock.AsyncMock()
    github_client = mock.MagicMock()
    github_client.aclose = mock.AsyncMock()
    scheduler = mock.MagicMock()
    scheduler.stop = mock.AsyncMock(return_value=scheduler_stops_cleanly)
    resources = LifespanResources(
        db_engine=db_engine,
        executor=executor,
        github_client=github_client,
        scheduler=scheduler,
        readiness=ReadinessState(ready=False),
    )
    return resources, {
        "db_engine": db_engine,
        "executor": executor,
        "github_client": github_client,
        "scheduler": scheduler,
    }


class TestLifespanManager:
    """Startup and shutdown hooks."""

    @pytest.mark.asyncio
    async def test_startup_creates_schema_and_starts_scheduler(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Startup initialises storage, starts the scheduler and flips ready."""
        init_storage = mock.AsyncMock()
        monkeypatch.setattr("syncdocs.api.middleware.init_registry_storage", init_storage)
        resources, mocks = _resources()

        await LifespanManager(resources).process_startup({}, {})

        init_storage.assert_awaited_once_with(mocks["db_engine"])
        mocks["scheduler"].start.assert_called_once_with()
        assert resources.readiness is not None
        assert resources.readiness.ready, "Expected app to report ready"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stops_cleanly", [True, False])
    async def test_shutdown_releases_everything(self, *, stops_cleanly: bool) -> None:
        """Shutdown stops the scheduler and closes every resource in order."""
        resources, mocks = _resources(scheduler_stops_cleanly=stops_cleanly)
        assert resources.readiness is not None
        resources.readiness.ready = True
        order = mock.MagicMock()
        order.attach_mock(mocks["scheduler"].stop, "scheduler_stop")
        order.attach_mock(mocks["executor"].aclose, "executor_aclose")
        order.attach_mock(mocks["github_client"].aclose, "client_aclose")
        order.attach_mock(mocks["db_engine"].dispose, "engine_dispose")

        await LifespanManager(resources).process_shutdown({}, {})

        assert not resources.readiness.ready
        assert [call[0] for call in order.mock_calls] == [
            "scheduler_stop",
            "executor_aclose",
            "client_aclose",
            "engine_dispose",
        ], "Expected scheduler stop before draining and closing"

    def test_ready_reports_starting_until_startup(self) -> None:
        """The readiness probe returns 503 while the flag is unset."""
        app = falcon.asgi.App()
        app.add_route("/ready", ReadyResource(ReadinessState(ready=False)))
        client = falcon.testing.TestClient(app)

        result = client.simulate_get("/ready")

        assert result.status == falcon.HTTP_503
        assert result.json == {"status": "starting"}
