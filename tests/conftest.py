from __future__ import annotations

import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from collab.api.dependencies import controller, project_repo
from collab.core.clock import FixedClock
from collab.main import app
from collab.services import token_service

# Ensure repo root is on sys.path so `import collab` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# End dates are checked against this instant; proposals in tests must
# fall after 2025-03-01.
NOW = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)

GUIDE_ID = "guide-gail"
APPRENTICE_ID = "apprentice-abe"


@pytest.fixture(autouse=True)
def reset_projects() -> None:
    """Clear the in-memory project store between tests."""
    project_repo._store.clear()


@pytest.fixture(autouse=True)
def clock() -> FixedClock:
    """Pin the shared controller to a fixed instant."""
    fixed = FixedClock(NOW)
    controller.clock = fixed
    return fixed


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def guide_token() -> str:
    return mint_token(username=GUIDE_ID, roles=["guide"])


@pytest.fixture
def apprentice_token() -> str:
    return mint_token(username=APPRENTICE_ID, roles=["apprentice"])


@pytest.fixture
def outsider_token() -> str:
    """A guide who is not assigned to any project in the test."""
    return mint_token(username="guide-other", roles=["guide"])


# ---------------------------------------------------------------------------
# Project test helpers
# ---------------------------------------------------------------------------


def start_project(
    client: TestClient,
    apprentice_token: str,
    guide_token: str,
    *,
    title: str = "Build a weather station",
) -> dict:
    """Open a project as the apprentice and accept it as the guide."""
    resp = client.post(
        "/v1/projects", json={"title": title}, headers=auth(apprentice_token)
    )
    assert resp.status_code == 201, resp.text
    project_id = resp.json()["id"]
    resp = client.post(f"/v1/projects/{project_id}/accept", headers=auth(guide_token))
    assert resp.status_code == 200, resp.text
    return resp.json()


def add_milestones(
    client: TestClient, apprentice_token: str, project_id: str, count: int
) -> dict:
    """Add ``count`` milestones named M1..Mn and return the final project."""
    project: dict = {}
    for n in range(1, count + 1):
        resp = client.post(
            f"/v1/projects/{project_id}/milestones",
            json={"title": f"M{n}", "description": f"Step {n} of the build"},
            headers=auth(apprentice_token),
        )
        assert resp.status_code == 201, resp.text
        project = resp.json()
    return project
