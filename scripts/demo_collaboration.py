"""Demo: one Guide/Apprentice collaboration end to end, via TestClient.

Run with:
    python scripts/demo_collaboration.py
"""

from __future__ import annotations

from datetime import date, timedelta

from fastapi.testclient import TestClient

from collab.main import app
from collab.services import token_service


def _headers(sub: str, role: str) -> dict[str, str]:
    token = token_service.create_access_token(sub=sub, roles=[role])
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    client = TestClient(app)
    apprentice = _headers("demo-apprentice", "apprentice")
    guide = _headers("demo-guide", "guide")

    # ── Step 1: apprentice opens, guide accepts ─────────────────────
    r = client.post(
        "/v1/projects", json={"title": "Weather station"}, headers=apprentice
    )
    project_id = r.json()["id"]
    print(f"1. POST /v1/projects     → {r.status_code}  {r.json()['status']}")
    r = client.post(f"/v1/projects/{project_id}/accept", headers=guide)
    print(f"   POST .../accept       → {r.status_code}  {r.json()['status']}")

    # ── Step 2: three milestones ────────────────────────────────────
    for n in (1, 2, 3):
        r = client.post(
            f"/v1/projects/{project_id}/milestones",
            json={"title": f"M{n}", "description": f"Stage {n}"},
            headers=apprentice,
        )
    milestones = [m["id"] for m in r.json()["milestones"]]
    unlocked = [m["unlocked"] for m in r.json()["milestones"]]
    print(f"2. POST .../milestones x3      → {r.status_code}  unlocked={unlocked}")

    # ── Step 3: claim out of order, then in order ───────────────────
    r = client.post(f"/v1/milestones/{milestones[1]}/claim", headers=apprentice)
    print(f"3. claim M2 first              → {r.status_code}  {r.json()['error']}")
    client.post(f"/v1/milestones/{milestones[0]}/claim", headers=apprentice)
    r = client.post(f"/v1/milestones/{milestones[0]}/approval", headers=guide)
    print(
        f"   claim + approve M1          → {r.status_code}  "
        f"completion={r.json()['milestone_completion_percentage']}%"
    )

    # ── Step 4: progress log ────────────────────────────────────────
    url = f"/v1/projects/{project_id}/progress"
    body = {"percentage": 30, "note": "Sensors wired"}
    r = client.post(url, json=body, headers=guide)
    print(f"4. progress 30%                → {r.status_code}")
    body = {"percentage": 25, "note": "Oops, went back"}
    r = client.post(url, json=body, headers=guide)
    print(f"   progress 25%                → {r.status_code}  {r.json()['error']}")

    # ── Step 5: end-date handshake ──────────────────────────────────
    proposed = (date.today() + timedelta(days=60)).isoformat()
    r = client.post(
        f"/v1/projects/{project_id}/end-date", json={"date": proposed}, headers=guide
    )
    print(f"5. propose {proposed}       → {r.status_code}")
    r = client.post(f"/v1/projects/{project_id}/end-date/confirm", headers=apprentice)
    print(
        f"   confirm                     → {r.status_code}  "
        f"expected_end_date={r.json()['expected_end_date']}"
    )

    # ── Step 6: completion guard ────────────────────────────────────
    r = client.get(f"/v1/projects/{project_id}/completion-guard", headers=guide)
    print(f"6. completion guard            → {r.status_code}  {r.json()}")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
