"""Match endpoints: scheduling, results and error envelopes."""
import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def tournament_id(client: TestClient) -> int:
    response = client.post("/api/tournaments", json={"sport": "volleyball"})
    return response.json()["data"]["id"]


@pytest.fixture
def match_id(client: TestClient, tournament_id: int) -> int:
    response = client.post(
        "/api/matches",
        json={
            "tournament_id": tournament_id,
            "round": "semifinal",
            "team1": "Tigers",
            "team2": "Lions",
            "scheduled_at": "2026-06-01T09:00:00",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["id"]


def test_created_match_is_pending(client: TestClient, match_id: int):
    body = client.get(f"/api/matches/{match_id}").json()

    assert body["success"] is True
    assert body["data"]["status"] == "pending"
    assert body["data"]["winner"] is None


def test_submit_result(client: TestClient, match_id: int):
    response = client.put(f"/api/matches/{match_id}/result", json={"score1": 3, "score2": 1, "winner": "Tigers"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "completed"
    assert data["winner"] == "Tigers"
    assert data["completed_at"] is not None


def test_second_result_is_conflict(client: TestClient, match_id: int):
    client.put(f"/api/matches/{match_id}/result", json={"score1": 3, "score2": 1, "winner": "Tigers"})

    response = client.put(f"/api/matches/{match_id}/result", json={"score1": 0, "score2": 3, "winner": "Lions"})

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "BUSINESS_MATCH_ALREADY_COMPLETED"
    assert client.get(f"/api/matches/{match_id}").json()["data"]["winner"] == "Tigers"


@pytest.mark.parametrize(
    "payload",
    [
        {"score1": 2, "score2": 2, "winner": "Tigers"},
        {"score1": 1, "score2": 3, "winner": "Tigers"},
        {"score1": -1, "score2": 3, "winner": "Lions"},
        {"score1": 3, "score2": 1, "winner": "Bears"},
    ],
)
def test_inconsistent_result_rejected(client: TestClient, match_id: int, payload: dict):
    response = client.put(f"/api/matches/{match_id}/result", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == "BUSINESS_INVALID_MATCH_RESULT"
    assert client.get(f"/api/matches/{match_id}").json()["data"]["status"] == "pending"


def test_result_for_missing_match(client: TestClient, tournament_id: int):
    response = client.put("/api/matches/404/result", json={"score1": 3, "score2": 1, "winner": "Tigers"})

    assert response.status_code == 404
    assert response.json()["error"] == "RESOURCE_NOT_FOUND"


def test_match_for_missing_tournament(client: TestClient, tournament_id: int):
    response = client.post(
        "/api/matches",
        json={
            "tournament_id": tournament_id + 100,
            "round": "final",
            "team1": "Tigers",
            "team2": "Lions",
            "scheduled_at": "2026-06-01T09:00:00",
        },
    )

    assert response.status_code == 400
    assert response.json()["error"] == "CONSTRAINT_VIOLATION"


def test_invalid_round_rejected(client: TestClient, tournament_id: int):
    response = client.post(
        "/api/matches",
        json={
            "tournament_id": tournament_id,
            "round": "round_of_64",
            "team1": "Tigers",
            "team2": "Lions",
            "scheduled_at": "2026-06-01T09:00:00",
        },
    )

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_status_changes(client: TestClient, match_id: int):
    started = client.patch(f"/api/matches/{match_id}/status", json={"status": "in_progress"})
    assert started.status_code == 200
    assert started.json()["data"]["status"] == "in_progress"

    backwards = client.patch(f"/api/matches/{match_id}/status", json={"status": "pending"})
    assert backwards.status_code == 400


def test_status_change_after_completion_is_conflict(client: TestClient, match_id: int):
    client.put(f"/api/matches/{match_id}/result", json={"score1": 3, "score2": 1, "winner": "Tigers"})

    response = client.patch(f"/api/matches/{match_id}/status", json={"status": "cancelled"})

    assert response.status_code == 409
    assert response.json()["error"] == "BUSINESS_MATCH_ALREADY_COMPLETED"


def test_reschedule_and_delete(client: TestClient, match_id: int):
    updated = client.put(f"/api/matches/{match_id}", json={"scheduled_at": "2026-06-02T10:30:00"})
    assert updated.status_code == 200
    assert updated.json()["data"]["scheduled_at"] == "2026-06-02T10:30:00+00:00"

    assert client.delete(f"/api/matches/{match_id}").status_code == 200
    assert client.get(f"/api/matches/{match_id}").status_code == 404


def test_list_matches(client: TestClient, tournament_id: int, match_id: int):
    client.post(
        "/api/matches",
        json={
            "tournament_id": tournament_id,
            "round": "1st_round",
            "team1": "Bears",
            "team2": "Wolves",
            "scheduled_at": "2026-06-01T12:00:00",
        },
    )

    by_tournament = client.get(f"/api/matches/tournament/{tournament_id}").json()["data"]
    assert [m["round"] for m in by_tournament] == ["1st_round", "semifinal"]

    semis = client.get(f"/api/matches/tournament/{tournament_id}", params={"round": "semifinal"}).json()["data"]
    assert [m["id"] for m in semis] == [match_id]

    by_sport = client.get("/api/matches/sport/volleyball").json()["data"]
    assert len(by_sport) == 2


def test_statistics_and_next_matches(client: TestClient, tournament_id: int, match_id: int):
    client.put(f"/api/matches/{match_id}/result", json={"score1": 3, "score2": 1, "winner": "Tigers"})
    final = client.post(
        "/api/matches",
        json={
            "tournament_id": tournament_id,
            "round": "final",
            "team1": "Tigers",
            "team2": "Bears",
            "scheduled_at": "2026-06-02T09:00:00",
        },
    ).json()["data"]

    stats = client.get(f"/api/matches/tournament/{tournament_id}/statistics").json()["data"]
    assert stats["total_matches"] == 2
    assert stats["completed_matches"] == 1
    assert stats["matches_by_round"] == {"semifinal": 1, "final": 1}
    assert stats["completion_rate"] == 50.0

    upcoming = client.get(f"/api/matches/tournament/{tournament_id}/next").json()["data"]
    assert [m["id"] for m in upcoming] == [final["id"]]
