"""Tests for issue aggregate, window and private tally endpoints."""

from fastapi import status


def _vote(client, headers, issue_id: str, votes: int, private: bool = False) -> dict:
    response = client.post(
        "/api/v1/votes/",
        json={"issue_id": issue_id, "votes": votes, "private": private},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


def test_stats_default_to_zero(client) -> None:
    response = client.get("/api/v1/issues/nothing-yet/stats")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "issue_id": "nothing-yet",
        "weighted_votes": 0,
        "voter_count": 0,
        "total_credits": 0,
        "urgency_score": 0.0,
        "private_ballots": 0,
        "revealed_private_votes": None,
    }


def test_ranked_issues(client, make_headers) -> None:
    for index in range(2):
        _vote(client, make_headers(f"intense-{index}"), "bridge", 6)
    for index in range(4):
        _vote(client, make_headers(f"casual-{index}"), "bench", 3)

    response = client.get("/api/v1/issues/ranked")

    assert response.status_code == status.HTTP_200_OK
    ranked = response.json()
    assert [item["issue_id"] for item in ranked] == ["bridge", "bench"]
    assert ranked[0]["weighted_votes"] == ranked[1]["weighted_votes"] == 12
    assert ranked[0]["urgency_score"] == 6.0


def test_recompute_is_service_only(client, auth_token, service_token) -> None:
    _vote(client, auth_token, "road", 2)

    forbidden = client.post("/api/v1/issues/road/recompute", headers=auth_token)
    allowed = client.post("/api/v1/issues/road/recompute", headers=service_token)

    assert forbidden.status_code == status.HTTP_403_FORBIDDEN
    assert allowed.status_code == status.HTTP_200_OK
    assert allowed.json()["weighted_votes"] == 2


def test_close_and_window_state(client, auth_token, service_token) -> None:
    assert client.get("/api/v1/issues/road/window").json()["closed"] is False

    forbidden = client.post("/api/v1/issues/road/close", headers=auth_token)
    closed = client.post("/api/v1/issues/road/close", headers=service_token)

    assert forbidden.status_code == status.HTTP_403_FORBIDDEN
    assert closed.status_code == status.HTTP_200_OK
    assert closed.json()["closed"] is True
    assert closed.json()["closed_at"] is not None
    assert client.get("/api/v1/issues/road/window").json()["closed"] is True


def test_private_tally_lifecycle(client, make_headers, service_token, privacy) -> None:
    receipts = [
        _vote(client, make_headers("alice"), "lights", 2, private=True),
        _vote(client, make_headers("bob"), "lights", 4, private=True),
        _vote(client, make_headers("carol"), "lights", 1, private=True),
    ]

    aggregate = client.get("/api/v1/issues/lights/aggregate").json()
    assert aggregate["ballot_count"] == 3
    assert aggregate["leaves"] == [receipt["commitment_digest"] for receipt in receipts]

    early = client.post("/api/v1/issues/lights/reveal", headers=service_token)
    assert early.status_code == status.HTTP_409_CONFLICT
    assert early.json()["detail"]["code"] == "voting_open"

    client.post("/api/v1/issues/lights/close", headers=service_token)
    revealed = client.post("/api/v1/issues/lights/reveal", headers=service_token)

    assert revealed.status_code == status.HTTP_200_OK
    body = revealed.json()
    assert body["total_votes"] == 7
    assert body["voter_count"] == 3
    assert body["merkle_root"] == aggregate["merkle_root"]
    assert set(body["proof"]) == {"a", "b", "response"}


def test_private_ballot_hidden_from_stats_until_reveal(
    client, auth_token, other_auth_token, service_token, notifier
) -> None:
    events: list[dict] = []
    notifier.subscribe("votes:secret", lambda topic, payload: events.append(payload))
    _vote(client, other_auth_token, "secret", 2)
    _vote(client, auth_token, "secret", 7, private=True)

    stats = client.get("/api/v1/issues/secret/stats").json()

    assert (stats["weighted_votes"], stats["voter_count"], stats["total_credits"]) == (2, 1, 4)
    assert stats["private_ballots"] == 1
    assert stats["revealed_private_votes"] is None
    assert [event["weighted_votes"] for event in events] == [2, 2]
    assert [event["total_credits"] for event in events] == [4, 4]

    client.post("/api/v1/issues/secret/close", headers=service_token)
    client.post("/api/v1/issues/secret/reveal", headers=service_token)
    revealed = client.get("/api/v1/issues/secret/stats").json()

    assert revealed["revealed_private_votes"] == 7
    assert (revealed["weighted_votes"], revealed["voter_count"]) == (9, 2)
    assert revealed["total_credits"] == 53
    assert events[-1]["weighted_votes"] == 9


def test_reveal_is_service_only(client, auth_token) -> None:
    response = client.post("/api/v1/issues/lights/reveal", headers=auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_verify_inclusion(client, auth_token, other_auth_token) -> None:
    receipt = _vote(client, auth_token, "lights", 3, private=True)
    _vote(client, other_auth_token, "lights", 1, private=True)

    included = client.post(
        "/api/v1/issues/lights/verify-inclusion",
        json={"user_id": "alice", "commitment": receipt["commitment"]},
    )
    wrong_user = client.post(
        "/api/v1/issues/lights/verify-inclusion",
        json={"user_id": "bob", "commitment": receipt["commitment"]},
    )
    garbage = client.post(
        "/api/v1/issues/lights/verify-inclusion",
        json={"user_id": "alice", "commitment": "zz"},
    )

    assert included.status_code == status.HTTP_200_OK
    assert included.json()["included"] is True
    assert wrong_user.json()["included"] is False
    assert garbage.status_code == status.HTTP_400_BAD_REQUEST
