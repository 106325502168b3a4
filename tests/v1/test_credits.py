"""Tests for credit ledger endpoints."""

from fastapi import status


def test_get_my_balance_initializes_account(client, auth_token) -> None:
    response = client.get("/api/v1/credits/me", headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["user_id"] == "alice"
    assert body["balance"] == 100
    assert body["total_earned"] == 100
    assert body["total_spent"] == 0


def test_balance_requires_authentication(client) -> None:
    response = client.get("/api/v1/credits/me")
    assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}


def test_invalid_token_is_rejected(client) -> None:
    response = client.get("/api/v1/credits/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_users_cannot_read_each_others_ledger(client, auth_token, other_auth_token) -> None:
    client.get("/api/v1/credits/me", headers=other_auth_token)

    balance = client.get("/api/v1/credits/bob", headers=auth_token)
    history = client.get("/api/v1/credits/bob/transactions", headers=auth_token)

    assert balance.status_code == status.HTTP_403_FORBIDDEN
    assert balance.json()["detail"]["code"] == "forbidden"
    assert history.status_code == status.HTTP_403_FORBIDDEN


def test_service_can_read_any_ledger(client, auth_token, service_token) -> None:
    client.get("/api/v1/credits/me", headers=auth_token)

    response = client.get("/api/v1/credits/alice", headers=service_token)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["balance"] == 100


def test_transactions_listed_newest_first(client, auth_token, service_token) -> None:
    client.post(
        "/api/v1/votes/",
        json={"issue_id": "road", "votes": 3},
        headers=auth_token,
    )
    client.post(
        "/api/v1/credits/alice/award",
        json={"amount": 15, "description": "Verified report", "reference_id": "issue-9"},
        headers=service_token,
    )

    response = client.get("/api/v1/credits/alice/transactions", headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    entries = response.json()
    assert [(entry["amount"], entry["kind"]) for entry in entries] == [
        (15, "merit_award"),
        (-9, "vote_spend"),
        (100, "periodic_replenish"),
    ]
    assert entries[0]["reference_id"] == "issue-9"


def test_award_requires_service_identity(client, auth_token) -> None:
    response = client.post(
        "/api/v1/credits/alice/award",
        json={"amount": 50, "description": "Self-award"},
        headers=auth_token,
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_award_validation_maps_to_422(client, service_token) -> None:
    response = client.post(
        "/api/v1/credits/alice/award",
        json={"amount": -1, "description": "Negative"},
        headers=service_token,
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["detail"]["code"] == "invalid_amount"


def test_award_returns_updated_balance(client, service_token) -> None:
    response = client.post(
        "/api/v1/credits/carol/award",
        json={"amount": 25, "description": "Council grant", "kind": "administrative_grant"},
        headers=service_token,
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["balance"] == 125


def test_replenish_endpoint_is_service_only(client, auth_token, service_token) -> None:
    forbidden = client.post("/api/v1/credits/replenish", headers=auth_token)
    allowed = client.post("/api/v1/credits/replenish", headers=service_token)

    assert forbidden.status_code == status.HTTP_403_FORBIDDEN
    assert allowed.status_code == status.HTTP_200_OK
    assert allowed.json() == {"granted": 0}
