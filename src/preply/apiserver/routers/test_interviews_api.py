import pytest

from preply.apiserver import constants
from preply.apiserver.routers.auth.identity_verifier import TESTING_EMAIL, TESTING_TOKEN, TESTING_USER_ID


@pytest.fixture(name="signed_in_client")
def fixture_signed_in_client(client):
    client.post("/v1/auth/sign-up", json={"id_token": TESTING_TOKEN, "name": "Testing", "email": TESTING_EMAIL})
    response = client.post("/v1/auth/sign-in", json={"id_token": TESTING_TOKEN, "email": TESTING_EMAIL})
    assert response.status_code == 200, response.content
    return client


def seed_interviews(store, interviews: dict[str, dict]):
    store.collections.setdefault(constants.INTERVIEWS_COLLECTION, {}).update(interviews)


def test_feed_requires_session(client):
    response = client.get("/v1/interviews/feed")
    assert response.status_code == 401


def test_feed_empty(signed_in_client):
    response = signed_in_client.get("/v1/interviews/feed")
    assert response.status_code == 200, response.content
    body = response.json()
    assert body["user"]["id"] == TESTING_USER_ID
    assert body["owned"] == []
    assert body["discoverable"] == []


def test_feed(signed_in_client, store):
    seed_interviews(
        store,
        {
            "mine-old": {"userId": TESTING_USER_ID, "finalized": True, "createdAt": "2024-01-01T00:00:00.000Z"},
            "mine-new": {
                "userId": TESTING_USER_ID,
                "finalized": False,
                "createdAt": "2024-02-01T00:00:00.000Z",
                "role": "Frontend",
            },
            "theirs-draft": {"userId": "someone", "finalized": False, "createdAt": "2024-03-01T00:00:00.000Z"},
            "theirs-1": {"userId": "someone", "finalized": True, "createdAt": "2024-04-01T00:00:00.000Z"},
            "theirs-2": {"userId": "another", "finalized": True, "createdAt": "2024-05-01T00:00:00.000Z"},
        },
    )

    body = signed_in_client.get("/v1/interviews/feed").json()
    assert [i["id"] for i in body["owned"]] == ["mine-new", "mine-old"]
    assert body["owned"][0]["role"] == "Frontend"
    assert body["owned"][0]["userId"] == TESTING_USER_ID
    assert body["owned"][1]["createdAt"] == "2024-01-01T00:00:00.000Z"
    assert [i["id"] for i in body["discoverable"]] == ["theirs-2", "theirs-1"]

    body = signed_in_client.get("/v1/interviews/feed", params={"limit": 1}).json()
    assert [i["id"] for i in body["discoverable"]] == ["theirs-2"]


def test_feed_malformed_interview(signed_in_client, store):
    seed_interviews(store, {"broken": {"userId": TESTING_USER_ID, "createdAt": "2024-01-01T00:00:00.000Z"}})
    body = signed_in_client.get("/v1/interviews/feed").json()
    assert body["owned"] is None
    assert body["discoverable"] == []


@pytest.mark.parametrize("limit", [0, -1, 101])
def test_feed_rejects_bad_limit(signed_in_client, limit):
    response = signed_in_client.get("/v1/interviews/feed", params={"limit": limit})
    assert response.status_code == 422
