import pytest


@pytest.mark.asyncio
async def test_health(api_client):
    response = await api_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(api_client):
    response = await api_client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_missing_token_is_rejected(api_client):
    response = await api_client.get("/api/v1/groups/")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_profile_is_created_on_first_request(api_client, auth_headers):
    response = await api_client.get("/api/v1/users/me", headers=auth_headers("alice", "Alice"))

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "alice"
    assert body["name"] == "Alice"
    assert body["followers"] == []


@pytest.mark.asyncio
async def test_group_chat_and_poll_flow(api_client, auth_headers):
    alice = auth_headers("alice", "Alice")
    bob = auth_headers("bob", "Bob")
    await api_client.get("/api/v1/users/me", headers=bob)

    response = await api_client.post("/api/v1/groups/", json={"name": "Weekend Trip", "member_ids": ["bob"]}, headers=alice)
    assert response.status_code == 201
    group_id = response.json()["id"]

    poll = {"question": "Beach?", "options": [{"text": "YES", "votes": []}, {"text": "NO", "votes": []}]}
    response = await api_client.post(f"/api/v1/groups/{group_id}/messages", json={"text": "", "poll": poll}, headers=alice)
    assert response.status_code == 201
    message_id = response.json()["id"]

    response = await api_client.post(f"/api/v1/polls/{message_id}/vote", json={"option_index": 0}, headers=bob)
    assert response.status_code == 200
    assert response.json()["options"][0]["votes"] == ["bob"]

    response = await api_client.get(f"/api/v1/polls/{message_id}/tally", headers=alice)
    assert [o["percentage"] for o in response.json()["options"]] == [100, 0]

    response = await api_client.get("/api/v1/notifications/unread", headers=bob)
    assert response.json() == {"unread": 1}
    response = await api_client.get("/api/v1/notifications/unread/message", headers=bob)
    assert response.json() == {"unread": True}

    response = await api_client.get("/api/v1/groups/", headers=bob)
    assert [g["name"] for g in response.json()] == ["Weekend Trip"]


@pytest.mark.asyncio
async def test_domain_errors_map_to_status_codes(api_client, auth_headers):
    alice = auth_headers("alice", "Alice")

    response = await api_client.get("/api/v1/groups/missing", headers=alice)
    assert response.status_code == 404
    assert response.json() == {"detail": "Group not found"}

    response = await api_client.post("/api/v1/follows/alice", headers=alice)
    assert response.status_code == 400

    response = await api_client.post("/api/v1/polls/missing/vote", json={"option_index": 0}, headers=alice)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_follow_flow(api_client, auth_headers):
    alice = auth_headers("alice", "Alice")
    bob = auth_headers("bob", "Bob")
    await api_client.get("/api/v1/users/me", headers=bob)

    response = await api_client.post("/api/v1/follows/bob", headers=alice)
    assert response.json()["following"] == ["bob"]

    response = await api_client.get("/api/v1/follows/status/alice", headers=bob)
    assert response.json()["kind"] == "followed_by"

    response = await api_client.get("/api/v1/notifications/", headers=bob)
    notifications = response.json()
    assert notifications[0]["type"] == "follow"
    assert notifications[0]["related_id"] == "alice"
    assert notifications[0]["read"] is False

    response = await api_client.post("/api/v1/notifications/read-all", headers=bob)
    assert response.json() == {"updated": 1}


@pytest.mark.asyncio
async def test_activities_and_ranking_without_api_key(api_client, auth_headers):
    response = await api_client.get("/api/v1/activities/")
    assert len(response.json()) == 5

    response = await api_client.get("/api/v1/activities/ranked", headers=auth_headers("alice", "Alice"))
    assert [a["id"] for a in response.json()] == ["1", "2", "3", "4"]


@pytest.mark.asyncio
async def test_avatar_upload(api_client, auth_headers, blobs):
    alice = auth_headers("alice", "Alice")
    files = {"file": ("me.png", b"\x89PNG\r\n", "image/png")}

    response = await api_client.post("/api/v1/users/profile/avatar", files=files, headers=alice)

    assert response.status_code == 200
    assert response.json()["avatar"].startswith("memory://profile-pictures/alice/")

    files = {"file": ("notes.txt", b"hello", "text/plain")}
    response = await api_client.post("/api/v1/users/profile/avatar", files=files, headers=alice)
    assert response.status_code == 400
