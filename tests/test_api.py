"""End-to-end tests through the HTTP routes and the notification WebSocket."""

import pytest
from conftest import auth
from starlette.websockets import WebSocketDisconnect


def _create_post(client, user_id, **body):
    response = client.post("/posts", json=body, headers=auth(user_id))
    assert response.status_code == 201, response.text
    return response.json()


class TestPostRoutes:

    def test_create_and_read_post(self, client, api_users):
        post = _create_post(client, api_users["alice"], content="hello #world", location="Oslo")

        assert post["username"] == "alice"
        assert post["likes_count"] == 0

        fetched = client.get(f"/posts/{post['id']}").json()
        assert fetched["content"] == "hello #world"

        tagged = client.get("/hashtags/world/posts").json()
        assert [p["id"] for p in tagged["items"]] == [post["id"]]

    def test_create_requires_identity(self, client, api_users):
        response = client.post("/posts", json={"content": "anon"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHENTICATED"

    def test_unknown_identity(self, client, api_users):
        response = client.post("/posts", json={"content": "who"}, headers=auth(999))
        assert response.status_code == 401

    def test_empty_post_rejected(self, client, api_users):
        response = client.post("/posts", json={"content": "   "}, headers=auth(api_users["alice"]))

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_bad_media_type_rejected(self, client, api_users):
        body = {"media": {"url": "/uploads/x.exe", "mime_type": "application/x-msdownload"}}
        response = client.post("/posts", json=body, headers=auth(api_users["alice"]))
        assert response.status_code == 400

    def test_media_only_post(self, client, api_users):
        body = {"media": {"url": "/uploads/cat.png", "mime_type": "image/png"}}
        post = _create_post(client, api_users["alice"], **body)

        assert post["content"] is None
        assert post["media_type"] == "image/png"

    def test_missing_post_is_404(self, client, api_users):
        response = client.get("/posts/4040")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_like_toggle_and_delete_permissions(self, client, api_users):
        post = _create_post(client, api_users["alice"], content="like it")

        liked = client.post(f"/posts/{post['id']}/like", headers=auth(api_users["bob"])).json()
        assert liked == {"liked": True, "likes_count": 1, "message": "Post liked"}

        unliked = client.post(f"/posts/{post['id']}/like", headers=auth(api_users["bob"])).json()
        assert unliked["liked"] is False
        assert unliked["likes_count"] == 0

        forbidden = client.delete(f"/posts/{post['id']}", headers=auth(api_users["bob"]))
        assert forbidden.status_code == 403

        deleted = client.delete(f"/posts/{post['id']}", headers=auth(api_users["alice"]))
        assert deleted.status_code == 200
        assert client.get(f"/posts/{post['id']}").status_code == 404

    def test_feed_and_trending(self, client, api_users):
        _create_post(client, api_users["bob"], content="from bob")
        _create_post(client, api_users["carol"], content="from carol")
        client.post("/users/bob/follow", headers=auth(api_users["alice"]))

        feed = client.get("/posts/feed", headers=auth(api_users["alice"])).json()
        assert [p["username"] for p in feed["items"]] == ["bob"]
        assert feed["has_more"] is False

        trending = client.get("/posts/trending", params={"page_size": 1}).json()
        assert len(trending["items"]) == 1
        assert trending["has_more"] is True
        assert trending["items"][0]["engagement_score"] == 0

    def test_page_size_bounds(self, client, api_users):
        response = client.get("/posts/trending", params={"page_size": 0})
        assert response.status_code == 422


class TestCommentRoutes:

    def test_thread_listing_and_delete(self, client, api_users):
        post = _create_post(client, api_users["alice"], content="discuss")
        root = client.post(
            "/comments", json={"post_id": post["id"], "content": "root"}, headers=auth(api_users["bob"])
        ).json()
        for i in range(4):
            client.post(
                "/comments",
                json={"post_id": post["id"], "content": f"reply {i}", "parent_comment_id": root["comment"]["id"]},
                headers=auth(api_users["carol"]),
            )

        listing = client.get(f"/comments/post/{post['id']}").json()
        assert len(listing["items"]) == 1
        assert listing["items"][0]["replies_count"] == 4
        assert [r["content"] for r in listing["items"][0]["replies"]] == ["reply 0", "reply 1", "reply 2"]

        replies = client.get(f"/comments/{root['comment']['id']}/replies").json()
        assert len(replies["items"]) == 4

        removed = client.delete(f"/comments/{root['comment']['id']}", headers=auth(api_users["bob"])).json()
        assert removed["removed"] == 5
        assert client.get(f"/posts/{post['id']}").json()["comments_count"] == 0

    def test_reply_to_other_post_rejected(self, client, api_users):
        first = _create_post(client, api_users["alice"], content="one")
        second = _create_post(client, api_users["alice"], content="two")
        comment = client.post(
            "/comments", json={"post_id": first["id"], "content": "hi"}, headers=auth(api_users["bob"])
        ).json()

        response = client.post(
            "/comments",
            json={"post_id": second["id"], "content": "cross", "parent_comment_id": comment["comment"]["id"]},
            headers=auth(api_users["bob"]),
        )
        assert response.status_code == 400


class TestUserRoutes:

    def test_profile_follow_and_lists(self, client, api_users):
        follow = client.post("/users/bob/follow", headers=auth(api_users["alice"])).json()
        assert follow["is_following"] is True
        assert follow["followers_count"] == 1

        profile = client.get("/users/bob", headers=auth(api_users["alice"])).json()
        assert profile["is_following"] is True
        assert profile["is_own_profile"] is False
        assert profile["followers_count"] == 1

        own = client.get("/users/alice", headers=auth(api_users["alice"])).json()
        assert own["is_own_profile"] is True
        assert own["following_count"] == 1

        followers = client.get("/users/bob/followers").json()
        assert [u["username"] for u in followers["items"]] == ["alice"]
        following = client.get("/users/alice/following").json()
        assert [u["username"] for u in following["items"]] == ["bob"]

    def test_register_then_act(self, client):
        response = client.post("/users", json={"username": "newbie", "email": "newbie@example.com"})

        assert response.status_code == 201
        created = response.json()
        assert created["full_name"] == "newbie"
        assert created["is_own_profile"] is True

        post = _create_post(client, created["id"], content="first post")
        assert post["username"] == "newbie"

    def test_register_duplicate_is_409(self, client, api_users):
        taken_name = client.post("/users", json={"username": "alice", "email": "fresh@example.com"})
        taken_email = client.post("/users", json={"username": "fresh", "email": "alice@example.com"})

        assert taken_name.status_code == 409
        assert taken_name.json()["error_code"] == "CONFLICT"
        assert taken_email.status_code == 409

    def test_register_rejects_bad_username(self, client):
        response = client.post("/users", json={"username": "no spaces", "email": "x@example.com"})
        assert response.status_code == 422

    def test_update_profile(self, client, api_users):
        body = {"bio": "builder", "location": "Bristol", "website": "https://bob.example"}
        response = client.put("/users/profile", json=body, headers=auth(api_users["bob"]))

        assert response.status_code == 200
        assert response.json()["location"] == "Bristol"
        assert client.get("/users/bob").json()["website"] == "https://bob.example"

        too_long = client.put("/users/profile", json={"bio": "x" * 501}, headers=auth(api_users["bob"]))
        assert too_long.status_code == 400
        assert too_long.json()["error_code"] == "VALIDATION_ERROR"

        assert client.put("/users/profile", json={"bio": "anon"}).status_code == 401

    def test_self_follow_is_400(self, client, api_users):
        response = client.post("/users/alice/follow", headers=auth(api_users["alice"]))
        assert response.status_code == 400

    def test_search_orders_by_followers(self, client, api_users):
        client.post("/users/carol/follow", headers=auth(api_users["alice"]))

        found = client.get("/users/search/o").json()
        assert [u["username"] for u in found["items"]] == ["carol", "bob"]

    def test_unknown_user(self, client, api_users):
        assert client.get("/users/nobody").status_code == 404


class TestHashtagRoutes:

    def test_trending_and_search(self, client, api_users):
        _create_post(client, api_users["alice"], content="#python #fastapi")
        _create_post(client, api_users["bob"], content="#python")

        trending = client.get("/hashtags/trending").json()
        assert trending["items"][0] == {"tag": "python", "usage_count": 2, "recent_posts": 2}

        search = client.get("/hashtags/search/FAST").json()
        assert search["items"] == [{"tag": "fastapi", "usage_count": 1}]

    def test_empty_search(self, client, api_users):
        response = client.get("/hashtags/search/%23")

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"


class TestNotificationRoutes:

    def test_rest_lifecycle(self, client, api_users):
        post = _create_post(client, api_users["alice"], content="notify me")
        client.post(f"/posts/{post['id']}/like", headers=auth(api_users["bob"]))
        client.post("/users/alice/follow", headers=auth(api_users["carol"]))

        assert client.get("/notifications/unread-count", headers=auth(api_users["alice"])).json() == {"count": 2}

        items = client.get("/notifications", headers=auth(api_users["alice"])).json()["items"]
        assert {n["type"] for n in items} == {"like", "follow"}

        forbidden = client.put(f"/notifications/{items[0]['id']}/read", headers=auth(api_users["bob"]))
        assert forbidden.status_code == 403

        ok = client.put(f"/notifications/{items[0]['id']}/read", headers=auth(api_users["alice"]))
        assert ok.status_code == 200

        read_all = client.put("/notifications/read-all", headers=auth(api_users["alice"])).json()
        assert read_all["updated"] == 1
        assert client.get("/notifications/unread-count", headers=auth(api_users["alice"])).json() == {"count": 0}

    def test_websocket_push_on_like(self, client, api_users):
        post = _create_post(client, api_users["alice"], content="push")

        with client.websocket_connect("/notifications/ws", headers=auth(api_users["alice"])) as ws:
            ws.send_text("ping")
            assert ws.receive_text() == "pong"

            client.post(f"/posts/{post['id']}/like", headers=auth(api_users["bob"]))
            event = ws.receive_json()

        assert event["type"] == "like"
        assert event["post_id"] == post["id"]
        assert event["user"] == {"id": api_users["bob"], "username": "bob"}
        assert event["message"] == "bob liked your post"

    def test_websocket_requires_identity(self, client, api_users):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/notifications/ws") as ws:
                ws.receive_text()
