from datetime import datetime, timezone
from typing import Any, Dict

ME = "00000000-0000-0000-0000-000000000001"


def _rating(content_id: str = "603", content_type: str = "movie", score: float = 8) -> Dict[str, Any]:
    return {
        "content_type": content_type,
        "content_id": content_id,
        "content_title": f"Title {content_id}",
        "score": score,
    }


def _pin(content_id: str) -> Dict[str, Any]:
    return {"content_type": "book", "content_id": content_id, "content_title": content_id}


def test_health(test_client):
    res = test_client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok", "service": "Shelfie API"}


def test_rating_then_profile_views(test_client):
    res = test_client.post("/content/ratings", json=_rating(score=7.25))
    assert res.status_code == 201
    body = res.json()
    assert body["score"] == 7.3
    assert body["user_id"] == ME

    stats = test_client.get("/me/stats").json()
    assert stats["error"] is None
    assert stats["data"]["total_ratings"] == 1
    assert stats["data"]["by_category"][0]["type"] == "movie"

    streak = test_client.get("/me/streak").json()
    assert streak["is_loading"] is False
    assert isinstance(streak["data"], int)

    dist = test_client.get("/me/score-distribution").json()
    assert len(dist["data"]["buckets"]) == 21


def test_rating_validation(test_client):
    assert test_client.post("/content/ratings", json=_rating(score=11)).status_code == 422
    assert test_client.post("/content/ratings", json=_rating(content_type="vinyl")).status_code == 422


def test_streak_snapshot_does_not_wait(test_client):
    res = test_client.get("/me/streak", params={"wait": "false"})
    assert res.status_code == 200
    assert res.json()["data"] == 0


def test_diary_and_history(test_client, fake_db):
    fake_db.seed(
        "ratings",
        *[
            {
                "user_id": ME,
                "content_type": "book",
                "content_id": f"b{i}",
                "content_title": f"Book {i}",
                "score": 6,
                "created_at": f"2024-02-{i + 1:02d}T12:00:00Z",
            }
            for i in range(22)
        ],
    )
    diary = test_client.get("/me/diary", params={"year": 2024, "month": 2}).json()["data"]
    assert len(diary) == 22
    assert diary["2024-02-01"][0]["content_id"] == "b0"

    first = test_client.get("/me/history").json()["data"]
    assert len(first["items"]) == 20
    assert first["has_next_page"] is True
    more = test_client.get("/me/history", params={"more": "true"}).json()["data"]
    assert len(more["items"]) == 22
    assert more["next_cursor"] is None

    assert test_client.get("/me/diary", params={"month": 13}).status_code == 422


def test_pending(test_client, fake_db):
    fake_db.seed(
        "user_content_status",
        *[
            {
                "user_id": ME,
                "content_type": "game",
                "content_id": cid,
                "content_title": cid,
                "status": "want",
            }
            for cid in ("A", "B", "C")
        ],
    )
    test_client.post("/content/ratings", json=_rating("B", "game"))
    data = test_client.get("/me/pending").json()["data"]
    assert [p["content_id"] for p in data] == ["C", "A"]


def test_follow_endpoints(test_client):
    first = test_client.post("/social/users/them/follow")
    assert first.status_code == 200 and first.json() == {"changed": True}
    assert test_client.post("/social/users/them/follow").json() == {"changed": False}

    counts = test_client.get("/social/users/them/follow-counts").json()["data"]
    assert counts == {"followers": 1, "following": 0}
    assert test_client.get("/social/users/them/is-following").json()["data"] is True

    assert test_client.post("/social/users/them/follow/toggle").json() == {"active": False}
    assert test_client.delete("/social/users/them/follow").json() == {"changed": False}

    own = test_client.post(f"/social/users/{ME}/follow")
    assert own.status_code == 422
    assert own.json()["code"] == "self_follow"


def test_like_endpoints(test_client):
    assert test_client.post("/social/ratings/r1/like").json() == {"changed": True}
    assert test_client.get("/social/ratings/r1/like").json()["data"] is True
    assert test_client.get("/social/ratings/r1/likes-count").json()["data"] == 1
    assert test_client.delete("/social/ratings/r1/like").json() == {"changed": True}
    assert test_client.get("/social/ratings/r1/like").json()["data"] is False
    assert test_client.get("/social/ratings/r1/likes-count").json()["data"] == 0


def test_feed_endpoint(test_client, fake_db):
    fake_db.seed("follows", {"follower_id": ME, "following_id": "author"})
    fake_db.seed("profiles", {"id": "author", "username": "author_name"})
    fake_db.seed(
        "ratings",
        {
            "id": "rv1",
            "user_id": "author",
            "content_type": "podcast",
            "content_id": "p1",
            "content_title": "Pod",
            "score": 9,
        },
    )
    data = test_client.get("/social/feed").json()["data"]
    assert [i["username"] for i in data["items"]] == ["author_name"]
    assert data["has_next_page"] is False


def test_pins_endpoints(test_client):
    ids = [test_client.post("/content/pins", json=_pin(f"b{i}")).json()["id"] for i in range(5)]
    sixth = test_client.post("/content/pins", json=_pin("b5"))
    assert sixth.status_code == 422
    assert sixth.json()["code"] == "max_pinned"

    order = {"positions": [{"id": ids[0], "position": 5}, {"id": ids[4], "position": 1}]}
    assert test_client.put("/content/pins/order", json=order).status_code == 204
    listed = test_client.get("/content/pins").json()["data"]
    assert listed[0]["id"] == ids[4]

    assert test_client.delete(f"/content/pins/{ids[1]}").status_code == 204
    assert test_client.delete(f"/content/pins/{ids[1]}").status_code == 404
    assert test_client.get("/content/book/b1/pin").json()["data"] is None


def test_status_endpoint(test_client):
    payload = {
        "content_type": "anything",
        "content_id": "x1",
        "content_title": "Custom thing",
        "status": "doing",
    }
    res = test_client.put("/content/status", json=payload)
    assert res.status_code == 200
    assert res.json()["content_type"] == "custom"
    got = test_client.get("/content/anything/x1/status").json()["data"]
    assert got["status"] == "doing"


def test_report_endpoints(test_client):
    first = test_client.post("/content/reports", json={"item_id": "i1", "reason": "spam"})
    assert first.status_code == 201
    assert "id" in first.json()
    assert test_client.get("/content/reports/i1").json()["data"] is True

    dup = test_client.post("/content/reports", json={"item_id": "i1", "reason": "spam"})
    assert dup.status_code == 409
    assert dup.json()["code"] == "duplicate_report"

    assert test_client.post("/content/reports", json={"item_id": "i2", "reason": " "}).status_code == 422


def test_community_score_endpoint(test_client):
    res = test_client.get("/content/tv/1396/community-score")
    assert res.status_code == 200
    data = res.json()["data"]
    assert 4.0 <= data["average_score"] <= 9.5
    assert res.json() == test_client.get("/content/series/1396/community-score").json()

    assert test_client.get("/content/vinyl/1/community-score").status_code == 422


def test_notification_endpoints(test_client, fake_db):
    rows = fake_db.seed(
        "notifications",
        {"recipient_id": ME, "sender_id": "fan", "type": "follow", "is_read": False},
        {"recipient_id": ME, "sender_id": "fan", "type": "follow", "is_read": False},
    )
    assert test_client.get("/notifications/unread-count").json()["data"] == 2
    assert len(test_client.get("/notifications").json()["data"]) == 2

    res = test_client.post("/notifications/read", json={"ids": [rows[0]["id"]]})
    assert res.status_code == 204
    assert test_client.get("/notifications/unread-count").json()["data"] == 1

    assert test_client.post("/notifications/read", json={"ids": []}).status_code == 422
    assert test_client.post("/notifications/read-all").status_code == 204
    assert test_client.get("/notifications/unread-count").json()["data"] == 0


def test_challenge_endpoints(test_client):
    created = test_client.post(
        "/challenges", json={"year": 2024, "target_count": 1, "category_filter": "book"}
    )
    assert created.status_code == 201
    cid = created.json()["id"]

    test_client.post("/content/ratings", json=_rating("b1", "book"))
    listed = test_client.get("/challenges", params={"year": 2024}).json()["data"]
    assert [c["id"] for c in listed] == [cid]

    # ratings from the fake store are stamped early in 2024
    overview = test_client.get("/challenges/overview", params={"year": 2024}).json()["data"]
    assert overview[0]["progress"] == 1
    assert overview[0]["should_celebrate"] is True

    assert test_client.post(f"/challenges/{cid}/celebrated").status_code == 204
    overview = test_client.get("/challenges/overview", params={"year": 2024}).json()["data"]
    assert overview[0]["should_celebrate"] is False

    assert test_client.delete(f"/challenges/{cid}").status_code == 204
    assert test_client.delete(f"/challenges/{cid}").status_code == 404


def test_session_lifecycle(test_client):
    assert test_client.get("/session").json() == {"user_id": ME, "active": False}
    test_client.get("/me/stats")
    assert test_client.get("/session").json()["active"] is True
    assert test_client.post("/session/logout").json() == {"closed": True}
    assert test_client.post("/session/logout").json() == {"closed": False}


def test_missing_bearer_is_401(test_client):
    from app.deps.supabase_client import get_current_user_id, get_supabase_client

    overrides = test_client.app.dependency_overrides
    overrides.pop(get_current_user_id)
    overrides.pop(get_supabase_client)

    res = test_client.get("/me/stats")
    assert res.status_code == 401
    assert res.json()["code"] == "not_authenticated"


def test_bookmark_endpoints(test_client):
    payload = {"content_type": "anything", "content_id": "x1", "content_title": "Thing"}
    assert test_client.get("/content/anything/x1/bookmark").json()["data"] is False
    assert test_client.post("/content/bookmarks/toggle", json=payload).json() == {"active": True}
    assert test_client.get("/content/custom/x1/bookmark").json()["data"] is True

    listed = test_client.get("/me/bookmarks").json()["data"]
    assert [b["content_id"] for b in listed["items"]] == ["x1"]
    assert listed["has_next_page"] is False

    grouped = test_client.get("/me/bookmarks/grouped").json()["data"]
    assert grouped["total_count"] == 1
    assert len(grouped["groups"]) == 7
    assert grouped["groups"][0]["type"] == "custom"

    assert test_client.post("/content/bookmarks/toggle", json=payload).json() == {"active": False}
    assert test_client.get("/me/bookmarks").json()["data"]["items"] == []
    assert test_client.get("/content/vinyl/1/bookmark").status_code == 422


def test_trending_endpoints(test_client, fake_db):
    now = datetime.now(timezone.utc).isoformat()
    fake_db.seed("follows", {"follower_id": ME, "following_id": "author"})
    fake_db.seed("profiles", {"id": "author", "username": "author_name"})
    fake_db.seed(
        "ratings",
        {
            "id": "rv1",
            "user_id": "author",
            "content_type": "book",
            "content_id": "b1",
            "content_title": "Book",
            "score": 9,
            "created_at": now,
        },
    )
    fake_db.seed("review_likes", {"user_id": "x", "rating_id": "rv1"})

    friends = test_client.get("/social/trending").json()["data"]
    assert [(t["rating_id"], t["likes_count"], t["author_username"]) for t in friends] == [
        ("rv1", 1, "author_name")
    ]

    everyone = test_client.get("/content/trending").json()["data"]
    assert [(t["content_id"], t["rating_count"], t["average_score"]) for t in everyone] == [
        ("b1", 1, 9.0)
    ]


def test_user_search_endpoint(test_client, fake_db):
    fake_db.seed("profiles", {"id": "p1", "username": "reader", "display_name": "Avid Reader"})
    found = test_client.get("/social/users/search", params={"q": "avid"}).json()["data"]
    assert [p["username"] for p in found] == ["reader"]
    assert test_client.get("/social/users/search", params={"q": "a"}).json()["data"] == []
