import pytest

from shelfie_cache import keys
from shelfie_core.errors import NotAuthenticated
from shelfie_notifications.notifications_service import NotificationsService
from shelfie_notifications.supabase_repo import SupabaseNotificationsRepo

pytestmark = pytest.mark.anyio

ME = "me"


def _svc(fake_db, queries, user_id=ME) -> NotificationsService:
    return NotificationsService(queries, SupabaseNotificationsRepo(fake_db), user_id)


def _seed(fake_db):
    fake_db.seed("profiles", {"id": "fan", "username": "fan_name", "avatar_url": None})
    fake_db.seed(
        "ratings",
        {
            "id": "rating-1",
            "user_id": ME,
            "content_type": "book",
            "content_id": "b1",
            "content_title": "Dune",
            "score": 9,
        },
    )
    return fake_db.seed(
        "notifications",
        {"recipient_id": ME, "sender_id": "fan", "type": "follow", "is_read": False},
        {
            "recipient_id": ME,
            "sender_id": "fan",
            "type": "like",
            "reference_id": "rating-1",
            "is_read": False,
        },
        {"recipient_id": ME, "sender_id": "ghost", "type": "follow", "is_read": True},
        {"recipient_id": ME, "sender_id": "fan", "type": "mystery", "is_read": False},
        {"recipient_id": "someone-else", "sender_id": "fan", "type": "follow", "is_read": False},
    )


async def test_list_is_newest_first_with_actor_and_rating(fake_db, queries):
    _seed(fake_db)
    items = (await _svc(fake_db, queries).notifications()).data

    assert [n.type.value for n in items] == ["follow", "like", "follow"]
    ghost, like, follow = items
    assert ghost.actor_username == "User"
    assert like.actor_username == "fan_name"
    assert like.rating_id == "rating-1"
    assert like.rating_title == "Dune"
    assert like.rating_type == "book"
    assert follow.rating_id is None and follow.rating_title is None


async def test_unread_count_and_mark_read(fake_db, queries):
    rows = _seed(fake_db)
    svc = _svc(fake_db, queries)
    assert (await svc.unread_count()).data == 2

    await svc.mark_read([rows[0]["id"]])
    assert not queries.cache.is_fresh(keys.unread_count(ME))
    assert (await svc.unread_count()).data == 1

    await svc.mark_all_read()
    assert (await svc.unread_count()).data == 0
    # other users' notifications are untouched
    other = [r for r in fake_db.rows("notifications") if r["recipient_id"] != ME]
    assert other[0]["is_read"] is False


async def test_mark_read_with_no_ids_is_a_no_op(fake_db, queries):
    await _svc(fake_db, queries).mark_read([])
    assert fake_db.calls == []


async def test_anonymous_gets_empty_views(fake_db, queries):
    svc = _svc(fake_db, queries, user_id=None)
    assert (await svc.notifications()).data == []
    assert (await svc.unread_count()).data == 0
    with pytest.raises(NotAuthenticated):
        await svc.mark_all_read()
