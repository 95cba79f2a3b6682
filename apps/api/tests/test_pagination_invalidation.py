import pytest

from shelfie_cache import keys
from shelfie_cache.invalidation import INVALIDATION_TABLE, Mutation, families_for
from shelfie_cache.keys import matches_family
from shelfie_cache.mutations import MutationCoordinator
from shelfie_cache.pagination import InfiniteData, offset_range, page_from_rows
from shelfie_core.errors import GatewayError, NotAuthenticated


# ---- pagination ----
def test_full_page_reports_more():
    page = page_from_rows(list(range(20)), offset=40, page_size=20)
    assert page.has_more
    assert page.next_cursor == 60


def test_short_page_is_exhausted():
    page = page_from_rows(list(range(19)), offset=0, page_size=20)
    assert not page.has_more
    assert page.next_cursor is None


def test_empty_page_is_exhausted():
    assert page_from_rows([], offset=20, page_size=20).next_cursor is None


def test_offset_range_is_inclusive():
    assert offset_range(0, 20) == (0, 19)
    assert offset_range(40, 20) == (40, 59)
    assert offset_range(-5, 10) == (0, 9)


def test_infinite_data_cursor():
    empty = InfiniteData()
    assert empty.next_cursor == 0 and empty.has_next_page
    data = empty.append(page_from_rows([1, 2], offset=0, page_size=2))
    assert data.next_cursor == 2
    data = data.append(page_from_rows([3], offset=2, page_size=2))
    assert data.items == [1, 2, 3]
    assert not data.has_next_page


# ---- invalidation table ----
def _covers(families, key) -> bool:
    return any(matches_family(keys.normalize_key(key), f) for f in families)


def test_every_mutation_has_edges():
    assert set(INVALIDATION_TABLE) == set(Mutation)


def test_unlike_invalidates_like_state_count_and_every_feed():
    fams = families_for(Mutation.UNLIKE_RATING, self_id="me", rating_id="r1")
    assert _covers(fams, keys.rating_like("r1"))
    assert _covers(fams, keys.rating_likes_count("r1"))
    assert _covers(fams, keys.social_feed("me"))
    assert _covers(fams, keys.social_feed("someone-else"))
    assert not _covers(fams, keys.rating_like("r2"))


def test_follow_edges():
    fams = families_for(Mutation.FOLLOW, self_id="me", target_id="them")
    for key in (
        keys.followers("them"),
        keys.following("me"),
        keys.is_following("them"),
        keys.follow_counts("them"),
        keys.follow_counts("me"),
        keys.social_feed("me"),
    ):
        assert _covers(fams, key)
    assert not _covers(fams, keys.followers("me"))


def test_notification_edges_cover_every_user():
    fams = families_for(Mutation.MARK_ALL_NOTIFICATIONS_READ, self_id="me")
    assert _covers(fams, keys.notifications("anyone"))
    assert _covers(fams, keys.unread_count("anyone"))


def test_rating_edges():
    fams = families_for(
        Mutation.CREATE_RATING, self_id="me", content_type="movie", content_id="603"
    )
    for key in (
        keys.streak("me"),
        keys.profile_stats("other"),
        keys.diary("me", 2024, 5),
        keys.pending_ratings("me"),
        keys.score_distribution("me"),
        keys.rating_history("me"),
        keys.community_score("movie", "603"),
        keys.challenge_progress("me", 2024, "all"),
    ):
        assert _covers(fams, key)
    assert not _covers(fams, keys.community_score("movie", "604"))
    assert not _covers(fams, keys.diary("other", 2024, 5))


def test_status_pin_report_and_challenge_edges():
    assert _covers(
        families_for(Mutation.UPSERT_CONTENT_STATUS, self_id="me"), keys.pending_ratings("me")
    )
    assert _covers(
        families_for(Mutation.PIN_ITEM, self_id="me"), keys.is_pinned("me", "book", "b1")
    )
    assert not _covers(
        families_for(Mutation.REORDER_PINNED_ITEMS, self_id="me"),
        keys.is_pinned("me", "book", "b1"),
    )
    assert families_for(Mutation.REPORT_ITEM, self_id="me", item_id="i1") == [
        keys.has_reported("me", "i1")
    ]
    assert _covers(
        families_for(Mutation.DELETE_CHALLENGE, self_id="me"),
        keys.challenge_progress("me", 2024, "book"),
    )
    assert not _covers(
        families_for(Mutation.CREATE_CHALLENGE, self_id="me"),
        keys.challenge_progress("me", 2024, "book"),
    )



def test_bookmark_toggle_edges_leave_trending_alone():
    fams = families_for(Mutation.TOGGLE_BOOKMARK, self_id="me")
    assert _covers(fams, keys.bookmarks("me"))
    assert _covers(fams, keys.is_bookmarked("me", "movie", "604"))
    assert not _covers(fams, keys.global_trending())
    assert not _covers(fams, keys.friends_trending("me"))


# ---- coordinator ----
@pytest.mark.anyio
async def test_mutation_without_user_fails(queries):
    coord = MutationCoordinator(queries, None)
    called = []

    async def write():
        called.append(True)

    with pytest.raises(NotAuthenticated):
        await coord.run(Mutation.FOLLOW, write, target_id="them")
    assert called == []


@pytest.mark.anyio
async def test_failed_write_invalidates_nothing(queries):
    queries.cache.set(keys.followers("them"), ["x"], stale_after=300)
    coord = MutationCoordinator(queries, "me")

    async def write():
        raise GatewayError("down")

    with pytest.raises(GatewayError):
        await coord.run(Mutation.FOLLOW, write, target_id="them")
    assert queries.cache.is_fresh(keys.followers("them"))


@pytest.mark.anyio
async def test_successful_write_invalidates_before_returning(queries):
    queries.cache.set(keys.followers("them"), ["x"], stale_after=300)
    coord = MutationCoordinator(queries, "me")

    async def write():
        return "ok"

    assert await coord.run(Mutation.FOLLOW, write, target_id="them") == "ok"
    assert not queries.cache.is_fresh(keys.followers("them"))
