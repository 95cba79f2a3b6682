FEED_PAGE_SIZE = 20
HISTORY_PAGE_SIZE = 20

PENDING_CANDIDATE_WINDOW = 20  # latest want/doing rows considered before exclusion
PENDING_LIMIT = 10

NOTIFICATIONS_LIMIT = 50
MAX_PINNED = 5
BOOKMARKS_PAGE_SIZE = 20

TRENDING_LIMIT = 15
FRIENDS_TRENDING_DAYS = 7
FRIENDS_TRENDING_CANDIDATES = 30  # newest followee ratings ranked by likes
GLOBAL_TRENDING_DAYS = 30
GLOBAL_TRENDING_SAMPLE = 500

USER_SEARCH_MIN_CHARS = 2
USER_SEARCH_LIMIT = 20

MAX_IN = 200  # keep matches PostgREST URL/param safety
SCORE_FETCH_BATCH = 1000  # PostgREST default max-rows

# Staleness windows, in seconds, per cache key family.
STALE_COMMUNITY_SCORE = 5 * 60
STALE_FOLLOW_COUNTS = 30
STALE_FOLLOW_LISTS = 5 * 60
STALE_NOTIFICATIONS = 60
STALE_UNREAD_COUNT = 30
STALE_RATING_LIKE = 5 * 60
STALE_RATING_LIKES_COUNT = 3 * 60
STALE_SOCIAL_FEED = 2 * 60
STALE_STREAK = 5 * 60
STALE_PENDING = 2 * 60
STALE_SCORE_DISTRIBUTION = 5 * 60
STALE_SEARCH = 2 * 60
STALE_FRIENDS_TRENDING = 5 * 60
STALE_GLOBAL_TRENDING = 10 * 60

# Forced re-check interval for notification badges.
NOTIFICATIONS_REFETCH_INTERVAL = 60
