from .routes_me import router as me_router
from .routes_social import router as social_router
from .routes_notifications import router as notifications_router
from .routes_content import router as content_router
from .routes_challenges import router as challenges_router
from .routes_session import router as session_router

all_routers = [
    me_router,
    social_router,
    notifications_router,
    content_router,
    challenges_router,
    session_router,
]
