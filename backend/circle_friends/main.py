import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from circle_friends.api.v1.friends import router as friends_router
from circle_friends.api.v1.health import router as health_router
from circle_friends.api.v1.notifications import router as notifications_router
from circle_friends.api.v1.users import router as users_router
from circle_friends.core.logging import configure_logging
from circle_friends.core.settings import settings
from circle_friends.store.base import StoreError

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)

# Local dev: allow the Expo dev server to call the API.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Store error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Storage temporarily unavailable"})


app.include_router(
    health_router,
    prefix=settings.API_V1_STR,
    tags=["Health"],
)
app.include_router(
    users_router,
    prefix=settings.API_V1_STR,
    tags=["Users"],
)
app.include_router(
    friends_router,
    prefix=settings.API_V1_STR,
    tags=["Friends"],
)
app.include_router(
    notifications_router,
    prefix=settings.API_V1_STR,
    tags=["Notifications"],
)
