import logging
import os
import time
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pymongo.database import Database
from pymongo.errors import PyMongoError

import comments
import dashboard
import likes
import playlists
import subscriptions
import tweets
import users
import videos
from config import settings
from database import ensure_indexes, get_db, ping
from logging_config import setup_logging
from responses import api_response, register_exception_handlers

setup_logging()
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

app = FastAPI(
    title=settings.APP_NAME,
    description="Video sharing backend: accounts, videos, comments, likes, subscriptions, playlists",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Uploaded media is served from here
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount(settings.MEDIA_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="static")

API_PREFIX = "/api/v1"
app.include_router(users.router, prefix=f"{API_PREFIX}/users", tags=["users"])
app.include_router(tweets.router, prefix=f"{API_PREFIX}/tweets", tags=["tweets"])
app.include_router(subscriptions.router, prefix=f"{API_PREFIX}/subscriptions", tags=["subscriptions"])
app.include_router(videos.router, prefix=f"{API_PREFIX}/videos", tags=["videos"])
app.include_router(comments.router, prefix=f"{API_PREFIX}/comments", tags=["comments"])
app.include_router(likes.router, prefix=f"{API_PREFIX}/likes", tags=["likes"])
app.include_router(playlists.router, prefix=f"{API_PREFIX}/playlist", tags=["playlist"])
app.include_router(dashboard.router, prefix=f"{API_PREFIX}/dashboard", tags=["dashboard"])


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url.path} from origin: {request.headers.get('origin')}")
    return await call_next(request)


@app.on_event("startup")
def startup_event():
    logger.info(f"Starting {settings.APP_NAME}")
    try:
        ensure_indexes(get_db())
    except PyMongoError as e:
        logger.error(f"Could not ensure indexes: {e}")


# -------------------- Basic Routes --------------------
@app.get("/")
def read_root():
    return {"message": "Video Sharing Backend is running", "docs": "/docs"}


@app.get(f"{API_PREFIX}/healthcheck")
def healthcheck(db: Database = Depends(get_db)):
    db_error = ping(db)
    data = {
        "status": "OK" if db_error is None else "DEGRADED",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "database": "connected" if db_error is None else db_error,
    }
    return api_response(200, data, "Health check passed" if db_error is None else "Database unavailable")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
