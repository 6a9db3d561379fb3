from fxdojo.core.env import load_env
load_env()
# Initialize structured logging early
from fxdojo.core.logging import configure_logging
configure_logging()

import datetime
import time

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.orm import Session

from fxdojo.core.config import settings
from fxdojo.core.logging import get_logger
from fxdojo.db.deps import get_db
from fxdojo.middleware.logging import logging_middleware

from fxdojo.modules.access.routes import router as adhoc_access_router
from fxdojo.modules.admin.routes import router as admin_router
from fxdojo.modules.auth.routes import router as auth_router
from fxdojo.modules.chat.routes import router as chat_router
from fxdojo.modules.courses.lesson_routes import router as lessons_router
from fxdojo.modules.courses.routes import router as courses_router
from fxdojo.modules.dashboard.routes import router as dashboard_router
from fxdojo.modules.dm.routes import router as dm_router
from fxdojo.modules.invites.routes import router as invites_router
from fxdojo.modules.progress.routes import router as progress_router
from fxdojo.modules.rooms.routes import router as rooms_router
from fxdojo.modules.subscriptions.routes import router as subscriptions_router
from fxdojo.modules.users.routes import router as users_router
from fxdojo.modules.vimeo.routes import router as vimeo_router
from fxdojo.realtime.routes import router as realtime_router

logger = get_logger(__name__)

app = FastAPI(title="FX Dojo API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(logging_middleware)

# Record process start time for uptime reporting
_START_TIME = time.time()

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(invites_router)
api_router.include_router(courses_router)
api_router.include_router(lessons_router)
api_router.include_router(progress_router)
api_router.include_router(adhoc_access_router)
api_router.include_router(admin_router)
api_router.include_router(chat_router)
api_router.include_router(dm_router)
api_router.include_router(rooms_router)
api_router.include_router(subscriptions_router)
api_router.include_router(dashboard_router)
api_router.include_router(vimeo_router)

app.include_router(api_router, prefix="/api/v1")
app.include_router(realtime_router)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


@app.get("/health")
async def health():
    """Simple health endpoint returning status, uptime, and timestamp."""
    uptime = time.time() - _START_TIME
    payload = {
        "status": "ok",
        "uptime_seconds": round(uptime, 2),
        "timestamp": datetime.datetime.utcnow().isoformat() + "Z",
    }
    return JSONResponse(content=payload)


@app.get("/db/health")
def db_health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"db": "ok"}


logger.info("fastapi process started")
