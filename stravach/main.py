import asyncio
import os

from fastapi import Depends, FastAPI
from sqlalchemy.orm import Session

from stravach.config import settings
from stravach.database import get_db, init_db
from stravach.dependencies import get_workflow
from stravach.logging_config import get_logger, setup_logging
from stravach.models import User, UserActivity
from stravach.routers import activities, auth, strava_webhook, telegram_webhook

setup_logging(settings.log_level)

app = FastAPI(
    title="Stravach",
    description="Telegram bot that suggests names for new Strava activities",
    version="0.1.0",
)

app.include_router(strava_webhook.router)
app.include_router(telegram_webhook.router)
app.include_router(activities.router)
app.include_router(auth.router)

worker_logger = get_logger("rename_worker")
_rename_worker_task: asyncio.Task | None = None


def _is_rename_worker_enabled() -> bool:
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False
    return settings.rename_worker_enabled


async def _rename_worker_loop() -> None:
    workflow = get_workflow()
    while True:
        try:
            # Blocks up to a second on the queue, then yields back to the loop
            await asyncio.to_thread(workflow.run_once, 1.0)
        except asyncio.CancelledError:
            break
        except Exception as exc:
            worker_logger.error(
                "Rename worker loop failed",
                extra={"context": {"error": str(exc)}},
            )
            await asyncio.sleep(1)


@app.on_event("startup")
async def start_rename_worker() -> None:
    global _rename_worker_task
    init_db()
    if not _is_rename_worker_enabled():
        return
    if _rename_worker_task is None or _rename_worker_task.done():
        _rename_worker_task = asyncio.create_task(_rename_worker_loop())
        worker_logger.info("Rename worker started")


@app.on_event("shutdown")
async def stop_rename_worker() -> None:
    global _rename_worker_task
    if _rename_worker_task is None:
        return
    _rename_worker_task.cancel()
    try:
        await _rename_worker_task
    except asyncio.CancelledError:
        pass
    _rename_worker_task = None


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/db-check")
def db_check(db: Session = Depends(get_db)):
    return {
        "status": "ok",
        "users": db.query(User).count(),
        "activities": db.query(UserActivity).count(),
    }
