import asyncio
import os

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from groupmatch.config import settings, validate_settings
from groupmatch.database import get_db, init_db
from groupmatch.logging_config import get_logger, setup_logging
from groupmatch.routers import matching, webhook
from groupmatch.services.agents import list_agents
from groupmatch.services.dedup_ledger import get_message_ledger
from groupmatch.services.interview_state_service import count_active
from groupmatch.services.match_service import count_matches
from groupmatch.services.profile_service import count_profiles

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="Groupmatch API",
    description="Group interview bot and compatibility matchmaker",
    version="0.1.0",
)

cors_env = os.environ.get("CORS_ALLOW_ORIGINS", "*")
cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhook.router)
app.include_router(matching.router)

sweeper_logger = get_logger("dedup_sweeper")
_sweeper_task: asyncio.Task | None = None


def _is_env_enabled(value: str | None, default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


def _is_sweeper_enabled() -> bool:
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False
    return _is_env_enabled(os.environ.get("DEDUP_SWEEPER_ENABLED"), default=True)


async def _dedup_sweeper_loop() -> None:
    ledger = get_message_ledger()
    while True:
        try:
            await asyncio.sleep(max(settings.dedup_sweep_interval_seconds, 1.0))
            removed = ledger.sweep()
            if removed:
                sweeper_logger.info(
                    "Dedup ledger swept",
                    extra={"context": {"removed": removed, "remaining": len(ledger)}},
                )
        except asyncio.CancelledError:
            break
        except Exception as exc:
            sweeper_logger.error(
                "Dedup sweeper loop failed",
                extra={"context": {"error": str(exc)}},
            )


@app.on_event("startup")
async def startup() -> None:
    global _sweeper_task
    init_db()
    report = validate_settings(settings)
    for warning in report["warnings"]:
        logger.warning(f"Config: {warning}")
    for error in report["errors"]:
        logger.error(f"Config: {error}")

    if not _is_sweeper_enabled():
        return
    if _sweeper_task is None or _sweeper_task.done():
        _sweeper_task = asyncio.create_task(_dedup_sweeper_loop())
        sweeper_logger.info("Dedup sweeper started")


@app.on_event("shutdown")
async def shutdown() -> None:
    global _sweeper_task
    if _sweeper_task is None:
        return
    _sweeper_task.cancel()
    try:
        await _sweeper_task
    except asyncio.CancelledError:
        pass
    _sweeper_task = None


@app.get("/health")
async def health():
    report = validate_settings(settings)
    return {
        "status": "ok" if not report["errors"] else "degraded",
        "agents": [agent.name for agent in list_agents()],
        "config": report,
    }


@app.get("/db-check")
def db_check(db: Session = Depends(get_db)):
    return {
        "status": "ok",
        "profiles": count_profiles(db),
        "active_interviews": count_active(db),
        "matches": count_matches(db),
    }
