# flickpick/scheduler.py
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from flickpick.services.sessions import SessionEngine

_scheduler: AsyncIOScheduler | None = None


def start_jobs(engine: SessionEngine, minutes: int = 60):
    global _scheduler
    if _scheduler:
        return _scheduler
    _scheduler = AsyncIOScheduler()
    # drop sessions older than the max age, independent of request traffic
    _scheduler.add_job(engine.sweep_expired, "interval", minutes=max(1, minutes), id="session_sweep")
    _scheduler.start()
    return _scheduler


def stop_jobs():
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        _scheduler = None
