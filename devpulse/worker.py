import datetime as dt
from apscheduler.schedulers.blocking import BlockingScheduler
from devpulse.db import SessionLocal, init_db
from devpulse.settings import settings
from devpulse.events import SqlEventSource
from devpulse.store import SqlMetricStore
from devpulse.ingest.github_ingest import sync_all_repositories
from devpulse.analytics.aggregator import process_and_save_metrics
from devpulse.analytics.burnout import calculate_burnout_risk, save_burnout_risk_score
from devpulse.analytics.team import calculate_team_velocity, save_team_insight
from devpulse.schemas import TimeRange
from devpulse import models
from devpulse.logging import get_logger

log = get_logger("worker")


def job_sync():
    db = SessionLocal()
    try:
        n = sync_all_repositories(db)
        log.info(f"github sync completed: {n} records")
    finally:
        db.close()

def run_daily_metrics(db, now: dt.datetime | None = None) -> int:
    """Aggregate, score and snapshot every tracked (user, repository) pair."""
    now = now or dt.datetime.utcnow()
    source = SqlEventSource(db)
    store = SqlMetricStore(db)
    pairs = source.tracked_pairs()
    for user_id, repository_id in pairs:
        process_and_save_metrics(source, store, user_id, repository_id,
                                 days=settings.aggregation_lookback_days, now=now)
        assessment = calculate_burnout_risk(user_id, store, repository_id=repository_id,
                                            days=settings.burnout_window_days, now=now)
        save_burnout_risk_score(store, user_id, repository_id, now.date(), assessment.risk_score)

    window = TimeRange(start=now - dt.timedelta(days=settings.aggregation_lookback_days), end=now)
    for repo in db.query(models.Repository).all():
        save_team_insight(store, calculate_team_velocity(repo.id, window, source, store), now.date())
    return len(pairs)

def job_metrics():
    db = SessionLocal()
    try:
        n = run_daily_metrics(db)
        log.info(f"daily metrics computed for {n} user/repository pairs")
    finally:
        db.close()

def main():
    init_db()
    sched = BlockingScheduler(timezone="UTC")

    sched.add_job(job_sync, "interval", minutes=settings.sync_interval_minutes,
                  next_run_time=dt.datetime.utcnow())
    # Daily metrics (also run once on start)
    sched.add_job(job_metrics, "cron", hour=settings.metrics_daily_hour, minute=settings.metrics_daily_minute)
    sched.add_job(job_metrics, "date", run_date=dt.datetime.utcnow() + dt.timedelta(seconds=10))

    print("[worker] started. Press Ctrl+C to exit.")
    sched.start()

if __name__ == "__main__":
    main()
