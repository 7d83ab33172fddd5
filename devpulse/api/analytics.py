import datetime as dt
from fastapi import APIRouter, Depends, HTTPException, Query, status
from devpulse.api.deps import source_dep, store_dep
from devpulse.events import SqlEventSource
from devpulse.store import SqlMetricStore
from devpulse.schemas import TimeRange
from devpulse.settings import settings
from devpulse.analytics.aggregator import process_and_save_metrics
from devpulse.analytics.burnout import calculate_burnout_risk
from devpulse.analytics.productivity import UserNotFound, calculate_productivity_metrics, get_work_pattern_analysis
from devpulse.analytics.trends import detect_productivity_trends
from devpulse.analytics.team import RepositoryNotFound, calculate_team_velocity

router = APIRouter(tags=["analytics"])

def _window(start: dt.datetime | None, end: dt.datetime | None, default_days: int = 30) -> TimeRange:
    end = end or dt.datetime.utcnow()
    start = start or end - dt.timedelta(days=default_days)
    if start > end:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="start must not be after end")
    return TimeRange(start=start, end=end)

@router.get("/users/{user_id}/burnout")
def burnout(user_id: int, repository_id: int | None = None, days: int | None = Query(default=None, ge=1, le=365),
            store: SqlMetricStore = Depends(store_dep)):
    return calculate_burnout_risk(user_id, store, repository_id=repository_id,
                                  days=days or settings.burnout_window_days)

@router.get("/users/{user_id}/productivity")
def productivity(user_id: int, start: dt.datetime | None = None, end: dt.datetime | None = None,
                 repository_id: int | None = None, source: SqlEventSource = Depends(source_dep)):
    try:
        return calculate_productivity_metrics(user_id, _window(start, end), source, repository_id=repository_id)
    except UserNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

@router.get("/users/{user_id}/work-pattern")
def work_pattern(user_id: int, start: dt.datetime | None = None, end: dt.datetime | None = None,
                 repository_id: int | None = None, source: SqlEventSource = Depends(source_dep)):
    return get_work_pattern_analysis(user_id, _window(start, end), source, repository_id=repository_id)

@router.get("/users/{user_id}/trends")
def trends(user_id: int, start: dt.datetime | None = None, end: dt.datetime | None = None,
           repository_id: int | None = None, source: SqlEventSource = Depends(source_dep)):
    return detect_productivity_trends(user_id, _window(start, end), source, repository_id=repository_id)

@router.post("/users/{user_id}/repositories/{repository_id}/metrics/process")
def process_metrics(user_id: int, repository_id: int, days: int | None = Query(default=None, ge=1, le=365),
                    source: SqlEventSource = Depends(source_dep), store: SqlMetricStore = Depends(store_dep)):
    n = process_and_save_metrics(source, store, user_id, repository_id,
                                 days=days or settings.aggregation_lookback_days)
    return {"daily_metrics_written": n}

@router.get("/repositories/{repository_id}/velocity")
def velocity(repository_id: int, start: dt.datetime | None = None, end: dt.datetime | None = None,
             source: SqlEventSource = Depends(source_dep), store: SqlMetricStore = Depends(store_dep)):
    try:
        return calculate_team_velocity(repository_id, _window(start, end), source, store)
    except RepositoryNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
