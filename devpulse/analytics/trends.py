"""Period-over-period productivity trend.

Never raises: any failure collapses to a stable, 0 % trend.
"""
import datetime as dt
from typing import Literal
from devpulse.events import EventSource
from devpulse.analytics.productivity import code_quality_score
from devpulse.schemas import TimeRange, BasicProductivity, ComparisonPeriod, TrendMetrics, ProductivityTrend
from devpulse.util import round_half_up
from devpulse.logging import get_logger

log = get_logger("trends")

TREND_THRESHOLD = 10.0
EPOCH = dt.datetime(1970, 1, 1)

def previous_window(window: TimeRange) -> TimeRange:
    duration = window.end - window.start
    end = window.start - dt.timedelta(milliseconds=1)
    return TimeRange(start=end - duration, end=end)

def basic_productivity(user_id: int, window: TimeRange, source: EventSource,
                       repository_id: int | None = None) -> BasicProductivity:
    batch = source.fetch_events(user_id, repository_id, window.start, window.end)
    return BasicProductivity(
        commit_count=len(batch.commits),
        pr_count=len(batch.pull_requests),
        issue_count=len(batch.issues),
        code_quality_score=code_quality_score(batch.commits, batch.pull_requests),
    )

def productivity_score(m: BasicProductivity) -> float:
    return m.commit_count * 1 + m.pr_count * 5 + m.issue_count * 3 + m.code_quality_score * 0.5

def compare_scores(previous: float, current: float) -> tuple[Literal["improving", "stable", "declining"], float]:
    change = (current - previous) / previous * 100 if previous > 0 else 0.0
    if change > TREND_THRESHOLD:
        trend = "improving"
    elif change < -TREND_THRESHOLD:
        trend = "declining"
    else:
        trend = "stable"
    return trend, round_half_up(change, 1)

def detect_productivity_trends(user_id: int, window: TimeRange, source: EventSource,
                               repository_id: int | None = None) -> ProductivityTrend:
    try:
        previous = previous_window(window)
        prev_metrics = basic_productivity(user_id, previous, source, repository_id)
        cur_metrics = basic_productivity(user_id, window, source, repository_id)
        trend, change = compare_scores(productivity_score(prev_metrics), productivity_score(cur_metrics))
        return ProductivityTrend(
            trend=trend,
            percentage_change=change,
            comparison_period=ComparisonPeriod(previous=previous, current=window),
            metrics=TrendMetrics(previous=prev_metrics, current=cur_metrics),
        )
    except Exception:
        log.exception(f"Error detecting productivity trends for user {user_id}")
        return ProductivityTrend(
            trend="stable",
            percentage_change=0.0,
            comparison_period=ComparisonPeriod(previous=TimeRange(start=EPOCH, end=EPOCH), current=window),
            metrics=TrendMetrics(previous=BasicProductivity(), current=BasicProductivity()),
        )
