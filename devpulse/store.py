"""Metric Store: daily aggregates keyed by (user, repository, date).

Upserts are an explicit find-then-update-or-create so re-aggregating a day is
idempotent on any backing database.
"""
import datetime as dt
from typing import Iterable, Protocol
from sqlalchemy.orm import Session
from devpulse import models
from devpulse.schemas import DailyMetricRecord, TeamInsightRecord, TrendPoint

# aggregate columns written by the daily aggregator; the stored risk score is not among them
_AGGREGATE_FIELDS = (
    "commits_count", "lines_added", "lines_deleted", "prs_opened", "prs_reviewed",
    "issues_created", "issues_resolved", "weekend_commits", "late_night_commits",
    "code_review_comments", "avg_commit_time_hour", "avg_pr_review_time_hours",
    "avg_commit_message_length",
)

_INSIGHT_FIELDS = (
    "member_count", "total_commits", "total_prs", "total_issues", "velocity_score",
    "pr_merge_rate", "issue_resolution_rate", "cycle_time_average",
)

class MetricStore(Protocol):
    def get_daily_metrics(self, user_id: int, repository_id: int | None,
                          start: dt.date, end: dt.date) -> list[DailyMetricRecord]: ...
    def get_scored_metrics(self, user_id: int, repository_id: int | None,
                           start: dt.date, end: dt.date) -> list[TrendPoint]: ...
    def upsert_daily_metric(self, record: DailyMetricRecord) -> None: ...
    def upsert_daily_metrics(self, records: Iterable[DailyMetricRecord]) -> int: ...
    def save_risk_score(self, user_id: int, repository_id: int, day: dt.date, score: float) -> None: ...
    def get_team_insights(self, repository_id: int, start: dt.date, end: dt.date) -> list[TrendPoint]: ...
    def upsert_team_insight(self, record: TeamInsightRecord) -> None: ...

class SqlMetricStore:
    def __init__(self, db: Session):
        self.db = db

    def _find(self, user_id: int, repository_id: int, day: dt.date) -> models.DailyMetric | None:
        return (self.db.query(models.DailyMetric)
                .filter_by(user_id=user_id, repository_id=repository_id, date=day)
                .one_or_none())

    def _window(self, user_id: int, repository_id: int | None, start: dt.date, end: dt.date):
        q = (self.db.query(models.DailyMetric)
             .filter(models.DailyMetric.user_id == user_id)
             .filter(models.DailyMetric.date >= start, models.DailyMetric.date <= end))
        if repository_id is not None:
            q = q.filter(models.DailyMetric.repository_id == repository_id)
        return q

    def get_daily_metrics(self, user_id: int, repository_id: int | None,
                          start: dt.date, end: dt.date) -> list[DailyMetricRecord]:
        rows = self._window(user_id, repository_id, start, end).order_by(models.DailyMetric.date.asc()).all()
        return [DailyMetricRecord.model_validate(r) for r in rows]

    def get_scored_metrics(self, user_id: int, repository_id: int | None,
                           start: dt.date, end: dt.date) -> list[TrendPoint]:
        rows = (self._window(user_id, repository_id, start, end)
                .filter(models.DailyMetric.burnout_risk_score.is_not(None))
                .order_by(models.DailyMetric.date.asc())
                .all())
        return [TrendPoint(date=r.date, value=float(r.burnout_risk_score)) for r in rows]

    def _apply(self, record: DailyMetricRecord) -> None:
        values = record.model_dump(include=set(_AGGREGATE_FIELDS))
        existing = self._find(record.user_id, record.repository_id, record.date)
        if existing:
            for k, v in values.items():
                setattr(existing, k, v)
        else:
            self.db.add(models.DailyMetric(
                user_id=record.user_id,
                repository_id=record.repository_id,
                date=record.date,
                **values,
            ))

    def upsert_daily_metric(self, record: DailyMetricRecord) -> None:
        self.upsert_daily_metrics([record])

    def upsert_daily_metrics(self, records: Iterable[DailyMetricRecord]) -> int:
        upserts = 0
        for record in records:
            self._apply(record)
            # flush so a repeated key in the same batch finds the pending row
            self.db.flush()
            upserts += 1
        self.db.commit()
        return upserts

    def save_risk_score(self, user_id: int, repository_id: int, day: dt.date, score: float) -> None:
        existing = self._find(user_id, repository_id, day)
        if existing:
            existing.burnout_risk_score = float(score)
        else:
            self.db.add(models.DailyMetric(
                user_id=user_id,
                repository_id=repository_id,
                date=day,
                burnout_risk_score=float(score),
            ))
        self.db.commit()

    def get_team_insights(self, repository_id: int, start: dt.date, end: dt.date) -> list[TrendPoint]:
        rows = (self.db.query(models.TeamInsight)
                .filter(models.TeamInsight.repository_id == repository_id)
                .filter(models.TeamInsight.date >= start, models.TeamInsight.date <= end)
                .order_by(models.TeamInsight.date.asc())
                .all())
        return [TrendPoint(date=r.date, value=float(r.velocity_score)) for r in rows]

    def upsert_team_insight(self, record: TeamInsightRecord) -> None:
        values = record.model_dump(include=set(_INSIGHT_FIELDS))
        existing = (self.db.query(models.TeamInsight)
                    .filter_by(repository_id=record.repository_id, date=record.date)
                    .one_or_none())
        if existing:
            for k, v in values.items():
                setattr(existing, k, v)
        else:
            self.db.add(models.TeamInsight(repository_id=record.repository_id, date=record.date, **values))
        self.db.commit()
