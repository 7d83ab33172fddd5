"""Daily Aggregator.

Reduces a user's raw events for one calendar day into a `DailyMetricRecord`.
It is invoked once per day of a range so that days without activity still
produce a zero-valued record. Averages over empty sets are None, never 0.
"""
import datetime as dt
from devpulse.events import EventSource
from devpulse.store import MetricStore
from devpulse.schemas import EventBatch, DailyMetricRecord
from devpulse.util import day_bounds, days_in_range, hours_between, is_late_night, is_weekend, round_half_up
from devpulse.logging import get_logger

log = get_logger("aggregator")

def _within(ts: dt.datetime | None, start: dt.datetime, end: dt.datetime) -> bool:
    return ts is not None and start <= ts <= end

def _mean(values: list[float]) -> float | None:
    return sum(values) / len(values) if values else None

def aggregate_day(batch: EventBatch, user_id: int, repository_id: int,
                  day_start: dt.datetime, day_end: dt.datetime) -> DailyMetricRecord:
    commits = [c for c in batch.commits if _within(c.authored_at, day_start, day_end)]
    authored_prs = [pr for pr in batch.pull_requests if pr.author_id == user_id]
    day_prs = [pr for pr in authored_prs if _within(pr.created_at, day_start, day_end)]
    day_issues = [i for i in batch.issues if _within(i.created_at, day_start, day_end)]
    resolved_issues = [i for i in batch.issues if _within(i.closed_at, day_start, day_end)]

    # other authors' PRs only; a PR counts once however many reviews the user submitted that day
    reviewed: set[int] = set()
    for idx, pr in enumerate(batch.reviewed_pull_requests):
        key = pr.id if pr.id is not None else -(idx + 1)
        if any(rv.reviewer_id == user_id and _within(rv.submitted_at, day_start, day_end) for rv in pr.reviews):
            reviewed.add(key)

    commit_hours = [c.authored_at.hour for c in commits]
    review_times = [hours_between(pr.created_at, pr.merged_at) for pr in day_prs if pr.merged_at]
    message_lengths = [len(c.message) for c in commits]
    avg_message_length = _mean(message_lengths)

    return DailyMetricRecord(
        user_id=user_id,
        repository_id=repository_id,
        date=day_start.date(),
        commits_count=len(commits),
        lines_added=sum(c.additions for c in commits),
        lines_deleted=sum(c.deletions for c in commits),
        prs_opened=len(day_prs),
        prs_reviewed=len(reviewed),
        issues_created=len(day_issues),
        issues_resolved=len(resolved_issues),
        weekend_commits=sum(1 for c in commits if is_weekend(c.authored_at)),
        late_night_commits=sum(1 for c in commits if is_late_night(c.authored_at)),
        code_review_comments=sum(pr.review_comments for pr in day_prs),
        avg_commit_time_hour=_mean(commit_hours),
        avg_pr_review_time_hours=_mean(review_times),
        avg_commit_message_length=int(round_half_up(avg_message_length)) if avg_message_length is not None else None,
    )

def aggregate_range(batch: EventBatch, user_id: int, repository_id: int,
                    start: dt.date, end: dt.date) -> list[DailyMetricRecord]:
    records = []
    for day in days_in_range(start, end):
        day_start, day_end = day_bounds(day)
        records.append(aggregate_day(batch, user_id, repository_id, day_start, day_end))
    return records

def process_raw_data(source: EventSource, user_id: int, repository_id: int,
                     start: dt.datetime, end: dt.datetime) -> list[DailyMetricRecord]:
    range_start, _ = day_bounds(start.date())
    _, range_end = day_bounds(end.date())
    batch = source.fetch_events(user_id, repository_id, range_start, range_end)
    log.info(f"aggregating user {user_id} repo {repository_id}: {len(batch.commits)} commits, "
             f"{len(batch.pull_requests)} PRs, {len(batch.issues)} issues")
    return aggregate_range(batch, user_id, repository_id, start.date(), end.date())

def save_processed_metrics(store: MetricStore, records: list[DailyMetricRecord]) -> int:
    return store.upsert_daily_metrics(records)

def process_and_save_metrics(source: EventSource, store: MetricStore, user_id: int, repository_id: int,
                             days: int = 30, now: dt.datetime | None = None) -> int:
    end = now or dt.datetime.utcnow()
    start = end - dt.timedelta(days=days)
    records = process_raw_data(source, user_id, repository_id, start, end)
    n = save_processed_metrics(store, records)
    log.info(f"daily metrics upserted: {n} for user {user_id} repo {repository_id}")
    return n
