"""Personal productivity metrics computed straight from raw events."""
import datetime as dt
import math
from typing import Sequence
from devpulse.events import EventSource
from devpulse.schemas import (
    CommitEvent, PullRequestEvent, TimeRange, TrendPoint, HourBucket, WeekdayBucket, LanguageShare,
    ProductivityMetrics, WorkPatternAnalysis, WorkPatternDay,
)
from devpulse.util import days_in_range, hours_between, is_weekend, round_half_up, sunday_weekday
from devpulse.logging import get_logger

log = get_logger("productivity")

class UserNotFound(LookupError):
    pass

def _avg_rounded(total: float, count: int) -> int | None:
    return int(round_half_up(total / count)) if count else None

def commit_frequency(commits: Sequence[CommitEvent], window: TimeRange) -> list[TrendPoint]:
    by_date = {d: 0 for d in days_in_range(window.start.date(), window.end.date())}
    for c in commits:
        d = c.authored_at.date()
        if d in by_date:
            by_date[d] += 1
    return [TrendPoint(date=d, value=n) for d, n in sorted(by_date.items())]

def work_hours_distribution(commits: Sequence[CommitEvent]) -> list[HourBucket]:
    counts = [0] * 24
    for c in commits:
        counts[c.authored_at.hour] += 1
    return [HourBucket(hour=h, count=n) for h, n in enumerate(counts)]

def weekday_distribution(commits: Sequence[CommitEvent]) -> list[WeekdayBucket]:
    counts = [0] * 7
    for c in commits:
        counts[sunday_weekday(c.authored_at)] += 1
    return [WeekdayBucket(day=d, count=n) for d, n in enumerate(counts)]

def top_languages(commits: Sequence[CommitEvent], limit: int = 5) -> list[LanguageShare]:
    counts: dict[str, int] = {}
    for c in commits:
        if c.language:
            counts[c.language] = counts.get(c.language, 0) + 1

    total = len(commits)
    shares = [
        LanguageShare(language=lang, percentage=round_half_up(n / total, 2) if total else 0.0)
        for lang, n in counts.items()
    ]
    # sorted() is stable, ties keep first-seen order
    return sorted(shares, key=lambda s: s.percentage, reverse=True)[:limit]

def code_quality_score(commits: Sequence[CommitEvent], pull_requests: Sequence[PullRequestEvent]) -> int:
    score = 50

    n = len(commits)
    avg_message = sum(len(c.message) for c in commits) / n if n else 0
    if avg_message > 100:
        score += 15
    elif avg_message > 50:
        score += 10
    elif avg_message > 20:
        score += 5
    elif avg_message < 10:
        score -= 10

    avg_size = sum(c.additions + c.deletions for c in commits) / n if n else 0
    if avg_size < 50:
        score += 10
    elif avg_size > 300:
        score -= 10

    avg_comments = (sum(pr.review_comments for pr in pull_requests) / len(pull_requests)
                    if pull_requests else 0)
    if avg_comments > 5:
        score += 10
    elif avg_comments < 1:
        score -= 5

    weekend_ratio = sum(1 for c in commits if is_weekend(c.authored_at)) / n if n else 0
    if weekend_ratio > 0.3:
        score -= 10

    return min(100, max(0, score))

def calculate_productivity_metrics(user_id: int, window: TimeRange, source: EventSource,
                                   repository_id: int | None = None) -> ProductivityMetrics:
    if source.get_user(user_id) is None:
        raise UserNotFound(f"User {user_id} not found")

    batch = source.fetch_events(user_id, repository_id, window.start, window.end)
    commits, prs, issues = batch.commits, batch.pull_requests, batch.issues

    lines_added = sum(c.additions for c in commits)
    lines_deleted = sum(c.deletions for c in commits)
    merge_times = [hours_between(pr.created_at, pr.merged_at) for pr in prs if pr.merged_at]
    resolve_times = [hours_between(i.created_at, i.closed_at) for i in issues if i.closed_at]

    metrics = ProductivityMetrics(
        user_id=user_id,
        time_range=window,
        commit_count=len(commits),
        lines_added=lines_added,
        lines_deleted=lines_deleted,
        pr_count=len(prs),
        issue_count=len(issues),
        commit_frequency=commit_frequency(commits, window),
        work_hours_distribution=work_hours_distribution(commits),
        weekday_distribution=weekday_distribution(commits),
        top_languages=top_languages(commits),
        avg_commit_size=_avg_rounded(lines_added + lines_deleted, len(commits)),
        avg_pr_size=_avg_rounded(sum(pr.additions + pr.deletions for pr in prs), len(prs)),
        avg_time_to_merge_pr=_avg_rounded(sum(merge_times), len(merge_times)),
        avg_time_to_resolve_issue=_avg_rounded(sum(resolve_times), len(resolve_times)),
        code_quality_score=code_quality_score(commits, prs),
    )
    log.info(f"productivity for user {user_id}: {metrics.commit_count} commits, {metrics.pr_count} PRs")
    return metrics

def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)

def _hhmm(total_minutes: float) -> str:
    hours, minutes = divmod(int(round_half_up(total_minutes)), 60)
    return f"{hours:02d}:{minutes:02d}"

def _std(values: list[float]) -> tuple[float, float]:
    mean = sum(values) / len(values)
    return mean, math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))

def consistency_score(calendar: Sequence[WorkPatternDay]) -> int:
    """0-100, high when daily commit counts and start times are steady."""
    if not calendar:
        return 0

    mean, std = _std([d.commit_count for d in calendar])
    cv = std / mean if mean > 0 else 0

    starts = [_minutes(d.start_time) for d in calendar if d.start_time is not None]
    start_std = _std(starts)[1] if starts else 0

    cv_factor = max(0, 1 - cv)
    start_factor = max(0, 1 - start_std / 120)  # two hours of drift scores zero
    return int(min(100, max(0, round_half_up((cv_factor * 0.6 + start_factor * 0.4) * 100))))

def get_work_pattern_analysis(user_id: int, window: TimeRange, source: EventSource,
                              repository_id: int | None = None) -> WorkPatternAnalysis:
    batch = source.fetch_events(user_id, repository_id, window.start, window.end)
    commits = sorted(batch.commits, key=lambda c: c.authored_at)

    by_date: dict[dt.date, list[dt.datetime]] = {}
    for c in commits:
        by_date.setdefault(c.authored_at.date(), []).append(c.authored_at)

    calendar = [
        WorkPatternDay(
            date=d,
            start_time=times[0].strftime("%H:%M"),
            end_time=times[-1].strftime("%H:%M"),
            commit_count=len(times),
        )
        for d, times in sorted(by_date.items())
    ]

    starts = [_minutes(d.start_time) for d in calendar]
    ends = [_minutes(d.end_time) for d in calendar]
    n = len(commits)
    weekend = sum(1 for c in commits if is_weekend(c.authored_at))
    after_hours = sum(1 for c in commits if c.authored_at.hour < 9 or c.authored_at.hour >= 17)

    return WorkPatternAnalysis(
        average_start_time=_hhmm(sum(starts) / len(starts) if starts else 9 * 60),
        average_end_time=_hhmm(sum(ends) / len(ends) if ends else 17 * 60),
        weekend_work_percentage=int(round_half_up(weekend / n * 100)) if n else 0,
        after_hours_percentage=int(round_half_up(after_hours / n * 100)) if n else 0,
        consistency_score=consistency_score(calendar),
        work_pattern_calendar=calendar,
    )
