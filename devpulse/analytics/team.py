"""Repository-wide delivery velocity."""
import datetime as dt
from devpulse.events import EventSource
from devpulse.store import MetricStore
from devpulse.schemas import TimeRange, TeamVelocity, TeamInsightRecord, TrendPoint
from devpulse.util import hours_between, round_half_up
from devpulse.logging import get_logger

log = get_logger("team")

VELOCITY_WEIGHTS = {
    "commit_frequency": 0.25,
    "pr_merge_rate": 0.3,
    "issue_resolution_rate": 0.25,
    "cycle_time": 0.2,
}

IDEAL_CYCLE_HOURS = 24
POOR_CYCLE_HOURS = 168
MAX_COMMITS_PER_DAY = 5

class RepositoryNotFound(LookupError):
    pass

def calculate_velocity_score(commit_frequency: float, pr_merge_rate: float,
                             issue_resolution_rate: float, cycle_time_average: float) -> int:
    cycle = 1 - (cycle_time_average - IDEAL_CYCLE_HOURS) / (POOR_CYCLE_HOURS - IDEAL_CYCLE_HOURS)
    cycle = max(0.0, min(1.0, cycle))
    score = (
        min(1.0, commit_frequency / MAX_COMMITS_PER_DAY) * VELOCITY_WEIGHTS["commit_frequency"]
        + pr_merge_rate * VELOCITY_WEIGHTS["pr_merge_rate"]
        + issue_resolution_rate * VELOCITY_WEIGHTS["issue_resolution_rate"]
        + cycle * VELOCITY_WEIGHTS["cycle_time"]
    )
    return int(round_half_up(score * 100))

def get_velocity_trend(store: MetricStore, repository_id: int, window: TimeRange) -> list[TrendPoint]:
    try:
        return store.get_team_insights(repository_id, window.start.date(), window.end.date())
    except Exception as exc:
        log.warning("Failed to load velocity history for repo %s: %s", repository_id, exc)
        return []

def calculate_team_velocity(repository_id: int, window: TimeRange, source: EventSource,
                            store: MetricStore) -> TeamVelocity:
    if source.get_repository(repository_id) is None:
        raise RepositoryNotFound(f"Repository {repository_id} not found")

    batch = source.fetch_repository_events(repository_id, window.start, window.end)
    days = (window.end.date() - window.start.date()).days + 1
    merged = [pr for pr in batch.pull_requests if pr.merged_at]
    closed = [i for i in batch.issues if i.closed_at]
    cycle_times = [hours_between(pr.created_at, pr.merged_at) for pr in merged]

    commit_frequency = len(batch.commits) / max(1, days)
    pr_merge_rate = len(merged) / len(batch.pull_requests) if batch.pull_requests else 0.0
    issue_resolution_rate = len(closed) / len(batch.issues) if batch.issues else 0.0
    cycle_time_average = sum(cycle_times) / len(cycle_times) if cycle_times else 0.0

    members = {c.author_id for c in batch.commits} | {pr.author_id for pr in batch.pull_requests}
    members.discard(None)

    return TeamVelocity(
        repository_id=repository_id,
        velocity_score=calculate_velocity_score(commit_frequency, pr_merge_rate,
                                                issue_resolution_rate, cycle_time_average),
        commit_frequency=commit_frequency,
        pr_merge_rate=pr_merge_rate,
        issue_resolution_rate=issue_resolution_rate,
        cycle_time_average=cycle_time_average,
        member_count=len(members),
        total_commits=len(batch.commits),
        total_prs=len(batch.pull_requests),
        total_issues=len(batch.issues),
        historical_trend=get_velocity_trend(store, repository_id, window),
    )

def save_team_insight(store: MetricStore, velocity: TeamVelocity, day: dt.date) -> None:
    store.upsert_team_insight(TeamInsightRecord(
        repository_id=velocity.repository_id,
        date=day,
        member_count=velocity.member_count,
        total_commits=velocity.total_commits,
        total_prs=velocity.total_prs,
        total_issues=velocity.total_issues,
        velocity_score=velocity.velocity_score,
        pr_merge_rate=velocity.pr_merge_rate,
        issue_resolution_rate=velocity.issue_resolution_rate,
        cycle_time_average=velocity.cycle_time_average,
    ))
