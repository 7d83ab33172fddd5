"""Burnout factor model and risk scorer.

Six factors, each in [0, 1], are derived from a window of daily aggregates
and combined with fixed weights into a 0-100 risk score. The band tables
below are policy; keep them exactly as they are.
"""
import datetime as dt
import math
from typing import Sequence
from devpulse.store import MetricStore
from devpulse.schemas import DailyMetricRecord, BurnoutFactors, BurnoutFactor, BurnoutRiskAssessment, TrendPoint
from devpulse.util import round_half_up
from devpulse.logging import get_logger

log = get_logger("burnout")

FACTOR_WEIGHTS = {
    "work_hours_pattern": 0.25,
    "code_quality_trend": 0.15,
    "collaboration_level": 0.15,
    "workload_distribution": 0.20,
    "time_to_resolution": 0.10,
    "weekend_work_frequency": 0.15,
}

FACTOR_NAMES = {
    "work_hours_pattern": "Work Hours Pattern",
    "code_quality_trend": "Code Quality Trend",
    "collaboration_level": "Collaboration Level",
    "workload_distribution": "Workload Distribution",
    "time_to_resolution": "Time to Resolution",
    "weekend_work_frequency": "Weekend Work Frequency",
}

# (exclusive upper bound, value) pairs, first match wins
MESSAGE_LENGTH_BANDS = ((10, 0.8), (20, 0.6), (50, 0.4), (100, 0.2))
REVIEW_COMMENT_BANDS = ((1, 0.4), (3, 0.3), (5, 0.2), (10, 0.1))

# (exclusive lower bound, value) pairs, first match wins
WORKLOAD_CV_BANDS = ((2.0, 1.0), (1.5, 0.8), (1.0, 0.6), (0.5, 0.4))
REVIEW_HOURS_BANDS = ((72, 1.0), (48, 0.8), (24, 0.6), (12, 0.4), (4, 0.2))
WEEKEND_RATIO_BANDS = ((0.5, 1.0), (0.3, 0.8), (0.2, 0.6), (0.1, 0.4), (0.0, 0.2))

# descriptions from highest band (> 0.8) to lowest (<= 0.2)
FACTOR_DESCRIPTIONS = {
    "work_hours_pattern": (
        "Significant work during late night hours",
        "Frequent work outside normal hours",
        "Some work outside normal hours",
        "Occasional work outside normal hours",
        "Work mostly during normal hours",
    ),
    "code_quality_trend": (
        "Very short commit messages, potential quality issues",
        "Short commit messages, may indicate rushed work",
        "Average commit message quality",
        "Good commit message quality",
        "Excellent commit message quality",
    ),
    "collaboration_level": (
        "Very low collaboration and code review activity",
        "Limited collaboration with team members",
        "Moderate collaboration and code review",
        "Good collaboration with team members",
        "Excellent collaboration and code review practices",
    ),
    "workload_distribution": (
        "Highly uneven workload with significant spikes",
        "Uneven workload distribution",
        "Somewhat uneven workload",
        "Relatively even workload",
        "Very consistent workload distribution",
    ),
    "time_to_resolution": (
        "Very long PR review times (3+ days)",
        "Long PR review times (2-3 days)",
        "Moderate PR review times (1-2 days)",
        "Quick PR review times (12-24 hours)",
        "Very quick PR review times (< 12 hours)",
    ),
    "weekend_work_frequency": (
        "Very frequent weekend work",
        "Regular weekend work",
        "Occasional weekend work",
        "Rare weekend work",
        "Almost no weekend work",
    ),
}

FACTOR_RECOMMENDATIONS = {
    "work_hours_pattern": "Try to limit work during late night hours and establish more regular working hours.",
    "code_quality_trend": "Take more time to write detailed commit messages and focus on code quality.",
    "collaboration_level": "Increase collaboration with team members through more code reviews and discussions.",
    "workload_distribution": "Work on distributing your workload more evenly throughout the week.",
    "time_to_resolution": "Try to reduce PR review times by breaking down changes into smaller, more manageable pieces.",
    "weekend_work_frequency": "Reduce weekend work to ensure proper rest and recovery time.",
}

HIGH_RISK_RECOMMENDATIONS = (
    "Consider taking time off to recharge and prevent burnout.",
    "Discuss workload concerns with your manager or team lead.",
)
ELEVATED_RISK_RECOMMENDATIONS = (
    "Monitor your work patterns and try to maintain better work-life balance.",
    "Consider delegating some tasks or asking for help when needed.",
)
FALLBACK_RECOMMENDATIONS = (
    "Regularly review your work patterns and make adjustments as needed.",
    "Take short breaks during the day to maintain focus and productivity.",
    "Maintain open communication with your team about workload and capacity.",
)

def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, value))

def _below(value: float, bands, default: float) -> float:
    for bound, v in bands:
        if value < bound:
            return v
    return default

def _above(value: float, bands, default: float) -> float:
    for bound, v in bands:
        if value > bound:
            return v
    return default

def _mean_of(values: list[float], default: float) -> float:
    return sum(values) / len(values) if values else default

def _has_activity(m: DailyMetricRecord) -> bool:
    return bool(
        m.commits_count or m.prs_opened or m.prs_reviewed or m.issues_created or m.issues_resolved
        or m.avg_commit_time_hour is not None or m.avg_pr_review_time_hours is not None
    )

def work_hours_pattern(metrics: Sequence[DailyMetricRecord]) -> float:
    total_commits = sum(m.commits_count for m in metrics)
    late_night = sum(m.late_night_commits for m in metrics)
    late_ratio = late_night / total_commits if total_commits > 0 else 0
    avg_hour = _mean_of([m.avg_commit_time_hour for m in metrics if m.avg_commit_time_hour is not None], 12)

    value = late_ratio * 0.7
    if avg_hour < 9:
        value += 0.3 * (1 - avg_hour / 9)
    elif avg_hour > 17:
        value += 0.3 * ((avg_hour - 17) / 7)  # midnight is the worst case
    return _clamp(value)

def code_quality_trend(metrics: Sequence[DailyMetricRecord]) -> float:
    avg_len = _mean_of([m.avg_commit_message_length for m in metrics if m.avg_commit_message_length is not None], 0)
    return _clamp(_below(avg_len, MESSAGE_LENGTH_BANDS, 0.1))

def collaboration_level(metrics: Sequence[DailyMetricRecord]) -> float:
    opened = sum(m.prs_opened for m in metrics)
    reviewed = sum(m.prs_reviewed for m in metrics)
    comments = sum(m.code_review_comments for m in metrics)

    review_ratio = reviewed / opened if opened > 0 else 0
    avg_comments = comments / opened if opened > 0 else 0
    value = (1 - min(1, review_ratio)) * 0.6
    value += _below(avg_comments, REVIEW_COMMENT_BANDS, 0.0)
    return _clamp(value)

def workload_distribution(metrics: Sequence[DailyMetricRecord]) -> float:
    counts = [m.commits_count for m in metrics]
    mean = sum(counts) / len(counts)
    variance = sum((c - mean) ** 2 for c in counts) / len(counts)
    cv = math.sqrt(variance) / mean if mean > 0 else 0
    return _clamp(_above(cv, WORKLOAD_CV_BANDS, 0.2))

def time_to_resolution(metrics: Sequence[DailyMetricRecord]) -> float:
    avg_hours = _mean_of([m.avg_pr_review_time_hours for m in metrics if m.avg_pr_review_time_hours is not None], 0)
    return _clamp(_above(avg_hours, REVIEW_HOURS_BANDS, 0.1))

def weekend_work_frequency(metrics: Sequence[DailyMetricRecord]) -> float:
    total_commits = sum(m.commits_count for m in metrics)
    weekend = sum(m.weekend_commits for m in metrics)
    ratio = weekend / total_commits if total_commits > 0 else 0
    return _clamp(_above(ratio, WEEKEND_RATIO_BANDS, 0.0))

def calculate_burnout_factors(metrics: Sequence[DailyMetricRecord]) -> BurnoutFactors:
    """All factors are 0 when the window holds no activity at all."""
    if not metrics or not any(_has_activity(m) for m in metrics):
        return BurnoutFactors()
    return BurnoutFactors(
        work_hours_pattern=work_hours_pattern(metrics),
        code_quality_trend=code_quality_trend(metrics),
        collaboration_level=collaboration_level(metrics),
        workload_distribution=workload_distribution(metrics),
        time_to_resolution=time_to_resolution(metrics),
        weekend_work_frequency=weekend_work_frequency(metrics),
    )

def calculate_risk_score(factors: BurnoutFactors) -> int:
    weighted = sum(getattr(factors, name) * weight for name, weight in FACTOR_WEIGHTS.items())
    return int(min(100, max(0, round_half_up(weighted * 100))))

def calculate_confidence(metrics: Sequence[DailyMetricRecord]) -> float:
    if not metrics:
        return 0.0

    completeness = 0.0
    if any(m.commits_count > 0 for m in metrics):
        completeness += 0.3
    if any(m.prs_opened > 0 or m.prs_reviewed > 0 for m in metrics):
        completeness += 0.3
    if any(m.issues_created > 0 or m.issues_resolved > 0 for m in metrics):
        completeness += 0.2
    if any(m.avg_commit_time_hour is not None or m.avg_pr_review_time_hours is not None for m in metrics):
        completeness += 0.2

    # two weeks of data for full confidence
    volume = min(1, len(metrics) / 14)
    return _clamp(completeness * volume)

def describe_factor(name: str, impact: float) -> str:
    bands = FACTOR_DESCRIPTIONS[name]
    if impact > 0.8:
        return bands[0]
    if impact > 0.6:
        return bands[1]
    if impact > 0.4:
        return bands[2]
    if impact > 0.2:
        return bands[3]
    return bands[4]

def get_key_factors(factors: BurnoutFactors, limit: int = 3) -> list[BurnoutFactor]:
    ranked = sorted(FACTOR_NAMES, key=lambda name: getattr(factors, name), reverse=True)
    return [
        BurnoutFactor(
            name=FACTOR_NAMES[name],
            impact=round_half_up(getattr(factors, name), 2),
            description=describe_factor(name, getattr(factors, name)),
        )
        for name in ranked[:limit]
    ]

def generate_recommendations(factors: BurnoutFactors, risk_score: int) -> list[str]:
    recommendations: list[str] = []
    if risk_score > 70:
        recommendations.extend(HIGH_RISK_RECOMMENDATIONS)
    elif risk_score > 50:
        recommendations.extend(ELEVATED_RISK_RECOMMENDATIONS)

    for name, text in FACTOR_RECOMMENDATIONS.items():
        if getattr(factors, name) > 0.6:
            recommendations.append(text)

    if len(recommendations) < 3:
        recommendations.extend(FALLBACK_RECOMMENDATIONS)
    return recommendations[:5]

def _window(days: int, now: dt.datetime | None) -> tuple[dt.date, dt.date]:
    end = (now or dt.datetime.utcnow()).date()
    return end - dt.timedelta(days=max(days, 1) - 1), end

def get_historical_trend(store: MetricStore, user_id: int, repository_id: int | None,
                         days: int = 30, now: dt.datetime | None = None) -> list[TrendPoint]:
    start, end = _window(days, now)
    try:
        return store.get_scored_metrics(user_id, repository_id, start, end)
    except Exception as exc:
        log.warning("Failed to load burnout history for user %s: %s", user_id, exc)
        return []

def calculate_burnout_risk(user_id: int, store: MetricStore, repository_id: int | None = None,
                           days: int = 30, now: dt.datetime | None = None) -> BurnoutRiskAssessment:
    start, end = _window(days, now)
    metrics = store.get_daily_metrics(user_id, repository_id, start, end)

    factors = calculate_burnout_factors(metrics)
    risk_score = calculate_risk_score(factors)
    assessment = BurnoutRiskAssessment(
        risk_score=risk_score,
        confidence=calculate_confidence(metrics),
        key_factors=get_key_factors(factors),
        recommendations=generate_recommendations(factors, risk_score),
        historical_trend=get_historical_trend(store, user_id, repository_id, days, now),
    )
    log.info(f"burnout risk for user {user_id}: score={risk_score} over {len(metrics)} days")
    return assessment

def save_burnout_risk_score(store: MetricStore, user_id: int, repository_id: int,
                            day: dt.date, risk_score: float) -> None:
    store.save_risk_score(user_id, repository_id, day, risk_score)
