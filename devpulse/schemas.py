from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, List, Optional
import datetime as dt

# --- event records (Event Source boundary) ---

class CommitEvent(BaseModel):
    id: int | None = None
    author_id: int | None
    repository_id: int
    authored_at: dt.datetime
    additions: int = 0
    deletions: int = 0
    message: str = ""
    language: str | None = None

class ReviewEvent(BaseModel):
    reviewer_id: int | None
    submitted_at: dt.datetime

class PullRequestEvent(BaseModel):
    id: int | None = None
    author_id: int | None
    repository_id: int
    created_at: dt.datetime
    merged_at: dt.datetime | None = None
    additions: int = 0
    deletions: int = 0
    review_comments: int = 0
    reviews: List[ReviewEvent] = Field(default_factory=list)

class IssueEvent(BaseModel):
    id: int | None = None
    author_id: int | None
    repository_id: int
    created_at: dt.datetime
    closed_at: dt.datetime | None = None

class EventBatch(BaseModel):
    commits: List[CommitEvent] = Field(default_factory=list)
    pull_requests: List[PullRequestEvent] = Field(default_factory=list)
    issues: List[IssueEvent] = Field(default_factory=list)
    # PRs by other authors that the user reviewed; only feed the reviewed count
    reviewed_pull_requests: List[PullRequestEvent] = Field(default_factory=list)

# --- daily aggregate (Metric Store boundary) ---

class DailyMetricRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    repository_id: int
    date: dt.date

    commits_count: int = 0
    lines_added: int = 0
    lines_deleted: int = 0
    prs_opened: int = 0
    prs_reviewed: int = 0
    issues_created: int = 0
    issues_resolved: int = 0
    weekend_commits: int = 0
    late_night_commits: int = 0
    code_review_comments: int = 0

    avg_commit_time_hour: float | None = None
    avg_pr_review_time_hours: float | None = None
    avg_commit_message_length: int | None = None

    burnout_risk_score: float | None = None

class TrendPoint(BaseModel):
    date: dt.date
    value: float

class TimeRange(BaseModel):
    start: dt.datetime
    end: dt.datetime

# --- burnout ---

class BurnoutFactors(BaseModel):
    work_hours_pattern: float = 0.0
    code_quality_trend: float = 0.0
    collaboration_level: float = 0.0
    workload_distribution: float = 0.0
    time_to_resolution: float = 0.0
    weekend_work_frequency: float = 0.0

class BurnoutFactor(BaseModel):
    name: str
    impact: float = Field(ge=0.0, le=1.0)
    description: str

class BurnoutRiskAssessment(BaseModel):
    risk_score: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=1.0)
    key_factors: List[BurnoutFactor]
    recommendations: List[str]
    historical_trend: List[TrendPoint] = Field(default_factory=list)

# --- productivity ---

class HourBucket(BaseModel):
    hour: int
    count: int

class WeekdayBucket(BaseModel):
    day: int  # 0 = Sunday
    count: int

class LanguageShare(BaseModel):
    language: str
    percentage: float

class ProductivityMetrics(BaseModel):
    user_id: int
    time_range: TimeRange
    commit_count: int
    lines_added: int
    lines_deleted: int
    pr_count: int
    issue_count: int
    commit_frequency: List[TrendPoint]
    work_hours_distribution: List[HourBucket]
    weekday_distribution: List[WeekdayBucket]
    top_languages: List[LanguageShare]
    avg_commit_size: Optional[int]
    avg_pr_size: Optional[int]
    avg_time_to_merge_pr: Optional[int]
    avg_time_to_resolve_issue: Optional[int]
    code_quality_score: int

class WorkPatternDay(BaseModel):
    date: dt.date
    start_time: str | None
    end_time: str | None
    commit_count: int

class WorkPatternAnalysis(BaseModel):
    average_start_time: str
    average_end_time: str
    weekend_work_percentage: int
    after_hours_percentage: int
    consistency_score: int
    work_pattern_calendar: List[WorkPatternDay]

# --- trends ---

class BasicProductivity(BaseModel):
    commit_count: int = 0
    pr_count: int = 0
    issue_count: int = 0
    code_quality_score: int = 0

class ComparisonPeriod(BaseModel):
    previous: TimeRange
    current: TimeRange

class TrendMetrics(BaseModel):
    previous: BasicProductivity
    current: BasicProductivity

class ProductivityTrend(BaseModel):
    trend: Literal["improving", "stable", "declining"]
    percentage_change: float
    comparison_period: ComparisonPeriod
    metrics: TrendMetrics

# --- team ---

class TeamVelocity(BaseModel):
    repository_id: int
    velocity_score: int
    commit_frequency: float
    pr_merge_rate: float
    issue_resolution_rate: float
    cycle_time_average: float
    member_count: int
    total_commits: int = 0
    total_prs: int = 0
    total_issues: int = 0
    historical_trend: List[TrendPoint] = Field(default_factory=list)

class TeamInsightRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    repository_id: int
    date: dt.date
    member_count: int = 0
    total_commits: int = 0
    total_prs: int = 0
    total_issues: int = 0
    velocity_score: float
    pr_merge_rate: float
    issue_resolution_rate: float
    cycle_time_average: float
