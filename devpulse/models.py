import datetime as dt
from sqlalchemy import String, DateTime, Date, Integer, Float, ForeignKey, Text, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from devpulse.db import Base

class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    github_id: Mapped[int | None] = mapped_column(Integer, unique=True, nullable=True)
    username: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(300), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

class Repository(Base):
    __tablename__ = "repositories"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    github_id: Mapped[int | None] = mapped_column(Integer, unique=True, nullable=True)
    owner: Mapped[str] = mapped_column(String(200))
    name: Mapped[str] = mapped_column(String(200))
    language: Mapped[str | None] = mapped_column(String(100), nullable=True)
    default_branch: Mapped[str] = mapped_column(String(200), default="main")
    last_synced_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

    commits: Mapped[list["Commit"]] = relationship(back_populates="repository")

    __table_args__ = (UniqueConstraint("owner", "name", name="uq_repository"),)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

class Commit(Base):
    __tablename__ = "commits"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id"), index=True)
    author_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    sha: Mapped[str] = mapped_column(String(64))
    message: Mapped[str] = mapped_column(Text, default="")
    authored_at: Mapped[dt.datetime] = mapped_column(DateTime, index=True)
    additions: Mapped[int] = mapped_column(Integer, default=0)
    deletions: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

    repository: Mapped["Repository"] = relationship(back_populates="commits")

    __table_args__ = (UniqueConstraint("repository_id", "sha", name="uq_commit"),)

class PullRequest(Base):
    __tablename__ = "pull_requests"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id"), index=True)
    author_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    number: Mapped[int] = mapped_column(Integer, index=True)
    state: Mapped[str] = mapped_column(String(50))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime)
    merged_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    closed_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    additions: Mapped[int] = mapped_column(Integer, default=0)
    deletions: Mapped[int] = mapped_column(Integer, default=0)
    changed_files: Mapped[int] = mapped_column(Integer, default=0)
    review_comments: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

    reviews: Mapped[list["PullRequestReview"]] = relationship(back_populates="pull_request")

    __table_args__ = (UniqueConstraint("repository_id", "number", name="uq_pr"),)

class PullRequestReview(Base):
    __tablename__ = "pull_request_reviews"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pull_request_id: Mapped[int] = mapped_column(ForeignKey("pull_requests.id"), index=True)
    reviewer_login: Mapped[str] = mapped_column(String(200))
    reviewer_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    state: Mapped[str] = mapped_column(String(50))  # APPROVED / CHANGES_REQUESTED / COMMENTED / DISMISSED
    submitted_at: Mapped[dt.datetime] = mapped_column(DateTime)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

    pull_request: Mapped["PullRequest"] = relationship(back_populates="reviews")

    __table_args__ = (
        UniqueConstraint("pull_request_id", "reviewer_login", "submitted_at", name="uq_pr_review"),
    )

class Issue(Base):
    __tablename__ = "issues"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id"), index=True)
    author_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    number: Mapped[int] = mapped_column(Integer, index=True)
    state: Mapped[str] = mapped_column(String(50))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime)
    closed_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    comments: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (UniqueConstraint("repository_id", "number", name="uq_issue"),)

class DailyMetric(Base):
    __tablename__ = "daily_metrics"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id"))
    date: Mapped[dt.date] = mapped_column(Date)

    commits_count: Mapped[int] = mapped_column(Integer, default=0)
    lines_added: Mapped[int] = mapped_column(Integer, default=0)
    lines_deleted: Mapped[int] = mapped_column(Integer, default=0)
    prs_opened: Mapped[int] = mapped_column(Integer, default=0)
    prs_reviewed: Mapped[int] = mapped_column(Integer, default=0)
    issues_created: Mapped[int] = mapped_column(Integer, default=0)
    issues_resolved: Mapped[int] = mapped_column(Integer, default=0)
    weekend_commits: Mapped[int] = mapped_column(Integer, default=0)
    late_night_commits: Mapped[int] = mapped_column(Integer, default=0)
    code_review_comments: Mapped[int] = mapped_column(Integer, default=0)

    avg_commit_time_hour: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_pr_review_time_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_commit_message_length: Mapped[int | None] = mapped_column(Integer, nullable=True)

    burnout_risk_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "repository_id", "date", name="uq_daily_metric"),
        Index("ix_daily_metric_user_date", "user_id", "date"),
        Index("ix_daily_metric_repo_date", "repository_id", "date"),
    )

class TeamInsight(Base):
    __tablename__ = "team_insights"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id"), index=True)
    date: Mapped[dt.date] = mapped_column(Date)
    member_count: Mapped[int] = mapped_column(Integer, default=0)
    total_commits: Mapped[int] = mapped_column(Integer, default=0)
    total_prs: Mapped[int] = mapped_column(Integer, default=0)
    total_issues: Mapped[int] = mapped_column(Integer, default=0)
    velocity_score: Mapped[float] = mapped_column(Float)
    pr_merge_rate: Mapped[float] = mapped_column(Float)
    issue_resolution_rate: Mapped[float] = mapped_column(Float)
    cycle_time_average: Mapped[float] = mapped_column(Float)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

    __table_args__ = (UniqueConstraint("repository_id", "date", name="uq_team_insight"),)
