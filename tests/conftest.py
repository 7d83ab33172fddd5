"""Shared fixtures for the DevPulse test suite."""

import datetime as dt
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from devpulse.db import Base
from devpulse import models
from devpulse.schemas import CommitEvent, PullRequestEvent, ReviewEvent, IssueEvent, EventBatch, DailyMetricRecord


# ── Database ─────────────────────────────────────────────────────────────

@pytest.fixture
def db():
    """Fresh in-memory SQLite session per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def user(db):
    u = models.User(username="octocat", github_id=1)
    db.add(u)
    db.commit()
    return u


@pytest.fixture
def repo(db):
    r = models.Repository(owner="acme", name="api", language="Python")
    db.add(r)
    db.commit()
    return r


# ── Event factories ──────────────────────────────────────────────────────

@pytest.fixture
def make_commit():
    def _factory(at, **overrides):
        defaults = dict(author_id=1, repository_id=1, authored_at=at, additions=10, deletions=5,
                        message="Implement the thing", language="Python")
        defaults.update(overrides)
        return CommitEvent(**defaults)
    return _factory


@pytest.fixture
def make_pr():
    _counter = 0

    def _factory(created_at, merged_at=None, reviews=(), **overrides):
        nonlocal _counter
        _counter += 1
        defaults = dict(id=_counter, author_id=1, repository_id=1, created_at=created_at, merged_at=merged_at,
                        additions=100, deletions=20, review_comments=0,
                        reviews=[ReviewEvent(reviewer_id=r, submitted_at=t) for r, t in reviews])
        defaults.update(overrides)
        return PullRequestEvent(**defaults)
    return _factory


@pytest.fixture
def make_issue():
    def _factory(created_at, closed_at=None, **overrides):
        defaults = dict(author_id=1, repository_id=1, created_at=created_at, closed_at=closed_at)
        defaults.update(overrides)
        return IssueEvent(**defaults)
    return _factory


@pytest.fixture
def make_record():
    """DailyMetricRecord with zero counts unless overridden."""
    def _factory(day, **overrides):
        return DailyMetricRecord(user_id=1, repository_id=1, date=day, **overrides)
    return _factory


# ── Fake collaborators ───────────────────────────────────────────────────

class FakeSource:
    """In-memory EventSource that filters one batch by author and window."""

    def __init__(self, batch: EventBatch | None = None, users=(1,), repositories=(1,)):
        self.batch = batch or EventBatch()
        self.users = set(users)
        self.repositories = set(repositories)
        self.calls = []

    def get_user(self, user_id):
        return object() if user_id in self.users else None

    def get_repository(self, repository_id):
        return object() if repository_id in self.repositories else None

    def _match(self, ev, author_id, repository_id, ts, start, end):
        if author_id is not None and ev.author_id != author_id:
            return False
        if repository_id is not None and ev.repository_id != repository_id:
            return False
        return start <= ts <= end

    def fetch_events(self, user_id, repository_id, start, end):
        self.calls.append((user_id, repository_id, start, end))
        b = self.batch
        return EventBatch(
            commits=[c for c in b.commits if self._match(c, user_id, repository_id, c.authored_at, start, end)],
            pull_requests=[p for p in b.pull_requests if self._match(p, user_id, repository_id, p.created_at, start, end)],
            issues=[i for i in b.issues if self._match(i, user_id, repository_id, i.created_at, start, end)],
            reviewed_pull_requests=list(b.reviewed_pull_requests),
        )

    def fetch_repository_events(self, repository_id, start, end):
        b = self.batch
        return EventBatch(
            commits=[c for c in b.commits if self._match(c, None, repository_id, c.authored_at, start, end)],
            pull_requests=[p for p in b.pull_requests if self._match(p, None, repository_id, p.created_at, start, end)],
            issues=[i for i in b.issues if self._match(i, None, repository_id, i.created_at, start, end)],
        )


class FakeStore:
    """In-memory MetricStore; set `fail_reads` / `fail_history` to simulate outages."""

    def __init__(self, records=(), fail_reads=False, fail_history=False):
        self.records = list(records)
        self.fail_reads = fail_reads
        self.fail_history = fail_history
        self.scores = []
        self.insights = []

    def get_daily_metrics(self, user_id, repository_id, start, end):
        if self.fail_reads:
            raise ConnectionError("metric store unavailable")
        return [r for r in self.records if r.user_id == user_id and start <= r.date <= end
                and (repository_id is None or r.repository_id == repository_id)]

    def get_scored_metrics(self, user_id, repository_id, start, end):
        if self.fail_history:
            raise ConnectionError("metric store unavailable")
        from devpulse.schemas import TrendPoint
        rows = [r for r in self.get_daily_metrics(user_id, repository_id, start, end) if r.burnout_risk_score is not None]
        return [TrendPoint(date=r.date, value=r.burnout_risk_score) for r in sorted(rows, key=lambda r: r.date)]

    def upsert_daily_metric(self, record):
        self.upsert_daily_metrics([record])

    def upsert_daily_metrics(self, records):
        n = 0
        for record in records:
            self.records = [r for r in self.records if (r.user_id, r.repository_id, r.date)
                            != (record.user_id, record.repository_id, record.date)]
            self.records.append(record)
            n += 1
        return n

    def save_risk_score(self, user_id, repository_id, day, score):
        self.scores.append((user_id, repository_id, day, score))

    def get_team_insights(self, repository_id, start, end):
        if self.fail_history:
            raise ConnectionError("metric store unavailable")
        return []

    def upsert_team_insight(self, record):
        self.insights.append(record)


@pytest.fixture
def fake_source():
    return FakeSource


@pytest.fixture
def fake_store():
    return FakeStore


# ── Scenario data ────────────────────────────────────────────────────────

@pytest.fixture
def july_batch(make_commit, make_pr, make_issue):
    """Four commits across the day/week, three PRs (24h, 4h, unmerged), two issues.

    2025-07-01 is a Tuesday; 2025-07-05 is a Saturday.
    """
    d = dt.datetime
    return EventBatch(
        commits=[
            make_commit(d(2025, 7, 1, 14, 0), message="Fix bug in login component", additions=50, deletions=20, language="TypeScript"),
            make_commit(d(2025, 7, 2, 8, 0), message="Add new feature", additions=120, deletions=30, language="TypeScript"),
            make_commit(d(2025, 7, 3, 22, 0), message="Refactor code", additions=80, deletions=60, language="JavaScript"),
            make_commit(d(2025, 7, 5, 10, 0), message="Update README", additions=30, deletions=10, language="Markdown"),
        ],
        pull_requests=[
            make_pr(d(2025, 7, 1, 10, 0), merged_at=d(2025, 7, 2, 10, 0), additions=200, deletions=50, review_comments=5),
            make_pr(d(2025, 7, 2, 14, 0), merged_at=d(2025, 7, 2, 18, 0), additions=30, deletions=20, review_comments=2),
            make_pr(d(2025, 7, 3, 9, 0), additions=150, deletions=100, review_comments=0),
        ],
        issues=[
            make_issue(d(2025, 7, 1, 9, 0), closed_at=d(2025, 7, 3, 9, 0)),
            make_issue(d(2025, 7, 2, 11, 0)),
        ],
    )
