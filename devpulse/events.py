"""Event Source: time-bounded commit, pull request and issue records.

The engine only sees `EventBatch` objects; `SqlEventSource` is the adapter
over the tables the GitHub ingest fills.
"""
import datetime as dt
from typing import Protocol
from sqlalchemy.orm import Session, joinedload, selectinload
from devpulse import models
from devpulse.schemas import CommitEvent, PullRequestEvent, ReviewEvent, IssueEvent, EventBatch

class EventSource(Protocol):
    def get_user(self, user_id: int) -> models.User | None: ...
    def get_repository(self, repository_id: int) -> models.Repository | None: ...
    def fetch_events(self, user_id: int, repository_id: int | None,
                     start: dt.datetime, end: dt.datetime) -> EventBatch: ...
    def fetch_repository_events(self, repository_id: int,
                                start: dt.datetime, end: dt.datetime) -> EventBatch: ...

def _commit_event(c: models.Commit) -> CommitEvent:
    return CommitEvent(
        id=c.id,
        author_id=c.author_id,
        repository_id=c.repository_id,
        authored_at=c.authored_at,
        additions=c.additions or 0,
        deletions=c.deletions or 0,
        message=c.message or "",
        language=c.repository.language if c.repository else None,
    )

def _pr_event(pr: models.PullRequest) -> PullRequestEvent:
    return PullRequestEvent(
        id=pr.id,
        author_id=pr.author_id,
        repository_id=pr.repository_id,
        created_at=pr.created_at,
        merged_at=pr.merged_at,
        additions=pr.additions or 0,
        deletions=pr.deletions or 0,
        review_comments=pr.review_comments or 0,
        reviews=[ReviewEvent(reviewer_id=rv.reviewer_id, submitted_at=rv.submitted_at) for rv in pr.reviews],
    )

def _issue_event(i: models.Issue) -> IssueEvent:
    return IssueEvent(
        id=i.id,
        author_id=i.author_id,
        repository_id=i.repository_id,
        created_at=i.created_at,
        closed_at=i.closed_at,
    )

class SqlEventSource:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> models.User | None:
        return self.db.get(models.User, user_id)

    def get_repository(self, repository_id: int) -> models.Repository | None:
        return self.db.get(models.Repository, repository_id)

    def _commits(self, start: dt.datetime, end: dt.datetime, repository_id: int | None, author_id: int | None):
        q = (self.db.query(models.Commit)
             .options(joinedload(models.Commit.repository))
             .filter(models.Commit.authored_at >= start, models.Commit.authored_at <= end))
        if author_id is not None:
            q = q.filter(models.Commit.author_id == author_id)
        if repository_id is not None:
            q = q.filter(models.Commit.repository_id == repository_id)
        return q.order_by(models.Commit.authored_at.asc()).all()

    def _pull_requests(self, start: dt.datetime, end: dt.datetime, repository_id: int | None, author_id: int | None):
        q = (self.db.query(models.PullRequest)
             .options(selectinload(models.PullRequest.reviews))
             .filter(models.PullRequest.created_at >= start, models.PullRequest.created_at <= end))
        if author_id is not None:
            q = q.filter(models.PullRequest.author_id == author_id)
        if repository_id is not None:
            q = q.filter(models.PullRequest.repository_id == repository_id)
        return q.order_by(models.PullRequest.created_at.asc()).all()

    def _issues(self, start: dt.datetime, end: dt.datetime, repository_id: int | None, author_id: int | None):
        q = self.db.query(models.Issue).filter(models.Issue.created_at >= start, models.Issue.created_at <= end)
        if author_id is not None:
            q = q.filter(models.Issue.author_id == author_id)
        if repository_id is not None:
            q = q.filter(models.Issue.repository_id == repository_id)
        return q.order_by(models.Issue.created_at.asc()).all()

    def _reviewed_by(self, user_id: int, start: dt.datetime, end: dt.datetime, repository_id: int | None):
        q = (self.db.query(models.PullRequest)
             .join(models.PullRequestReview, models.PullRequestReview.pull_request_id == models.PullRequest.id)
             .options(selectinload(models.PullRequest.reviews))
             .filter(models.PullRequestReview.reviewer_id == user_id)
             .filter(models.PullRequestReview.submitted_at >= start, models.PullRequestReview.submitted_at <= end)
             .filter((models.PullRequest.author_id != user_id) | (models.PullRequest.author_id.is_(None))))
        if repository_id is not None:
            q = q.filter(models.PullRequest.repository_id == repository_id)
        return q.distinct().all()

    def fetch_events(self, user_id: int, repository_id: int | None,
                     start: dt.datetime, end: dt.datetime) -> EventBatch:
        return EventBatch(
            commits=[_commit_event(c) for c in self._commits(start, end, repository_id, user_id)],
            pull_requests=[_pr_event(pr) for pr in self._pull_requests(start, end, repository_id, user_id)],
            issues=[_issue_event(i) for i in self._issues(start, end, repository_id, user_id)],
            reviewed_pull_requests=[_pr_event(pr) for pr in self._reviewed_by(user_id, start, end, repository_id)],
        )

    def fetch_repository_events(self, repository_id: int,
                                start: dt.datetime, end: dt.datetime) -> EventBatch:
        return EventBatch(
            commits=[_commit_event(c) for c in self._commits(start, end, repository_id, None)],
            pull_requests=[_pr_event(pr) for pr in self._pull_requests(start, end, repository_id, None)],
            issues=[_issue_event(i) for i in self._issues(start, end, repository_id, None)],
        )

    def tracked_pairs(self) -> list[tuple[int, int]]:
        """(user, repository) pairs with at least one authored commit."""
        rows = (self.db.query(models.Commit.author_id, models.Commit.repository_id)
                .filter(models.Commit.author_id.is_not(None))
                .distinct()
                .all())
        return [(a, r) for a, r in rows]
