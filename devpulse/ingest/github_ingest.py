"""Pull commits, pull requests (with reviews) and issues from GitHub into the
event tables. Every row is written find-then-update so re-syncing is safe."""
import datetime as dt
from sqlalchemy.orm import Session
from devpulse.connectors.github_client import GitHubClient
from devpulse import models
from devpulse.settings import settings
from devpulse.logging import get_logger

log = get_logger("github_ingest")

class RepositoryNotTracked(LookupError):
    pass

def _naive(ts: dt.datetime | None) -> dt.datetime | None:
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(dt.timezone.utc).replace(tzinfo=None)

def ensure_user(db: Session, gh_user) -> models.User | None:
    """Map a GitHub account onto a local user, creating it on first sight."""
    if gh_user is None:
        return None
    user = db.query(models.User).filter_by(github_id=gh_user.id).one_or_none()
    if not user:
        user = db.query(models.User).filter_by(username=gh_user.login).one_or_none()
    if not user:
        user = models.User(github_id=gh_user.id, username=gh_user.login)
        db.add(user)
        db.flush()
    elif user.github_id is None:
        user.github_id = gh_user.id
    return user

def _sync_commits(client: GitHubClient, gh_repo, repository: models.Repository, db: Session, since_days: int) -> int:
    count = 0
    for c in client.iter_commits(gh_repo, since_days=since_days):
        try:
            author = ensure_user(db, c.author)
            stats = c.stats
            authored_at = _naive(c.commit.author.date) if c.commit.author else None
            if authored_at is None:
                continue
            existing = db.query(models.Commit).filter_by(repository_id=repository.id, sha=c.sha).one_or_none()
            if existing:
                existing.author_id = author.id if author else None
                existing.additions = stats.additions if stats else 0
                existing.deletions = stats.deletions if stats else 0
            else:
                db.add(models.Commit(
                    repository_id=repository.id,
                    author_id=author.id if author else None,
                    sha=c.sha,
                    message=c.commit.message or "",
                    authored_at=authored_at,
                    additions=stats.additions if stats else 0,
                    deletions=stats.deletions if stats else 0,
                ))
            count += 1
        except Exception as exc:
            log.warning("Failed to sync commit %s: %s", getattr(c, "sha", "?"), exc)
            continue
    return count

def _sync_pr_reviews(pr_row: models.PullRequest, pr, db: Session) -> int:
    """Sync reviews for a single PR."""
    count = 0
    try:
        reviews = pr.get_reviews()
    except Exception as exc:
        log.warning("Failed to list reviews for PR #%s: %s", pr_row.number, exc)
        return 0

    for rv in reviews:
        try:
            submitted_at = _naive(rv.submitted_at)
            if not submitted_at:
                continue
            reviewer = ensure_user(db, rv.user)
            login = rv.user.login if rv.user else "unknown"
            state = (rv.state or "COMMENTED")
            existing = (db.query(models.PullRequestReview)
                        .filter_by(pull_request_id=pr_row.id, reviewer_login=login, submitted_at=submitted_at)
                        .one_or_none())
            if existing:
                existing.state = state
            else:
                db.add(models.PullRequestReview(
                    pull_request_id=pr_row.id,
                    reviewer_login=login,
                    reviewer_id=reviewer.id if reviewer else None,
                    state=state,
                    submitted_at=submitted_at,
                ))
            count += 1
        except Exception as exc:
            log.warning("Failed to sync review on PR #%s: %s", pr_row.number, exc)
            continue
    return count

def _sync_pull_requests(client: GitHubClient, gh_repo, repository: models.Repository, db: Session, since_days: int) -> int:
    count = 0
    for pr in client.iter_pull_requests(gh_repo, since_days=since_days):
        try:
            author = ensure_user(db, pr.user)
            values = dict(
                author_id=author.id if author else None,
                state=pr.state,
                merged_at=_naive(pr.merged_at),
                closed_at=_naive(pr.closed_at),
                additions=getattr(pr, "additions", 0) or 0,
                deletions=getattr(pr, "deletions", 0) or 0,
                changed_files=getattr(pr, "changed_files", 0) or 0,
                review_comments=getattr(pr, "review_comments", 0) or 0,
                updated_at=dt.datetime.utcnow(),
            )
            existing = db.query(models.PullRequest).filter_by(repository_id=repository.id, number=pr.number).one_or_none()
            if existing:
                for k, v in values.items():
                    setattr(existing, k, v)
                row = existing
            else:
                row = models.PullRequest(
                    repository_id=repository.id,
                    number=pr.number,
                    created_at=_naive(pr.created_at) or dt.datetime.utcnow(),
                    **values,
                )
                db.add(row)
                db.flush()
            _sync_pr_reviews(row, pr, db)
            count += 1
        except Exception as exc:
            log.warning("Failed to sync PR #%s: %s", getattr(pr, "number", "?"), exc)
            continue
    return count

def _sync_issues(client: GitHubClient, gh_repo, repository: models.Repository, db: Session, since_days: int) -> int:
    count = 0
    for issue in client.iter_issues(gh_repo, since_days=since_days):
        try:
            author = ensure_user(db, issue.user)
            existing = db.query(models.Issue).filter_by(repository_id=repository.id, number=issue.number).one_or_none()
            if existing:
                existing.state = issue.state
                existing.closed_at = _naive(issue.closed_at)
                existing.comments = issue.comments or 0
            else:
                db.add(models.Issue(
                    repository_id=repository.id,
                    author_id=author.id if author else None,
                    number=issue.number,
                    state=issue.state,
                    created_at=_naive(issue.created_at) or dt.datetime.utcnow(),
                    closed_at=_naive(issue.closed_at),
                    comments=issue.comments or 0,
                ))
            count += 1
        except Exception as exc:
            log.warning("Failed to sync issue #%s: %s", getattr(issue, "number", "?"), exc)
            continue
    return count

def sync_repository(repository_id: int, db: Session, since_days: int | None = None,
                    client: GitHubClient | None = None) -> dict[str, int]:
    repository = db.get(models.Repository, repository_id)
    if repository is None:
        raise RepositoryNotTracked(f"Repository {repository_id} not tracked")

    since_days = since_days or settings.github_sync_days
    client = client or GitHubClient(api_base_url=settings.github_api_base_url, token=settings.github_token)
    gh_repo = client.get_repo(repository.owner, repository.name)
    log.info(f"Syncing GitHub activity for repo: {repository.full_name}")

    repository.github_id = gh_repo.id
    repository.language = gh_repo.language
    repository.default_branch = gh_repo.default_branch or repository.default_branch

    counts = {
        "commits": _sync_commits(client, gh_repo, repository, db, since_days),
        "pull_requests": _sync_pull_requests(client, gh_repo, repository, db, since_days),
        "issues": _sync_issues(client, gh_repo, repository, db, since_days),
    }
    repository.last_synced_at = dt.datetime.utcnow()
    db.commit()
    log.info(f"github synced {repository.full_name}: {counts}")
    return counts

def sync_all_repositories(db: Session, since_days: int | None = None) -> int:
    total = 0
    for repo in db.query(models.Repository).all():
        try:
            counts = sync_repository(repo.id, db, since_days=since_days)
            total += sum(counts.values())
        except Exception as exc:
            db.rollback()
            log.warning("GitHub sync failed for %s: %s", repo.full_name, exc)
    return total
