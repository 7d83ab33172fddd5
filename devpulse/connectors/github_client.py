import datetime as dt
from typing import Iterable, Optional
from github import Github
from github.Repository import Repository
from github.Commit import Commit as GhCommit
from github.PullRequest import PullRequest as GhPR
from github.Issue import Issue as GhIssue
from devpulse.logging import get_logger

log = get_logger("github_client")

class GitHubClient:
    def __init__(self, api_base_url: str, token: Optional[str]):
        # PyGithub expects the API root.
        # GitHub Cloud: https://api.github.com
        # GHE: https://<host>/api/v3
        kwargs = {}
        if api_base_url:
            kwargs["base_url"] = api_base_url
        self.gh = Github(login_or_token=token) if not kwargs else Github(login_or_token=token, **kwargs)

    def get_repo(self, owner: str, repo: str) -> Repository:
        return self.gh.get_repo(f"{owner}/{repo}")

    def iter_commits(self, r: Repository, since_days: int = 30) -> Iterable[GhCommit]:
        since = dt.datetime.now(dt.timezone.utc) - dt.timedelta(days=since_days)
        for c in r.get_commits(since=since):
            yield c

    def iter_pull_requests(self, r: Repository, since_days: int = 30) -> Iterable[GhPR]:
        since = dt.datetime.utcnow() - dt.timedelta(days=since_days)
        # most recently updated first, stop once we pass the window
        pulls = r.get_pulls(state="all", sort="updated", direction="desc")
        for pr in pulls:
            try:
                if pr.updated_at and pr.updated_at.replace(tzinfo=None) < since:
                    break
                yield pr
            except Exception as exc:
                log.warning("Failed to iterate PR: %s", exc)
                continue

    def iter_issues(self, r: Repository, since_days: int = 30) -> Iterable[GhIssue]:
        since = dt.datetime.now(dt.timezone.utc) - dt.timedelta(days=since_days)
        for issue in r.get_issues(state="all", since=since):
            # the issues endpoint also lists pull requests
            if issue.pull_request is not None:
                continue
            yield issue
