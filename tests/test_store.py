import datetime as dt

from devpulse import models
from devpulse.events import SqlEventSource
from devpulse.store import SqlMetricStore
from devpulse.schemas import DailyMetricRecord, TeamInsightRecord

d = dt.datetime
DAY = dt.date(2025, 7, 1)


class TestSqlMetricStore:

    def test_upsert_is_idempotent(self, db, user, repo):
        store = SqlMetricStore(db)
        rec = DailyMetricRecord(user_id=user.id, repository_id=repo.id, date=DAY, commits_count=3)

        assert store.upsert_daily_metrics([rec, rec]) == 2
        store.upsert_daily_metric(rec.model_copy(update={"commits_count": 5}))

        rows = db.query(models.DailyMetric).all()
        assert len(rows) == 1
        assert rows[0].commits_count == 5

    def test_reaggregation_keeps_stored_risk_score(self, db, user, repo):
        store = SqlMetricStore(db)
        store.upsert_daily_metric(DailyMetricRecord(user_id=user.id, repository_id=repo.id, date=DAY))
        store.save_risk_score(user.id, repo.id, DAY, 42)
        store.upsert_daily_metric(DailyMetricRecord(user_id=user.id, repository_id=repo.id, date=DAY, commits_count=1))

        row = db.query(models.DailyMetric).one()
        assert row.burnout_risk_score == 42.0
        assert row.commits_count == 1

    def test_save_risk_score_creates_zero_record(self, db, user, repo):
        store = SqlMetricStore(db)
        store.save_risk_score(user.id, repo.id, DAY, 17)

        [rec] = store.get_daily_metrics(user.id, repo.id, DAY, DAY)
        assert rec.commits_count == 0
        assert rec.avg_commit_time_hour is None
        assert rec.burnout_risk_score == 17.0

    def test_window_reads_are_ordered_and_inclusive(self, db, user, repo):
        store = SqlMetricStore(db)
        days = [dt.date(2025, 7, i) for i in (5, 1, 3, 9)]
        store.upsert_daily_metrics([DailyMetricRecord(user_id=user.id, repository_id=repo.id, date=x) for x in days])

        got = store.get_daily_metrics(user.id, None, dt.date(2025, 7, 1), dt.date(2025, 7, 5))
        assert [r.date for r in got] == [dt.date(2025, 7, 1), dt.date(2025, 7, 3), dt.date(2025, 7, 5)]

    def test_scored_metrics_skip_unscored_days(self, db, user, repo):
        store = SqlMetricStore(db)
        store.upsert_daily_metrics([DailyMetricRecord(user_id=user.id, repository_id=repo.id, date=dt.date(2025, 7, i))
                                    for i in range(1, 5)])
        store.save_risk_score(user.id, repo.id, dt.date(2025, 7, 3), 30)
        store.save_risk_score(user.id, repo.id, dt.date(2025, 7, 2), 20)

        points = store.get_scored_metrics(user.id, repo.id, dt.date(2025, 7, 1), dt.date(2025, 7, 31))
        assert [(p.date, p.value) for p in points] == [(dt.date(2025, 7, 2), 20.0), (dt.date(2025, 7, 3), 30.0)]

    def test_team_insight_upsert(self, db, repo):
        store = SqlMetricStore(db)
        base = TeamInsightRecord(repository_id=repo.id, date=DAY, velocity_score=40, pr_merge_rate=0.5,
                                 issue_resolution_rate=0.5, cycle_time_average=12)
        store.upsert_team_insight(base)
        store.upsert_team_insight(base.model_copy(update={"velocity_score": 55}))

        assert db.query(models.TeamInsight).count() == 1
        assert [p.value for p in store.get_team_insights(repo.id, DAY, DAY)] == [55.0]


class TestSqlEventSource:

    def _seed(self, db, user, repo):
        reviewer = models.User(username="hubot")
        db.add(reviewer)
        db.flush()
        db.add_all([
            models.Commit(repository_id=repo.id, author_id=user.id, sha="a1", message="First",
                          authored_at=d(2025, 7, 1, 10, 0), additions=10, deletions=2),
            models.Commit(repository_id=repo.id, author_id=user.id, sha="a2", message="Second",
                          authored_at=d(2025, 7, 9, 10, 0), additions=1, deletions=1),
            models.Commit(repository_id=repo.id, author_id=reviewer.id, sha="b1", message="Other",
                          authored_at=d(2025, 7, 2, 10, 0)),
        ])
        pr = models.PullRequest(repository_id=repo.id, author_id=user.id, number=1, state="closed",
                                created_at=d(2025, 7, 1, 9, 0), merged_at=d(2025, 7, 2, 9, 0))
        db.add(pr)
        db.flush()
        db.add_all([
            models.PullRequestReview(pull_request_id=pr.id, reviewer_login="hubot", reviewer_id=reviewer.id,
                                     state="COMMENTED", submitted_at=d(2025, 7, 1, 12, 0)),
            models.PullRequestReview(pull_request_id=pr.id, reviewer_login="hubot", reviewer_id=reviewer.id,
                                     state="APPROVED", submitted_at=d(2025, 7, 1, 15, 0)),
            models.Issue(repository_id=repo.id, author_id=user.id, number=2, state="open",
                         created_at=d(2025, 7, 3, 9, 0)),
        ])
        db.commit()
        return reviewer

    def test_fetch_events_for_author(self, db, user, repo):
        self._seed(db, user, repo)
        batch = SqlEventSource(db).fetch_events(user.id, repo.id, d(2025, 7, 1), d(2025, 7, 7, 23, 59))

        assert [c.message for c in batch.commits] == ["First"]
        assert batch.commits[0].language == "Python"
        assert len(batch.pull_requests) == 1
        assert len(batch.pull_requests[0].reviews) == 2
        assert len(batch.issues) == 1
        assert batch.reviewed_pull_requests == []

    def test_reviews_of_other_authors_prs(self, db, user, repo):
        reviewer = self._seed(db, user, repo)
        batch = SqlEventSource(db).fetch_events(reviewer.id, None, d(2025, 7, 1), d(2025, 7, 7, 23, 59))

        assert [c.message for c in batch.commits] == ["Other"]
        assert batch.pull_requests == []
        assert len(batch.reviewed_pull_requests) == 1

    def test_repository_events_cover_all_authors(self, db, user, repo):
        self._seed(db, user, repo)
        batch = SqlEventSource(db).fetch_repository_events(repo.id, d(2025, 7, 1), d(2025, 7, 31))
        assert len(batch.commits) == 3

    def test_tracked_pairs(self, db, user, repo):
        reviewer = self._seed(db, user, repo)
        assert sorted(SqlEventSource(db).tracked_pairs()) == sorted([(user.id, repo.id), (reviewer.id, repo.id)])

    def test_lookup(self, db, user, repo):
        source = SqlEventSource(db)
        assert source.get_user(user.id).username == "octocat"
        assert source.get_user(999) is None
        assert source.get_repository(repo.id).full_name == "acme/api"
