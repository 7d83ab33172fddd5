import datetime as dt
import pytest

from devpulse.analytics.team import (
    RepositoryNotFound, calculate_team_velocity, calculate_velocity_score, save_team_insight,
)
from devpulse.schemas import TimeRange

d = dt.datetime
JULY_WEEK = TimeRange(start=d(2025, 7, 1), end=d(2025, 7, 7, 23, 59, 59))


@pytest.mark.parametrize("args,score", [
    ((5, 1.0, 1.0, 24), 100),
    ((0, 0.0, 0.0, 168), 0),
    ((10, 1.0, 1.0, 0), 100),
    ((0, 0.0, 0.0, 96), 10),
    ((2.5, 0.5, 0.5, 300), 40),
])
def test_velocity_score(args, score):
    assert calculate_velocity_score(*args) == score


class TestTeamVelocity:

    def test_july_week(self, fake_source, fake_store, july_batch, make_commit):
        july_batch.commits.append(make_commit(d(2025, 7, 2, 9, 0), author_id=2))
        v = calculate_team_velocity(1, JULY_WEEK, fake_source(july_batch), fake_store())

        assert v.member_count == 2
        assert v.total_commits == 5
        assert v.total_prs == 3
        assert v.total_issues == 2
        assert v.commit_frequency == pytest.approx(5 / 7)
        assert v.pr_merge_rate == pytest.approx(2 / 3)
        assert v.issue_resolution_rate == pytest.approx(0.5)
        assert v.cycle_time_average == pytest.approx(14)
        assert 0 <= v.velocity_score <= 100

    def test_empty_repository(self, fake_source, fake_store):
        v = calculate_team_velocity(1, JULY_WEEK, fake_source(), fake_store())

        assert (v.member_count, v.pr_merge_rate, v.issue_resolution_rate, v.cycle_time_average) == (0, 0, 0, 0)
        # zero cycle time is better than ideal and clamps to the full cycle weight
        assert v.velocity_score == 20

    def test_unknown_repository(self, fake_source, fake_store):
        with pytest.raises(RepositoryNotFound):
            calculate_team_velocity(9, JULY_WEEK, fake_source(), fake_store())

    def test_history_failure_is_swallowed(self, fake_source, fake_store):
        v = calculate_team_velocity(1, JULY_WEEK, fake_source(), fake_store(fail_history=True))
        assert v.historical_trend == []


def test_save_team_insight(fake_source, fake_store, july_batch):
    store = fake_store()
    v = calculate_team_velocity(1, JULY_WEEK, fake_source(july_batch), store)
    save_team_insight(store, v, dt.date(2025, 7, 7))

    [rec] = store.insights
    assert rec.date == dt.date(2025, 7, 7)
    assert rec.velocity_score == v.velocity_score
    assert rec.total_commits == 4
