import datetime as dt
import pytest

from devpulse.analytics.trends import (
    EPOCH, basic_productivity, compare_scores, detect_productivity_trends, previous_window, productivity_score,
)
from devpulse.schemas import BasicProductivity, EventBatch, TimeRange

d = dt.datetime
JULY_WEEK = TimeRange(start=d(2025, 7, 1), end=d(2025, 7, 7, 23, 59, 59))


class BrokenSource:
    def fetch_events(self, *args, **kwargs):
        raise ConnectionError("event source unavailable")


@pytest.mark.parametrize("previous,current,trend,change", [
    (1, 3, "improving", 200.0),
    (100, 111, "improving", 11.0),
    (100, 110, "stable", 10.0),
    (100, 90, "stable", -10.0),
    (100, 89, "declining", -11.0),
    (0, 50, "stable", 0.0),
])
def test_compare_scores(previous, current, trend, change):
    assert compare_scores(previous, current) == (trend, change)


def test_productivity_score_weights():
    m = BasicProductivity(commit_count=4, pr_count=3, issue_count=2, code_quality_score=50)
    assert productivity_score(m) == 4 + 15 + 6 + 25


def test_previous_window_is_adjacent_and_same_length():
    prev = previous_window(JULY_WEEK)

    assert prev.end == JULY_WEEK.start - dt.timedelta(milliseconds=1)
    assert prev.end - prev.start == JULY_WEEK.end - JULY_WEEK.start


def test_basic_productivity_counts(fake_source, july_batch):
    m = basic_productivity(1, JULY_WEEK, fake_source(july_batch))
    assert (m.commit_count, m.pr_count, m.issue_count, m.code_quality_score) == (4, 3, 2, 50)


def test_detect_against_empty_previous_window(fake_source, july_batch):
    result = detect_productivity_trends(1, JULY_WEEK, fake_source(july_batch))

    # empty window still scores 45 for quality, so 22.5 -> 50
    assert result.trend == "improving"
    assert result.percentage_change == 122.2
    assert result.metrics.previous.commit_count == 0
    assert result.metrics.current.commit_count == 4
    assert result.comparison_period.current == JULY_WEEK
    assert result.comparison_period.previous == previous_window(JULY_WEEK)


def test_detect_stable_when_nothing_changes(fake_source):
    result = detect_productivity_trends(1, JULY_WEEK, fake_source(EventBatch()))
    assert (result.trend, result.percentage_change) == ("stable", 0.0)


def test_detect_declining(fake_source, make_commit, make_pr):
    batch = EventBatch(
        commits=[make_commit(d(2025, 6, 26, 10, 0))],
        pull_requests=[make_pr(d(2025, 6, 26, 11, 0)) for _ in range(4)],
    )
    result = detect_productivity_trends(1, JULY_WEEK, fake_source(batch))

    assert result.trend == "declining"
    assert result.metrics.previous.pr_count == 4
    assert result.metrics.current.pr_count == 0


def test_failure_collapses_to_stable_default():
    result = detect_productivity_trends(1, JULY_WEEK, BrokenSource())

    assert result.trend == "stable"
    assert result.percentage_change == 0.0
    assert result.comparison_period.previous == TimeRange(start=EPOCH, end=EPOCH)
    assert result.comparison_period.current == JULY_WEEK
    assert result.metrics.previous == BasicProductivity()
    assert result.metrics.current == BasicProductivity()
