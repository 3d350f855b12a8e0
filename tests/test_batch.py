import threading

import pytest

from jobmatch.batch import BatchOutcome, score_next_batch, select_unscored
from jobmatch.errors import ValidationError
from jobmatch.models import MatchScore, Result
from jobmatch.scorer import MatchScorer

from conftest import RESUME, FakeOracle, make_job


def _merged(score_map, outcome):
    return {**score_map, **outcome.delta}


class TestSelection:
    def test_keeps_list_order_and_skips_scored(self, jobs):
        scored = {"job-0": MatchScore.create(10), "job-2": MatchScore.create(20)}
        picked = select_unscored(jobs, scored, 3)
        assert [j.id for j in picked] == ["job-1", "job-3", "job-4"]

    def test_duplicate_ids_selected_once(self):
        dup = [make_job(1), make_job(1, title="Other"), make_job(2)]
        assert [j.id for j in select_unscored(dup, {}, 10)] == ["job-1", "job-2"]


class TestScoreNextBatch:
    def test_twelve_jobs_take_two_calls(self, jobs, scorer, oracle):
        first = score_next_batch(jobs, RESUME, {}, scorer, batch_limit=10, concurrency=3)
        assert first.ok
        assert set(first.value.delta) == {f"job-{i}" for i in range(10)}

        merged = _merged({}, first.value)
        second = score_next_batch(jobs, RESUME, merged, scorer, batch_limit=10, concurrency=3)
        assert set(second.value.delta) == {"job-10", "job-11"}
        assert len(oracle.calls) == 12

        third = score_next_batch(jobs, RESUME, _merged(merged, second.value), scorer)
        assert third.value.nothing_to_do
        assert third.value.delta == {}
        assert len(oracle.calls) == 12

    def test_never_rescores_known_jobs(self, jobs, scorer, oracle):
        scored = {j.id: MatchScore.create(1) for j in jobs[::2]}
        result = score_next_batch(jobs, RESUME, scored, scorer)
        assert not set(result.value.delta) & set(scored)
        assert set(oracle.calls).isdisjoint({j.title for j in jobs[::2]})

    def test_input_map_is_not_mutated(self, jobs, scorer):
        scored = {"job-0": MatchScore.create(5)}
        score_next_batch(jobs, RESUME, scored, scorer)
        assert list(scored) == ["job-0"]

    def test_failures_do_not_abort_the_batch(self, jobs):
        oracle = FakeOracle(fail_titles={"Job 1", "Job 4"})
        result = score_next_batch(jobs, RESUME, {}, MatchScorer(oracle), batch_limit=6, concurrency=3)
        outcome = result.value
        assert set(outcome.failed) == {"job-1", "job-4"}
        assert set(outcome.delta) == {"job-0", "job-2", "job-3", "job-5"}
        assert outcome.attempted == 6

    def test_failed_jobs_get_scored_on_a_later_call(self, jobs):
        oracle = FakeOracle(fail_titles={"Job 1"})
        scorer = MatchScorer(oracle)
        scored = {}
        while True:
            outcome = score_next_batch(jobs, RESUME, scored, scorer).value
            if outcome.nothing_to_do or not outcome.delta:
                break
            scored = _merged(scored, outcome)
        assert set(scored) == {j.id for j in jobs} - {"job-1"}

        oracle.fail_titles.clear()
        outcome = score_next_batch(jobs, RESUME, scored, scorer).value
        assert set(outcome.delta) == {"job-1"}

    def test_results_attributed_by_job_not_arrival(self):
        jobs = [make_job(i) for i in range(3)]
        oracle = FakeOracle(scores={"Job 0": 10, "Job 1": 20, "Job 2": 30}, delay=0.01)
        delta = score_next_batch(jobs, RESUME, {}, MatchScorer(oracle)).value.delta
        assert {k: v.matching_score for k, v in delta.items()} == {"job-0": 10, "job-1": 20, "job-2": 30}

    def test_groups_run_strictly_in_sequence(self, jobs):
        oracle = FakeOracle(delay=0.02)
        score_next_batch(jobs, RESUME, {}, MatchScorer(oracle), batch_limit=9, concurrency=3)

        assert oracle.max_active <= 3
        groups = [{f"Job {i}" for i in range(g, g + 3)} for g in (0, 3, 6)]
        events = oracle.events
        for current, following in zip(groups, groups[1:]):
            last_end = max(i for i, (kind, t) in enumerate(events) if kind == "end" and t in current)
            first_start = min(i for i, (kind, t) in enumerate(events) if kind == "start" and t in following)
            assert last_end < first_start

    def test_group_calls_run_concurrently(self):
        jobs = [make_job(i) for i in range(3)]
        barrier = threading.Barrier(3, timeout=5)

        class BarrierScorer:
            def score(self, resume, description, title):
                barrier.wait()
                return Result.success(MatchScore.create(40))

        result = score_next_batch(jobs, RESUME, {}, BarrierScorer(), concurrency=3)
        assert len(result.value.delta) == 3

    def test_slow_group_member_times_out(self):
        jobs = [make_job(i) for i in range(2)]
        release = threading.Event()

        class HangingScorer:
            def score(self, resume, description, title):
                if title == "Job 1":
                    release.wait(5)
                return Result.success(MatchScore.create(60))

        try:
            outcome = score_next_batch(jobs, RESUME, {}, HangingScorer(), timeout=0.2).value
        finally:
            release.set()
        assert set(outcome.delta) == {"job-0"}
        assert outcome.failed == ("job-1",)

    def test_scorer_exception_is_contained(self):
        jobs = [make_job(i) for i in range(2)]

        class ExplodingScorer:
            def score(self, resume, description, title):
                if title == "Job 0":
                    raise RuntimeError("boom")
                return Result.success(MatchScore.create(70))

        outcome = score_next_batch(jobs, RESUME, {}, ExplodingScorer()).value
        assert set(outcome.delta) == {"job-1"}
        assert outcome.failed == ("job-0",)

    @pytest.mark.parametrize(
        "kwargs",
        [{"batch_limit": 0}, {"concurrency": 0}, {"resume": "  "}],
    )
    def test_invalid_arguments(self, jobs, scorer, kwargs):
        params = {"resume": RESUME, **kwargs}
        resume = params.pop("resume")
        result = score_next_batch(jobs, resume, {}, scorer, **params)
        assert isinstance(result.error, ValidationError)


class TestSummary:
    def test_nothing_to_do(self):
        assert BatchOutcome(nothing_to_do=True).summary(12, 12).startswith("All jobs analyzed")

    def test_partial_progress(self):
        outcome = BatchOutcome(delta={"a": MatchScore.create(1)}, attempted=3, failed=("b", "c"))
        assert outcome.summary(1, 12) == "Scored 1 of 3 jobs (1/12 total). 11 left to analyze."

    def test_complete(self):
        outcome = BatchOutcome(delta={"a": MatchScore.create(1)}, attempted=1)
        assert outcome.summary(12, 12).endswith("All jobs scored!")
