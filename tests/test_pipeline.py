"""
Tests for the pivotal-member cost pipeline in pipeline.py.

Uses small hand-built records with hand-verifiable costs: candidate selection,
flippable-Nay joining, pivotal ranking (including boundary ties), cost
arithmetic, ranking, and end-to-end determinism.

Run: uv run pytest tests/test_pipeline.py -v
"""

import math
from datetime import date

import pytest

from filibuster_cost.models import Member, MemberVote, RollCallVote
from filibuster_cost.pipeline import (
    aggregate_costs,
    compute_costs,
    cumulative_curve,
    filter_candidates,
    is_failed_cloture,
    join_member_votes,
    rank_pivotal_members,
    run_pipeline,
    spread_distance,
    vote_cost,
)

# ── Fixtures ─────────────────────────────────────────────────────────────────


def _rollcall(
    rollnumber: int = 1,
    yea_count: int = 58,
    spread: tuple[float, float] = (0.3, 0.4),
    congress: int = 110,
    chamber: str = "Senate",
    result: str = "Cloture Motion Rejected",
    question: str = "On the Cloture Motion",
    bill_number: str = "S1",
) -> RollCallVote:
    return RollCallVote(
        congress=congress,
        chamber=chamber,
        rollnumber=rollnumber,
        date=date(2008, 3, 1),
        bill_number=bill_number,
        vote_desc="A bill",
        vote_result=result,
        vote_question=question,
        yea_count=yea_count,
        nay_count=100 - yea_count,
        spread_1=spread[0],
        spread_2=spread[1],
    )


def _vote(icpsr: int, prob: float | None, rollnumber: int = 1, cast_code: int = 6,
          congress: int = 110) -> MemberVote:
    return MemberVote(
        congress=congress,
        chamber="Senate",
        rollnumber=rollnumber,
        icpsr=icpsr,
        cast_code=cast_code,
        prob=prob,
    )


def _member(icpsr: int, congress: int = 110) -> Member:
    return Member(
        congress=congress,
        chamber="Senate",
        icpsr=icpsr,
        bioname=f"SENATOR, Number {icpsr}",
        party_code=200,
        state_abbrev="KS",
        dim1=0.4,
        dim2=-0.1,
    )


def _members(*icpsrs: int) -> list[Member]:
    return [_member(i) for i in icpsrs]


# ── Candidate selection ──────────────────────────────────────────────────────


class TestIsFailedCloture:
    def test_rejected_cloture(self):
        assert is_failed_cloture(_rollcall())

    def test_case_insensitive_result(self):
        assert is_failed_cloture(_rollcall(result="cloture motion rejected"))

    def test_agreed_cloture_excluded(self):
        assert not is_failed_cloture(_rollcall(result="Cloture Motion Agreed to"))

    def test_motion_to_proceed_excluded(self):
        rc = _rollcall(question="On Cloture on the Motion to Proceed")
        assert not is_failed_cloture(rc)


class TestFilterCandidates:
    def test_votes_needed_and_spread(self):
        (c,) = filter_candidates([_rollcall()])
        assert c.threshold == 60
        assert c.votes_needed == 2
        assert c.spread_distance == pytest.approx(0.5)

    def test_spread_distance_exact_formula(self):
        (c,) = filter_candidates([_rollcall(spread=(-0.7, 0.2))])
        assert c.spread_distance == math.sqrt((-0.7) ** 2 + 0.2**2)

    def test_votes_needed_always_positive(self):
        rcs = [_rollcall(rollnumber=i, yea_count=y) for i, y in enumerate([40, 59, 60, 61], 1)]
        candidates = filter_candidates(rcs)
        assert [c.votes_needed for c in candidates] == [20, 1]
        assert all(c.votes_needed == c.threshold - c.rollcall.yea_count for c in candidates)

    def test_other_chamber_excluded(self):
        assert filter_candidates([_rollcall(chamber="House")]) == ()

    def test_all_chambers(self):
        assert len(filter_candidates([_rollcall(chamber="House")], chamber=None)) == 1

    def test_congress_range(self):
        rcs = [_rollcall(congress=c, rollnumber=1) for c in (105, 110, 115)]
        candidates = filter_candidates(rcs, congress_min=106, congress_max=114)
        assert [c.rollcall.congress for c in candidates] == [110]

    def test_ordered_by_key(self):
        rcs = [_rollcall(rollnumber=9), _rollcall(rollnumber=2), _rollcall(rollnumber=5)]
        assert [c.rollcall.rollnumber for c in filter_candidates(rcs)] == [2, 5, 9]

    def test_empty_input(self):
        assert filter_candidates([]) == ()


# ── Joining flippable Nays ───────────────────────────────────────────────────


class TestJoinMemberVotes:
    def test_keeps_nay_family_in_window(self):
        candidates = filter_candidates([_rollcall()])
        votes = [
            _vote(1, 60, cast_code=6),   # Nay
            _vote(2, 60, cast_code=5),   # Paired Nay
            _vote(3, 60, cast_code=4),   # Announced Nay
            _vote(4, 60, cast_code=1),   # Yea
            _vote(5, 60, cast_code=9),   # Not Voting
        ]
        eligible = join_member_votes(candidates, votes, _members(1, 2, 3, 4, 5))
        assert sorted(e.member_vote.icpsr for e in eligible) == [1, 2, 3]

    def test_probability_window(self):
        candidates = filter_candidates([_rollcall()])
        votes = [_vote(1, 49.9), _vote(2, 50.0), _vote(3, 99.9), _vote(4, 100.0)]
        eligible = join_member_votes(candidates, votes, _members(1, 2, 3, 4))
        assert [e.member_vote.icpsr for e in eligible] == [2, 3]

    def test_unknown_rollcall_dropped(self):
        candidates = filter_candidates([_rollcall()])
        eligible = join_member_votes(candidates, [_vote(1, 60, rollnumber=99)], _members(1))
        assert eligible == ()

    def test_unknown_member_dropped(self):
        candidates = filter_candidates([_rollcall()])
        eligible = join_member_votes(candidates, [_vote(1, 60), _vote(2, 70)], _members(2))
        assert [e.member_vote.icpsr for e in eligible] == [2]

    def test_member_from_other_congress_not_joined(self):
        candidates = filter_candidates([_rollcall()])
        eligible = join_member_votes(candidates, [_vote(1, 60)], [_member(1, congress=111)])
        assert eligible == ()

    def test_sorted_by_probability_then_icpsr(self):
        candidates = filter_candidates([_rollcall()])
        votes = [_vote(30, 70), _vote(20, 55), _vote(10, 70), _vote(40, 62)]
        eligible = join_member_votes(candidates, votes, _members(10, 20, 30, 40))
        assert [e.member_vote.icpsr for e in eligible] == [20, 40, 10, 30]

    def test_joined_member_carried(self):
        candidates = filter_candidates([_rollcall()])
        (e,) = join_member_votes(candidates, [_vote(7, 60)], _members(7))
        assert e.member.bioname == "SENATOR, Number 7"
        assert e.member.dim1 == 0.4


# ── Pivotal ranking ──────────────────────────────────────────────────────────


class TestRankPivotalMembers:
    def _rank(self, rollcalls, votes, members):
        candidates = filter_candidates(rollcalls)
        eligible = join_member_votes(candidates, votes, members)
        return rank_pivotal_members(candidates, eligible)

    def test_pivot_is_rank_votes_needed(self):
        """votes_needed = 2 -> second least certain member."""
        pivotal = self._rank(
            [_rollcall()], [_vote(1, 55), _vote(2, 62), _vote(3, 70)], _members(1, 2, 3)
        )
        assert len(pivotal) == 1
        assert pivotal[0].member_vote.icpsr == 2
        assert pivotal[0].prob == 62
        assert pivotal[0].rank == 2

    def test_too_few_eligible_dropped(self):
        """votes_needed = 5 but only 3 flippable Nays."""
        pivotal = self._rank(
            [_rollcall(yea_count=55)],
            [_vote(1, 55), _vote(2, 62), _vote(3, 70)],
            _members(1, 2, 3),
        )
        assert pivotal == ()

    def test_exactly_enough_eligible(self):
        pivotal = self._rank(
            [_rollcall(yea_count=57)],
            [_vote(1, 55), _vote(2, 62), _vote(3, 70)],
            _members(1, 2, 3),
        )
        assert [p.member_vote.icpsr for p in pivotal] == [3]

    def test_boundary_tie_keeps_all_tied_members(self):
        pivotal = self._rank(
            [_rollcall()],
            [_vote(1, 55), _vote(2, 62), _vote(3, 62), _vote(4, 80)],
            _members(1, 2, 3, 4),
        )
        assert [p.member_vote.icpsr for p in pivotal] == [2, 3]
        assert [p.rank for p in pivotal] == [2, 3]
        assert {p.prob for p in pivotal} == {62}

    def test_tie_spanning_boundary_from_below(self):
        """Members tied across ranks 1-3 with votes_needed = 3 are all pivotal."""
        pivotal = self._rank(
            [_rollcall(yea_count=57)],
            [_vote(1, 60), _vote(2, 60), _vote(3, 60), _vote(4, 75)],
            _members(1, 2, 3, 4),
        )
        assert [p.member_vote.icpsr for p in pivotal] == [1, 2, 3]

    def test_tie_below_boundary_not_pivotal(self):
        pivotal = self._rank(
            [_rollcall()],
            [_vote(1, 55), _vote(2, 55), _vote(3, 70)],
            _members(1, 2, 3),
        )
        assert [p.member_vote.icpsr for p in pivotal] == [1, 2]
        assert all(p.prob == 55 for p in pivotal)

    def test_groups_per_vote(self):
        pivotal = self._rank(
            [_rollcall(rollnumber=1, yea_count=59), _rollcall(rollnumber=2, yea_count=58)],
            [
                _vote(1, 80, rollnumber=1), _vote(2, 65, rollnumber=1),
                _vote(1, 90, rollnumber=2), _vote(2, 51, rollnumber=2),
            ],
            _members(1, 2),
        )
        assert [(p.vote_key[2], p.member_vote.icpsr) for p in pivotal] == [(1, 2), (2, 1)]

    def test_never_empty_group(self):
        pivotal = self._rank(
            [_rollcall(rollnumber=r, yea_count=57) for r in range(1, 6)],
            [_vote(i, 50 + i, rollnumber=r) for r in range(1, 6) for i in range(1, 5)],
            _members(1, 2, 3, 4),
        )
        keys = {p.vote_key for p in pivotal}
        assert len(keys) == 5


# ── Cost ─────────────────────────────────────────────────────────────────────


class TestVoteCost:
    def test_worked_example(self):
        margin, cost = vote_cost(62, 0.5)
        assert margin == 12
        assert cost == pytest.approx(0.06)

    def test_zero_at_fifty(self):
        assert vote_cost(50, 0.9) == (0, 0)

    def test_zero_spread(self):
        assert vote_cost(80, 0.0)[1] == 0

    def test_spread_distance(self):
        assert spread_distance(3.0, 4.0) == 5.0


class TestComputeCosts:
    def test_one_record_per_vote(self):
        candidates = filter_candidates([_rollcall()])
        eligible = join_member_votes(
            candidates, [_vote(1, 55), _vote(2, 62), _vote(3, 62)], _members(1, 2, 3)
        )
        (record,) = compute_costs(rank_pivotal_members(candidates, eligible))
        assert record.probability == 62
        assert record.probability_margin == 12
        assert record.cost == pytest.approx(0.06)
        assert record.n_pivotal_votes == 2
        assert record.pivotal_members == ("SENATOR, Number 2", "SENATOR, Number 3")
        assert record.threshold == 60
        assert record.votes_needed == 2

    def test_empty(self):
        assert compute_costs([]) == ()


# ── Aggregation ──────────────────────────────────────────────────────────────


class TestAggregateCosts:
    def _records(self, probs_by_roll):
        rollcalls = [_rollcall(rollnumber=r, yea_count=59) for r in probs_by_roll]
        votes = [_vote(1, p, rollnumber=r) for r, p in probs_by_roll.items()]
        return compute_costs(
            rank_pivotal_members(
                filter_candidates(rollcalls),
                join_member_votes(filter_candidates(rollcalls), votes, _members(1)),
            )
        )

    def test_sorted_ascending_with_ranks(self):
        ranked = aggregate_costs(self._records({1: 90, 2: 60, 3: 75}))
        assert [r.rollnumber for r in ranked] == [2, 3, 1]
        assert [r.rank for r in ranked] == [1, 2, 3]

    def test_ties_keep_input_order(self):
        ranked = aggregate_costs(self._records({4: 70, 2: 70, 3: 60}))
        assert [r.rollnumber for r in ranked] == [3, 2, 4]

    def test_curve_is_monotonic_and_steps_by_one(self):
        ranked = aggregate_costs(self._records({1: 99, 2: 51, 3: 75, 4: 75, 5: 62}))
        curve = cumulative_curve(ranked)
        costs = [c for c, _ in curve]
        ranks = [r for _, r in curve]
        assert costs == sorted(costs)
        assert ranks == list(range(1, len(ranks) + 1))

    def test_empty(self):
        assert aggregate_costs([]) == ()
        assert cumulative_curve([]) == []


# ── End to end ───────────────────────────────────────────────────────────────


class TestRunPipeline:
    def test_worked_example(self):
        result = run_pipeline(
            [_rollcall()],
            [_vote(1, 55), _vote(2, 62), _vote(3, 70), _vote(4, 100), _vote(5, 40, cast_code=1)],
            _members(1, 2, 3, 4, 5),
        )
        (record,) = result.costs
        assert record.cost == pytest.approx(0.06)
        assert record.rank == 1
        assert result.curve == [(record.cost, 1)]

    def test_insufficient_flippable_votes_excluded(self):
        result = run_pipeline(
            [_rollcall(yea_count=55)],
            [_vote(1, 55), _vote(2, 62), _vote(3, 70)],
            _members(1, 2, 3),
        )
        assert len(result.candidates) == 1
        assert result.pivotal == ()
        assert result.costs == ()

    def test_no_candidates(self):
        result = run_pipeline([_rollcall(result="Cloture Motion Agreed to")], [], [])
        assert result.candidates == ()
        assert result.costs == ()
        assert result.curve == []

    def test_idempotent(self):
        rollcalls = [_rollcall(rollnumber=r, yea_count=56 + r % 3) for r in range(1, 8)]
        votes = [
            _vote(i, 50 + (i * r) % 45, rollnumber=r) for r in range(1, 8) for i in range(1, 9)
        ]
        members = _members(*range(1, 9))
        first = run_pipeline(rollcalls, votes, members)
        second = run_pipeline(list(reversed(rollcalls)), list(reversed(votes)), members)
        assert first.costs == second.costs
        assert first.curve == second.curve

    def test_costs_non_negative(self):
        rollcalls = [_rollcall(rollnumber=r, yea_count=57) for r in range(1, 5)]
        votes = [_vote(i, 50 + i * r, rollnumber=r) for r in range(1, 5) for i in range(1, 6)]
        result = run_pipeline(rollcalls, votes, _members(*range(1, 6)))
        assert result.costs
        assert all(r.cost >= 0 for r in result.costs)
