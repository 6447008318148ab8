"""Pivotal-member cost computation for failed cloture votes.

Stages run strictly in order, each taking and returning an ordered tuple of
frozen records:

  filter_candidates     roll calls -> failed cloture votes (threshold, votes_needed, spread)
  join_member_votes     member votes -> flippable Nays joined to members
  rank_pivotal_members  flippable Nays -> pivotal member(s) per vote
  compute_costs         pivotal groups -> one CostRecord per vote
  aggregate_costs       CostRecords -> ranked by ascending cost

A vote with fewer flippable Nays than votes_needed could not have been
flipped and contributes nothing.
"""

import math
from dataclasses import dataclass, replace
from itertools import groupby
from typing import Iterable, Optional

from filibuster_cost.config import (
    CLOTURE_REJECTED_RESULT,
    CLOTURE_RULES,
    DEFAULT_CHAMBER,
    MAX_PROBABILITY,
    MIN_PROBABILITY,
    MOTION_TO_PROCEED,
    NAY_CAST_CODES,
    ClotureRule,
)
from filibuster_cost.models import (
    CandidateVote,
    CostRecord,
    EligibleNay,
    Member,
    MemberVote,
    PivotalVote,
    RollCallVote,
)
from filibuster_cost.thresholds import classify_threshold


@dataclass(frozen=True)
class PipelineResult:
    """Every intermediate stage of one analysis run."""

    candidates: tuple[CandidateVote, ...]
    eligible: tuple[EligibleNay, ...]
    pivotal: tuple[PivotalVote, ...]
    costs: tuple[CostRecord, ...]

    @property
    def curve(self) -> list[tuple[float, int]]:
        return cumulative_curve(self.costs)


def spread_distance(spread_1: float, spread_2: float) -> float:
    return math.sqrt(spread_1**2 + spread_2**2)


def is_failed_cloture(rollcall: RollCallVote) -> bool:
    """Rejected cloture on the measure itself, not on a motion to proceed."""
    return (
        rollcall.vote_result.strip().casefold() == CLOTURE_REJECTED_RESULT.casefold()
        and MOTION_TO_PROCEED not in rollcall.vote_question.casefold()
    )


# ── Stage 1: Candidate votes ─────────────────────────────────────────────────


def filter_candidates(
    rollcalls: Iterable[RollCallVote],
    chamber: Optional[str] = DEFAULT_CHAMBER,
    congress_min: Optional[int] = None,
    congress_max: Optional[int] = None,
    rules: tuple[ClotureRule, ...] = CLOTURE_RULES,
) -> tuple[CandidateVote, ...]:
    """Select failed cloture votes and annotate threshold, votes_needed and spread.

    Output is ordered by (congress, chamber, rollnumber). Rows reporting
    enough Yeas to have met the threshold are inconsistent with a rejected
    motion and are left out.
    """
    candidates = []
    for rc in sorted(rollcalls, key=lambda r: r.key):
        if chamber is not None and rc.chamber != chamber:
            continue
        if congress_min is not None and rc.congress < congress_min:
            continue
        if congress_max is not None and rc.congress > congress_max:
            continue
        if not is_failed_cloture(rc):
            continue
        threshold = classify_threshold(rc, rules)
        votes_needed = threshold - rc.yea_count
        if votes_needed <= 0:
            continue
        candidates.append(
            CandidateVote(
                rollcall=rc,
                threshold=threshold,
                votes_needed=votes_needed,
                spread_distance=spread_distance(rc.spread_1, rc.spread_2),
            )
        )
    return tuple(candidates)


# ── Stage 2: Flippable Nays ──────────────────────────────────────────────────


def is_flippable_nay(member_vote: MemberVote) -> bool:
    return (
        member_vote.cast_code in NAY_CAST_CODES
        and member_vote.prob is not None
        and MIN_PROBABILITY <= member_vote.prob < MAX_PROBABILITY
    )


def join_member_votes(
    candidates: Iterable[CandidateVote],
    member_votes: Iterable[MemberVote],
    members: Iterable[Member],
) -> tuple[EligibleNay, ...]:
    """Keep flippable Nays on candidate votes, joined to their members.

    Member votes on unknown roll calls or by unknown members drop out
    (inner join). Sorted by vote, then ascending probability, then icpsr.
    """
    vote_keys = {c.key for c in candidates}
    members_by_key = {m.key: m for m in members}

    eligible = []
    for mv in member_votes:
        if mv.vote_key not in vote_keys or not is_flippable_nay(mv):
            continue
        member = members_by_key.get(mv.member_key)
        if member is None:
            continue
        eligible.append(EligibleNay(member_vote=mv, member=member))

    eligible.sort(key=lambda e: (*e.vote_key, e.prob, e.member_vote.icpsr))
    return tuple(eligible)


# ── Stage 3: Pivotal members ─────────────────────────────────────────────────


def rank_pivotal_members(
    candidates: Iterable[CandidateVote],
    eligible: Iterable[EligibleNay],
) -> tuple[PivotalVote, ...]:
    """Find the pivotal member(s) of each vote.

    Eligible Nays are ranked by ascending probability. The pivotal
    probability is the one at rank votes_needed: the least flippable member
    of the smallest coalition that reaches the threshold. Every member
    sharing that probability is pivotal, so a vote yields one or more
    PivotalVotes. Votes with fewer than votes_needed eligible Nays yield none.
    """
    candidates_by_key = {c.key: c for c in candidates}
    ordered = sorted(eligible, key=lambda e: (*e.vote_key, e.prob, e.member_vote.icpsr))

    pivotal = []
    for key, group in groupby(ordered, key=lambda e: e.vote_key):
        candidate = candidates_by_key.get(key)
        if candidate is None:
            continue
        group = list(group)
        if len(group) < candidate.votes_needed:
            continue
        pivot_prob = group[candidate.votes_needed - 1].prob
        for rank, nay in enumerate(group, start=1):
            if nay.prob == pivot_prob:
                pivotal.append(
                    PivotalVote(
                        candidate=candidate,
                        member_vote=nay.member_vote,
                        member=nay.member,
                        rank=rank,
                    )
                )
    return tuple(pivotal)


# ── Stage 4: Cost ────────────────────────────────────────────────────────────


def vote_cost(probability: float, distance: float) -> tuple[float, float]:
    """Return (probability_margin, cost) for a pivotal probability and spread."""
    margin = probability - MIN_PROBABILITY
    return margin, margin * distance / 100


def compute_costs(pivotal: Iterable[PivotalVote]) -> tuple[CostRecord, ...]:
    """One CostRecord per vote from its pivotal group, in vote order."""
    records = []
    for _, group in groupby(pivotal, key=lambda p: p.vote_key):
        group = list(group)
        first = group[0]
        candidate = first.candidate
        rc = candidate.rollcall
        margin, cost = vote_cost(first.prob, candidate.spread_distance)
        records.append(
            CostRecord(
                congress=rc.congress,
                chamber=rc.chamber,
                rollnumber=rc.rollnumber,
                date=rc.date,
                bill_number=rc.bill_number,
                vote_desc=rc.vote_desc,
                threshold=candidate.threshold,
                votes_needed=candidate.votes_needed,
                probability=first.prob,
                probability_margin=margin,
                spread_distance=candidate.spread_distance,
                cost=cost,
                n_pivotal_votes=len(group),
                pivotal_members=tuple(p.member.bioname for p in group),
            )
        )
    return tuple(records)


# ── Stage 5: Aggregation ─────────────────────────────────────────────────────


def aggregate_costs(records: Iterable[CostRecord]) -> tuple[CostRecord, ...]:
    """Sort by ascending cost and assign rank 1..n (ties keep input order)."""
    ordered = sorted(records, key=lambda r: r.cost)
    return tuple(replace(r, rank=i) for i, r in enumerate(ordered, start=1))


def cumulative_curve(ranked: Iterable[CostRecord]) -> list[tuple[float, int]]:
    """(cost, number of votes flipped at that cost) pairs, ascending."""
    return [(r.cost, r.rank) for r in ranked]


def run_pipeline(
    rollcalls: Iterable[RollCallVote],
    member_votes: Iterable[MemberVote],
    members: Iterable[Member],
    chamber: Optional[str] = DEFAULT_CHAMBER,
    congress_min: Optional[int] = None,
    congress_max: Optional[int] = None,
    rules: tuple[ClotureRule, ...] = CLOTURE_RULES,
) -> PipelineResult:
    candidates = filter_candidates(
        rollcalls,
        chamber=chamber,
        congress_min=congress_min,
        congress_max=congress_max,
        rules=rules,
    )
    eligible = join_member_votes(candidates, member_votes, members)
    pivotal = rank_pivotal_members(candidates, eligible)
    costs = aggregate_costs(compute_costs(pivotal))
    return PipelineResult(
        candidates=candidates,
        eligible=eligible,
        pivotal=pivotal,
        costs=costs,
    )
