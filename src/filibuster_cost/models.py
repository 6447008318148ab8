"""Data classes for roll calls, member votes, and derived cost records."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from filibuster_cost.config import CAST_CODES

VoteKey = tuple[int, str, int]  # (congress, chamber, rollnumber)
MemberKey = tuple[int, str, int]  # (congress, chamber, icpsr)


@dataclass(frozen=True)
class RollCallVote:
    """Summary of one roll call vote."""
    congress: int
    chamber: str
    rollnumber: int
    date: date
    bill_number: str
    vote_desc: str
    vote_result: str
    vote_question: str
    yea_count: int
    nay_count: int
    spread_1: float
    spread_2: float

    @property
    def key(self) -> VoteKey:
        return (self.congress, self.chamber, self.rollnumber)


@dataclass(frozen=True)
class MemberVote:
    """One member's recorded position on one roll call."""
    congress: int
    chamber: str
    rollnumber: int
    icpsr: int
    cast_code: int
    prob: Optional[float] = None  # 0-100; only required for Nay-family casts

    @property
    def vote_key(self) -> VoteKey:
        return (self.congress, self.chamber, self.rollnumber)

    @property
    def member_key(self) -> MemberKey:
        return (self.congress, self.chamber, self.icpsr)

    @property
    def cast(self) -> str:
        return CAST_CODES.get(self.cast_code, "Unknown")


@dataclass(frozen=True)
class Member:
    """One legislator in one congress."""
    congress: int
    chamber: str
    icpsr: int
    bioname: str
    party_code: Optional[int] = None
    state_abbrev: str = ""
    dim1: Optional[float] = None
    dim2: Optional[float] = None

    @property
    def key(self) -> MemberKey:
        return (self.congress, self.chamber, self.icpsr)


@dataclass(frozen=True)
class CandidateVote:
    """A failed cloture vote with its threshold and derived features."""
    rollcall: RollCallVote
    threshold: int
    votes_needed: int
    spread_distance: float

    @property
    def key(self) -> VoteKey:
        return self.rollcall.key


@dataclass(frozen=True)
class EligibleNay:
    """A flippable Nay vote joined to its member."""
    member_vote: MemberVote
    member: Member

    @property
    def vote_key(self) -> VoteKey:
        return self.member_vote.vote_key

    @property
    def prob(self) -> float:
        return self.member_vote.prob


@dataclass(frozen=True)
class PivotalVote:
    """A member whose flip completes the minimal coalition for a vote.

    rank is the member's 1-based position among the vote's eligible Nays,
    ordered by ascending probability.
    """
    candidate: CandidateVote
    member_vote: MemberVote
    member: Member
    rank: int

    @property
    def vote_key(self) -> VoteKey:
        return self.candidate.key

    @property
    def prob(self) -> float:
        return self.member_vote.prob


@dataclass(frozen=True)
class CostRecord:
    """Cost of flipping one failed cloture vote."""
    congress: int
    chamber: str
    rollnumber: int
    date: date
    bill_number: str
    vote_desc: str
    threshold: int
    votes_needed: int
    probability: float
    probability_margin: float
    spread_distance: float
    cost: float
    n_pivotal_votes: int
    pivotal_members: tuple[str, ...] = ()
    rank: int = 0

    @property
    def key(self) -> VoteKey:
        return (self.congress, self.chamber, self.rollnumber)


@dataclass(frozen=True)
class ValidationFailure:
    """Record of an input row that failed validation."""
    table: str
    row: int
    field: str
    value: str
    message: str
    vote_key: Optional[VoteKey] = None
    member_key: Optional[MemberKey] = None
