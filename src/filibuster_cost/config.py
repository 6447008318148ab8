"""Configuration constants for the filibuster cost analysis."""

import re
from dataclasses import dataclass
from datetime import date

DEFAULT_CHAMBER = "Senate"

# Voteview cast codes
CAST_CODES = {
    0: "Not a Member",
    1: "Yea",
    2: "Paired Yea",
    3: "Announced Yea",
    4: "Announced Nay",
    5: "Paired Nay",
    6: "Nay",
    7: "Present",
    8: "Present",
    9: "Not Voting",
}
NAY_CAST_CODES = frozenset({4, 5, 6})

# A member is flippable when the model puts their cast vote in [50, 100).
# Exactly 100 means a certain vote, never flipped.
MIN_PROBABILITY = 50.0
MAX_PROBABILITY = 100.0

CLOTURE_REJECTED_RESULT = "Cloture Motion Rejected"
MOTION_TO_PROCEED = "motion to proceed"

NOMINATION_RE = re.compile(r"^PN\d+")
SUPREME_COURT_MARKERS = ("Associate Justice", "Chief Justice")

DEFAULT_THRESHOLD = 60


@dataclass(frozen=True)
class ClotureRule:
    """A chamber rule change that lowered the cloture threshold.

    scope is "supreme_court" or "nomination" (non-Supreme Court nominations).
    The exception vote was taken on the day of the rule change itself and
    is matched by (congress, rollnumber) rather than by date.
    """

    name: str
    scope: str
    effective_after: date
    exception: tuple[int, int]
    threshold: int = 50


CLOTURE_RULES = (
    ClotureRule(
        name="Supreme Court nominations (2017)",
        scope="supreme_court",
        effective_after=date(2017, 4, 6),
        exception=(115, 110),
    ),
    ClotureRule(
        name="Executive and lower-court nominations (2013)",
        scope="nomination",
        effective_after=date(2013, 11, 21),
        exception=(113, 244),
    ),
)
