"""Cloture threshold classification.

The Senate lowered the cloture threshold from 60 to a simple majority twice:
for executive and lower-court nominations on 2013-11-21 and for Supreme Court
nominations on 2017-04-06. Each rule change was itself made by a roll call on
that day, so those two votes are matched by (congress, rollnumber):

  113th Congress, roll 244  (nominations, 2013)
  115th Congress, roll 110  (Supreme Court, 2017)

Everything else falls back to DEFAULT_THRESHOLD (60).
"""

from filibuster_cost.config import (
    CLOTURE_RULES,
    DEFAULT_THRESHOLD,
    NOMINATION_RE,
    SUPREME_COURT_MARKERS,
    ClotureRule,
)
from filibuster_cost.models import RollCallVote


def is_nomination(rollcall: RollCallVote) -> bool:
    """True when the bill number is a presidential nomination (PN...)."""
    return NOMINATION_RE.match(rollcall.bill_number.strip()) is not None


def is_supreme_court(rollcall: RollCallVote) -> bool:
    return any(marker in rollcall.vote_desc for marker in SUPREME_COURT_MARKERS)


def _rule_applies(rule: ClotureRule, nomination: bool, scotus: bool) -> bool:
    if rule.scope == "supreme_court":
        return scotus
    if rule.scope == "nomination":
        return nomination and not scotus
    raise ValueError(f"Unknown cloture rule scope: {rule.scope!r}")


def classify_threshold(
    rollcall: RollCallVote,
    rules: tuple[ClotureRule, ...] = CLOTURE_RULES,
) -> int:
    """Return the cloture threshold in force for a roll call.

    Rules are checked in order; the first one whose scope matches and whose
    rule change had taken effect (or whose exception vote this is) wins.
    """
    nomination = is_nomination(rollcall)
    scotus = is_supreme_court(rollcall)
    for rule in rules:
        if not _rule_applies(rule, nomination, scotus):
            continue
        is_exception = (rollcall.congress, rollcall.rollnumber) == rule.exception
        if rollcall.date > rule.effective_after or is_exception:
            return rule.threshold
    return DEFAULT_THRESHOLD
