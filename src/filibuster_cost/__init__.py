"""Filibuster cost - how much persuasion would have flipped failed cloture votes."""

__version__ = "0.1.0"

from filibuster_cost.models import CostRecord as CostRecord
from filibuster_cost.models import MemberVote as MemberVote
from filibuster_cost.models import RollCallVote as RollCallVote
from filibuster_cost.pipeline import run_pipeline as run_pipeline
from filibuster_cost.thresholds import classify_threshold as classify_threshold
