"""CSV and DataFrame output for cost records."""

import csv
from dataclasses import asdict, fields
from pathlib import Path
from typing import Sequence

import polars as pl

from filibuster_cost.models import CandidateVote, CostRecord, PivotalVote, ValidationFailure

PIVOTAL_FIELDS = [
    "congress",
    "chamber",
    "rollnumber",
    "bill_number",
    "threshold",
    "votes_needed",
    "spread_distance",
    "icpsr",
    "bioname",
    "party_code",
    "state_abbrev",
    "cast",
    "prob",
    "rank",
]
CURVE_FIELDS = ["cost", "cumulative_rank"]
FAILURE_FIELDS = ["table", "row", "field", "value", "message"]


def cost_row(record: CostRecord) -> dict:
    row = asdict(record)
    row["pivotal_members"] = "; ".join(record.pivotal_members)
    return row


def pivotal_row(pv: PivotalVote) -> dict:
    rc = pv.candidate.rollcall
    return {
        "congress": rc.congress,
        "chamber": rc.chamber,
        "rollnumber": rc.rollnumber,
        "bill_number": rc.bill_number,
        "threshold": pv.candidate.threshold,
        "votes_needed": pv.candidate.votes_needed,
        "spread_distance": pv.candidate.spread_distance,
        "icpsr": pv.member.icpsr,
        "bioname": pv.member.bioname,
        "party_code": pv.member.party_code,
        "state_abbrev": pv.member.state_abbrev,
        "cast": pv.member_vote.cast,
        "prob": pv.prob,
        "rank": pv.rank,
    }


def candidate_row(candidate: CandidateVote) -> dict:
    rc = candidate.rollcall
    return {
        "congress": rc.congress,
        "chamber": rc.chamber,
        "rollnumber": rc.rollnumber,
        "date": rc.date,
        "bill_number": rc.bill_number,
        "vote_desc": rc.vote_desc,
        "vote_question": rc.vote_question,
        "yea_count": rc.yea_count,
        "nay_count": rc.nay_count,
        "threshold": candidate.threshold,
        "votes_needed": candidate.votes_needed,
        "spread_distance": candidate.spread_distance,
    }


def failure_row(failure: ValidationFailure) -> dict:
    return {k: getattr(failure, k) for k in FAILURE_FIELDS}


# ── DataFrames ───────────────────────────────────────────────────────────────


def costs_frame(records: list[CostRecord]) -> pl.DataFrame:
    schema = {
        "congress": pl.Int64,
        "chamber": pl.Utf8,
        "rollnumber": pl.Int64,
        "date": pl.Date,
        "bill_number": pl.Utf8,
        "vote_desc": pl.Utf8,
        "threshold": pl.Int64,
        "votes_needed": pl.Int64,
        "probability": pl.Float64,
        "probability_margin": pl.Float64,
        "spread_distance": pl.Float64,
        "cost": pl.Float64,
        "n_pivotal_votes": pl.Int64,
        "pivotal_members": pl.Utf8,
        "rank": pl.Int64,
    }
    return pl.DataFrame([cost_row(r) for r in records], schema=schema)


def pivotal_frame(pivotal: list[PivotalVote]) -> pl.DataFrame:
    schema = {
        "congress": pl.Int64,
        "chamber": pl.Utf8,
        "rollnumber": pl.Int64,
        "bill_number": pl.Utf8,
        "threshold": pl.Int64,
        "votes_needed": pl.Int64,
        "spread_distance": pl.Float64,
        "icpsr": pl.Int64,
        "bioname": pl.Utf8,
        "party_code": pl.Int64,
        "state_abbrev": pl.Utf8,
        "cast": pl.Utf8,
        "prob": pl.Float64,
        "rank": pl.Int64,
    }
    return pl.DataFrame([pivotal_row(p) for p in pivotal], schema=schema)


def candidates_frame(candidates: list[CandidateVote]) -> pl.DataFrame:
    schema = {
        "congress": pl.Int64,
        "chamber": pl.Utf8,
        "rollnumber": pl.Int64,
        "date": pl.Date,
        "bill_number": pl.Utf8,
        "vote_desc": pl.Utf8,
        "vote_question": pl.Utf8,
        "yea_count": pl.Int64,
        "nay_count": pl.Int64,
        "threshold": pl.Int64,
        "votes_needed": pl.Int64,
        "spread_distance": pl.Float64,
    }
    return pl.DataFrame([candidate_row(c) for c in candidates], schema=schema)


def curve_frame(curve: list[tuple[float, int]]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "cost": [c for c, _ in curve],
            "cumulative_rank": [r for _, r in curve],
        },
        schema={"cost": pl.Float64, "cumulative_rank": pl.Int64},
    )


# ── CSV export ───────────────────────────────────────────────────────────────


def _write_rows(path: Path, fieldnames: list[str], rows: list[dict]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    print(f"  {path} ({len(rows)} rows)")


def save_csvs(
    output_dir: Path,
    output_name: str,
    costs: list[CostRecord],
    pivotal: list[PivotalVote],
    failures: Sequence[ValidationFailure] = (),
) -> None:
    """Save cost records, pivotal members, the flip curve, and any validation failures."""
    print("\n" + "=" * 60)
    print("Saving CSV files...")
    print("=" * 60)
    output_dir.mkdir(parents=True, exist_ok=True)

    # Cost records, ranked by cost
    _write_rows(
        output_dir / f"{output_name}_costs.csv",
        [fld.name for fld in fields(CostRecord)],
        [cost_row(r) for r in costs],
    )

    # Pivotal members (one row per tied member)
    _write_rows(
        output_dir / f"{output_name}_pivotal.csv",
        PIVOTAL_FIELDS,
        [pivotal_row(p) for p in pivotal],
    )

    # Cumulative flip curve
    _write_rows(
        output_dir / f"{output_name}_curve.csv",
        CURVE_FIELDS,
        [{"cost": r.cost, "cumulative_rank": r.rank} for r in costs],
    )

    if failures:
        _write_rows(
            output_dir / f"{output_name}_validation_failures.csv",
            FAILURE_FIELDS,
            [failure_row(f) for f in failures],
        )
