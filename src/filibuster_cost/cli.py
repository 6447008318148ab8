"""Command-line interface for the filibuster cost analysis."""

import argparse
from pathlib import Path

from filibuster_cost.config import CLOTURE_RULES, DEFAULT_CHAMBER, DEFAULT_THRESHOLD
from filibuster_cost.congress import DEFAULT_CONGRESS_RANGE, CongressRange
from filibuster_cost.loaders import read_tables
from filibuster_cost.output import save_csvs
from filibuster_cost.pipeline import run_pipeline


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="filibuster-cost",
        description="Estimate the cost of flipping failed cloture votes.",
    )
    parser.add_argument(
        "data_dir",
        nargs="?",
        type=Path,
        default=None,
        help="Directory holding {prefix}_rollcalls/_votes/_members.csv",
    )
    parser.add_argument(
        "--prefix",
        default=None,
        help="CSV filename prefix (default: data directory name)",
    )
    parser.add_argument(
        "--congress",
        default=DEFAULT_CONGRESS_RANGE,
        help=f"Congress or range, e.g. 113 or 110-118 (default: {DEFAULT_CONGRESS_RANGE})",
    )
    parser.add_argument(
        "--chamber",
        default=DEFAULT_CHAMBER,
        help=f"Chamber to analyze (default: {DEFAULT_CHAMBER})",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Output directory (default: the data directory)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort on the first malformed input row",
    )
    parser.add_argument(
        "--list-rules",
        action="store_true",
        help="List the cloture rule changes and exit",
    )

    args = parser.parse_args(argv)

    if args.list_rules:
        print("Cloture thresholds:")
        print()
        print(f"  Default: {DEFAULT_THRESHOLD}")
        for rule in CLOTURE_RULES:
            congress, roll = rule.exception
            print(
                f"    {rule.name:45s}  {rule.threshold} after {rule.effective_after}"
                f"  (exception: congress {congress}, roll {roll})"
            )
        return

    congresses = CongressRange.from_string(args.congress)
    data_dir = args.data_dir or CongressRange.data_dir_for(args.congress)
    output_dir = args.output or data_dir
    output_name = args.prefix or data_dir.name

    print(f"Filibuster cost analysis: {congresses.label}, {args.chamber}")
    print(f"Data:   {data_dir}")
    print(f"Output: {output_dir}")

    tables = read_tables(data_dir, prefix=args.prefix, strict=args.strict, chamber=args.chamber)
    print(f"  Roll calls:   {len(tables.rollcalls):,}")
    print(f"  Member votes: {len(tables.member_votes):,}")
    print(f"  Members:      {len(tables.members):,}")
    if tables.failures:
        print(
            f"  Validation failures: {len(tables.failures)} rows "
            f"({len(tables.dropped_votes)} roll calls dropped)"
        )

    result = run_pipeline(
        tables.rollcalls,
        tables.member_votes,
        tables.members,
        chamber=args.chamber,
        congress_min=congresses.first.number,
        congress_max=congresses.last.number,
    )
    print(f"  Failed cloture votes: {len(result.candidates)}")
    print(f"  Flippable votes:      {len(result.costs)}")

    save_csvs(
        output_dir=output_dir,
        output_name=output_name,
        costs=list(result.costs),
        pivotal=list(result.pivotal),
        failures=list(tables.failures),
    )
