"""
Senate Filibuster Cost Analysis

For every failed cloture vote, finds the pivotal member whose flip would have
completed the smallest winning coalition and turns that member's vote
probability and the vote's ideological spread into a single "cost". Sorting the
costs gives a curve: how many historical filibusters would have been broken if
a rule change made at least that much persuasion available.

Usage:
  uv run python analysis/filibuster_cost.py [--congress 101-118] [--chamber Senate]
      [--data-dir DIR] [--strict]

Outputs (in results/<congresses>/filibuster_cost/<date>/):
  - data/:   Parquet files (candidate votes, pivotal members, costs, curve)
  - plots/:  PNG visualizations
  - filtering_manifest.json, run_info.json, run_log.txt
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import polars as pl

from filibuster_cost.config import (
    CLOTURE_RULES,
    DEFAULT_CHAMBER,
    DEFAULT_THRESHOLD,
    MAX_PROBABILITY,
    MIN_PROBABILITY,
    NAY_CAST_CODES,
)
from filibuster_cost.congress import DEFAULT_CONGRESS_RANGE, CongressRange
from filibuster_cost.loaders import read_tables
from filibuster_cost.output import (
    candidates_frame,
    costs_frame,
    curve_frame,
    failure_row,
    pivotal_frame,
)
from filibuster_cost.pipeline import run_pipeline

try:
    from analysis.run_context import RunContext
except ModuleNotFoundError:
    from run_context import RunContext  # type: ignore[no-redef]

# ── Primer ───────────────────────────────────────────────────────────────────

FILIBUSTER_COST_PRIMER = """\
# Filibuster Cost Analysis

## Purpose

Estimates how much additional persuasion each failed cloture vote would have
needed to succeed, and how many failed votes would have flipped at each level
of persuasion.

## Method

### Threshold

Cloture needs 60 votes, except:

- Non-Supreme Court nominations after 2013-11-21 (and the rule-change vote,
  113th Congress roll 244) need 50.
- Supreme Court nominations after 2017-04-06 (and the rule-change vote,
  115th Congress roll 110) need 50.

### Candidate votes

Roll calls whose result is "Cloture Motion Rejected" on the measure itself
(motions to proceed are excluded).

    votes_needed    = threshold - yea_count
    spread_distance = sqrt(spread_1^2 + spread_2^2)

### Pivotal member

Flippable members are Nay voters (Nay, Paired Nay, Announced Nay) whose
NOMINATE probability of voting as they did is in [50, 100). Ranked by
ascending probability, the member at rank votes_needed is pivotal. Members
tied with that probability are all pivotal. Votes with fewer flippable
members than votes_needed are dropped.

### Cost

    probability_margin = probability - 50
    cost               = probability_margin * spread_distance / 100

## Outputs

| File | Description |
|------|-------------|
| `data/candidates.parquet` | Failed cloture votes with threshold, votes_needed, spread |
| `data/pivotal.parquet` | Pivotal members (one row per tied member) |
| `data/costs.parquet` | One cost record per flippable vote, ranked |
| `data/curve.parquet` | (cost, cumulative_rank) pairs |
| `plots/cumulative_flips.png` | "How Many Filibusters Break as Cost Rises?" |
| `plots/cost_distribution.png` | Histogram of costs |
| `plots/threshold_timeline.png` | Failed cloture votes per congress by threshold |

## Caveats

- Probabilities come from the NOMINATE model and describe fit, not intent.
- A probability of exactly 100 is treated as an unflippable vote.
- Cost ties keep vote order (congress, then roll number).
"""

# ── Constants ────────────────────────────────────────────────────────────────

COST_PERCENTILES = (10, 25, 50, 75, 90)
HIST_BINS = 30
THRESHOLD_COLORS = {60: "#0015BC", 50: "#E81B23"}


# ── Helpers ──────────────────────────────────────────────────────────────────


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Senate Filibuster Cost Analysis")
    parser.add_argument("--congress", default=DEFAULT_CONGRESS_RANGE)
    parser.add_argument("--chamber", default=DEFAULT_CHAMBER)
    parser.add_argument("--data-dir", default=None, help="Override data directory path")
    parser.add_argument("--prefix", default=None, help="CSV filename prefix")
    parser.add_argument("--results-root", default=None, help="Override results root")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort on the first malformed input row",
    )
    return parser.parse_args(argv)


def print_header(title: str) -> None:
    width = 80
    print(f"\n{'=' * width}")
    print(f"  {title}")
    print(f"{'=' * width}")


def save_fig(fig: plt.Figure, path: Path, dpi: int = 150) -> None:
    fig.savefig(path, dpi=dpi, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    print(f"  Saved: {path.name}")


# ── Summaries ────────────────────────────────────────────────────────────────


def count_by_threshold(candidates: pl.DataFrame) -> dict[int, int]:
    """Number of failed cloture votes at each threshold."""
    if candidates.height == 0:
        return {}
    counts = candidates.group_by("threshold").agg(pl.len().alias("n_votes")).sort("threshold")
    return dict(zip(counts["threshold"].to_list(), counts["n_votes"].to_list()))


def summarize_costs(costs: pl.DataFrame) -> dict:
    """Cost percentiles and tie diagnostics for the manifest."""
    if costs.height == 0:
        return {"n_votes": 0}
    vals = costs["cost"].to_numpy()
    return {
        "n_votes": costs.height,
        "min": float(vals.min()),
        "max": float(vals.max()),
        "mean": float(vals.mean()),
        "percentiles": {
            f"p{p}": float(v)
            for p, v in zip(COST_PERCENTILES, np.percentile(vals, COST_PERCENTILES))
        },
        "n_zero_cost": int((vals == 0).sum()),
        "n_tied_pivots": costs.filter(pl.col("n_pivotal_votes") > 1).height,
    }


# ── Plots ────────────────────────────────────────────────────────────────────


def plot_cumulative_flips(curve: pl.DataFrame, chamber: str, out_dir: Path) -> None:
    """Step curve of votes flipped against cost."""
    fig, ax = plt.subplots(figsize=(10, 6))

    if curve.height > 0:
        ax.step(
            curve["cost"].to_numpy(),
            curve["cumulative_rank"].to_numpy(),
            where="post",
            color="#333333",
            linewidth=1.8,
        )
        median_cost = float(np.median(curve["cost"].to_numpy()))
        ax.axvline(median_cost, color="gray", linestyle="--", linewidth=1)
        ax.text(
            median_cost,
            ax.get_ylim()[1] * 0.95,
            f" Median: {median_cost:.3f}",
            fontsize=9,
            fontweight="bold",
        )

    ax.set_xlabel("Cost (probability margin x spread distance / 100)")
    ax.set_ylabel("Failed Cloture Votes Flipped")
    ax.set_title(
        f"{chamber}: How Many Filibusters Break as Cost Rises?",
        fontsize=14,
        fontweight="bold",
    )
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    fig.tight_layout()
    save_fig(fig, out_dir / "cumulative_flips.png")


def plot_cost_distribution(costs: pl.DataFrame, chamber: str, out_dir: Path) -> None:
    """Histogram of per-vote costs."""
    fig, ax = plt.subplots(figsize=(10, 5))

    if costs.height > 0:
        ax.hist(
            costs["cost"].to_numpy(),
            bins=HIST_BINS,
            color="#555555",
            alpha=0.8,
            edgecolor="white",
        )

    ax.set_xlabel("Cost")
    ax.set_ylabel("Number of Votes")
    ax.set_title(f"{chamber}: Distribution of Flip Costs", fontsize=14, fontweight="bold")
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    fig.tight_layout()
    save_fig(fig, out_dir / "cost_distribution.png")


def plot_threshold_timeline(candidates: pl.DataFrame, chamber: str, out_dir: Path) -> None:
    """Stacked bars of failed cloture votes per congress, by threshold."""
    fig, ax = plt.subplots(figsize=(12, 5))

    if candidates.height > 0:
        counts = candidates.group_by("congress", "threshold").agg(pl.len().alias("n_votes"))
        congresses = sorted(counts["congress"].unique().to_list())
        x = np.arange(len(congresses))
        bottom = np.zeros(len(congresses))
        for threshold in sorted(counts["threshold"].unique().to_list(), reverse=True):
            sub = counts.filter(pl.col("threshold") == threshold)
            by_congress = dict(zip(sub["congress"].to_list(), sub["n_votes"].to_list()))
            heights = np.array([by_congress.get(c, 0) for c in congresses])
            ax.bar(
                x,
                heights,
                bottom=bottom,
                color=THRESHOLD_COLORS.get(threshold, "#888888"),
                label=f"Threshold {threshold}",
            )
            bottom += heights
        ax.set_xticks(x)
        ax.set_xticklabels([str(c) for c in congresses], rotation=45)
        ax.legend(fontsize=10)

    ax.set_xlabel("Congress")
    ax.set_ylabel("Failed Cloture Votes")
    ax.set_title(f"{chamber}: Failed Cloture Votes by Threshold", fontsize=14, fontweight="bold")
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    fig.tight_layout()
    save_fig(fig, out_dir / "threshold_timeline.png")


def save_filtering_manifest(manifest: dict, out_dir: Path) -> None:
    path = out_dir / "filtering_manifest.json"
    with open(path, "w") as f:
        json.dump(manifest, f, indent=2, default=str)
    print(f"  Saved: {path.name}")


# ── Main ─────────────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    congresses = CongressRange.from_string(args.congress)
    data_dir = Path(args.data_dir) if args.data_dir else CongressRange.data_dir_for(args.congress)
    results_root = Path(args.results_root) if args.results_root else None

    with RunContext(
        congresses=congresses,
        analysis_name="filibuster_cost",
        params=vars(args),
        results_root=results_root,
        primer=FILIBUSTER_COST_PRIMER,
    ) as ctx:
        print(f"Senate Filibuster Cost Analysis: {congresses.label}")
        print(f"Data:    {data_dir}")
        print(f"Chamber: {args.chamber}")
        print(f"Output:  {ctx.run_dir}")

        # ── Phase 1: Load data ──
        print_header("PHASE 1: LOADING DATA")
        tables = read_tables(
            data_dir, prefix=args.prefix, strict=args.strict, chamber=args.chamber
        )
        print(f"  Roll calls:   {len(tables.rollcalls):,} rows")
        print(f"  Member votes: {len(tables.member_votes):,} rows")
        print(f"  Members:      {len(tables.members):,} rows")
        if tables.failures:
            print(f"  Validation failures: {len(tables.failures)}")
            for failure in tables.failures[:10]:
                print(
                    f"    {failure.table} row {failure.row}: "
                    f"{failure.field}={failure.value!r} ({failure.message})"
                )
            print(f"  Roll calls dropped: {len(tables.dropped_votes)}")

        result = run_pipeline(
            tables.rollcalls,
            tables.member_votes,
            tables.members,
            chamber=args.chamber,
            congress_min=congresses.first.number,
            congress_max=congresses.last.number,
        )

        # ── Phase 2: Candidate votes ──
        print_header("PHASE 2: FAILED CLOTURE VOTES")
        candidates = candidates_frame(list(result.candidates))
        threshold_counts = count_by_threshold(candidates)
        print(f"  Failed cloture votes: {candidates.height}")
        for threshold, n in threshold_counts.items():
            print(f"    Threshold {threshold}: {n}")
        candidates.write_parquet(ctx.data_dir / "candidates.parquet")

        # ── Phase 3: Pivotal members ──
        print_header("PHASE 3: PIVOTAL MEMBERS")
        pivotal = pivotal_frame(list(result.pivotal))
        n_with_pivot = pivotal.select("congress", "chamber", "rollnumber").unique().height
        print(f"  Flippable Nays on failed votes: {len(result.eligible):,}")
        print(f"  Votes with a pivotal member:    {n_with_pivot}")
        print(f"  Votes too far from threshold:   {candidates.height - n_with_pivot}")
        pivotal.write_parquet(ctx.data_dir / "pivotal.parquet")

        # ── Phase 4: Costs ──
        print_header("PHASE 4: COSTS")
        costs = costs_frame(list(result.costs))
        curve = curve_frame(result.curve)
        cost_summary = summarize_costs(costs)
        if costs.height > 0:
            print(f"  Median cost: {cost_summary['percentiles']['p50']:.4f}")
            print(f"  Max cost:    {cost_summary['max']:.4f}")
            print(f"  Tied pivots: {cost_summary['n_tied_pivots']}")
        else:
            print("  No flippable votes")
        costs.write_parquet(ctx.data_dir / "costs.parquet")
        curve.write_parquet(ctx.data_dir / "curve.parquet")

        # ── Phase 5: Plots ──
        print_header("PHASE 5: PLOTS")
        plot_cumulative_flips(curve, args.chamber, ctx.plots_dir)
        plot_cost_distribution(costs, args.chamber, ctx.plots_dir)
        plot_threshold_timeline(candidates, args.chamber, ctx.plots_dir)

        # ── Phase 6: Manifest ──
        print_header("PHASE 6: FILTERING MANIFEST")
        manifest: dict = {
            "analysis": "filibuster_cost",
            "congresses": congresses.label,
            "chamber": args.chamber,
            "strict": args.strict,
            "constants": {
                "DEFAULT_THRESHOLD": DEFAULT_THRESHOLD,
                "MIN_PROBABILITY": MIN_PROBABILITY,
                "MAX_PROBABILITY": MAX_PROBABILITY,
                "NAY_CAST_CODES": sorted(NAY_CAST_CODES),
                "CLOTURE_RULES": [
                    {
                        "name": rule.name,
                        "scope": rule.scope,
                        "effective_after": rule.effective_after.isoformat(),
                        "exception": list(rule.exception),
                        "threshold": rule.threshold,
                    }
                    for rule in CLOTURE_RULES
                ],
            },
            "n_rollcalls": len(tables.rollcalls),
            "n_failed_cloture": candidates.height,
            "n_by_threshold": threshold_counts,
            "n_flippable_nays": len(result.eligible),
            "n_with_pivot": n_with_pivot,
            "costs": cost_summary,
            "validation_failures": [failure_row(f) for f in tables.failures],
        }
        save_filtering_manifest(manifest, ctx.run_dir)

        print_header("DONE")
        print(f"  All outputs in: {ctx.run_dir}")
        print(f"  Parquet files:  {len(list(ctx.data_dir.glob('*.parquet')))}")
        print(f"  PNG plots:      {len(list(ctx.plots_dir.glob('*.png')))}")


if __name__ == "__main__":
    main()
