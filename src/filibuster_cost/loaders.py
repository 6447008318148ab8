"""Load Voteview-style tables into typed records.

Three CSVs per dataset, sharing a prefix (by default the data directory name):

  {prefix}_rollcalls.csv  one row per roll call
  {prefix}_votes.csv      one row per member per roll call
  {prefix}_members.csv    one row per member per congress

Every value is parsed from its string form so that CSVs and in-memory
DataFrames go through the same validation. A malformed row is recorded as a
ValidationFailure and, in lenient mode, only the roll calls it could affect
are dropped. In strict mode the first failure raises RowValidationError.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

import polars as pl

from filibuster_cost.config import DEFAULT_CHAMBER, MAX_PROBABILITY, NAY_CAST_CODES
from filibuster_cost.models import (
    Member,
    MemberKey,
    MemberVote,
    RollCallVote,
    ValidationFailure,
    VoteKey,
)

ROLLCALL_COLUMNS = (
    "congress",
    "chamber",
    "rollnumber",
    "date",
    "bill_number",
    "vote_desc",
    "vote_result",
    "vote_question",
    "yea_count",
    "nay_count",
    "nominate_spread_1",
    "nominate_spread_2",
)
VOTE_COLUMNS = ("congress", "chamber", "rollnumber", "icpsr", "cast_code", "prob")
MEMBER_COLUMNS = (
    "congress",
    "chamber",
    "icpsr",
    "bioname",
    "party_code",
    "state_abbrev",
    "nominate_dim1",
    "nominate_dim2",
)


class SchemaError(ValueError):
    """A table is missing required columns."""


class RowValidationError(ValueError):
    """A required field in an input row is missing or malformed."""

    def __init__(self, failure: ValidationFailure) -> None:
        self.failure = failure
        super().__init__(
            f"{failure.table} row {failure.row}: {failure.field}={failure.value!r} "
            f"({failure.message})"
        )


@dataclass(frozen=True)
class InputTables:
    """Validated records ready for the pipeline."""

    rollcalls: tuple[RollCallVote, ...]
    member_votes: tuple[MemberVote, ...]
    members: tuple[Member, ...]
    failures: tuple[ValidationFailure, ...] = field(default=())
    dropped_votes: frozenset[VoteKey] = field(default=frozenset())


# ── Field parsing ────────────────────────────────────────────────────────────


class _Row:
    """Field accessor for one row that raises RowValidationError with context."""

    def __init__(self, table: str, index: int, values: dict) -> None:
        self.table = table
        self.index = index
        self.values = values
        self.vote_key: Optional[VoteKey] = None
        self.member_key: Optional[MemberKey] = None

    def fail(self, name: str, message: str) -> RowValidationError:
        value = self.values.get(name)
        return RowValidationError(
            ValidationFailure(
                table=self.table,
                row=self.index,
                field=name,
                value="" if value is None else str(value),
                message=message,
                vote_key=self.vote_key,
                member_key=self.member_key,
            )
        )

    def text(self, name: str) -> str:
        value = self.values.get(name)
        return "" if value is None else str(value).strip()

    def required_text(self, name: str) -> str:
        value = self.text(name)
        if not value:
            raise self.fail(name, "missing value")
        return value

    def optional_float(self, name: str) -> Optional[float]:
        value = self.text(name)
        if not value:
            return None
        try:
            number = float(value)
        except ValueError:
            raise self.fail(name, "not a number") from None
        if math.isnan(number):
            return None
        if math.isinf(number):
            raise self.fail(name, "not a finite number")
        return number

    def number(self, name: str) -> float:
        number = self.optional_float(name)
        if number is None:
            raise self.fail(name, "missing value")
        return number

    def integer(self, name: str) -> int:
        # Voteview writes some integer columns with float notation ("10713.0")
        number = self.number(name)
        if not number.is_integer():
            raise self.fail(name, "not an integer")
        return int(number)

    def optional_integer(self, name: str) -> Optional[int]:
        if self.optional_float(name) is None:
            return None
        return self.integer(name)

    def iso_date(self, name: str) -> date:
        value = self.required_text(name)
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            raise self.fail(name, "not an ISO date (YYYY-MM-DD)") from None


def _check_columns(frame: pl.DataFrame, table: str, columns: tuple[str, ...]) -> None:
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise SchemaError(f"{table} table is missing columns: {', '.join(missing)}")


def _string_rows(frame: pl.DataFrame, columns: tuple[str, ...]):
    return frame.select([pl.col(c).cast(pl.Utf8) for c in columns]).iter_rows(named=True)


# ── Table parsers ────────────────────────────────────────────────────────────


def _parse_rollcall(row: _Row) -> RollCallVote:
    congress = row.integer("congress")
    chamber = row.required_text("chamber")
    rollnumber = row.integer("rollnumber")
    row.vote_key = (congress, chamber, rollnumber)
    return RollCallVote(
        congress=congress,
        chamber=chamber,
        rollnumber=rollnumber,
        date=row.iso_date("date"),
        bill_number=row.text("bill_number"),
        vote_desc=row.text("vote_desc"),
        vote_result=row.text("vote_result"),
        vote_question=row.text("vote_question"),
        yea_count=row.integer("yea_count"),
        nay_count=row.integer("nay_count"),
        spread_1=row.number("nominate_spread_1"),
        spread_2=row.number("nominate_spread_2"),
    )


def _parse_member_vote(row: _Row) -> MemberVote:
    congress = row.integer("congress")
    chamber = row.required_text("chamber")
    rollnumber = row.integer("rollnumber")
    row.vote_key = (congress, chamber, rollnumber)
    icpsr = row.integer("icpsr")
    cast_code = row.integer("cast_code")
    if not 0 <= cast_code <= 9:
        raise row.fail("cast_code", "cast code outside 0-9")
    # Probability is only consulted for Nay-family votes
    if cast_code in NAY_CAST_CODES:
        prob: Optional[float] = row.number("prob")
    else:
        prob = row.optional_float("prob")
    if prob is not None and not 0 <= prob <= MAX_PROBABILITY:
        raise row.fail("prob", "probability outside 0-100")
    return MemberVote(
        congress=congress,
        chamber=chamber,
        rollnumber=rollnumber,
        icpsr=icpsr,
        cast_code=cast_code,
        prob=prob,
    )


def _parse_member(row: _Row) -> Member:
    congress = row.integer("congress")
    chamber = row.required_text("chamber")
    icpsr = row.integer("icpsr")
    row.member_key = (congress, chamber, icpsr)
    return Member(
        congress=congress,
        chamber=chamber,
        icpsr=icpsr,
        bioname=row.text("bioname"),
        party_code=row.optional_integer("party_code"),
        state_abbrev=row.text("state_abbrev"),
        dim1=row.optional_float("nominate_dim1"),
        dim2=row.optional_float("nominate_dim2"),
    )


def _parse_table(frame, table, columns, parse, strict, key_attr=None):
    """Parse every row, collecting failures unless strict.

    When key_attr names a key the failure must carry, a row whose key fields
    are themselves malformed raises even in lenient mode: the roll calls it
    affects cannot be identified, so none of them could be dropped.
    """
    _check_columns(frame, table, columns)
    records = []
    failures = []
    for i, values in enumerate(_string_rows(frame, columns)):
        row = _Row(table, i, values)
        try:
            records.append(parse(row))
        except RowValidationError as exc:
            if strict:
                raise
            if key_attr is not None and getattr(exc.failure, key_attr) is None:
                raise
            failures.append(exc.failure)
    return records, failures


def parse_rollcalls(
    frame: pl.DataFrame, strict: bool = False
) -> tuple[list[RollCallVote], list[ValidationFailure]]:
    return _parse_table(frame, "rollcalls", ROLLCALL_COLUMNS, _parse_rollcall, strict)


def parse_member_votes(
    frame: pl.DataFrame, strict: bool = False
) -> tuple[list[MemberVote], list[ValidationFailure]]:
    return _parse_table(
        frame, "votes", VOTE_COLUMNS, _parse_member_vote, strict, key_attr="vote_key"
    )


def parse_members(
    frame: pl.DataFrame, strict: bool = False
) -> tuple[list[Member], list[ValidationFailure]]:
    return _parse_table(
        frame, "members", MEMBER_COLUMNS, _parse_member, strict, key_attr="member_key"
    )


def _restrict_chamber(frame: pl.DataFrame, chamber: Optional[str]) -> pl.DataFrame:
    if chamber is None or "chamber" not in frame.columns:
        return frame
    return frame.filter(pl.col("chamber").cast(pl.Utf8) == chamber)


def load_tables(
    rollcalls: pl.DataFrame,
    votes: pl.DataFrame,
    members: pl.DataFrame,
    strict: bool = False,
    chamber: Optional[str] = DEFAULT_CHAMBER,
) -> InputTables:
    """Validate three DataFrames and convert them to records.

    Failed roll-call and member-vote rows drop their whole roll call (both
    the roll call and every member vote on it). A failed member row drops
    every roll call on which that member cast a Nay-family vote, since
    losing a flippable Nay would shift the pivot. Member-vote and member
    rows whose own key fields are malformed raise RowValidationError.
    """
    rc_records, rc_failures = parse_rollcalls(_restrict_chamber(rollcalls, chamber), strict)
    mv_records, mv_failures = parse_member_votes(_restrict_chamber(votes, chamber), strict)
    member_records, member_failures = parse_members(_restrict_chamber(members, chamber), strict)

    failures = rc_failures + mv_failures + member_failures
    failed_members = {f.member_key for f in member_failures}
    dropped_votes = {f.vote_key for f in failures if f.vote_key is not None}
    dropped_votes.update(
        mv.vote_key
        for mv in mv_records
        if mv.member_key in failed_members and mv.cast_code in NAY_CAST_CODES
    )

    return InputTables(
        rollcalls=tuple(rc for rc in rc_records if rc.key not in dropped_votes),
        member_votes=tuple(mv for mv in mv_records if mv.vote_key not in dropped_votes),
        members=tuple(m for m in member_records if m.key not in failed_members),
        failures=tuple(failures),
        dropped_votes=frozenset(dropped_votes),
    )


def read_tables(
    data_dir: Path,
    prefix: Optional[str] = None,
    strict: bool = False,
    chamber: Optional[str] = DEFAULT_CHAMBER,
) -> InputTables:
    """Read {prefix}_rollcalls.csv, {prefix}_votes.csv and {prefix}_members.csv."""
    prefix = prefix or data_dir.name
    # All columns as strings; parsing happens per row
    rollcalls = pl.read_csv(data_dir / f"{prefix}_rollcalls.csv", infer_schema_length=0)
    votes = pl.read_csv(data_dir / f"{prefix}_votes.csv", infer_schema_length=0)
    members = pl.read_csv(data_dir / f"{prefix}_members.csv", infer_schema_length=0)
    return load_tables(rollcalls, votes, members, strict=strict, chamber=chamber)
