"""U.S. Congress numbering.

Voteview identifies roll calls by congress number. Each Congress spans two
calendar years starting in odd years: the 1st met 1789-1790, the 113th
2013-2014, the 118th 2023-2024.

This module converts between congress numbers, years, and the labels used
for output directories.
"""

import re
from dataclasses import dataclass
from pathlib import Path

FIRST_CONGRESS_YEAR = 1789

# Range used when no --congress is given: the modern cloture era.
DEFAULT_CONGRESS_RANGE = "101-118"


def _ordinal(n: int) -> str:
    """Return the ordinal string for an integer (1st, 2nd, 3rd, 4th, ..., 113th)."""
    if 11 <= (n % 100) <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


@dataclass(frozen=True)
class Congress:
    """One two-year Congress."""

    number: int

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError(f"Congress number must be positive, got {self.number}")

    @property
    def start_year(self) -> int:
        return FIRST_CONGRESS_YEAR + 2 * (self.number - 1)

    @property
    def end_year(self) -> int:
        return self.start_year + 1

    @property
    def name(self) -> str:
        """Ordinal name (e.g., '113th')."""
        return _ordinal(self.number)

    @property
    def label(self) -> str:
        """Human-readable label, e.g., '113th (2013-2014)'"""
        return f"{self.name} ({self.start_year}-{self.end_year})"

    @property
    def output_name(self) -> str:
        """Filesystem-safe name, e.g., '113th_2013-2014'"""
        return f"{self.name}_{self.start_year}-{self.end_year}"


@dataclass(frozen=True)
class CongressRange:
    """Inclusive range of congresses covered by one analysis run."""

    first: Congress
    last: Congress

    def __post_init__(self) -> None:
        if self.first.number > self.last.number:
            raise ValueError(
                f"Congress range is reversed: {self.first.number}-{self.last.number}"
            )

    @property
    def label(self) -> str:
        if self.first == self.last:
            return self.first.label
        return f"{self.first.name}-{self.last.name} ({self.first.start_year}-{self.last.end_year})"

    @property
    def output_name(self) -> str:
        """e.g., '113th_2013-2014' or '101st-118th_1989-2024'"""
        if self.first == self.last:
            return self.first.output_name
        return f"{self.first.name}-{self.last.name}_{self.first.start_year}-{self.last.end_year}"

    @classmethod
    def from_string(cls, text: str) -> "CongressRange":
        """Parse a CLI-style range: '113', '110-118', '110_118', or '113th'."""
        m = re.match(r"^\s*(\d+)(?:st|nd|rd|th)?\s*(?:[-_]\s*(\d+)(?:st|nd|rd|th)?)?\s*$", text)
        if not m:
            raise ValueError(f"Not a congress or congress range: {text!r}")
        first = int(m.group(1))
        last = int(m.group(2)) if m.group(2) else first
        return cls(first=Congress(first), last=Congress(last))

    @staticmethod
    def data_dir_for(text: str) -> Path:
        """Default data directory for a range string.

        Examples:
            "113"     -> Path("data/113th_2013-2014")
            "101-118" -> Path("data/101st-118th_1989-2024")
        """
        return Path("data") / CongressRange.from_string(text).output_name
