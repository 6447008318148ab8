"""Structured output for the filibuster cost analysis.

Each run writes into results/<congresses>/<analysis>/<date>/ with plots/ and
data/ subdirectories, a copy of everything printed (run_log.txt), and
run_info.json. Successful runs become the analysis's `latest`.
"""

from __future__ import annotations

import io
import json
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path

from filibuster_cost.congress import CongressRange


class _TeeStream:
    """Duplicates writes to the console and an in-memory log."""

    def __init__(self, original: io.TextIOBase) -> None:
        self._original = original
        self._buffer = io.StringIO()

    def write(self, data: str) -> int:
        self._original.write(data)
        self._buffer.write(data)
        return len(data)

    def flush(self) -> None:
        self._original.flush()

    def getvalue(self) -> str:
        return self._buffer.getvalue()


def _git_commit_hash() -> str:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"], capture_output=True, text=True, timeout=5
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return "unknown"
    return result.stdout.strip() if result.returncode == 0 else "unknown"


class RunContext:
    """Context manager owning one run's output directory and console log.

    Usage:
        with RunContext(CongressRange.from_string("101-118"), "filibuster_cost") as ctx:
            costs.write_parquet(ctx.data_dir / "costs.parquet")
    """

    def __init__(
        self,
        congresses: CongressRange,
        analysis_name: str,
        params: dict | None = None,
        results_root: Path | None = None,
        primer: str | None = None,
    ) -> None:
        self.congresses = congresses
        self.analysis_name = analysis_name
        self.params = params or {}
        self.run_date = datetime.now(timezone.utc).strftime("%Y-%m-%d")

        root = results_root or Path("results")
        self.analysis_dir = root / congresses.output_name / analysis_name
        self.run_dir = self.analysis_dir / self.run_date
        self.plots_dir = self.run_dir / "plots"
        self.data_dir = self.run_dir / "data"

        self._primer = primer
        self._tee: _TeeStream | None = None
        self._stdout = None
        self._started: datetime | None = None

    def __enter__(self) -> RunContext:
        self.plots_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(exist_ok=True)
        if self._primer:
            (self.analysis_dir / "README.md").write_text(self._primer, encoding="utf-8")

        self._stdout = sys.stdout
        self._tee = _TeeStream(sys.stdout)
        sys.stdout = self._tee  # type: ignore[assignment]
        self._started = datetime.now(timezone.utc)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        sys.stdout = self._stdout
        failed = exc_type is not None
        (self.run_dir / "run_log.txt").write_text(self._tee.getvalue(), encoding="utf-8")

        run_info = {
            "analysis": self.analysis_name,
            "congresses": self.congresses.label,
            "run_date": self.run_date,
            "status": "failed" if failed else "complete",
            "timestamp_start": self._started.isoformat(),
            "timestamp_end": datetime.now(timezone.utc).isoformat(),
            "git_commit": _git_commit_hash(),
            "python_version": sys.version,
            "params": self.params,
        }
        with open(self.run_dir / "run_info.json", "w") as f:
            json.dump(run_info, f, indent=2, default=str)

        # A failed run keeps its directory but does not become `latest`
        if failed:
            return
        latest = self.analysis_dir / "latest"
        if latest.is_symlink() or latest.exists():
            latest.unlink()
        latest.symlink_to(self.run_date)
