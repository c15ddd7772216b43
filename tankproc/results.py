from __future__ import annotations

from typing import Any, Iterable, Mapping
import pandas as pd


class ResultsTable:
    """Per-run results keyed by run id.

    Runs that could not be reduced are recorded in :attr:`skipped` with the
    reason instead of occupying a placeholder row.
    """

    def __init__(self) -> None:
        self._rows: dict[int, dict[str, Any]] = {}
        self.skipped: list[tuple[int, str]] = []

    def add(self, run: int, row: Mapping[str, Any]) -> None:
        out = {"run": int(run)}
        out.update({k: v for k, v in row.items() if k != "run"})
        self._rows[int(run)] = out

    def skip(self, run: int, reason: str) -> None:
        self.skipped.append((int(run), str(reason)))

    def get(self, run: int) -> dict[str, Any] | None:
        return self._rows.get(int(run))

    @property
    def runs(self) -> list[int]:
        return sorted(self._rows)

    def __contains__(self, run) -> bool:
        return int(run) in self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def to_frame(self, columns: Iterable[str] | None = None) -> pd.DataFrame:
        rows = [self._rows[r] for r in self.runs]
        cols = list(columns) if columns is not None else None
        df = pd.DataFrame(rows, columns=cols)
        if cols is None and rows:
            # keep "run" first, rest in insertion order of the first row
            df = df[["run"] + [c for c in df.columns if c != "run"]]
        return df

    @classmethod
    def from_frame(cls, df: pd.DataFrame, run_col: str = "run") -> "ResultsTable":
        if run_col not in df.columns:
            raise KeyError(f"Column '{run_col}' not found. Available columns: {', '.join(map(str, df.columns))}")
        table = cls()
        for rec in df.to_dict(orient="records"):
            run = rec.pop(run_col)
            table.add(int(run), rec)
        return table


def parse_run_spec(spec) -> list[int]:
    """Expand ``"1-4,7,9-10"`` (or an int / list of ints) into run numbers."""
    if isinstance(spec, int):
        return [spec]
    if not isinstance(spec, str):
        return [int(r) for r in spec]
    runs: list[int] = []
    for part in spec.replace(" ", "").split(","):
        if not part:
            continue
        if "-" in part:
            a, b = part.split("-", 1)
            lo, hi = int(a), int(b)
            if hi < lo:
                raise ValueError(f"Descending run range {part!r}")
            runs.extend(range(lo, hi + 1))
        else:
            runs.append(int(part))
    return runs


__all__ = ["ResultsTable", "parse_run_spec"]
