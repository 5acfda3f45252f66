"""Aggregate statistics over the item DataFrame and grouped render plans."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import pandas as pd

from github_dashboard.core.models import GroupedItems


def _numeric(df: pd.DataFrame, column: str) -> pd.Series:
    """Column as floats; missing column or non-numeric values count as 0."""
    if df.empty or column not in df.columns:
        return pd.Series(dtype="float64")
    return pd.to_numeric(df[column], errors="coerce").fillna(0)


def compute_sum(df: pd.DataFrame, column: str) -> float:
    return float(_numeric(df, column).sum())


def compute_count(df: pd.DataFrame, predicate: Callable[[pd.DataFrame], pd.Series] | None = None) -> int:
    """Row count, or the rows where ``predicate(df)`` is True."""
    if df.empty:
        return 0
    if predicate is None:
        return len(df)
    return int(predicate(df).fillna(False).astype(bool).sum())


def compute_group_by(df: pd.DataFrame, column: str) -> dict[str, int]:
    """Count of rows per distinct value of ``column`` (missing -> ``"None"``)."""
    if df.empty or column not in df.columns:
        return {}
    keys = df[column].map(lambda v: "None" if v is None or (isinstance(v, float) and pd.isna(v)) else str(v))
    counts = keys.value_counts(sort=False)
    return {str(k): int(v) for k, v in counts.items()}


def compute_average(df: pd.DataFrame, column: str) -> float:
    if df.empty:
        return 0
    return compute_sum(df, column) / len(df)


def compute_max(df: pd.DataFrame, column: str) -> float:
    values = _numeric(df, column)
    return 0 if values.empty else float(values.max())


def compute_min(df: pd.DataFrame, column: str) -> float:
    values = _numeric(df, column)
    return 0 if values.empty else float(values.min())


def summarize_groups(groups: Sequence[GroupedItems]) -> pd.DataFrame:
    """One row per group: name, count, share of all grouped items (0..1).

    For swimlane groups the subgroups are listed as ``"lane / column"``.
    """
    rows: list[dict[str, object]] = []
    for group in groups:
        if group.subgroups:
            for sub in group.subgroups:
                rows.append({"group": f"{group.name} / {sub.name}", "count": sub.count})
        else:
            rows.append({"group": group.name, "count": group.count})
    out = pd.DataFrame(rows, columns=["group", "count"])
    total = out["count"].sum() if not out.empty else 0
    out["share"] = out["count"] / total if total else 0.0
    return out
