# schedule_engine/cpm/analytics_engine.py

from __future__ import annotations

import pandas as pd
import numpy as np
from typing import Dict, Any

from schedule_engine import config
from schedule_engine.cpm.critical_path import build_graph, compute_cpm, graph_start, select_critical
from schedule_engine.cpm.dates import count_business_days, finish_date, parse_date, to_iso_string
from schedule_engine.cpm.hierarchy import resolve_hierarchy


def add_schedule_metrics(df: pd.DataFrame, today=None, near_crit_threshold=None) -> pd.DataFrame:
    """
    Reporting layer on top of a scheduled task frame.

    Adds:
      - Finish            (Start + Duration calendar days)
      - BusinessDays      (weekdays between Start and Finish)
      - IsGroup           (row heads an indent group)
      - ES / EF / LS / LF / Float   (CPM day offsets, NaN for undated rows)
      - IsCritical / IsNearCritical
      - ExpectedPct       (0–100, business days elapsed as of `today`)
      - ScheduleVariance  (PercentComplete - ExpectedPct)
      - BehindSchedule    (bool)
    """
    df = df.copy()

    if today is None:
        today = pd.Timestamp.today().normalize()
    today = parse_date(today)

    if near_crit_threshold is None:
        near_crit_threshold = config.NEAR_CRITICAL_THRESHOLD

    # ------------------------------------------------------------------
    # 1. Dates
    # ------------------------------------------------------------------
    df["Finish"] = pd.to_datetime(
        pd.Series([finish_date(s, d) for s, d in zip(df["Start"], df["Duration"])], index=df.index)
    )
    df["BusinessDays"] = [
        count_business_days(s, f) for s, f in zip(df["Start"], df["Finish"])
    ]

    _, groups, _ = resolve_hierarchy(df)
    df["IsGroup"] = [pos in groups for pos in range(len(df))]

    # ------------------------------------------------------------------
    # 2. CPM values
    # ------------------------------------------------------------------
    nodes, durations, offsets, edges_from, edges_to = build_graph(df)
    es, ef, ls, lf, total_float = compute_cpm(
        nodes, durations, offsets, edges_from, edges_to, project_start=graph_start(df)
    )

    df["ES"] = df["TaskID"].map(es)
    df["EF"] = df["TaskID"].map(ef)
    df["LS"] = df["TaskID"].map(ls)
    df["LF"] = df["TaskID"].map(lf)
    df["Float"] = df["TaskID"].map(total_float)

    critical = select_critical(nodes, ef, edges_to, total_float)
    df["IsCritical"] = df["TaskID"].isin(critical)
    df["IsNearCritical"] = (
        ~df["IsCritical"] & (df["Float"] > 0) & (df["Float"] <= near_crit_threshold)
    )

    # ------------------------------------------------------------------
    # 3. Expected progress / variance
    # ------------------------------------------------------------------
    def _expected_pct(row):
        if pd.isna(row["Start"]) or today <= row["Start"]:
            return 0.0
        if row["BusinessDays"] <= 0:
            return 100.0 if today >= row["Finish"] else 0.0
        elapsed = count_business_days(row["Start"], min(today, row["Finish"]))
        return float(np.clip(elapsed / row["BusinessDays"] * 100.0, 0.0, 100.0))

    if df.empty:
        df["ExpectedPct"] = pd.Series(dtype=float)
    else:
        df["ExpectedPct"] = df.apply(_expected_pct, axis=1)
    df["ScheduleVariance"] = df["PercentComplete"].fillna(0) - df["ExpectedPct"]
    df["BehindSchedule"] = df["ScheduleVariance"] < 0

    return df


def compute_kpis(df: pd.DataFrame) -> Dict[str, Any]:
    """
    Compute high-level KPIs from an add_schedule_metrics frame.

    Returns a dict with:
      - total_tasks
      - leaf_tasks
      - group_tasks
      - milestones
      - critical_tasks
      - behind_tasks
      - avg_percent_complete
      - project_start / project_finish   (ISO dates, "" when undated)
    """

    out: Dict[str, Any] = {}

    out["total_tasks"] = int(len(df))

    if "IsGroup" in df.columns:
        out["group_tasks"] = int(df["IsGroup"].sum())
    else:
        out["group_tasks"] = 0
    out["leaf_tasks"] = out["total_tasks"] - out["group_tasks"]

    out["milestones"] = int((df["Type"] == "Milestone").sum())

    if "IsCritical" in df.columns:
        out["critical_tasks"] = int(df["IsCritical"].sum())
    else:
        out["critical_tasks"] = 0

    if "BehindSchedule" in df.columns:
        out["behind_tasks"] = int(df["BehindSchedule"].sum())
    else:
        out["behind_tasks"] = 0

    if len(df):
        out["avg_percent_complete"] = float(df["PercentComplete"].fillna(0).mean())
    else:
        out["avg_percent_complete"] = 0.0

    dated = df[df["Start"].notna()]
    if len(dated):
        finish = max(finish_date(s, d) for s, d in zip(dated["Start"], dated["Duration"]))
        out["project_start"] = to_iso_string(dated["Start"].min())
        out["project_finish"] = to_iso_string(finish)
    else:
        out["project_start"] = ""
        out["project_finish"] = ""

    return out


def add_float_bucket(df: pd.DataFrame, tolerance=None, near_crit_threshold=None) -> pd.DataFrame:
    """
    Add a 'FloatBucket' column grouping total float for the legend.

    The first two tiers use the same limits as IsCritical / IsNearCritical,
    so a row's bucket always agrees with its flags.
    """
    if tolerance is None:
        tolerance = config.CRITICAL_FLOAT_TOLERANCE
    if near_crit_threshold is None:
        near_crit_threshold = config.NEAR_CRITICAL_THRESHOLD

    df = df.copy()

    if "Float" not in df.columns:
        df["FloatBucket"] = "Unknown"
        return df

    f = df["Float"].fillna(0)
    near = f"{near_crit_threshold:g}"

    conditions = [
        f.abs() < tolerance,
        f < 0,
        f <= near_crit_threshold,
        f <= 5,
        f <= 10,
    ]
    labels = [
        "Critical (0)",
        "Negative float",
        f"Near-critical (≤ {near} d)",
        f"{near}–5 days",
        "5–10 days",
    ]
    df["FloatBucket"] = np.select(conditions, labels, default="> 10 days")

    return df


def project_date_range(df: pd.DataFrame, padding_days=None):
    """
    (first start, last finish + padding) for laying out the Gantt axis.
    An empty or undated plan spans today .. today + 30 days.
    """
    if padding_days is None:
        padding_days = config.PROJECT_RANGE_PADDING_DAYS

    dated = df[df["Start"].notna()] if len(df) else df
    if len(dated) == 0:
        today = pd.Timestamp.today().normalize()
        return today, today + pd.Timedelta(days=30)

    min_date = dated["Start"].min()
    max_date = max(finish_date(s, max(int(d), 1)) for s, d in zip(dated["Start"], dated["Duration"]))
    return min_date, max_date + pd.Timedelta(days=int(padding_days))


def build_tracker_frame(df: pd.DataFrame, tracked_ids, today=None) -> pd.DataFrame:
    """
    Master-tracker rows for the tracked tasks, derived from the task frame.

    Recomputed from scratch on every call, keyed by TaskID, so the tracker
    never holds its own copy of task dates.
    """
    if today is None:
        today = pd.Timestamp.today().normalize()

    columns = ["ActionID", "TaskID", "Description", "Status", "Raised", "Target", "Update"]
    tracked = df[df["TaskID"].isin(set(tracked_ids or []))]
    if tracked.empty:
        return pd.DataFrame(columns=columns)

    rows = []
    for _, row in tracked.iterrows():
        rows.append({
            "ActionID": f"track_{int(row['TaskID'])}",
            "TaskID": int(row["TaskID"]),
            "Description": row["Name"],
            "Status": "Completed" if row["PercentComplete"] >= 100 else "In Progress",
            "Raised": row["Start"],
            "Target": finish_date(row["Start"], row["Duration"]),
            "Update": parse_date(today),
        })

    return pd.DataFrame(rows, columns=columns)
