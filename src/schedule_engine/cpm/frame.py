import re

import pandas as pd

from schedule_engine import config
from schedule_engine.cpm.dates import parse_date, to_iso_string

DEP_TYPES = ("FS", "SS", "FF", "SF")
DEP_LOGICS = ("ALL", "ANY")
TASK_TYPES = ("Task", "Milestone")

# Host record key -> frame column. "parent" is the legacy name of the
# predecessor link and has nothing to do with the indent hierarchy.
RECORD_COLUMNS = {
    "id": "TaskID",
    "name": "Name",
    "type": "Type",
    "indent": "Indent",
    "start": "Start",
    "dur": "Duration",
    "pct": "PercentComplete",
    "predecessorId": "PredecessorID",
    "parent": "PredecessorID",
    "depType": "DepType",
    "dependencies": "Dependencies",
    "depLogic": "DepLogic",
}

TASK_COLUMNS = [
    "TaskID", "Name", "Type", "Indent",
    "Start", "Duration", "PercentComplete",
    "PredecessorID", "DepType", "Dependencies", "DepLogic",
]

# ---------------------------------------------------------
# DEPENDENCY PARSING
# ---------------------------------------------------------

DEPENDENCY_PATTERN = re.compile(
    r"""
    ^\s*
    (?P<pred>\d+)
    \s*
    (?P<type>FS|SS|FF|SF)?    # optional type
    \s*$
    """,
    re.VERBOSE | re.IGNORECASE,
)


def _normalize_dep_type(value):
    text = str(value).strip().upper() if value is not None else ""
    return text if text in DEP_TYPES else config.DEFAULT_DEP_TYPE


def parse_dependency_cell(cell):
    """
    Parse a Dependencies cell into a list of (predecessor_id, dep_type).

    Accepted shapes:
      [{"predecessorId": 1, "depType": "FS"}, ...]   (legacy key: "parentId")
      [(1, "FS"), (2, "SS")]
      "1FS, 5SS"
      "7"
    Entries without a usable predecessor id are dropped.
    """
    if cell is None:
        return []

    if isinstance(cell, str):
        results = []
        for raw in re.split(r"[;,]", cell):
            m = DEPENDENCY_PATTERN.match(raw)
            if not m:
                continue
            results.append((int(m.group("pred")), _normalize_dep_type(m.group("type"))))
        return results

    if not isinstance(cell, (list, tuple)):
        return []

    results = []
    for entry in cell:
        if isinstance(entry, dict):
            pred = entry.get("predecessorId", entry.get("parentId"))
            dep_type = entry.get("depType")
        elif isinstance(entry, (list, tuple)) and entry:
            pred = entry[0]
            dep_type = entry[1] if len(entry) > 1 else None
        else:
            continue

        if pred is None:
            continue
        pred = pd.to_numeric(pred, errors="coerce")
        if pd.isna(pred):
            continue
        results.append((int(pred), _normalize_dep_type(dep_type)))

    return results


# ---------------------------------------------------------
# FRAME NORMALIZATION
# ---------------------------------------------------------

def process_task_frame(df_input: pd.DataFrame) -> pd.DataFrame:
    """
    Clean and normalize a task frame built from host records or a CSV.

    Guarantees:
      - TaskID is int (missing / non-numeric ids raise ValueError)
      - Indent and Duration are ints (blank -> 0)
      - Start is datetime (unparseable -> NaT)
      - PercentComplete numeric, clamped to 0–100
      - PredecessorID is nullable Int64
      - DepType / DepLogic are valid codes
      - Dependencies is a list of (id, dep_type) per row
    Row order is preserved; it defines the hierarchy.
    """
    df = df_input.copy()
    df.columns = [str(c).strip() for c in df.columns]

    # ---- TaskID ----
    if "TaskID" not in df.columns:
        raise ValueError("Missing required column: 'TaskID'")
    df["TaskID"] = pd.to_numeric(df["TaskID"], errors="coerce")
    if df["TaskID"].isna().any():
        raise ValueError(
            f"Non-numeric TaskID values found at rows: {df.index[df['TaskID'].isna()].tolist()}"
        )
    df["TaskID"] = df["TaskID"].astype(int)

    # ---- Name / Type ----
    if "Name" not in df.columns:
        df["Name"] = ""
    df["Name"] = df["Name"].fillna("").astype(str)

    if "Type" not in df.columns:
        df["Type"] = "Task"
    df["Type"] = df["Type"].where(df["Type"].isin(TASK_TYPES), "Task")

    # ---- Indent / Duration ----
    for col in ["Indent", "Duration"]:
        if col not in df.columns:
            df[col] = 0
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0).astype(int)

    # ---- Start ----
    if "Start" not in df.columns:
        df["Start"] = None
    df["Start"] = pd.to_datetime(df["Start"].apply(parse_date))

    # ---- PercentComplete (0–100) ----
    if "PercentComplete" in df.columns:
        df["PercentComplete"] = pd.to_numeric(df["PercentComplete"], errors="coerce").fillna(0.0)
    else:
        df["PercentComplete"] = 0.0
    df["PercentComplete"] = df["PercentComplete"].clip(lower=0.0, upper=100.0)

    # ---- Dependency fields ----
    if "PredecessorID" not in df.columns:
        df["PredecessorID"] = None
    df["PredecessorID"] = pd.to_numeric(df["PredecessorID"], errors="coerce").astype("Int64")

    if "DepType" not in df.columns:
        df["DepType"] = None
    df["DepType"] = df["DepType"].apply(_normalize_dep_type)

    if "Dependencies" not in df.columns:
        df["Dependencies"] = None
    df["Dependencies"] = df["Dependencies"].apply(parse_dependency_cell)

    if "DepLogic" not in df.columns:
        df["DepLogic"] = None
    df["DepLogic"] = df["DepLogic"].apply(
        lambda v: "ANY" if str(v).strip().upper() == "ANY" else "ALL"
    )

    extra = [c for c in df.columns if c not in TASK_COLUMNS]
    return df[TASK_COLUMNS + extra].reset_index(drop=True)


def tasks_to_frame(records) -> pd.DataFrame:
    """Build a normalized task frame from the host's list of task dicts."""
    df = pd.DataFrame.from_records(list(records))
    if "predecessorId" in df.columns and "parent" in df.columns:
        df["predecessorId"] = df["predecessorId"].fillna(df["parent"])
        df = df.drop(columns=["parent"])
    if df.empty:
        df = pd.DataFrame(columns=TASK_COLUMNS)
    df = df.rename(columns=RECORD_COLUMNS)
    return process_task_frame(df)


def frame_to_records(df: pd.DataFrame):
    """
    Inverse of tasks_to_frame: host-shaped dicts with ISO dates, in frame order.
    Host fields outside the task schema (owner, notes, ...) are passed back
    under their own keys; blanks come back as None.
    """
    extra = [c for c in df.columns if c not in TASK_COLUMNS]

    records = []
    for _, row in df.iterrows():
        pred = row["PredecessorID"]
        record = {
            "id": int(row["TaskID"]),
            "name": row["Name"],
            "type": row["Type"],
            "indent": int(row["Indent"]),
            "start": to_iso_string(row["Start"]),
            "dur": int(row["Duration"]),
            "pct": float(row["PercentComplete"]),
            "predecessorId": None if pd.isna(pred) else int(pred),
            "depType": row["DepType"],
            "dependencies": [
                {"predecessorId": p, "depType": t} for p, t in row["Dependencies"]
            ],
            "depLogic": row["DepLogic"],
        }
        for col in extra:
            value = row[col]
            if not isinstance(value, (list, tuple, dict)) and pd.isna(value):
                value = None
            record[col] = value
        records.append(record)
    return records


# ---------------------------------------------------------
# ROW HELPERS
# ---------------------------------------------------------

def task_dependencies(row):
    """
    Effective dependency list of one task row: the Dependencies list when
    present, else the single PredecessorID link.
    """
    deps = row["Dependencies"]
    if deps:
        return list(deps)
    pred = row["PredecessorID"]
    if pd.isna(pred):
        return []
    return [(int(pred), row["DepType"])]


def has_dependencies(row) -> bool:
    return bool(task_dependencies(row))


def format_dependencies(row) -> str:
    """'1FS, 5SS, 10FF' for the grid; an en dash when there are none."""
    deps = task_dependencies(row)
    if not deps:
        return "–"
    return ", ".join(f"{pred}{dep_type}" for pred, dep_type in deps)


def next_task_id(df: pd.DataFrame) -> int:
    if df.empty:
        return 1
    return int(df["TaskID"].max()) + 1
