import pandas as pd

from schedule_engine.cpm.critical_path import build_graph, topological_order
from schedule_engine.cpm.errors import ScheduleCycleError
from schedule_engine.cpm.dates import parse_date
from schedule_engine.cpm.frame import DEP_TYPES, parse_dependency_cell, process_task_frame
from schedule_engine.cpm.scheduler import schedule_all


# ------------------------------------------------------------------
# Helper: make a consistent issue dictionary
# ------------------------------------------------------------------
def make_issue(task_id, name, severity, issue_type, description, suggestion):
    return {
        "TaskID": task_id,
        "Name": name,
        "Severity": severity,
        "IssueType": issue_type,
        "Description": description,
        "SuggestedFix": suggestion,
    }


def _raw_dependencies(row):
    """(pred, raw_type) pairs as the user typed them, before defaults apply."""
    deps = row.get("Dependencies")
    if isinstance(deps, (list, tuple, str)) and len(deps):
        pairs = []
        for entry in deps if not isinstance(deps, str) else [deps]:
            if isinstance(entry, dict):
                pairs.append((entry.get("predecessorId", entry.get("parentId")), entry.get("depType")))
            elif isinstance(entry, (list, tuple)) and entry:
                pairs.append((entry[0], entry[1] if len(entry) > 1 else None))
            else:
                pairs.extend(parse_dependency_cell(entry))
        return pairs

    pred = row.get("PredecessorID")
    if pred is None or pd.isna(pred):
        return []
    return [(pred, row.get("DepType"))]


# ------------------------------------------------------------------
# MAIN VALIDATION ENGINE
# ------------------------------------------------------------------
def validate_schedule(df):
    """
    Upstream checks for a task frame, either raw (renamed host records,
    CSV) or already normalized. The scheduler itself never rejects input;
    hosts run this before saving and show the issues.

    Returns a list of make_issue dicts (empty when the plan is clean).
    """
    issues = []

    required = ["TaskID", "Name", "Indent", "Start", "Duration"]
    missing = [c for c in required if c not in df.columns]
    if missing:
        issues.append(
            make_issue(
                "N/A", "N/A", "critical", "MissingColumns",
                f"Missing required columns: {missing}",
                "Add the missing task fields before scheduling."
            )
        )
        return issues

    # ------------------------------------------------------------------
    # 1. TaskID validation
    # ------------------------------------------------------------------
    ids = pd.to_numeric(df["TaskID"], errors="coerce")
    if ids.isna().any():
        issues.append(
            make_issue(
                None, None, "critical", "TaskIDNonNumeric",
                "Some TaskID values are blank or not numbers.",
                "Every task needs a positive integer id."
            )
        )
        return issues

    bad_ids = df[ids <= 0]
    for _, row in bad_ids.iterrows():
        issues.append(make_issue(
            row["TaskID"], row["Name"],
            "critical", "NonPositiveTaskID",
            f"TaskID must be positive (got {row['TaskID']}).",
            "Renumber the task with the next free id."
        ))

    dups = df[ids.duplicated()]["TaskID"].tolist()
    if dups:
        issues.append(
            make_issue(
                ", ".join(map(str, dups)), "",
                "critical", "DuplicateTaskID",
                f"Duplicate TaskIDs detected: {dups}",
                "Give every task a unique id."
            )
        )

    # ------------------------------------------------------------------
    # 2. Duration / indent validation
    # ------------------------------------------------------------------
    durations = pd.to_numeric(df["Duration"], errors="coerce")
    for _, row in df[durations < 0].iterrows():
        issues.append(make_issue(
            row["TaskID"], row["Name"],
            "critical", "NegativeDuration",
            f"Duration is negative ({row['Duration']}).",
            "Duration must be zero or more calendar days."
        ))

    if "Type" in df.columns:
        odd = df[(df["Type"] == "Milestone") & (durations > 0)]
        for _, row in odd.iterrows():
            issues.append(make_issue(
                row["TaskID"], row["Name"],
                "warning", "MilestoneWithDuration",
                f"Milestone has a duration of {row['Duration']} days.",
                "Set the duration to 0 or change the type to Task."
            ))

    indents = pd.to_numeric(df["Indent"], errors="coerce").fillna(0).astype(int).tolist()
    previous = None
    for pos, (_, row) in enumerate(df.iterrows()):
        indent = indents[pos]
        if indent < 0:
            issues.append(make_issue(
                row["TaskID"], row["Name"],
                "critical", "NegativeIndent",
                f"Indent is negative ({indent}).",
                "Outdent the task to level 0 or deeper."
            ))
        elif indent > (0 if previous is None else previous + 1):
            issues.append(make_issue(
                row["TaskID"], row["Name"],
                "warning", "IndentJump",
                f"Indent jumps from {0 if previous is None else previous} to {indent}.",
                "Indent one level at a time so the task has a direct parent row."
            ))
        previous = indent

    # ------------------------------------------------------------------
    # 3. Date parsing
    # ------------------------------------------------------------------
    starts = df["Start"].apply(parse_date)
    for _, row in df[starts.isna()].iterrows():
        issues.append(make_issue(
            row["TaskID"], row["Name"],
            "error", "InvalidDate",
            "Start date is missing or could not be parsed.",
            "Use YYYY-MM-DD, DD-MMM-YY or DD-MMM-YYYY."
        ))

    # ------------------------------------------------------------------
    # 4. Dependency validation
    # ------------------------------------------------------------------
    all_ids = set(ids.astype(int))

    for _, row in df.iterrows():
        tid = row["TaskID"]
        name = row["Name"]

        for pred, dep_type in _raw_dependencies(row):
            if dep_type is not None and str(dep_type).strip().upper() not in DEP_TYPES:
                issues.append(make_issue(
                    tid, name,
                    "error", "InvalidDependencyType",
                    f"Unknown dependency type '{dep_type}'.",
                    "Valid types: FS, SS, FF, SF."
                ))

            if pred is None:
                continue
            pred_id = pd.to_numeric(pred, errors="coerce")
            if pd.isna(pred_id):
                continue
            pred_id = int(pred_id)

            if pred_id == int(tid):
                issues.append(make_issue(
                    tid, name,
                    "critical", "SelfDependency",
                    "Task depends on itself.",
                    "Remove the dependency."
                ))
            elif pred_id not in all_ids:
                issues.append(make_issue(
                    tid, name,
                    "error", "MissingPredecessorTask",
                    f"Task depends on missing TaskID {pred_id}.",
                    "Fix dependency: remove or correct missing TaskID."
                ))

    # ------------------------------------------------------------------
    # 5. Cycles
    #    Scheduling follows Dependencies lists first, the critical path
    #    follows PredecessorID only: a loop in either one is reported.
    # ------------------------------------------------------------------
    already_flagged = any(i["IssueType"] == "SelfDependency" for i in issues)
    if not already_flagged and not dups:
        normalized = process_task_frame(df)
        try:
            schedule_all(normalized)
            nodes, _, _, edges_from, edges_to = build_graph(normalized)
            topological_order(nodes, edges_from, edges_to)
        except ScheduleCycleError as e:
            issues.append(make_issue(
                ", ".join(map(str, e.task_ids)), "",
                "critical", "DependencyCycle",
                str(e),
                "Break the loop by removing one of the dependencies."
            ))

    return issues
