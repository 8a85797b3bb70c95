from collections import defaultdict, deque

import pandas as pd

from schedule_engine import config
from schedule_engine.cpm.dates import roll_to_weekday
from schedule_engine.cpm.errors import ScheduleCycleError
from schedule_engine.logger import logger

# ---------------------------------------------------------
# GRAPH CONSTRUCTION
# ---------------------------------------------------------

def build_graph(df: pd.DataFrame):
    """
    Build the predecessor DAG over dated tasks.

    nodes:      task IDs in frame order
    durations:  {task_id: duration in calendar days}
    offsets:    {task_id: days from the project's earliest Start}
    edges_from: {pred: [(succ, dep_type), ...]}
    edges_to:   {succ: [(pred, dep_type), ...]}

    Only the single PredecessorID link is used. Multi-predecessor
    Dependencies lists do not take part in critical-path analysis.
    """
    dated = df[df["Start"].notna()]
    skipped = len(df) - len(dated)
    if skipped:
        logger.debug(f"Critical path: {skipped} undated tasks skipped")

    if dated.empty:
        return [], {}, {}, defaultdict(list), defaultdict(list)

    project_start = dated["Start"].min()

    nodes = []
    durations = {}
    offsets = {}
    for _, row in dated.iterrows():
        tid = int(row["TaskID"])
        if tid not in durations:
            nodes.append(tid)
        durations[tid] = max(int(row["Duration"]), 0)
        offsets[tid] = int((row["Start"] - project_start).days)

    edges_from = defaultdict(list)
    edges_to = defaultdict(list)

    for _, row in dated.iterrows():
        pred = row["PredecessorID"]
        if pd.isna(pred) or int(pred) not in durations:
            continue
        succ = int(row["TaskID"])
        edges_from[int(pred)].append((succ, row["DepType"]))
        edges_to[succ].append((int(pred), row["DepType"]))

    return nodes, durations, offsets, edges_from, edges_to


# ---------------------------------------------------------
# CPM
# ---------------------------------------------------------

def topological_order(nodes, edges_from, edges_to):
    """Kahn's algorithm. Raises ScheduleCycleError when nodes are left over."""
    indeg = {n: 0 for n in nodes}
    for succ, preds in edges_to.items():
        indeg[succ] = len(preds)

    q = deque([n for n in nodes if indeg[n] == 0])
    topo = []
    while q:
        n = q.popleft()
        topo.append(n)
        for succ, _ in edges_from.get(n, []):
            indeg[succ] -= 1
            if indeg[succ] == 0:
                q.append(succ)

    if len(topo) != len(nodes):
        stuck = [n for n in nodes if indeg[n] > 0]
        raise ScheduleCycleError("Graph is not acyclic; cannot compute CPM.", task_ids=stuck)

    return topo

def _roll_gap(project_start, raw_offset, succ_es):
    """
    Days the weekend roll added between a dependency's raw start offset
    and the successor's ES. Zero unless the successor sits exactly on the
    rolled date.
    """
    if project_start is None or pd.isna(project_start):
        return 0.0
    raw = project_start + pd.Timedelta(days=raw_offset)
    rolled = float((roll_to_weekday(raw) - project_start).days)
    if rolled != raw_offset and succ_es == rolled:
        return rolled - raw_offset
    return 0.0


def compute_cpm(nodes, durations, offsets, edges_from, edges_to, project_start=None):
    """
    Forward values come from the scheduled dates; the backward pass runs
    in reverse topological order.

    Late finish of a predecessor, by the successor's dependency type:
      FS  succ.LS
      SS  succ.LS + pred.Dur
      FF  succ.LF
      SF  succ.LF
    Sinks finish at the project end, and no LF exceeds it.

    With `project_start` (the date offsets count from), a successor parked
    on the Monday after a weekend candidate does not hand that weekend to
    its predecessor as float: the gap is taken off the constraint.

    Returns:
      es, ef, ls, lf, total_float
      each is a dict keyed by task ID
    """
    topo = topological_order(nodes, edges_from, edges_to)

    es = {n: float(offsets[n]) for n in nodes}
    ef = {n: es[n] + durations[n] for n in nodes}

    project_end = max(ef.values()) if ef else 0.0

    lf = {}
    ls = {}
    for n in reversed(topo):
        d = durations[n]
        finish = project_end
        for succ, dep_type in edges_from.get(n, []):
            succ_dur = durations[succ]
            if dep_type == "SS":
                raw = es[n]
            elif dep_type == "FF":
                raw = ef[n] - succ_dur
            elif dep_type == "SF":
                raw = es[n] - succ_dur
            else:
                raw = ef[n]
            gap = _roll_gap(project_start, raw, es[succ])

            if dep_type == "SS":
                constraint = ls[succ] - gap + d
            elif dep_type in ("FF", "SF"):
                constraint = lf[succ] - gap
            else:
                constraint = ls[succ] - gap
            finish = min(finish, constraint)

        lf[n] = finish
        ls[n] = finish - d

    total_float = {n: ls[n] - es[n] for n in nodes}
    return es, ef, ls, lf, total_float


def graph_start(df: pd.DataFrame):
    """The date build_graph offsets count from (NaT for an undated plan)."""
    return df["Start"].min() if len(df) else pd.NaT


def select_critical(nodes, ef, edges_to, total_float, tolerance=None):
    """
    TaskIDs whose total float is within `tolerance` days of zero
    (default CRITICAL_FLOAT_TOLERANCE).

    If nothing qualifies, the chain of PredecessorID links ending at the
    task that finishes last is returned instead.
    """
    if tolerance is None:
        tolerance = config.CRITICAL_FLOAT_TOLERANCE

    if not nodes:
        return set()

    critical = {n for n in nodes if abs(total_float[n]) < tolerance}

    if not critical:
        project_end = max(ef.values())
        end_task = [n for n in nodes if ef[n] == project_end][-1]
        pred_of = {succ: preds[0][0] for succ, preds in edges_to.items() if preds}

        current = end_task
        while current is not None and current not in critical:
            critical.add(current)
            current = pred_of.get(current)

    logger.info(f"Critical path: {len(critical)} of {len(nodes)} tasks {sorted(critical)}")
    return critical


def critical_path_ids(df: pd.DataFrame, tolerance=None):
    """Build the graph, run CPM and select the critical TaskIDs."""
    nodes, durations, offsets, edges_from, edges_to = build_graph(df)
    if not nodes:
        return set()

    es, ef, ls, lf, total_float = compute_cpm(
        nodes, durations, offsets, edges_from, edges_to, project_start=graph_start(df)
    )
    return select_critical(nodes, ef, edges_to, total_float, tolerance=tolerance)
