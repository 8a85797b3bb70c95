import pandas as pd

from schedule_engine.cpm.dates import finish_date, roll_to_weekday
from schedule_engine.cpm.errors import ScheduleCycleError
from schedule_engine.cpm.frame import task_dependencies
from schedule_engine.cpm.hierarchy import resolve_hierarchy
from schedule_engine.cpm.summaries import compute_group_summaries
from schedule_engine.logger import logger


def dependency_start(dep_type, pred_start, pred_finish, dur):
    """
    Candidate start for a task of length `dur` constrained by a
    predecessor occupying [pred_start, pred_finish].
    """
    offset = pd.Timedelta(days=int(dur or 0))
    if dep_type == "SS":
        return pred_start
    if dep_type == "FF":
        return pred_finish - offset
    if dep_type == "SF":
        return pred_start - offset
    return pred_finish


def schedule_all(df: pd.DataFrame) -> pd.DataFrame:
    """
    Resolve every task's Start from its predecessor(s).

    Returns a new frame; the input is left untouched. Tasks are looked up
    by TaskID. A task with a Dependencies list combines one candidate per
    dependency with max (ALL) or min (ANY); otherwise the single
    PredecessorID/DepType link applies. Tasks without a resolvable
    predecessor keep their stored Start.

    A predecessor that is a group contributes its rolled-up interval,
    computed after all of its descendants are resolved.

    Raises ScheduleCycleError on cyclic dependencies.
    """
    df = df.copy()
    if df.empty:
        return df

    descendants, groups, _ = resolve_hierarchy(df)

    ids = df["TaskID"].tolist()
    position = {}
    for pos, tid in enumerate(ids):
        if tid in position:
            logger.warning(f"Duplicate TaskID {tid}; row {pos} shadows row {position[tid]}")
        position[tid] = pos

    starts = df["Start"].tolist()
    durations = df["Duration"].tolist()
    deps_by_pos = [task_dependencies(row) for _, row in df.iterrows()]
    logic_by_pos = df["DepLogic"].tolist()

    resolved = set()
    path = []

    def effective_interval(pos):
        if pos in groups:
            for child in descendants[pos]:
                resolve(child)
            subtree = {pos} | (set(descendants[pos]) & groups)
            summary = compute_group_summaries(
                starts, durations, descendants, groups, indices=subtree
            ).get(pos)
            if summary is not None:
                return summary["start"], summary["finish"]

        start = starts[pos]
        if pd.isna(start):
            return None
        return start, finish_date(start, durations[pos])

    def resolve(pos):
        if pos in resolved:
            return
        if pos in path:
            cycle = [ids[p] for p in path[path.index(pos):]] + [ids[pos]]
            raise ScheduleCycleError(
                f"Dependency cycle detected: {' -> '.join(str(t) for t in cycle)}",
                task_ids=cycle[:-1],
            )

        path.append(pos)
        candidates = []

        for pred_id, dep_type in deps_by_pos[pos]:
            pred_pos = position.get(pred_id)
            if pred_pos is None:
                logger.debug(f"Task {ids[pos]}: predecessor {pred_id} not found, ignored")
                continue

            resolve(pred_pos)
            interval = effective_interval(pred_pos)
            if interval is None:
                continue

            cand = dependency_start(dep_type, interval[0], interval[1], durations[pos])
            candidates.append(roll_to_weekday(cand))

        if candidates:
            if logic_by_pos[pos] == "ANY":
                starts[pos] = min(candidates)
            else:
                starts[pos] = max(candidates)

        path.pop()
        resolved.add(pos)

    for pos in range(len(ids)):
        resolve(pos)

    before = df["Start"]
    df["Start"] = pd.to_datetime(pd.Series(starts, index=df.index))
    moved = int((before.ne(df["Start"]) & df["Start"].notna()).sum())

    logger.info(f"Scheduled {len(df)} tasks, {moved} start dates changed")
    return df
