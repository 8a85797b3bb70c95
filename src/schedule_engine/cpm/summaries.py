import pandas as pd

from schedule_engine.cpm.dates import days_between, finish_date
from schedule_engine.cpm.hierarchy import resolve_hierarchy

# ---------------------------------------------------------
# GROUP ROLLUPS
# ---------------------------------------------------------

def compute_group_summaries(starts, durations, descendants, groups, indices=None):
    """
    Roll up start/finish/dur for group rows.

    starts / durations are positional lists. Groups are processed deepest
    index first so a nested group's summary exists before its ancestor
    reads it. `indices` limits the work to a subset of groups (it must be
    closed under nesting, e.g. one group plus the groups below it).
    """
    summaries = {}
    targets = groups if indices is None else indices

    for g in sorted(targets, reverse=True):
        earliest = None
        latest = None

        for c in descendants.get(g, []):
            if c in summaries:
                c_start = summaries[c]["start"]
                c_finish = summaries[c]["finish"]
            else:
                c_start = starts[c]
                if c_start is None or pd.isna(c_start):
                    continue
                c_finish = finish_date(c_start, durations[c])

            if earliest is None or c_start < earliest:
                earliest = c_start
            if latest is None or c_finish > latest:
                latest = c_finish

        # no dated descendant -> no entry
        if earliest is not None and latest is not None:
            summaries[g] = {
                "start": earliest,
                "finish": latest,
                "dur": days_between(earliest, latest),
            }

    return summaries


def summarize(df: pd.DataFrame):
    """{group index: {"start", "finish", "dur"}} for every group with a dated descendant."""
    descendants, groups, _ = resolve_hierarchy(df)
    return compute_group_summaries(
        df["Start"].tolist(),
        df["Duration"].tolist(),
        descendants,
        groups,
    )
