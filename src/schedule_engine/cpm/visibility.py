import pandas as pd

from schedule_engine.cpm.dates import finish_date
from schedule_engine.cpm.hierarchy import resolve_hierarchy
from schedule_engine.cpm.summaries import summarize


def visible_indices(df: pd.DataFrame, collapsed_ids=None):
    """
    Positional indices of rows that are not hidden under a collapsed group.

    collapsed_ids holds TaskIDs, so collapse state survives inserts,
    deletes and reordering. Collapsing a group hides all of its
    descendants, not only the direct children.
    """
    if not collapsed_ids:
        return list(range(len(df)))

    descendants, _, _ = resolve_hierarchy(df)
    hidden = set()

    for pos, tid in enumerate(df["TaskID"].tolist()):
        if tid in collapsed_ids:
            hidden.update(descendants.get(pos, []))

    return [i for i in range(len(df)) if i not in hidden]


def build_visible(df: pd.DataFrame, collapsed_ids=None) -> pd.DataFrame:
    """
    Rows to render, in order.

    Group rows with a rollup show the rollup Start/Duration instead of
    their own. Adds:
      Finish          Start + Duration
      IsGroup         row heads a group
      OriginalIndex   position in the authoritative frame (route edits here)
    """
    idx = visible_indices(df, collapsed_ids)
    _, groups, _ = resolve_hierarchy(df)
    summaries = summarize(df)

    out = df.iloc[idx].copy()

    starts = out["Start"].tolist()
    durations = out["Duration"].tolist()
    for k, pos in enumerate(idx):
        summary = summaries.get(pos)
        if pos in groups and summary is not None:
            starts[k] = summary["start"]
            durations[k] = summary["dur"]

    out["Start"] = pd.to_datetime(pd.Series(starts, index=out.index))
    out["Duration"] = durations
    out["Finish"] = [finish_date(s, d) for s, d in zip(starts, durations)]
    out["Finish"] = pd.to_datetime(out["Finish"])
    out["IsGroup"] = [pos in groups for pos in idx]
    out["OriginalIndex"] = idx

    return out.reset_index(drop=True)
