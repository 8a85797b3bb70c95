from schedule_engine.cpm.analytics_engine import add_float_bucket, add_schedule_metrics
from schedule_engine.cpm.frame import tasks_to_frame
from schedule_engine.cpm.scheduler import schedule_all
from schedule_engine.cpm.summaries import summarize
from schedule_engine.cpm.visibility import build_visible
from schedule_engine.logger import logger

# ---------------------------------------------------------
# EXPORTED ENTRY POINT
# ---------------------------------------------------------

def compute_schedule_from_records(records, collapsed_ids=None, today=None):
    """
    Full pipeline, run by the host after every task edit:
      1. Normalize host records into a task frame
      2. Resolve start dates from dependencies
      3. Roll up group rows
      4. Add CPM / reporting metrics
      5. Project the rows to render

    Returns a dict:
      {
        tasks:         scheduled frame with metrics, in input order
        summaries:     {group index: {start, finish, dur}}
        visible:       rows to render (see build_visible)
        critical_path: set of critical TaskIDs
      }
    """
    # 1. Normalize
    df = tasks_to_frame(records)

    # 2. Schedule
    scheduled = schedule_all(df)

    # 3. Rollups
    summaries = summarize(scheduled)

    # 4. Metrics
    tasks = add_float_bucket(add_schedule_metrics(scheduled, today=today))
    critical = set(tasks.loc[tasks["IsCritical"], "TaskID"].astype(int))

    # 5. Visible rows
    visible = build_visible(scheduled, collapsed_ids)
    visible["IsCritical"] = visible["TaskID"].isin(critical)

    logger.info(
        f"Pipeline: {len(tasks)} tasks, {len(summaries)} groups, "
        f"{len(visible)} visible, {len(critical)} critical"
    )

    return {
        "tasks": tasks,
        "summaries": summaries,
        "visible": visible,
        "critical_path": critical,
    }
