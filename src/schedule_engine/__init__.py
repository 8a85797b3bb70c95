from schedule_engine.cpm.dates import (
    add_business_days,
    calendar_span,
    count_business_days,
    days_between,
    finish_date,
    format_ddmmmyy,
    parse_date,
    roll_to_weekday,
    to_iso_string,
)
from schedule_engine.cpm.errors import ScheduleCycleError
from schedule_engine.cpm.frame import (
    format_dependencies,
    frame_to_records,
    has_dependencies,
    next_task_id,
    parse_dependency_cell,
    process_task_frame,
    tasks_to_frame,
)
from schedule_engine.cpm.hierarchy import resolve_hierarchy
from schedule_engine.cpm.summaries import summarize
from schedule_engine.cpm.scheduler import dependency_start, schedule_all
from schedule_engine.cpm.visibility import build_visible, visible_indices
from schedule_engine.cpm.critical_path import (
    build_graph,
    compute_cpm,
    critical_path_ids,
    graph_start,
    select_critical,
    topological_order,
)
from schedule_engine.cpm.analytics_engine import (
    add_float_bucket,
    add_schedule_metrics,
    build_tracker_frame,
    compute_kpis,
    project_date_range,
)
from schedule_engine.cpm.pipeline import compute_schedule_from_records
from schedule_engine.validation.schedule_validator import validate_schedule
