import pandas as pd

from schedule_engine import (
    build_visible,
    resolve_hierarchy,
    summarize,
    tasks_to_frame,
    visible_indices,
)


def task(tid, name, indent, start, dur=1, **extra):
    row = {"id": tid, "name": name, "type": "Task", "indent": indent, "start": start, "dur": dur}
    row.update(extra)
    return row


# ----------------------------------------------------------------
# 1. HIERARCHY
# ----------------------------------------------------------------
def test_direct_children_exclude_deeper_jumps():
    """
    0  Root        indent 0
    1  Deep        indent 2   (two levels below Root)
    2  Child       indent 1
    3  Next root   indent 0
    """
    df = tasks_to_frame([
        task(1, "Root", 0, "2026-01-05"),
        task(2, "Deep", 2, "2026-01-05"),
        task(3, "Child", 1, "2026-01-06"),
        task(4, "Next root", 0, "2026-01-07"),
    ])
    descendants, groups, direct_child_count = resolve_hierarchy(df)

    assert descendants == {0: [1, 2]}
    assert groups == {0}
    assert direct_child_count == {0: 1}


def test_descendants_are_transitive():
    df = tasks_to_frame([
        task(1, "Phase", 0, "2026-01-05"),
        task(2, "Stage", 1, "2026-01-05"),
        task(3, "Step", 2, "2026-01-05"),
        task(4, "Other stage", 1, "2026-01-06"),
        task(5, "Next phase", 0, "2026-01-07"),
    ])
    descendants, groups, direct_child_count = resolve_hierarchy(df)

    assert descendants[0] == [1, 2, 3]
    assert descendants[1] == [2]
    assert groups == {0, 1}
    assert direct_child_count == {0: 2, 1: 1}


def test_row_order_defines_grouping():
    rows = [task(1, "A", 0, "2026-01-05"), task(2, "B", 1, "2026-01-05")]

    _, groups, _ = resolve_hierarchy(tasks_to_frame(rows))
    assert groups == {0}

    _, groups, _ = resolve_hierarchy(tasks_to_frame(list(reversed(rows))))
    assert groups == set()


# ----------------------------------------------------------------
# 2. SUMMARIES
# ----------------------------------------------------------------
def test_parent_summary_uses_earliest_start_and_latest_finish():
    df = tasks_to_frame([
        task(1, "Group", 0, "2026-01-01", 0),
        task(2, "Child A", 1, "2026-01-05", 2),
        task(3, "Child B", 1, "2026-01-08", 1),
    ])
    summaries = summarize(df)

    assert list(summaries) == [0]
    assert summaries[0]["start"] == pd.Timestamp("2026-01-05")
    assert summaries[0]["finish"] == pd.Timestamp("2026-01-09")
    assert summaries[0]["dur"] == 4


def test_nested_groups_roll_up_bottom_up():
    """
    Sub   = 01-05 .. 01-08 (Step, 3 days)
    Phase = 01-05 .. 01-13 (Sub plus Other stage 01-12 + 1)
    """
    df = tasks_to_frame([
        task(1, "Phase", 0, "2026-01-01", 0),
        task(2, "Sub", 1, "2026-01-01", 0),
        task(3, "Step", 2, "2026-01-05", 3),
        task(4, "Other stage", 1, "2026-01-12", 1),
    ])
    summaries = summarize(df)

    assert summaries[1] == {
        "start": pd.Timestamp("2026-01-05"),
        "finish": pd.Timestamp("2026-01-08"),
        "dur": 3,
    }
    assert summaries[0]["start"] == pd.Timestamp("2026-01-05")
    assert summaries[0]["finish"] == pd.Timestamp("2026-01-13")
    assert summaries[0]["dur"] == 8


def test_group_without_dated_descendants_has_no_summary():
    df = tasks_to_frame([
        task(1, "Group", 0, "2026-01-05"),
        task(2, "Undated", 1, None),
        task(3, "Elsewhere", 0, "2026-01-06"),
    ])
    assert summarize(df) == {}


# ----------------------------------------------------------------
# 3. VISIBILITY
# ----------------------------------------------------------------
def four_row_tree():
    return tasks_to_frame([
        task(1, "Group", 0, "2026-01-05"),
        task(2, "Child A", 1, "2026-01-06"),
        task(3, "Child B", 1, "2026-01-07"),
        task(4, "Sibling", 0, "2026-01-08"),
    ])


def test_collapsed_group_hides_children():
    df = four_row_tree()

    assert visible_indices(df, {1}) == [0, 3]
    assert visible_indices(df, set()) == [0, 1, 2, 3]
    assert visible_indices(df, None) == [0, 1, 2, 3]
    # collapsing a leaf hides nothing
    assert visible_indices(df, {2}) == [0, 1, 2, 3]


def test_collapse_hides_transitively():
    df = tasks_to_frame([
        task(1, "Phase", 0, "2026-01-05"),
        task(2, "Stage", 1, "2026-01-05"),
        task(3, "Step", 2, "2026-01-05"),
        task(4, "Next phase", 0, "2026-01-06"),
    ])

    assert visible_indices(df, {1}) == [0, 3]
    assert visible_indices(df, {2}) == [0, 1, 3]
    assert visible_indices(df, {1, 2}) == [0, 3]


def test_collapse_state_follows_task_id_after_insert():
    rows = [
        task(1, "Group", 0, "2026-01-05"),
        task(2, "Child", 1, "2026-01-06"),
        task(3, "Sibling", 0, "2026-01-08"),
    ]
    assert visible_indices(tasks_to_frame(rows), {1}) == [0, 2]

    inserted = [task(9, "New first row", 0, "2026-01-02")] + rows
    assert visible_indices(tasks_to_frame(inserted), {1}) == [0, 1, 3]


def test_build_visible_overrides_group_dates_and_keeps_index_mapping():
    df = four_row_tree()
    visible = build_visible(df, {1})

    assert len(visible) == 2
    assert visible["IsGroup"].tolist() == [True, False]
    assert visible["OriginalIndex"].tolist() == [0, 3]

    # Group row shows the rollup of Child A (01-06 + 1) and Child B (01-07 + 1)
    group = visible.iloc[0]
    assert group["Start"] == pd.Timestamp("2026-01-06")
    assert group["Duration"] == 2
    assert group["Finish"] == pd.Timestamp("2026-01-08")

    sibling = visible.iloc[1]
    assert sibling["Start"] == pd.Timestamp("2026-01-08")
    assert sibling["Finish"] == pd.Timestamp("2026-01-09")


def test_build_visible_rows_map_back_to_source_rows():
    df = four_row_tree()
    visible = build_visible(df, set())

    for _, row in visible.iterrows():
        source = df.iloc[row["OriginalIndex"]]
        assert source["TaskID"] == row["TaskID"]
        assert source["Name"] == row["Name"]
        if not row["IsGroup"]:
            assert source["Start"] == row["Start"]
            assert source["Duration"] == row["Duration"]


def test_build_visible_does_not_touch_source_frame():
    df = four_row_tree()
    before = df.copy()
    build_visible(df, {1})
    pd.testing.assert_frame_equal(df, before)
