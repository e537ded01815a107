import pytest

from sqlstream.core.errors import ResumeTargetNotFound
from sqlstream.parsing.ledger import (
    RESUME_FAILED_MESSAGE,
    begin_resume,
    edit_execution,
    fail_resume,
    merge_executions,
)
from sqlstream.parsing.models import DEFAULT_PURPOSE, SqlExecution


def _known():
    return [SqlExecution(id="q1", query="SELECT 1", purpose="list", status="interrupted", thread_id="t-1")]


def test_new_entries_are_appended_with_thread_and_original_purpose():
    merged = merge_executions([], [SqlExecution(id="a", query="SELECT 1", purpose="count")], "t-fallback")
    assert len(merged) == 1
    assert merged[0].thread_id == "t-fallback"
    assert merged[0].original_purpose == "count"


def test_resume_frame_keeps_known_query_and_purpose():
    delta = SqlExecution(id="q1", query="", purpose=DEFAULT_PURPOSE, status="completed", results=[{"n": 1}])
    merged = merge_executions(_known(), [delta], "t-other")

    assert len(merged) == 1
    entry = merged[0]
    assert entry.query == "SELECT 1"
    assert entry.purpose == "list"
    assert entry.status == "completed"
    assert entry.results == [{"n": 1}]
    assert entry.thread_id == "t-1"
    assert entry.original_purpose == "list"


def test_specific_purpose_and_query_overwrite():
    delta = SqlExecution(id="q1", query="SELECT 2", purpose="edited", status="executing")
    entry = merge_executions(_known(), [delta])[0]
    assert (entry.query, entry.purpose) == ("SELECT 2", "edited")


def test_thread_id_falls_back_in_order():
    base = [SqlExecution(id="q1", query="SELECT 1")]
    assert merge_executions(base, [SqlExecution(id="q1", thread_id="t-d")], "t-f")[0].thread_id == "t-d"
    assert merge_executions(base, [SqlExecution(id="q1")], "t-f")[0].thread_id == "t-f"


def test_merge_is_idempotent():
    batch = [
        SqlExecution(id="q1", query="", status="completed", results=[1]),
        SqlExecution(id="q2", query="SELECT 2", purpose="second"),
    ]
    once = merge_executions(_known(), batch, "t-f")
    twice = merge_executions(once, batch, "t-f")
    assert once == twice


def test_duplicate_ids_within_a_batch_collapse():
    batch = [SqlExecution(id="x", query="SELECT 1"), SqlExecution(id="x", query="", status="completed")]
    merged = merge_executions([], batch)
    assert len(merged) == 1
    assert merged[0].query == "SELECT 1"
    assert merged[0].status == "completed"


def test_merge_does_not_mutate_inputs():
    known = _known()
    merge_executions(known, [SqlExecution(id="q1", query="SELECT 9", status="completed")])
    assert known[0].query == "SELECT 1"
    assert known[0].status == "interrupted"


def test_edit_execution_records_original_purpose():
    edited = edit_execution(_known(), "q1", "SELECT 1 LIMIT 5", "sample")
    assert edited[0].query == "SELECT 1 LIMIT 5"
    assert edited[0].purpose == "sample"
    assert edited[0].original_purpose == "list"


def test_begin_resume_moves_to_executing():
    ledger = [SqlExecution(id="q1", query="SELECT 1", status="interrupted", error="old")]
    updated, target = begin_resume(ledger, "q1", thread_id_factory=lambda: "t-new")
    assert target is not None
    assert (target.status, target.error, target.thread_id) == ("executing", None, "t-new")
    assert updated[0] == target


def test_begin_resume_on_executing_entry_is_a_no_op():
    ledger = [SqlExecution(id="q1", query="SELECT 1", status="executing")]
    updated, target = begin_resume(ledger, "q1")
    assert target is None
    assert updated == ledger


def test_begin_resume_requires_a_resumable_entry():
    with pytest.raises(ResumeTargetNotFound):
        begin_resume(_known(), "missing")
    with pytest.raises(ResumeTargetNotFound):
        begin_resume([SqlExecution(id="q1", status="completed")], "q1")


def test_fail_resume_returns_entry_to_interrupted():
    ledger = [SqlExecution(id="q1", query="SELECT 1", status="executing")]
    failed = fail_resume(ledger, "q1")
    assert failed[0].status == "interrupted"
    assert failed[0].error == RESUME_FAILED_MESSAGE
