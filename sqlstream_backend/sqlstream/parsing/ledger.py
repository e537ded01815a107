from __future__ import annotations

from typing import Callable, Iterable, Sequence

from sqlstream.core.errors import ResumeTargetNotFound
from sqlstream.parsing.models import DEFAULT_PURPOSE, SqlExecution
from sqlstream.utils.ids import new_thread_id


RESUME_FAILED_MESSAGE = "Failed to execute query"


def _reconcile(current: SqlExecution, delta: SqlExecution, fallback_thread_id: str | None) -> SqlExecution:
    """
    Field precedence when a delta hits a known id:
    - query: a blank delta query never erases known text (result-only resume frames)
    - purpose: the generic default never replaces a specific purpose
    - thread_id: first known wins (existing, then delta, then fallback)
    - original_purpose: seeded once from the existing entry
    Everything else comes from the delta.
    """
    keep_purpose = (
        delta.purpose == DEFAULT_PURPOSE
        and bool(current.purpose)
        and current.purpose != DEFAULT_PURPOSE
    )
    return delta.model_copy(
        update={
            "query": current.query if not delta.query.strip() else delta.query,
            "purpose": current.purpose if keep_purpose else delta.purpose,
            "thread_id": current.thread_id or delta.thread_id or fallback_thread_id,
            "original_purpose": (
                current.original_purpose if current.original_purpose is not None else current.purpose
            ),
        },
        deep=True,
    )


def merge_executions(
    existing: Sequence[SqlExecution],
    incoming: Iterable[SqlExecution],
    fallback_thread_id: str | None = None,
) -> list[SqlExecution]:
    """
    Merge a batch of execution deltas into a ledger, deduplicating by id.

    Idempotent: merging the same batch twice equals merging it once.
    Callers must serialize merges into the same ledger.
    """
    merged = [e.model_copy(deep=True) for e in existing]
    positions = {e.id: i for i, e in enumerate(merged)}

    for delta in incoming:
        pos = positions.get(delta.id)
        if pos is None:
            positions[delta.id] = len(merged)
            merged.append(
                delta.model_copy(
                    update={
                        "thread_id": delta.thread_id or fallback_thread_id,
                        "original_purpose": delta.purpose,
                    },
                    deep=True,
                )
            )
            continue
        merged[pos] = _reconcile(merged[pos], delta, fallback_thread_id)

    return merged


def find_execution(ledger: Sequence[SqlExecution], execution_id: str) -> SqlExecution | None:
    for e in ledger:
        if e.id == execution_id:
            return e
    return None


def _replace(ledger: Sequence[SqlExecution], updated: SqlExecution) -> list[SqlExecution]:
    return [updated if e.id == updated.id else e for e in ledger]


def edit_execution(
    ledger: Sequence[SqlExecution],
    execution_id: str,
    query: str,
    purpose: str,
) -> list[SqlExecution]:
    target = find_execution(ledger, execution_id)
    if target is None:
        return list(ledger)
    return _replace(
        ledger,
        target.model_copy(
            update={
                "query": query,
                "purpose": purpose,
                "original_purpose": target.original_purpose or target.purpose,
            }
        ),
    )


def begin_resume(
    ledger: Sequence[SqlExecution],
    execution_id: str,
    *,
    thread_id_factory: Callable[[], str] = new_thread_id,
) -> tuple[list[SqlExecution], SqlExecution | None]:
    """
    Move an interrupted execution back to "executing" before its resume stream starts.

    Returns the new ledger and the execution to resume, or None when it is
    already executing (nothing to start).
    """
    target = find_execution(ledger, execution_id)
    if target is None or target.status not in ("interrupted", "executing"):
        raise ResumeTargetNotFound(execution_id)

    if target.status == "executing":
        return list(ledger), None

    resumed = target.model_copy(
        update={
            "status": "executing",
            "error": None,
            "thread_id": target.thread_id or thread_id_factory(),
        }
    )
    return _replace(ledger, resumed), resumed


def fail_resume(ledger: Sequence[SqlExecution], execution_id: str) -> list[SqlExecution]:
    target = find_execution(ledger, execution_id)
    if target is None:
        return list(ledger)
    return _replace(
        ledger,
        target.model_copy(update={"status": "interrupted", "error": RESUME_FAILED_MESSAGE}),
    )
