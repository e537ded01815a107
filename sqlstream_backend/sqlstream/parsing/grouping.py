from __future__ import annotations

from typing import Sequence

from sqlstream.parsing.models import ContentBlock, GroupedContentBlock


def _finalize(run: list[ContentBlock], position: int) -> GroupedContentBlock:
    channel = run[0].channel
    earliest = min(b.created_at for b in run)
    multiple = len(run) > 1

    if channel == "reasoning":
        return GroupedContentBlock(
            id=f"grouped-reasoning-{position}",
            channel=channel,
            payload=[b.model_copy() for b in run],
            earliest_timestamp=earliest,
            is_multiple=multiple,
        )

    return GroupedContentBlock(
        id=f"grouped-narrative-{position}" if multiple else run[0].id,
        channel=channel,
        payload="".join(b.content for b in run),
        earliest_timestamp=earliest,
        is_multiple=multiple,
    )


def group_blocks(blocks: Sequence[ContentBlock]) -> list[GroupedContentBlock]:
    """
    Coalesce consecutive same-channel blocks, left to right.

    Group ids depend only on position, so re-running on a longer list
    reproduces the groups of the unchanged prefix (the last group may grow).
    """
    grouped: list[GroupedContentBlock] = []
    run: list[ContentBlock] = []

    for block in blocks:
        if run and run[0].channel != block.channel:
            grouped.append(_finalize(run, len(grouped) + 1))
            run = []
        run.append(block)

    if run:
        grouped.append(_finalize(run, len(grouped) + 1))
    return grouped
