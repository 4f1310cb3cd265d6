"""Tracks whether the poller is on a segment connected to the LIB."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from firecore.blockpoller.model import Block, BlockRef

_log = logging.getLogger(__name__)


class SegmentState(str, Enum):
    CONTINUOUS = "CONTINUOUS"
    INCOMPLETE = "INCOMPLETE"

    def __str__(self) -> str:
        return self.value


@dataclass
class Cursor:
    """Position of the poller within the chain of blocks it has received."""

    current_block: BlockRef | None = None
    incomplete_segment: BlockRef | None = None
    state: SegmentState = SegmentState.CONTINUOUS

    def add_block(self, block: Block, block_seen: bool, parent_seen: bool) -> None:
        previous_state = self.state
        if self.state is SegmentState.INCOMPLETE and block_seen and parent_seen:
            # A known block with a known parent puts us back on a continuous segment.
            self.state = SegmentState.CONTINUOUS
        self.current_block = block.as_ref()
        _log.debug(
            "received block %s (parent %s, seen_blk=%s, seen_parent=%s, previous_state=%s, "
            "current_state=%s, incomplete_seg=%s)",
            self.current_block,
            block.previous_ref(),
            block_seen,
            parent_seen,
            previous_state,
            self.state,
            self.incomplete_segment if self.incomplete_segment is not None else "none",
        )

    def segment_ref(self) -> BlockRef | None:
        """The block from which the current segment should be completed."""
        if self.state is SegmentState.INCOMPLETE:
            if self.incomplete_segment is None:
                raise RuntimeError("cursor is on an incomplete segment but has no segment block")
            return self.incomplete_segment
        return self.current_block

    def connected_to_lib(self) -> None:
        self.state = SegmentState.CONTINUOUS
        self.incomplete_segment = None

    def not_connected_to_lib(self) -> None:
        if self.state is SegmentState.INCOMPLETE:
            return
        if self.current_block is None:
            raise RuntimeError("cursor has no current block")
        self.state = SegmentState.INCOMPLETE
        self.incomplete_segment = BlockRef(self.current_block.id, self.current_block.num)