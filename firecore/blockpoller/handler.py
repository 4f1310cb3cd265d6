"""Block handlers that receive the blocks fired by the poller."""

from __future__ import annotations

import base64
import sys
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import TextIO

from firecore.blockpoller.model import Block

_TYPE_URL_PREFIX = "type.googleapis.com/"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def clean(type_url: str) -> str:
    """Strip the first ``type.googleapis.com/`` prefix from a type URL."""
    return type_url.replace(_TYPE_URL_PREFIX, "", 1)


def _unix_nanos(moment: datetime | None) -> int:
    if moment is None:
        return 0
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // timedelta(microseconds=1) * 1000


class BlockHandler(ABC):
    """Receives blocks once they are final enough to be fired."""

    @abstractmethod
    def init(self) -> None:
        """Called once before the first block is handled."""

    @abstractmethod
    def handle(self, block: Block) -> None:
        """Handle one block; raise to stop the poller."""


class FireBlockHandler(BlockHandler):
    """Writes blocks as ``FIRE`` protocol lines."""

    def __init__(self, block_type_url: str, output: TextIO | None = None) -> None:
        self.block_type_url = clean(block_type_url)
        self._output = output

    @property
    def _out(self) -> TextIO:
        return self._output if self._output is not None else sys.stdout

    def _emit(self, line: str) -> str:
        out = self._out
        out.write(line + "\n")
        out.flush()
        return line

    def init(self) -> str:
        """Write the ``FIRE INIT`` header line and return it."""
        return self._emit(f"FIRE INIT 3.0 {self.block_type_url}")

    def handle(self, block: Block) -> str:
        """Write one ``FIRE BLOCK`` line for the block and return it."""
        type_url = clean(block.payload_type_url)
        if type_url != self.block_type_url:
            raise ValueError(
                f"block type url {type_url!r} does not match expected type {self.block_type_url!r}"
            )
        payload = base64.b64encode(block.payload_value).decode("ascii")
        return self._emit(
            f"FIRE BLOCK {block.number} {block.id} {block.parent_num} {block.parent_id} "
            f"{block.lib_num} {_unix_nanos(block.timestamp)} {payload}"
        )