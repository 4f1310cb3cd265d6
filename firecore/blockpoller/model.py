"""Block references, blocks and the fork database used by the poller."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockRef:
    """An immutable reference to a block: its id and its number."""

    id: str
    num: int

    def __str__(self) -> str:
        return f"#{self.num} ({self.id})"


@dataclass
class Block:
    """A chain agnostic block as produced by a block fetcher."""

    number: int = 0
    id: str = ""
    parent_id: str = ""
    parent_num: int = 0
    lib_num: int = 0
    timestamp: datetime | None = None
    payload_type_url: str = ""
    payload_value: bytes = b""

    def as_ref(self) -> BlockRef:
        return BlockRef(self.id, self.number)

    def previous_ref(self) -> BlockRef:
        return BlockRef(self.parent_id, self.parent_num)


@dataclass
class ForkBlock:
    """A block as stored in a :class:`ForkDB` segment."""

    block_id: str
    block_num: int
    previous_block_id: str
    object: Any = None


@dataclass
class ForkDB:
    """Tracks links between blocks and the last irreversible block (LIB)."""

    _links: dict[str, str] = field(default_factory=dict)
    _nums: dict[str, int] = field(default_factory=dict)
    _objects: dict[str, Any] = field(default_factory=dict)
    _lib: BlockRef | None = None

    def has_lib(self) -> bool:
        return self._lib is not None and self._lib != BlockRef("", 0)

    def lib_id(self) -> str:
        return self._lib.id if self._lib is not None else ""

    def lib_num(self) -> int:
        return self._lib.num if self._lib is not None else 0

    def init_lib(self, ref: BlockRef) -> None:
        self._lib = ref

    def set_lib(self, head_ref: BlockRef, lib_num: int) -> None:
        """Move the LIB to the block numbered ``lib_num`` on the chain ending at ``head_ref``."""
        lib_ref = self._block_in_current_chain(head_ref, lib_num)
        if lib_ref is None:
            _log.debug("missing links to reach lib num %d from %s", lib_num, head_ref)
            return
        self._lib = lib_ref
        _log.debug("lib set to %s", lib_ref)

    def _block_in_current_chain(self, head_ref: BlockRef, block_num: int) -> BlockRef | None:
        if head_ref.num == block_num:
            return head_ref
        visited = {head_ref.id}
        current = head_ref.id
        while True:
            previous = self._links.get(current)
            if previous is None:
                return None
            previous_num = self._nums.get(previous)
            if previous_num is None:
                if self._lib is not None and previous == self._lib.id and self._lib.num == block_num:
                    return self._lib
                return None
            if previous_num == block_num:
                return BlockRef(previous, previous_num)
            if previous_num < block_num or previous in visited:
                return None
            visited.add(previous)
            current = previous

    def add_link(self, ref: BlockRef, previous_id: str, obj: Any) -> tuple[bool, bool]:
        """Record ``ref`` as a child of ``previous_id``.

        Returns whether the block and its parent were already known. A block
        that is already known keeps its original link and object.
        """
        parent_exists = previous_id in self._links
        if ref.id in self._links:
            return True, parent_exists
        if not ref.id or ref.id == previous_id:
            return False, parent_exists
        self._links[ref.id] = previous_id
        self._nums[ref.id] = ref.num
        if self._objects.get(ref.id) is None:
            self._objects[ref.id] = obj
        return False, parent_exists

    def complete_segment(self, ref: BlockRef) -> tuple[list[ForkBlock], bool]:
        """Walk back from ``ref`` toward the LIB.

        Returns the blocks walked, oldest first, and whether the LIB was reached.
        """
        segment: list[ForkBlock] = []
        visited: set[str] = set()
        current = ref.id
        lib_id = self.lib_id() if self.has_lib() else None
        while True:
            previous = self._links.get(current)
            if previous is None or current in visited:
                segment.reverse()
                return segment, previous is None and current == lib_id
            visited.add(current)
            segment.append(
                ForkBlock(
                    block_id=current,
                    block_num=self._nums[current],
                    previous_block_id=previous,
                    object=self._objects.get(current),
                )
            )
            if current == lib_id:
                segment.reverse()
                return segment, True
            current = previous

    def purge_before_lib(self, distance: int) -> list[ForkBlock]:
        """Forget every block numbered below ``lib_num() - distance``."""
        lib_num = self.lib_num()
        if lib_num < distance:
            return []
        boundary = lib_num - distance
        doomed = sorted(
            (num, block_id) for block_id, num in self._nums.items() if num < boundary
        )
        purged = []
        for num, block_id in doomed:
            purged.append(
                ForkBlock(
                    block_id=block_id,
                    block_num=num,
                    previous_block_id=self._links.pop(block_id),
                    object=self._objects.pop(block_id, None),
                )
            )
            del self._nums[block_id]
        return purged