"""Persistence of the poller's position in a ``cursor.json`` state file."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from firecore.blockpoller.model import Block, BlockRef, ForkBlock, ForkDB

_log = logging.getLogger(__name__)

STATE_FILE_NAME = "cursor.json"


@dataclass
class PolledBlock:
    """A block held in the fork database, remembering whether it was fired."""

    block: Block
    fired: bool = False


def _linked_to_dict(block: ForkBlock) -> dict[str, Any]:
    return {"id": block.block_id, "num": block.block_num, "previous_ref_id": block.previous_block_id}


def _linked_from_dict(data: Any) -> ForkBlock:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"expected a block reference object, got {data!r}")
    return ForkBlock(
        block_id=str(data.get("id", "")),
        block_num=int(data.get("num", 0)),
        previous_block_id=str(data.get("previous_ref_id", "")),
    )


@dataclass
class StateFile:
    """The LIB, the last fired block and the blocks of the last fired segment."""

    lib: BlockRef
    last_fired_block: ForkBlock
    blocks: list[ForkBlock] = field(default_factory=list)

    def to_json(self) -> str:
        document = {
            "Lib": {"id": self.lib.id, "num": self.lib.num},
            "LastFiredBlock": _linked_to_dict(self.last_fired_block),
            "Blocks": [_linked_to_dict(block) for block in self.blocks] or None,
        }
        return json.dumps(document, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str | bytes) -> StateFile:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("cursor file must hold a JSON object")
        lib = data.get("Lib") or {}
        if not isinstance(lib, dict):
            raise ValueError(f"expected a block reference object for 'Lib', got {lib!r}")
        blocks = data.get("Blocks") or []
        if not isinstance(blocks, list):
            raise ValueError(f"expected a list for 'Blocks', got {blocks!r}")
        return cls(
            lib=BlockRef(str(lib.get("id", "")), int(lib.get("num", 0))),
            last_fired_block=_linked_from_dict(data.get("LastFiredBlock")),
            blocks=[_linked_from_dict(block) for block in blocks],
        )


def _state_path(state_store_path: str | os.PathLike[str]) -> Path:
    return Path(state_store_path) / STATE_FILE_NAME


def load_state(state_store_path: str | os.PathLike[str] | None) -> StateFile:
    """Read the state file found in ``state_store_path``."""
    if state_store_path is None or state_store_path == "":
        raise ValueError("no cursor store path set")
    return StateFile.from_json(_state_path(state_store_path).read_text(encoding="utf-8"))


def save_state(
    state_store_path: str | os.PathLike[str] | None,
    fork_db: ForkDB,
    blocks: list[ForkBlock],
) -> StateFile | None:
    """Write the state for a fired segment; does nothing when no path is set."""
    _log.debug("saving cursor to %r", state_store_path)
    if state_store_path is None or state_store_path == "":
        return None
    if not blocks:
        raise ValueError("cannot save state of an empty segment")

    last = blocks[-1]
    state = StateFile(
        lib=BlockRef(fork_db.lib_id(), fork_db.lib_num()),
        last_fired_block=ForkBlock(last.block_id, last.block_num, last.previous_block_id),
        blocks=[ForkBlock(b.block_id, b.block_num, b.previous_block_id) for b in blocks],
    )

    path = _state_path(state_store_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(state.to_json(), encoding="utf-8")
    _log.info(
        "saved cursor %s (last fired block %s, lib %s, %d blocks)",
        path,
        BlockRef(state.last_fired_block.block_id, state.last_fired_block.block_num),
        state.lib,
        len(state.blocks),
    )
    return state


def init_state(
    start_ref: BlockRef,
    state_store_path: str | os.PathLike[str] | None,
    ignore_cursor: bool,
) -> tuple[ForkDB, BlockRef]:
    """Build a fork database from the saved state, or from ``start_ref`` when there is none."""
    fork_db = ForkDB()

    if ignore_cursor:
        _log.info("ignoring cursor, starting at %s with lib %s", start_ref, start_ref)
        fork_db.init_lib(start_ref)
        return fork_db, start_ref

    try:
        state = load_state(state_store_path)
    except (OSError, ValueError) as err:
        _log.warning(
            "unable to load cursor file, initializing a new forkdb at %s: %s", start_ref, err
        )
        fork_db.init_lib(start_ref)
        return fork_db, start_ref

    fork_db.init_lib(state.lib)
    for linked in state.blocks:
        polled = PolledBlock(
            Block(number=linked.block_num, id=linked.block_id, parent_id=linked.previous_block_id),
            fired=True,
        )
        fork_db.add_link(
            BlockRef(linked.block_id, linked.block_num), linked.previous_block_id, polled
        )

    resume = BlockRef(state.last_fired_block.block_id, state.last_fired_block.block_num)
    _log.info(
        "loaded cursor, starting at %s with lib %s (%d blocks)", resume, state.lib, len(state.blocks)
    )
    return fork_db, resume