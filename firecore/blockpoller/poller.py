"""Polls blocks from a fetcher, resolves forks and fires blocks in order."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from itertools import count, takewhile
from typing import Callable, TypeVar

from firecore.blockpoller.cursor import Cursor
from firecore.blockpoller.handler import BlockHandler
from firecore.blockpoller.model import Block, BlockRef, ForkBlock, ForkDB
from firecore.blockpoller.state_file import PolledBlock, init_state, save_state

_FETCH_WORKERS = 10

_T = TypeVar("_T")


class SkippedBlockError(Exception):
    """Raised by a fetcher when the requested block number holds no block."""

    def __init__(self, block_num: int | None = None) -> None:
        message = "block was skipped" if block_num is None else f"block {block_num} was skipped"
        super().__init__(message)
        self.block_num = block_num


class BlockFetcher(ABC):
    """Source of blocks for the poller."""

    @abstractmethod
    def is_block_available(self, block_num: int) -> bool:
        """Whether ``block_num`` can already be fetched."""

    @abstractmethod
    def fetch(self, block_num: int) -> Block:
        """Return the block numbered ``block_num``; raise :class:`SkippedBlockError` if there is none."""


@dataclass
class _BlockItem:
    block_number: int
    block: Block | None
    skipped: bool


def next_block_in_segment(blocks: list[ForkBlock]) -> int:
    """The number following the last block of a segment."""
    if not blocks:
        raise ValueError("the blocks segments should never be empty")
    return blocks[-1].block_num + 1


def previous_block_in_segment(blocks: list[ForkBlock]) -> tuple[int, str]:
    """The number and id of the parent of the first block of a segment."""
    if not blocks:
        raise ValueError("the blocks segments should never be empty")
    first: PolledBlock = blocks[0].object
    return first.block.parent_num, first.block.parent_id


class BlockPoller:
    """Fetches blocks, links them into a fork database and fires each final segment once."""

    def __init__(
        self,
        fetcher: BlockFetcher,
        handler: BlockHandler,
        *,
        fetch_block_retry_count: int | None = None,
        state_store_path: str = "",
        ignore_cursor: bool = False,
        logger: logging.Logger | None = None,
        retry_delay: float = 1.0,
    ) -> None:
        self.fetcher = fetcher
        self.handler = handler
        self.fetch_block_retry_count = fetch_block_retry_count
        self.state_store_path = state_store_path
        self.ignore_cursor = ignore_cursor
        self.retry_delay = retry_delay
        self.start_block_num_gate = 0
        self.fork_db = ForkDB()
        self._log = logger or logging.getLogger(__name__)
        self._prefetched: dict[int, _BlockItem] = {}
        self._terminating = threading.Event()
        self._shutdown_lock = threading.Lock()
        self._error: BaseException | None = None

    @property
    def error(self) -> BaseException | None:
        """The error the poller was shut down with, if any."""
        return self._error

    def shutdown(self, error: BaseException | None = None) -> None:
        with self._shutdown_lock:
            if self._terminating.is_set():
                return
            self._error = error
            self._terminating.set()

    def is_terminating(self) -> bool:
        return self._terminating.is_set()

    def run(self, start_block_num: int, block_fetch_batch_size: int) -> None:
        """Start polling at the first non-skipped block from ``start_block_num``."""
        self.start_block_num_gate = start_block_num
        self._log.info(
            "starting poller at %d with batch size %d", start_block_num, block_fetch_batch_size
        )
        self.handler.init()

        block_num = start_block_num
        while True:
            try:
                start_block = self.fetcher.fetch(block_num)
            except SkippedBlockError:
                block_num += 1
                continue
            except Exception as err:
                raise RuntimeError(f"unable to fetch start block {block_num}: {err}") from err
            self.run_from(start_block.as_ref(), block_fetch_batch_size)
            return

    def run_from(self, start_ref: BlockRef, block_fetch_batch_size: int) -> None:
        """Poll from ``start_ref`` (or the saved cursor) until the poller is shut down."""
        self.fork_db, resolved = init_state(start_ref, self.state_store_path, self.ignore_cursor)
        cursor = Cursor()
        block_to_fetch = resolved.num
        hash_to_fetch: str | None = None

        while True:
            self._log.info("about to fetch block %d", block_to_fetch)
            if hash_to_fetch is not None:
                block = self._fetch_block_with_hash(block_to_fetch, hash_to_fetch)
            else:
                block = None
                while block is None:
                    item = self._request_block(block_to_fetch, block_fetch_batch_size)
                    if item is None:
                        self._log.info("block poller is terminating, quitting")
                        return
                    if item.skipped:
                        self._log.info("block %d was skipped", item.block_number)
                        block_to_fetch += 1
                        continue
                    block = item.block

            block_to_fetch, hash_to_fetch = self._process_block(cursor, block)

    def fire(self, block: PolledBlock) -> bool:
        """Hand ``block`` to the handler unless it was fired already or is below the start gate."""
        if block.fired:
            return False
        if block.block.number < self.start_block_num_gate:
            return False
        self.handler.handle(block.block)
        block.fired = True
        return True

    def _process_block(self, cursor: Cursor, block: Block) -> tuple[int, str | None]:
        self._log.info("processing block %s (lib %d)", block.as_ref(), block.lib_num)
        if block.number < self.fork_db.lib_num():
            raise RuntimeError(
                f"unexpected error block {block.number} is below the current LIB num "
                f"{self.fork_db.lib_num()}. There should be no re-org above the current LIB num"
            )

        seen_block, seen_parent = self.fork_db.add_link(
            block.as_ref(), block.parent_id, PolledBlock(block)
        )
        cursor.add_block(block, seen_block, seen_parent)

        segment_ref = cursor.segment_ref()
        segment, reached_lib = self.fork_db.complete_segment(segment_ref)
        self._log.debug(
            "checked segment of %s: %d blocks, reached lib %s", segment_ref, len(segment), reached_lib
        )

        if reached_lib:
            cursor.connected_to_lib()
            for fork_block in segment:
                self.fire(fork_block.object)
            # The LIB reported by the fetcher is trusted as correct.
            self.fork_db.set_lib(block.as_ref(), block.lib_num)
            self.fork_db.purge_before_lib(0)
            save_state(self.state_store_path, self.fork_db, segment)
            return next_block_in_segment(segment), None

        cursor.not_connected_to_lib()
        return previous_block_in_segment(segment)

    def _retry(self, attempt: Callable[[], _T]) -> _T:
        for tries in count():
            try:
                return attempt()
            except SkippedBlockError:
                raise
            except Exception as err:
                limit = self.fetch_block_retry_count
                if (limit is not None and tries >= limit) or self.is_terminating():
                    raise
                self._log.warning("fetch attempt %d failed: %s", tries + 1, err)
                time.sleep(self.retry_delay)
        raise AssertionError("unreachable")

    def _fetch_item(self, block_num: int) -> _BlockItem:
        def attempt() -> _BlockItem:
            try:
                return _BlockItem(block_num, self.fetcher.fetch(block_num), False)
            except SkippedBlockError:
                return _BlockItem(block_num, None, True)

        return self._retry(attempt)

    def _load_next_blocks(self, requested: int, batch_size: int) -> None:
        self._prefetched = {}
        numbers = list(
            takewhile(self.fetcher.is_block_available, range(requested, requested + batch_size))
        )
        if not numbers:
            # Nothing is known to be available: wait on the requested block itself.
            numbers = [requested]
        for num in numbers:
            self._log.info("optimistically fetching block %d", num)

        with ThreadPoolExecutor(max_workers=min(_FETCH_WORKERS, len(numbers))) as pool:
            futures = [pool.submit(self._fetch_item, num) for num in numbers]

        first_error: BaseException | None = None
        for future in futures:
            try:
                item = future.result()
            except Exception as err:
                first_error = first_error or err
                continue
            self._prefetched[item.block_number] = item
        if first_error is not None:
            raise first_error

    def _request_block(self, block_num: int, batch_size: int) -> _BlockItem | None:
        self._log.info("requesting block %d", block_num)
        while not self.is_terminating():
            item = self._prefetched.get(block_num)
            if item is not None:
                return item
            try:
                self._load_next_blocks(block_num, batch_size)
            except Exception as err:
                self.shutdown(err)
        return None

    def _fetch_block_with_hash(self, block_num: int, block_hash: str) -> Block:
        self._log.info("fetching block %d with hash %s", block_num, block_hash)
        self._prefetched = {}
        try:
            return self._retry(lambda: self.fetcher.fetch(block_num))
        except SkippedBlockError as err:
            raise RuntimeError(
                f"block {block_num} was skipped and should not have been requested"
            ) from err