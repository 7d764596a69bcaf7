from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import TYPE_CHECKING, Any, ContextManager, Dict, List, Optional, Tuple

from .block_list import BlockList
from .errors import ALLOCATION_FAILED, InvalidArgumentError, LayoutViolationError
from .locks import ReadWriteLock
from .memory_block import MemoryBlock

if TYPE_CHECKING:
    from experiments.instrumentation import MemoryProfiler

logger = logging.getLogger(__name__)


class MemorySpace:
    """
    Simulated address space managed with a first-fit free list.

    The space owns two block lists. ``free`` starts as a single block covering
    ``[0, capacity)``; ``allocate`` carves blocks off the front of free blocks
    and appends them to ``allocated``; ``release`` moves a block back to the
    end of ``free`` untouched. Adjacent free blocks are only merged when the
    caller runs ``defragment``, so ``allocate`` can fail while enough total
    space is free.
    """

    def __init__(
        self,
        capacity: int,
        *,
        profiler: Optional["MemoryProfiler"] = None,
        thread_safe: bool = False,
    ) -> None:
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity <= 0:
            raise InvalidArgumentError(f"capacity must be a positive int, got {capacity!r}")
        self._capacity = capacity
        self._allocated = BlockList()
        self._free = BlockList([MemoryBlock(0, capacity)])
        self.profiler = profiler
        self._lock = ReadWriteLock() if thread_safe else None

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def allocated(self) -> BlockList:
        return self._allocated

    @property
    def free(self) -> BlockList:
        return self._free

    # -- Allocation ----------------------------------------------------------------
    def allocate(self, length: int) -> int:
        """
        Allocate ``length`` words and return the base address of the new block.

        Scans the free list in its current order and takes the first block that
        is large enough. Returns ``ALLOCATION_FAILED`` (-1) when ``length`` is
        not a positive int or when no free block fits; state is left untouched
        in both cases.
        """
        if not isinstance(length, int) or isinstance(length, bool) or length <= 0:
            logger.debug("rejecting allocation of invalid length %r", length)
            return ALLOCATION_FAILED
        with self._write():
            for candidate in self._free:
                if candidate.length < length:
                    continue
                base_address = candidate.base_address
                if candidate.length == length:
                    self._free.remove(candidate)
                else:
                    candidate.base_address += length
                    candidate.length -= length
                self._allocated.add_last(MemoryBlock(base_address, length))
                logger.debug("allocated %d words at %d", length, base_address)
                self._record("allocate", address=base_address, length=length)
                return base_address
            logger.debug("no free block holds %d words (%d free in total)", length, self._free.total_length())
            self._record("allocate_failed", length=length)
            return ALLOCATION_FAILED

    def release(self, address: int) -> None:
        """
        Move the allocated block starting at ``address`` to the end of the free list.

        Releasing an address that is not the base of an allocated block does
        nothing.
        """
        with self._write():
            for block in self._allocated:
                if block.base_address == address:
                    self._allocated.remove(block)
                    self._free.add_last(block)
                    logger.debug("released %d words at %d", block.length, address)
                    self._record("release", address=address, length=block.length)
                    return
            logger.debug("release of %r ignored: no allocated block starts there", address)
            self._record("release_miss", address=address)

    def defragment(self) -> None:
        """Merge address-adjacent free blocks and leave the free list sorted by address."""
        with self._write():
            before = len(self._free)
            if before <= 1:
                return
            ordered = sorted(
                (MemoryBlock(block.base_address, block.length) for block in self._free),
                key=lambda block: block.base_address,
            )
            merged: List[MemoryBlock] = []
            current = ordered[0]
            for block in ordered[1:]:
                if current.adjacent_to(block):
                    current.length += block.length
                else:
                    merged.append(current)
                    current = block
            merged.append(current)
            self._free.replace(merged)
            logger.debug("defragmented free list from %d to %d blocks", before, len(merged))
            self._record("defragment", blocks_before=before, blocks_after=len(merged))

    # -- Introspection -------------------------------------------------------------
    def available(self) -> int:
        with self._read():
            return self._free.total_length()

    def in_use(self) -> int:
        with self._read():
            return self._allocated.total_length()

    def largest_free(self) -> int:
        with self._read():
            return max((block.length for block in self._free), default=0)

    def fragmentation(self) -> float:
        with self._read():
            return self._fragmentation()

    def snapshot(self) -> Dict[str, List[Tuple[int, int]]]:
        """Expose current allocation map for diagnostics."""
        with self._read():
            return {
                "allocated": self._allocated.snapshot(),
                "free": self._free.snapshot(),
            }

    def stats(self) -> Dict[str, Any]:
        # Single read scope; the lock is not reentrant, so no public helpers here.
        with self._read():
            stats: Dict[str, Any] = {
                "capacity": self._capacity,
                "heap_used": self._allocated.total_length(),
                "heap_free": self._free.total_length(),
                "allocated_blocks": len(self._allocated),
                "free_blocks": len(self._free),
                "largest_free": max((block.length for block in self._free), default=0),
                "fragmentation": self._fragmentation(),
            }
        if self._lock:
            stats["thread_safe"] = True
        return stats

    def verify(self) -> None:
        """
        Check that allocated and free blocks tile ``[0, capacity)`` exactly once.

        Raises LayoutViolationError describing the first overlap, gap or
        out-of-range block found.
        """
        with self._read():
            tagged = [(block, "allocated") for block in self._allocated]
            tagged.extend((block, "free") for block in self._free)
            tagged.sort(key=lambda item: item[0].base_address)
            cursor = 0
            for block, owner in tagged:
                if block.base_address < cursor:
                    raise LayoutViolationError(f"{owner} block {block} overlaps address {block.base_address}")
                if block.base_address > cursor:
                    raise LayoutViolationError(f"gap [{cursor}, {block.base_address}) is not covered by any block")
                cursor = block.end
            if cursor != self._capacity:
                raise LayoutViolationError(f"blocks cover [0, {cursor}) but capacity is {self._capacity}")

    def __str__(self) -> str:
        with self._read():
            return f"{self._free}\n{self._allocated}"

    # -- Helpers -------------------------------------------------------------------
    def _read(self) -> ContextManager[Any]:
        return self._lock.read_lock() if self._lock else nullcontext()

    def _write(self) -> ContextManager[Any]:
        return self._lock.write_lock() if self._lock else nullcontext()

    def _fragmentation(self) -> float:
        available = self._free.total_length()
        if available == 0:
            return 0.0
        largest = max(block.length for block in self._free)
        return 1.0 - (largest / available)

    def _record(self, event: str, **payload: Any) -> None:
        if not self.profiler:
            return
        payload["heap_used"] = self._allocated.total_length()
        payload["heap_free"] = self._free.total_length()
        payload["free_blocks"] = len(self._free)
        self.profiler.record_event(event, payload)
