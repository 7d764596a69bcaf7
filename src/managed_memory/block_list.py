from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, Iterator, List, Optional, Set, Tuple

from .errors import BlockNotFoundError, IndexOutOfRangeError, InvalidArgumentError
from .memory_block import MemoryBlock


class BlockList:
    """
    Ordered sequence of memory blocks.

    The list owns its blocks: an instance may appear at most once, and callers
    address elements by index or by the block reference itself. No ordering is
    imposed; callers decide where each block goes.

    Bounds are uniform across the API. Reads and removals accept
    ``0 <= index < size``; insertion accepts ``0 <= index <= size``. Negative
    indices are rejected rather than counted from the end.
    """

    def __init__(self, blocks: Optional[Iterable[MemoryBlock]] = None) -> None:
        self._blocks: Deque[MemoryBlock] = deque()
        self._members: Set[int] = set()
        for block in blocks or ():
            self.add_last(block)

    # -- Size and access -----------------------------------------------------------
    def size(self) -> int:
        return len(self._blocks)

    def __len__(self) -> int:
        return len(self._blocks)

    def get(self, index: int) -> MemoryBlock:
        """Return the block at ``index``."""
        self._check_index(index, upper=len(self._blocks) - 1)
        return self._blocks[index]

    def __getitem__(self, index: int) -> MemoryBlock:
        return self.get(index)

    def __iter__(self) -> Iterator[MemoryBlock]:
        return iter(self._blocks)

    def __contains__(self, block: object) -> bool:
        return id(block) in self._members

    def index_of(self, block: MemoryBlock) -> int:
        """Index of the first block equal in value to ``block``, or -1."""
        for index, candidate in enumerate(self._blocks):
            if candidate == block:
                return index
        return -1

    # -- Insertion -----------------------------------------------------------------
    def insert(self, index: int, block: MemoryBlock) -> None:
        """
        Insert ``block`` so that it ends up at position ``index``.

        Inserting at 0 or at ``size()`` is O(1); anywhere else walks the list.
        """
        self._check_index(index, upper=len(self._blocks))
        self._claim(block)
        if index == len(self._blocks):
            self._blocks.append(block)
        elif index == 0:
            self._blocks.appendleft(block)
        else:
            self._blocks.insert(index, block)

    def add_first(self, block: MemoryBlock) -> None:
        self._claim(block)
        self._blocks.appendleft(block)

    def add_last(self, block: MemoryBlock) -> None:
        self._claim(block)
        self._blocks.append(block)

    # -- Removal -------------------------------------------------------------------
    def remove_at(self, index: int) -> MemoryBlock:
        """Remove and return the block at ``index``."""
        self._check_index(index, upper=len(self._blocks) - 1)
        if index == 0:
            block = self._blocks.popleft()
        elif index == len(self._blocks) - 1:
            block = self._blocks.pop()
        else:
            block = self._blocks[index]
            del self._blocks[index]
        self._members.discard(id(block))
        return block

    def remove(self, block: MemoryBlock) -> None:
        """
        Remove this exact block instance.

        A reference that is not in the list is ignored, but ``None`` is
        rejected even when the list is empty.
        """
        if block is None:
            raise InvalidArgumentError("cannot remove a None block reference")
        if id(block) not in self._members:
            return
        for index, candidate in enumerate(self._blocks):
            if candidate is block:
                self.remove_at(index)
                return

    def remove_value(self, block: MemoryBlock) -> MemoryBlock:
        """Remove and return the first block equal in value to ``block``."""
        if block is None:
            raise InvalidArgumentError("cannot remove a None block value")
        if not self._blocks:
            raise InvalidArgumentError("cannot remove a value from an empty list")
        index = self.index_of(block)
        if index < 0:
            raise BlockNotFoundError(f"no block equal to {block} in list")
        return self.remove_at(index)

    def clear(self) -> None:
        self._blocks.clear()
        self._members.clear()

    def replace(self, blocks: Iterable[MemoryBlock]) -> None:
        """Swap the list contents for ``blocks`` in place, keeping their order."""
        incoming = list(blocks)
        self.clear()
        for block in incoming:
            self.add_last(block)

    # -- Introspection -------------------------------------------------------------
    def total_length(self) -> int:
        return sum(block.length for block in self._blocks)

    def snapshot(self) -> List[Tuple[int, int]]:
        return [block.as_tuple() for block in self._blocks]

    def __str__(self) -> str:
        return " ".join(str(block) for block in self._blocks)

    def __repr__(self) -> str:
        return f"BlockList({self.snapshot()!r})"

    def _claim(self, block: MemoryBlock) -> None:
        if not isinstance(block, MemoryBlock):
            raise InvalidArgumentError(f"expected a MemoryBlock, got {block!r}")
        if id(block) in self._members:
            raise InvalidArgumentError(f"block {block} is already in this list")
        self._members.add(id(block))

    def _check_index(self, index: int, *, upper: int) -> None:
        if not isinstance(index, int) or isinstance(index, bool) or index < 0 or index > upper:
            raise IndexOutOfRangeError(f"index {index!r} out of range for a list of {len(self._blocks)} blocks")
