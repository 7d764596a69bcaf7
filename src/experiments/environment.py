from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence

ALLOCATE = "allocate"
RELEASE = "release"
DEFRAGMENT = "defragment"


@dataclass
class Request:
    op: str
    value: Optional[int] = None


class WorkloadGenerator:
    """
    Generate a stream of allocate/release/defragment requests.

    Request sizes are drawn uniformly from ``[min_length, max_length]``.
    Releases pick one of the caller's live addresses, so the stream never
    asks to release something that was not handed out; with nothing live the
    generator falls back to an allocation.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        *,
        min_length: int = 1,
        max_length: int = 32,
        release_probability: float = 0.4,
        defrag_probability: float = 0.05,
    ) -> None:
        if min_length <= 0 or max_length < min_length:
            raise ValueError(f"invalid length range [{min_length}, {max_length}]")
        if release_probability + defrag_probability > 1.0:
            raise ValueError("release and defrag probabilities must sum to at most 1")
        self.random = random.Random(seed)
        self.min_length = min_length
        self.max_length = max_length
        self.release_probability = release_probability
        self.defrag_probability = defrag_probability

    def next_request(self, live_addresses: Sequence[int]) -> Request:
        roll = self.random.random()
        if roll < self.defrag_probability:
            return Request(DEFRAGMENT)
        if roll < self.defrag_probability + self.release_probability and live_addresses:
            return Request(RELEASE, self.random.choice(list(live_addresses)))
        return Request(ALLOCATE, self.random.randint(self.min_length, self.max_length))
