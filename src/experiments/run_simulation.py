from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from managed_memory import ALLOCATION_FAILED, MemorySpace
from experiments.environment import ALLOCATE, DEFRAGMENT, RELEASE, WorkloadGenerator
from experiments.instrumentation import MemoryProfiler

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    capacity: int = 1024
    steps: int = 200
    seed: Optional[int] = 42
    min_length: int = 1
    max_length: int = 64
    release_probability: float = 0.4
    defrag_probability: float = 0.05
    # Caller-side policy: the allocator itself never defragments.
    defrag_on_failure: bool = False
    verify_each_step: bool = False
    run_id: str = "simulation"
    output_dir: Optional[str] = None


def run_simulation(
    config: SimulationConfig,
    *,
    space: Optional[MemorySpace] = None,
    workload: Optional[WorkloadGenerator] = None,
) -> Dict[str, float]:
    """
    Issue ``config.steps`` requests against ``space`` and summarise the run.

    A fresh space with an attached MemoryProfiler is created when none is given.
    A supplied space takes precedence over ``config.capacity``. Likewise a
    supplied workload replaces the generator built from the config.
    """
    if space is None:
        profiler = MemoryProfiler(run_id=config.run_id, output_dir=config.output_dir)
        space = MemorySpace(config.capacity, profiler=profiler)
    elif space.capacity != config.capacity:
        logger.warning(
            "using the supplied space of capacity %d instead of configured capacity %d",
            space.capacity,
            config.capacity,
        )
    if workload is None:
        workload = WorkloadGenerator(
            config.seed,
            min_length=config.min_length,
            max_length=config.max_length,
            release_probability=config.release_probability,
            defrag_probability=config.defrag_probability,
        )

    live: List[int] = []
    allocations = 0
    failures = 0
    retries_after_defrag = 0
    releases = 0
    defragmentations = 0
    fragmentation_sum = 0.0

    for step in range(1, config.steps + 1):
        request = workload.next_request(live)
        if request.op == ALLOCATE:
            address = space.allocate(request.value)
            if address == ALLOCATION_FAILED and config.defrag_on_failure:
                space.defragment()
                defragmentations += 1
                address = space.allocate(request.value)
                if address != ALLOCATION_FAILED:
                    retries_after_defrag += 1
            if address == ALLOCATION_FAILED:
                failures += 1
                logger.debug("step %d: could not allocate %d words", step, request.value)
            else:
                allocations += 1
                live.append(address)
        elif request.op == RELEASE:
            space.release(request.value)
            live.remove(request.value)
            releases += 1
        elif request.op == DEFRAGMENT:
            space.defragment()
            defragmentations += 1

        if config.verify_each_step:
            space.verify()
        fragmentation_sum += space.fragmentation()
        if step % 50 == 0:
            logger.info("step %d: %s", step, space.stats())

    summary: Dict[str, float] = {
        "steps": float(config.steps),
        "allocations": float(allocations),
        "failures": float(failures),
        "retries_after_defrag": float(retries_after_defrag),
        "releases": float(releases),
        "defragmentations": float(defragmentations),
        "live_blocks": float(len(live)),
        "heap_used": float(space.in_use()),
        "heap_free": float(space.available()),
        "final_free_blocks": float(len(space.free)),
        "final_fragmentation": space.fragmentation(),
        "avg_fragmentation": fragmentation_sum / max(config.steps, 1),
    }
    if space.profiler:
        space.profiler.flush()
    logger.info("simulation %s finished: %s", config.run_id, summary)
    return summary


def build_parser() -> argparse.ArgumentParser:
    defaults = SimulationConfig()
    parser = argparse.ArgumentParser(description="Drive a first-fit memory space with a random workload.")
    parser.add_argument("--capacity", type=int, default=defaults.capacity, help="Size of the address space in words.")
    parser.add_argument("--steps", type=int, default=defaults.steps, help="Number of requests to issue.")
    parser.add_argument("--seed", type=int, default=defaults.seed, help="Workload random seed.")
    parser.add_argument("--min-length", type=int, default=defaults.min_length, help="Smallest allocation request.")
    parser.add_argument("--max-length", type=int, default=defaults.max_length, help="Largest allocation request.")
    parser.add_argument("--release-probability", type=float, default=defaults.release_probability)
    parser.add_argument("--defrag-probability", type=float, default=defaults.defrag_probability)
    parser.add_argument(
        "--defrag-on-failure",
        action="store_true",
        help="Defragment and retry once when an allocation fails.",
    )
    parser.add_argument("--verify", action="store_true", help="Check the block layout after every step.")
    parser.add_argument("--run-id", default=defaults.run_id, help="Name used for event log files.")
    parser.add_argument("--output-dir", default=None, help="Directory for JSONL/CSV event logs.")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = SimulationConfig(
        capacity=args.capacity,
        steps=args.steps,
        seed=args.seed,
        min_length=args.min_length,
        max_length=args.max_length,
        release_probability=args.release_probability,
        defrag_probability=args.defrag_probability,
        defrag_on_failure=args.defrag_on_failure,
        verify_each_step=args.verify,
        run_id=args.run_id,
        output_dir=args.output_dir,
    )
    space = MemorySpace(config.capacity, profiler=MemoryProfiler(run_id=config.run_id, output_dir=config.output_dir))
    summary = run_simulation(config, space=space)
    print("Final stats:", summary)
    print("Heap map:", space.snapshot())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
