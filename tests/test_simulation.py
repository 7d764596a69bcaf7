import tempfile
import unittest
from pathlib import Path

from experiments.environment import ALLOCATE, DEFRAGMENT, RELEASE, Request, WorkloadGenerator
from experiments.run_simulation import SimulationConfig, main, run_simulation
from managed_memory import MemorySpace


class ScriptedWorkload(WorkloadGenerator):
    """Replays a fixed list of requests in order."""

    def __init__(self, requests) -> None:
        super().__init__(0)
        self._requests = list(requests)

    def next_request(self, live_addresses):
        return self._requests.pop(0)


class WorkloadGeneratorTests(unittest.TestCase):
    def test_seeded_streams_are_reproducible(self) -> None:
        first = WorkloadGenerator(3)
        second = WorkloadGenerator(3)
        live = [0, 16, 32]
        for _ in range(50):
            self.assertEqual(first.next_request(live), second.next_request(live))

    def test_release_targets_live_addresses(self) -> None:
        workload = WorkloadGenerator(1, min_length=4, max_length=8, release_probability=1.0, defrag_probability=0.0)
        for _ in range(20):
            request = workload.next_request([10, 20])
            self.assertEqual(request.op, RELEASE)
            self.assertIn(request.value, (10, 20))

    def test_falls_back_to_allocation_without_live_blocks(self) -> None:
        workload = WorkloadGenerator(1, min_length=4, max_length=8, release_probability=1.0, defrag_probability=0.0)
        request = workload.next_request([])
        self.assertEqual(request.op, ALLOCATE)
        self.assertTrue(4 <= request.value <= 8)

    def test_defragment_requests(self) -> None:
        workload = WorkloadGenerator(1, release_probability=0.0, defrag_probability=1.0)
        self.assertEqual(workload.next_request([]).op, DEFRAGMENT)

    def test_rejects_bad_parameters(self) -> None:
        with self.assertRaises(ValueError):
            WorkloadGenerator(min_length=0)
        with self.assertRaises(ValueError):
            WorkloadGenerator(min_length=10, max_length=5)
        with self.assertRaises(ValueError):
            WorkloadGenerator(release_probability=0.8, defrag_probability=0.5)


class SimulationTests(unittest.TestCase):
    def test_run_keeps_layout_consistent(self) -> None:
        config = SimulationConfig(capacity=256, steps=300, seed=11, max_length=40, verify_each_step=True)
        space = MemorySpace(config.capacity)
        summary = run_simulation(config, space=space)
        self.assertEqual(summary["heap_used"] + summary["heap_free"], 256)
        self.assertEqual(summary["live_blocks"], float(space.allocated.size()))
        self.assertEqual(summary["allocations"] - summary["releases"], summary["live_blocks"])

    def test_defrag_on_failure_retries(self) -> None:
        script = [
            Request(ALLOCATE, 10),
            Request(ALLOCATE, 10),
            Request(RELEASE, 0),
            Request(RELEASE, 10),
            Request(ALLOCATE, 20),
        ]
        config = SimulationConfig(capacity=20, steps=len(script), verify_each_step=True)

        plain = run_simulation(config, workload=ScriptedWorkload(script))
        self.assertEqual(plain["failures"], 1.0)
        self.assertEqual(plain["retries_after_defrag"], 0.0)
        self.assertEqual(plain["defragmentations"], 0.0)

        config.defrag_on_failure = True
        retried = run_simulation(config, workload=ScriptedWorkload(script))
        self.assertEqual(retried["failures"], 0.0)
        self.assertEqual(retried["retries_after_defrag"], 1.0)
        self.assertEqual(retried["defragmentations"], 1.0)
        self.assertEqual(retried["heap_used"], 20.0)

    def test_supplied_space_overrides_configured_capacity(self) -> None:
        config = SimulationConfig(capacity=1024, steps=10, seed=4, max_length=8)
        with self.assertLogs("experiments.run_simulation", level="WARNING") as captured:
            summary = run_simulation(config, space=MemorySpace(64))
        self.assertIn("capacity 64", captured.output[0])
        self.assertEqual(summary["heap_used"] + summary["heap_free"], 64)

    def test_cli_writes_event_logs(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            exit_code = main(
                [
                    "--capacity", "64",
                    "--steps", "40",
                    "--seed", "2",
                    "--max-length", "16",
                    "--verify",
                    "--run-id", "cli",
                    "--output-dir", tmpdir,
                    "--log-level", "WARNING",
                ]
            )
            self.assertEqual(exit_code, 0)
            self.assertTrue((Path(tmpdir) / "cli.jsonl").exists())
            self.assertTrue((Path(tmpdir) / "cli.csv").exists())


if __name__ == "__main__":
    unittest.main()
