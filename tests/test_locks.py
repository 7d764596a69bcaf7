import threading
import unittest

from managed_memory import ALLOCATION_FAILED, MemorySpace
from managed_memory.locks import ReadWriteLock


class ReadWriteLockTests(unittest.TestCase):
    def test_readers_share_the_lock(self) -> None:
        lock = ReadWriteLock()
        lock.acquire_read()
        acquired = threading.Event()

        def reader() -> None:
            with lock.read_lock():
                acquired.set()

        thread = threading.Thread(target=reader)
        thread.start()
        self.assertTrue(acquired.wait(timeout=2.0))
        thread.join()
        lock.release_read()

    def test_writer_excludes_readers(self) -> None:
        lock = ReadWriteLock()
        lock.acquire_write()
        acquired = threading.Event()

        def reader() -> None:
            with lock.read_lock():
                acquired.set()

        thread = threading.Thread(target=reader)
        thread.start()
        self.assertFalse(acquired.wait(timeout=0.1))
        lock.release_write()
        self.assertTrue(acquired.wait(timeout=2.0))
        thread.join()

    def test_unbalanced_release_raises(self) -> None:
        lock = ReadWriteLock()
        with self.assertRaises(RuntimeError):
            lock.release_read()
        with self.assertRaises(RuntimeError):
            lock.release_write()


class ThreadSafeSpaceTests(unittest.TestCase):
    def test_concurrent_allocate_and_release(self) -> None:
        space = MemorySpace(4096, thread_safe=True)
        errors = []

        def worker(seed: int) -> None:
            try:
                for round_idx in range(200):
                    address = space.allocate(1 + (seed + round_idx) % 16)
                    if address != ALLOCATION_FAILED:
                        space.release(address)
                    if round_idx % 25 == 0:
                        space.defragment()
            except Exception as exc:  # pragma: no cover
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(seed,)) for seed in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        self.assertEqual(space.allocated.size(), 0)
        space.defragment()
        self.assertEqual(space.free.snapshot(), [(0, 4096)])
        self.assertTrue(space.stats()["thread_safe"])
        space.verify()

    def test_stats_reads_both_lists_atomically(self) -> None:
        space = MemorySpace(4096, thread_safe=True)
        stop = threading.Event()

        def writer() -> None:
            while not stop.is_set():
                address = space.allocate(8)
                if address != ALLOCATION_FAILED:
                    space.release(address)
                space.defragment()
                # writers take priority; pause so stats() gets the lock
                stop.wait(0.0002)

        threads = [threading.Thread(target=writer) for _ in range(4)]
        for thread in threads:
            thread.start()
        try:
            torn = []
            for _ in range(3000):
                stats = space.stats()
                if stats["heap_used"] + stats["heap_free"] != stats["capacity"]:
                    torn.append((stats["heap_used"], stats["heap_free"]))
        finally:
            stop.set()
            for thread in threads:
                thread.join()
        self.assertEqual(torn, [])


if __name__ == "__main__":
    unittest.main()
