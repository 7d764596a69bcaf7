from __future__ import annotations

import csv
import json
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

# Leading CSV columns; any other payload keys follow in sorted order.
CSV_LEADING_FIELDS = ("seq", "event", "heap_used", "heap_free", "free_blocks", "address", "length")


@dataclass
class MemoryProfiler:
    """
    Event recorder for MemorySpace operations.

    Each allocate/release/defragment call is stored as a flat record with the
    heap figures at that moment. Records can be flushed to disk as CSV or JSONL.
    """

    run_id: str
    output_dir: Optional[str] = None
    write_immediately: bool = False
    events: List[Dict[str, object]] = field(default_factory=list)

    def record_event(self, event_type: str, payload: Dict[str, object]) -> None:
        record = {
            "seq": len(self.events),
            "timestamp": time.time(),
            "run_id": self.run_id,
            "event": event_type,
            **payload,
        }
        self.events.append(record)
        if self.write_immediately and self.output_dir:
            self._append_jsonl(record)

    def counts(self) -> Dict[str, int]:
        return dict(Counter(str(record["event"]) for record in self.events))

    def events_of(self, event_type: str) -> List[Dict[str, object]]:
        return [record for record in self.events if record["event"] == event_type]

    def flush(self) -> Optional[Path]:
        """Write all events to ``<run_id>.jsonl`` and ``<run_id>.csv``; return the JSONL path."""
        if not self.output_dir or not self.events:
            return None
        output_path = Path(self.output_dir)
        output_path.mkdir(parents=True, exist_ok=True)
        jsonl_path = output_path / f"{self.run_id}.jsonl"
        csv_path = output_path / f"{self.run_id}.csv"
        with jsonl_path.open("w", encoding="utf-8") as handle:
            for record in self.events:
                handle.write(json.dumps(record) + "\n")
        present = {key for event in self.events for key in event.keys()}
        fieldnames = [key for key in CSV_LEADING_FIELDS if key in present]
        fieldnames.extend(sorted(present.difference(fieldnames)))
        with csv_path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(self.events)
        return jsonl_path

    def _append_jsonl(self, record: Dict[str, object]) -> None:
        output_path = Path(self.output_dir)
        output_path.mkdir(parents=True, exist_ok=True)
        jsonl_path = output_path / f"{self.run_id}.live.jsonl"
        with jsonl_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")
