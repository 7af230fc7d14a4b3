from __future__ import annotations

import json
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


OPS_KEY = "mailscout_ops"


class OpsLogger:
    """Append-only JSONL log of per-URL lookups and run summaries.

    - One JSON object per line (UTF-8), stamped with OPS_KEY and a UTC timestamp
    - Thread-safe (coarse lock)
    - Best-effort: a failed write is reported on stderr, never raised
    """

    def __init__(self, file_path: Path, also_stdout: bool = False) -> None:
        self.file_path = Path(file_path)
        self.also_stdout = bool(also_stdout)
        self._lock = threading.Lock()
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    def _encode(self, record: Dict[str, Any]) -> str:
        payload = {OPS_KEY: 1, "ts": datetime.now(timezone.utc).isoformat()}
        payload.update(record)
        try:
            return json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError):
            return json.dumps({OPS_KEY: 1, "_serialization_error": True, "record_str": str(record)})

    def emit(self, record: Dict[str, Any]) -> None:
        line = self._encode(record)
        try:
            with self._lock:
                with self.file_path.open("a", encoding="utf-8") as f:
                    f.write(line)
                    f.write("\n")
        except OSError as e:
            print(f"⚠️  ops log write failed ({self.file_path}): {e}", file=sys.stderr)
        if self.also_stdout:
            print(line)

    def emit_summary(self, **fields: Any) -> None:
        self.emit({"summary": True, **fields})
