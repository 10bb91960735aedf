from __future__ import annotations

import json
import os
import tempfile
import threading
from collections.abc import Iterator

from .logging_bridge import activity as log_activity
from .logging_bridge import error as log_error
from .models import Job, SeenEntry
from .utils import now_iso

# ---- Public API -------------------------------------------------------------


class SeenJobStore:
    """
    Job ids already delivered, held in memory and mirrored to a JSON file:

        { "<job id>": {"id": ..., "title": ..., "dateFound": ..., "company"?: ...}, ... }

    - load() never raises: a missing or corrupt file yields an empty store.
    - persist() writes a temp file next to the target and renames it over,
      so a crash leaves either the old or the new complete file.
    - No expiry: entries accumulate until clear().
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._entries: dict[str, SeenEntry] = {}
        self._lock = threading.RLock()

    # ---- queries ----
    def contains(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._entries

    def get(self, job_id: str) -> SeenEntry | None:
        with self._lock:
            return self._entries.get(job_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[SeenEntry]:
        with self._lock:
            return iter(list(self._entries.values()))

    # ---- mutations ----
    def record(self, entry: SeenEntry) -> None:
        """Upsert; entries are immutable in practice so overwriting is harmless."""
        with self._lock:
            self._entries[entry.id] = entry

    def record_job(self, job: Job, date_found: str | None = None) -> SeenEntry:
        entry = SeenEntry(id=job.id, title=job.title, date_found=date_found or now_iso(), company=job.company)
        self.record(entry)
        return entry

    def clear(self) -> int:
        """Drop all entries; returns how many were dropped."""
        with self._lock:
            n = len(self._entries)
            self._entries.clear()
        log_activity({"component": "job_alert.seen_store", "op": "clear", "path": self.path, "dropped": n})
        return n

    # ---- persistence ----
    def load(self) -> int:
        """
        Rehydrate from disk, replacing the in-memory mapping. Returns the entry count.
        """
        entries: dict[str, SeenEntry] = {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            for key, raw in data.items():
                entry = SeenEntry.from_json(str(key), raw)
                if entry is not None:
                    entries[str(key)] = entry
        except FileNotFoundError:
            log_activity({"component": "job_alert.seen_store", "op": "load_missing", "path": self.path})
        except (OSError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            log_error({
                "component": "job_alert.seen_store",
                "op": "load",
                "path": self.path,
                "error": repr(e),
            })
            entries = {}

        with self._lock:
            self._entries = entries
        log_activity({"component": "job_alert.seen_store", "op": "loaded", "path": self.path, "count": len(entries)})
        return len(entries)

    def persist(self) -> bool:
        """
        Write the full mapping atomically. Returns False (and logs) on failure;
        the on-disk state then stays stale until the next successful write.
        """
        with self._lock:
            snapshot = {k: e.to_json() for k, e in self._entries.items()}

        tmp_path = None
        try:
            _ensure_dir(self.path)
            directory = os.path.dirname(os.path.abspath(self.path)) or "."
            fd, tmp_path = tempfile.mkstemp(prefix=".jobs-", suffix=".tmp", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            log_error({
                "component": "job_alert.seen_store",
                "op": "persist",
                "path": self.path,
                "error": repr(e),
            })
            return False
        finally:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass
        return True


# ---- Internal utilities -----------------------------------------------------


def _ensure_dir(path: str) -> None:
    d = os.path.dirname(os.path.abspath(path)) or "."
    os.makedirs(d, exist_ok=True)
