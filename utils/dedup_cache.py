# =============================================================================
# utils/dedup_cache.py - Processed employee ID cache
# =============================================================================

import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Iterable, Optional, Set

CREATED_PREFIX = "# created "


class DedupCache:
    """Flat file of processed employee IDs, one per line

    The file expires as a whole: once it is older than ``expiry_days`` it is
    deleted and recreated empty, so every ID is treated as unseen again.
    A ``read_only`` cache never creates, resets or appends to the file.
    Only one run may use the file at a time.
    """

    def __init__(self, path: str, expiry_days: int = 2,
                 clock: Optional[Callable[[], datetime]] = None, read_only: bool = False):
        self.path = Path(path)
        self.expiry_days = expiry_days
        self.clock = clock or datetime.now
        self.read_only = read_only
        self.created_at: Optional[datetime] = None
        self._ids: Set[str] = set()
        self.logger = logging.getLogger(self.__class__.__name__)
        self.load()

    def __len__(self) -> int:
        return len(self._ids)

    def load(self) -> None:
        """Read the cache file, resetting it first if it has expired"""
        if not self.path.exists():
            self._reset()
            return

        lines = self.path.read_text(encoding='utf-8').splitlines()
        ids = {line.strip() for line in lines if line.strip() and not line.startswith('#')}
        stamped = self._read_created_at(lines)
        if stamped is None:
            # Appends keep moving the file times, so stamp the file once
            self.created_at = datetime.fromtimestamp(os.stat(self.path).st_mtime)
            self.logger.info(f"Cache {self.path} has no creation stamp, dating it {self.created_at.isoformat()}")
            self._write(ids)
        else:
            self.created_at = stamped

        age = self.clock() - self.created_at
        if age > timedelta(days=self.expiry_days):
            self.logger.info(f"Cache {self.path} is {age.days} days old "
                             f"(limit {self.expiry_days}) - clearing all entries")
            self._reset()
            return

        self._ids = ids
        self.logger.info(f"Loaded {len(self._ids)} processed employee IDs from {self.path}")

    def _read_created_at(self, lines) -> Optional[datetime]:
        if lines and lines[0].startswith(CREATED_PREFIX):
            try:
                return datetime.fromisoformat(lines[0][len(CREATED_PREFIX):].strip())
            except ValueError:
                self.logger.warning(f"Unreadable creation stamp in {self.path}, using file time")
        return None

    def _reset(self) -> None:
        self.created_at = self.clock()
        self._ids = set()
        self._write(self._ids)
        self.logger.debug(f"Created empty cache {self.path}")

    def _write(self, ids: Iterable[str]) -> None:
        if self.read_only:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        body = "".join(f"{employee_id}\n" for employee_id in sorted(ids))
        self.path.write_text(f"{CREATED_PREFIX}{self.created_at.isoformat()}\n{body}", encoding='utf-8')

    def is_cached(self, employee_id: str) -> bool:
        return employee_id.strip() in self._ids

    def record_processed(self, employee_id: str) -> None:
        """Append an employee ID to the cache"""
        employee_id = employee_id.strip()
        if employee_id in self._ids:
            return
        self._ids.add(employee_id)
        if self.read_only:
            self.logger.debug(f"Read-only cache - {employee_id} not written to {self.path}")
            return
        with open(self.path, 'a', encoding='utf-8') as file:
            file.write(f"{employee_id}\n")
        self.logger.debug(f"Recorded {employee_id} in {self.path}")
