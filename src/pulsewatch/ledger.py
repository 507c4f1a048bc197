"""In-memory last-seen ledger shared by ingest, status and the sweeper."""

import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from pulsewatch.models import LedgerEntry


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Ledger:
    """Mapping of program id to its last heartbeat and alert flag.

    Every public method takes the same exclusive lock for its whole
    duration, so readers never observe a half-applied heartbeat and the
    sweeper's stale check and ``alerted`` update happen atomically.

    Entries are created implicitly by the first heartbeat and only go away
    through :meth:`forget` or :meth:`evict_idle`.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utcnow
        self._entries: Dict[str, LedgerEntry] = {}
        self._lock = threading.Lock()

    def now(self) -> datetime:
        return self._clock()

    def record_heartbeat(self, program_id: str) -> LedgerEntry:
        """Upsert *program_id* as seen now and start a fresh silence episode.

        Any string is accepted, including ``""``.
        """
        with self._lock:
            entry = LedgerEntry(id=program_id, last_seen_at=self._clock())
            self._entries[program_id] = entry
            return entry

    def snapshot(self) -> Dict[str, datetime]:
        """Return a copy of ``{id: last_seen_at}`` for reporting."""
        with self._lock:
            return {pid: e.last_seen_at for pid, e in self._entries.items()}

    def entries(self) -> List[LedgerEntry]:
        """Return copies of every entry, ordered by id."""
        with self._lock:
            return [self._entries[pid] for pid in sorted(self._entries)]

    def for_each_stale(self, threshold: timedelta, now: datetime,
                       fn: Callable[[str], object]) -> List[str]:
        """Call ``fn(id)`` for every un-alerted entry silent longer than *threshold*.

        Runs entirely inside the lock.  An entry is marked alerted right
        after ``fn`` returns, unless it returned ``False``.  If ``fn`` raises,
        the entry stays un-alerted and the exception propagates to the
        caller.  Returns the ids marked.
        """
        marked = []
        with self._lock:
            for pid in sorted(self._entries):
                entry = self._entries[pid]
                if entry.alerted or now - entry.last_seen_at <= threshold:
                    continue
                if fn(pid) is False:
                    continue
                self._entries[pid] = replace(entry, alerted=True)
                marked.append(pid)
        return marked

    def collect_stale(self, threshold: timedelta,
                      now: datetime) -> List[Tuple[str, datetime]]:
        """Return ``(id, last_seen_at)`` for un-alerted entries past *threshold*.

        Nothing is modified; pair with :meth:`mark_alerted` once delivery
        has succeeded outside the lock.
        """
        with self._lock:
            return [
                (pid, e.last_seen_at)
                for pid, e in sorted(self._entries.items())
                if not e.alerted and now - e.last_seen_at > threshold
            ]

    def mark_alerted(self, program_id: str, last_seen_at: datetime) -> bool:
        """Set ``alerted`` if the entry is still in the episode that was collected.

        A heartbeat received since :meth:`collect_stale` changes
        ``last_seen_at``; that newer episode is left alone.
        """
        with self._lock:
            entry = self._entries.get(program_id)
            if entry is None or entry.last_seen_at != last_seen_at:
                return False
            self._entries[program_id] = replace(entry, alerted=True)
            return True

    def forget(self, program_id: str) -> bool:
        """Remove *program_id*.  Returns ``False`` if it was not tracked."""
        with self._lock:
            return self._entries.pop(program_id, None) is not None

    def evict_idle(self, max_idle: timedelta, now: datetime) -> List[str]:
        """Drop every entry silent for longer than *max_idle*."""
        with self._lock:
            evicted = [
                pid for pid, e in self._entries.items()
                if now - e.last_seen_at > max_idle
            ]
            for pid in evicted:
                del self._entries[pid]
            return sorted(evicted)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, program_id: object) -> bool:
        with self._lock:
            return program_id in self._entries
