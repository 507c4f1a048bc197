"""Data models for the liveness ledger and its log records."""

from dataclasses import dataclass
from datetime import datetime


def _iso(ts: datetime) -> str:
    return ts.isoformat()


@dataclass(frozen=True)
class LedgerEntry:
    id: str
    last_seen_at: datetime
    alerted: bool = False

    def silence(self, now: datetime) -> float:
        """Seconds elapsed since the last heartbeat."""
        return (now - self.last_seen_at).total_seconds()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "last_seen_at": _iso(self.last_seen_at),
            "alerted": self.alerted,
        }


@dataclass(frozen=True)
class AccessRecord:
    ip: str
    id: str
    at: datetime

    def to_dict(self) -> dict:
        return {"ip": self.ip, "id": self.id, "at": _iso(self.at)}


@dataclass(frozen=True)
class AlertRecord:
    id: str
    at: datetime

    def to_dict(self) -> dict:
        return {"id": self.id, "at": _iso(self.at)}
