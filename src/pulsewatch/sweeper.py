"""Periodic staleness sweep over the ledger."""

import logging
import threading
from datetime import datetime, timedelta
from typing import List, Optional

from pulsewatch.ledger import Ledger

_log = logging.getLogger("pulsewatch")

DEFAULT_INTERVAL = 60
DEFAULT_THRESHOLD = 360


class Sweeper:
    """Alert once per silence episode for programs that stopped pinging.

    By default stale ids are collected under the ledger lock, delivered with
    the lock released, and marked afterwards only if delivery succeeded and
    no heartbeat arrived in between.  With ``hold_lock=True`` delivery runs
    inside the ledger's critical section instead, which blocks heartbeats
    for as long as the alert takes.

    *dispatcher* is anything with ``deliver(program_id) -> bool``.
    """

    def __init__(self, ledger: Ledger, dispatcher,
                 interval: float = DEFAULT_INTERVAL,
                 threshold: float = DEFAULT_THRESHOLD,
                 hold_lock: bool = False,
                 evict_after: float = 0):
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.interval = interval
        self.threshold = timedelta(seconds=threshold)
        self.hold_lock = hold_lock
        self.evict_after = timedelta(seconds=evict_after) if evict_after else None
        # One tick at a time; the decoupled path relies on it for at-most-once.
        self._tick_lock = threading.Lock()

    @classmethod
    def from_config(cls, ledger: Ledger, dispatcher, config: dict) -> "Sweeper":
        cfg = config.get("sweeper", {})
        return cls(
            ledger,
            dispatcher,
            interval=cfg.get("interval", DEFAULT_INTERVAL),
            threshold=cfg.get("threshold", DEFAULT_THRESHOLD),
            hold_lock=cfg.get("hold_lock_during_dispatch", False),
            evict_after=cfg.get("evict_after", 0),
        )

    def tick(self, now: Optional[datetime] = None) -> List[str]:
        """Run one sweep and return the ids alerted in it."""
        with self._tick_lock:
            now = now or self.ledger.now()
            if self.hold_lock:
                alerted = self.ledger.for_each_stale(
                    self.threshold, now, self.dispatcher.deliver)
            else:
                alerted = self._sweep_decoupled(now)

            if self.evict_after is not None:
                evicted = self.ledger.evict_idle(self.evict_after, now)
                if evicted:
                    _log.info("evicted %d idle program(s): %s",
                              len(evicted), ", ".join(evicted))
        return alerted

    def _sweep_decoupled(self, now: datetime) -> List[str]:
        alerted = []
        for program_id, last_seen_at in self.ledger.collect_stale(self.threshold, now):
            if not self.dispatcher.deliver(program_id):
                # stays un-alerted, retried next tick
                continue
            if self.ledger.mark_alerted(program_id, last_seen_at):
                alerted.append(program_id)
            else:
                _log.info("'%s' pinged during alert delivery", program_id)
        return alerted

    def run(self, stop: threading.Event) -> None:
        """Tick every ``interval`` seconds until *stop* is set.

        :class:`~pulsewatch.errors.AlertDeliveryError` is not caught here;
        a dispatcher configured as fatal ends the loop.
        """
        _log.info("sweeper started: interval=%ss threshold=%ss",
                  self.interval, int(self.threshold.total_seconds()))
        while not stop.wait(self.interval):
            alerted = self.tick()
            if alerted:
                _log.info("sweep alerted %d program(s)", len(alerted))
        _log.info("sweeper stopped")
