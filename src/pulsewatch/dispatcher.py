"""Turns a stale program id into one delivered alert."""

import logging
from datetime import datetime
from typing import Callable, Optional

from pulsewatch.errors import AlertDeliveryError
from pulsewatch.ledger import utcnow
from pulsewatch.models import AlertRecord
from pulsewatch.notifications import BaseNotifier, get_notifier
from pulsewatch.records import emit_record

_log = logging.getLogger("pulsewatch")

ALERT_TITLE = "Server Alert"


class AlertDispatcher:
    """Deliver alerts through a single notifier.

    ``deliver`` is the only thing the sweeper needs, so any object with a
    ``deliver(program_id) -> bool`` method can stand in for this class.
    """

    def __init__(self, notifier: BaseNotifier, threshold_seconds: float = 360,
                 fatal_on_failure: bool = False,
                 clock: Optional[Callable[[], datetime]] = None):
        self.notifier = notifier
        self.threshold_seconds = threshold_seconds
        self.fatal_on_failure = fatal_on_failure
        self._clock = clock or utcnow

    @classmethod
    def from_config(cls, config: dict,
                    clock: Optional[Callable[[], datetime]] = None) -> "AlertDispatcher":
        alerts = config.get("alerts", {})
        return cls(
            get_notifier(config),
            threshold_seconds=config.get("sweeper", {}).get("threshold", 360),
            fatal_on_failure=alerts.get("fatal_on_failure", False),
            clock=clock,
        )

    def message_for(self, program_id: str) -> str:
        minutes = self.threshold_seconds / 60
        return (
            f"Program with ID {program_id} has not been accessed for more "
            f"than {minutes:g} minutes."
        )

    def deliver(self, program_id: str) -> bool:
        """Send one alert for *program_id*.

        Returns ``True`` once delivered and the alert record is logged.
        On failure returns ``False``, or raises :class:`AlertDeliveryError`
        when ``fatal_on_failure`` is set.
        """
        try:
            self.notifier.send(ALERT_TITLE, self.message_for(program_id))
        except Exception as e:
            _log.error("alert for '%s' via %s failed: %s",
                       program_id, self.notifier.name, e)
            if self.fatal_on_failure:
                raise AlertDeliveryError(program_id, e) from e
            return False

        emit_record(AlertRecord(id=program_id, at=self._clock()))
        _log.info("alert sent for '%s' via %s", program_id, self.notifier.name)
        return True
