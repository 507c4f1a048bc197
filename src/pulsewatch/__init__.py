"""pulsewatch - heartbeat liveness watchdog."""

__version__ = "0.3.0"
