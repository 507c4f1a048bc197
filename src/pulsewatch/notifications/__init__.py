"""Alert channel registry."""

from abc import ABC, abstractmethod
from typing import Dict, Type

_registry: Dict[str, Type["BaseNotifier"]] = {}


def register(name: str):
    """Decorator to register a notifier class under a given name."""
    def decorator(cls):
        _registry[name] = cls
        return cls
    return decorator


def get_notifier_classes() -> Dict[str, Type["BaseNotifier"]]:
    """Return all registered notifier classes."""
    from pulsewatch.notifications import smtp  # noqa: F401
    from pulsewatch.notifications import ntfy  # noqa: F401
    return dict(_registry)


def get_notifier(config: dict) -> "BaseNotifier":
    """Instantiate the notifier selected by ``alerts.channel``."""
    alerts = config.get("alerts", {})
    channel = alerts.get("channel", "email")
    classes = get_notifier_classes()
    if channel not in classes:
        raise ValueError(f"Unknown alert channel '{channel}'")
    return classes[channel](alerts.get(channel, {}), timeout=alerts.get("timeout", 10))


class BaseNotifier(ABC):
    """Abstract base class for alert delivery backends.

    ``send`` raises on any failure; callers decide whether that is fatal.
    """

    def __init__(self, config: dict, timeout: float = 10):
        self.config = config
        self.timeout = timeout

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def send(self, title: str, message: str) -> None:
        ...
