"""Client side: ping a running pulsewatch with a program id."""

import logging

import requests

logger = logging.getLogger("pulsewatch")


def send_heartbeat(url: str, program_id: str, timeout: float = 10) -> bool:
    """HTTP GET ``url?id=<program_id>`` on a pulsewatch server.

    * Returns ``True`` on a 2xx answer.
    * Swallows **all** exceptions so the monitored program never crashes
      because its watchdog is unreachable.
    """
    if not url:
        return False

    try:
        resp = requests.get(url, params={"id": program_id}, timeout=timeout)
        resp.raise_for_status()
        return True
    except Exception as e:
        logger.warning("heartbeat for '%s' failed: %s", program_id, e)
        return False


def fetch_status(url: str, timeout: float = 10) -> list:
    """Return the ``programs`` list from a server's ``/status.json``.

    Raises ``requests.RequestException`` on any transport or HTTP error.
    """
    resp = requests.get(url.rstrip("/") + "/status.json", timeout=timeout)
    resp.raise_for_status()
    return resp.json().get("programs", [])
