"""ntfy push notification backend."""

import requests

from pulsewatch.errors import AlertConfigError
from pulsewatch.notifications import BaseNotifier, register


@register("ntfy")
class NtfyNotifier(BaseNotifier):

    @property
    def name(self) -> str:
        return "ntfy"

    def send(self, title: str, message: str) -> None:
        server = self.config.get("server", "https://ntfy.sh").rstrip("/")
        topic = self.config.get("topic", "")
        if not topic:
            raise AlertConfigError("ntfy topic is not configured")
        url = f"{server}/{topic}"

        resp = requests.post(
            url,
            data=message.encode("utf-8"),
            headers={
                "Title": title,
                "Priority": "high",
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
