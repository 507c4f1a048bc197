"""SMTP email backend."""

import smtplib
from email.message import EmailMessage

from pulsewatch.config import is_unset
from pulsewatch.errors import AlertConfigError
from pulsewatch.notifications import BaseNotifier, register

REQUIRED_KEYS = ("sender", "recipient", "server", "port", "password")


@register("email")
class EmailNotifier(BaseNotifier):
    """Send a plain-text alert to a single recipient with SMTP AUTH."""

    @property
    def name(self) -> str:
        return "email"

    def _settings(self) -> dict:
        missing = [k for k in REQUIRED_KEYS if is_unset(self.config.get(k))]
        if missing:
            raise AlertConfigError(
                f"email alert settings missing: {', '.join(missing)}"
            )
        try:
            port = int(self.config["port"])
        except (TypeError, ValueError):
            raise AlertConfigError(f"email port is not a number: {self.config['port']!r}")
        return {**self.config, "port": port}

    def build_message(self, title: str, message: str) -> EmailMessage:
        cfg = self.config
        msg = EmailMessage()
        msg["From"] = cfg.get("sender", "")
        msg["To"] = cfg.get("recipient", "")
        msg["Subject"] = title
        msg.set_content(message)
        return msg

    def send(self, title: str, message: str) -> None:
        cfg = self._settings()
        msg = self.build_message(title, message)

        implicit_tls = cfg["port"] == 465
        smtp_cls = smtplib.SMTP_SSL if implicit_tls else smtplib.SMTP
        with smtp_cls(cfg["server"], cfg["port"], timeout=self.timeout) as smtp:
            if not implicit_tls and cfg.get("starttls", True):
                smtp.starttls()
            smtp.login(cfg["sender"], cfg["password"])
            smtp.send_message(msg)
