"""Tests for the alert channel backends and registry."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from pulsewatch.errors import AlertConfigError
from pulsewatch.notifications import get_notifier, get_notifier_classes
from pulsewatch.notifications.ntfy import NtfyNotifier
from pulsewatch.notifications.smtp import EmailNotifier


class TestRegistry:
    def test_known_channels(self):
        assert set(get_notifier_classes()) == {"email", "ntfy"}

    def test_timeout_passed_through(self, default_cfg):
        default_cfg["alerts"]["timeout"] = 3
        assert get_notifier(default_cfg).timeout == 3


class TestNtfyNotifier:
    def _notifier(self, **cfg):
        return NtfyNotifier({"server": "https://ntfy.sh/", "topic": "test", **cfg}, timeout=5)

    @patch("pulsewatch.notifications.ntfy.requests.post")
    def test_posts_to_topic(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)
        self._notifier().send("Server Alert", "body")

        args, kwargs = mock_post.call_args
        assert args[0] == "https://ntfy.sh/test"
        assert kwargs["data"] == b"body"
        assert kwargs["headers"]["Title"] == "Server Alert"
        assert kwargs["timeout"] == 5

    @patch("pulsewatch.notifications.ntfy.requests.post")
    def test_http_error_raises(self, mock_post):
        resp = MagicMock()
        resp.raise_for_status.side_effect = requests.HTTPError("500")
        mock_post.return_value = resp
        with pytest.raises(requests.HTTPError):
            self._notifier().send("t", "m")

    def test_missing_topic(self):
        with pytest.raises(AlertConfigError):
            self._notifier(topic="").send("t", "m")


class TestEmailNotifier:
    CFG = {
        "sender": "watchdog@example.com",
        "recipient": "ops@example.com",
        "server": "smtp.example.com",
        "port": "587",
        "password": "hunter2",
    }

    @patch("pulsewatch.notifications.smtp.smtplib.SMTP")
    def test_sends_with_starttls_and_login(self, mock_smtp):
        conn = mock_smtp.return_value.__enter__.return_value
        EmailNotifier(dict(self.CFG), timeout=7).send("Server Alert", "gone quiet")

        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=7)
        conn.starttls.assert_called_once()
        conn.login.assert_called_once_with("watchdog@example.com", "hunter2")
        msg = conn.send_message.call_args[0][0]
        assert msg["To"] == "ops@example.com"
        assert msg["Subject"] == "Server Alert"
        assert "gone quiet" in msg.get_content()

    @patch("pulsewatch.notifications.smtp.smtplib.SMTP_SSL")
    def test_port_465_uses_ssl(self, mock_ssl):
        conn = mock_ssl.return_value.__enter__.return_value
        EmailNotifier({**self.CFG, "port": 465}).send("t", "m")
        mock_ssl.assert_called_once_with("smtp.example.com", 465, timeout=10)
        conn.starttls.assert_not_called()

    @patch("pulsewatch.notifications.smtp.smtplib.SMTP")
    def test_missing_settings(self, mock_smtp):
        cfg = {**self.CFG, "server": "", "password": "${SMTP_PASSWORD}"}
        with pytest.raises(AlertConfigError) as exc:
            EmailNotifier(cfg).send("t", "m")
        assert "server" in str(exc.value)
        assert "password" in str(exc.value)
        mock_smtp.assert_not_called()

    def test_bad_port(self):
        with pytest.raises(AlertConfigError):
            EmailNotifier({**self.CFG, "port": "smtp"}).send("t", "m")

    @patch("pulsewatch.notifications.smtp.smtplib.SMTP")
    def test_smtp_error_propagates(self, mock_smtp):
        import smtplib
        conn = mock_smtp.return_value.__enter__.return_value
        conn.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad creds")
        with pytest.raises(smtplib.SMTPException):
            EmailNotifier(dict(self.CFG)).send("t", "m")
