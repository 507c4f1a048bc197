"""Tests for access/alert record encoding."""

import json
import logging
from unittest.mock import patch

from pulsewatch.models import AccessRecord, AlertRecord
from pulsewatch.records import emit_record, encode_record

from conftest import T0


class TestEncode:
    def test_access_record_fields(self):
        line = encode_record(AccessRecord(ip="10.0.0.5:51234", id="svc-a", at=T0))
        assert json.loads(line) == {
            "ip": "10.0.0.5:51234", "id": "svc-a", "at": "2024-05-01T12:00:00+00:00",
        }
        assert "\n" not in line

    def test_alert_record_fields(self):
        line = encode_record(AlertRecord(id="svc-a", at=T0))
        assert json.loads(line) == {"id": "svc-a", "at": "2024-05-01T12:00:00+00:00"}


class TestEmit:
    def test_writes_line_to_logger(self, caplog):
        with caplog.at_level(logging.INFO, logger="pulsewatch"):
            assert emit_record(AlertRecord(id="x", at=T0)) is True
        assert '"id":"x"' in caplog.text

    def test_encoding_failure_reported_not_raised(self, caplog):
        with patch("pulsewatch.records.json.dumps", side_effect=TypeError("not serializable")):
            with caplog.at_level(logging.INFO, logger="pulsewatch"):
                assert emit_record(AlertRecord(id="x", at=T0)) is False
        assert "failed to encode AlertRecord" in caplog.text
