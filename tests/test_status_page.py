"""Tests for HTML status rendering."""

from datetime import timedelta

import pytest

from pulsewatch.models import LedgerEntry
from pulsewatch.status_page import (
    StatusRenderError, format_silence, load_template, render_status_html,
)

from conftest import T0


class TestFormatSilence:
    def test_seconds(self):
        assert format_silence(42) == "42s"

    def test_minutes(self):
        assert format_silence(372) == "6m 12s"

    def test_hours(self):
        assert format_silence(7260) == "2h 1m"

    def test_negative_clamped(self):
        assert format_silence(-5) == "0s"


class TestRender:
    def test_bundled_template_loads(self):
        assert "$rows" in load_template().template

    def test_rows_and_classes(self):
        entries = [
            LedgerEntry(id="a", last_seen_at=T0),
            LedgerEntry(id="b", last_seen_at=T0, alerted=True),
        ]
        page = render_status_html(entries, T0 + timedelta(seconds=400))
        assert '<tr class="alive"><td>a</td>' in page
        assert '<tr class="alerted"><td>b</td>' in page
        assert "6m 40s" in page
        assert "2 program(s)" in page

    def test_alerted_column(self):
        entries = [
            LedgerEntry(id="a", last_seen_at=T0),
            LedgerEntry(id="b", last_seen_at=T0, alerted=True),
        ]
        page = render_status_html(entries, T0)
        assert "<th>Alerted</th>" in page
        assert "<td>a</td>" in page and page.count("<td>no</td>") == 1
        assert page.count("<td>yes</td>") == 1

    def test_empty_id_is_labelled(self):
        page = render_status_html([LedgerEntry(id="", last_seen_at=T0)], T0)
        assert "(empty)" in page

    def test_malformed_template(self, tmp_path):
        tpl = tmp_path / "bad.html"
        tpl.write_text("$rows $unknown_field")
        with pytest.raises(StatusRenderError):
            render_status_html([], T0, str(tpl))

    def test_missing_template(self, tmp_path):
        with pytest.raises(StatusRenderError):
            render_status_html([], T0, str(tmp_path / "missing.html"))

    def test_undecodable_template(self, tmp_path):
        tpl = tmp_path / "latin1.html"
        tpl.write_bytes(b"<p>caf\xe9 $rows</p>")
        with pytest.raises(StatusRenderError) as exc:
            render_status_html([], T0, str(tpl))
        assert "template unavailable" in str(exc.value)
