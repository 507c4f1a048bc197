"""HTML rendering of the ledger for the status page."""

import html
from datetime import datetime
from importlib import resources
from pathlib import Path
from string import Template
from typing import Iterable, Optional

from pulsewatch.models import LedgerEntry

_ROW = (
    '    <tr class="{cls}"><td>{id}</td><td>{seen}</td><td>{silent}</td>'
    '<td>{alerted}</td></tr>'
)


class StatusRenderError(Exception):
    """The status template could not be loaded or filled in."""


def load_template(path: Optional[str] = None) -> Template:
    """Read *path*, or the bundled ``status.html`` when not given."""
    try:
        if path:
            text = Path(path).expanduser().read_text(encoding="utf-8")
        else:
            text = (resources.files("pulsewatch") / "templates" / "status.html").read_text(
                encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise StatusRenderError(f"status template unavailable: {e}") from e
    return Template(text)


def format_silence(seconds: float) -> str:
    """Short human duration, e.g. ``3m 12s``."""
    seconds = max(int(seconds), 0)
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def render_status_html(entries: Iterable[LedgerEntry], now: datetime,
                       template_path: Optional[str] = None) -> str:
    entries = list(entries)
    rows = [
        _ROW.format(
            cls="alerted" if e.alerted else "alive",
            id=html.escape(e.id) if e.id else "<em>(empty)</em>",
            seen=html.escape(e.last_seen_at.strftime("%Y-%m-%d %H:%M:%S %Z")),
            silent=format_silence(e.silence(now)),
            alerted="yes" if e.alerted else "no",
        )
        for e in entries
    ]
    template = load_template(template_path)
    try:
        return template.substitute(
            generated_at=html.escape(now.strftime("%Y-%m-%d %H:%M:%S %Z")),
            count=len(entries),
            rows="\n".join(rows),
        )
    except (KeyError, ValueError) as e:
        raise StatusRenderError(f"status template is invalid: {e}") from e
