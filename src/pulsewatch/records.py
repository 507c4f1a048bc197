"""Line-delimited JSON records written to the pulsewatch log stream."""

import json
import logging
from typing import Optional, Union

from pulsewatch.models import AccessRecord, AlertRecord

_log = logging.getLogger("pulsewatch")

Record = Union[AccessRecord, AlertRecord]


def encode_record(record: Record) -> str:
    """Serialize *record* as a single compact JSON line."""
    return json.dumps(record.to_dict(), separators=(",", ":"), ensure_ascii=False)


def emit_record(record: Record, logger: Optional[logging.Logger] = None) -> bool:
    """Write *record* to the log stream.

    Encoding failures are reported on the same stream and never raised.
    """
    logger = logger or _log
    try:
        line = encode_record(record)
    except (TypeError, ValueError) as e:
        logger.error("failed to encode %s: %s", type(record).__name__, e)
        return False
    logger.info("%s", line)
    return True
