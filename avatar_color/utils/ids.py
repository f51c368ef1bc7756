"""
Request ids for correlating the log lines of one extraction.
"""
import uuid
from datetime import datetime


def generate_request_id(prefix: str = "ext") -> str:
    """Return ``<prefix>-<YYYYmmddHHMMSS>-<8 hex chars>``."""
    return f"{prefix}-{datetime.now():%Y%m%d%H%M%S}-{uuid.uuid4().hex[:8]}"
