"""Single-line JSON event records for completed operations."""

import json
import logging
import time


def log_event(logger: logging.Logger, event_type: str, **kwargs) -> None:
    """Emit ``{"event": ..., "timestamp": ..., **kwargs}`` as one info line."""
    entry = {"event": event_type, "timestamp": time.time()}
    entry.update(kwargs)
    logger.info(json.dumps(entry, separators=(",", ":"), default=str))
