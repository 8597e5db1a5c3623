"""Append-only JSONL log of pipeline runs."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


class RunLogger:
    """Writes one JSON object per line; disabled loggers are no-ops."""

    def __init__(self, path: str = "runs.jsonl", enabled: bool = False):
        self.path = Path(path)
        self.enabled = enabled

    def log_run(self, record: Dict[str, Any]) -> None:
        if not self.enabled:
            return
        entry = {"logged_at": datetime.now().isoformat(), **record}
        try:
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry, default=str) + "\n")
        except OSError as e:
            logger.warning(f"Could not write run log to {self.path}: {e}")
