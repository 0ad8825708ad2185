# app/metrics/cb.py
from __future__ import annotations
from pathlib import Path
import json, logging, os, time
from typing import Callable, Optional, Dict, Any

logger = logging.getLogger(__name__)

MetricsCallback = Callable[[str, Dict[str, Any]], None]


def build_metrics_cb(out: Optional[str] = None) -> Optional[MetricsCallback]:
    """
    JSONL sink for per-request events, one line per call:
        {"ts": ..., "event": "quote", "country": "DE", ...}
    Enabled by METRICS_JSON (or an explicit path). Returns None when disabled.
    """
    out = out or os.getenv("METRICS_JSON")
    if not out:
        return None
    path = Path(out)
    path.parent.mkdir(parents=True, exist_ok=True)

    def _cb(event: str, payload: Optional[Dict[str, Any]] = None) -> None:
        rec: Dict[str, Any] = {"ts": time.time(), "event": event}
        if payload:
            rec.update(payload)
        try:
            with path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(rec, ensure_ascii=False, default=str) + "\n")
        except OSError as e:
            # a full disk must not fail the quote
            logger.warning("metrics write failed (%s): %s", path, e)

    return _cb
