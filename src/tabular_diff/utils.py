"""
Helpers for writing JSON run summaries.
"""

import json
import os
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional


def timestamp_slug(now: Optional[datetime] = None) -> str:
    """Timestamp used in summary file names (YYYYMMDD_HHMMSS)."""
    return (now or datetime.now()).strftime("%Y%m%d_%H%M%S")


def create_summary_structure(
    count: int = 0,
    runtime_seconds: float = 0.0,
    comparisons: Optional[List[Dict[str, Any]]] = None,
) -> "OrderedDict[str, Any]":
    """
    Create the standard folder-mode summary structure.

    Args:
        count: Number of dataset pairs compared
        runtime_seconds: Total runtime
        comparisons: Per-pair results

    Returns:
        OrderedDict with count, total_runtime_seconds and comparisons
    """
    summary: "OrderedDict[str, Any]" = OrderedDict()
    summary["count"] = count
    summary["total_runtime_seconds"] = round(runtime_seconds, 2)
    summary["comparisons"] = comparisons or []
    return summary


def write_summary(summary: Dict[str, Any], summary_dir: str, prefix: str) -> str:
    """Write a summary as <summary_dir>/<prefix>_<timestamp>.json and return the path."""
    os.makedirs(summary_dir, exist_ok=True)
    path = os.path.join(summary_dir, f"{prefix}_{timestamp_slug()}.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2)
    return path
