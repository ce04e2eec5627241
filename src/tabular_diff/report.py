"""
Result assembly, summary formatting and export of diff reports.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .classifier import ChangeClassification
from .collector import ChangeDetails
from .dataset import Dataset

TOP_CHANGED_COLUMNS = 5


@dataclass
class DiffReport:
    """
    Outcome of comparing a baseline ("prod") with a candidate ("dev").

    Counts are exact; the example_ids* mappings are bounded samples keyed
    by display key.
    """

    rows_added: int = 0
    rows_removed: int = 0
    rows_updated: int = 0
    rows_updated_excluded_only: int = 0
    detailed_key_update_counts: Dict[str, int] = field(default_factory=dict)
    example_ids: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    example_ids_added: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    example_ids_removed: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    common_keys: List[str] = field(default_factory=list)
    prod_only_keys: List[str] = field(default_factory=list)
    dev_only_keys: List[str] = field(default_factory=list)
    prod_row_count: int = 0
    dev_row_count: int = 0
    primary_keys: List[str] = field(default_factory=list)
    prod_duplicate_keys: int = 0
    dev_duplicate_keys: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(
            self.rows_added
            or self.rows_removed
            or self.rows_updated
            or self.rows_updated_excluded_only
        )

    def to_dict(self) -> "OrderedDict[str, Any]":
        """JSON-serializable view with a stable key order."""
        result: "OrderedDict[str, Any]" = OrderedDict()
        result["rows_added"] = self.rows_added
        result["rows_removed"] = self.rows_removed
        result["rows_updated"] = self.rows_updated
        result["rows_updated_excluded_only"] = self.rows_updated_excluded_only
        result["detailed_key_update_counts"] = dict(self.detailed_key_update_counts)
        result["example_ids"] = dict(self.example_ids)
        result["example_ids_added"] = dict(self.example_ids_added)
        result["example_ids_removed"] = dict(self.example_ids_removed)
        result["common_keys"] = list(self.common_keys)
        result["prod_only_keys"] = list(self.prod_only_keys)
        result["dev_only_keys"] = list(self.dev_only_keys)
        result["prod_row_count"] = self.prod_row_count
        result["dev_row_count"] = self.dev_row_count
        result["primary_keys"] = list(self.primary_keys)
        result["prod_duplicate_keys"] = self.prod_duplicate_keys
        result["dev_duplicate_keys"] = self.dev_duplicate_keys
        return result


def assemble_report(
    prod: Dataset,
    dev: Dataset,
    primary_keys: Sequence[str],
    classification: ChangeClassification,
    details: ChangeDetails,
    example_ids_added: Dict[str, Dict[str, Any]],
    example_ids_removed: Dict[str, Dict[str, Any]],
    prod_duplicate_keys: int = 0,
    dev_duplicate_keys: int = 0,
) -> DiffReport:
    """
    Combine classifier counts, collected details and dataset metadata.

    Schema differences come from the headers alone and every column list is
    sorted so the report doesn't depend on header order.
    """
    prod_headers = set(prod.headers)
    dev_headers = set(dev.headers)

    return DiffReport(
        rows_added=len(classification.added),
        rows_removed=len(classification.removed),
        rows_updated=len(classification.meaningful),
        rows_updated_excluded_only=len(classification.excluded_only),
        detailed_key_update_counts=details.detailed_key_update_counts,
        example_ids=details.example_ids,
        example_ids_added=example_ids_added,
        example_ids_removed=example_ids_removed,
        common_keys=sorted(prod_headers & dev_headers),
        prod_only_keys=sorted(prod_headers - dev_headers),
        dev_only_keys=sorted(dev_headers - prod_headers),
        prod_row_count=prod.row_count,
        dev_row_count=dev.row_count,
        primary_keys=list(primary_keys),
        prod_duplicate_keys=prod_duplicate_keys,
        dev_duplicate_keys=dev_duplicate_keys,
    )


def top_changed_columns(report: DiffReport, limit: int = TOP_CHANGED_COLUMNS) -> List[tuple]:
    """Columns with the most meaningful changes, descending; ties keep report order."""
    ranked = sorted(
        report.detailed_key_update_counts.items(),
        key=lambda item: item[1],
        reverse=True,
    )
    return ranked[:limit]


def format_diff_summary(report: DiffReport) -> str:
    """Format diff summary for display."""
    lines: List[str] = []

    lines.append(f"Comparison: {report.prod_row_count} rows vs {report.dev_row_count} rows")
    lines.append("")

    if report.rows_added > 0:
        lines.append(f"+ {report.rows_added} rows added")
    if report.rows_removed > 0:
        lines.append(f"- {report.rows_removed} rows removed")
    if report.rows_updated > 0:
        lines.append(f"~ {report.rows_updated} rows with meaningful changes")
    if report.rows_updated_excluded_only > 0:
        lines.append(
            f"  ({report.rows_updated_excluded_only} rows with only "
            f"inventory/availability changes)"
        )

    top_columns = top_changed_columns(report)
    if top_columns:
        lines.append("")
        lines.append("Top changed columns:")
        for column, count in top_columns:
            lines.append(f"  {column}: {count} changes")

    return "\n".join(lines)


EXPORT_HEADERS = ["_change_type", "_prod_line", "_dev_line", "_primary_key"]


def diff_to_rows(report: DiffReport, filename: Optional[str] = None) -> Dataset:
    """
    Flatten the example collections into a dataset for CSV export.

    One row per example: ADDED, then REMOVED, then MODIFIED. Modified rows
    carry the new value of each changed column; added and removed rows carry
    their preview values.
    """
    headers = EXPORT_HEADERS + list(report.common_keys)
    rows: List[Dict[str, str]] = []

    def blank_row(change_type: str, prod_line: Any, dev_line: Any, key: str) -> Dict[str, str]:
        row = {h: "" for h in headers}
        row["_change_type"] = change_type
        row["_prod_line"] = "" if prod_line is None else str(prod_line)
        row["_dev_line"] = "" if dev_line is None else str(dev_line)
        row["_primary_key"] = key
        return row

    for key, info in report.example_ids_added.items():
        row = blank_row("ADDED", None, info.get("dev_line_num"), key)
        for item in info.get("preview", []):
            if item["column"] in row:
                row[item["column"]] = item["value"]
        rows.append(row)

    for key, info in report.example_ids_removed.items():
        row = blank_row("REMOVED", info.get("prod_line_num"), None, key)
        for item in info.get("preview", []):
            if item["column"] in row:
                row[item["column"]] = item["value"]
        rows.append(row)

    for key, info in report.example_ids.items():
        row = blank_row("MODIFIED", info.get("prod_line_num"), info.get("dev_line_num"), key)
        for change in info.get("changes", []):
            if change["column"] in row:
                row[change["column"]] = change["new_value"]
        rows.append(row)

    return Dataset(headers=headers, rows=rows, filename=filename or "diff-results.csv")
