"""
Detail collector: column-level changes for flagged keys.

Runs a second pass over both datasets and keeps rows only for keys the
classifier flagged as changed, so peak memory follows the number of
changes rather than the number of rows.
"""

import gc
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Set, Tuple

from .classifier import ChangeClassification
from .config import MAX_CHANGES_PER_EXAMPLE, MAX_PREVIEW_COLUMNS, is_excluded_column
from .dataset import Dataset
from .hashing import MISSING_KEY_DISPLAY, make_composite_key, make_display_key, normalize_value
from .indexer import RowIndexEntry


@dataclass
class ChangeDetails:
    detailed_key_update_counts: Dict[str, int] = field(default_factory=dict)
    example_ids: Dict[str, Dict[str, Any]] = field(default_factory=dict)


def _collect_needed_rows(
    dataset: Dataset,
    primary_keys: Sequence[str],
    needed_keys: Set[str],
    common_columns: Sequence[str],
) -> Dict[str, Tuple[int, Dict[str, str]]]:
    """Re-read a dataset keeping common columns of rows whose key is needed."""
    needed: Dict[str, Tuple[int, Dict[str, str]]] = {}
    for line_num, row in dataset.iterate_rows_with_line_numbers():
        composite_key = make_composite_key(row, primary_keys)
        if composite_key in needed_keys:
            # Last occurrence wins to match the index
            needed[composite_key] = (
                line_num,
                {k: "" if row.get(k) is None else row.get(k) for k in common_columns},
            )
    return needed


def collect_details(
    prod: Dataset,
    dev: Dataset,
    primary_keys: Sequence[str],
    classification: ChangeClassification,
    common_columns: Sequence[str],
    excluded_patterns: Iterable[str],
    case_sensitive: bool = True,
    trim_whitespace: bool = True,
    max_examples: int = 10,
) -> ChangeDetails:
    """
    Compute per-column change counts and modified-row examples.

    Counts cover every changed key; examples are taken in classification
    order for meaningful keys only, up to max_examples, each listing at most
    MAX_CHANGES_PER_EXAMPLE columns. Differences are decided on normalized
    values but reported with the raw values.

    Args:
        prod: Baseline dataset
        dev: Candidate dataset
        primary_keys: Composite key columns
        classification: Output of classify_changes
        common_columns: Columns present in both datasets, in display order
        excluded_patterns: Patterns marking non-meaningful columns
        case_sensitive: Case-sensitive comparison
        trim_whitespace: Strip values before comparison
        max_examples: Maximum modified-row examples

    Returns:
        ChangeDetails
    """
    details = ChangeDetails()
    if not classification.changed:
        return details

    changed_keys = set(classification.changed)
    excluded = {k for k in common_columns if is_excluded_column(k, excluded_patterns)}

    needed_prod_rows = _collect_needed_rows(prod, primary_keys, changed_keys, common_columns)
    needed_dev_rows = _collect_needed_rows(dev, primary_keys, changed_keys, common_columns)

    detailed_changes: Dict[str, int] = defaultdict(int)
    examples_collected = 0

    for composite_key in classification.changed:
        if composite_key not in needed_prod_rows or composite_key not in needed_dev_rows:
            continue

        prod_line_num, prod_row = needed_prod_rows[composite_key]
        dev_line_num, dev_row = needed_dev_rows[composite_key]
        row_changes: List[Dict[str, str]] = []

        for column in common_columns:
            if column in excluded:
                continue
            prod_val = prod_row[column]
            dev_val = dev_row[column]
            if (normalize_value(prod_val, case_sensitive, trim_whitespace)
                    != normalize_value(dev_val, case_sensitive, trim_whitespace)):
                detailed_changes[column] += 1
                row_changes.append({
                    "column": column,
                    "old_value": prod_val,
                    "new_value": dev_val,
                })

        # Collect example if meaningful
        if (composite_key in classification.meaningful and row_changes
                and examples_collected < max_examples):
            display_key = make_display_key(dev_row, primary_keys)

            if display_key in ("None", MISSING_KEY_DISPLAY, ""):
                logging.warning(
                    f"    Suspicious primary key '{display_key}' "
                    f"at dev line {dev_line_num}"
                )

            details.example_ids[display_key] = {
                "prod_line_num": prod_line_num,
                "dev_line_num": dev_line_num,
                "changes": row_changes[:MAX_CHANGES_PER_EXAMPLE],
            }

            if examples_collected == 0:
                logging.debug(
                    f"    First example: ID='{display_key}' "
                    f"prod_line={prod_line_num}, dev_line={dev_line_num}"
                )
            examples_collected += 1

    details.detailed_key_update_counts = dict(detailed_changes)

    # Clean up
    del needed_prod_rows
    del needed_dev_rows
    gc.collect()

    return details


def collect_row_previews(
    dataset: Dataset,
    index: Mapping[str, RowIndexEntry],
    keys: Iterable[str],
    primary_keys: Sequence[str],
    line_field: str,
    max_examples: int = 10,
) -> Dict[str, Dict[str, Any]]:
    """
    Build added/removed examples with a short preview of each row.

    The preview lists up to MAX_PREVIEW_COLUMNS non-key columns with a
    non-empty value, in the dataset's header order.

    Args:
        dataset: Dataset the keys belong to
        index: Row index of that dataset
        keys: Added or removed composite keys, in index order
        primary_keys: Composite key columns
        line_field: "dev_line_num" for added rows, "prod_line_num" for removed
        max_examples: Maximum examples to return

    Returns:
        Mapping of display key to {line_field, "preview"}
    """
    examples: Dict[str, Dict[str, Any]] = {}
    key_columns = set(primary_keys)
    collected = 0

    for composite_key in keys:
        if collected >= max_examples:
            break
        entry = index[composite_key]
        row = dataset.row_at(entry.line_num)

        preview = []
        for column in dataset.headers:
            if column in key_columns:
                continue
            value = row.get(column) or ""
            if value:
                preview.append({"column": column, "value": value})
                if len(preview) >= MAX_PREVIEW_COLUMNS:
                    break

        examples[entry.display_key] = {line_field: entry.line_num, "preview": preview}
        collected += 1

    return examples
