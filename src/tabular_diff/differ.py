"""
Memory-efficient diff calculator using hash-based comparison.

This module provides efficient dataset comparison that:
- Uses compact row digests for fast comparison (stores hashes, not full rows)
- Performs two-pass algorithm: quick hash comparison, then detailed diff
- Separates "meaningful" changes from inventory/availability changes
- Tracks line numbers for debugging
- Supports composite primary keys
"""

import logging
from typing import Any, List, Optional, Sequence

from .classifier import classify_changes
from .collector import collect_details, collect_row_previews
from .config import (
    COMMON_PRIMARY_KEY_NAMES,
    DEFAULT_MAX_EXAMPLES,
    DIGEST_DJB2,
    EXCLUDED_COLUMN_PATTERNS,
    PRIMARY_KEY_UNIQUENESS_THRESHOLD,
    DiffOptions,
    as_name_tuple,
    is_excluded_column,
    resolve_options,
)
from .dataset import Dataset
from .errors import PrimaryKeyDetectionError
from .indexer import build_row_index, validate_primary_keys
from .report import DiffReport, assemble_report


class EfficientDiffer:
    """
    Memory-efficient diff calculator for tabular datasets.

    Uses a two-pass algorithm:
    1. First pass: Build hash indexes of both datasets for quick comparison
    2. Second pass: Generate detailed diffs only for changed rows

    Features:
        - Hash-based comparison (stores hashes, not full row data)
        - Composite primary key support
        - Separates meaningful changes from excluded column changes
        - Example ID collection with line numbers

    Example:
        >>> differ = EfficientDiffer(primary_keys=["id"])
        >>> report = differ.compute_diff(prod, dev)
        >>> print(f"Rows updated: {report.rows_updated}")

    Args:
        primary_keys: List of column names that uniquely identify rows
        max_examples: Maximum example IDs to collect for each change type
        excluded_patterns: Column name patterns to exclude from "meaningful" changes
        case_sensitive: Compare values case-sensitively
        trim_whitespace: Strip surrounding whitespace before comparing
        digest: Row digest algorithm, "djb2" or "md5"
    """

    def __init__(
        self,
        primary_keys: Sequence[str],
        max_examples: int = DEFAULT_MAX_EXAMPLES,
        excluded_patterns: Optional[Sequence[str]] = None,
        case_sensitive: bool = True,
        trim_whitespace: bool = True,
        digest: str = DIGEST_DJB2,
    ):
        self.options = DiffOptions(
            primary_keys=as_name_tuple(primary_keys),
            max_examples=max_examples,
            excluded_patterns=(
                as_name_tuple(excluded_patterns) if excluded_patterns is not None
                else EXCLUDED_COLUMN_PATTERNS
            ),
            case_sensitive=case_sensitive,
            trim_whitespace=trim_whitespace,
            digest=digest,
        )

    @classmethod
    def from_options(cls, options: DiffOptions) -> "EfficientDiffer":
        if options.primary_keys is None:
            raise ValueError("from_options requires explicit primary_keys")
        return cls(
            options.primary_keys,
            max_examples=options.max_examples,
            excluded_patterns=options.excluded_patterns,
            case_sensitive=options.case_sensitive,
            trim_whitespace=options.trim_whitespace,
            digest=options.digest,
        )

    @property
    def primary_keys(self) -> List[str]:
        return list(self.options.primary_keys)

    def compute_diff(self, prod: Dataset, dev: Dataset) -> DiffReport:
        """
        Compute differences between two datasets.

        Args:
            prod: The production/baseline dataset
            dev: The development/candidate dataset

        Returns:
            DiffReport with counts, per-column change counts, bounded
            examples and schema differences

        Raises:
            MissingPrimaryKeyError: If primary key columns are missing from either dataset
        """
        opts = self.options
        primary_keys = opts.primary_keys

        logging.debug(f"    Prod headers: {sorted(prod.headers)}")
        logging.debug(f"    Dev headers: {sorted(dev.headers)}")
        logging.debug(f"    Primary key(s): {list(primary_keys)}")

        # Validate primary keys exist
        validate_primary_keys(prod, primary_keys, "production file")
        validate_primary_keys(dev, primary_keys, "development file")

        # Compute column sets, keeping baseline header order for display
        dev_headers = set(dev.headers)
        common_columns = [h for h in prod.headers if h in dev_headers]
        comparison_columns = [
            h for h in common_columns
            if not is_excluded_column(h, opts.excluded_patterns)
        ]

        # Phase 1: Build indexes
        prod_index = build_row_index(
            prod, primary_keys, common_columns, comparison_columns,
            opts.case_sensitive, opts.trim_whitespace, opts.digest,
        )
        dev_index = build_row_index(
            dev, primary_keys, common_columns, comparison_columns,
            opts.case_sensitive, opts.trim_whitespace, opts.digest,
        )

        # Phase 2: Classify keys
        classification = classify_changes(prod_index, dev_index)

        # Phase 3: Details for changed rows (second pass) and row previews
        details = collect_details(
            prod, dev, primary_keys, classification, common_columns,
            opts.excluded_patterns, opts.case_sensitive, opts.trim_whitespace,
            opts.max_examples,
        )
        example_ids_added = collect_row_previews(
            dev, dev_index, classification.added, primary_keys,
            "dev_line_num", opts.max_examples,
        )
        example_ids_removed = collect_row_previews(
            prod, prod_index, classification.removed, primary_keys,
            "prod_line_num", opts.max_examples,
        )

        report = assemble_report(
            prod, dev, primary_keys, classification, details,
            example_ids_added, example_ids_removed,
            prod_duplicate_keys=prod_index.duplicate_rows,
            dev_duplicate_keys=dev_index.duplicate_rows,
        )

        logging.debug(
            f"    Diff complete: +{report.rows_added} added, -{report.rows_removed} removed, "
            f"~{report.rows_updated} meaningful, "
            f"~{report.rows_updated_excluded_only} excluded-only"
        )

        return report


def detect_primary_key(dataset: Dataset) -> List[str]:
    """
    Guess a primary key column for a dataset.

    Tries common id-like column names first, then the first column whose
    non-empty values are almost all unique, then the first column.

    Raises:
        PrimaryKeyDetectionError: If the dataset has no columns
    """
    # Check common primary key column names first
    for name in COMMON_PRIMARY_KEY_NAMES:
        if name in dataset.headers:
            return [name]

    # Check for columns with high uniqueness
    for header in dataset.headers:
        non_empty = [r.get(header) for r in dataset.rows if r.get(header)]
        if not non_empty:
            continue
        if len(set(non_empty)) / len(non_empty) > PRIMARY_KEY_UNIQUENESS_THRESHOLD:
            return [header]

    # Fall back to first column
    if dataset.headers:
        return [dataset.headers[0]]

    raise PrimaryKeyDetectionError("Cannot detect primary key - no columns available")


def diff_datasets(
    prod: Dataset,
    dev: Dataset,
    options: Optional[DiffOptions] = None,
    **overrides: Any,
) -> DiffReport:
    """
    Diff two datasets, auto-detecting the primary key on the baseline if needed.

    Args:
        prod: Baseline dataset
        dev: Candidate dataset
        options: Base options (defaults when omitted)
        **overrides: DiffOptions fields to override for this call

    Returns:
        DiffReport
    """
    opts = resolve_options(options, **overrides)
    if opts.primary_keys is None:
        detected = detect_primary_key(prod)
        logging.debug(f"    Auto-detected primary key: {detected}")
        opts = opts.merge(primary_keys=tuple(detected))

    return EfficientDiffer.from_options(opts).compute_diff(prod, dev)


def are_datasets_identical(
    prod: Dataset,
    dev: Dataset,
    options: Optional[DiffOptions] = None,
    **overrides: Any,
) -> bool:
    """Check if two datasets hold the same rows under the given options."""
    if prod.row_count != dev.row_count:
        return False
    if len(prod.headers) != len(dev.headers):
        return False

    return not diff_datasets(prod, dev, options, **overrides).has_changes
