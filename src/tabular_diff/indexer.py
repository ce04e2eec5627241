"""
Row indexer: composite key -> (line number, digests, display key).

The index holds digests only, never row data, so its footprint per row is
constant regardless of how wide the rows are.
"""

import logging
from typing import Collection, NamedTuple, Sequence

from .dataset import Dataset
from .errors import MissingPrimaryKeyError
from .hashing import hash_row, make_composite_key, make_display_key

PROGRESS_LOG_INTERVAL = 50000


class RowIndexEntry(NamedTuple):
    line_num: int
    full_hash: str
    comp_hash: str
    display_key: str


class RowIndex(dict):
    """Insertion-ordered composite key index with a duplicate counter."""

    def __init__(self):
        super().__init__()
        self.duplicate_rows = 0


def validate_primary_keys(dataset: Dataset, primary_keys: Sequence[str], source: str) -> None:
    """
    Ensure every primary key column exists in the dataset headers.

    Raises:
        MissingPrimaryKeyError: naming all missing columns
    """
    headers = set(dataset.headers)
    missing = [k for k in primary_keys if k not in headers]
    if missing:
        raise MissingPrimaryKeyError(missing, headers, source)


def build_row_index(
    dataset: Dataset,
    primary_keys: Sequence[str],
    common_columns: Collection[str],
    comparison_columns: Collection[str],
    case_sensitive: bool = True,
    trim_whitespace: bool = True,
    digest: str = "djb2",
) -> RowIndex:
    """
    Index every row of a dataset by its composite key.

    The full hash covers all common columns; the comparison hash covers the
    common columns minus excluded ones and equals the full hash when no
    comparison columns remain. When a key repeats, the last row wins.

    Args:
        dataset: Rows to index
        primary_keys: Columns forming the composite key (already validated)
        common_columns: Columns shared by both datasets
        comparison_columns: Common columns that are not excluded
        case_sensitive: Lowercase values before hashing when False
        trim_whitespace: Strip values before hashing when True
        digest: "djb2" or "md5"

    Returns:
        RowIndex mapping composite key to RowIndexEntry
    """
    index = RowIndex()
    total_rows = dataset.row_count
    name = dataset.filename or "dataset"

    logging.debug(f"    Building index for {name} ({total_rows} rows)...")

    for line_num, row in dataset.iterate_rows_with_line_numbers():
        composite_key = make_composite_key(row, primary_keys)
        full_hash = hash_row(row, common_columns, case_sensitive, trim_whitespace, digest)
        comp_hash = (
            hash_row(row, comparison_columns, case_sensitive, trim_whitespace, digest)
            if comparison_columns else full_hash
        )

        if composite_key in index:
            index.duplicate_rows += 1

        # Last occurrence wins for duplicates
        index[composite_key] = RowIndexEntry(
            line_num, full_hash, comp_hash, make_display_key(row, primary_keys)
        )

        if line_num % PROGRESS_LOG_INTERVAL == 0:
            logging.debug(f"    Processed {line_num}/{total_rows} rows of {name}...")

    if index.duplicate_rows:
        logging.warning(
            f"    {name}: {index.duplicate_rows} row(s) share a primary key with a "
            f"later row; the last occurrence is used"
        )

    return index
