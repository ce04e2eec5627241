"""tabular-diff - Memory-efficient comparison of tabular datasets."""

from .config import DiffOptions
from .csv_reader import StreamingCSVReader, load_dataset, write_dataset
from .dataset import Dataset
from .differ import (
    EfficientDiffer,
    are_datasets_identical,
    detect_primary_key,
    diff_datasets,
)
from .errors import DiffError, FetchError, MissingPrimaryKeyError, PrimaryKeyDetectionError
from .report import DiffReport, diff_to_rows, format_diff_summary

__all__ = [
    "Dataset",
    "DiffOptions",
    "DiffReport",
    "EfficientDiffer",
    "StreamingCSVReader",
    "are_datasets_identical",
    "detect_primary_key",
    "diff_datasets",
    "diff_to_rows",
    "format_diff_summary",
    "load_dataset",
    "write_dataset",
    "DiffError",
    "FetchError",
    "MissingPrimaryKeyError",
    "PrimaryKeyDetectionError",
]
