"""
Streaming CSV reader that produces Dataset objects.

The reader:
- Streams rows one at a time
- Auto-detects delimiters (comma vs tab), separately for header and data
- Detects backslash vs double-quote escaping
- Caches headers and row counts
- Handles UTF-8 BOM markers
"""

import csv
import logging
import os
import sys
from typing import Dict, Iterator, List, Optional, Tuple

from .dataset import Dataset


# Safely set CSV field size limit to handle large fields (e.g., HTML content)
_max_int = sys.maxsize
while True:
    try:
        csv.field_size_limit(_max_int)
        break
    except OverflowError:
        _max_int //= 10

HEAD_SAMPLE_SIZE = 32768
TAIL_SAMPLE_SIZE = 16384
LARGE_FILE_THRESHOLD = 100000


def _pick_delimiter(line: str) -> str:
    return "\t" if line.count("\t") > line.count(",") else ","


def _read_samples(path: str) -> Tuple[str, List[str]]:
    """
    Read the head of a file plus middle and end samples for large files.

    Escape patterns may only show up deep in a file (e.g., HTML in product
    descriptions), so the escape check looks at all samples.

    Returns:
        (joined samples, first lines of the head sample)
    """
    with open(path, 'r', encoding='utf-8-sig', errors='replace') as f:
        head = f.read(HEAD_SAMPLE_SIZE)
        samples = [head]

        f.seek(0, os.SEEK_END)
        file_size = f.tell()
        if file_size > LARGE_FILE_THRESHOLD:
            for offset in (file_size // 2, max(0, file_size - TAIL_SAMPLE_SIZE)):
                f.seek(offset)
                f.readline()  # Skip partial line
                samples.append(f.read(TAIL_SAMPLE_SIZE))

    lines = [line for line in head.split('\n')[:5] if line.strip()]
    return ''.join(samples), lines


class StreamingCSVReader:
    """
    CSV reader with automatic format detection.

    Example:
        >>> reader = StreamingCSVReader("data.csv")
        >>> reader.read_headers()
        ['id', 'name', 'price']
        >>> dataset = reader.to_dataset()

    Args:
        file_path: Path to the CSV file
        delimiter: Optional explicit delimiter (auto-detected if not provided)
        max_rows: Optional limit on rows to read
    """

    def __init__(
        self,
        file_path: str,
        delimiter: Optional[str] = None,
        max_rows: Optional[int] = None,
    ):
        self.file_path = os.fspath(file_path)
        self.delimiter = delimiter
        self.max_rows = max_rows

        self._headers: Optional[List[str]] = None
        self._row_count: Optional[int] = None
        self._header_delimiter: Optional[str] = delimiter
        self._uses_backslash_escape: bool = False

        self._detect_format()

    def _detect_format(self) -> None:
        """Detect escape style and, unless given, header and data delimiters."""
        sample, lines = _read_samples(self.file_path)
        name = os.path.basename(self.file_path)

        # Standard CSV escapes quotes as "" (e.g., "81 x 36""").
        # Some exports use \" instead; only switch when "" never appears.
        if '\\"' in sample and '""' not in sample:
            self._uses_backslash_escape = True
            logging.debug(f"Detected backslash escape mode in {name}")

        if self.delimiter:
            return

        if not lines:
            self.delimiter = self._header_delimiter = ","
            return

        self._header_delimiter = _pick_delimiter(lines[0])
        self.delimiter = _pick_delimiter(lines[1]) if len(lines) > 1 else self._header_delimiter

        if self.delimiter != self._header_delimiter:
            logging.warning(
                f"Delimiter mismatch in {name}: "
                f"header uses {self._header_delimiter!r}, data uses {self.delimiter!r}"
            )

    def _csv_params(self, delimiter: Optional[str] = None) -> dict:
        params = {'delimiter': delimiter or self.delimiter}
        if self._uses_backslash_escape:
            params['doublequote'] = False
            params['escapechar'] = '\\'
        return params

    def _open_file(self):
        return open(self.file_path, 'r', encoding='utf-8-sig', newline='')

    @staticmethod
    def _normalize_key(key: str) -> str:
        """Normalize a column name by stripping whitespace and quotes."""
        return key.strip().strip('"')

    def _data_reader(self, f) -> csv.reader:
        """A csv reader positioned after the header line."""
        # The header may use a different delimiter than the data
        f.readline()
        return csv.reader(f, **self._csv_params())

    def read_headers(self) -> List[str]:
        """
        Read and return column headers (cached).

        Returns:
            List of normalized column names; empty for an empty file
        """
        if self._headers is not None:
            return self._headers

        with self._open_file() as f:
            header_line = f.readline().rstrip('\r\n')

        if not header_line:
            self._headers = []
            return self._headers

        raw = next(csv.reader([header_line], **self._csv_params(self._header_delimiter)))
        self._headers = [self._normalize_key(k) for k in raw]
        return self._headers

    def iterate_rows_with_line_numbers(self) -> Iterator[Tuple[int, Dict[str, str]]]:
        """
        Iterate rows with the file line on which each row starts.

        Line numbers are 1-indexed with the header on line 1 and account for
        multi-line quoted fields. Fields missing from a short row are None;
        extra fields beyond the header are dropped.
        """
        headers = self.read_headers()
        if not headers:
            return

        with self._open_file() as f:
            reader = self._data_reader(f)
            prev_line_end = 1
            rows_yielded = 0

            for values in reader:
                if self.max_rows is not None and rows_yielded >= self.max_rows:
                    break

                # reader.line_num counts lines consumed by this reader, header excluded
                row_start_line = prev_line_end + 1
                prev_line_end = reader.line_num + 1

                if not values:
                    continue

                row = {h: (values[i] if i < len(values) else None) for i, h in enumerate(headers)}
                yield row_start_line, row
                rows_yielded += 1

    def iterate_rows(self) -> Iterator[Dict[str, str]]:
        """Iterate through rows one at a time."""
        for _, row in self.iterate_rows_with_line_numbers():
            yield row

    def count_rows(self) -> int:
        """
        Count data rows (cached). Respects max_rows.
        """
        if self._row_count is None:
            self._row_count = sum(1 for _ in self.iterate_rows_with_line_numbers())
        return self._row_count

    def to_dataset(self) -> Dataset:
        """Load every row into a Dataset named after the file."""
        rows = list(self.iterate_rows())
        self._row_count = len(rows)
        return Dataset(
            headers=list(self.read_headers()),
            rows=rows,
            filename=os.path.basename(self.file_path),
        )

    @property
    def detected_delimiter(self) -> str:
        return self.delimiter

    @property
    def detected_header_delimiter(self) -> str:
        return self._header_delimiter

    @property
    def uses_backslash_escaping(self) -> bool:
        return self._uses_backslash_escape


def load_dataset(
    file_path: str,
    delimiter: Optional[str] = None,
    max_rows: Optional[int] = None,
) -> Dataset:
    """Read a CSV/TSV file into a Dataset."""
    dataset = StreamingCSVReader(file_path, delimiter=delimiter, max_rows=max_rows).to_dataset()
    logging.debug(
        f"Loaded {dataset.filename}: {dataset.row_count} rows, {len(dataset.headers)} columns"
    )
    return dataset


def write_dataset(dataset: Dataset, file_path: str, delimiter: str = ",") -> str:
    """Write a Dataset as CSV and return the path written."""
    with open(file_path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.DictWriter(
            f, fieldnames=dataset.headers, delimiter=delimiter, extrasaction='ignore'
        )
        writer.writeheader()
        for row in dataset.rows:
            writer.writerow({k: "" if v is None else v for k, v in row.items()})
    return file_path
