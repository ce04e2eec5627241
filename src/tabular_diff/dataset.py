"""
In-memory tabular dataset shared by the loaders and the diff engine.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple


@dataclass
class Dataset:
    """
    Ordered rows of string values plus their column headers.

    Rows are plain dicts; a row that lacks a column is read as an empty
    string by the engine, never as an error.

    Args:
        headers: Column names in source order
        rows: Row mappings in source order
        filename: Source identifier used in messages and summaries
    """

    headers: List[str]
    rows: List[Dict[str, str]] = field(default_factory=list)
    filename: str = ""

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def iterate_rows_with_line_numbers(self) -> Iterator[Tuple[int, Dict[str, str]]]:
        """Yield (line_number, row) pairs; line numbers are 1-based positions."""
        for position, row in enumerate(self.rows, start=1):
            yield position, row

    def row_at(self, line_num: int) -> Dict[str, str]:
        """Return the row at a 1-based line number."""
        return self.rows[line_num - 1]
