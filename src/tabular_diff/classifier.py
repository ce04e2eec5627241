"""
Change classifier: partitions keys using two row indexes.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Set

from .indexer import RowIndexEntry


@dataclass
class ChangeClassification:
    """
    Key partition produced by classify_changes.

    Every baseline key is exactly one of removed, unchanged, meaningful or
    excluded-only; every candidate key is exactly one of added or a matched
    category. Key lists keep index insertion order.
    """

    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)
    meaningful: Set[str] = field(default_factory=set)
    excluded_only: Set[str] = field(default_factory=set)
    unchanged_count: int = 0

    @property
    def matched_count(self) -> int:
        return len(self.changed) + self.unchanged_count


def classify_changes(
    prod_index: Mapping[str, RowIndexEntry],
    dev_index: Mapping[str, RowIndexEntry],
) -> ChangeClassification:
    """
    Classify candidate and baseline keys by comparing digests.

    Both indexes must have been built with the same common columns,
    excluded patterns and normalization flags.

    Args:
        prod_index: Baseline index
        dev_index: Candidate index

    Returns:
        ChangeClassification
    """
    result = ChangeClassification()

    for composite_key, dev_entry in dev_index.items():
        prod_entry = prod_index.get(composite_key)
        if prod_entry is None:
            result.added.append(composite_key)
        elif dev_entry.full_hash == prod_entry.full_hash:
            result.unchanged_count += 1
        else:
            result.changed.append(composite_key)
            # Categorize: meaningful vs excluded-only
            if dev_entry.comp_hash != prod_entry.comp_hash:
                result.meaningful.add(composite_key)
            else:
                result.excluded_only.add(composite_key)

    result.removed = [k for k in prod_index if k not in dev_index]

    logging.debug(
        f"    Found {len(result.meaningful)} meaningful changes, "
        f"{len(result.excluded_only)} excluded-only changes"
    )

    return result
