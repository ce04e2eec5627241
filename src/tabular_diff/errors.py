"""
Exceptions raised by the diff engine and its loaders.
"""

from typing import Iterable, List, Optional


class DiffError(Exception):
    """Base class for every error raised by tabular_diff."""


class MissingPrimaryKeyError(DiffError, ValueError):
    """
    One or more primary key columns are absent from a dataset.

    Raised before any comparison work starts.

    Args:
        missing: Primary key columns not found in the dataset headers
        available: Headers the dataset does have
        source: Human-readable name of the dataset ("production file", ...)
    """

    def __init__(self, missing: Iterable[str], available: Iterable[str], source: str):
        self.missing: List[str] = list(missing)
        self.available: List[str] = sorted(available)
        self.source = source
        super().__init__(
            f"Primary keys [{', '.join(self.missing)}] not found in {source}. "
            f"Available columns: {', '.join(self.available)}"
        )


class PrimaryKeyDetectionError(DiffError, ValueError):
    """No primary key could be guessed because the dataset has no columns."""


class FetchError(DiffError):
    """A remote dataset could not be downloaded."""

    def __init__(self, url: str, status: Optional[int] = None, excerpt: str = ""):
        self.url = url
        self.status = status
        self.excerpt = excerpt
        message = f"Failed to fetch {url}"
        if status is not None:
            message += f" (HTTP {status})"
        if excerpt:
            message += f": {excerpt}"
        super().__init__(message)
