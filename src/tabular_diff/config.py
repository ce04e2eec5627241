"""
Configuration and constants for tabular-diff.

All configurable values are centralized here for easy customization.
Users can create a local config file (.tabular-diff.json) to override defaults.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple


# ============================================================================
# DEFAULT VALUES
# ============================================================================

# Maximum example IDs to include in diff output
DEFAULT_MAX_EXAMPLES: int = 10

# Column changes shown per modified-row example
MAX_CHANGES_PER_EXAMPLE: int = 5

# Non-key columns previewed per added/removed example
MAX_PREVIEW_COLUMNS: int = 4

# HTTP request timeout in seconds (15 minutes)
DEFAULT_TIMEOUT: int = 900

# Concurrency limit for folder mode
DEFAULT_MAX_CONCURRENT_DIFFS: int = 10

# Default output directory for JSON summaries
DEFAULT_SUMMARY_DIR: str = "summaries"

# Columns to exclude from "meaningful change" detection
# Changes to these columns won't be counted in rows_updated
EXCLUDED_COLUMN_PATTERNS: Tuple[str, ...] = (
    "inventory",
    "availability",
)

# Tried in order during primary key auto-detection; first match wins
COMMON_PRIMARY_KEY_NAMES: Tuple[str, ...] = (
    "id",
    "ID",
    "Id",
    "sku",
    "SKU",
    "Sku",
    "uuid",
    "UUID",
    "key",
    "KEY",
    "product_id",
    "productId",
    "item_id",
    "itemId",
)

# A column whose unique/non-empty ratio exceeds this is a key candidate
PRIMARY_KEY_UNIQUENESS_THRESHOLD: float = 0.95

# Row digest algorithms understood by tabular_diff.hashing
DIGEST_DJB2: str = "djb2"
DIGEST_MD5: str = "md5"
SUPPORTED_DIGESTS: Tuple[str, ...] = (DIGEST_DJB2, DIGEST_MD5)

# Local config file name (should be gitignored)
LOCAL_CONFIG_FILENAME: str = ".tabular-diff.json"


def find_local_config(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search for local config file in the start directory and its parents.

    Args:
        start: Directory to begin the search from (default: current directory)

    Returns:
        Path to config file if found, None otherwise
    """
    current = Path(start) if start is not None else Path.cwd()

    # Check current directory and parents up to home or root
    for directory in [current] + list(current.parents):
        config_path = directory / LOCAL_CONFIG_FILENAME
        if config_path.exists():
            return config_path
        # Stop at home directory
        if directory == Path.home():
            break

    return None


def load_local_config(start: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from a local .tabular-diff.json file.

    Returns:
        Dictionary of configuration values, empty dict if no config found
    """
    config_path = find_local_config(start)
    if config_path is None:
        return {}

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logging.warning(f"Error loading {config_path}: {e}")
        return {}

    if not isinstance(data, dict):
        logging.warning(f"Ignoring {config_path}: expected a JSON object")
        return {}
    return data


def is_excluded_column(column_name: str, patterns: Iterable[str] = EXCLUDED_COLUMN_PATTERNS) -> bool:
    """Check if a column should be excluded from meaningful change detection."""
    col_lower = column_name.lower()
    return any(pattern.lower() in col_lower for pattern in patterns)


def parse_primary_key_string(pk_string: str) -> Tuple[str, ...]:
    """Split a comma-separated primary key string, dropping blanks."""
    return tuple(k.strip() for k in pk_string.split(",") if k.strip())


def as_name_tuple(names: Iterable[str]) -> Tuple[str, ...]:
    """Turn a column name or a sequence of names into a tuple of names."""
    # A bare string is one name, not a sequence of characters
    if isinstance(names, str):
        return (names,)
    return tuple(names)


@dataclass(frozen=True)
class DiffOptions:
    """
    Immutable configuration for a single comparison.

    Instances are never mutated; use merge() to derive a variant. Sequence
    arguments are stored as tuples so a caller's list can't leak in.
    """

    primary_keys: Optional[Tuple[str, ...]] = None  # None = auto-detect
    max_examples: int = DEFAULT_MAX_EXAMPLES
    excluded_patterns: Tuple[str, ...] = EXCLUDED_COLUMN_PATTERNS
    case_sensitive: bool = True
    trim_whitespace: bool = True
    digest: str = DIGEST_DJB2

    def __post_init__(self):
        if self.primary_keys is not None:
            keys = as_name_tuple(self.primary_keys)
            if not keys:
                raise ValueError("primary_keys must not be empty")
            object.__setattr__(self, "primary_keys", keys)
        object.__setattr__(self, "excluded_patterns", as_name_tuple(self.excluded_patterns))
        if self.max_examples < 0:
            raise ValueError(f"max_examples must be >= 0, got {self.max_examples}")
        if self.digest not in SUPPORTED_DIGESTS:
            raise ValueError(
                f"Unknown digest {self.digest!r}; expected one of {', '.join(SUPPORTED_DIGESTS)}"
            )

    def merge(self, **overrides: Any) -> "DiffOptions":
        """Return a copy with the given fields replaced; None values are ignored."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return replace(self, **changes)

    @classmethod
    def from_primary_key_string(cls, pk_string: str, **kwargs: Any) -> "DiffOptions":
        """Create options from a comma-separated primary key string."""
        keys = parse_primary_key_string(pk_string)
        return cls(primary_keys=keys or None, **kwargs)

    @classmethod
    def from_local_config(cls, start: Optional[Path] = None) -> "DiffOptions":
        """Build options from .tabular-diff.json, falling back to defaults."""
        data = load_local_config(start)
        overrides: Dict[str, Any] = {}

        primary_key = data.get("primary_key")
        if isinstance(primary_key, str):
            overrides["primary_keys"] = parse_primary_key_string(primary_key) or None
        elif isinstance(primary_key, list):
            overrides["primary_keys"] = tuple(str(k) for k in primary_key) or None

        excluded_patterns = data.get("excluded_patterns")
        if isinstance(excluded_patterns, (str, list)):
            overrides["excluded_patterns"] = as_name_tuple(excluded_patterns)
        elif excluded_patterns is not None:
            logging.warning(
                f"Ignoring excluded_patterns in local config: expected a string or list, "
                f"got {type(excluded_patterns).__name__}"
            )

        for name in ("max_examples", "case_sensitive",
                     "trim_whitespace", "digest"):
            if name in data:
                overrides[name] = data[name]

        return cls().merge(**overrides)


def resolve_options(
    options: Optional[DiffOptions] = None,
    primary_keys: Optional[Sequence[str]] = None,
    **overrides: Any,
) -> DiffOptions:
    """Combine an optional base DiffOptions with keyword overrides."""
    base = options if options is not None else DiffOptions()
    if primary_keys is not None:
        overrides["primary_keys"] = as_name_tuple(primary_keys)
    return base.merge(**overrides)


@dataclass
class RuntimeConfig:
    """Runtime configuration for the command-line tool."""

    diff: DiffOptions = field(default_factory=DiffOptions)
    summary_dir: str = DEFAULT_SUMMARY_DIR
    timeout: int = DEFAULT_TIMEOUT
    max_concurrent_diffs: int = DEFAULT_MAX_CONCURRENT_DIFFS
    max_rows: Optional[int] = None  # None = no limit
    verify_ssl: bool = True
    verbose: bool = False
