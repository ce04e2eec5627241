"""
Download CSV datasets over HTTP(S).

Responses are streamed to disk, gunzipped when the body carries the gzip
magic bytes, and then parsed with the streaming CSV reader.
"""

import asyncio
import gzip
import logging
import os
import tempfile
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

import aiohttp

from .config import DEFAULT_TIMEOUT
from .csv_reader import load_dataset
from .dataset import Dataset
from .errors import FetchError

CHUNK_SIZE = 8192
ERROR_EXCERPT_SIZE = 1000
GZIP_MAGIC = b'\x1f\x8b'


def is_url(location: str) -> bool:
    """True for http:// and https:// locations."""
    return urlparse(location).scheme in ("http", "https")


def filename_from_url(url: str, default: str = "response.csv") -> str:
    name = os.path.basename(unquote(urlparse(url).path))
    return name or default


def _gunzip_in_place(file_path: str) -> bool:
    """Decompress a gzip file in place; returns True if it was gzipped."""
    with open(file_path, 'rb') as f:
        if f.read(2) != GZIP_MAGIC:
            return False
        f.seek(0)
        content = f.read()

    try:
        decompressed = gzip.decompress(content)
    except (OSError, EOFError) as e:
        logging.error(f"Error decompressing {file_path}: {e}")
        return False

    with open(file_path, 'wb') as out_f:
        out_f.write(decompressed)
    return True


async def fetch_to_file(
    session: aiohttp.ClientSession,
    url: str,
    file_path: str,
    verify_ssl: bool = True,
) -> str:
    """
    Stream a URL to a file.

    Raises:
        FetchError: On non-200 status, timeout or connection failure
    """
    logging.debug(f"Requesting URL: {url}")

    try:
        async with session.get(url, ssl=verify_ssl) as response:
            if response.status != 200:
                body = await response.content.read(ERROR_EXCERPT_SIZE)
                raise FetchError(
                    url,
                    status=response.status,
                    excerpt=body.decode('utf-8', errors='replace').strip(),
                )

            with open(file_path, 'wb') as f:
                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    f.write(chunk)

    except asyncio.TimeoutError as e:
        raise FetchError(url, excerpt="timed out") from e
    except aiohttp.ClientError as e:
        raise FetchError(url, excerpt=str(e)) from e

    if _gunzip_in_place(file_path):
        logging.debug(f"Decompressed gzip response from {url}")

    return file_path


async def fetch_dataset(
    session: aiohttp.ClientSession,
    url: str,
    download_dir: str,
    verify_ssl: bool = True,
    max_rows: Optional[int] = None,
    prefix: str = "",
) -> Dataset:
    """Download a CSV into download_dir and load it as a Dataset."""
    filename = filename_from_url(url)
    file_path = os.path.join(download_dir, f"{prefix}{filename}")

    await fetch_to_file(session, url, file_path, verify_ssl=verify_ssl)
    dataset = await asyncio.to_thread(load_dataset, file_path, None, max_rows)
    dataset.filename = filename
    return dataset


async def fetch_datasets(
    prod_url: str,
    dev_url: str,
    timeout: int = DEFAULT_TIMEOUT,
    verify_ssl: bool = True,
    max_rows: Optional[int] = None,
) -> Tuple[Dataset, Dataset]:
    """
    Fetch a baseline and a candidate CSV concurrently.

    Returns:
        (prod, dev) datasets
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    async with aiohttp.ClientSession(timeout=client_timeout) as session:
        with tempfile.TemporaryDirectory(prefix="tabular-diff-") as download_dir:
            # Let both downloads settle before the session and directory close
            results = await asyncio.gather(
                fetch_dataset(session, prod_url, download_dir, verify_ssl, max_rows, "prod_"),
                fetch_dataset(session, dev_url, download_dir, verify_ssl, max_rows, "dev_"),
                return_exceptions=True,
            )

    for result in results:
        if isinstance(result, BaseException):
            raise result
    prod, dev = results

    logging.info(f"Fetched {prod.row_count} prod rows and {dev.row_count} dev rows")
    return prod, dev
