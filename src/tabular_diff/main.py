"""
Run modes for the tabular-diff command line.

- Local mode: compare two CSV files or URLs
- Folder mode: compare every baseline/candidate pair in a folder concurrently
"""

import asyncio
import csv
import logging
import os
import re
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .config import DiffOptions, RuntimeConfig, parse_primary_key_string
from .csv_reader import load_dataset, write_dataset
from .dataset import Dataset
from .differ import diff_datasets
from .errors import DiffError
from .fetcher import fetch_datasets, is_url
from .progress import ProgressDisplay
from .report import DiffReport, diff_to_rows, format_diff_summary
from .utils import create_summary_structure, write_summary

EXIT_IDENTICAL = 0
EXIT_DIFFERENCES = 1
EXIT_ERROR = 2

FOLDER_PAIR_PATTERN = re.compile(r"^(baseline|candidate)_(.+)\.(csv|tsv|txt)$")

# Errors a single comparison can raise without stopping a batch
COMPARISON_ERRORS = (DiffError, OSError, csv.Error, UnicodeDecodeError)


async def load_pair(
    baseline: str,
    candidate: str,
    config: RuntimeConfig,
) -> Tuple[Dataset, Dataset]:
    """Load a baseline and a candidate from local paths or http(s) URLs."""
    if is_url(baseline) and is_url(candidate):
        return await fetch_datasets(
            baseline, candidate,
            timeout=config.timeout,
            verify_ssl=config.verify_ssl,
            max_rows=config.max_rows,
        )
    if is_url(baseline) or is_url(candidate):
        raise DiffError("Baseline and candidate must both be URLs or both be local files")

    return await asyncio.gather(
        asyncio.to_thread(load_dataset, baseline, None, config.max_rows),
        asyncio.to_thread(load_dataset, candidate, None, config.max_rows),
    )


async def compute_diff_async(
    prod: Dataset,
    dev: Dataset,
    options: Optional[DiffOptions] = None,
) -> DiffReport:
    """
    Run a comparison off the event loop.

    Yields once first so a progress display can draw before the
    CPU-bound work starts. The comparison itself can't be cancelled.
    """
    await asyncio.sleep(0)
    return await asyncio.to_thread(diff_datasets, prod, dev, options)


def _log_results(report: DiffReport) -> None:
    logging.info(f"\n{'=' * 60}")
    for line in format_diff_summary(report).splitlines():
        logging.info(line)
    if report.prod_only_keys:
        logging.info(f"Columns only in baseline: {', '.join(report.prod_only_keys)}")
    if report.dev_only_keys:
        logging.info(f"Columns only in candidate: {', '.join(report.dev_only_keys)}")
    logging.info(f"{'=' * 60}")


async def run_local_diff(
    baseline: str,
    candidate: str,
    config: RuntimeConfig,
    export_path: Optional[str] = None,
) -> DiffReport:
    """
    Compare two files (or two URLs) and write a JSON summary.

    Args:
        baseline: Path or URL of the production/baseline CSV
        candidate: Path or URL of the development/candidate CSV
        config: Runtime configuration
        export_path: Optional CSV path for the example export

    Returns:
        The DiffReport
    """
    logging.info(f"Comparing:\n  Baseline:  {baseline}\n  Candidate: {candidate}")
    diff_start_time = datetime.now()

    prod, dev = await load_pair(baseline, candidate, config)

    progress = ProgressDisplay(total_diffs=1)
    progress.initial_draw()
    try:
        report = await compute_diff_async(prod, dev, config.diff)
        progress.increment_diffs()
    finally:
        progress.finish()

    diff_duration = (datetime.now() - diff_start_time).total_seconds()

    summary_obj: "OrderedDict[str, Any]" = OrderedDict()
    summary_obj["mode"] = "url" if is_url(baseline) else "local"
    summary_obj["prod_file"] = prod.filename or baseline
    summary_obj["dev_file"] = dev.filename or candidate
    summary_obj.update(report.to_dict())
    summary_obj["runtime_seconds"] = round(diff_duration, 2)

    summary_filename = write_summary(summary_obj, config.summary_dir, "diffs_summary_local")
    logging.info(f"Diff summary written to {summary_filename}")
    logging.info(f"Runtime: {diff_duration:.2f}s")

    if export_path:
        write_dataset(diff_to_rows(report), export_path)
        logging.info(f"Example export written to {export_path}")

    _log_results(report)
    return report


def find_folder_pairs(folder_path: str) -> Dict[str, Dict[str, str]]:
    """
    Group baseline_<name>.csv / candidate_<name>.csv files by name.

    Returns:
        Mapping name -> {"baseline": path, "candidate": path}, sorted by name
    """
    groups: Dict[str, Dict[str, str]] = {}
    for filename in sorted(os.listdir(folder_path)):
        match = FOLDER_PAIR_PATTERN.match(filename)
        if match:
            role, name = match.group(1), match.group(2)
            groups.setdefault(name, {})[role] = os.path.join(folder_path, filename)
    return groups


async def run_folder_diff(
    folder_path: str,
    config: RuntimeConfig,
) -> List[Dict[str, Any]]:
    """
    Compare every baseline/candidate pair in a folder.

    Pairs run concurrently, bounded by config.max_concurrent_diffs. A
    failing pair records its error and doesn't stop the others.

    Returns:
        Per-pair result dicts, sorted by pair name
    """
    logging.info(f"Running folder diff mode on: {folder_path}")
    run_start_time = datetime.now()

    groups = find_folder_pairs(folder_path)
    if not groups:
        logging.error("No matching baseline_/candidate_ file pairs found in folder")
        return []

    logging.info(f"Found {len(groups)} file pairs to process")
    progress = ProgressDisplay(total_diffs=len(groups))
    semaphore = asyncio.Semaphore(config.max_concurrent_diffs)

    async def process_pair(name: str, files: Dict[str, str]) -> Dict[str, Any]:
        pair_summary: Dict[str, Any] = OrderedDict(name=name)
        diff_start_time = datetime.now()

        if "baseline" not in files or "candidate" not in files:
            pair_summary["error"] = {"msg": "Missing baseline or candidate file"}
            progress.increment_errors()
            progress.increment_diffs()
            return pair_summary

        async with semaphore:
            try:
                prod, dev = await load_pair(files["baseline"], files["candidate"], config)
                report = await compute_diff_async(prod, dev, config.diff)
                pair_summary.update(report.to_dict())
                progress.log(f"[{name}] ✓ +{report.rows_added} -{report.rows_removed} "
                             f"~{report.rows_updated}")
            except COMPARISON_ERRORS as e:
                logging.error(f"  [{name}] ✗ Error: {e}")
                pair_summary["error"] = {"msg": str(e)}
                progress.increment_errors()

        pair_summary["runtime_seconds"] = round(
            (datetime.now() - diff_start_time).total_seconds(), 2
        )
        progress.increment_diffs()
        return pair_summary

    progress.initial_draw()
    try:
        results = await asyncio.gather(
            *(process_pair(name, files) for name, files in groups.items())
        )
    finally:
        progress.finish()

    results = sorted(results, key=lambda r: r["name"])
    total_runtime = (datetime.now() - run_start_time).total_seconds()

    overall_summary = create_summary_structure(
        count=len(results),
        runtime_seconds=total_runtime,
        comparisons=results,
    )
    summary_filename = write_summary(overall_summary, config.summary_dir, "folder_diffs_summary")

    logging.info(f"Summary written to {summary_filename}")
    logging.info(f"Total runtime: {total_runtime:.2f}s")
    return results


def build_runtime_config(args) -> RuntimeConfig:
    """Merge local config file defaults with command line arguments."""
    options = DiffOptions.from_local_config()

    overrides: Dict[str, Any] = {
        "max_examples": args.max_examples,
        "excluded_patterns": tuple(args.exclude) if args.exclude else None,
    }
    if args.primary_key:
        overrides["primary_keys"] = parse_primary_key_string(args.primary_key) or None
    if args.ignore_case:
        overrides["case_sensitive"] = False
    if args.no_trim:
        overrides["trim_whitespace"] = False
    if args.wide_digest:
        overrides["digest"] = "md5"

    return RuntimeConfig(
        diff=options.merge(**overrides),
        summary_dir=args.summary_dir,
        timeout=args.timeout,
        max_concurrent_diffs=args.max_concurrent_diffs,
        max_rows=args.max_rows,
        verify_ssl=not args.insecure,
        verbose=args.verbose,
    )


def run_main(args) -> int:
    """
    Main entry point that dispatches to the appropriate mode.

    Returns:
        Process exit status
    """
    return asyncio.run(_async_main(args))


async def _async_main(args) -> int:
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(levelname)s: %(message)s'
    )

    try:
        config = build_runtime_config(args)
    except ValueError as e:
        logging.error(f"Invalid configuration: {e}")
        return EXIT_ERROR

    if config.diff.primary_keys:
        logging.info(f"Using primary key(s): {list(config.diff.primary_keys)}")
    else:
        logging.info("Primary key: auto-detect")
    if config.max_rows:
        logging.info(f"Row limit: {config.max_rows} rows per file")

    try:
        if args.folder:
            results = await run_folder_diff(args.folder, config)
            if not results or any("error" in r for r in results):
                return EXIT_ERROR
            changed = any(
                r["rows_added"] or r["rows_removed"] or r["rows_updated"]
                or r["rows_updated_excluded_only"]
                for r in results
            )
            return EXIT_DIFFERENCES if changed else EXIT_IDENTICAL

        if not args.baseline or not args.candidate:
            logging.error(
                "Local mode requires --baseline and --candidate.\n"
                "Example:\n"
                "  tabular-diff --baseline prod.csv --candidate dev.csv --primary-key id"
            )
            return EXIT_ERROR

        report = await run_local_diff(args.baseline, args.candidate, config, args.export)
    except COMPARISON_ERRORS as e:
        logging.error(f"Error comparing datasets: {e}")
        return EXIT_ERROR

    return EXIT_DIFFERENCES if report.has_changes else EXIT_IDENTICAL
