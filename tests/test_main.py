"""Tests for the command line and its run modes."""

import asyncio
import json

import pytest

from tabular_diff.cli import create_parser, main
from tabular_diff.config import LOCAL_CONFIG_FILENAME, RuntimeConfig
from tabular_diff.csv_reader import load_dataset
from tabular_diff.main import (
    EXIT_DIFFERENCES,
    EXIT_ERROR,
    EXIT_IDENTICAL,
    build_runtime_config,
    find_folder_pairs,
    run_local_diff,
)

PROD_CSV = "id,name,inventory\n1,Alice,5\n2,Bob,3\n"
DEV_CSV = "id,name,inventory\n1,Alice,5\n2,Bobby,3\n3,Charlie,1\n"


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run inside an empty directory so no stray local config is picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _write(path, content):
    path.write_text(content, encoding="utf-8")
    return str(path)


def _summaries(directory, prefix):
    return sorted(directory.glob(f"{prefix}_*.json"))


class TestParser:
    def test_defaults(self):
        args = create_parser().parse_args([])

        assert args.baseline == ''
        assert args.candidate == ''
        assert args.folder == ''
        assert args.primary_key is None
        assert args.max_examples is None
        assert args.exclude is None
        assert args.timeout == 900
        assert args.max_concurrent_diffs == 10
        assert args.summary_dir == 'summaries'
        assert args.export is None
        assert args.verbose is False

    def test_short_flags(self):
        args = create_parser().parse_args([
            '-b', 'a.csv', '-d', 'b.csv', '-k', 'sku,locale', '-m', '3', '-x', 'stock', '-x', 'updated',
        ])

        assert args.baseline == 'a.csv'
        assert args.candidate == 'b.csv'
        assert args.primary_key == 'sku,locale'
        assert args.max_examples == 3
        assert args.exclude == ['stock', 'updated']


class TestBuildRuntimeConfig:
    def test_cli_flags(self, workdir):
        args = create_parser().parse_args([
            '-k', 'sku, locale', '-x', 'stock', '--ignore-case', '--no-trim',
            '--wide-digest', '--insecure', '-r', '100', '-c', '2',
        ])

        config = build_runtime_config(args)

        assert config.diff.primary_keys == ('sku', 'locale')
        assert config.diff.excluded_patterns == ('stock',)
        assert config.diff.case_sensitive is False
        assert config.diff.trim_whitespace is False
        assert config.diff.digest == 'md5'
        assert config.verify_ssl is False
        assert config.max_rows == 100
        assert config.max_concurrent_diffs == 2

    def test_defaults_without_flags(self, workdir):
        config = build_runtime_config(create_parser().parse_args([]))

        assert config.diff.primary_keys is None
        assert config.diff.max_examples == 10
        assert config.diff.excluded_patterns == ('inventory', 'availability')
        assert config.verify_ssl is True

    def test_local_config_file_is_overridden_by_flags(self, workdir):
        (workdir / LOCAL_CONFIG_FILENAME).write_text(json.dumps({
            "primary_key": "sku",
            "max_examples": 3,
        }))

        from_file = build_runtime_config(create_parser().parse_args([]))
        from_flags = build_runtime_config(create_parser().parse_args(['-k', 'id', '-m', '7']))

        assert from_file.diff.primary_keys == ('sku',)
        assert from_file.diff.max_examples == 3
        assert from_flags.diff.primary_keys == ('id',)
        assert from_flags.diff.max_examples == 7

    def test_negative_max_examples_rejected(self, workdir):
        with pytest.raises(ValueError):
            build_runtime_config(create_parser().parse_args(['-m', '-1']))


class TestLocalMode:
    def test_identical_files_exit_zero(self, workdir):
        prod = _write(workdir / "prod.csv", PROD_CSV)
        dev = _write(workdir / "dev.csv", PROD_CSV)

        assert main(['-b', prod, '-d', dev, '-k', 'id']) == EXIT_IDENTICAL

    def test_differences_exit_one_and_write_summary(self, workdir):
        prod = _write(workdir / "prod.csv", PROD_CSV)
        dev = _write(workdir / "dev.csv", DEV_CSV)

        assert main(['-b', prod, '-d', dev, '-k', 'id', '-s', 'out']) == EXIT_DIFFERENCES

        summaries = _summaries(workdir / "out", "diffs_summary_local")
        assert len(summaries) == 1
        summary = json.loads(summaries[0].read_text())
        assert summary["mode"] == "local"
        assert summary["prod_file"] == "prod.csv"
        assert summary["dev_file"] == "dev.csv"
        assert summary["rows_added"] == 1
        assert summary["rows_updated"] == 1
        assert summary["detailed_key_update_counts"] == {"name": 1}
        assert "runtime_seconds" in summary

    def test_auto_detected_key(self, workdir):
        prod = _write(workdir / "prod.csv", PROD_CSV)
        dev = _write(workdir / "dev.csv", DEV_CSV)

        assert main(['-b', prod, '-d', dev]) == EXIT_DIFFERENCES

    def test_export(self, workdir):
        prod = _write(workdir / "prod.csv", PROD_CSV)
        dev = _write(workdir / "dev.csv", DEV_CSV)
        export = str(workdir / "examples.csv")

        main(['-b', prod, '-d', dev, '-k', 'id', '-e', export])

        exported = load_dataset(export)
        assert [r["_change_type"] for r in exported.rows] == ["ADDED", "MODIFIED"]
        assert exported.rows[1]["name"] == "Bobby"

    def test_missing_primary_key_exit_two(self, workdir):
        prod = _write(workdir / "prod.csv", PROD_CSV)
        dev = _write(workdir / "dev.csv", DEV_CSV)

        assert main(['-b', prod, '-d', dev, '-k', 'sku']) == EXIT_ERROR

    def test_missing_file_exit_two(self, workdir):
        prod = _write(workdir / "prod.csv", PROD_CSV)

        assert main(['-b', prod, '-d', str(workdir / "nope.csv")]) == EXIT_ERROR

    def test_requires_both_inputs(self, workdir):
        assert main(['-b', 'prod.csv']) == EXIT_ERROR

    def test_mixed_url_and_file_exit_two(self, workdir):
        prod = _write(workdir / "prod.csv", PROD_CSV)

        assert main(['-b', prod, '-d', 'https://example.com/dev.csv']) == EXIT_ERROR

    def test_run_local_diff_returns_report(self, workdir):
        prod = _write(workdir / "prod.csv", PROD_CSV)
        dev = _write(workdir / "dev.csv", DEV_CSV)
        config = RuntimeConfig(summary_dir=str(workdir / "s"))

        report = asyncio.run(run_local_diff(prod, dev, config))

        assert report.rows_added == 1
        assert report.primary_keys == ["id"]
        assert report.common_keys == ["id", "inventory", "name"]


class TestFolderMode:
    def test_find_folder_pairs(self, tmp_path):
        for name in ["baseline_a.csv", "candidate_a.csv", "baseline_b.tsv", "notes.txt", "candidate_c.csv"]:
            (tmp_path / name).write_text("id\n")

        pairs = find_folder_pairs(str(tmp_path))

        assert list(pairs) == ["a", "b", "c"]
        assert set(pairs["a"]) == {"baseline", "candidate"}
        assert set(pairs["b"]) == {"baseline"}
        assert set(pairs["c"]) == {"candidate"}

    def test_folder_with_differences(self, workdir):
        folder = workdir / "exports"
        folder.mkdir()
        _write(folder / "baseline_same.csv", PROD_CSV)
        _write(folder / "candidate_same.csv", PROD_CSV)
        _write(folder / "baseline_changed.csv", PROD_CSV)
        _write(folder / "candidate_changed.csv", DEV_CSV)

        assert main(['-f', str(folder), '-k', 'id', '-c', '1']) == EXIT_DIFFERENCES

        summaries = _summaries(workdir / "summaries", "folder_diffs_summary")
        assert len(summaries) == 1
        summary = json.loads(summaries[0].read_text())
        assert summary["count"] == 2
        assert [c["name"] for c in summary["comparisons"]] == ["changed", "same"]
        assert summary["comparisons"][0]["rows_added"] == 1
        assert summary["comparisons"][1]["rows_added"] == 0

    def test_identical_folder_exit_zero(self, workdir):
        folder = workdir / "exports"
        folder.mkdir()
        _write(folder / "baseline_a.csv", PROD_CSV)
        _write(folder / "candidate_a.csv", PROD_CSV)

        assert main(['-f', str(folder)]) == EXIT_IDENTICAL

    def test_incomplete_pair_is_reported(self, workdir):
        folder = workdir / "exports"
        folder.mkdir()
        _write(folder / "baseline_a.csv", PROD_CSV)
        _write(folder / "candidate_a.csv", DEV_CSV)
        _write(folder / "baseline_orphan.csv", PROD_CSV)

        assert main(['-f', str(folder), '-k', 'id']) == EXIT_ERROR

        summary = json.loads(_summaries(workdir / "summaries", "folder_diffs_summary")[0].read_text())
        results = {c["name"]: c for c in summary["comparisons"]}
        assert results["orphan"]["error"] == {"msg": "Missing baseline or candidate file"}
        assert results["a"]["rows_added"] == 1

    def test_failing_pair_does_not_stop_others(self, workdir):
        folder = workdir / "exports"
        folder.mkdir()
        _write(folder / "baseline_a.csv", PROD_CSV)
        _write(folder / "candidate_a.csv", DEV_CSV)
        _write(folder / "baseline_b.csv", "sku,name\nX,Y\n")
        _write(folder / "candidate_b.csv", "sku,name\nX,Y\n")

        assert main(['-f', str(folder), '-k', 'id']) == EXIT_ERROR

        summary = json.loads(_summaries(workdir / "summaries", "folder_diffs_summary")[0].read_text())
        results = {c["name"]: c for c in summary["comparisons"]}
        assert "not found" in results["b"]["error"]["msg"]
        assert results["a"]["rows_updated"] == 1

    def test_empty_folder_exit_two(self, workdir):
        folder = workdir / "empty"
        folder.mkdir()

        assert main(['-f', str(folder)]) == EXIT_ERROR
