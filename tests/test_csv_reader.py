"""Tests for StreamingCSVReader and the dataset loaders."""

import os
import tempfile
from tabular_diff.csv_reader import StreamingCSVReader, load_dataset, write_dataset
from tabular_diff.dataset import Dataset


def _write_temp(content, suffix='.csv'):
    with tempfile.NamedTemporaryFile(mode='w', suffix=suffix, delete=False, encoding='utf-8', newline='') as f:
        f.write(content)
    return f.name


class TestStreamingCSVReader:
    """Tests for the StreamingCSVReader class."""

    def test_read_simple_csv(self):
        """Test reading a simple CSV file."""
        path = _write_temp("id,name,price\n1,Widget,9.99\n2,Gadget,19.99\n")

        try:
            reader = StreamingCSVReader(path)
            headers = reader.read_headers()

            assert headers == ['id', 'name', 'price']

            rows = list(reader.iterate_rows())
            assert len(rows) == 2
            assert rows[0] == {'id': '1', 'name': 'Widget', 'price': '9.99'}
            assert rows[1] == {'id': '2', 'name': 'Gadget', 'price': '19.99'}
        finally:
            os.unlink(path)

    def test_detect_tab_delimiter(self):
        """Test auto-detection of tab delimiter."""
        path = _write_temp("id\tname\tprice\n1\tWidget\t9.99\n", suffix='.tsv')

        try:
            reader = StreamingCSVReader(path)
            assert reader.detected_delimiter == '\t'

            rows = list(reader.iterate_rows())
            assert rows[0]['name'] == 'Widget'
        finally:
            os.unlink(path)

    def test_header_delimiter_mismatch(self):
        """Header separated by tabs, data by commas."""
        path = _write_temp("id\tname\n1,Widget\n2,Gadget\n")

        try:
            reader = StreamingCSVReader(path)
            assert reader.detected_header_delimiter == '\t'
            assert reader.detected_delimiter == ','
            assert reader.read_headers() == ['id', 'name']
            assert list(reader.iterate_rows())[1] == {'id': '2', 'name': 'Gadget'}
        finally:
            os.unlink(path)

    def test_explicit_delimiter(self):
        path = _write_temp("id;name\n1;Widget\n")

        try:
            reader = StreamingCSVReader(path, delimiter=';')
            assert reader.read_headers() == ['id', 'name']
            assert list(reader.iterate_rows()) == [{'id': '1', 'name': 'Widget'}]
        finally:
            os.unlink(path)

    def test_max_rows_limit(self):
        """Test row limiting."""
        path = _write_temp("id,value\n" + "".join(f"{i},{i * 10}\n" for i in range(100)))

        try:
            reader = StreamingCSVReader(path, max_rows=5)
            rows = list(reader.iterate_rows())

            assert len(rows) == 5
            assert reader.count_rows() == 5
        finally:
            os.unlink(path)

    def test_count_rows_cached(self):
        """Test that row count is cached."""
        path = _write_temp("id\n1\n2\n3\n")

        try:
            reader = StreamingCSVReader(path)
            count1 = reader.count_rows()
            count2 = reader.count_rows()

            assert count1 == count2 == 3
        finally:
            os.unlink(path)

    def test_empty_file(self):
        path = _write_temp("")

        try:
            reader = StreamingCSVReader(path)
            assert reader.read_headers() == []
            assert reader.count_rows() == 0
        finally:
            os.unlink(path)

    def test_header_only(self):
        path = _write_temp("id,name\n")

        try:
            reader = StreamingCSVReader(path)
            assert reader.read_headers() == ['id', 'name']
            assert list(reader.iterate_rows()) == []
        finally:
            os.unlink(path)

    def test_bom_and_quoted_headers_are_normalized(self):
        path = _write_temp('\ufeff"id", name \n1,Widget\n')

        try:
            reader = StreamingCSVReader(path)
            assert reader.read_headers() == ['id', 'name']
        finally:
            os.unlink(path)

    def test_short_rows_fill_none(self):
        path = _write_temp("id,name,price\n1,Widget\n")

        try:
            rows = list(StreamingCSVReader(path).iterate_rows())
            assert rows == [{'id': '1', 'name': 'Widget', 'price': None}]
        finally:
            os.unlink(path)

    def test_blank_lines_skipped(self):
        path = _write_temp("id,name\n1,Widget\n\n2,Gadget\n")

        try:
            rows = list(StreamingCSVReader(path).iterate_rows())
            assert [r['id'] for r in rows] == ['1', '2']
        finally:
            os.unlink(path)

    def test_backslash_escape_detection(self):
        path = _write_temp('id,title\n1,"Table 81 x 36\\" wide"\n')

        try:
            reader = StreamingCSVReader(path)
            assert reader.uses_backslash_escaping is True
            assert list(reader.iterate_rows())[0]['title'] == 'Table 81 x 36" wide'
        finally:
            os.unlink(path)

    def test_double_quote_escape_is_default(self, fixtures_dir):
        reader = StreamingCSVReader(fixtures_dir / "edge_cases_prod.csv")

        assert reader.uses_backslash_escaping is False

    def test_line_numbers_follow_file_lines(self, fixtures_dir):
        """Multi-line quoted fields advance the line counter."""
        reader = StreamingCSVReader(fixtures_dir / "edge_cases_prod.csv")
        lines = {row['id']: line for line, row in reader.iterate_rows_with_line_numbers()}

        assert lines['1'] == 2
        assert lines['2'] == 3
        assert lines['5'] == 6
        assert lines['6'] == 8
        assert lines['10'] == 12

    def test_special_values(self, fixtures_dir):
        rows = {r['id']: r for r in StreamingCSVReader(fixtures_dir / "edge_cases_prod.csv").iterate_rows()}

        assert rows['2']['name'] == 'Name, With Comma'
        assert rows['3']['name'] == 'Quote "Inside"'
        assert rows['4']['name'] == '  Padded  '
        assert rows['5']['name'] == 'Multi\nLine'
        assert rows['6']['name'] == 'Ünïcödé'
        assert rows['7']['name'] == ''
        assert rows['8']['name'] == 'Tab\there'


class TestLoadDataset:
    """Tests for load_dataset and write_dataset."""

    def test_load_dataset(self, fixtures_dir):
        dataset = load_dataset(fixtures_dir / "basic_prod.csv")

        assert dataset.filename == "basic_prod.csv"
        assert dataset.row_count == 10
        assert dataset.headers[:3] == ['id', 'sku', 'title']
        assert dataset.rows[7]['title'] == 'Classic Item'

    def test_load_dataset_max_rows(self, fixtures_dir):
        dataset = load_dataset(fixtures_dir / "basic_prod.csv", max_rows=3)

        assert dataset.row_count == 3

    def test_write_then_read(self, tmp_path):
        dataset = Dataset(
            headers=['id', 'note'],
            rows=[{'id': '1', 'note': 'a, b'}, {'id': '2', 'note': None}],
        )
        path = tmp_path / "out.csv"

        write_dataset(dataset, path)
        loaded = load_dataset(path)

        assert loaded.headers == ['id', 'note']
        assert loaded.rows == [{'id': '1', 'note': 'a, b'}, {'id': '2', 'note': ''}]


class TestDataset:
    def test_line_numbers_are_positions(self):
        dataset = Dataset(headers=['id'], rows=[{'id': 'a'}, {'id': 'b'}])

        assert list(dataset.iterate_rows_with_line_numbers()) == [(1, {'id': 'a'}), (2, {'id': 'b'})]
        assert dataset.row_at(2) == {'id': 'b'}
        assert dataset.row_count == 2
