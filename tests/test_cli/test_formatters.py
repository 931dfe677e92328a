"""
Tests for output formatters
"""

import json

import pytest

from r2sql.cli.formatters import (
    CSVFormatter,
    JSONFormatter,
    MarkdownFormatter,
    TableFormatter,
    get_formatter,
)
from r2sql.core.types import QueryResult


@pytest.fixture
def nested_result():
    return QueryResult(rows=[{"id": 1, "tags": ["a", "b"], "meta": {"k": "v"}}, {"id": 2, "extra": "x|y"}])


class TestGetFormatter:
    def test_known_names(self):
        """Test looking up every registered formatter by name"""
        assert isinstance(get_formatter("table"), TableFormatter)
        assert isinstance(get_formatter("markdown"), MarkdownFormatter)
        assert get_formatter("csv").get_name() == "csv"

    def test_unknown_name(self):
        """Test that an unknown format name raises ValueError"""
        with pytest.raises(ValueError, match="Unknown format"):
            get_formatter("xml")


class TestJSONFormatter:
    def test_rows_preserved(self, sample_result):
        """Test that rows are written as a JSON array"""
        output = JSONFormatter().format(sample_result)
        assert json.loads(output) == sample_result.rows

    def test_compact(self, sample_result):
        """Test compact JSON output"""
        output = JSONFormatter().format(sample_result, compact=True)
        assert "\n" not in output
        assert output.startswith('[{"id":1,')

    def test_include_stats(self, sample_result):
        """Test wrapping rows together with statistics"""
        payload = json.loads(JSONFormatter().format(sample_result, include_stats=True))
        assert payload["stats"]["rowCount"] == 3
        assert len(payload["rows"]) == 3

    def test_nan_becomes_null(self):
        """Test that NaN values are written as null"""
        output = JSONFormatter().format(QueryResult(rows=[{"x": float("nan")}]))
        assert json.loads(output) == [{"x": None}]


class TestCSVFormatter:
    def test_header_and_nulls(self, sample_result):
        """Test CSV header row and empty NULL cells"""
        lines = CSVFormatter().format(sample_result).splitlines()

        assert lines[0] == "id,name,city,active"
        assert lines[1] == "1,Alice,NYC,true"
        assert lines[3] == "3,Charlie,,true"

    def test_nested_and_sparse_columns(self, nested_result):
        """Test quoting of nested values and missing columns"""
        lines = CSVFormatter().format(nested_result).splitlines()

        assert lines[0] == "id,tags,meta,extra"
        assert lines[1] == '1,"[""a"", ""b""]","{""k"": ""v""}",'

    def test_empty(self):
        """Test that no rows give an empty string"""
        assert CSVFormatter().format(QueryResult(rows=[])) == ""


class TestMarkdownFormatter:
    def test_table(self, sample_result):
        """Test Markdown table header, separator and rows"""
        lines = MarkdownFormatter().format(sample_result).splitlines()

        assert lines[0] == "| id | name | city | active |"
        assert lines[1] == "| --- | --- | --- | --- |"
        assert lines[4] == "| 3 | Charlie | NULL | true |"

    def test_escapes_pipes(self, nested_result):
        """Test that pipes inside values are escaped"""
        output = MarkdownFormatter().format(nested_result)
        assert "x\\|y" in output

    def test_footer(self, sample_result):
        """Test the row count footer"""
        assert MarkdownFormatter().format(sample_result, show_footer=True).endswith("_3 rows_")

    def test_empty(self):
        """Test the message for an empty result"""
        assert MarkdownFormatter().format(QueryResult(rows=[])) == "_No rows returned._"


class TestTableFormatter:
    def test_contains_values_and_caption(self, sample_result):
        """Test that the table shows values, NULL and the stats caption"""
        output = TableFormatter().format(sample_result, no_color=True)

        assert "Alice" in output
        assert "NULL" in output
        assert "3 rows" in output
        assert "scanned" in output

    def test_empty(self):
        """Test the message for an empty result"""
        assert TableFormatter().format(QueryResult(rows=[])) == "No rows returned."
