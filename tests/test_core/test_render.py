"""
Tests for result rendering
"""

import json

from r2sql.core.render import (
    NULL_MARKER,
    NULL_STYLE,
    NUMBER_STYLE,
    OBJECT_STYLE,
    STRING_STYLE,
    TIMESTAMP_STYLE,
    TRUE_STYLE,
    format_bytes,
    looks_like_timestamp,
    render_error,
    render_headers,
    render_metadata,
    render_rows,
    render_schema,
    render_table_schema,
    stringify,
    value_style,
)
from r2sql.core.types import QueryStats, TableMetadata, ViewMode


class TestValueStyling:
    """Test stringifying and coloring of cell values"""

    def test_stringify(self):
        """Test turning values into display text"""
        assert stringify(None) == NULL_MARKER
        assert stringify(True) == "true"
        assert stringify(False) == "false"
        assert stringify(42) == "42"
        assert stringify({"a": [1, 2]}) == json.dumps({"a": [1, 2]})

    def test_styles_by_type(self):
        """Test the style picked for each value type"""
        assert value_style(None) == NULL_STYLE
        assert value_style(True) == TRUE_STYLE
        assert value_style(3.5) == NUMBER_STYLE
        assert value_style({"k": 1}) == OBJECT_STYLE
        assert value_style([1]) == OBJECT_STYLE
        assert value_style("2024-01-15T10:00:00Z") == TIMESTAMP_STYLE
        assert value_style("hello") == STRING_STYLE

    def test_timestamp_patterns(self):
        """Test recognising date and epoch strings"""
        assert looks_like_timestamp("2024-01-15")
        assert looks_like_timestamp("01/15/2024")
        assert looks_like_timestamp("day T10:20:30")
        assert looks_like_timestamp("1705312800")
        assert looks_like_timestamp("1705312800000")
        assert not looks_like_timestamp("123456789")
        assert not looks_like_timestamp("hello world")

    def test_format_bytes(self):
        """Test human-readable byte sizes"""
        assert format_bytes(None) == "n/a"
        assert format_bytes(2048) == "2.00 KB"
        assert format_bytes(3 * 1024 * 1024) == "3.00 MB"


class TestRenderRows:
    """Test data-mode rendering in both layouts"""

    ROWS = [{"a": 1, "b": None}, {"a": 2, "b": "x"}]

    def test_list_layout_blocks(self):
        """Test one block per row in the list layout"""
        view = render_rows(self.ROWS, ViewMode.LIST, 80)
        plain = view.text.plain

        assert plain.count("Row ") == 2
        assert "Row 1:" in plain
        assert "Row 2:" in plain
        assert len(view.anchors) == 2
        assert f"b: {NULL_MARKER}" in plain

    def test_null_marker_in_table_layout(self):
        """Test the NULL marker in the table layout"""
        view = render_rows(self.ROWS, ViewMode.TABLE, 80)
        lines = view.text.plain.splitlines()

        assert lines[0].split() == ["a", "b"]
        assert NULL_MARKER in lines[2]
        assert "x" in lines[3]

    def test_list_keys_padded_to_longest(self):
        """Test that list keys are padded to the longest key"""
        view = render_rows([{"a": 1, "long_key": 2}], ViewMode.LIST, 80)
        lines = view.text.plain.splitlines()

        assert "  a       : 1" in lines
        assert "  long_key: 2" in lines

    def test_table_column_width_and_truncation(self):
        """Test splitting the width across columns and truncating cells"""
        rows = [{"first": "abcdefghijklmnopqrstuvwxyz", "second": 1}]
        view = render_rows(rows, ViewMode.TABLE, 20)
        lines = view.text.plain.splitlines()

        # 20 cells split across 2 columns
        assert len(lines[0]) == 20
        assert lines[2].startswith("abcdef...")
        assert "abcdefghijklmnop" not in lines[2]

    def test_minimum_column_width(self):
        """Test that columns never shrink below their minimum width"""
        rows = [{f"c{i}": i for i in range(10)}]
        view = render_rows(rows, ViewMode.TABLE, 20)
        assert len(view.text.plain.splitlines()[0]) == 60

    def test_stats_header(self):
        """Test the query statistics header"""
        stats = QueryStats(row_count=2, r2_requests_count=4, files_scanned=1, bytes_scanned=1024, execution_time=5.0)
        plain = render_rows(self.ROWS, ViewMode.LIST, 80, stats=stats).text.plain

        assert plain.startswith("Query Statistics:")
        assert "R2 Requests: 4" in plain
        assert "Scanned: 1.00 KB" in plain
        assert "Time: 5.00 ms" in plain
        assert "filtered" not in plain

    def test_filtered_line(self):
        """Test the filtered count line and original row numbers"""
        view = render_rows(self.ROWS[1:], ViewMode.LIST, 80, total=2, row_numbers=[1])
        plain = view.text.plain

        assert "Showing 1 of 2 rows (filtered)" in plain
        # Original row numbering is kept
        assert "Row 2:" in plain
        assert "Row 1:" not in plain

    def test_no_rows_shows_message_and_metadata(self):
        """Test the empty result message with query metadata"""
        stats = QueryStats(row_count=0, r2_requests_count=1, files_scanned=0, bytes_scanned=0)
        plain = render_rows([], ViewMode.TABLE, 80, stats=stats).text.plain

        assert "No rows returned" in plain
        assert "Query Metadata:" in plain
        assert "R2 Requests:    1" in plain

    def test_no_rows_without_stats_is_not_blank(self):
        """Test that an empty result without stats still shows a message"""
        assert render_rows([], ViewMode.LIST, 80).text.plain.strip() == "No rows returned"

    def test_filter_without_matches(self):
        """Test a filter that matches no rows"""
        plain = render_rows([], ViewMode.LIST, 80, total=5).text.plain
        assert "Showing 0 of 5 rows (filtered)" in plain
        assert "No matching rows" in plain

    def test_current_match_highlighted(self):
        """Test highlighting of the current match"""
        view = render_rows(self.ROWS, ViewMode.TABLE, 80, current=1)
        styled = [span for span in view.text.spans if "reverse" in str(span.style)]
        assert styled


class TestRenderOtherModes:
    """Test schema, headers and metadata rendering"""

    def test_schema_list(self, sample_schema):
        """Test the schema list layout"""
        plain = render_schema(sample_schema, ViewMode.LIST, 80).text.plain
        assert "Query Schema:" in plain
        assert "Column 1:" in plain
        assert "type: int64" in plain

    def test_schema_missing(self):
        """Test the message when no schema was returned"""
        assert "No schema information available" in render_schema(None, ViewMode.LIST, 80).text.plain

    def test_schema_filtered(self, sample_schema):
        """Test filtered schema counts and the no-match message"""
        plain = render_schema(sample_schema[:1], ViewMode.TABLE, 80, total=4).text.plain
        assert "(filtered: 1/4 fields)" in plain

        empty = render_schema([], ViewMode.TABLE, 80, total=4).text.plain
        assert "No matching schema fields" in empty

    def test_headers(self):
        """Test response headers in both layouts"""
        headers = {"content-type": "application/json", "cf-ray": "abc"}
        listed = render_headers(headers, ViewMode.LIST, 80).text.plain
        assert "content-type: application/json" in listed
        assert "cf-ray      : abc" in listed

        table = render_headers(headers, ViewMode.TABLE, 80).text.plain
        assert "Header" in table
        assert "Value" in table

    def test_headers_missing(self):
        """Test the messages for missing and unmatched headers"""
        assert "No headers available" in render_headers(None, ViewMode.LIST, 80).text.plain
        assert "No matching headers" in render_headers({}, ViewMode.LIST, 80, total=3).text.plain

    def test_metadata(self):
        """Test pretty-printed table metadata"""
        plain = render_metadata({"format-version": 2, "location": "s3://x"}).text.plain
        assert "Iceberg Table Metadata:" in plain
        assert '"format-version": 2' in plain

    def test_metadata_missing(self):
        """Test the messages for missing and unmatched metadata"""
        assert "No table metadata available" in render_metadata(None).text.plain
        assert "No matching metadata fields" in render_metadata(None, filtered=True).text.plain

    def test_table_schema(self):
        """Test the column listing of a selected table"""
        metadata = TableMetadata(
            namespace="default",
            name="events",
            schema={"fields": [{"name": "id", "type": "long", "required": True}, {"name": "ts", "type": "timestamptz"}]},
        )
        lines = render_table_schema(metadata).text.plain.splitlines()

        assert lines[0] == "Table: default.events"
        assert "Column Name" in lines[2]
        assert any(line.startswith("id") and line.endswith("NOT NULL") for line in lines)
        assert any(line.startswith("ts") and line.endswith("NULL") and "NOT" not in line for line in lines)

    def test_error(self):
        """Test that errors get a single Error prefix"""
        assert render_error("boom").text.plain == "Error: boom"
        assert render_error("Error: already").text.plain == "Error: already"
