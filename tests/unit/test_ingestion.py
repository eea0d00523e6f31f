"""
Unit Tests - File Ingestion
"""
import io

import pandas as pd
import pytest

from profit_insights.config.settings import IngestionSettings, Settings
from profit_insights.errors import (
    CorruptFileError,
    EmptyFileError,
    FileTooLargeError,
    UnsupportedFormatError,
)
from profit_insights.ingestion.file_ingestor import (
    FileIngestor,
    detect_file_format,
    detect_platform,
    sniff_delimiter,
)
from profit_insights.models import FileFormat, Platform


class TestFormatDetection:
    """Tests for detect_file_format"""

    def test_extension_wins(self):
        """Test extension takes priority over mime type"""
        assert detect_file_format("orders.XLSX", "text/csv") == FileFormat.XLSX

    def test_mime_type_fallback(self):
        """Test mime type used when extension is unknown"""
        assert detect_file_format("export", "text/csv; charset=utf-8") == FileFormat.CSV

    def test_unsupported_format(self):
        """Test unknown extension and mime type are rejected"""
        with pytest.raises(UnsupportedFormatError):
            detect_file_format("orders.json", "application/json")


class TestPlatformDetection:
    """Tests for detect_platform"""

    def test_salla_headers(self):
        """Test Salla export detected from headers"""
        assert detect_platform(["salla_order", "total"], []) == Platform.SALLA

    def test_shopify_headers(self):
        """Test Shopify export detected from headers"""
        headers = ["Name", "financial_status", "Lineitem name"]
        rows = [{"Name": "#1001", "financial_status": "paid", "Lineitem name": "Mug"}]
        assert detect_platform(headers, rows) == Platform.SHOPIFY

    def test_unknown(self):
        """Test generic export is unknown"""
        assert detect_platform(["Order", "Total"], [{"Order": "1", "Total": "5"}]) == Platform.UNKNOWN


class TestFileIngestor:
    """Tests for FileIngestor"""

    def test_csv(self, test_settings, sales_csv):
        """Test CSV rows are read as text with nulls for blanks"""
        parsed = FileIngestor(test_settings).ingest(sales_csv, "orders.csv")

        assert parsed.file_format == FileFormat.CSV
        assert parsed.headers[0] == "Order ID"
        assert parsed.row_count == 6
        assert parsed.rows[0]["Total"] == "10.00"
        assert parsed.rows[5]["Total"] is None

    def test_rows_are_read_only(self, test_settings, sales_csv):
        """Test ingested rows cannot be mutated"""
        parsed = FileIngestor(test_settings).ingest(sales_csv, "orders.csv")

        with pytest.raises(TypeError):
            parsed.rows[0]["Total"] = "0"

    def test_blank_rows_removed(self, test_settings):
        """Test completely blank lines are dropped"""
        content = b"Product,Total\nMug,10\n,\nLamp,20\n"
        parsed = FileIngestor(test_settings).ingest(content, "orders.csv")

        assert parsed.row_count == 2

    def test_tab_delimited_text(self, test_settings):
        """Test delimiter is sniffed for .txt files"""
        content = b"Product\tTotal\nMug\t10\n"
        parsed = FileIngestor(test_settings).ingest(content, "orders.txt")

        assert parsed.headers == ("Product", "Total")
        assert parsed.rows[0]["Total"] == "10"

    def test_excel(self, test_settings):
        """Test first worksheet of an xlsx workbook is read"""
        buffer = io.BytesIO()
        pd.DataFrame({"Product": ["Mug", "Lamp"], "Total": [10.5, 20]}).to_excel(buffer, index=False)

        parsed = FileIngestor(test_settings).ingest(buffer.getvalue(), "orders.xlsx")

        assert parsed.file_format == FileFormat.XLSX
        assert parsed.row_count == 2
        assert parsed.rows[0]["Total"] == 10.5

    def test_empty_file(self, test_settings):
        """Test zero-byte upload is rejected"""
        with pytest.raises(EmptyFileError):
            FileIngestor(test_settings).ingest(b"", "orders.csv")

    def test_header_only_file(self, test_settings):
        """Test file with headers but no rows is rejected"""
        with pytest.raises(EmptyFileError):
            FileIngestor(test_settings).ingest(b"Product,Total\n", "orders.csv")

    def test_too_large(self):
        """Test size limit is enforced before parsing"""
        settings = Settings(ingestion=IngestionSettings(max_file_size_bytes=10))

        with pytest.raises(FileTooLargeError):
            FileIngestor(settings).ingest(b"Product,Total\nMug,10\n", "orders.csv")

    def test_large_file_warning(self):
        """Test large uploads carry a warning"""
        settings = Settings(ingestion=IngestionSettings(large_file_warning_bytes=5))
        parsed = FileIngestor(settings).ingest(b"Product,Total\nMug,10\n", "orders.csv")

        assert any("Large file" in w for w in parsed.warnings)

    def test_undecodable_csv(self, test_settings):
        """Test non UTF-8 content is reported as corrupt"""
        with pytest.raises(CorruptFileError):
            FileIngestor(test_settings).ingest(b"\xff\xfe\x00P\x00r", "orders.csv")

    def test_corrupt_excel(self, test_settings):
        """Test unreadable workbook is reported as corrupt"""
        with pytest.raises(CorruptFileError):
            FileIngestor(test_settings).ingest(b"not a workbook", "orders.xlsx")


class TestSniffDelimiter:
    """Tests for sniff_delimiter"""

    def test_semicolon(self):
        """Test semicolon detected"""
        assert sniff_delimiter("a;b;c\n1;2;3") == ";"

    def test_default_comma(self):
        """Test single-column text defaults to comma"""
        assert sniff_delimiter("total\n5") == ","
