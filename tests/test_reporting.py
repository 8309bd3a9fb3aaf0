"""Tests for CSV typing rules and ASCII table rendering."""
import datetime
import io

import oracledb

from logminer_query.models import ColumnInfo, LogFile, LogFileType
from logminer_query.reporting import (
    CsvResultWriter,
    data_row,
    format_instant,
    format_logs,
    format_table,
    header_row,
    render_value,
)


class _Stream:
    def __init__(self, columns, rows):
        self.columns = columns
        self._rows = rows

    def __iter__(self):
        return iter(self._rows)


def test_text_is_quoted_with_doubled_quotes():
    assert render_value(oracledb.DB_TYPE_VARCHAR, 'He said "hi"') == '"He said ""hi"""'


def test_null_text_is_empty_quoted_field():
    assert render_value(oracledb.DB_TYPE_VARCHAR, None) == '""'
    assert render_value(oracledb.DB_TYPE_NVARCHAR, None) == '""'


def test_raw_is_upper_case_hex():
    assert render_value(oracledb.DB_TYPE_RAW, b"\xde\xad") == '"DEAD"'
    assert render_value(oracledb.DB_TYPE_RAW, None) == ""


def test_numbers_render_as_plain_integers():
    assert render_value(oracledb.DB_TYPE_NUMBER, 42) == "42"
    assert render_value(oracledb.DB_TYPE_NUMBER, 42.0) == "42"
    assert render_value(oracledb.DB_TYPE_NUMBER, 2 ** 70) == str(2 ** 70)
    assert render_value(oracledb.DB_TYPE_NUMBER, None) == "0"


def test_dates_render_as_quoted_instants():
    value = datetime.datetime(2021, 3, 4, 5, 6, 7)

    assert render_value(oracledb.DB_TYPE_DATE, value) == '"2021-03-04T05:06:07Z"'
    assert render_value(oracledb.DB_TYPE_TIMESTAMP, None) == ""


def test_instant_fraction_and_zone():
    assert format_instant(datetime.datetime(2021, 3, 4, 5, 6, 7, 120000)) == "2021-03-04T05:06:07.120Z"
    assert format_instant(datetime.datetime(2021, 3, 4, 5, 6, 7, 123456)) == "2021-03-04T05:06:07.123456Z"
    offset = datetime.timezone(datetime.timedelta(hours=2))
    aware = datetime.datetime(2021, 3, 4, 7, 6, 7, tzinfo=offset)
    assert format_instant(aware) == "2021-03-04T05:06:07Z"


def test_unknown_types_render_empty():
    assert render_value(oracledb.DB_TYPE_CLOB, "text") == ""
    assert render_value(oracledb.DB_TYPE_CHAR, "Y") == ""
    assert render_value(None, "anything") == ""


def test_header_quotes_every_column():
    columns = [ColumnInfo("SCN", oracledb.DB_TYPE_NUMBER), ColumnInfo("SQL_REDO", oracledb.DB_TYPE_VARCHAR)]

    assert header_row(columns) == '"SCN","SQL_REDO"'


def test_header_doubles_embedded_quotes():
    columns = [ColumnInfo('COUNT("X")', oracledb.DB_TYPE_NUMBER)]

    assert header_row(columns) == '"COUNT(""X"")"'


def test_data_row_mixes_types():
    columns = [
        ColumnInfo("SCN", oracledb.DB_TYPE_NUMBER),
        ColumnInfo("SQL_REDO", oracledb.DB_TYPE_VARCHAR),
        ColumnInfo("XID", oracledb.DB_TYPE_RAW),
        ColumnInfo("REDO_VALUE", oracledb.DB_TYPE_BLOB),
    ]

    assert data_row(columns, (10, "insert", b"\x0a", object())) == '10,"insert","0A",'


def test_writer_emits_header_for_empty_result():
    fp = io.StringIO()
    stream = _Stream([ColumnInfo("SCN", oracledb.DB_TYPE_NUMBER)], [])

    assert CsvResultWriter(fp)(stream) == 0
    assert fp.getvalue() == '"SCN"\n'


def test_writer_terminates_each_row_with_newline():
    fp = io.StringIO()
    stream = _Stream([ColumnInfo("OPERATION", oracledb.DB_TYPE_VARCHAR)], [("INSERT",), ("DELETE",)])

    assert CsvResultWriter(fp)(stream) == 2
    assert fp.getvalue() == '"OPERATION"\n"INSERT"\n"DELETE"\n'


def test_format_table_renders_ascii_box():
    text = format_table(["THREAD#", "STATUS"], [(1, "OPEN"), (2, None)])

    lines = text.splitlines()
    assert lines[0].startswith("+")
    assert "THREAD#" in text and "STATUS" in text
    assert "OPEN" in text
    assert all(ord(ch) < 128 for ch in text)


def test_format_table_keeps_markup_literal():
    text = format_table(["NAME"], [("[bold]x[/bold]",)])

    assert "[bold]x[/bold]" in text


def test_format_logs_lists_file_and_scns():
    log = LogFile("/u01/arch/1_42_1100.dbf", 2 ** 65, 2 ** 65 + 10, 42, LogFileType.ARCHIVE, 1)

    text = format_logs([log])

    assert "FILE_NAME" in text
    assert "/u01/arch/1_42_1100.dbf" in text
    assert str(2 ** 65 + 10) in text
