import datetime
import io
from typing import Any, Iterable, Sequence, TextIO

import oracledb
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .exceptions import ToolError
from .models import ColumnInfo, LogFile
from .oracle_client import ResultStream

TEXT_TYPES = (oracledb.DB_TYPE_VARCHAR, oracledb.DB_TYPE_NVARCHAR)
NUMBER_TYPES = (oracledb.DB_TYPE_NUMBER, oracledb.DB_TYPE_BINARY_INTEGER)
TIMESTAMP_TYPES = (
    oracledb.DB_TYPE_DATE,
    oracledb.DB_TYPE_TIMESTAMP,
    oracledb.DB_TYPE_TIMESTAMP_TZ,
    oracledb.DB_TYPE_TIMESTAMP_LTZ,
)
BINARY_TYPES = (oracledb.DB_TYPE_RAW,)

SEPARATOR_SHORT = "-" * 20
SEPARATOR_LONG = "-" * 80


def format_table(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    table = Table(box=box.ASCII, show_lines=False)
    for header in headers:
        table.add_column(Text(str(header)), overflow="fold")
    for row in rows:
        table.add_row(*[Text(_cell(value)) for value in row])
    return _render(table)


def format_result(stream: ResultStream) -> str:
    return format_table(stream.column_names, stream)


def format_logs(logs: Sequence[LogFile]) -> str:
    return format_table(
        ["FILE_NAME", "FIRST_SCN", "NEXT_SCN"],
        [(log.file_name, str(log.first_scn), str(log.next_scn)) for log in logs],
    )


def format_field(name: str, value: Any) -> str:
    return "%-14s: %s" % (name, value)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.hex().upper()
    return str(value)


def _render(table: Table) -> str:
    # wide enough that log paths are never folded
    console = Console(
        file=io.StringIO(), width=100000, color_system=None, highlight=False
    )
    console.print(table)
    return console.file.getvalue().rstrip("\n")


class CsvResultWriter:
    """
    Writes LogMiner rows as CSV, typing each column from cursor metadata.

    Text is always quoted with inner quotes doubled, numbers are plain
    integers, dates and timestamps are quoted UTC instants, RAW values are
    quoted upper-case hex. Columns of any other type are left empty.
    """

    def __init__(self, fp: TextIO) -> None:
        self.fp = fp
        self.rows_written = 0

    def __call__(self, stream: ResultStream) -> int:
        columns = stream.columns
        self.fp.write(header_row(columns) + "\n")
        for row in stream:
            self.fp.write(data_row(columns, row) + "\n")
            self.rows_written += 1
        return self.rows_written


def header_row(columns: Sequence[ColumnInfo]) -> str:
    return ",".join(_quote(_escape(column.name)) for column in columns)


def data_row(columns: Sequence[ColumnInfo], row: Sequence[Any]) -> str:
    return ",".join(
        render_value(column.type_code, value) for column, value in zip(columns, row)
    )


def render_value(type_code: Any, value: Any) -> str:
    if type_code in TEXT_TYPES:
        return _quote("" if value is None else _escape(str(value)))
    if type_code in NUMBER_TYPES:
        return str(int(value)) if value is not None else "0"
    if type_code in TIMESTAMP_TYPES:
        return _quote(format_instant(value)) if value is not None else ""
    if type_code in BINARY_TYPES:
        return _quote(bytes(value).hex().upper()) if value is not None else ""
    return ""


def format_instant(value: datetime.datetime) -> str:
    """
    ISO-8601 instant in UTC; naive values are taken as UTC already.
    Fractional seconds appear only when non-zero, in milli or micro precision.
    """
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    micros = value.microsecond
    if micros:
        if micros % 1000 == 0:
            text += ".%03d" % (micros // 1000)
        else:
            text += ".%06d" % micros
    return text + "Z"


def _quote(value: str) -> str:
    return '"%s"' % value


def _escape(value: str) -> str:
    return value.replace('"', '""')


class CsvFileExport:
    """Consumer writing the result to ``path``, created once the query has executed."""

    def __init__(self, path: str) -> None:
        self.path = path

    def __call__(self, stream: ResultStream) -> int:
        try:
            fp = open(self.path, "w", encoding="utf-8", newline="")
        except OSError as exc:
            raise ToolError("Failed to write output file %s: %s" % (self.path, exc)) from exc
        with fp:
            return CsvResultWriter(fp)(stream)
