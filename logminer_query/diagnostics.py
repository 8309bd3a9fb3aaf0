"""
Raw dumps of system views for troubleshooting a LogMiner setup.

None of these go through a LogMiner session; they only read V$ views.
"""

from typing import Optional

from .log_inventory import archive_destination_status_query, logs_since_query
from .oracle_client import OracleClient
from .reporting import SEPARATOR_LONG, SEPARATOR_SHORT, format_field, format_result

PARAMETERS_QUERY = "SELECT NAME, VALUE FROM V$PARAMETER WHERE NAME IN ('compatible')"


def export_query(ora: OracleClient, title: str, sql: str) -> str:
    return "%s\n%s" % (title, ora.query(sql, format_result))


def export_table(ora: OracleClient, table_name: str) -> str:
    return export_query(ora, table_name, "SELECT * FROM %s" % table_name)


def show_info(ora: OracleClient) -> None:
    print(export_query(ora, "LogMiner-specific System Parameters", PARAMETERS_QUERY))
    print(export_table(ora, "V$DATABASE"))
    print(export_table(ora, "V$LOG"))


def show_threads(ora: OracleClient) -> None:
    print(export_table(ora, "V$THREAD"))


def show_logs(ora: OracleClient, since_scn: Optional[int] = None) -> None:
    print("Log Destinations")
    print(SEPARATOR_SHORT)
    ora.query(archive_destination_status_query(), _print_destinations)
    print()

    if since_scn is None:
        return

    print("Logs Since %s" % since_scn)
    print(SEPARATOR_SHORT)
    stmt, params = logs_since_query(since_scn)
    ora.query(stmt, _print_logs, params=params)
    print()


def _print_destinations(stream) -> None:
    for dest_id, dest_name, status, dest_type, destination in stream:
        print(format_field("ID", dest_id))
        print(format_field("Name", dest_name))
        print(format_field("Status", status))
        print(format_field("Type", dest_type))
        print(format_field("Location", destination))
        print(SEPARATOR_LONG)


def _print_logs(stream) -> None:
    for row in stream:
        name, dest_id, thread, sequence, first_change, next_change, archived, deleted, status = row
        print(format_field("FileName", name))
        print(format_field("Dest ID", "N/A" if dest_id == -1 else dest_id))
        print(format_field("Thread ID", thread))
        print(format_field("Sequence ID", sequence))
        print(format_field("First Change", first_change))
        print(format_field("Next Change", next_change))
        print(format_field("Archived", archived))
        print(format_field("Deleted", deleted))
        print(format_field("Status", status))
        print(SEPARATOR_LONG)
