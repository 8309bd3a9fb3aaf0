"""Tests for resolving the mineable redo log inventory."""
import oracledb

from logminer_query.log_inventory import (
    get_logs_since_scn,
    logs_since_query,
    mineable_logs_query,
    resolve_logs,
)
from logminer_query.models import LogFile, LogFileType

from .fakes import column

INVENTORY_COLUMNS = [
    column("FILE_NAME"),
    column("FIRST_CHANGE"),
    column("NEXT_CHANGE"),
    column("ARCHIVED"),
    column("STATUS"),
    column("TYPE"),
    column("SEQ", oracledb.DB_TYPE_NUMBER),
    column("DICT_START"),
    column("DICT_END"),
    column("THREAD", oracledb.DB_TYPE_NUMBER),
    column("BYTES", oracledb.DB_TYPE_NUMBER),
]


def archive(seq, first, nxt, thread=1):
    return LogFile("/arch/1_%s.arc" % seq, first, nxt, seq, LogFileType.ARCHIVE, thread)


def online(seq, first, nxt, thread=1):
    return LogFile("/redo/redo0%s.log" % seq, first, nxt, seq, LogFileType.ONLINE, thread)


def archive_row(seq, first, nxt, thread=1):
    return ("/arch/1_%s.arc" % seq, str(first), str(nxt), "YES", None, "ARCHIVED",
            seq, "NO", "NO", thread, 1048576)


def online_row(seq, first, nxt, thread=1):
    return ("/redo/redo0%s.log" % seq, str(first), str(nxt), "NO", "CURRENT", "ONLINE",
            seq, "NO", "NO", thread, 52428800)


def test_online_log_replaces_archived_log_with_same_sequence():
    resolved = resolve_logs([archive(7, 10, 20), online(7, 10, 25)], start_scn=0)

    assert resolved == [online(7, 10, 25)]


def test_archived_logs_come_before_online_logs():
    logs = [online(3, 300, 400), archive(1, 100, 200), online(4, 400, 500), archive(2, 200, 300)]

    resolved = resolve_logs(logs, start_scn=0)

    assert [log.sequence for log in resolved] == [1, 2, 3, 4]
    assert [log.type for log in resolved] == [
        LogFileType.ARCHIVE,
        LogFileType.ARCHIVE,
        LogFileType.ONLINE,
        LogFileType.ONLINE,
    ]


def test_logs_ending_before_start_scn_are_dropped():
    logs = [archive(1, 50, 99), archive(2, 99, 150), online(3, 150, 160)]

    resolved = resolve_logs(logs, start_scn=150)

    assert [log.sequence for log in resolved] == [2, 3]
    assert all(log.next_scn >= 150 for log in resolved)


def test_stale_online_log_does_not_remove_archived_copy():
    # an online log filtered out by SCN never takes part in deduplication
    resolved = resolve_logs([archive(5, 100, 200), online(5, 10, 90)], start_scn=150)

    assert resolved == [archive(5, 100, 200)]


def test_mixed_inventory_scenario():
    logs = [archive(10, 100, 200), archive(11, 200, 300), online(11, 200, 310)]

    resolved = resolve_logs(logs, start_scn=150)

    assert resolved == [archive(10, 100, 200), online(11, 200, 310)]


def test_get_logs_since_scn_reads_rows(ora_client, fake_conn):
    big_scn = 2 ** 70
    fake_conn.on(
        "V$ARCHIVED_LOG A",
        (
            INVENTORY_COLUMNS,
            [
                archive_row(10, 100, 200),
                archive_row(11, 200, 300),
                online_row(11, 200, big_scn),
            ],
        ),
    )

    logs = get_logs_since_scn(ora_client, 150)

    assert [(log.sequence, log.type) for log in logs] == [
        (10, LogFileType.ARCHIVE),
        (11, LogFileType.ONLINE),
    ]
    assert logs[1].next_scn == big_scn
    assert logs[1].file_name == "/redo/redo011.log"
    assert logs[0].bytes == 1048576
    assert fake_conn.params_for("V$ARCHIVED_LOG A") == [{"start_scn": 150}]


def test_get_logs_since_scn_may_be_empty(ora_client, fake_conn):
    fake_conn.on("V$ARCHIVED_LOG A", (INVENTORY_COLUMNS, []))

    assert get_logs_since_scn(ora_client, 150) == []


def test_query_picks_any_local_destination_without_name():
    stmt, params = mineable_logs_query(150)

    assert "ROWNUM=1" in stmt
    assert "DEST_NAME" not in stmt
    assert "A.NEXT_CHANGE# > :start_scn" in stmt
    assert "MIN(F.MEMBER)" in stmt
    assert "A.FIRST_CHANGE# IS NULL" in stmt
    assert params == {"start_scn": 150}


def test_query_pins_named_destination():
    stmt, params = mineable_logs_query(150, destination_name="log_archive_dest_2")

    assert "UPPER(DEST_NAME) = UPPER(:dest_name)" in stmt
    assert "ROWNUM=1" not in stmt
    assert params == {"start_scn": 150, "dest_name": "log_archive_dest_2"}


def test_archive_log_only_query_skips_online_logs():
    stmt, _ = mineable_logs_query(150, archive_log_only=True)

    assert "V$LOGFILE" not in stmt
    assert "UNION" not in stmt
    assert stmt.strip().startswith("SELECT A.NAME")


def test_archive_retention_limits_archived_logs():
    stmt, params = mineable_logs_query(150, archive_retention_hours=6)

    assert "A.FIRST_TIME >= SYSDATE - (:retention_hours / 24)" in stmt
    assert params["retention_hours"] == 6


def test_logs_since_query_binds_scn():
    stmt, params = logs_since_query(1234)

    assert "FIRST_CHANGE# >= :since_scn" in stmt
    assert "UNION ALL" in stmt
    assert params == {"since_scn": 1234}
