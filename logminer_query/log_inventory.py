"""
Resolve the archived and online redo logs that cover a mining range.

The archive destination is pinned by name when one is given. Otherwise the
first local, valid destination Oracle returns is used (``ROWNUM=1`` without
an ORDER BY), so the pick is not deterministic when several qualify.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .models import LogFile, LogFileType
from .oracle_client import OracleClient, ResultStream

logger = logging.getLogger(__name__)


def get_logs_since_scn(
    ora_client: OracleClient,
    start_scn: int,
    destination_name: Optional[str] = None,
    archive_log_only: bool = False,
    archive_retention_hours: int = 0,
) -> List[LogFile]:
    """
    Archived logs first, then online logs, one entry per sequence, all with
    ``next_scn >= start_scn``.
    """
    if start_scn is None:
        raise ValueError("A start scn must be supplied to fetch logs.")
    stmt, params = mineable_logs_query(
        start_scn,
        archive_log_only=archive_log_only,
        destination_name=destination_name,
        archive_retention_hours=archive_retention_hours,
    )
    candidates = ora_client.query(stmt, _read_logs, params=params)
    logs = resolve_logs(candidates, start_scn)
    logger.debug(
        "Resolved %s of %s candidate logs since SCN %s", len(logs), len(candidates), start_scn
    )
    return logs


def resolve_logs(logs: Iterable[LogFile], start_scn: int) -> List[LogFile]:
    archive_logs: List[LogFile] = []
    online_logs: List[LogFile] = []
    for log in logs:
        # online rows carry no SCN predicate in SQL
        if log.next_scn < start_scn:
            continue
        if log.is_online:
            online_logs.append(log)
        else:
            archive_logs.append(log)

    online_sequences = {log.sequence for log in online_logs}
    archive_logs = [log for log in archive_logs if log.sequence not in online_sequences]
    return archive_logs + online_logs


def mineable_logs_query(
    start_scn: int,
    archive_log_only: bool = False,
    destination_name: Optional[str] = None,
    archive_retention_hours: int = 0,
) -> Tuple[str, Dict[str, Any]]:
    params: Dict[str, Any] = {"start_scn": start_scn}
    parts: List[str] = []
    if not archive_log_only:
        parts.append(
            """
    SELECT MIN(F.MEMBER) AS FILE_NAME,
           TO_CHAR(L.FIRST_CHANGE#) AS FIRST_CHANGE,
           TO_CHAR(L.NEXT_CHANGE#) AS NEXT_CHANGE,
           L.ARCHIVED,
           L.STATUS,
           'ONLINE' AS TYPE,
           L.SEQUENCE# AS SEQ,
           'NO' AS DICT_START,
           'NO' AS DICT_END,
           L.THREAD# AS THREAD,
           L.BYTES AS BYTES
      FROM V$LOGFILE F, V$LOG L
      LEFT JOIN V$ARCHIVED_LOG A
        ON A.FIRST_CHANGE# = L.FIRST_CHANGE#
       AND A.NEXT_CHANGE# = L.NEXT_CHANGE#
     WHERE A.FIRST_CHANGE# IS NULL
       AND F.GROUP# = L.GROUP#
     GROUP BY F.GROUP#, L.FIRST_CHANGE#, L.NEXT_CHANGE#, L.STATUS, L.ARCHIVED,
              L.SEQUENCE#, L.THREAD#, L.BYTES
    UNION"""
        )
    archive_filters = [
        "A.NAME IS NOT NULL",
        "A.ARCHIVED = 'YES'",
        "A.STATUS = 'A'",
        "A.NEXT_CHANGE# > :start_scn",
        "A.DEST_ID IN (%s)" % _archive_destination_query(destination_name, params),
    ]
    if archive_retention_hours and archive_retention_hours > 0:
        archive_filters.append("A.FIRST_TIME >= SYSDATE - (:retention_hours / 24)")
        params["retention_hours"] = archive_retention_hours
    parts.append(
        """
    SELECT A.NAME AS FILE_NAME,
           TO_CHAR(A.FIRST_CHANGE#) AS FIRST_CHANGE,
           TO_CHAR(A.NEXT_CHANGE#) AS NEXT_CHANGE,
           'YES' AS ARCHIVED,
           NULL AS STATUS,
           'ARCHIVED' AS TYPE,
           A.SEQUENCE# AS SEQ,
           A.DICTIONARY_BEGIN AS DICT_START,
           A.DICTIONARY_END AS DICT_END,
           A.THREAD# AS THREAD,
           A.BLOCKS * A.BLOCK_SIZE AS BYTES
      FROM V$ARCHIVED_LOG A
     WHERE %s
     ORDER BY 7"""
        % "\n       AND ".join(archive_filters)
    )
    return "".join(parts), params


def _archive_destination_query(destination_name: Optional[str], params: Dict[str, Any]) -> str:
    query = "SELECT DEST_ID FROM V$ARCHIVE_DEST_STATUS WHERE STATUS='VALID' AND TYPE='LOCAL'"
    if destination_name:
        params["dest_name"] = destination_name
        return query + " AND UPPER(DEST_NAME) = UPPER(:dest_name)"
    return query + " AND ROWNUM=1"


def _read_logs(stream: ResultStream) -> List[LogFile]:
    return [_row_to_log(row) for row in stream]


def _row_to_log(row: Sequence[Any]) -> LogFile:
    file_name, first_change, next_change = row[0], row[1], row[2]
    log_type = LogFileType.ARCHIVE if row[5] == "ARCHIVED" else LogFileType.ONLINE
    size = row[10] if len(row) > 10 else None
    return LogFile(
        file_name=file_name,
        first_scn=_to_scn(first_change),
        next_scn=_to_scn(next_change),
        sequence=int(row[6]),
        type=log_type,
        redo_thread=int(row[9]),
        bytes=int(size) if size is not None else None,
    )


def _to_scn(value: Any) -> int:
    if value is None:
        raise ValueError("Log is missing a change number")
    return int(str(value).strip())


def logs_since_query(since_scn: int) -> Tuple[str, Dict[str, Any]]:
    stmt = """
    SELECT NAME, DEST_ID, THREAD#, SEQUENCE#, TO_CHAR(FIRST_CHANGE#) AS FIRST_CHANGE#,
           TO_CHAR(NEXT_CHANGE#) AS NEXT_CHANGE#, ARCHIVED, DELETED, STATUS
      FROM V$ARCHIVED_LOG
     WHERE FIRST_CHANGE# >= :since_scn
    UNION ALL
    SELECT MIN(F.MEMBER), -1, L.THREAD#, L.SEQUENCE#, TO_CHAR(L.FIRST_CHANGE#),
           TO_CHAR(L.NEXT_CHANGE#), 'NO', 'NO', 'REDO'
      FROM V$LOG L, V$LOGFILE F
     WHERE L.GROUP# = F.GROUP#
     GROUP BY L.THREAD#, L.SEQUENCE#, L.FIRST_CHANGE#, L.NEXT_CHANGE#
    """
    return stmt, {"since_scn": since_scn}


def archive_destination_status_query() -> str:
    return """
    SELECT AD.DEST_ID, AD.DEST_NAME, AD.STATUS, ADS.TYPE, ADS.DESTINATION
      FROM V$ARCHIVE_DEST AD, V$ARCHIVE_DEST_STATUS ADS
     WHERE AD.DEST_ID = ADS.DEST_ID
    """
