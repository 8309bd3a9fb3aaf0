"""
LogMiner session handling: register logs, start, query V$LOGMNR_CONTENTS, end.

Once ``start_logmnr`` has succeeded, ``end_logmnr`` is always attempted,
whether the content query succeeds or fails.
"""

import enum
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from .exceptions import InputRangeError
from .log_inventory import get_logs_since_scn
from .models import LogFile, MiningRequest
from .oracle_client import OracleClient, ResultStream
from .reporting import CsvFileExport, format_logs

logger = logging.getLogger(__name__)

T = TypeVar("T")

ADD_LOGFILE = """
BEGIN
    sys.dbms_logmnr.add_logfile(LOGFILENAME => :file_name, OPTIONS => DBMS_LOGMNR.ADDFILE);
END;
"""

END_LOGMNR = """
BEGIN
    sys.dbms_logmnr.end_logmnr();
END;
"""

MINING_OPTIONS = "DBMS_LOGMNR.DICT_FROM_ONLINE_CATALOG + DBMS_LOGMNR.NO_ROWID_IN_STMT"

TRANSACTION_COLUMNS = "UPPER(RAWTOHEX(XID)) AS TRANSACTION_ID, COUNT(1) AS COUNT"
TRANSACTION_GROUP_BY = "UPPER(RAWTOHEX(XID))"


class SessionState(enum.Enum):
    IDLE = "IDLE"
    LOGS_REGISTERED = "LOGS_REGISTERED"
    SESSION_ACTIVE = "SESSION_ACTIVE"
    QUERYING = "QUERYING"
    SESSION_ENDED = "SESSION_ENDED"


class LogMinerSession:
    """
    Runs a single mining pass for a MiningRequest.

    Registration failures abort before the session is started, so nothing
    needs ending. A failure of the end call after a failed query is logged
    and the query error is raised.
    """

    def __init__(self, ora_client: OracleClient, request: MiningRequest) -> None:
        if not request.logs:
            raise ValueError("At least one log must be supplied to start a LogMiner session")
        self.ora_client = ora_client
        self.request = request
        self.state = SessionState.IDLE

    def execute(self, consumer: Callable[[ResultStream], T]) -> T:
        if self.state is not SessionState.IDLE:
            raise RuntimeError("LogMiner session already used (state %s)" % self.state.value)

        for log in self.request.logs:
            self._add_logfile(log)
        self.state = SessionState.LOGS_REGISTERED

        self._start_session()
        self.state = SessionState.SESSION_ACTIVE

        try:
            self.state = SessionState.QUERYING
            result = self._query_contents(consumer)
        except BaseException:
            self._end_session(suppress_errors=True)
            raise
        self._end_session()
        return result

    def _add_logfile(self, log: LogFile) -> None:
        if not log.file_name:
            raise ValueError("A log filename must be supplied to be added to LogMiner session")
        logger.debug("Registering %s log %s", log.type.value.lower(), log.file_name)
        self.ora_client.execute(ADD_LOGFILE, params={"file_name": log.file_name})

    def _start_session(self) -> None:
        stmt, params = start_session_statement(self.request.start_scn, self.request.end_scn)
        self.ora_client.execute(stmt, params=params)

    def _end_session(self, suppress_errors: bool = False) -> None:
        try:
            self.ora_client.execute(END_LOGMNR)
        except Exception:  # pylint: disable=broad-except
            if not suppress_errors:
                raise
            logger.warning("Failed to end LogMiner session", exc_info=True)
        finally:
            self.state = SessionState.SESSION_ENDED

    def _query_contents(self, consumer: Callable[[ResultStream], T]) -> T:
        stmt, params = contents_query(self.request)
        return self.ora_client.query(stmt, consumer, params=params)


def start_session_statement(
    start_scn: Optional[int], end_scn: Optional[int]
) -> Tuple[str, Dict[str, Any]]:
    args: List[str] = []
    params: Dict[str, Any] = {}
    if start_scn is not None:
        args.append("STARTSCN => :start_scn")
        params["start_scn"] = start_scn
    if end_scn is not None:
        args.append("ENDSCN => :end_scn")
        params["end_scn"] = end_scn
    args.append("OPTIONS => %s" % MINING_OPTIONS)
    stmt = """
BEGIN
    sys.dbms_logmnr.start_logmnr(%s);
END;
""" % ", ".join(args)
    return stmt, params


def contents_query(request: MiningRequest) -> Tuple[str, Dict[str, Any]]:
    stmt = "SELECT %s FROM V$LOGMNR_CONTENTS WHERE 1=1" % request.columns
    params: Dict[str, Any] = {}
    if request.start_scn is not None:
        stmt += " AND SCN > :start_scn"
        params["start_scn"] = request.start_scn
    if request.end_scn is not None:
        stmt += " AND SCN <= :end_scn"
        params["end_scn"] = request.end_scn
    if request.transaction_id:
        stmt += " AND UPPER(RAWTOHEX(XID)) = UPPER(:transaction_id)"
        params["transaction_id"] = request.transaction_id
    if request.exclude_internal_ops:
        stmt += " AND OPERATION_CODE != 0"
    if request.group_by:
        stmt += " GROUP BY %s" % request.group_by
    return stmt, params


def resolve_mining_logs(
    ora_client: OracleClient,
    start_scn: int,
    end_scn: int,
    destination_name: Optional[str] = None,
    archive_log_only: bool = False,
    archive_retention_hours: int = 0,
    show_logs: bool = False,
) -> List[LogFile]:
    logs = get_logs_since_scn(
        ora_client,
        start_scn,
        destination_name=destination_name,
        archive_log_only=archive_log_only,
        archive_retention_hours=archive_retention_hours,
    )
    if not logs:
        raise InputRangeError("No logs found for the range [%s, %s]" % (start_scn, end_scn))
    if show_logs:
        print("Mineable Logs")
        print(format_logs(logs))
        print()
    return logs


def list_changes(
    ora_client: OracleClient,
    start_scn: int,
    end_scn: int,
    output_file: str,
    transaction_id: Optional[str] = None,
    exclude_internal_ops: bool = False,
    destination_name: Optional[str] = None,
    archive_log_only: bool = False,
    archive_retention_hours: int = 0,
    show_logs: bool = False,
) -> int:
    """
    Mine every change in ``(start_scn, end_scn]`` into ``output_file`` as CSV.
    Returns the number of rows written.
    """
    logs = resolve_mining_logs(
        ora_client,
        start_scn,
        end_scn,
        destination_name=destination_name,
        archive_log_only=archive_log_only,
        archive_retention_hours=archive_retention_hours,
        show_logs=show_logs,
    )
    request = MiningRequest(
        logs=tuple(logs),
        start_scn=start_scn,
        end_scn=end_scn,
        transaction_id=transaction_id,
        exclude_internal_ops=exclude_internal_ops,
    )
    return LogMinerSession(ora_client, request).execute(CsvFileExport(output_file))


def aggregate_transactions(
    ora_client: OracleClient,
    start_scn: int,
    end_scn: int,
    output_file: str,
    destination_name: Optional[str] = None,
    archive_log_only: bool = False,
    archive_retention_hours: int = 0,
    show_logs: bool = False,
) -> int:
    """
    Write one CSV row per transaction in the range with its change count.
    """
    logs = resolve_mining_logs(
        ora_client,
        start_scn,
        end_scn,
        destination_name=destination_name,
        archive_log_only=archive_log_only,
        archive_retention_hours=archive_retention_hours,
        show_logs=show_logs,
    )
    request = MiningRequest(
        logs=tuple(logs),
        start_scn=start_scn,
        end_scn=end_scn,
        columns=TRANSACTION_COLUMNS,
        group_by=TRANSACTION_GROUP_BY,
    )
    return LogMinerSession(ora_client, request).execute(CsvFileExport(output_file))
