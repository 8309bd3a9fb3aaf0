import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, TypeVar

import oracledb

from .config import OracleConfig
from .exceptions import IllegalResultError, OracleConnectionError, QueryError
from .models import ColumnInfo, columns_from_description

logger = logging.getLogger(__name__)

T = TypeVar("T")

_thick_mode_initialized = False


class ResultStream:
    """
    Column metadata plus a lazy, single-pass iteration over a cursor's rows.

    A second pass needs the query to be executed again.
    """

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        self.columns: List[ColumnInfo] = columns_from_description(cursor.description)
        self._consumed = False

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def __iter__(self) -> Iterator[Sequence[Any]]:
        if self._consumed:
            raise RuntimeError("Result rows can only be iterated once")
        self._consumed = True
        return iter(self._cursor)


class OracleClient:
    """
    Thin wrapper around python-oracledb holding one connection.

    Every statement runs on its own cursor that is closed before the call
    returns, whichever way it returns.
    """

    def __init__(self, config: OracleConfig) -> None:
        self.config = config
        self._conn = None

    def __enter__(self) -> "OracleClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return
        # the body's error wins over a failed close
        try:
            self.close()
        except OracleConnectionError:
            logger.warning("Failed to close connection after an earlier error", exc_info=True)

    def connect(self):
        if self._conn:
            return self._conn
        missing = self.config.missing_settings()
        if missing:
            raise OracleConnectionError(
                "Missing connection settings: %s" % ", ".join(missing)
            )
        self._init_driver()
        logger.debug("Connecting to %s as %s", self.config.dsn, self.config.user)
        try:
            self._conn = oracledb.connect(
                user=self.config.user,
                password=self.config.password,
                dsn=self.config.dsn,
            )
        except oracledb.Error as exc:
            raise OracleConnectionError(
                "Failed to establish connection to Oracle at %s: %s" % (self.config.dsn, exc)
            ) from exc
        return self._conn

    def close(self) -> None:
        conn = self._conn
        self._conn = None
        if conn is None:
            return
        try:
            conn.close()
        except oracledb.InterfaceError:
            # DPY-1001: not connected, nothing left to release
            logger.debug("Connection was already closed")
        except oracledb.Error as exc:
            raise OracleConnectionError("Failed to close connection: %s" % exc) from exc

    def execute(self, sql: str, params: Optional[Dict[str, Any]] = None) -> None:
        conn = self.connect()
        cursor = conn.cursor()
        logger.debug("Executing: %s %s", sql, params or "")
        try:
            cursor.execute(sql, params or {})
        except oracledb.Error as exc:
            raise QueryError("Statement failed: %s" % exc, statement=sql) from exc
        finally:
            cursor.close()

    def query(
        self,
        sql: str,
        consumer: Callable[[ResultStream], T],
        params: Optional[Dict[str, Any]] = None,
    ) -> T:
        """
        Run a query and hand its rows to ``consumer``.

        Driver errors raised while executing or while the consumer iterates
        the rows are reported as QueryError; anything the consumer raises
        itself is propagated as is.
        """
        conn = self.connect()
        cursor = conn.cursor()
        logger.debug("Querying: %s %s", sql, params or "")
        try:
            cursor.execute(sql, params or {})
            return consumer(ResultStream(cursor))
        except oracledb.Error as exc:
            raise QueryError("Query failed: %s" % exc, statement=sql) from exc
        finally:
            cursor.close()

    def query_scalar(
        self,
        sql: str,
        extractor: Optional[Callable[[Sequence[Any]], T]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> T:
        extract = extractor or (lambda row: row[0])

        def _single(stream: ResultStream) -> T:
            rows = iter(stream)
            first = next(rows, None)
            if first is None:
                raise IllegalResultError("Expected only a single row, got none")
            if next(rows, None) is not None:
                raise IllegalResultError("Expected only a single row, got more")
            return extract(first)

        return self.query(sql, _single, params=params)

    def fetch_all(
        self, sql: str, params: Optional[Dict[str, Any]] = None
    ) -> Tuple[List[str], List[Sequence[Any]]]:
        return self.query(sql, lambda stream: (stream.column_names, list(stream)), params)

    def get_banner(self) -> str:
        try:
            return self.query_scalar(_banner_query("BANNER_FULL"))
        except QueryError as exc:
            logger.debug("BANNER_FULL unavailable, falling back to BANNER: %s", exc)
            return self.query_scalar(_banner_query("BANNER"))

    def _init_driver(self) -> None:
        global _thick_mode_initialized
        use_thick = self.config.thick_mode or bool(self.config.instant_client_dir)
        if not use_thick or _thick_mode_initialized:
            return
        try:
            oracledb.init_oracle_client(lib_dir=self.config.instant_client_dir)
        except oracledb.Error as exc:
            raise OracleConnectionError(
                "Failed to initialize Oracle thick mode, check instant_client_dir: %s" % exc
            ) from exc
        _thick_mode_initialized = True


def _banner_query(field_name: str) -> str:
    return "SELECT %s FROM V$VERSION WHERE %s LIKE 'Oracle Database%%'" % (
        field_name,
        field_name,
    )
