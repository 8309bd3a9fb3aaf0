import enum
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple


class LogFileType(enum.Enum):
    ARCHIVE = "ARCHIVE"
    ONLINE = "ONLINE"


@dataclass(frozen=True)
class LogFile:
    """
    One archived or online redo log segment.

    SCNs are plain ints so values beyond 64 bits are kept exactly.
    """

    file_name: str
    first_scn: int
    next_scn: int
    sequence: int
    type: LogFileType
    redo_thread: int
    bytes: Optional[int] = None

    @property
    def is_online(self) -> bool:
        return self.type is LogFileType.ONLINE


@dataclass(frozen=True)
class MiningRequest:
    logs: Tuple[LogFile, ...]
    start_scn: Optional[int] = None
    end_scn: Optional[int] = None
    transaction_id: Optional[str] = None
    exclude_internal_ops: bool = False
    columns: str = "*"
    group_by: Optional[str] = None


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    type_code: Any


def columns_from_description(description: Optional[List[Any]]) -> List[ColumnInfo]:
    if not description:
        return []
    return [ColumnInfo(name=item[0], type_code=item[1]) for item in description]
