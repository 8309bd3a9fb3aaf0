import configparser
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_PORT = "1521"


@dataclass
class OracleConfig:
    host: Optional[str] = None
    port: str = DEFAULT_PORT
    service: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    thick_mode: bool = False
    instant_client_dir: Optional[str] = None

    @property
    def dsn(self) -> str:
        return "%s:%s/%s" % (self.host, self.port, self.service)

    def missing_settings(self) -> List[str]:
        names = ["host", "port", "service", "user", "password"]
        return [name for name in names if not getattr(self, name)]


@dataclass
class LogMinerConfig:
    destination_name: Optional[str] = None
    archive_log_only: bool = False
    archive_retention_hours: int = 0


@dataclass
class ToolConfig:
    oracle: OracleConfig = field(default_factory=OracleConfig)
    logminer: LogMinerConfig = field(default_factory=LogMinerConfig)


def load_config(path: Optional[str]) -> ToolConfig:
    """
    Read the optional INI file. No path means defaults only; a path that
    cannot be read is an error.
    """
    if not path:
        return ToolConfig()
    parser = configparser.ConfigParser()
    read = parser.read(path)
    if not read:
        raise FileNotFoundError("Config file not found: %s" % path)

    oracle_raw = _section_to_dict(parser, "oracle")
    logminer_raw = _section_to_dict(parser, "logminer")

    oracle = OracleConfig(
        host=oracle_raw.get("host"),
        port=oracle_raw.get("port", DEFAULT_PORT),
        service=oracle_raw.get("service"),
        user=oracle_raw.get("user"),
        password=oracle_raw.get("password"),
        thick_mode=_to_bool(oracle_raw.get("thick_mode", "false")),
        instant_client_dir=oracle_raw.get("instant_client_dir"),
    )
    logminer = LogMinerConfig(
        destination_name=logminer_raw.get("destination_name") or None,
        archive_log_only=_to_bool(logminer_raw.get("archive_log_only", "false")),
        archive_retention_hours=_to_int(
            logminer_raw.get("archive_retention_hours", "0"), "archive_retention_hours"
        ),
    )
    return ToolConfig(oracle=oracle, logminer=logminer)


def _section_to_dict(parser: configparser.ConfigParser, section: str) -> Dict[str, str]:
    if not parser.has_section(section):
        return {}
    return {k: v for k, v in parser.items(section)}


def env_override(config: ToolConfig) -> ToolConfig:
    """
    Allow env overrides for credentials to avoid committing secrets.
    """
    oracle_pwd = os.environ.get("ORACLE_PASSWORD")
    ora_ic = os.environ.get("ORACLE_INSTANT_CLIENT")
    ora_thick = os.environ.get("ORACLE_THICK_MODE")
    if oracle_pwd:
        config.oracle.password = oracle_pwd
    if ora_ic:
        config.oracle.instant_client_dir = ora_ic
    if ora_thick:
        config.oracle.thick_mode = _to_bool(ora_thick)
    return config


def args_override(config: ToolConfig, args: Any) -> ToolConfig:
    """
    Apply connection flags given on the command line; they win over the
    file and the environment.
    """
    overrides = {
        "host": getattr(args, "hostname", None),
        "port": getattr(args, "port", None),
        "service": getattr(args, "service", None),
        "user": getattr(args, "username", None),
        "password": getattr(args, "password", None),
    }
    for name, value in overrides.items():
        if value:
            setattr(config.oracle, name, value)
    destination = getattr(args, "destination_name", None)
    if destination:
        config.logminer.destination_name = destination
    return config


def _to_bool(value: str) -> bool:
    return str(value).lower() in ("1", "true", "yes", "on")


def _to_int(value: str, key: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError("Invalid integer for %s: %s" % (key, value)) from exc
