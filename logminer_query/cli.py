import argparse
import logging
import sys
from typing import Optional

from . import __version__, diagnostics, logminer
from .config import args_override, env_override, load_config
from .exceptions import ToolError
from .oracle_client import OracleClient


def main(argv: Optional[list] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    try:
        cfg = load_config(args.config)
    except (OSError, ValueError) as exc:
        print("ERROR: %s" % exc, file=sys.stderr)
        return 1
    cfg = args_override(env_override(cfg), args)
    missing = cfg.oracle.missing_settings()
    if missing:
        parser.error(
            "missing connection settings: %s (use --hostname/--port/--service/"
            "--username/--password or the [oracle] config section)" % ", ".join(missing)
        )

    try:
        with OracleClient(cfg.oracle) as ora:
            return args.handler(ora, cfg, args)
    except ToolError as exc:
        print("ERROR: %s" % exc, file=sys.stderr)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logminer-query",
        description="A command-line query tool for Oracle LogMiner",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional INI file with [oracle] connection and [logminer] settings.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log executed statements.")
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)
    sub = parser.add_subparsers(dest="command")

    connection = argparse.ArgumentParser(add_help=False)
    group = connection.add_argument_group("connection")
    group.add_argument("--hostname", help="Database hostname")
    group.add_argument("--username", help="Authentication username")
    group.add_argument("--password", help="Authentication password")
    group.add_argument("--service", help="Database service name")
    group.add_argument("--port", help="Database port (default 1521)")

    info = sub.add_parser(
        "info",
        parents=[connection],
        help="Display database information.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog="""Example:
  python3 run.py info --hostname db --service ORCLPDB1 --username c##dbzuser --password dbz""",
    )
    info.set_defaults(handler=_run_info)

    threads = sub.add_parser(
        "threads",
        parents=[connection],
        help="Display information about Oracle's redo threads.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    threads.set_defaults(handler=_run_threads)

    logs = sub.add_parser(
        "logs",
        parents=[connection],
        help="Display archive destinations and transaction logs.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog="""Example:
  python3 run.py logs --since 1234567 --hostname db --service ORCLPDB1 --username u --password p""",
    )
    logs.add_argument("--since", type=_scn, help="List logs since the specified SCN.")
    logs.set_defaults(handler=_run_logs)

    changes = sub.add_parser(
        "list-changes",
        parents=[connection],
        help="List all change events between two SCNs as CSV.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog="""Examples:
  python3 run.py list-changes --start-scn 1000 --end-scn 2000 --output changes.csv ...
  python3 run.py list-changes --start-scn 1000 --end-scn 2000 --transaction 0A001B00C4030000 \\
      --exclude-internal --show-logs --output tx.csv ...""",
    )
    _add_mining_arguments(changes)
    changes.add_argument(
        "--transaction",
        dest="transaction_id",
        help="Transaction id in hex that should only be mined between the SCN range.",
    )
    changes.add_argument(
        "--exclude-internal",
        action="store_true",
        help="Skip INTERNAL operations (OPERATION_CODE = 0).",
    )
    changes.set_defaults(handler=_run_list_changes)

    transactions = sub.add_parser(
        "transactions",
        parents=[connection],
        help="Aggregate the number of changes per transaction as CSV.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog="""Example:
  python3 run.py transactions --start-scn 1000 --end-scn 2000 --output tx.csv ...""",
    )
    _add_mining_arguments(transactions)
    transactions.set_defaults(handler=_run_transactions)

    return parser


def _add_mining_arguments(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--start-scn", type=_scn, required=True, help="Mining range starting point.")
    cmd.add_argument("--end-scn", type=_scn, required=True, help="Mining range end point.")
    cmd.add_argument(
        "--show-logs",
        action="store_true",
        help="Display the mined log details on the console.",
    )
    cmd.add_argument(
        "--destination-name",
        help="Archive log destination name, e.g. LOG_ARCHIVE_DEST_1.",
    )
    cmd.add_argument("--output", required=True, help="CSV file name for writing mined data.")


def _scn(value: str) -> int:
    try:
        scn = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError("invalid SCN: %r" % value) from None
    if scn < 0:
        raise argparse.ArgumentTypeError("SCN must not be negative: %r" % value)
    return scn


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _print_banner(ora: OracleClient) -> None:
    print(ora.get_banner())
    print()


def _run_info(ora: OracleClient, cfg, args) -> int:
    _print_banner(ora)
    diagnostics.show_info(ora)
    return 0


def _run_threads(ora: OracleClient, cfg, args) -> int:
    _print_banner(ora)
    diagnostics.show_threads(ora)
    return 0


def _run_logs(ora: OracleClient, cfg, args) -> int:
    _print_banner(ora)
    diagnostics.show_logs(ora, since_scn=args.since)
    return 0


def _run_list_changes(ora: OracleClient, cfg, args) -> int:
    count = logminer.list_changes(
        ora,
        start_scn=args.start_scn,
        end_scn=args.end_scn,
        output_file=args.output,
        transaction_id=args.transaction_id,
        exclude_internal_ops=args.exclude_internal,
        destination_name=cfg.logminer.destination_name,
        archive_log_only=cfg.logminer.archive_log_only,
        archive_retention_hours=cfg.logminer.archive_retention_hours,
        show_logs=args.show_logs,
    )
    print("Wrote %s change(s) to %s" % (count, args.output))
    return 0


def _run_transactions(ora: OracleClient, cfg, args) -> int:
    count = logminer.aggregate_transactions(
        ora,
        start_scn=args.start_scn,
        end_scn=args.end_scn,
        output_file=args.output,
        destination_name=cfg.logminer.destination_name,
        archive_log_only=cfg.logminer.archive_log_only,
        archive_retention_hours=cfg.logminer.archive_retention_hours,
        show_logs=args.show_logs,
    )
    print("Wrote %s transaction(s) to %s" % (count, args.output))
    return 0


if __name__ == "__main__":
    sys.exit(main())
