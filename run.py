"""
Entry point: a thin wrapper around logminer_query.cli so the tool can be run
straight from a checkout.

Usage:
  python3 run.py info --hostname db --service ORCLPDB1 --username c##dbzuser --password dbz
  python3 run.py list-changes --start-scn 1000 --end-scn 2000 --output changes.csv ...
  python3 run.py transactions --start-scn 1000 --end-scn 2000 --output tx.csv ...

Config:
- Reads config.ini from the current directory when it exists; set
  LOGMINER_QUERY_CONFIG to use another path.
- Keep credentials out of the file if you can: ORACLE_PASSWORD overrides
  the configured password.
"""

import os
import sys

from logminer_query.cli import main as cli_main


def _inject_config(args):
    if "--config" in args:
        return args
    config_path = os.environ.get("LOGMINER_QUERY_CONFIG")
    if not config_path and os.path.exists("config.ini"):
        config_path = "config.ini"
    if not config_path:
        return args
    return ["--config", config_path] + args


if __name__ == "__main__":
    sys.exit(cli_main(_inject_config(sys.argv[1:])))
