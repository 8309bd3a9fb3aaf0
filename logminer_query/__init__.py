"""
Command-line query tool for Oracle LogMiner.

Resolves the archived and online redo logs for an SCN range, mines them
through a LogMiner session and writes the rows as CSV. A few raw system view
dumps help with checking a database's LogMiner setup.
"""

__version__ = "1.0.0"

__all__ = [
    "config",
    "exceptions",
    "models",
    "oracle_client",
    "log_inventory",
    "logminer",
    "reporting",
    "diagnostics",
    "cli",
]
