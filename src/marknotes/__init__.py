"""
marknotes - a personal markdown notes manager.

Notes are created, edited, tagged and searched in memory, persisted to a
local key-value store, exported to a spreadsheet, and optionally checked
against a remote source-hosting account for backup.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("marknotes")
except PackageNotFoundError:
    __version__ = "0.1.0"
