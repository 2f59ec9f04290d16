"""
Backup Services Package

JSON (primary) and CSV (secondary) backup codecs and the service that
writes, lists and restores backup files.
"""

from household_ledger.services.backup.csv_codec import (
    CSV_OMITTED_FIELDS,
    decode_csv,
    encode_csv,
)
from household_ledger.services.backup.json_codec import decode_snapshot, encode_snapshot
from household_ledger.services.backup.service import BackupService

__all__ = [
    # Codecs
    "encode_snapshot",
    "decode_snapshot",
    "encode_csv",
    "decode_csv",
    "CSV_OMITTED_FIELDS",
    # Service
    "BackupService",
]
