"""
JSON backup codec (primary format).

A backup is the BackupSnapshot model dumped as one JSON document. Every
field of every entity is preserved, so decode(encode(s)) == s.
"""

from typing import Union

from pydantic import ValidationError

from household_ledger.errors import DecodeError
from household_ledger.models.snapshot import BACKUP_FORMAT_VERSION, BackupSnapshot


def encode_snapshot(snapshot: BackupSnapshot) -> str:
    return snapshot.model_dump_json(indent=2)


def decode_snapshot(data: Union[str, bytes]) -> BackupSnapshot:
    """
    Parse a JSON backup.

    Raises:
        DecodeError: If the content is not a valid backup, or was written
            by a newer format version
    """
    try:
        snapshot = BackupSnapshot.model_validate_json(data)
    except ValidationError as e:
        raise DecodeError(f"Invalid JSON backup: {e.error_count()} error(s), first: {e.errors()[0]['msg']}") from e

    if snapshot.format_version > BACKUP_FORMAT_VERSION:
        raise DecodeError(
            f"Backup format version {snapshot.format_version} is newer than "
            f"supported version {BACKUP_FORMAT_VERSION}"
        )
    return snapshot
