"""
Backup Service

Manual backup and restore of the whole ledger.

Flow:
1. Export -> snapshot the store -> encode -> atomic write to
   <directory>/FinanceTracker_backup_<yyyyMMdd_HHmmss>.json (or .csv)
2. Import -> read file -> decode completely -> replace every collection

DESIGN DECISION: Import is all-or-nothing.
A backup that fails to decode never touches the store. Export and import
hold the store's writer lock for their whole duration, so no mutation can
slip in between reading the file and replacing the collections.

File I/O runs in a worker thread; the coroutines can be awaited from an
event loop without blocking it.
"""

import asyncio
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional, Union

from household_ledger.audit import AuditLogger
from household_ledger.config import BackupSettings
from household_ledger.errors import DecodeError, LedgerError, PersistenceError
from household_ledger.models.snapshot import BackupSnapshot
from household_ledger.services.backup.csv_codec import decode_csv, encode_csv
from household_ledger.services.backup.json_codec import decode_snapshot, encode_snapshot
from household_ledger.services.storage import atomic_write_text

if TYPE_CHECKING:
    from household_ledger.ledger import LedgerStore


JSON_SUFFIX = ".json"
CSV_SUFFIX = ".csv"
BACKUP_SUFFIXES = (JSON_SUFFIX, CSV_SUFFIX)

_ENCODERS: dict[str, Callable[[BackupSnapshot], str]] = {
    JSON_SUFFIX: encode_snapshot,
    CSV_SUFFIX: encode_csv,
}

_DECODERS: dict[str, Callable[[str], BackupSnapshot]] = {
    JSON_SUFFIX: decode_snapshot,
    CSV_SUFFIX: decode_csv,
}


class BackupService:
    """
    Exports and restores ledger backups.

    Directory arguments are optional; the configured backup directory is
    used when none is given.
    """

    def __init__(
        self,
        store: "LedgerStore",
        settings: Optional[BackupSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._settings = settings or BackupSettings()
        self._audit = audit_logger or AuditLogger()

    @property
    def file_prefix(self) -> str:
        return self._settings.file_prefix

    @property
    def imported_prefix(self) -> str:
        return f"{self._settings.file_prefix}imported_"

    def _directory(self, directory: Optional[Union[str, Path]]) -> Path:
        return Path(directory) if directory is not None else self._settings.directory

    def backup_filename(self, suffix: str = JSON_SUFFIX, moment: Optional[datetime] = None) -> str:
        """FinanceTracker_backup_<timestamp><suffix>, timestamped in UTC."""
        moment = moment or datetime.now(timezone.utc)
        return f"{self._settings.file_prefix}{moment.strftime(self._settings.timestamp_format)}{suffix}"

    # =========================================================================
    # Export
    # =========================================================================

    async def export_snapshot(self, directory: Optional[Union[str, Path]] = None) -> Path:
        """
        Write a JSON backup of the whole ledger.

        Returns:
            Path of the written file

        Raises:
            PersistenceError: If the file cannot be written
        """
        return await asyncio.to_thread(self._export, self._directory(directory), JSON_SUFFIX)

    async def export_csv(self, directory: Optional[Union[str, Path]] = None) -> Path:
        """Write a CSV backup. Fields in CSV_OMITTED_FIELDS are not included."""
        return await asyncio.to_thread(self._export, self._directory(directory), CSV_SUFFIX)

    def _export(self, directory: Path, suffix: str) -> Path:
        with self._store.exclusive():
            snapshot = self._store.snapshot()
            path = directory / self.backup_filename(suffix, snapshot.created_at)
            text = _ENCODERS[suffix](snapshot)
            try:
                atomic_write_text(path, text)
            except OSError as e:
                self._audit.log_backup_failed("export", str(path), e)
                raise PersistenceError(f"Failed to write backup {path}: {e}") from e

        self._audit.log_backup_exported(str(path), suffix.lstrip("."), self._store.counts())
        return path

    # =========================================================================
    # Import
    # =========================================================================

    async def import_snapshot(self, path: Union[str, Path]) -> BackupSnapshot:
        """
        Restore the ledger from a .json or .csv backup.

        The file is decoded completely before anything in the store
        changes. On any failure the store is left as it was.

        Returns:
            The snapshot that was restored

        Raises:
            DecodeError: Unsupported extension or malformed content
            PersistenceError: File unreadable, or the restored state could
                not be saved
        """
        return await asyncio.to_thread(self._import, Path(path))

    def _import(self, path: Path) -> BackupSnapshot:
        decoder = _DECODERS.get(path.suffix.lower())
        if decoder is None:
            error = DecodeError(f"Unsupported backup file type: {path.name}")
            self._audit.log_backup_failed("import", str(path), error)
            raise error

        with self._store.exclusive():
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as e:
                self._audit.log_backup_failed("import", str(path), e)
                raise PersistenceError(f"Failed to read backup {path}: {e}") from e
            except UnicodeDecodeError as e:
                self._audit.log_backup_failed("import", str(path), e)
                raise DecodeError(f"Backup {path} is not UTF-8 text: {e}") from e

            try:
                snapshot = decoder(text)
                self._store.replace_snapshot(snapshot)
            except LedgerError as e:
                self._audit.log_backup_failed("import", str(path), e)
                raise

        self._audit.log_backup_restored(str(path), self._store.counts())
        return snapshot

    # =========================================================================
    # Backup directory management
    # =========================================================================

    def list_backups(self, directory: Optional[Union[str, Path]] = None) -> list[Path]:
        """
        Backup files in directory, newest first.

        Matches the backup prefix and a .json/.csv extension; sorted by
        filename descending, which is chronological for the timestamped
        names. A missing directory has no backups.
        """
        target = self._directory(directory)
        if not target.is_dir():
            return []
        backups = [
            path for path in target.iterdir()
            if path.is_file()
            and path.name.startswith(self._settings.file_prefix)
            and path.suffix.lower() in BACKUP_SUFFIXES
        ]
        return sorted(backups, key=lambda p: p.name, reverse=True)

    def import_backup_file(
        self,
        source: Union[str, Path],
        directory: Optional[Union[str, Path]] = None,
    ) -> Path:
        """
        Copy an external backup file into the backup directory.

        Files whose name lacks the backup prefix are stored as
        FinanceTracker_backup_imported_<name> so list_backups finds them.
        The ledger itself is not changed; call import_snapshot for that.
        """
        source = Path(source)
        target_dir = self._directory(directory)
        name = source.name
        if not name.startswith(self._settings.file_prefix):
            name = f"{self.imported_prefix}{name}"
        target = target_dir / name

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as e:
            self._audit.log_backup_failed("copy", str(source), e)
            raise PersistenceError(f"Failed to copy backup {source} to {target}: {e}") from e
        return target

    def clean_backup_directory(self, directory: Optional[Union[str, Path]] = None) -> int:
        """
        Delete every backup file list_backups would return.

        Returns:
            Number of files removed
        """
        removed = 0
        for path in self.list_backups(directory):
            try:
                path.unlink()
            except OSError as e:
                self._audit.log_backup_failed("clean", str(path), e)
                raise PersistenceError(f"Failed to remove backup {path}: {e}") from e
            removed += 1
        return removed
