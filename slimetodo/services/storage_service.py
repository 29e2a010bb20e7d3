"""Durable JSON storage with atomic saves, daily backups and a single-instance lock."""

import json
import logging
import os
import shutil
import sys
from collections.abc import Callable
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import IO, Any, Self

from slimetodo.core.config import Constants
from slimetodo.core.errors import ErrorCategory, ErrorResponse, classify_storage_error, error_response
from slimetodo.core.logging import log_with_context, span
from slimetodo.core.schema import CURRENT_SCHEMA_VERSION, migrate_payload
from slimetodo.domain.app_data import AppData, UISettings
from slimetodo.models.service_models import BackupInfo


logger = logging.getLogger(__name__)


def _lock_file_handle(handle: IO[str]) -> None:
    """Take an exclusive, non-blocking lock; raises OSError if it is held elsewhere."""
    if sys.platform == "win32":
        import msvcrt

        handle.seek(0)
        msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
    else:
        import fcntl

        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)


def _unlock_file_handle(handle: IO[str]) -> None:
    if sys.platform == "win32":
        import msvcrt

        handle.seek(0)
        msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl

        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def _parse_app_data(text: str) -> AppData:
    """Decode, migrate and validate a data.json payload.

    Raises:
        ValueError: If the text is not a JSON object or fails validation
    """
    raw: Any = json.loads(text)
    if not isinstance(raw, dict):
        msg = "Data file does not contain a JSON object"
        raise ValueError(msg)
    return AppData.model_validate(migrate_payload(raw))


class StorageService:
    """Reads and writes the application data directory.

    Layout of ``data_dir``::

        data.json                    current data
        data.json.tmp                write-ahead copy, replaced onto data.json
        backups/backup_YYYY-MM-DD.json
        .lock                        single-instance lock
        ui_settings.json

    ``save`` never raises: failures are logged and kept in ``last_error``.
    """

    def __init__(
        self,
        data_dir: Path,
        *,
        legacy_data_dir: Path | None = None,
        backup_retention_days: int = 7,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.legacy_data_dir = Path(legacy_data_dir) if legacy_data_dir else None
        self.backup_retention_days = backup_retention_days
        self._clock = clock

        self.data_file = self.data_dir / Constants.DATA_FILE_NAME
        self.temp_file = self.data_dir / Constants.TEMP_FILE_NAME
        self.backup_dir = self.data_dir / Constants.BACKUP_DIR_NAME
        self.lock_file = self.data_dir / Constants.LOCK_FILE_NAME
        self.ui_settings_file = self.data_dir / Constants.UI_SETTINGS_FILE_NAME

        self.last_error: ErrorResponse | None = None
        self._lock_handle: IO[str] | None = None

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> Self:
        if not self.acquire_lock():
            msg = f"Another instance holds the lock on {self.data_dir}"
            raise RuntimeError(msg)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the lock if this instance holds it."""
        self.release_lock()

    def get_app_folder(self) -> Path:
        return self.data_dir

    def migrate_from_legacy_folder(self) -> bool:
        """Copy data.json from the pre-rename folder once, if the new folder has none.

        Returns:
            True if a file was copied
        """
        if self.legacy_data_dir is None:
            return False

        legacy_file = self.legacy_data_dir / Constants.DATA_FILE_NAME
        if not legacy_file.exists() or self.data_file.exists():
            return False

        try:
            shutil.copy2(legacy_file, self.data_file)
        except OSError as e:
            log_with_context(logger, "warning", "Legacy data migration failed", path=str(legacy_file), error=str(e))
            return False

        logger.info("Migrated data file from legacy folder %s", self.legacy_data_dir)
        return True

    # ------------------------------------------------------------------
    # Single-instance lock
    # ------------------------------------------------------------------

    def acquire_lock(self) -> bool:
        """Lock the data directory for the lifetime of this process.

        Returns:
            True if the lock is held, False if another process holds it
        """
        if self._lock_handle is not None:
            return True

        handle: IO[str] | None = None
        try:
            for _ in range(Constants.LOCK_ATTEMPTS):
                handle = open(self.lock_file, "a+", encoding="utf-8")  # noqa: SIM115
                _lock_file_handle(handle)
                if self._is_current_lock_file(handle):
                    break
                # Locked a file the previous owner already unlinked
                handle.close()
                handle = None
            if handle is None:
                msg = "Lock file kept being replaced while acquiring the lock"
                raise OSError(msg)
            handle.seek(0)
            handle.truncate()
            handle.write(str(os.getpid()))
            handle.flush()
        except OSError as e:
            if handle is not None:
                handle.close()
            self.last_error = error_response(ErrorCategory.LOCK_UNAVAILABLE)
            log_with_context(logger, "warning", "Could not acquire data lock", path=str(self.lock_file), error=str(e))
            return False

        self._lock_handle = handle
        logger.info("Acquired data lock (PID: %d)", os.getpid())
        return True

    def release_lock(self) -> None:
        """Release the lock and remove the lock file so the next start is not seen as a crash."""
        if self._lock_handle is None:
            return

        handle, self._lock_handle = self._lock_handle, None
        # POSIX: unlink while still locked. Windows cannot unlink an open file.
        if sys.platform != "win32":
            self._remove_lock_file()
        try:
            _unlock_file_handle(handle)
        except OSError as e:
            logger.warning(f"Failed to unlock {self.lock_file}: {e}")
        finally:
            handle.close()

        if sys.platform == "win32":
            self._remove_lock_file()

    def _is_current_lock_file(self, handle: IO[str]) -> bool:
        try:
            return os.fstat(handle.fileno()).st_ino == os.stat(self.lock_file).st_ino
        except FileNotFoundError:
            return False

    def _remove_lock_file(self) -> None:
        try:
            self.lock_file.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove lock file {self.lock_file}: {e}")

    @property
    def is_locked(self) -> bool:
        return self._lock_handle is not None

    def has_crash_recovery(self) -> bool:
        """Whether the previous session ended without releasing its lock.

        A lock file that exists but can be locked was left behind by a process
        that is no longer running. Call before ``acquire_lock``.
        """
        if not self.lock_file.exists():
            return False

        try:
            with open(self.lock_file, "a+", encoding="utf-8") as handle:
                _lock_file_handle(handle)
                _unlock_file_handle(handle)
        except OSError:
            return False
        return True

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def load(self) -> AppData:
        """Load data.json, falling back to the newest readable backup.

        Returns:
            The stored data, or a fresh AppData when nothing usable exists
        """
        with span("storage_service.load"):
            if not self.data_file.exists():
                logger.info("No data file found, starting with empty data")
                return AppData()

            try:
                data = _parse_app_data(self.data_file.read_text(encoding="utf-8"))
            except Exception as e:
                self._record_error(e, "Load failed, attempting backup recovery")
            else:
                logger.info("Loaded %d tasks from %s", len(data.tasks), self.data_file)
                return data

            for backup in self.get_available_backups():
                data = self.load_from_backup(backup.path)
                if data is not None:
                    logger.warning("Recovered data from backup %s", backup.file_name)
                    return data

            logger.error("No readable backup found, starting with empty data")
            return AppData()

    def save(self, data: AppData) -> bool:
        """Atomically persist data.

        The payload is written to data.json.tmp and fsynced, the previous
        data.json is copied to today's backup if none exists yet, and the temp
        file then replaces data.json.

        Returns:
            True on success, False if nothing was persisted (see last_error)
        """
        with span("storage_service.save", task_count=len(data.tasks)):
            try:
                data.schema_version = CURRENT_SCHEMA_VERSION
                payload = self.export_json(data)

                with open(self.temp_file, "w", encoding="utf-8") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())

                self._create_daily_backup()
                os.replace(self.temp_file, self.data_file)
            except Exception as e:
                self._record_error(e, "Save failed")
                return False

            self._cleanup_old_backups()
            self.last_error = None
            return True

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def _today(self) -> date:
        return self._clock().date()

    def _backup_path(self, day: date) -> Path:
        return self.backup_dir / f"{Constants.BACKUP_FILE_PREFIX}{day:%Y-%m-%d}.json"

    def _backup_files(self) -> list[Path]:
        if not self.backup_dir.exists():
            return []
        return list(self.backup_dir.glob(f"{Constants.BACKUP_FILE_PREFIX}*.json"))

    def _create_daily_backup(self) -> None:
        if not self.data_file.exists():
            return

        backup_path = self._backup_path(self._today())
        if backup_path.exists():
            return

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.data_file, backup_path)
        except OSError as e:
            log_with_context(logger, "warning", "Daily backup failed", path=str(backup_path), error=str(e))
        else:
            logger.info("Created daily backup %s", backup_path.name)

    def _cleanup_old_backups(self) -> None:
        cutoff = self._today() - timedelta(days=self.backup_retention_days)

        for path in self._backup_files():
            try:
                modified = date.fromtimestamp(path.stat().st_mtime)
                if modified < cutoff:
                    path.unlink()
                    logger.info("Deleted expired backup %s", path.name)
            except OSError as e:
                logger.warning(f"Cleanup of old backup {path.name} failed: {e}")

    def get_available_backups(self) -> list[BackupInfo]:
        """List backup files, newest first by modification time."""
        backups = []
        for path in self._backup_files():
            try:
                stat = path.stat()
            except OSError:
                continue
            backups.append(
                BackupInfo(
                    path=path,
                    file_name=path.name,
                    backup_date=datetime.fromtimestamp(stat.st_mtime),
                    size_bytes=stat.st_size,
                )
            )
        return sorted(backups, key=lambda b: b.backup_date, reverse=True)

    def load_from_backup(self, path: Path) -> AppData | None:
        """Load and migrate a backup file; None if it cannot be read."""
        try:
            return _parse_app_data(Path(path).read_text(encoding="utf-8"))
        except Exception as e:
            log_with_context(logger, "warning", "Backup could not be loaded", path=str(path), error=str(e))
            return None

    def delete_all_backups(self) -> int:
        """Delete every backup file (used by the data reset flow).

        Returns:
            Number of files deleted
        """
        deleted = 0
        for path in self._backup_files():
            try:
                path.unlink()
                deleted += 1
            except OSError as e:
                logger.warning(f"Failed to delete backup {path.name}: {e}")
        logger.info("Deleted %d backups", deleted)
        return deleted

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def export_json(self, data: AppData) -> str:
        return data.model_dump_json(by_alias=True, indent=2)

    def import_json(self, text: str) -> AppData | None:
        """Validate an exported payload.

        Rejects empty text, payloads above 10,000,000 UTF-8 bytes and
        payloads with more than 10,000 tasks. Nothing is applied here; the
        caller hands the result to TaskService.replace_data.

        Returns:
            The migrated data, or None (see last_error)
        """
        with span("storage_service.import_json"):
            if not text or not text.strip():
                return self._reject(ErrorCategory.EMPTY_PAYLOAD, "Import failed: empty payload")

            # Lone surrogates still count toward the byte limit; json rejects them below.
            size = len(text.encode("utf-8", errors="surrogatepass"))
            if size > Constants.MAX_IMPORT_BYTES:
                return self._reject(ErrorCategory.PAYLOAD_TOO_LARGE, "Import failed: payload too large", size=size)

            try:
                raw: Any = json.loads(text)
                if not isinstance(raw, dict):
                    msg = "Import payload is not a JSON object"
                    raise ValueError(msg)

                tasks = raw.get("tasks")
                if isinstance(tasks, list) and len(tasks) > Constants.MAX_IMPORT_TASKS:
                    return self._reject(
                        ErrorCategory.TOO_MANY_TASKS, "Import failed: too many tasks", task_count=len(tasks)
                    )

                data = AppData.model_validate(migrate_payload(raw))
            except (ValueError, TypeError, RecursionError) as e:
                self._record_error(e, "Import failed")
                return None

            self.last_error = None
            logger.info("Validated import with %d tasks", len(data.tasks))
            return data

    def export_to_file(self, data: AppData, path: Path) -> bool:
        try:
            Path(path).write_text(self.export_json(data), encoding="utf-8")
        except OSError as e:
            self._record_error(e, "Export failed")
            return False
        logger.info("Exported %d tasks to %s", len(data.tasks), path)
        return True

    def import_from_file(self, path: Path) -> AppData | None:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self._record_error(e, "Import file could not be read")
            return None
        return self.import_json(text)

    # ------------------------------------------------------------------
    # UI settings
    # ------------------------------------------------------------------

    def load_ui_settings(self) -> UISettings:
        if not self.ui_settings_file.exists():
            return UISettings()
        try:
            return UISettings.model_validate_json(self.ui_settings_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load UI settings, using defaults: {e}")
            return UISettings()

    def save_ui_settings(self, settings: UISettings) -> bool:
        try:
            self.ui_settings_file.write_text(settings.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to save UI settings: {e}")
            return False
        return True

    # ------------------------------------------------------------------
    # Error bookkeeping
    # ------------------------------------------------------------------

    def _record_error(self, exc: BaseException, message: str) -> None:
        category = classify_storage_error(exc)
        self.last_error = error_response(category)
        log_with_context(logger, "error", message, error=str(exc), category=category.value)

    def _reject(self, category: ErrorCategory, message: str, **context: object) -> None:
        self.last_error = error_response(category)
        log_with_context(logger, "warning", message, category=category.value, **context)
