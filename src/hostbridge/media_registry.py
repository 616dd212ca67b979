import os
import sqlite3
import logging
import threading
from contextlib import contextmanager
from typing import Dict, List, Optional, Any

from .errors import BridgeIOError
from .media_api import MediaRegistry, is_plain_name

logger = logging.getLogger(__name__)


@contextmanager
def _db_errors(action: str):
    """Report SQLite failures as write failures on the command channel."""
    try:
        yield
    except sqlite3.Error as e:
        logger.error("Media database error while %s: %s", action, e)
        raise BridgeIOError(str(e)) from e


class _RecordStream:
    """
    Binary write stream for one record's staging file. Closing it stamps
    the record as written with the final size; it does not make the
    record visible.
    """

    def __init__(self, registry: "SQLiteMediaRegistry", record_id: int, fileobj):
        self._registry = registry
        self._record_id = record_id
        self._file = fileobj
        self._size = 0
        self.closed = False

    def write(self, data: bytes) -> int:
        written = self._file.write(data)
        self._size += written
        return written

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._file.close()
        self._registry._mark_written(self._record_id, self._size)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.close()
        else:
            # Leave the record unwritten; only release the file handle.
            self.closed = True
            self._file.close()
        return False


class SQLiteMediaRegistry(MediaRegistry):
    """
    Shared media registry: files live under
    `<root_dir>/<pictures_dir>/<album>/<display_name>` and a SQLite index
    tracks each record's pending/written state.

    Display names are unique per album ("a.jpg", "a (1).jpg", ...). Bytes
    are written to a hidden per-record staging file and only moved to the
    public path by finalize(), so a public file is always complete.

    Access is made thread-safe by guarding all DB access with an RLock.
    """

    def __init__(
        self,
        root_dir: str = "media",
        db_path: Optional[str] = None,
        pictures_dir: str = "Pictures",
    ):
        self.root_dir = root_dir
        self.pictures_dir = pictures_dir
        os.makedirs(self.root_dir, exist_ok=True)

        self.db_path = db_path or os.path.join(root_dir, "media.db")
        self._lock = threading.RLock()
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        with self._lock:
            self.conn.execute("PRAGMA journal_mode=WAL;")
            self.conn.execute("PRAGMA synchronous=NORMAL;")

        self._init_tables()

    def _init_tables(self) -> None:
        """Initialize database tables."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS media_records (
                    record_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    display_name TEXT NOT NULL,
                    mime_type TEXT NOT NULL,
                    album TEXT NOT NULL,
                    relative_path TEXT NOT NULL,
                    pending BOOLEAN DEFAULT 1,
                    written BOOLEAN DEFAULT 0,
                    size INTEGER DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    finalized_at TIMESTAMP
                )
                """
            )
            self.conn.commit()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> Dict[str, Any]:
        record = dict(row)
        record["pending"] = bool(record["pending"])
        record["written"] = bool(record["written"])
        return record

    def record_path(self, record: Dict[str, Any]) -> str:
        """Public filesystem path of a finalized record's bytes."""
        return os.path.join(
            self.root_dir, record["relative_path"], record["display_name"]
        )

    def staging_path(self, record: Dict[str, Any]) -> str:
        """Hidden path the record's bytes are written to while pending."""
        return os.path.join(
            self.root_dir,
            record["relative_path"],
            f".{record['record_id']}.{record['display_name']}.pending",
        )

    def _name_taken(self, cursor, name: str, album: str, relative_path: str) -> bool:
        cursor.execute(
            "SELECT 1 FROM media_records WHERE album = ? AND display_name = ? LIMIT 1",
            (album, name),
        )
        if cursor.fetchone() is not None:
            return True
        return os.path.exists(os.path.join(self.root_dir, relative_path, name))

    def _unique_display_name(self, cursor, name: str, album: str, relative_path: str) -> str:
        stem, ext = os.path.splitext(name)
        candidate = name
        counter = 1
        while self._name_taken(cursor, candidate, album, relative_path):
            candidate = f"{stem} ({counter}){ext}"
            counter += 1
        return candidate

    # ------------------------------------------------------------------
    # Writer side
    # ------------------------------------------------------------------

    def allocate(self, name: str, mime_type: str, album: str) -> Optional[int]:
        """Insert a pending record under Pictures/<album>; None if impossible."""
        if not is_plain_name(name):
            logger.warning("Refusing to allocate media record for name %r", name)
            return None
        if not is_plain_name(album):
            logger.warning("Refusing to allocate media record in album %r", album)
            return None

        relative_path = f"{self.pictures_dir}/{album}"
        try:
            os.makedirs(os.path.join(self.root_dir, relative_path), exist_ok=True)
        except OSError as e:
            logger.warning("Cannot create album directory %s: %s", relative_path, e)
            return None

        with _db_errors("allocating a record"), self._lock:
            cursor = self.conn.cursor()
            display_name = self._unique_display_name(cursor, name, album, relative_path)
            cursor.execute(
                """
                INSERT INTO media_records
                (display_name, mime_type, album, relative_path, pending)
                VALUES (?, ?, ?, ?, 1)
                """,
                (display_name, mime_type, album, relative_path),
            )
            self.conn.commit()
            record_id = cursor.lastrowid

        logger.debug(
            "Allocated pending record %d for %s/%s", record_id, relative_path, display_name
        )
        return record_id

    def open(self, handle: int) -> Optional[_RecordStream]:
        """Open the record's staging file; None for unknown or finalized records."""
        record = self.load_record(handle)
        if record is None or not record["pending"]:
            logger.warning("No pending media record for handle %s", handle)
            return None

        path = self.staging_path(record)
        try:
            fileobj = open(path, "wb")
        except OSError as e:
            logger.warning("Cannot open %s for writing: %s", path, e)
            return None
        return _RecordStream(self, handle, fileobj)

    def finalize(self, handle: int) -> None:
        """Move the staged bytes into place and clear the pending flag."""
        record = self.load_record(handle)
        if record is None:
            raise BridgeIOError(f"no media record for handle {handle}")

        try:
            os.replace(self.staging_path(record), self.record_path(record))
        except OSError as e:
            logger.error("Failed to publish media record %s: %s", handle, e)
            raise BridgeIOError(str(e)) from e

        with _db_errors("finalizing a record"), self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                UPDATE media_records
                SET pending = 0, finalized_at = CURRENT_TIMESTAMP
                WHERE record_id = ?
                """,
                (handle,),
            )
            self.conn.commit()

    def _mark_written(self, handle: int, size: int) -> None:
        with _db_errors("marking a record written"), self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                "UPDATE media_records SET written = 1, size = ? WHERE record_id = ?",
                (size, handle),
            )
            self.conn.commit()

    # ------------------------------------------------------------------
    # Reader side
    # ------------------------------------------------------------------

    def load_record(self, handle: int) -> Optional[Dict[str, Any]]:
        """Load record by handle, or None."""
        with _db_errors("loading a record"), self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                "SELECT * FROM media_records WHERE record_id = ?", (handle,)
            )
            row = cursor.fetchone()
            return self._row_to_record(row) if row else None

    def list_records(self) -> List[Dict[str, Any]]:
        """Return every record, pending or not, oldest first."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT * FROM media_records ORDER BY record_id")
            return [self._row_to_record(row) for row in cursor.fetchall()]

    def list_visible(self, album: Optional[str] = None) -> List[Dict[str, Any]]:
        """What a gallery viewer sees: finalized records only."""
        with self._lock:
            cursor = self.conn.cursor()
            if album is None:
                cursor.execute(
                    "SELECT * FROM media_records WHERE pending = 0 ORDER BY record_id"
                )
            else:
                cursor.execute(
                    """
                    SELECT * FROM media_records
                    WHERE pending = 0 AND album = ? ORDER BY record_id
                    """,
                    (album,),
                )
            return [self._row_to_record(row) for row in cursor.fetchall()]

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def sweep_pending(self, max_age_sec: float) -> int:
        """
        Delete pending records older than max_age_sec, with their staging
        files. Public files of finalized records are never touched.

        Uses julianday to compare seconds since creation vs the TTL.
        Returns the number of records removed.
        """
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                SELECT * FROM media_records
                WHERE pending = 1
                AND (julianday('now') - julianday(created_at)) * 86400 > ?
                """,
                (max_age_sec,),
            )
            stale = [self._row_to_record(row) for row in cursor.fetchall()]

            for record in stale:
                path = self.staging_path(record)
                try:
                    os.remove(path)
                except FileNotFoundError:
                    pass
                except OSError as e:
                    logger.warning("Could not remove stale file %s: %s", path, e)
                cursor.execute(
                    "DELETE FROM media_records WHERE record_id = ?",
                    (record["record_id"],),
                )
            self.conn.commit()

        if stale:
            logger.info("Swept %d stale pending record(s)", len(stale))
        return len(stale)

    def close(self) -> None:
        """Close the DB connection."""
        with self._lock:
            self.conn.close()
