import os
import json
import time
import queue
import sqlite3
import logging
import threading

from soulgotchi.constants import DB_FILE, SAVE_FILE, STORAGE_BACKEND, STORAGE_KEYS, KEY_PET_STATE
from soulgotchi.models import SimulationContext

logger = logging.getLogger(__name__)

# Anything a damaged save can throw while being decoded
DECODE_ERRORS = (ValueError, KeyError, TypeError, AttributeError, OverflowError)


def _restore(record, now):
    if now is None:
        now = time.time()
    return SimulationContext.from_record(record, now)


class DatabaseManager:
    """Handles SQL persistence to keep the pet 'alive' on disk.

    Snapshots are stored flat: one row per storage key, the value JSON encoded.
    Saves may come from the save worker thread, so the connection is shared
    behind a lock. If the database cannot be opened the manager stays usable
    with ``conn`` set to None: saves are dropped and loads find nothing, so
    play continues in memory.
    """
    def __init__(self, db_path=DB_FILE):
        self.db_path = db_path
        self._lock = threading.Lock()
        self.conn = None
        try:
            self.conn = sqlite3.connect(db_path, check_same_thread=False)
            self.create_tables()
        except sqlite3.Error as e:
            logger.warning("Cannot open database '%s', progress will not be saved: %s", db_path, e)
            if self.conn is not None:
                self.conn.close()
            self.conn = None

    def create_tables(self):
        with self._lock:
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS pet_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            self.conn.commit()

    def save(self, snapshot):
        """Best effort: a failing disk is logged, never raised."""
        if self.conn is None:
            return
        rows = [(key, json.dumps(value)) for key, value in snapshot.items()]
        try:
            with self._lock:
                self.conn.executemany("INSERT OR REPLACE INTO pet_store (key, value) VALUES (?, ?)", rows)
                self.conn.commit()
        except sqlite3.Error as e:
            logger.warning("Failed to save pet state to '%s': %s", self.db_path, e)

    def load_record(self):
        """Raw decoded rows, or None when nothing was saved yet."""
        if self.conn is None:
            return None
        with self._lock:
            cursor = self.conn.execute("SELECT key, value FROM pet_store")
            rows = cursor.fetchall()
        record = {key: json.loads(value) for key, value in rows}
        if KEY_PET_STATE not in record:
            return None
        return record

    def load(self, now=None):
        """Saved pet, or None on missing or unreadable data."""
        try:
            record = self.load_record()
            if record is None:
                return None
            return _restore(record, now)
        except (sqlite3.Error,) + DECODE_ERRORS as e:
            logger.warning("Failed to load pet state from '%s': %s", self.db_path, e)
            return None

    def clear(self):
        if self.conn is None:
            return
        try:
            with self._lock:
                self.conn.executemany("DELETE FROM pet_store WHERE key = ?", [(key,) for key in STORAGE_KEYS])
                self.conn.commit()
        except sqlite3.Error as e:
            logger.warning("Failed to clear pet data in '%s': %s", self.db_path, e)

    def close(self):
        if self.conn is None:
            return
        with self._lock:
            self.conn.close()


class JsonSaveFile:
    """Same contract as DatabaseManager, backed by a single JSON document.

    Uses a simple atomic replace pattern to avoid truncated saves.
    """
    def __init__(self, path=SAVE_FILE):
        self.path = path
        self._lock = threading.Lock()

    def save(self, snapshot):
        tmp = self.path + ".tmp"
        try:
            with self._lock:
                with open(tmp, 'w', encoding='utf-8') as f:
                    json.dump(snapshot, f, ensure_ascii=False)
                os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to write save file '%s': %s", self.path, e)

    def load(self, now=None):
        if not os.path.exists(self.path):
            return None
        try:
            with self._lock:
                with open(self.path, 'r', encoding='utf-8') as f:
                    record = json.load(f)
            if not isinstance(record, dict) or KEY_PET_STATE not in record:
                return None
            return _restore(record, now)
        except (OSError,) + DECODE_ERRORS as e:
            logger.warning("Failed to read save file '%s': %s", self.path, e)
            return None

    def clear(self):
        try:
            with self._lock:
                if os.path.exists(self.path):
                    os.remove(self.path)
        except OSError as e:
            logger.warning("Failed to remove save file '%s': %s", self.path, e)

    def close(self):
        pass


def open_gateway(backend=STORAGE_BACKEND, path=None):
    if backend == "sqlite":
        return DatabaseManager(path or DB_FILE)
    if backend == "json":
        return JsonSaveFile(path or SAVE_FILE)
    raise ValueError(f"Unknown storage backend '{backend}'")


class SaveWorker:
    """Writes snapshots on a background thread so saving never stalls play.

    Only the newest pending snapshot matters; older ones still waiting in the
    queue are skipped.
    """
    _STOP = object()

    def __init__(self, gateway):
        self.gateway = gateway
        self._queue = queue.Queue()
        self._thread = threading.Thread(target=self._run, name="soulgotchi-save", daemon=True)
        self._thread.start()

    def submit(self, snapshot):
        self._queue.put(snapshot)

    def _run(self):
        while True:
            item = self._queue.get()
            batch = 1
            latest = None
            stop = False
            # Coalesce a burst down to its last snapshot
            while True:
                if item is self._STOP:
                    stop = True
                else:
                    latest = item
                try:
                    item = self._queue.get_nowait()
                except queue.Empty:
                    break
                batch += 1
            try:
                if latest is not None:
                    self.gateway.save(latest)
            except Exception:
                # Gateways swallow their own storage errors; this is a bug in one
                logger.exception("Save worker failed to write snapshot")
            finally:
                for _ in range(batch):
                    self._queue.task_done()
            if stop:
                return

    def flush(self):
        """Block until everything submitted so far is on disk."""
        self._queue.join()

    def close(self):
        self._queue.put(self._STOP)
        self._thread.join()
