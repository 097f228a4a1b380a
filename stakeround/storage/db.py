import os
import sqlite3
import threading
from typing import Dict, List, Optional, Tuple

class StorageDB:
    def __init__(self, db_path: str):
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.cursor = self.conn.cursor()
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        with self._lock:
            # State table: Key-Value store for round bookkeeping
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            ''')
            # Current targets per bonded address, ordered by position
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS current_targets (
                    bonded_address TEXT,
                    position INTEGER,
                    address TEXT,
                    name TEXT,
                    PRIMARY KEY (bonded_address, position)
                )
            ''')
            # Nomination history: targets stored as JSON body
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS nominations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    bonded_address TEXT,
                    era INTEGER,
                    data TEXT,
                    tx_hash TEXT,
                    timestamp INTEGER
                )
            ''')
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS target_outcomes (
                    bonded_address TEXT,
                    era INTEGER,
                    address TEXT,
                    valid INTEGER,
                    reason TEXT,
                    PRIMARY KEY (bonded_address, era, address)
                )
            ''')
            self.conn.commit()

    def close(self):
        with self._lock:
            self.conn.close()

    # --- State Methods ---
    def get_state(self, key: str) -> Optional[str]:
        with self._lock:
            self.cursor.execute('SELECT value FROM state WHERE key = ?', (key,))
            row = self.cursor.fetchone()
            return row[0] if row else None

    def set_state(self, key: str, value: str):
        with self._lock:
            self.cursor.execute('INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)', (key, value))
            self.conn.commit()

    def get_state_by_prefix(self, prefix: str) -> Dict[str, str]:
        with self._lock:
            self.cursor.execute('SELECT key, value FROM state WHERE key LIKE ?', (f"{prefix}%",))
            return {row[0]: row[1] for row in self.cursor.fetchall()}

    # --- Target Methods ---
    def get_targets(self, bonded_address: str) -> List[Tuple[str, Optional[str]]]:
        """Returns [(address, name)] in nomination order."""
        with self._lock:
            self.cursor.execute(
                'SELECT address, name FROM current_targets WHERE bonded_address = ? ORDER BY position',
                (bonded_address,)
            )
            return [(row[0], row[1]) for row in self.cursor.fetchall()]

    def get_target_name(self, address: str) -> Optional[str]:
        with self._lock:
            self.cursor.execute(
                'SELECT name FROM current_targets WHERE address = ? AND name IS NOT NULL LIMIT 1',
                (address,)
            )
            row = self.cursor.fetchone()
            return row[0] if row else None

    def replace_targets(self, bonded_address: str, targets: List[Tuple[str, Optional[str]]]):
        with self._lock:
            self.cursor.execute('DELETE FROM current_targets WHERE bonded_address = ?', (bonded_address,))
            self.cursor.executemany(
                'INSERT INTO current_targets (bonded_address, position, address, name) VALUES (?, ?, ?, ?)',
                [(bonded_address, i, address, name) for i, (address, name) in enumerate(targets)]
            )
            self.conn.commit()

    # --- History Methods ---
    def add_nomination(self, bonded_address: str, era: int, data: str, tx_hash: Optional[str], timestamp: int):
        with self._lock:
            self.cursor.execute(
                'INSERT INTO nominations (bonded_address, era, data, tx_hash, timestamp) VALUES (?, ?, ?, ?, ?)',
                (bonded_address, era, data, tx_hash, timestamp)
            )
            self.conn.commit()

    def get_nominations(self, limit: int) -> List[Tuple[str, int, str, Optional[str], int]]:
        """Returns (bonded_address, era, data, tx_hash, timestamp), newest first."""
        with self._lock:
            self.cursor.execute(
                'SELECT bonded_address, era, data, tx_hash, timestamp FROM nominations ORDER BY id DESC LIMIT ?',
                (limit,)
            )
            return self.cursor.fetchall()

    def save_outcome(self, bonded_address: str, era: int, address: str, valid: bool, reason: Optional[str]):
        with self._lock:
            self.cursor.execute(
                'INSERT OR REPLACE INTO target_outcomes (bonded_address, era, address, valid, reason) VALUES (?, ?, ?, ?, ?)',
                (bonded_address, era, address, int(valid), reason)
            )
            self.conn.commit()

    def get_outcomes(self, era: int) -> List[Tuple[str, int, str, int, Optional[str]]]:
        with self._lock:
            self.cursor.execute(
                'SELECT bonded_address, era, address, valid, reason FROM target_outcomes WHERE era = ? ORDER BY bonded_address, address',
                (era,)
            )
            return self.cursor.fetchall()
