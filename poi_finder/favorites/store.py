"""
Favorites Store — the persisted collection of saved POIs with notes.

Behavioral Contract:
- Records are matched by business key (name, latitude, longitude), never by
  in-memory identity. Coordinates match within `coordinate_tolerance`.
- upsert inserts or overwrites every field, note included. Never duplicates.
- delete uses the full business key, so same-named places elsewhere survive.
- A failed write is rolled back: no partial mutation is ever visible.
- The store remembers which POI id was favorited for each row, so listing
  again returns the same identities the caller saved.
"""

import logging
import sqlite3
import threading
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from poi_finder.errors import StorageError
from poi_finder.models.favorite import FavoriteRecord
from poi_finder.models.poi import POI

logger = logging.getLogger(__name__)


class FavoritesStore:
    """
    SQLite-backed favorites store.
    Opened at construction; a store that cannot be opened raises StorageError.
    """

    def __init__(self, db_path: str = ":memory:", coordinate_tolerance: float = 0.0):
        self.db_path = db_path
        self.coordinate_tolerance = coordinate_tolerance
        self._lock = threading.Lock()
        self._identities: Dict[int, UUID] = {}
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._init_schema()
        except sqlite3.Error as e:
            logger.error("Cannot open favorites store at %s: %s", db_path, e)
            raise StorageError("open", str(e)) from e

    def _init_schema(self) -> None:
        """Create the favorites table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS favorites (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                latitude REAL NOT NULL,
                longitude REAL NOT NULL,
                category TEXT NOT NULL,
                address TEXT NOT NULL,
                note TEXT,
                created_at TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at TEXT
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_favorites_name ON favorites(name)
        """)
        self._conn.commit()

    def _find_row(self, poi: POI) -> Optional[sqlite3.Row]:
        """First row whose business key matches the POI."""
        tol = self.coordinate_tolerance
        return self._conn.execute(
            "SELECT * FROM favorites WHERE name = ? "
            "AND ABS(latitude - ?) <= ? AND ABS(longitude - ?) <= ? "
            "ORDER BY id LIMIT 1",
            (poi.name, poi.coordinate.latitude, tol, poi.coordinate.longitude, tol),
        ).fetchone()

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except sqlite3.Error as e:
            logger.warning("Favorites rollback failed: %s", e)

    def _deserialize(self, row: sqlite3.Row) -> FavoriteRecord:
        return FavoriteRecord(
            row_id=row["id"],
            name=row["name"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            category=row["category"],
            address=row["address"],
            note=row["note"],
        )

    def upsert_favorite(self, poi: POI) -> None:
        """Insert the POI as a favorite, or overwrite the matching record."""
        record = FavoriteRecord.from_poi(poi)
        now = datetime.utcnow().isoformat()
        with self._lock:
            try:
                row = self._find_row(poi)
                if row is not None:
                    row_id = row["id"]
                    self._conn.execute(
                        """
                        UPDATE favorites SET latitude = ?, longitude = ?,
                            category = ?, address = ?, note = ?, updated_at = ?
                        WHERE id = ?
                        """,
                        (
                            record.latitude,
                            record.longitude,
                            record.category,
                            record.address,
                            record.note,
                            now,
                            row_id,
                        ),
                    )
                else:
                    cursor = self._conn.execute(
                        """
                        INSERT INTO favorites (
                            name, latitude, longitude, category, address, note, updated_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            record.name,
                            record.latitude,
                            record.longitude,
                            record.category,
                            record.address,
                            record.note,
                            now,
                        ),
                    )
                    row_id = cursor.lastrowid
                self._conn.commit()
            except sqlite3.Error as e:
                self._rollback()
                logger.warning("Failed to save favorite %r: %s", poi.name, e)
                raise StorageError("save", str(e)) from e
            self._identities[row_id] = poi.id
        logger.info("Favorite saved: %s", poi.name)

    def list_favorites(self) -> List[POI]:
        """All favorites in storage order, each flagged `is_favorite`."""
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT * FROM favorites ORDER BY id"
                ).fetchall()
            except sqlite3.Error as e:
                logger.warning("Failed to load favorites: %s", e)
                raise StorageError("load", str(e)) from e
            favorites = []
            for row in rows:
                identity = self._identities.setdefault(row["id"], uuid4())
                favorites.append(self._deserialize(row).to_poi(id=identity))
        return favorites

    def delete_favorite(self, poi: POI) -> bool:
        """Remove the record matching the full business key. No match is a no-op."""
        with self._lock:
            try:
                row = self._find_row(poi)
                if row is None:
                    return False
                self._conn.execute("DELETE FROM favorites WHERE id = ?", (row["id"],))
                self._conn.commit()
            except sqlite3.Error as e:
                self._rollback()
                logger.warning("Failed to delete favorite %r: %s", poi.name, e)
                raise StorageError("delete", str(e)) from e
            self._identities.pop(row["id"], None)
        logger.info("Favorite deleted: %s", poi.name)
        return True

    def update_note(self, poi: POI, note: Optional[str]) -> bool:
        """Set the note on the matching record. Returns False if there is none."""
        with self._lock:
            try:
                row = self._find_row(poi)
                if row is None:
                    logger.warning("No favorite matches %r; note not saved", poi.name)
                    return False
                self._conn.execute(
                    "UPDATE favorites SET note = ?, updated_at = ? WHERE id = ?",
                    (note, datetime.utcnow().isoformat(), row["id"]),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                self._rollback()
                logger.warning("Failed to update note for %r: %s", poi.name, e)
                raise StorageError("update", str(e)) from e
        return True

    def is_favorite(self, poi: POI) -> bool:
        with self._lock:
            try:
                return self._find_row(poi) is not None
            except sqlite3.Error as e:
                raise StorageError("load", str(e)) from e

    def count(self) -> int:
        """Total number of stored favorites."""
        with self._lock:
            try:
                row = self._conn.execute("SELECT COUNT(*) as cnt FROM favorites").fetchone()
            except sqlite3.Error as e:
                raise StorageError("load", str(e)) from e
        return row["cnt"]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
