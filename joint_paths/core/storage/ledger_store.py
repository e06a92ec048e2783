from __future__ import annotations

import json
import sqlite3
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from joint_paths.core.engine.ledger import PositionLedger
from joint_paths.core.errors import check_invariant

MEMORY = ":memory:"


def _utc_epoch_s() -> int:
    return int(time.time())


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False, default=str)


@dataclass(frozen=True)
class LedgerEventRow:
    id: int
    joint_id: str
    operation: str
    version: int
    payload: dict[str, Any]
    created_at: int


class LedgerStore:
    """Durable keyed store for position ledgers.

    Every write goes through ``save`` with the version the caller loaded; a
    stale version means another operation committed in between.
    """

    def __init__(self, db_path: Path | str) -> None:
        self._in_memory = str(db_path) == MEMORY
        self._db_path = Path(db_path) if not self._in_memory else None
        if self._db_path is not None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            MEMORY if self._in_memory else str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # autocommit
        )
        self._conn.row_factory = sqlite3.Row
        with self._lock:
            self._init_schema()

    @property
    def path(self) -> Path | None:
        return self._db_path

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _init_schema(self) -> None:
        cur = self._conn.cursor()
        if not self._in_memory:
            cur.execute("PRAGMA journal_mode=WAL;")
        cur.execute("PRAGMA foreign_keys=ON;")
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS ledgers (
              joint_id TEXT PRIMARY KEY,
              version INTEGER NOT NULL,
              ledger_json TEXT NOT NULL,
              created_at INTEGER NOT NULL,
              updated_at INTEGER NOT NULL
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS ledger_events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              joint_id TEXT NOT NULL,
              operation TEXT NOT NULL,
              version INTEGER NOT NULL,
              payload_json TEXT NOT NULL,
              created_at INTEGER NOT NULL,
              FOREIGN KEY(joint_id) REFERENCES ledgers(joint_id) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_ledger_events_joint ON ledger_events(joint_id, id);"
        )

    def create(self, ledger: PositionLedger) -> PositionLedger:
        now = _utc_epoch_s()
        with self._lock:
            try:
                self._conn.execute(
                    """
                    INSERT INTO ledgers(joint_id, version, ledger_json, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        ledger.joint_id,
                        int(ledger.version),
                        ledger.model_dump_json(),
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError(f"Joint already initialized: {ledger.joint_id}") from exc
        logger.info(f"Created ledger {ledger.joint_id}")
        return ledger

    def load(self, joint_id: str) -> PositionLedger:
        with self._lock:
            row = self._conn.execute(
                "SELECT version, ledger_json FROM ledgers WHERE joint_id = ?",
                (joint_id,),
            ).fetchone()
        if row is None:
            raise KeyError(f"Unknown joint: {joint_id}")
        ledger = PositionLedger.model_validate_json(row["ledger_json"])
        check_invariant(
            ledger.version == int(row["version"]),
            f"stored version mismatch for {joint_id}",
        )
        return ledger

    def save(self, ledger: PositionLedger, *, expected_version: int) -> PositionLedger:
        """Write ``ledger`` if the stored version still equals ``expected_version``.

        Returns the committed copy, whose ``version`` is ``expected_version + 1``.
        """
        committed = ledger.model_copy(update={"version": int(expected_version) + 1})
        with self._lock:
            cur = self._conn.execute(
                """
                UPDATE ledgers
                SET version = ?, ledger_json = ?, updated_at = ?
                WHERE joint_id = ? AND version = ?
                """,
                (
                    committed.version,
                    committed.model_dump_json(),
                    _utc_epoch_s(),
                    committed.joint_id,
                    int(expected_version),
                ),
            )
            updated = int(cur.rowcount or 0)
        check_invariant(
            updated == 1,
            f"stale write for {ledger.joint_id} (expected version {expected_version})",
        )
        return committed

    def list_ids(self) -> list[str]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT joint_id FROM ledgers ORDER BY created_at, joint_id"
            ).fetchall()
        return [str(r["joint_id"]) for r in rows]

    def delete(self, joint_id: str) -> bool:
        with self._lock:
            cur = self._conn.execute(
                "DELETE FROM ledgers WHERE joint_id = ?", (joint_id,)
            )
            return int(cur.rowcount or 0) > 0

    def record_event(
        self,
        joint_id: str,
        operation: str,
        *,
        version: int,
        payload: dict[str, Any],
    ) -> int:
        with self._lock:
            cur = self._conn.execute(
                """
                INSERT INTO ledger_events(joint_id, operation, version, payload_json, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (joint_id, operation, int(version), _json_dumps(payload), _utc_epoch_s()),
            )
            return int(cur.lastrowid)

    def events(self, joint_id: str, *, limit: int = 100) -> list[LedgerEventRow]:
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT id, joint_id, operation, version, payload_json, created_at
                FROM ledger_events
                WHERE joint_id = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (joint_id, int(limit)),
            ).fetchall()
        return [
            LedgerEventRow(
                id=int(r["id"]),
                joint_id=str(r["joint_id"]),
                operation=str(r["operation"]),
                version=int(r["version"]),
                payload=json.loads(r["payload_json"]),
                created_at=int(r["created_at"]),
            )
            for r in rows
        ]
