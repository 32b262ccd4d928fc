"""
LedgerStore - Documents for the progression engine in ~/.eduledger/ledger.db.

Stores each entity as a JSON document next to the columns it is queried by:
- Curricula (catalog, read-only to the engine)
- Subscriptions and groups (versioned, compare-and-swap writes)
- Attendance sessions (append-only)
- Credit history (append-only)
- Group promotion sagas (resumable by token)
"""

import sqlite3
from pathlib import Path
from typing import Optional

from eduledger.config import DEFAULT_DB_PATH
from eduledger.schemas import (
    AttendanceSession,
    CreditHistoryEntry,
    Curriculum,
    Group,
    GroupPromotionSaga,
    SagaStatus,
    Subscription,
    SubscriptionStatus,
)

from .errors import ConcurrencyConflictError


SCHEMA = """
CREATE TABLE IF NOT EXISTS curricula (
    id TEXT PRIMARY KEY,
    document JSON NOT NULL
);

CREATE TABLE IF NOT EXISTS subscriptions (
    id TEXT PRIMARY KEY,
    student_id TEXT NOT NULL,
    curriculum_id TEXT NOT NULL,
    status TEXT NOT NULL,
    version INTEGER NOT NULL DEFAULT 0,
    document JSON NOT NULL
);

CREATE TABLE IF NOT EXISTS curriculum_groups (
    id TEXT PRIMARY KEY,
    curriculum_id TEXT NOT NULL,
    status TEXT NOT NULL,
    version INTEGER NOT NULL DEFAULT 0,
    document JSON NOT NULL
);

CREATE TABLE IF NOT EXISTS attendance_sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    curriculum_id TEXT NOT NULL,
    group_id TEXT,
    level INTEGER NOT NULL,
    session_number INTEGER NOT NULL,
    document JSON NOT NULL
);

CREATE TABLE IF NOT EXISTS credit_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    student_id TEXT NOT NULL,
    subscription_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    document JSON NOT NULL
);

CREATE TABLE IF NOT EXISTS group_promotions (
    token TEXT PRIMARY KEY,
    group_id TEXT NOT NULL,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    document JSON NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_subscriptions_student
ON subscriptions(student_id, curriculum_id);

CREATE INDEX IF NOT EXISTS idx_groups_curriculum
ON curriculum_groups(curriculum_id);

CREATE INDEX IF NOT EXISTS idx_attendance_curriculum_level
ON attendance_sessions(curriculum_id, level);

CREATE INDEX IF NOT EXISTS idx_group_promotions_status
ON group_promotions(status);
"""


class LedgerStore:
    """
    Persist engine documents in SQLite.

    Each method opens its own connection. Multi-document writes that must
    land together share one connection and a single commit.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize store.

        Args:
            db_path: Path to ledger.db (default: ~/.eduledger/ledger.db)
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self._ensure_database()

    def _ensure_database(self):
        """Create database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    # -------------------------------------------------------------------------
    # Curricula
    # -------------------------------------------------------------------------

    def put_curriculum(self, curriculum: Curriculum):
        """Insert or replace a curriculum definition."""
        conn = self._get_connection()
        try:
            conn.execute(
                """INSERT INTO curricula (id, document) VALUES (?, ?)
                   ON CONFLICT(id) DO UPDATE SET document = excluded.document""",
                (curriculum.id, curriculum.model_dump_json())
            )
            conn.commit()
        finally:
            conn.close()

    def get_curriculum(self, curriculum_id: str) -> Optional[Curriculum]:
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT document FROM curricula WHERE id = ?", (curriculum_id,)
            ).fetchone()
            return Curriculum.model_validate_json(row["document"]) if row else None
        finally:
            conn.close()

    def list_curricula(self) -> list[Curriculum]:
        conn = self._get_connection()
        try:
            rows = conn.execute("SELECT document FROM curricula ORDER BY id").fetchall()
            return [Curriculum.model_validate_json(row["document"]) for row in rows]
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def create_subscription(self, subscription: Subscription) -> Subscription:
        """Insert a new subscription at version 0."""
        stored = subscription.model_copy(update={"version": 0})
        conn = self._get_connection()
        try:
            conn.execute(
                """INSERT INTO subscriptions (id, student_id, curriculum_id, status, version, document)
                   VALUES (?, ?, ?, ?, 0, ?)""",
                (stored.id, stored.student_id, stored.curriculum_id,
                 stored.status.value, stored.model_dump_json())
            )
            conn.commit()
        finally:
            conn.close()
        return stored

    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT document FROM subscriptions WHERE id = ?", (subscription_id,)
            ).fetchone()
            return Subscription.model_validate_json(row["document"]) if row else None
        finally:
            conn.close()

    def find_active_subscription(self, student_id: str, curriculum_id: str) -> Optional[Subscription]:
        """Return the student's active subscription to a curriculum, if any."""
        conn = self._get_connection()
        try:
            row = conn.execute(
                """SELECT document FROM subscriptions
                   WHERE student_id = ? AND curriculum_id = ? AND status = ?
                   ORDER BY id LIMIT 1""",
                (student_id, curriculum_id, SubscriptionStatus.ACTIVE.value)
            ).fetchone()
            return Subscription.model_validate_json(row["document"]) if row else None
        finally:
            conn.close()

    def list_subscriptions(
        self,
        curriculum_id: Optional[str] = None,
        status: Optional[SubscriptionStatus] = None,
    ) -> list[Subscription]:
        query = "SELECT document FROM subscriptions WHERE 1 = 1"
        params: list = []
        if curriculum_id is not None:
            query += " AND curriculum_id = ?"
            params.append(curriculum_id)
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY id"

        conn = self._get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
            return [Subscription.model_validate_json(row["document"]) for row in rows]
        finally:
            conn.close()

    def save_subscription(self, subscription: Subscription) -> Subscription:
        """
        Compare-and-swap write of a subscription.

        Succeeds only if the stored version still equals `subscription.version`.

        Returns:
            The stored subscription with its version bumped

        Raises:
            ConcurrencyConflictError: If another write landed first
        """
        conn = self._get_connection()
        try:
            stored = self._update_subscription(conn, subscription)
            conn.commit()
            return stored
        finally:
            conn.close()

    def _update_subscription(self, conn: sqlite3.Connection, subscription: Subscription) -> Subscription:
        stored = subscription.model_copy(update={"version": subscription.version + 1})
        cursor = conn.execute(
            """UPDATE subscriptions
               SET status = ?, version = ?, document = ?
               WHERE id = ? AND version = ?""",
            (stored.status.value, stored.version, stored.model_dump_json(),
             subscription.id, subscription.version)
        )
        if cursor.rowcount != 1:
            raise ConcurrencyConflictError("Subscription", subscription.id, subscription.version)
        return stored

    # -------------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------------

    def create_group(self, group: Group) -> Group:
        stored = group.model_copy(update={"version": 0})
        conn = self._get_connection()
        try:
            conn.execute(
                """INSERT INTO curriculum_groups (id, curriculum_id, status, version, document)
                   VALUES (?, ?, ?, 0, ?)""",
                (stored.id, stored.curriculum_id, stored.status.value, stored.model_dump_json())
            )
            conn.commit()
        finally:
            conn.close()
        return stored

    def get_group(self, group_id: str) -> Optional[Group]:
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT document FROM curriculum_groups WHERE id = ?", (group_id,)
            ).fetchone()
            return Group.model_validate_json(row["document"]) if row else None
        finally:
            conn.close()

    def list_groups(self, curriculum_id: Optional[str] = None) -> list[Group]:
        conn = self._get_connection()
        try:
            if curriculum_id is None:
                rows = conn.execute("SELECT document FROM curriculum_groups ORDER BY id").fetchall()
            else:
                rows = conn.execute(
                    "SELECT document FROM curriculum_groups WHERE curriculum_id = ? ORDER BY id",
                    (curriculum_id,)
                ).fetchall()
            return [Group.model_validate_json(row["document"]) for row in rows]
        finally:
            conn.close()

    def save_group(self, group: Group) -> Group:
        """Compare-and-swap write of a group (see save_subscription)."""
        conn = self._get_connection()
        try:
            stored = self._update_group(conn, group)
            conn.commit()
            return stored
        finally:
            conn.close()

    def _update_group(self, conn: sqlite3.Connection, group: Group) -> Group:
        stored = group.model_copy(update={"version": group.version + 1})
        cursor = conn.execute(
            """UPDATE curriculum_groups
               SET status = ?, version = ?, document = ?
               WHERE id = ? AND version = ?""",
            (stored.status.value, stored.version, stored.model_dump_json(),
             group.id, group.version)
        )
        if cursor.rowcount != 1:
            raise ConcurrencyConflictError("Group", group.id, group.version)
        return stored

    # -------------------------------------------------------------------------
    # Attendance
    # -------------------------------------------------------------------------

    def add_attendance_session(self, session: AttendanceSession) -> AttendanceSession:
        """Append an attendance session and return it with its assigned id."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """INSERT INTO attendance_sessions (curriculum_id, group_id, level, session_number, document)
                   VALUES (?, ?, ?, ?, ?)""",
                (session.curriculum_id, session.group_id, session.level,
                 session.session_number, session.model_dump_json())
            )
            conn.commit()
            return session.model_copy(update={"id": cursor.lastrowid})
        finally:
            conn.close()

    def list_attendance_sessions(
        self,
        curriculum_id: str,
        level: Optional[int] = None,
        group_id: Optional[str] = None,
    ) -> list[AttendanceSession]:
        query = "SELECT id, document FROM attendance_sessions WHERE curriculum_id = ?"
        params: list = [curriculum_id]
        if level is not None:
            query += " AND level = ?"
            params.append(level)
        if group_id is not None:
            query += " AND group_id = ?"
            params.append(group_id)
        query += " ORDER BY level, session_number, id"

        conn = self._get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
            return [
                AttendanceSession.model_validate_json(row["document"]).model_copy(update={"id": row["id"]})
                for row in rows
            ]
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Credit history
    # -------------------------------------------------------------------------

    def add_credit_with_history(
        self,
        top_ups: list[tuple[Subscription, CreditHistoryEntry]],
    ) -> list[tuple[Subscription, CreditHistoryEntry]]:
        """
        Write a batch of credit top-ups and their history entries in one transaction.

        A version conflict on any subscription leaves the whole batch unwritten.
        """
        conn = self._get_connection()
        try:
            written = []
            for subscription, entry in top_ups:
                stored = self._update_subscription(conn, subscription)
                cursor = conn.execute(
                    """INSERT INTO credit_history (student_id, subscription_id, created_at, document)
                       VALUES (?, ?, ?, ?)""",
                    (entry.student_id, entry.subscription_id,
                     entry.created_at.isoformat(), entry.model_dump_json())
                )
                written.append((stored, entry.model_copy(update={"id": cursor.lastrowid})))
            conn.commit()
            return written
        finally:
            conn.close()

    def list_credit_history(self, student_id: Optional[str] = None) -> list[CreditHistoryEntry]:
        """Return credit history, newest first."""
        conn = self._get_connection()
        try:
            if student_id is None:
                rows = conn.execute(
                    "SELECT id, document FROM credit_history ORDER BY created_at DESC, id DESC"
                ).fetchall()
            else:
                rows = conn.execute(
                    """SELECT id, document FROM credit_history
                       WHERE student_id = ? ORDER BY created_at DESC, id DESC""",
                    (student_id,)
                ).fetchall()
            return [
                CreditHistoryEntry.model_validate_json(row["document"]).model_copy(update={"id": row["id"]})
                for row in rows
            ]
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Group promotion sagas
    # -------------------------------------------------------------------------

    def create_saga(self, saga: GroupPromotionSaga) -> GroupPromotionSaga:
        """
        Persist a new saga, or return the existing one for the same token.

        The selection is persisted before any student is promoted.
        """
        conn = self._get_connection()
        try:
            conn.execute(
                """INSERT OR IGNORE INTO group_promotions (token, group_id, status, created_at, document)
                   VALUES (?, ?, ?, ?, ?)""",
                (saga.token, saga.group_id, saga.status.value,
                 saga.created_at.isoformat(), saga.model_dump_json())
            )
            conn.commit()
            row = conn.execute(
                "SELECT document FROM group_promotions WHERE token = ?", (saga.token,)
            ).fetchone()
            return GroupPromotionSaga.model_validate_json(row["document"])
        finally:
            conn.close()

    def get_saga(self, token: str) -> Optional[GroupPromotionSaga]:
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT document FROM group_promotions WHERE token = ?", (token,)
            ).fetchone()
            return GroupPromotionSaga.model_validate_json(row["document"]) if row else None
        finally:
            conn.close()

    def list_sagas(self, status: Optional[SagaStatus] = None) -> list[GroupPromotionSaga]:
        conn = self._get_connection()
        try:
            if status is None:
                rows = conn.execute(
                    "SELECT document FROM group_promotions ORDER BY created_at"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT document FROM group_promotions WHERE status = ? ORDER BY created_at",
                    (status.value,)
                ).fetchall()
            return [GroupPromotionSaga.model_validate_json(row["document"]) for row in rows]
        finally:
            conn.close()

    def save_saga_step(
        self,
        saga: GroupPromotionSaga,
        subscription: Optional[Subscription] = None,
        group: Optional[Group] = None,
    ) -> tuple[GroupPromotionSaga, Optional[Subscription], Optional[Group]]:
        """
        Record one saga step together with the document it changed.

        The subscription/group write and the saga update commit together, so
        a crash never leaves a student promoted but unrecorded.
        """
        conn = self._get_connection()
        try:
            stored_subscription = self._update_subscription(conn, subscription) if subscription else None
            stored_group = self._update_group(conn, group) if group else None
            conn.execute(
                "UPDATE group_promotions SET status = ?, document = ? WHERE token = ?",
                (saga.status.value, saga.model_dump_json(), saga.token)
            )
            conn.commit()
            return saga, stored_subscription, stored_group
        finally:
            conn.close()
