import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Union

from ...domain.errors import NotFoundError
from ...domain.models import SubjectRef, Subscription, Transaction
from ...domain.ports.persistence import PersistenceGateway


class SQLitePersistence(PersistenceGateway):
    """SQLite-backed implementation of the persistence gateway."""

    def __init__(self, path: Union[Path, str]) -> None:
        if str(path) != ":memory:":
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS subscriptions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    subject_type TEXT NOT NULL,
                    subject_id TEXT NOT NULL,
                    plan_key TEXT NOT NULL,
                    starts_at TEXT NOT NULL,
                    billing_starts_at TEXT NOT NULL,
                    activated_at TEXT,
                    canceled_at TEXT,
                    cancel_reason TEXT,
                    paypal_profile_id TEXT,
                    sponsored INTEGER NOT NULL DEFAULT 0,
                    prev_subscription_id INTEGER,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(prev_subscription_id) REFERENCES subscriptions(id)
                );

                CREATE INDEX IF NOT EXISTS idx_subscriptions_subject
                    ON subscriptions(subject_type, subject_id);

                CREATE INDEX IF NOT EXISTS idx_subscriptions_prev
                    ON subscriptions(prev_subscription_id);

                CREATE TABLE IF NOT EXISTS subscription_transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    subscription_id INTEGER NOT NULL,
                    action TEXT NOT NULL,
                    gateway TEXT NOT NULL,
                    initiator TEXT,
                    status TEXT NOT NULL,
                    identifier TEXT,
                    related_transaction_id INTEGER,
                    reason TEXT,
                    error TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY(subscription_id) REFERENCES subscriptions(id),
                    FOREIGN KEY(related_transaction_id) REFERENCES subscription_transactions(id)
                );

                CREATE INDEX IF NOT EXISTS idx_subscription_transactions_related
                    ON subscription_transactions(related_transaction_id);
                """
            )

    def close(self) -> None:
        self._conn.close()

    # SubscriptionRepository API ---------------------------------------------
    def add_subscription(self, subscription: Subscription) -> Subscription:
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                INSERT INTO subscriptions (
                    subject_type, subject_id, plan_key, starts_at, billing_starts_at,
                    activated_at, canceled_at, cancel_reason, paypal_profile_id,
                    sponsored, prev_subscription_id, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    subscription.subject.entity_type,
                    subscription.subject.entity_id,
                    subscription.plan_key,
                    _to_iso(subscription.starts_at),
                    _to_iso(subscription.billing_starts_at),
                    _to_iso(subscription.activated_at),
                    _to_iso(subscription.canceled_at),
                    subscription.cancel_reason,
                    subscription.paypal_profile_id,
                    int(subscription.sponsored),
                    subscription.prev_subscription_id,
                    _to_iso(subscription.created_at),
                    _to_iso(subscription.updated_at),
                ),
            )
            subscription.id = cur.lastrowid
        return subscription

    def save_subscription(self, subscription: Subscription) -> Subscription:
        if subscription.id is None:
            return self.add_subscription(subscription)
        subscription.updated_at = datetime.now(timezone.utc)
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                UPDATE subscriptions
                SET activated_at = ?, canceled_at = ?, cancel_reason = ?,
                    paypal_profile_id = ?, sponsored = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    _to_iso(subscription.activated_at),
                    _to_iso(subscription.canceled_at),
                    subscription.cancel_reason,
                    subscription.paypal_profile_id,
                    int(subscription.sponsored),
                    _to_iso(subscription.updated_at),
                    subscription.id,
                ),
            )
        if cur.rowcount == 0:
            raise NotFoundError(resource="Subscription", resource_id=subscription.id)
        return subscription

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        with self._lock:
            cur = self._conn.execute("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,))
            row = cur.fetchone()
        return self._row_to_subscription(row) if row else None

    def list_next_subscriptions(
        self,
        prev_subscription_id: int,
        exclude_id: Optional[int] = None,
    ) -> List[Subscription]:
        query = "SELECT * FROM subscriptions WHERE prev_subscription_id = ?"
        params: List[Any] = [prev_subscription_id]
        if exclude_id is not None:
            query += " AND id <> ?"
            params.append(exclude_id)
        query += " ORDER BY created_at ASC, id ASC"
        with self._lock:
            cur = self._conn.execute(query, params)
            rows = cur.fetchall()
        return [self._row_to_subscription(row) for row in rows]

    # TransactionRepository API ----------------------------------------------
    def add_transaction(self, transaction: Transaction) -> Transaction:
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                INSERT INTO subscription_transactions (
                    subscription_id, action, gateway, initiator, status, identifier,
                    related_transaction_id, reason, error, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    transaction.subscription_id,
                    transaction.action.value,
                    transaction.gateway,
                    transaction.initiator,
                    transaction.status.value,
                    transaction.identifier,
                    transaction.related_transaction_id,
                    transaction.reason,
                    transaction.error,
                    _to_iso(transaction.created_at),
                    _to_iso(transaction.updated_at),
                ),
            )
            transaction.id = cur.lastrowid
        return transaction

    def save_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id is None:
            return self.add_transaction(transaction)
        transaction.updated_at = datetime.now(timezone.utc)
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                UPDATE subscription_transactions
                SET status = ?, identifier = ?, reason = ?, error = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    transaction.status.value,
                    transaction.identifier,
                    transaction.reason,
                    transaction.error,
                    _to_iso(transaction.updated_at),
                    transaction.id,
                ),
            )
        if cur.rowcount == 0:
            raise NotFoundError(resource="Transaction", resource_id=transaction.id)
        return transaction

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT * FROM subscription_transactions WHERE id = ?", (transaction_id,)
            )
            row = cur.fetchone()
        return self._row_to_transaction(row) if row else None

    def list_related_transactions(self, transaction_id: int) -> List[Transaction]:
        with self._lock:
            cur = self._conn.execute(
                """
                SELECT * FROM subscription_transactions
                WHERE related_transaction_id = ?
                ORDER BY created_at ASC, id ASC
                """,
                (transaction_id,),
            )
            rows = cur.fetchall()
        return [self._row_to_transaction(row) for row in rows]

    # ------------------------------------------------------------------------
    @staticmethod
    def _row_to_subscription(row: sqlite3.Row) -> Subscription:
        return Subscription(
            id=row["id"],
            subject=SubjectRef(row["subject_type"], row["subject_id"]),
            plan_key=row["plan_key"],
            starts_at=_from_iso(row["starts_at"]),
            billing_starts_at=_from_iso(row["billing_starts_at"]),
            activated_at=_from_iso(row["activated_at"]),
            canceled_at=_from_iso(row["canceled_at"]),
            cancel_reason=row["cancel_reason"],
            paypal_profile_id=row["paypal_profile_id"],
            sponsored=bool(row["sponsored"]),
            prev_subscription_id=row["prev_subscription_id"],
            created_at=_from_iso(row["created_at"]),
            updated_at=_from_iso(row["updated_at"]),
        )

    @staticmethod
    def _row_to_transaction(row: sqlite3.Row) -> Transaction:
        return Transaction(
            id=row["id"],
            subscription_id=row["subscription_id"],
            action=row["action"],
            gateway=row["gateway"],
            initiator=row["initiator"],
            status=row["status"],
            identifier=row["identifier"],
            related_transaction_id=row["related_transaction_id"],
            reason=row["reason"],
            error=row["error"],
            created_at=_from_iso(row["created_at"]),
            updated_at=_from_iso(row["updated_at"]),
        )


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None
