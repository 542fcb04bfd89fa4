"""PostgreSQL repositories.

Each repository extends :class:`pypgkit.BaseRepository`; row ↔ entity
mapping follows the schema in ``tgcert/db/schema.sql``.  Partial
updates whitelist column names before building SQL.
"""

from __future__ import annotations

from typing import Any

from pypgkit import BaseRepository, Database

from tgcert.core.types import CertType, OrderStatus, PendingAction, UserRole
from tgcert.models import ActionLogEntry, Order, User

_USER_COLUMNS = frozenset(
    {"external_id", "username", "role", "apply_quota", "pending_action", "pending_order_id"}
)
_ORDER_COLUMNS = frozenset(
    {
        "domain",
        "cert_type",
        "status",
        "txt_host",
        "txt_value",
        "cert_path",
        "key_path",
        "fullchain_path",
        "acme_output",
    }
)


def _to_db(value: Any) -> Any:  # noqa: ANN401
    # StrEnum members are str already; keep None for NULL columns.
    if hasattr(value, "value"):
        return value.value
    return value


def _build_update(table: str, allowed: frozenset[str], key: int, changes: dict) -> tuple[str, list]:
    unknown = set(changes) - allowed
    if unknown:
        msg = f"Unknown or immutable {table} column(s): {sorted(unknown)}"
        raise ValueError(msg)
    set_parts = [f"{col} = %s" for col in changes]
    set_parts.append("updated_at = now()")
    params = [_to_db(v) for v in changes.values()]
    params.append(key)
    sql = f"UPDATE {table} SET {', '.join(set_parts)} WHERE id = %s RETURNING *"  # noqa: S608
    return sql, params


class PostgresUserRepository(BaseRepository[User]):
    table_name = "users"
    primary_key = "id"

    def _row_to_entity(self, row: dict) -> User:
        return User(
            id=row["id"],
            external_id=row["external_id"],
            role=UserRole(row["role"]),
            apply_quota=row["apply_quota"],
            pending_action=PendingAction(row.get("pending_action") or ""),
            pending_order_id=row.get("pending_order_id"),
            username=row.get("username"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _entity_to_row(self, entity: User) -> dict:
        return {
            "id": entity.id,
            "external_id": entity.external_id,
            "username": entity.username,
            "role": entity.role.value,
            "apply_quota": entity.apply_quota,
            "pending_action": entity.pending_action.value,
            "pending_order_id": entity.pending_order_id,
        }

    def find_by_external_id(self, external_id: int) -> User | None:
        """Find a user by Telegram user id."""
        return self.find_one_by({"external_id": external_id})

    def create(
        self,
        *,
        external_id: int,
        role: UserRole,
        apply_quota: int,
        username: str | None = None,
    ) -> User:
        db = Database.get_instance()
        row = db.fetch_one(
            "INSERT INTO users (external_id, username, role, apply_quota) "
            "VALUES (%s, %s, %s, %s) RETURNING *",
            (external_id, username, role.value, apply_quota),
            as_dict=True,
        )
        return self._row_to_entity(row)

    def update(self, user_id: int, **changes: Any) -> User:  # noqa: ANN401
        sql, params = _build_update("users", _USER_COLUMNS, user_id, changes)
        db = Database.get_instance()
        row = db.fetch_one(sql, params, as_dict=True)
        if row is None:
            msg = f"User {user_id} does not exist"
            raise KeyError(msg)
        return self._row_to_entity(row)

    def count(self) -> int:
        db = Database.get_instance()
        result = db.fetch_value("SELECT count(*) FROM users")
        return result if isinstance(result, int) else 0


class PostgresOrderRepository(BaseRepository[Order]):
    table_name = "cert_orders"
    primary_key = "id"

    def _row_to_entity(self, row: dict) -> Order:
        cert_type = row.get("cert_type")
        return Order(
            id=row["id"],
            user_id=row["user_id"],
            domain=row["domain"],
            cert_type=CertType(cert_type) if cert_type else None,
            status=OrderStatus(row["status"]),
            txt_host=row.get("txt_host") or "",
            txt_value=row.get("txt_value") or "",
            cert_path=row.get("cert_path") or "",
            key_path=row.get("key_path") or "",
            fullchain_path=row.get("fullchain_path") or "",
            acme_output=row.get("acme_output") or "",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _entity_to_row(self, entity: Order) -> dict:
        return {
            "id": entity.id,
            "user_id": entity.user_id,
            "domain": entity.domain,
            "cert_type": _to_db(entity.cert_type),
            "status": entity.status.value,
            "txt_host": entity.txt_host,
            "txt_value": entity.txt_value,
            "cert_path": entity.cert_path,
            "key_path": entity.key_path,
            "fullchain_path": entity.fullchain_path,
            "acme_output": entity.acme_output,
        }

    def find_for_user(self, order_id: int, user_id: int) -> Order | None:
        """Find an order only if it belongs to *user_id*."""
        return self.find_one_by({"id": order_id, "user_id": user_id})

    def find_by_domain(self, domain: str, user_id: int | None = None) -> Order | None:
        """Latest order for *domain*, optionally scoped to one user."""
        db = Database.get_instance()
        if user_id is None:
            row = db.fetch_one(
                "SELECT * FROM cert_orders WHERE domain = %s ORDER BY id DESC LIMIT 1",
                (domain,),
                as_dict=True,
            )
        else:
            row = db.fetch_one(
                "SELECT * FROM cert_orders WHERE domain = %s AND user_id = %s "
                "ORDER BY id DESC LIMIT 1",
                (domain, user_id),
                as_dict=True,
            )
        return self._row_to_entity(row) if row else None

    def find_active_by_domain(
        self,
        user_id: int,
        domain: str,
        exclude_id: int | None = None,
    ) -> Order | None:
        db = Database.get_instance()
        row = db.fetch_one(
            "SELECT * FROM cert_orders "
            "WHERE user_id = %s AND domain = %s AND status <> %s "
            "  AND id IS DISTINCT FROM %s::bigint "
            "ORDER BY id LIMIT 1",
            (user_id, domain, OrderStatus.ISSUED.value, exclude_id),
            as_dict=True,
        )
        return self._row_to_entity(row) if row else None

    def find_blank_created(self, user_id: int) -> Order | None:
        db = Database.get_instance()
        row = db.fetch_one(
            "SELECT * FROM cert_orders "
            "WHERE user_id = %s AND status = %s AND domain = '' "
            "ORDER BY id LIMIT 1",
            (user_id, OrderStatus.CREATED.value),
            as_dict=True,
        )
        return self._row_to_entity(row) if row else None

    def list_for_user(self, user_id: int) -> list[Order]:
        db = Database.get_instance()
        rows = db.fetch_all(
            "SELECT * FROM cert_orders WHERE user_id = %s ORDER BY id DESC",
            (user_id,),
            as_dict=True,
        )
        return [self._row_to_entity(r) for r in rows]

    def create(
        self,
        *,
        user_id: int,
        domain: str = "",
        cert_type: CertType | None = None,
    ) -> Order:
        db = Database.get_instance()
        row = db.fetch_one(
            "INSERT INTO cert_orders (user_id, domain, cert_type, status) "
            "VALUES (%s, %s, %s, %s) RETURNING *",
            (user_id, domain, _to_db(cert_type), OrderStatus.CREATED.value),
            as_dict=True,
        )
        return self._row_to_entity(row)

    def update(self, order_id: int, **changes: Any) -> Order:  # noqa: ANN401
        sql, params = _build_update("cert_orders", _ORDER_COLUMNS, order_id, changes)
        db = Database.get_instance()
        row = db.fetch_one(sql, params, as_dict=True)
        if row is None:
            msg = f"Order {order_id} does not exist"
            raise KeyError(msg)
        return self._row_to_entity(row)


class PostgresActionLogRepository(BaseRepository[ActionLogEntry]):
    table_name = "action_logs"
    primary_key = "id"

    def _row_to_entity(self, row: dict) -> ActionLogEntry:
        return ActionLogEntry(
            id=row["id"],
            user_id=row["user_id"],
            action=row["action"],
            detail=row["detail"],
            created_at=row["created_at"],
        )

    def _entity_to_row(self, entity: ActionLogEntry) -> dict:
        return {
            "id": entity.id,
            "user_id": entity.user_id,
            "action": entity.action,
            "detail": entity.detail,
        }

    def append(self, user_id: int, action: str, detail: str) -> ActionLogEntry:
        db = Database.get_instance()
        row = db.fetch_one(
            "INSERT INTO action_logs (user_id, action, detail) VALUES (%s, %s, %s) RETURNING *",
            (user_id, action, detail),
            as_dict=True,
        )
        return self._row_to_entity(row)
