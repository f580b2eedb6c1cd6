# sales_tracker/stores.py
"""
Storage adapters used by the auth manager

- SqlUserStore: account lookups and writes (users table)
- SqlCredentialStore: password records (user_passwords table)
- MemorySessionStorage / StreamlitSessionStorage: tab-scoped key/value
  stores holding the serialized session

The SQL stores accept an engine so tests can hand in an in-memory SQLite
engine; by default they use the shared engine from sales_tracker.db.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Engine

from .constants import CREDENTIAL_HASHED, CREDENTIAL_PLAIN
from .db import get_connection, get_db_engine, get_transaction, users_table, user_passwords_table
from .models import CredentialRecord, User
from .passwords import PasswordHasher

logger = logging.getLogger(__name__)

USER_FIELDS = ('username', 'name', 'email', 'role', 'is_active', 'team_id', 'is_hidden')


def _row_to_user(row) -> User:
    data = dict(row._mapping)
    return User(
        id=data['id'],
        username=data['username'],
        name=data['name'],
        email=data.get('email'),
        role=data['role'],
        is_active=bool(data['is_active']),
        team_id=data.get('team_id'),
        is_hidden=bool(data['is_hidden']),
        created_at=data.get('created_at'),
    )


# ==================== USER STORE ====================

class SqlUserStore:
    """Accounts in the `users` table"""

    def __init__(self, engine: Optional[Engine] = None):
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine or get_db_engine()

    def get_by_username(self, username: str) -> Optional[User]:
        query = select(users_table).where(users_table.c.username == username)
        with get_connection(self.engine) as conn:
            row = conn.execute(query).fetchone()
        return _row_to_user(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        query = select(users_table).where(users_table.c.id == user_id)
        with get_connection(self.engine) as conn:
            row = conn.execute(query).fetchone()
        return _row_to_user(row) if row else None

    def list_users(self, include_hidden: bool = False,
                   team_id: Optional[int] = None) -> List[User]:
        query = select(users_table).order_by(users_table.c.name)
        if not include_hidden:
            query = query.where(users_table.c.is_hidden.is_(False))
        if team_id is not None:
            query = query.where(users_table.c.team_id == team_id)

        with get_connection(self.engine) as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_user(row) for row in rows]

    def count_users(self) -> int:
        with get_connection(self.engine) as conn:
            return conn.execute(select(func.count()).select_from(users_table)).scalar_one()

    def is_initialized(self) -> bool:
        """True once at least one account has been seeded"""
        return self.count_users() > 0

    def username_exists(self, username: str, exclude_id: Optional[int] = None) -> bool:
        query = select(func.count()).select_from(users_table).where(
            users_table.c.username == username
        )
        if exclude_id is not None:
            query = query.where(users_table.c.id != exclude_id)

        with get_connection(self.engine) as conn:
            return conn.execute(query).scalar_one() > 0

    def insert_user(self, user: User, conn=None) -> int:
        now = datetime.now()
        values = {name: getattr(user, name) for name in USER_FIELDS}
        values['created_at'] = user.created_at or now
        values['updated_at'] = now

        if conn is not None:
            result = conn.execute(insert(users_table).values(**values))
            return result.inserted_primary_key[0]

        with get_transaction(self.engine) as tx:
            result = tx.execute(insert(users_table).values(**values))
            return result.inserted_primary_key[0]

    def update_user(self, user_id: int, fields: Dict[str, Any], conn=None) -> int:
        unknown = set(fields) - set(USER_FIELDS)
        if unknown:
            raise ValueError(f"Unknown user fields: {', '.join(sorted(unknown))}")

        values = dict(fields, updated_at=datetime.now())
        statement = update(users_table).where(users_table.c.id == user_id).values(**values)

        if conn is not None:
            return conn.execute(statement).rowcount

        with get_transaction(self.engine) as tx:
            return tx.execute(statement).rowcount

    def delete_user(self, user_id: int, conn=None) -> int:
        statement = delete(users_table).where(users_table.c.id == user_id)

        if conn is not None:
            return conn.execute(statement).rowcount

        with get_transaction(self.engine) as tx:
            return tx.execute(statement).rowcount


# ==================== CREDENTIAL STORE ====================

class SqlCredentialStore:
    """
    Password records in the `user_passwords` table.

    Each row carries an explicit `format`: 'hashed' rows hold a bcrypt
    hash, 'plain' rows are legacy cleartext waiting for lazy migration.
    """

    def __init__(self, engine: Optional[Engine] = None,
                 hasher: Optional[PasswordHasher] = None):
        self._engine = engine
        self.hasher = hasher or PasswordHasher()

    @property
    def engine(self) -> Engine:
        return self._engine or get_db_engine()

    # ---------- hash primitive ----------

    def hash(self, password: str) -> str:
        return self.hasher.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        return self.hasher.verify(password, password_hash)

    # ---------- records ----------

    def get_credential(self, username: str) -> Optional[CredentialRecord]:
        query = select(user_passwords_table).where(user_passwords_table.c.username == username)
        with get_connection(self.engine) as conn:
            row = conn.execute(query).fetchone()
        if not row:
            return None
        data = row._mapping
        return CredentialRecord(
            username=data['username'],
            secret=data['secret'],
            format=data['format'] or CREDENTIAL_HASHED,
        )

    def get_hash(self, username: str) -> Optional[str]:
        record = self.get_credential(username)
        if record is None or record.format != CREDENTIAL_HASHED:
            return None
        return record.secret

    def set_hash(self, username: str, password_hash: str, conn=None) -> None:
        self._upsert(username, password_hash, CREDENTIAL_HASHED, conn)

    def set_password(self, username: str, password: str, conn=None) -> None:
        """Hash and store; replaces any existing record (plain or hashed)"""
        self._upsert(username, self.hash(password), CREDENTIAL_HASHED, conn)

    def set_legacy_plaintext(self, username: str, password: str, conn=None) -> None:
        """Import path for records migrated from the old plaintext table"""
        self._upsert(username, password, CREDENTIAL_PLAIN, conn)

    def rename(self, old_username: str, new_username: str, conn=None) -> int:
        """Move a record to a new username, keeping the stored secret"""
        statement = (
            update(user_passwords_table)
            .where(user_passwords_table.c.username == old_username)
            .values(username=new_username, updated_at=datetime.now())
        )
        if conn is not None:
            return conn.execute(statement).rowcount
        with get_transaction(self.engine) as tx:
            return tx.execute(statement).rowcount

    def delete(self, username: str, conn=None) -> int:
        statement = delete(user_passwords_table).where(user_passwords_table.c.username == username)
        if conn is not None:
            return conn.execute(statement).rowcount
        with get_transaction(self.engine) as tx:
            return tx.execute(statement).rowcount

    def _upsert(self, username: str, secret: str, fmt: str, conn=None) -> None:
        if conn is None:
            with get_transaction(self.engine) as tx:
                self._upsert(username, secret, fmt, tx)
            return

        now = datetime.now()
        updated = conn.execute(
            update(user_passwords_table)
            .where(user_passwords_table.c.username == username)
            .values(secret=secret, format=fmt, updated_at=now)
        ).rowcount

        if not updated:
            conn.execute(
                insert(user_passwords_table).values(
                    username=username, secret=secret, format=fmt,
                    created_at=now, updated_at=now,
                )
            )


# ==================== TAB-SCOPED SESSION STORAGE ====================

class MemorySessionStorage:
    """Process-local store; lives exactly as long as the object"""

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def clear(self) -> None:
        self._items.clear()


class StreamlitSessionStorage:
    """
    Store backed by st.session_state.

    Streamlit keeps session_state per browser tab and drops it when the
    tab's websocket session ends. Keys are namespaced so clear() only
    removes what this store wrote, leaving widget state alone.
    """

    def __init__(self, namespace: str = "tab_store"):
        self.namespace = namespace

    @property
    def _state(self):
        import streamlit as st
        return st.session_state

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get_item(self, key: str) -> Optional[str]:
        return self._state.get(self._key(key))

    def set_item(self, key: str, value: str) -> None:
        self._state[self._key(key)] = value

    def clear(self) -> None:
        prefix = f"{self.namespace}:"
        for key in [k for k in self._state.keys() if str(k).startswith(prefix)]:
            del self._state[key]


__all__ = [
    'SqlUserStore',
    'SqlCredentialStore',
    'MemorySessionStorage',
    'StreamlitSessionStorage',
]
