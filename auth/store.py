"""
auth/store.py -- SQLAlchemy Core persistence layer for identities and roles.

Pattern: Repository + Data Mapper (same as catalog/store.py).
UserStore is the repository; _row_to_identity is the mapper.
Route, service and CLI code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Lookups go through normalized_username, which carries the UNIQUE
  constraint, so two registrations differing only in case collide.

Schema:
  users       -- one row per identity; id is a UUID4 string.
  roles       -- static reference set (Administrator, Customer).
  user_roles  -- many-to-many join; composite primary key.

Layer rule: no imports from api/, core/ or catalog/.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    select,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Identity

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'bookstore_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("username", String(256), nullable=False),
    Column("normalized_username", String(256), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_roles = Table(
    "roles",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(64), nullable=False, unique=True),
)

_user_roles = Table(
    "user_roles",
    _metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


# ---------------------------------------------------------------------------
# Connection setup
# ---------------------------------------------------------------------------


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_username(username: str) -> str:
    """Return the lookup form of a login name (trimmed, lowercased)."""
    return username.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for Identity records and their role assignments.

    Usage:
        store = UserStore()
        store.ensure_roles(["Administrator", "Customer"])
        user_id = store.create_user(
            Identity(username="a@b.com", hashed_password=hash_password("Secret123")), roles=["Customer"]
        )
        store.add_to_roles(user_id, ["Administrator"])
        identity = store.get_by_username("a@b.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    def create_user(self, identity: Identity, roles: Iterable[str] = ()) -> str:
        """Insert a new identity with its roles and return its assigned id.

        The user row and its role rows commit together: if the role
        assignment fails, no identity is left behind.

        Raises sqlalchemy.exc.IntegrityError if the normalized login name is
        already taken. Registration pre-checks with get_by_username(); the
        IntegrityError covers the race where two requests pass that check.
        Unknown role names raise ValueError.
        """
        user_id = identity.id or str(uuid.uuid4())
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user_id,
                    username=identity.username.strip(),
                    normalized_username=normalize_username(identity.username),
                    hashed_password=identity.hashed_password,
                    created_at=_now_iso(),
                )
            )
            _assign_roles(conn, user_id, roles)
            conn.commit()
        return user_id

    def get_by_username(self, username: str) -> Identity | None:
        """Look up an identity by login name (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where(_users.c.normalized_username == normalize_username(username))
            ).fetchone()
            if row is None:
                return None
            return _row_to_identity(row, _roles_for(conn, row.id))

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def ensure_roles(self, names: Iterable[str]) -> None:
        """Create any of the given roles that do not exist yet. Idempotent."""
        with self.engine.connect() as conn:
            existing = {r.name for r in conn.execute(select(_roles.c.name)).fetchall()}
            for name in names:
                if name not in existing:
                    conn.execute(_roles.insert().values(name=name))
                    existing.add(name)
            conn.commit()

    def list_roles(self) -> list[str]:
        """Return all known role names in alphabetical order."""
        with self.engine.connect() as conn:
            rows = conn.execute(select(_roles.c.name).order_by(_roles.c.name)).fetchall()
        return [r.name for r in rows]

    def get_roles(self, user_id: str) -> list[str]:
        """Return the role names currently assigned to a user."""
        with self.engine.connect() as conn:
            return _roles_for(conn, user_id)

    def add_to_roles(self, user_id: str, names: Iterable[str]) -> None:
        """Assign roles to a user. Unknown role names raise ValueError.

        Assigning a role the user already holds is a no-op.
        """
        with self.engine.connect() as conn:
            _assign_roles(conn, user_id, names)
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _assign_roles(conn: Connection, user_id: str, names: Iterable[str]) -> None:
    """Insert user_roles rows on conn without committing."""
    wanted = list(dict.fromkeys(names))
    if not wanted:
        return
    rows = conn.execute(select(_roles.c.id, _roles.c.name).where(_roles.c.name.in_(wanted))).fetchall()
    role_ids = {r.name: r.id for r in rows}
    unknown = [n for n in wanted if n not in role_ids]
    if unknown:
        raise ValueError(f"Unknown roles: {unknown!r}")
    held = set(_roles_for(conn, user_id))
    for name in wanted:
        if name in held:
            continue
        try:
            conn.execute(_user_roles.insert().values(user_id=user_id, role_id=role_ids[name]))
        except IntegrityError as exc:
            raise ValueError(f"Unknown user id: {user_id!r}") from exc


def _roles_for(conn: Connection, user_id: str) -> list[str]:
    rows = conn.execute(
        select(_roles.c.name)
        .select_from(_user_roles.join(_roles, _user_roles.c.role_id == _roles.c.id))
        .where(_user_roles.c.user_id == user_id)
        .order_by(_roles.c.name)
    ).fetchall()
    return [r.name for r in rows]


def _row_to_identity(row, roles: list[str]) -> Identity:
    return Identity(
        id=row.id,
        username=row.username,
        normalized_username=row.normalized_username,
        hashed_password=row.hashed_password,
        roles=roles,
        created_at=row.created_at,
    )
