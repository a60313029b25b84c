"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Emails are lower-cased on every write and lookup so "A@B.com" and "a@b.com"
  are the same account. The UNIQUE constraint on email therefore also rejects
  case variants.

  The reset token column only ever holds a SHA-256 digest. Matching by
  digest keeps the raw token out of the database; a leaked row cannot be
  replayed against /resetPassword.

Default DB path: auth/gatekeeper.db (overridable via DATABASE_URL).

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine

from auth.models import Role, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.user.value),
    Column("password_changed_at", String(32)),
    Column("password_reset_token", String(64), index=True),  # SHA-256 hex
    Column("password_reset_expires", String(32)),
    Column("active", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        user_id = store.create_user(User(name="Ada", email="ada@example.com", hashed_password=hash_password("s3cret!!")))
        user = store.get_by_email("ada@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        return result or 0

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        The signup route lets it propagate; the API's exception handler
        turns it into 409.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=user.name,
                    email=_normalize_email(user.email),
                    hashed_password=user.hashed_password,
                    role=user.role,
                    password_changed_at=user.password_changed_at,
                    active=1 if user.active else 0,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == _normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_reset_token(self, token_hash: str, now: datetime | None = None) -> User | None:
        """Return the user holding this reset token digest, if it has not expired.

        Expiry is compared as datetimes rather than in SQL: isoformat() drops
        the fractional part when microseconds are zero, so the stored strings
        do not sort reliably.
        """
        now = now or datetime.now(timezone.utc)
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.password_reset_token == token_hash)).fetchone()
        if row is None or not row.password_reset_expires:
            return None
        if datetime.fromisoformat(row.password_reset_expires) <= now:
            return None
        return _row_to_user(row)

    def list_users(self) -> list[User]:
        """Return all users ordered by email. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.email)).fetchall()
        return [_row_to_user(r) for r in rows]

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def set_password_reset(self, user_id: int, token_hash: str, expires: datetime) -> None:
        """Store a reset token digest and its expiry.

        Writes the two columns directly; no signup-level validation runs here.
        """
        with self.engine.connect() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(password_reset_token=token_hash, password_reset_expires=expires.isoformat())
            )
            conn.commit()

    def clear_password_reset(self, user_id: int) -> None:
        with self.engine.connect() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(password_reset_token=None, password_reset_expires=None)
            )
            conn.commit()

    def update_password(self, user_id: int, hashed_password: str, changed_at: datetime) -> bool:
        """Replace the password hash, stamp password_changed_at and drop any reset token.

        Returns True if a row was updated, False if user_id was not found.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(
                    hashed_password=hashed_password,
                    password_changed_at=changed_at.isoformat(),
                    password_reset_token=None,
                    password_reset_expires=None,
                )
            )
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Outstanding tokens for the user stop working immediately: protect()
        re-reads the user on every request.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        role=row.role,
        password_changed_at=row.password_changed_at,
        password_reset_token=row.password_reset_token,
        password_reset_expires=row.password_reset_expires,
        active=bool(row.active),
        created_at=row.created_at,
    )
