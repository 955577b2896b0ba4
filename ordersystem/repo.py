"""SQLAlchemy repository for the drink catalog and the order ledger.

This module provides the durable ``StorePort`` implementation on top of
SQLAlchemy and PostgreSQL. On startup it waits for the database, creates
the ``drinks`` and ``orders`` tables when they are missing and inserts the
initial menu once. Rows carry ``created_at``/``updated_at`` stamps and a
``deleted_at`` soft-delete marker; soft-deleted orders are invisible to
every read, including the totals query.

Connection parameters come from ``ordersystem.config.Settings``.
"""

import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterator, List, Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, Numeric, String, Text, create_engine, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, mapped_column

from .config import Settings
from .domain import BackendConnectionError, Drink, Order, SchemaError, StorageError, StorePort

logger = logging.getLogger("ordersystem.repo")

SEED_DRINKS = [
    ("Red Bull Peach", Decimal("2.5"), "Peachy-flavored rocket fuel"),
    ("Club-Mate", Decimal("3.5"), "Hipster energy, slightly bitter"),
    ("Espresso", Decimal("2"), "Strong, bitter and dark"),
    ("Pumpkin Spice Latte", Decimal("4.5"), "Warm, cozy, sugary spice"),
    ("Thai Iced Tea", Decimal("5.0"), "Heavenly, icy refreshment bliss"),
]
SEED_AMOUNTS = [4, 2, 6, 3, 7]

# pg_advisory_xact_lock key serializing seeding across processes
SEED_LOCK_KEY = 7_310_001


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DrinkRow(Base):
    """SQLAlchemy model for a catalog entry.

    Attributes:
        id: Database generated primary key.
        name: Drink name (non-null).
        price: Price with two decimals (non-null).
        description: Free text, empty string by default.
    """

    __tablename__ = "drinks"

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
    deleted_at = mapped_column(DateTime(timezone=True), nullable=True)
    name = mapped_column(String(255), nullable=False)
    price = mapped_column(Numeric(10, 2), nullable=False)
    description = mapped_column(Text, nullable=False, default="")

    __table_args__ = (CheckConstraint("price >= 0", name="ck_drinks_price_non_negative"),)


class OrderRow(Base):
    """SQLAlchemy model for a ledger entry.

    ``drink_id`` is indexed but deliberately not a foreign key: whether an
    order may reference an unknown drink is decided by ``OrderService``.
    """

    __tablename__ = "orders"

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
    deleted_at = mapped_column(DateTime(timezone=True), nullable=True)
    drink_id = mapped_column(Integer, nullable=False, index=True)
    amount = mapped_column(Integer, nullable=False)

    __table_args__ = (CheckConstraint("amount > 0", name="ck_orders_amount_positive"),)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _to_drink(row: DrinkRow) -> Drink:
    return Drink(id=row.id, name=row.name, price=Decimal(row.price), description=row.description or "")


def _to_order(row: OrderRow) -> Order:
    return Order(id=row.id, drink_id=row.drink_id, amount=row.amount, created_at=_as_utc(row.created_at))


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("storage operation failed", extra={"operation": operation, "error": str(exc)})
        raise StorageError(f"{operation} failed") from exc


def create_db_engine(settings: Settings) -> Engine:
    """Create the engine for the configured Postgres database.

    Raises:
        ConfigurationError: When a required database variable is missing.
    """
    connect_args = {"connect_timeout": settings.db_connect_timeout}
    if settings.db_statement_timeout_ms > 0:
        connect_args["options"] = f"-c statement_timeout={settings.db_statement_timeout_ms}"
    return create_engine(settings.database_url(), pool_pre_ping=True, connect_args=connect_args)


def wait_for_db(engine: Engine, deadline_seconds: float = 30.0, interval: float = 1.0) -> None:
    """Block until the database accepts connections.

    Args:
        engine: Engine to probe with ``select 1``.
        deadline_seconds: Total time to keep trying.
        interval: Pause between attempts.

    Raises:
        BackendConnectionError: If the database is still unreachable when
            the deadline passes.
    """
    deadline = time.monotonic() + deadline_seconds
    while True:
        try:
            with engine.connect() as conn:
                conn.execute(text("select 1"))
            return
        except OperationalError as exc:
            if time.monotonic() > deadline:
                raise BackendConnectionError(f"database unreachable: {exc}") from exc
            logger.info("waiting for database")
            time.sleep(interval)


def init_db(engine: Engine) -> None:
    """Create the tables if they do not exist yet.

    Raises:
        SchemaError: If the DDL could not be executed.
    """
    try:
        Base.metadata.create_all(engine)
    except SQLAlchemyError as exc:
        raise SchemaError(f"failed to create tables: {exc}") from exc


def _lock_seeding(session: Session) -> None:
    """Take a transaction scoped advisory lock on Postgres.

    Processes starting together against an empty database wait here, so
    only the first one sees no drinks and inserts the seed. Other dialects
    have no advisory locks and are left alone.
    """
    if session.get_bind().dialect.name == "postgresql":
        session.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": SEED_LOCK_KEY})


def prepopulate(engine: Engine) -> bool:
    """Insert the initial drinks and one order per drink, once.

    The presence of any drink row means the database was already seeded.
    Drinks and orders are inserted in a single transaction, which on
    Postgres first takes an advisory lock so concurrent starts seed once.

    Returns:
        bool: True when seed data was inserted, False when it already existed.
    """
    with _storage_errors("prepopulate"):
        with Session(engine) as s, s.begin():
            _lock_seeding(s)
            if s.execute(select(DrinkRow.id).limit(1)).first() is not None:
                return False
            drinks = [DrinkRow(name=n, price=p, description=d) for n, p, d in SEED_DRINKS]
            s.add_all(drinks)
            s.flush()
            s.add_all(OrderRow(drink_id=d.id, amount=a) for d, a in zip(drinks, SEED_AMOUNTS))
    logger.info("database prepopulated", extra={"drinks": len(SEED_DRINKS)})
    return True


class SQLStore(StorePort):
    """Durable ``StorePort`` backed by a relational database.

    Every call opens its own session; writes run inside ``session.begin()``
    so a failure rolls back and leaves nothing half-written.
    """

    def __init__(self, engine: Engine):
        """Bind the store to an engine, creating and seeding the schema.

        Args:
            engine: SQLAlchemy engine of the target database.

        Raises:
            SchemaError: If the tables could not be created.
            StorageError: If seeding failed.
        """
        self.engine = engine
        init_db(engine)
        prepopulate(engine)

    @classmethod
    def connect(cls, settings: Settings) -> "SQLStore":
        """Connect to the configured database and return a ready store.

        Raises:
            ConfigurationError: When a required database variable is missing.
            BackendConnectionError: When the database stays unreachable.
            SchemaError: When the tables could not be created.
        """
        logger.info("connecting to database", extra={"host": settings.db_host, "port": settings.db_port})
        engine = create_db_engine(settings)
        wait_for_db(engine, settings.db_connect_deadline)
        return cls(engine)

    def list_drinks(self) -> List[Drink]:
        with _storage_errors("list_drinks"), Session(self.engine) as s:
            rows = s.execute(select(DrinkRow).where(DrinkRow.deleted_at.is_(None)).order_by(DrinkRow.id)).scalars()
            return [_to_drink(r) for r in rows]

    def get_drink(self, drink_id: int) -> Optional[Drink]:
        with _storage_errors("get_drink"), Session(self.engine) as s:
            row = s.get(DrinkRow, drink_id)
            if row is None or row.deleted_at is not None:
                return None
            return _to_drink(row)

    def list_orders(self) -> List[Order]:
        with _storage_errors("list_orders"), Session(self.engine) as s:
            rows = s.execute(select(OrderRow).where(OrderRow.deleted_at.is_(None)).order_by(OrderRow.id)).scalars()
            return [_to_order(r) for r in rows]

    def totals(self) -> Dict[int, int]:
        """Aggregate the ledger in the database with ``GROUP BY drink_id``."""
        stmt = (
            select(OrderRow.drink_id, func.sum(OrderRow.amount))
            .where(OrderRow.deleted_at.is_(None))
            .group_by(OrderRow.drink_id)
            .order_by(OrderRow.drink_id)
        )
        with _storage_errors("totals"), Session(self.engine) as s:
            return {drink_id: int(total) for drink_id, total in s.execute(stmt)}

    def append_order(self, order: Order) -> Order:
        """Insert one order in its own transaction and return the stored copy."""
        with _storage_errors("append_order"), Session(self.engine) as s:
            with s.begin():
                row = OrderRow(drink_id=order.drink_id, amount=order.amount, created_at=order.created_at)
                s.add(row)
                s.flush()
                stored = Order(id=row.id, drink_id=order.drink_id, amount=order.amount, created_at=order.created_at)
            return stored

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("select 1"))
            return True
        except SQLAlchemyError:
            logger.warning("database ping failed")
            return False
