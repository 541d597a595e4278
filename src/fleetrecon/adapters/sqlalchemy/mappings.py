"""SQLAlchemy Core tables for the fleet registry."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

ID_LENGTH: Final[int] = 32


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def utcnow() -> datetime:
    return datetime.now(UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

equipment_table = Table(
    "equipment",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("make", String(255), nullable=False),
    Column("model", String(255), nullable=False),
    Column("year", Integer, nullable=True),
    Column("category", String(64), nullable=True),
    Column("status", String(16), nullable=False, default="Active"),
    Column("serial_vin", String(128), nullable=True, index=True),
    Column("purchase_date", String(32), nullable=True),
    Column("purchase_price", Float, nullable=True),
    Column("sales_tax", Float, nullable=True),
    Column("freight_setup", Float, nullable=True),
    Column("other_cap_ex", Float, nullable=False, default=0.0),
    Column("cogs_percent", Float, nullable=False, default=80.0),
    Column("replacement_cost_new", Float, nullable=False, default=0.0),
    Column("financing_type", String(16), nullable=True),
    Column("deposit_amount", Float, nullable=True),
    Column("financed_amount", Float, nullable=True),
    Column("monthly_payment", Float, nullable=True),
    Column("term_months", Integer, nullable=True),
    Column("buyout_amount", Float, nullable=True),
    Column("purchase_condition", String(16), nullable=True),
    Column("notes", Text, nullable=True),
    Column("position", Integer, nullable=False, index=True),  # insertion order
    Column("created_at", UTCDateTime(), nullable=False, default=utcnow),
    Column("updated_at", UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow),
)

equipment_attachment_table = Table(
    "equipment_attachments",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column(
        "equipment_id",
        String(ID_LENGTH),
        ForeignKey("equipment.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("name", String(255), nullable=False),
    Column("value", Float, nullable=False, default=0.0),
    Column("serial_number", String(128), nullable=True),
    Column("description", Text, nullable=True),
    Column("position", Integer, nullable=False, index=True),
    Column("created_at", UTCDateTime(), nullable=False, default=utcnow),
)

equipment_document_table = Table(
    "equipment_documents",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column(
        "equipment_id",
        String(ID_LENGTH),
        ForeignKey("equipment.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("file_name", String(255), nullable=False),
    Column("file_path", String(1024), nullable=True),
    Column("uploaded_at", UTCDateTime(), nullable=False, default=utcnow),
    UniqueConstraint("equipment_id", "file_name"),
)

# columns a partial asset update may touch
UPDATABLE_EQUIPMENT_COLUMNS: Final[frozenset[str]] = frozenset(
    column.name
    for column in equipment_table.columns
    if column.name not in {"id", "position", "created_at", "updated_at"}
)
UPDATABLE_ATTACHMENT_COLUMNS: Final[frozenset[str]] = frozenset(
    {"name", "value", "serial_number", "description"}
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the registry metadata."""

    log.info("Creating all tables")
    metadata.create_all(engine)
