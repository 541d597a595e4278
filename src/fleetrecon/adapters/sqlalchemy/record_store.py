"""SQLAlchemy-backed implementation of the ``RecordStore`` port."""

from __future__ import annotations

import logging
import shutil
from dataclasses import asdict, dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from sqlalchemy import create_engine, func, insert, select, update
from sqlalchemy.orm import Session, sessionmaker

from fleetrecon.config import get_database_config
from fleetrecon.domain.model import AttachmentRecord, DocumentRecord, RegistryRecord
from fleetrecon.domain.ports import RecordNotFoundError

from .mappings import (
    UPDATABLE_ATTACHMENT_COLUMNS,
    UPDATABLE_EQUIPMENT_COLUMNS,
    create_all_tables,
    equipment_attachment_table,
    equipment_document_table,
    equipment_table,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from sqlalchemy.engine import Engine, RowMapping
    from sqlalchemy import Table

    from fleetrecon.domain.model import (
        AssetChanges,
        AttachmentPayload,
        NewAssetPayload,
        Scalar,
        SourceFile,
    )

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy store is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call fleetrecon.adapters.sqlalchemy."
                "record_store.startup() before opening a record store."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, tables, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


def _column_value(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    return value


def _column_values(values: Mapping[str, object]) -> dict[str, Any]:
    return {key: _column_value(value) for key, value in values.items()}


def _registry_record(row: RowMapping) -> RegistryRecord:
    return RegistryRecord(
        id=row["id"],
        name=row["name"],
        make=row["make"],
        model=row["model"],
        year=row["year"],
        category=row["category"],
        serial_vin=row["serial_vin"],
        purchase_date=row["purchase_date"],
        purchase_price=row["purchase_price"],
        sales_tax=row["sales_tax"],
        freight_setup=row["freight_setup"],
        financing_type=row["financing_type"],
        deposit_amount=row["deposit_amount"],
        financed_amount=row["financed_amount"],
        monthly_payment=row["monthly_payment"],
        term_months=row["term_months"],
        buyout_amount=row["buyout_amount"],
        purchase_condition=row["purchase_condition"],
    )


def _next_position(session: Session, table: Table) -> int:
    stmt = select(func.coalesce(func.max(table.c.position), 0))
    return int(session.execute(stmt).scalar_one()) + 1


def _attachment_record(row: RowMapping) -> AttachmentRecord:
    return AttachmentRecord(
        id=row["id"],
        equipment_id=row["equipment_id"],
        name=row["name"],
        value=row["value"],
        serial_number=row["serial_number"],
        description=row["description"],
    )


class SqlAlchemyRecordStore:
    """Record store persisting to the tables in ``mappings``.

    Every call runs in its own short transaction. When ``documents_dir`` is set,
    uploaded source files are copied below ``documents_dir/<asset id>/``.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | None = None,
        documents_dir: Path | None = None,
    ) -> None:
        self.session_factory = session_factory or _STATE.session_factory
        self.documents_dir = documents_dir

    async def list_assets(self) -> list[RegistryRecord]:
        stmt = select(equipment_table).order_by(equipment_table.c.position)
        with self.session_factory() as session:
            rows = session.execute(stmt).mappings().all()
        return [_registry_record(row) for row in rows]

    async def create_asset(self, payload: NewAssetPayload) -> str:
        asset_id = uuid4().hex
        values = _column_values(asdict(payload))
        with self.session_factory() as session, session.begin():
            position = _next_position(session, equipment_table)
            session.execute(
                insert(equipment_table).values(id=asset_id, position=position, **values)
            )
        log.debug("Created asset %s (%s)", asset_id, payload.name)
        return asset_id

    async def update_asset(self, asset_id: str, changes: AssetChanges) -> None:
        unknown = set(changes.values) - UPDATABLE_EQUIPMENT_COLUMNS
        if unknown:
            raise ValueError(f"Unknown asset field(s): {', '.join(sorted(unknown))}")
        stmt = (
            update(equipment_table)
            .where(equipment_table.c.id == asset_id)
            .values(**_column_values(changes.values))
        )
        with self.session_factory() as session, session.begin():
            result = session.execute(stmt)
            if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
                raise RecordNotFoundError("asset", asset_id)

    async def list_attachments(self, parent_id: str) -> list[AttachmentRecord]:
        stmt = (
            select(equipment_attachment_table)
            .where(equipment_attachment_table.c.equipment_id == parent_id)
            .order_by(equipment_attachment_table.c.position)
        )
        with self.session_factory() as session:
            rows = session.execute(stmt).mappings().all()
        return [_attachment_record(row) for row in rows]

    async def create_attachment(self, parent_id: str, payload: AttachmentPayload) -> str:
        attachment_id = uuid4().hex
        with self.session_factory() as session, session.begin():
            self._require_asset(session, parent_id)
            position = _next_position(session, equipment_attachment_table)
            session.execute(
                insert(equipment_attachment_table).values(
                    id=attachment_id,
                    equipment_id=parent_id,
                    position=position,
                    **_column_values(asdict(payload)),
                )
            )
        return attachment_id

    async def update_attachment(self, attachment_id: str, changes: dict[str, Scalar]) -> None:
        unknown = set(changes) - UPDATABLE_ATTACHMENT_COLUMNS
        if unknown:
            raise ValueError(f"Unknown attachment field(s): {', '.join(sorted(unknown))}")
        stmt = (
            update(equipment_attachment_table)
            .where(equipment_attachment_table.c.id == attachment_id)
            .values(**changes)
        )
        with self.session_factory() as session, session.begin():
            result = session.execute(stmt)
            if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
                raise RecordNotFoundError("attachment", attachment_id)

    async def list_documents(self, owner_id: str) -> list[DocumentRecord]:
        stmt = (
            select(equipment_document_table.c.file_name)
            .where(equipment_document_table.c.equipment_id == owner_id)
            .order_by(equipment_document_table.c.uploaded_at)
        )
        with self.session_factory() as session:
            names = session.execute(stmt).scalars().all()
        return [DocumentRecord(owner_id=owner_id, file_name=name) for name in names]

    async def upload_document(self, owner_id: str, file: SourceFile) -> None:
        with self.session_factory() as session, session.begin():
            self._require_asset(session, owner_id)
            stored_path = self._store_file(owner_id, file)
            session.execute(
                insert(equipment_document_table).values(
                    id=uuid4().hex,
                    equipment_id=owner_id,
                    file_name=file.file_name,
                    file_path=str(stored_path) if stored_path is not None else None,
                )
            )
        log.debug("Attached %s to asset %s", file.file_name, owner_id)

    def _store_file(self, owner_id: str, file: SourceFile) -> Path | None:
        if self.documents_dir is None or file.path is None:
            return None
        target_dir = self.documents_dir / owner_id
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / file.file_name
        shutil.copyfile(file.path, target)
        return target

    @staticmethod
    def _require_asset(session: Session, asset_id: str) -> None:
        stmt = select(equipment_table.c.id).where(equipment_table.c.id == asset_id)
        if session.execute(stmt).scalar_one_or_none() is None:
            raise RecordNotFoundError("asset", asset_id)


if TYPE_CHECKING:
    from fleetrecon.domain.ports import RecordStore

    _store_check: RecordStore = SqlAlchemyRecordStore()
