"""Dictionary-backed record store used for dry runs and tests."""

from __future__ import annotations

import logging
from dataclasses import asdict, fields, replace
from typing import TYPE_CHECKING
from uuid import uuid4

from fleetrecon.domain.model import AttachmentRecord, DocumentRecord, RegistryRecord
from fleetrecon.domain.ports import RecordNotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fleetrecon.domain.model import (
        AssetChanges,
        AttachmentPayload,
        NewAssetPayload,
        Scalar,
        SourceFile,
    )

log = logging.getLogger(__name__)

_REGISTRY_FIELDS = frozenset(item.name for item in fields(RegistryRecord)) - {"id"}
_ATTACHMENT_FIELDS = frozenset({"name", "value", "serial_number", "description"})


def registry_record_from_payload(asset_id: str, payload: NewAssetPayload) -> RegistryRecord:
    values = {key: value for key, value in asdict(payload).items() if key in _REGISTRY_FIELDS}
    return RegistryRecord(id=asset_id, **values)


class InMemoryRecordStore:
    """Keeps assets, attachments and documents in insertion-ordered dicts."""

    def __init__(
        self,
        *,
        assets: Iterable[RegistryRecord] = (),
        attachments: Iterable[AttachmentRecord] = (),
        documents: Iterable[DocumentRecord] = (),
    ) -> None:
        self.assets: dict[str, RegistryRecord] = {asset.id: asset for asset in assets}
        self.attachments: dict[str, AttachmentRecord] = {
            attachment.id: attachment for attachment in attachments
        }
        self.documents: list[DocumentRecord] = list(documents)
        self.created_payloads: list[NewAssetPayload] = []

    async def list_assets(self) -> list[RegistryRecord]:
        return list(self.assets.values())

    async def create_asset(self, payload: NewAssetPayload) -> str:
        asset_id = uuid4().hex
        self.assets[asset_id] = registry_record_from_payload(asset_id, payload)
        self.created_payloads.append(payload)
        log.debug("Created asset %s (%s)", asset_id, payload.name)
        return asset_id

    async def update_asset(self, asset_id: str, changes: AssetChanges) -> None:
        record = self.assets.get(asset_id)
        if record is None:
            raise RecordNotFoundError("asset", asset_id)
        unknown = set(changes.values) - _REGISTRY_FIELDS
        if unknown:
            raise ValueError(f"Unknown asset field(s): {', '.join(sorted(unknown))}")
        self.assets[asset_id] = replace(record, **changes.values)  # pyright: ignore[reportArgumentType]

    async def list_attachments(self, parent_id: str) -> list[AttachmentRecord]:
        return [
            attachment
            for attachment in self.attachments.values()
            if attachment.equipment_id == parent_id
        ]

    async def create_attachment(self, parent_id: str, payload: AttachmentPayload) -> str:
        if parent_id not in self.assets:
            raise RecordNotFoundError("asset", parent_id)
        attachment_id = uuid4().hex
        self.attachments[attachment_id] = AttachmentRecord(
            id=attachment_id,
            equipment_id=parent_id,
            name=payload.name,
            value=payload.value,
            serial_number=payload.serial_number,
            description=payload.description,
        )
        return attachment_id

    async def update_attachment(self, attachment_id: str, changes: dict[str, Scalar]) -> None:
        record = self.attachments.get(attachment_id)
        if record is None:
            raise RecordNotFoundError("attachment", attachment_id)
        unknown = set(changes) - _ATTACHMENT_FIELDS
        if unknown:
            raise ValueError(f"Unknown attachment field(s): {', '.join(sorted(unknown))}")
        self.attachments[attachment_id] = replace(record, **changes)  # pyright: ignore[reportArgumentType]

    async def list_documents(self, owner_id: str) -> list[DocumentRecord]:
        return [document for document in self.documents if document.owner_id == owner_id]

    async def upload_document(self, owner_id: str, file: SourceFile) -> None:
        if owner_id not in self.assets:
            raise RecordNotFoundError("asset", owner_id)
        self.documents.append(DocumentRecord(owner_id=owner_id, file_name=file.file_name))


if TYPE_CHECKING:
    from fleetrecon.domain.ports import RecordStore

    _store_check: RecordStore = InMemoryRecordStore()
