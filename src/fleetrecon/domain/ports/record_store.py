"""Port for the persistent fleet registry, attachment and document store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fleetrecon.domain.model import (
        AssetChanges,
        AttachmentPayload,
        AttachmentRecord,
        DocumentRecord,
        NewAssetPayload,
        RegistryRecord,
        Scalar,
        SourceFile,
    )


class RecordNotFoundError(LookupError):
    """Raised by stores when an id does not name a stored record."""

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"Unknown {kind}: {record_id}")


@runtime_checkable
class RecordStore(Protocol):
    """Async record store; every call may raise on failure."""

    async def list_assets(self) -> Sequence[RegistryRecord]: ...

    async def create_asset(self, payload: NewAssetPayload) -> str: ...

    async def update_asset(self, asset_id: str, changes: AssetChanges) -> None: ...

    async def list_attachments(self, parent_id: str) -> Sequence[AttachmentRecord]: ...

    async def create_attachment(self, parent_id: str, payload: AttachmentPayload) -> str: ...

    async def update_attachment(self, attachment_id: str, changes: dict[str, Scalar]) -> None: ...

    async def list_documents(self, owner_id: str) -> Sequence[DocumentRecord]: ...

    async def upload_document(self, owner_id: str, file: SourceFile) -> None: ...
