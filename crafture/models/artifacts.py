import base64
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")

PNG_MIME_TYPE = "image/png"


@dataclass
class GeneratedArtifact:
    """Output of one generation call, owned by the request that produced it"""
    image_bytes: Optional[bytes]
    mime_type: str
    data_url: str
    message: str
    success: bool = True

    @classmethod
    def from_png(cls, image_bytes: bytes, message: str = "Image generated successfully!") -> "GeneratedArtifact":
        encoded = base64.b64encode(image_bytes).decode("ascii")
        return cls(
            image_bytes=image_bytes,
            mime_type=PNG_MIME_TYPE,
            data_url=f"data:{PNG_MIME_TYPE};base64,{encoded}",
            message=message,
        )

    @property
    def has_image(self) -> bool:
        return bool(self.image_bytes)


@dataclass(frozen=True)
class StorageRecord:
    content_id: str
    size: int
    gateway_url: str
    network: str


@dataclass(frozen=True)
class HistoryRow:
    id: int
    wallet_address: str
    storage_url: str
    prompt: str
    created_at: datetime

    @classmethod
    def from_model(cls, row) -> "HistoryRow":
        return cls(
            id=row.id,
            wallet_address=row.wallet_address,
            storage_url=row.ipfs_url,
            prompt=row.prompt,
            created_at=row.created_at,
        )


@dataclass(frozen=True)
class StepResult(Generic[T]):
    """Outcome of a best-effort sub-step: a value, or the reason it was skipped"""
    value: Optional[T] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "StepResult[T]":
        return cls(value=value)

    @classmethod
    def skipped(cls, reason: str) -> "StepResult[Any]":
        return cls(reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.reason is None
