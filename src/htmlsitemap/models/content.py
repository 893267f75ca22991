from __future__ import annotations

import re
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Final, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class ContentKind(BaseModel):
    """Descriptor for one class of documents (``post``, ``page``, ...)."""

    model_config = ConfigDict(frozen=True)

    tag: str
    label: str
    hierarchical: bool = False
    public: bool = True

    @field_validator("tag")
    @classmethod
    def validate_tag(cls, v: str) -> str:
        if not re.match(r"^[a-z0-9_-]+$", v):
            raise ValueError(f"Invalid content kind tag: {v!r}")
        return v


class Document(BaseModel):
    """A published document as seen through a content source adapter.

    Documents are owned by the content store; the engine never mutates them.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(gt=0)
    kind: str
    title: str = ""
    url: str = ""
    published_at: datetime
    parent_id: int | None = None
    meta: dict[str, Any] = {}  # Raw index-policy metadata, keyed by meta key

    @field_validator("published_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Mixed naive/aware timestamps cannot be ordered against each other
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @field_validator("parent_id")
    @classmethod
    def normalise_parent(cls, v: int | None, info: ValidationInfo) -> int | None:
        # 0 and self-references both mean "no parent"
        if v is None or v <= 0 or v == info.data.get("id"):
            return None
        return v


class _AnyParent(Enum):
    ANY = "any"


# Parent filter for flat listings: matches documents with or without a parent.
ANY_PARENT: Final = _AnyParent.ANY

ParentFilter = int | None | Literal[_AnyParent.ANY]
