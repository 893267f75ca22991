from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

ContentEventType = Literal["created", "updated", "deleted", "meta_updated"]


class ContentEvent(BaseModel):
    """Change notification delivered by the host content store."""

    type: ContentEventType
    document_id: int | None = None
    meta_key: str | None = None  # Only meaningful for ``meta_updated``
