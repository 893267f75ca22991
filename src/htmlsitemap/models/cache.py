from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class FragmentEntry(BaseModel):
    """A rendered fragment held in the fragment store."""

    key: str
    fragment: str
    stored_at: datetime
    expires_at: datetime
