"""Impacted-profile schemas."""
from typing import Optional

from pydantic import BaseModel


class ProfileResponse(BaseModel):
    """Catalog entry."""

    code: str
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True
