"""Artist model.

Artists are matched case-insensitively by name, so "the black keys" on a
new submission reuses the existing "The Black Keys" row.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from psychic_homily.models.venue import SocialLinks


class Artist(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    slug: str | None = None
    city: str | None = None
    state: str | None = None
    social: SocialLinks = Field(default_factory=SocialLinks)
    created_at: datetime | None = None
    updated_at: datetime | None = None
