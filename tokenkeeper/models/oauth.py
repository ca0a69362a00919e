"""Model for in-flight OAuth authorization attempts."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..core.time import utcnow


class PendingOAuthSession(BaseModel):
    """Authorization attempt waiting for its callback."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    state: str
    provider: str
    idp: str
    code_verifier: str
    created_at: datetime = Field(default_factory=utcnow)


__all__ = ["PendingOAuthSession"]
