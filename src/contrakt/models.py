"""Data contracts shared by the agent nodes and the HTTP surface."""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ARTIFACT_VERSION = "1.0"


class ContractStatus(str, Enum):
    """Lifecycle tag of a generated contract."""

    DRAFT = "draft"
    FINAL = "final"
    MINTED = "minted"


class ContractArtifact(BaseModel):
    """Structured contract extracted from a drafting reply.

    Created once by the contract node and never mutated afterwards; editing
    and minting happen outside the agent.
    """

    model_config = ConfigDict(frozen=True)

    content: str
    editable: bool = True
    status: ContractStatus = ContractStatus.DRAFT
    created_at: datetime
    last_modified: datetime
    version: str = ARTIFACT_VERSION

    @classmethod
    def draft(cls, content: str, now: Optional[datetime] = None) -> "ContractArtifact":
        """Build a fresh editable draft with both timestamps set to ``now``."""
        created = now or datetime.now(timezone.utc)
        return cls(content=content, created_at=created, last_modified=created)


class ContributionRecord(BaseModel):
    """A user-submitted error report or feature suggestion."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["error_report", "feature_suggestion"]
    description: str
    details: str
    impact: str
    priority: Literal["low", "medium", "high"]

    @field_validator("type", "priority", mode="before")
    @classmethod
    def _normalize_token(cls, value):
        if isinstance(value, str):
            return value.strip().lower().replace(" ", "_")
        return value


class TemplateEntry(BaseModel):
    """One catalog entry of the template index."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0)
    name: str
    body: str
