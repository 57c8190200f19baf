"""
Document models for AI risk analysis.

A document is a tagged union over its analysis status. Each variant is an
immutable pydantic model; state changes produce a new instance.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, computed_field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_display_date(value: datetime) -> str:
    """Format a timestamp as Month Day, Year (e.g. June 1, 2023)."""
    return f"{value:%B} {value.day}, {value.year}"


class RiskLevel(str, Enum):
    """Qualitative legal risk of an analyzed document."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DocumentStatus(str, Enum):
    """Analysis status of a document."""

    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class AnalysisResult(CamelModel):
    """Structured risk assessment returned by the analysis backend."""

    findings: list[str] = Field(default_factory=list)
    risk_level: RiskLevel
    risk_score: int = Field(..., ge=0, le=100)
    recommendations: str = ""


class _DocumentBase(CamelModel):
    id: str
    owner_id: str
    title: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def date(self) -> str:
        return format_display_date(self.created_at)

    @property
    def is_terminal(self) -> bool:
        return self.status != DocumentStatus.ANALYZING.value


class AnalyzingDocument(_DocumentBase):
    """Document whose analysis is in flight."""

    status: Literal["analyzing"] = "analyzing"
    progress: int = Field(default=0, ge=0, le=100)


class CompletedDocument(_DocumentBase):
    """Document with a finished risk assessment."""

    status: Literal["completed"] = "completed"
    risk_level: RiskLevel
    risk_score: int = Field(..., ge=0, le=100)
    findings: list[str] = Field(default_factory=list)
    recommendations: str | None = None
    body: str | None = None


class ErrorDocument(_DocumentBase):
    """Document whose analysis failed."""

    status: Literal["error"] = "error"
    error: str


Document = Annotated[
    Union[AnalyzingDocument, CompletedDocument, ErrorDocument],
    Field(discriminator="status"),
]

document_adapter: TypeAdapter[Document] = TypeAdapter(Document)
