"""Source and validation models."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from urllib.parse import urlparse

import pendulum
from pydantic import BaseModel, Field

from .base import DBModel


class SourceType(str, Enum):
    """Kind of citation shown to the user."""

    URL = "url"
    PHONE = "phone"
    FACILITY = "facility"
    DIRECTORY = "directory"


class Stability(str, Enum):
    """How often a domain's content or URLs change."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SourceCategory(str, Enum):
    """Reporting tag for the issuer of a URL source."""

    JPA = "jpa"
    GOV = "gov"
    HAULER = "hauler"
    MICROSITE = "microsite"


class CitedSource(BaseModel):
    """Citation as returned to request handlers."""

    name: str = Field(..., description="Display name")
    url: str = Field(..., description="Citation URL")
    type: str = Field(..., description="Citation type (city, county, directory, ...)")


class SourceMetadata(BaseModel):
    """A single citation considered for display to the user."""

    type: SourceType = Field(..., description="Source type")
    value: str = Field(..., description="URL, phone digits or facility name")
    name: Optional[str] = Field(None, description="Display label")
    verified: bool = Field(False, description="Whether the source passed verification")
    verified_at: Optional[datetime] = Field(None, description="Last successful verification")
    stability: Stability = Field(Stability.LOW, description="Domain stability class")

    @property
    def key(self) -> tuple:
        """Identity used for de-duplication."""
        return (self.type, self.value)

    def to_citation(self) -> Optional[CitedSource]:
        """Convert to a caller-facing citation, if the source has a URL."""
        if self.type not in (SourceType.URL, SourceType.DIRECTORY):
            return None
        name = self.name or urlparse(self.value).hostname or self.value
        return CitedSource(name=name, url=self.value, type=self.type.value)


def to_citations(sources: List[SourceMetadata]) -> List[CitedSource]:
    """Convert sources to citations, skipping phone and facility entries."""
    citations = []
    for source in sources:
        citation = source.to_citation()
        if citation is not None:
            citations.append(citation)
    return citations


class SourceValidationResult(BaseModel):
    """Outcome of probing exactly one URL at one point in time."""

    url: str = Field(..., description="Probed URL")
    http_status: Optional[int] = Field(None, description="HTTP status, absent on network failure")
    is_soft_404: bool = Field(False, description="200 response with error-page content")
    is_parked_domain: bool = Field(False, description="Expired or parked domain placeholder")
    content_hash: Optional[str] = Field(None, description="Hash of normalized HTML")
    content_changed: bool = Field(False, description="Hash differs from the previous one")
    error_message: Optional[str] = Field(None, description="Why the URL is invalid")
    checked_at: datetime = Field(default_factory=lambda: pendulum.now("UTC"))

    @property
    def is_valid(self) -> bool:
        """Whether the URL is live and serving real content."""
        return (
            self.http_status == 200
            and not self.is_soft_404
            and not self.is_parked_domain
        )


class CachedSource(DBModel):
    """Durable record keyed by (location, item_pattern)."""

    location: str = Field(..., description="Lower-cased location")
    item_pattern: str = Field(..., description="Lower-cased item pattern")
    guidance_text: str = Field("", description="Disposal guidance text")
    sources: List[SourceMetadata] = Field(default_factory=list)
    source_type: Optional[SourceCategory] = Field(None, description="Category of the primary URL")
    content_hash: Optional[str] = Field(None, description="Hash from the last probe of the primary URL")
    last_verified_at: Optional[datetime] = Field(None)
    next_check_date: Optional[datetime] = Field(None)

    def needs_validation(self, now: Optional[datetime] = None) -> bool:
        """Whether the record is due for revalidation."""
        if self.next_check_date is None:
            return True
        if now is None:
            now = pendulum.now("UTC")
        return self.next_check_date <= now

    @property
    def primary_url(self) -> Optional[str]:
        """URL stored in the flattened row, if any."""
        for source in self.sources:
            if source.type == SourceType.URL:
                return source.value
        return None


class StabilityLogEntry(DBModel):
    """Append-only audit row for one probe attempt."""

    source_id: int = Field(..., description="Foreign key to municipal_sources")
    url: str = Field(..., description="Probed URL")
    checked_at: datetime = Field(..., description="When the probe ran")
    http_status: Optional[int] = Field(None)
    is_valid: bool = Field(False)
    soft_404_detected: bool = Field(False)
    parked_domain_detected: bool = Field(False)
    content_hash: Optional[str] = Field(None)
    content_changed: bool = Field(False)
    error_message: Optional[str] = Field(None)
    repair_attempted: bool = Field(False)
    repair_successful: bool = Field(False)

    @classmethod
    def from_result(cls, source_id: int, result: SourceValidationResult) -> "StabilityLogEntry":
        """Build a log entry from a validation result."""
        return cls(
            source_id=source_id,
            url=result.url,
            checked_at=result.checked_at,
            http_status=result.http_status,
            is_valid=result.is_valid,
            soft_404_detected=result.is_soft_404,
            parked_domain_detected=result.is_parked_domain,
            content_hash=result.content_hash,
            content_changed=result.content_changed,
            error_message=result.error_message,
        )


class LegislativeEvent(DBModel):
    """Externally maintained regulatory deadline."""

    region: str = Field(..., description="Region code or name")
    deadline_date: date = Field(..., description="Deadline of the regulatory change")
    description: Optional[str] = Field(None)
