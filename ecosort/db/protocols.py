"""Protocol-based interfaces for the persistence boundary.

The psycopg implementations satisfy these structurally. Test doubles can be
plain classes matching the same signatures.
"""

from datetime import date, datetime
from typing import Dict, List, Optional, Protocol

from ..models import CachedSource, SourceMetadata, SourceValidationResult


class SourceStore(Protocol):
    async def read(self, location: str, item_pattern: str) -> Optional[CachedSource]: ...
    async def write(
        self,
        location: str,
        item_pattern: str,
        guidance_text: str,
        sources: List[SourceMetadata],
        validation_results: Optional[Dict[str, SourceValidationResult]] = None,
        now: Optional[datetime] = None,
    ) -> Optional[int]: ...
    async def is_first_user_from_location(self, location: str) -> bool: ...


class VolatilityChecker(Protocol):
    async def is_volatile(self, region: str, as_of: Optional[date] = None) -> bool: ...
