"""Base model for rows stored in Postgres."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

# Columns filled in by the database, never by an INSERT
DB_MANAGED_FIELDS = frozenset(["id", "created_at", "updated_at"])


class DBModel(BaseModel):
    """Row model with database-managed id and timestamps."""

    id: Optional[int] = Field(None, description="Primary key")
    created_at: Optional[datetime] = Field(None, description="Row creation time")
    updated_at: Optional[datetime] = Field(None, description="Last update time")

    class Config:
        """Pydantic config."""

        from_attributes = True

    def insert_params(self) -> Dict[str, Any]:
        """Named parameters for an INSERT of this row."""
        return self.model_dump(exclude=set(DB_MANAGED_FIELDS))
