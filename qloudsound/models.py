"""
QloudSound API - Record models

Pydantic models for the two persisted record types.  Python attributes are
snake_case; the JSON the public site sees uses camelCase aliases.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SubmissionStatus = Literal["pending", "in_progress", "completed"]
CatalogStatus = Literal["requested", "published"]


class Submission(BaseModel):
    """A song request sent through the public intake form."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    email: str
    style: str
    description: Optional[str] = None
    filename: Optional[str] = None
    created_at: str = Field(alias="createdAt")
    status: SubmissionStatus = "pending"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Submission":
        return cls(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            style=row["style"],
            description=row.get("description"),
            filename=row.get("filename"),
            created_at=row["created_at"],
            status=row["status"],
        )

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CatalogEntry(BaseModel):
    """A track in the catalog, either requested by a visitor or published."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    title: str
    status: CatalogStatus
    isrc: Optional[str] = None
    upc: Optional[str] = None
    submitted_at: str = Field(alias="submittedAt")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CatalogEntry":
        return cls(
            id=row["id"],
            title=row["title"],
            status=row["status"] or "requested",
            isrc=row.get("isrc"),
            upc=row.get("upc"),
            submitted_at=row["submitted_at"],
        )

    @classmethod
    def for_submission(cls, submission: Submission) -> "CatalogEntry":
        """Build the ``requested`` catalog row that mirrors a new submission."""
        return cls(
            id=submission.id,
            title=f"{submission.name} - {submission.style}",
            status="requested",
            submitted_at=submission.created_at,
        )

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
