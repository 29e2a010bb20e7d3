"""Project and tag domain models."""

from pydantic import Field

from slimetodo.core.config import Constants
from slimetodo.domain.base import DomainModel, LocalDateTime, new_id


class Project(DomainModel):
    """Named group of tasks; soft-deleted projects stay recoverable until purged."""

    id: str = Field(default_factory=new_id, description="Unique project ID")
    name: str = Field(default="", description="Display name")
    order: int = Field(default=0, description="Manual sort position")
    is_deleted: bool = Field(default=False, description="Soft-delete flag")
    deleted_at: LocalDateTime | None = Field(default=None, description="When the project was soft-deleted")


class HashTag(DomainModel):
    """Free-form label attached to tasks with #name."""

    id: str = Field(default_factory=new_id, description="Unique tag ID")
    name: str = Field(default="", description="Tag name (case-insensitive unique by convention)")
    color: str = Field(default=Constants.DEFAULT_TAG_COLOR, description="Hex display color")
    order: int = Field(default=0, description="Manual sort position")
    is_hidden: bool = Field(default=False, description="Hidden from the default tag list")
