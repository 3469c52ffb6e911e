from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

class Category(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    name: str = Field(index=True)
    slug: str = Field(index=True, unique=True)
    description: Optional[str] = None
    image: Optional[str] = None

    # Tree: level 1 = top, 2 = sub, 3 = leaf
    parent_id: Optional[int] = Field(default=None, foreign_key="category.id", index=True)
    level: int = Field(default=1)

    is_active: bool = Field(default=True)
    sort_order: int = Field(default=0)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "image": self.image,
            "parentId": self.parent_id,
            "level": self.level,
            "isActive": self.is_active,
            "sortOrder": self.sort_order,
            "createdAt": self.created_at,
        }
