from typing import Optional
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel
from enum import Enum

class DisplayType(str, Enum):
    CAROUSEL = "carousel"
    CATEGORY_CARD = "category-card"
    BOTH = "both"

class Banner(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    subtitle: Optional[str] = None
    description: Optional[str] = None
    image: str
    link: Optional[str] = None
    button_text: Optional[str] = None

    display_type: str = Field(default=DisplayType.CAROUSEL.value)
    category_id: Optional[int] = Field(default=None, foreign_key="category.id")

    is_active: bool = Field(default=True)
    sort_order: int = Field(default=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_api(self):
        return {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "description": self.description,
            "image": self.image,
            "link": self.link,
            "buttonText": self.button_text,
            "displayType": self.display_type,
            "categoryId": self.category_id,
            "isActive": self.is_active,
            "order": self.sort_order,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "createdAt": self.created_at,
        }
