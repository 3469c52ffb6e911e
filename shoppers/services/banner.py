from datetime import datetime, timezone
from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlmodel import Session, select

from shoppers.core.pagination import Page
from shoppers.models.banner import Banner, DisplayType

MAX_ACTIVE = 10

class BannerService:
    def __init__(self, session: Session):
        self.session = session

    def active_banners(self, display_type: Optional[str] = None) -> List[Banner]:
        now = datetime.now(timezone.utc)
        query = select(Banner).where(
            Banner.is_active == True,
            or_(Banner.start_date == None, Banner.start_date <= now),
            or_(Banner.end_date == None, Banner.end_date >= now),
        )
        if display_type:
            query = query.where(or_(Banner.display_type == display_type, Banner.display_type == DisplayType.BOTH.value))
        return self.session.exec(query.order_by(Banner.sort_order, Banner.created_at.desc()).limit(MAX_ACTIVE)).all()

    def list_banners(self, page: Page) -> tuple[List[Banner], int]:
        total = self.session.exec(select(func.count()).select_from(Banner)).one()
        banners = self.session.exec(
            select(Banner).order_by(Banner.sort_order, Banner.created_at.desc()).offset(page.offset).limit(page.limit)
        ).all()
        return banners, total

    def get_banner(self, banner_id: int) -> Banner:
        banner = self.session.get(Banner, banner_id)
        if not banner:
            raise HTTPException(status_code=404, detail="Banner not found")
        return banner

    def create_banner(self, data: dict) -> Banner:
        banner = Banner(**data)
        self._validate(banner)
        self.session.add(banner)
        self.session.commit()
        self.session.refresh(banner)
        return banner

    def update_banner(self, banner_id: int, changes: dict) -> Banner:
        banner = self.get_banner(banner_id)
        for field, value in changes.items():
            if value is not None:
                setattr(banner, field, value)
        self._validate(banner)
        banner.updated_at = datetime.now(timezone.utc)
        self.session.add(banner)
        self.session.commit()
        self.session.refresh(banner)
        return banner

    def delete_banner(self, banner_id: int):
        self.session.delete(self.get_banner(banner_id))
        self.session.commit()

    def toggle_status(self, banner_id: int) -> Banner:
        banner = self.get_banner(banner_id)
        banner.is_active = not banner.is_active
        banner.updated_at = datetime.now(timezone.utc)
        self.session.add(banner)
        self.session.commit()
        self.session.refresh(banner)
        return banner

    def reorder(self, banner_ids: List[int]) -> List[Banner]:
        banners = {b.id: b for b in self.session.exec(select(Banner).where(Banner.id.in_(banner_ids))).all()}
        missing = [i for i in banner_ids if i not in banners]
        if missing:
            raise HTTPException(status_code=404, detail=f"Banner not found: {missing[0]}")
        for position, banner_id in enumerate(banner_ids, start=1):
            banners[banner_id].sort_order = position
            self.session.add(banners[banner_id])
        self.session.commit()
        return [banners[i] for i in banner_ids]

    def _validate(self, banner: Banner):
        if banner.display_type in (DisplayType.CATEGORY_CARD.value, DisplayType.BOTH.value) and not banner.category_id:
            raise HTTPException(status_code=400, detail="Category ID is required for category-card banners")
        if banner.start_date and banner.end_date and banner.end_date <= banner.start_date:
            raise HTTPException(status_code=400, detail="End date must be after start date")
