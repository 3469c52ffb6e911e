import logging
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlmodel import Session, select

from shoppers.core.filters import FilterBuilder, Predicate, to_clause
from shoppers.domain.categories import LEVEL_FIELDS, CategoryTree, slugify, validate_parent
from shoppers.models.category import Category
from shoppers.models.product import Product

logger = logging.getLogger(__name__)

class CategoryService:
    def __init__(self, session: Session):
        self.session = session

    def get_tree(self) -> CategoryTree:
        return CategoryTree(self.session.exec(select(Category)).all())

    def get_category(self, category_id: int) -> Category:
        category = self.session.get(Category, category_id)
        if not category:
            raise HTTPException(status_code=404, detail="Category not found")
        return category

    def get_by_slug(self, slug: str) -> Category:
        category = self.session.exec(select(Category).where(Category.slug == slug)).first()
        if not category:
            raise HTTPException(status_code=404, detail="Category not found")
        return category

    def list_categories(self, level: Optional[int] = None, parent_id: Optional[int] = None,
                        is_active: Optional[bool] = None) -> List[Category]:
        clause = to_clause(
            FilterBuilder().equals("level", level).equals("parent_id", parent_id)
            .equals("is_active", is_active).build(),
            Category,
        )
        return self.session.exec(
            select(Category).where(clause).order_by(Category.sort_order, Category.name)
        ).all()

    def category_tree(self, active_only: bool = True) -> List[dict]:
        rows = self.list_categories(is_active=True if active_only else None)
        tree = CategoryTree(rows)
        return tree.as_nested({c.id: c.as_api() for c in rows})

    def create_category(self, name: str, parent_id: Optional[int] = None, description: Optional[str] = None,
                        image: Optional[str] = None, sort_order: int = 0, is_active: bool = True) -> Category:
        parent = self.get_category(parent_id) if parent_id is not None else None
        level = parent.level + 1 if parent else 1

        check = validate_parent(level, parent.level if parent else None)
        if not check:
            raise HTTPException(status_code=400, detail=check.error)

        slug = slugify(name, parent.slug if parent else None)
        if not slug:
            raise HTTPException(status_code=400, detail="Category name must contain letters or digits")
        self._ensure_unique_slug(slug)

        category = Category(
            name=name.strip(),
            slug=slug,
            description=description,
            image=image,
            parent_id=parent.id if parent else None,
            level=level,
            sort_order=sort_order,
            is_active=is_active,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        logger.info("Created category %s (level %s)", category.slug, category.level)
        return category

    def update_category(self, category_id: int, changes: dict) -> Category:
        category = self.get_category(category_id)

        if "parent_id" in changes and changes["parent_id"] != category.parent_id:
            parent_id = changes["parent_id"]
            if parent_id == category.id:
                raise HTTPException(status_code=400, detail="Category cannot be its own parent")
            tree = self.get_tree()
            if parent_id is not None and parent_id in tree.descendants(category.id):
                raise HTTPException(status_code=400, detail="Category cannot be moved beneath its own descendant")
            parent = self.get_category(parent_id) if parent_id is not None else None
            level = parent.level + 1 if parent else 1
            check = validate_parent(level, parent.level if parent else None)
            if not check:
                raise HTTPException(status_code=400, detail=check.error)
            if tree.children(category.id) and level != category.level:
                raise HTTPException(status_code=400, detail="Cannot change the level of a category that has children")
            category.parent_id = parent_id
            category.level = level

        if changes.get("name"):
            category.name = changes["name"].strip()
            parent = self.session.get(Category, category.parent_id) if category.parent_id else None
            slug = slugify(category.name, parent.slug if parent else None)
            if slug != category.slug:
                self._ensure_unique_slug(slug)
                category.slug = slug

        for field in ("description", "image", "sort_order", "is_active"):
            if changes.get(field) is not None:
                setattr(category, field, changes[field])

        category.updated_at = datetime.now(timezone.utc)
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def toggle_status(self, category_id: int, is_active: Optional[bool] = None) -> Category:
        category = self.get_category(category_id)
        category.is_active = (not category.is_active) if is_active is None else is_active
        category.updated_at = datetime.now(timezone.utc)
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def delete_category(self, category_id: int):
        category = self.get_category(category_id)
        has_children = self.session.exec(
            select(func.count()).select_from(Category).where(Category.parent_id == category_id)
        ).one()
        if has_children:
            raise HTTPException(status_code=409, detail="Cannot delete category with subcategories")

        has_products = self.session.exec(
            select(func.count()).select_from(Product).where(or_(
                Product.category_id == category_id,
                Product.sub_category_id == category_id,
                Product.sub_sub_category_id == category_id,
            ))
        ).one()
        if has_products:
            raise HTTPException(status_code=409, detail="Cannot delete category with products")

        self.session.delete(category)
        self.session.commit()
        logger.info("Deleted category %s", category_id)

    def scope_for(self, category_id: int) -> Predicate:
        """Product predicate covering the category and all categories under it."""
        return self.get_tree().scope(category_id)

    def placement_for(self, category_id: int) -> dict:
        """Product category columns for a product filed under `category_id`."""
        category = self.get_category(category_id)
        tree = self.get_tree()
        chain = [category.id] + tree.ancestors(category.id)
        placement = {name: None for name in LEVEL_FIELDS.values()}
        for cid in chain:
            level = tree.level_of(cid)
            if level in LEVEL_FIELDS:
                placement[LEVEL_FIELDS[level]] = cid
        return placement

    def _ensure_unique_slug(self, slug: str):
        if self.session.exec(select(Category).where(Category.slug == slug)).first():
            raise HTTPException(status_code=409, detail="Category with this name already exists")
