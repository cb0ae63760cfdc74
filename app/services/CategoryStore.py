from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.category import Category


class CategoryStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_categories(self, active: Optional[bool] = None):
        query = select(Category)
        if active is not None:
            query = query.where(Category.is_active.is_(active))
        result = await self.db.execute(query.order_by(Category.sort_order.asc(), Category.name.asc()))
        return result.scalars().all()

    async def get(self, category_id: str) -> Optional[Category]:
        result = await self.db.execute(select(Category).where(Category.id == category_id))
        return result.scalar_one_or_none()

    async def exists(self, category_id: str) -> bool:
        result = await self.db.execute(select(Category.id).where(Category.id == category_id))
        return result.first() is not None

    async def name_taken(self, name: str) -> bool:
        result = await self.db.execute(select(Category.id).where(Category.name == name))
        return result.first() is not None

    async def slug_taken(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        query = select(Category.id).where(Category.slug == slug)
        if exclude_id:
            query = query.where(Category.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def create(self, **values) -> Category:
        category = Category(**values)
        self.db.add(category)
        await self.db.flush()
        return category

    async def update(self, category: Category, values: dict):
        for field, value in values.items():
            setattr(category, field, value)
        await self.db.flush()

    async def delete(self, category_id: str):
        await self.db.execute(delete(Category).where(Category.id == category_id))
