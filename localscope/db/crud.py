# localscope/db/crud.py
# -----------------------------------------------------------------------------
# Read/write helpers for resolved category tags
# -----------------------------------------------------------------------------
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from localscope.db.models import CategoryTagRow


async def get_category_tag(db: AsyncSession, term: str) -> CategoryTagRow | None:
    stmt = select(CategoryTagRow).where(CategoryTagRow.term == term)
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def save_category_tag(
    db: AsyncSession, *, term: str, key: str, value: str, source: str = "gemini"
) -> None:
    row = await get_category_tag(db, term)
    if row:
        row.key = key
        row.value = value
        row.source = source
    else:
        db.add(CategoryTagRow(term=term, key=key, value=value, source=source))
    await db.commit()


async def list_category_tags(db: AsyncSession) -> Sequence[CategoryTagRow]:
    res = await db.execute(select(CategoryTagRow).order_by(CategoryTagRow.term))
    return res.scalars().all()
