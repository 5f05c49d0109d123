# localscope/db/models.py
# -----------------------------------------------------------------------------
# ORM models
# - CategoryTagRow: business terms resolved by the AI fallback, kept forever
# -----------------------------------------------------------------------------
from sqlalchemy import Column, Integer, String

from localscope.db.session import Base


class CategoryTagRow(Base):
    __tablename__ = "category_tags"

    id = Column(Integer, primary_key=True)
    term = Column(String, unique=True, index=True, nullable=False)  # normalized
    key = Column(String, nullable=False)  # e.g. "shop"
    value = Column(String, nullable=False)  # e.g. "bakery"
    source = Column(String, default="gemini")
