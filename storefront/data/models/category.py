# storefront/data/models/category.py
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from storefront.data.database import Base

MAX_CATEGORY_LEVEL = 5


class CategoryModel(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, index=True)
    slug = Column(String(120), nullable=False, unique=True, index=True)
    description = Column(String(500), nullable=True)

    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    level = Column(Integer, nullable=False, default=0)
    # przodkowie jako "Nazwa|slug,Nazwa|slug"
    path = Column(String(1000), nullable=False, default="")

    product_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    parent = relationship("CategoryModel", remote_side=[id])

    @property
    def full_path(self) -> str:
        if not self.path:
            return self.name
        names = [part.split("|")[0] for part in self.path.split(",")]
        return " > ".join(names + [self.name])

    def child_path(self) -> str:
        """Path string that a direct child of this category stores."""
        own = f"{self.name}|{self.slug}"
        return f"{self.path},{own}" if self.path else own
