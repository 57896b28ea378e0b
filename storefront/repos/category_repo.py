# storefront/repos/category_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.category import CategoryModel


class CategoryRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_category(self, category_id: int) -> CategoryModel | None:
        return self.db.get(CategoryModel, category_id)

    def get_by_slug(self, slug: str) -> CategoryModel | None:
        return self.db.execute(select(CategoryModel).where(CategoryModel.slug == slug)).scalar_one_or_none()

    def list_categories(self, active_only: bool = True) -> list[CategoryModel]:
        stmt = select(CategoryModel).order_by(CategoryModel.level, CategoryModel.name)
        if active_only:
            stmt = stmt.where(CategoryModel.is_active.is_(True))
        return list(self.db.execute(stmt).scalars().all())

    def create_category(self, category: CategoryModel) -> CategoryModel:
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def adjust_product_count(self, category_id: int, delta: int) -> int:
        # licznik nie schodzi ponizej zera
        result = self.db.execute(
            update(CategoryModel)
            .where(CategoryModel.id == category_id, CategoryModel.product_count + delta >= 0)
            .values(product_count=CategoryModel.product_count + delta)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
