# storefront/repos/product_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_by_slug(self, slug: str) -> ProductModel | None:
        return self.db.execute(select(ProductModel).where(ProductModel.slug == slug)).scalar_one_or_none()

    def list_products(
        self,
        category_id: int | None = None,
        active_only: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> list[ProductModel]:
        stmt = select(ProductModel).order_by(ProductModel.id)
        if active_only:
            stmt = stmt.where(ProductModel.is_active.is_(True))
        if category_id is not None:
            stmt = stmt.where(ProductModel.category_id == category_id)
        return list(self.db.execute(stmt.limit(limit).offset(offset)).scalars().all())

    def add_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def delete_product(self, product: ProductModel):
        self.db.delete(product)

    def reserve_stock(self, product_id: int, quantity: int) -> bool:
        """Decrement tracked stock only if enough is left.

        Single conditional UPDATE, so two checkouts cannot both take the last
        unit. Returns False when nothing was decremented.
        """
        result = self.db.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.track_inventory.is_(True),
                ProductModel.inventory_count >= quantity,
            )
            .values(inventory_count=ProductModel.inventory_count - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def release_stock(self, product_id: int, quantity: int) -> bool:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.track_inventory.is_(True))
            .values(inventory_count=ProductModel.inventory_count + quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
