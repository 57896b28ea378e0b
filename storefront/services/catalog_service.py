import re
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.category import MAX_CATEGORY_LEVEL, CategoryModel
from storefront.data.models.product import ProductImageModel, ProductModel, ProductVariantModel
from storefront.domain.schemas import (
    CategoryIn,
    CategoryOut,
    InventoryUpdateIn,
    ProductIn,
    ProductOut,
)
from storefront.errors import BusinessRuleError, CategoryNotFoundError, DuplicateError, ProductNotFoundError
from storefront.repos.category_repo import CategoryRepo
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    return _NON_SLUG.sub("-", value.lower()).strip("-")


class CatalogService:
    """
    Kategorie i produkty (admin CRUD potrzebny reszcie sklepu)
    -licznik produktow w kategorii aktualizowany przy dodaniu / usunieciu
    """

    def __init__(self, db: Session):
        self.categories = CategoryRepo(db)
        self.products = ProductRepo(db)

    #query
    def list_categories(self) -> List[CategoryOut]:
        return [CategoryOut.model_validate(c) for c in self.categories.list_categories()]

    def list_products(self, category_id: int | None = None, page: int = 1, limit: int = 20) -> List[ProductOut]:
        products = self.products.list_products(
            category_id=category_id,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return [ProductOut.from_model(p) for p in products]

    def get_product(self, product_id: int, include_inactive: bool = False) -> ProductOut:
        product = self.products.get_product(product_id)
        if not product or (not product.is_active and not include_inactive):
            raise ProductNotFoundError("Product not found")
        return ProductOut.from_model(product)

    #commands
    def create_category(self, payload: CategoryIn) -> CategoryOut:
        slug = payload.slug or slugify(payload.name)
        if self.categories.get_by_slug(slug):
            raise DuplicateError(f"Category with slug '{slug}' already exists")

        level, path = 0, ""
        if payload.parent_id is not None:
            parent = self.categories.get_category(payload.parent_id)
            if not parent:
                raise CategoryNotFoundError(payload.parent_id)
            level = parent.level + 1
            path = parent.child_path()
            if level > MAX_CATEGORY_LEVEL:
                raise BusinessRuleError(f"Categories can be nested at most {MAX_CATEGORY_LEVEL} levels deep")

        category = self.categories.create_category(
            CategoryModel(
                name=payload.name,
                slug=slug,
                description=payload.description,
                parent_id=payload.parent_id,
                level=level,
                path=path,
            )
        )
        logger.info(f"Created category {category.id} '{category.full_path}'")
        return CategoryOut.model_validate(category)

    def create_product(self, payload: ProductIn) -> ProductOut:
        if not self.categories.get_category(payload.category_id):
            raise CategoryNotFoundError(payload.category_id)

        slug = payload.slug or slugify(payload.name)
        if self.products.get_by_slug(slug):
            raise DuplicateError(f"Product with slug '{slug}' already exists")

        product = ProductModel(
            name=payload.name,
            slug=slug,
            description=payload.description,
            price=payload.price,
            compare_at_price=payload.compare_at_price,
            category_id=payload.category_id,
            inventory_count=payload.inventory.count,
            track_inventory=payload.inventory.track_inventory,
            allow_backorder=payload.inventory.allow_backorder,
            low_stock_threshold=payload.inventory.low_stock_threshold,
            is_active=payload.is_active,
            images=[
                ProductImageModel(position=i, url=img.url, alt=img.alt, is_primary=img.is_primary)
                for i, img in enumerate(payload.images)
            ],
            variants=[
                ProductVariantModel(
                    name=v.name,
                    sku=v.sku,
                    price=v.price,
                    inventory=v.inventory,
                    attributes=[a.model_dump() for a in v.attributes],
                    is_active=v.is_active,
                )
                for v in payload.variants
            ],
        )
        product.ensure_single_primary_image()

        try:
            self.products.add_product(product)
            self.categories.adjust_product_count(product.category_id, 1)
            self.products.commit()
        except IntegrityError:
            self.products.rollback()
            raise DuplicateError("Product or variant SKU already exists")

        logger.info(f"Created product {product.id} '{product.name}' in category {product.category_id}")
        return ProductOut.from_model(product)

    def update_inventory(self, product_id: int, payload: InventoryUpdateIn) -> ProductOut:
        product = self.products.get_product(product_id)
        if not product:
            raise ProductNotFoundError("Product not found")

        if payload.count is not None:
            product.inventory_count = payload.count
        if payload.track_inventory is not None:
            product.track_inventory = payload.track_inventory
        if payload.allow_backorder is not None:
            product.allow_backorder = payload.allow_backorder
        if payload.low_stock_threshold is not None:
            product.low_stock_threshold = payload.low_stock_threshold
        if payload.is_active is not None:
            product.is_active = payload.is_active

        self.products.commit()
        logger.info(
            f"Inventory of product {product.id} set to {product.inventory_count} "
            f"(active={product.is_active})"
        )
        return ProductOut.from_model(product)

    def delete_product(self, product_id: int):
        product = self.products.get_product(product_id)
        if not product:
            raise ProductNotFoundError("Product not found")

        category_id = product.category_id
        self.products.delete_product(product)
        self.categories.adjust_product_count(category_id, -1)
        self.products.commit()
        logger.info(f"Deleted product {product_id} from category {category_id}")
