# storefront/data/models/product.py
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from storefront.data.database import Base

IN_STOCK = "in_stock"
LOW_STOCK = "low_stock"
OUT_OF_STOCK = "out_of_stock"
BACKORDER = "backorder"


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    slug = Column(String(220), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False)

    price = Column(Numeric(10, 2), nullable=False)
    compare_at_price = Column(Numeric(10, 2), nullable=True)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)

    inventory_count = Column(Integer, nullable=False, default=0)
    track_inventory = Column(Boolean, nullable=False, default=True)
    allow_backorder = Column(Boolean, nullable=False, default=False)
    low_stock_threshold = Column(Integer, nullable=False, default=5)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    category = relationship("CategoryModel")
    images = relationship(
        "ProductImageModel",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImageModel.position",
        lazy="selectin",
    )
    variants = relationship(
        "ProductVariantModel",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariantModel.id",
        lazy="selectin",
    )

    @property
    def primary_image(self):
        for image in self.images:
            if image.is_primary:
                return image
        return self.images[0] if self.images else None

    @property
    def is_available(self) -> bool:
        if not self.is_active:
            return False
        if not self.track_inventory:
            return True
        return self.inventory_count > 0 or self.allow_backorder

    @property
    def stock_status(self) -> str:
        if not self.track_inventory:
            return IN_STOCK
        if self.inventory_count <= 0:
            return BACKORDER if self.allow_backorder else OUT_OF_STOCK
        if self.inventory_count <= self.low_stock_threshold:
            return LOW_STOCK
        return IN_STOCK

    @property
    def reserves_stock(self) -> bool:
        """Whether an order for this product decrements the tracked count."""
        return self.track_inventory and not self.allow_backorder

    def is_in_stock(self, quantity: int = 1) -> bool:
        if not self.reserves_stock:
            return True
        return self.inventory_count >= quantity

    def find_variant(self, variant_id: int):
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None

    def ensure_single_primary_image(self):
        # dokladnie jedno zdjecie glowne: pierwsze oznaczone albo pierwsze w ogole
        if not self.images:
            return
        primary = next((img for img in self.images if img.is_primary), self.images[0])
        for img in self.images:
            img.is_primary = img is primary


class ProductImageModel(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    url = Column(String(500), nullable=False)
    alt = Column(String(200), nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)

    product = relationship("ProductModel", back_populates="images")


class ProductVariantModel(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    sku = Column(String(64), nullable=False, unique=True)
    price = Column(Numeric(10, 2), nullable=True)
    inventory = Column(Integer, nullable=False, default=0)
    attributes = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("ProductModel", back_populates="variants")
