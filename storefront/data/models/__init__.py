#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from storefront.data.models.user import UserModel
from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel, ProductImageModel, ProductVariantModel
from storefront.data.models.order import OrderModel, OrderItemModel, OrderStatusHistoryModel

__all__ = [
    "UserModel",
    "CategoryModel",
    "ProductModel",
    "ProductImageModel",
    "ProductVariantModel",
    "OrderModel",
    "OrderItemModel",
    "OrderStatusHistoryModel",
]
