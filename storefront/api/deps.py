# storefront/api/deps.py
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.errors import PermissionDeniedError
from storefront.repos.cart_store import CartStore, get_cart_store
from storefront.services.cart_service import CartService
from storefront.services.catalog_service import CatalogService
from storefront.services.order_service import OrderService
from storefront.services.payment_gateway import PaymentGateway, get_payment_gateway
from storefront.services.payment_service import PaymentService
from storefront.services.user_service import UserService

bearer = HTTPBearer(auto_error=False)


def _token(credentials: HTTPAuthorizationCredentials | None) -> str | None:
    return credentials.credentials if credentials else None


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> UserModel:
    return UserService(db).authenticate(_token(credentials))


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> UserModel | None:
    token = _token(credentials)
    if not token:
        return None
    return UserService(db).authenticate(token)


def require_admin(user: UserModel = Depends(get_current_user)) -> UserModel:
    if not user.is_admin:
        raise PermissionDeniedError("Admin access required")
    return user


def get_cart_service(db: Session = Depends(get_db), store: CartStore = Depends(get_cart_store)) -> CartService:
    return CartService(db, store)


def get_order_service(db: Session = Depends(get_db), store: CartStore = Depends(get_cart_store)) -> OrderService:
    return OrderService(db, store)


def get_payment_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentService:
    return PaymentService(db, gateway)


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)
