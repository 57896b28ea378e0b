# storefront/api/__init__.py
from fastapi import APIRouter

from storefront.api.routers import carts, categories, health, orders, payments, products, users

API_PREFIX = "/api"


def build_api_router() -> APIRouter:
    api = APIRouter(prefix=API_PREFIX)
    for module in (health, users, categories, products, carts, orders, payments):
        api.include_router(module.router)
    return api
