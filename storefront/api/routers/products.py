# storefront/api/routers/products.py
from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_catalog_service, require_admin
from storefront.api.responses import ok
from storefront.domain.schemas import InventoryUpdateIn, ProductIn
from storefront.services.catalog_service import CatalogService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
def list_products(
    category_id: int | None = Query(None, alias="categoryId"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    svc: CatalogService = Depends(get_catalog_service),
):
    return ok({"products": svc.list_products(category_id=category_id, page=page, limit=limit)})


@router.get("/{product_id}")
def get_product(product_id: int, svc: CatalogService = Depends(get_catalog_service)):
    return ok({"product": svc.get_product(product_id)})


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
def create_product(payload: ProductIn, svc: CatalogService = Depends(get_catalog_service)):
    return ok({"product": svc.create_product(payload)}, "Product created successfully")


@router.put("/{product_id}/inventory", dependencies=[Depends(require_admin)])
def update_inventory(
    product_id: int,
    payload: InventoryUpdateIn,
    svc: CatalogService = Depends(get_catalog_service),
):
    return ok({"product": svc.update_inventory(product_id, payload)}, "Inventory updated successfully")


@router.delete("/{product_id}", dependencies=[Depends(require_admin)])
def delete_product(product_id: int, svc: CatalogService = Depends(get_catalog_service)):
    svc.delete_product(product_id)
    return ok(message="Product deleted successfully")
