# storefront/api/routers/categories.py
from fastapi import APIRouter, Depends

from storefront.api.deps import get_catalog_service, require_admin
from storefront.api.responses import ok
from storefront.domain.schemas import CategoryIn
from storefront.services.catalog_service import CatalogService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("")
def list_categories(svc: CatalogService = Depends(get_catalog_service)):
    return ok({"categories": svc.list_categories()})


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
def create_category(payload: CategoryIn, svc: CatalogService = Depends(get_catalog_service)):
    return ok({"category": svc.create_category(payload)}, "Category created successfully")
