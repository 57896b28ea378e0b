# storefront/api/routers/users.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.api.responses import ok
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import UserCreate, UserRead
from storefront.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", status_code=201)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    """Rejestracja klienta, zwraca token API."""
    user = UserService(db).register(payload)
    return ok({"user": user}, "User registered successfully")


@router.get("/me")
def me(user: UserModel = Depends(get_current_user)):
    return ok({"user": UserRead.model_validate(user)})
