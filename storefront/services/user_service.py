import secrets

from sqlalchemy.orm import Session

from storefront.data.models.user import ROLE_ADMIN, ROLE_CUSTOMER, UserModel
from storefront.domain.schemas import UserCreate, UserCreated
from storefront.errors import AuthenticationError, DuplicateError
from storefront.repos.user_repo import UserRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def register(self, payload: UserCreate) -> UserCreated:
        # rejestracja zawsze jako customer
        user = self.create_user(payload.name, payload.email)
        return UserCreated(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            api_token=user.api_token,
        )

    def create_user(self, name: str, email: str, role: str = ROLE_CUSTOMER) -> UserModel:
        if role not in (ROLE_CUSTOMER, ROLE_ADMIN):
            raise ValueError(f"Unknown role: {role}")

        email = email.strip().lower()
        if self.repo.get_by_email(email):
            raise DuplicateError("User with this email already exists")

        user = UserModel(name=name, email=email, role=role, api_token=secrets.token_urlsafe(32))
        created = self.repo.create_user(user)
        logger.info(f"Created {role} user {created.id} ({created.email})")
        return created

    def authenticate(self, token: str | None) -> UserModel:
        if not token:
            raise AuthenticationError("Authentication required")
        user = self.repo.get_by_token(token)
        if not user:
            raise AuthenticationError("Invalid or expired token")
        return user
