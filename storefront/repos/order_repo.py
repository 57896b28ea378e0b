# storefront/repos/order_repo.py
from datetime import datetime

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.domain.order_status import OrderStatus, PaymentStatus


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        # bez commita - checkout commituje dopiero po rezerwacji stanow
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_user_order(self, order_id: int, user_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.id == order_id, OrderModel.user_id == user_id)
        ).scalar_one_or_none()

    def get_by_number(self, order_number: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.order_number == order_number.upper())
        ).scalar_one_or_none()

    def list_user_orders(
        self,
        user_id: int,
        status: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[OrderModel], int]:
        conditions = [OrderModel.user_id == user_id]
        if status:
            conditions.append(OrderModel.status == status)
        return self._paginate(conditions, page, limit)

    def list_orders(
        self,
        status: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[OrderModel], int]:
        conditions = []
        if status:
            conditions.append(OrderModel.status == status)
        if date_from:
            conditions.append(OrderModel.created_at >= date_from)
        if date_to:
            conditions.append(OrderModel.created_at <= date_to)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(
                or_(
                    func.lower(OrderModel.order_number).like(pattern),
                    func.lower(OrderModel.user_email).like(pattern),
                    func.lower(OrderModel.user_name).like(pattern),
                )
            )
        return self._paginate(conditions, page, limit)

    def list_requiring_attention(
        self,
        pending_before: datetime,
        confirmed_before: datetime,
        payment_pending_before: datetime,
        limit: int = 20,
    ) -> list[OrderModel]:
        stmt = (
            select(OrderModel)
            .where(
                or_(
                    and_(OrderModel.status == OrderStatus.PENDING.value, OrderModel.created_at < pending_before),
                    and_(OrderModel.status == OrderStatus.CONFIRMED.value, OrderModel.created_at < confirmed_before),
                    OrderModel.payment_status == PaymentStatus.FAILED.value,
                    and_(
                        OrderModel.payment_status == PaymentStatus.PENDING.value,
                        OrderModel.created_at < payment_pending_before,
                    ),
                )
            )
            .order_by(OrderModel.created_at.asc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_stale_pending(self, created_before: datetime) -> list[OrderModel]:
        stmt = select(OrderModel).where(
            OrderModel.status == OrderStatus.PENDING.value,
            OrderModel.payment_status.in_([PaymentStatus.PENDING.value, PaymentStatus.FAILED.value]),
            OrderModel.created_at < created_before,
        )
        return list(self.db.execute(stmt).scalars().all())

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    def _paginate(self, conditions: list, page: int, limit: int) -> tuple[list[OrderModel], int]:
        total = self.db.execute(select(func.count(OrderModel.id)).where(*conditions)).scalar_one()
        orders = (
            self.db.execute(
                select(OrderModel)
                .where(*conditions)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return list(orders), total
