# storefront/api/routers/payments.py
from fastapi import APIRouter, Depends

from storefront.api.deps import get_current_user, get_payment_service, require_admin
from storefront.api.responses import ok
from storefront.data.models.user import UserModel
from storefront.domain.schemas import OrderOut, ProcessPaymentIn, RefundIn
from storefront.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/methods")
def payment_methods(svc: PaymentService = Depends(get_payment_service)):
    return ok({"paymentMethods": svc.list_payment_methods()})


@router.post("/process")
def process_payment(
    payload: ProcessPaymentIn,
    user: UserModel = Depends(get_current_user),
    svc: PaymentService = Depends(get_payment_service),
):
    order, result = svc.process_payment(user, payload)
    return ok(
        {
            "payment": {
                "transactionId": result.transaction_id,
                "paymentIntentId": result.payment_intent_id,
                "status": order.payment_status,
                "amount": order.total,
                "method": order.payment_method,
            },
            "order": OrderOut.from_model(order),
        },
        "Payment processed successfully",
    )


@router.post("/refund")
def refund_payment(
    payload: RefundIn,
    admin: UserModel = Depends(require_admin),
    svc: PaymentService = Depends(get_payment_service),
):
    order, result, amount = svc.refund_payment(admin, payload)
    return ok(
        {
            "refund": {
                "transactionId": result.refund_id,
                "amount": amount,
                "reason": payload.reason,
            },
            "order": OrderOut.from_model(order),
        },
        "Refund processed successfully",
    )
