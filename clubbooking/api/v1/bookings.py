from fastapi import APIRouter, Depends

from clubbooking.api.auth import get_caller_email
from clubbooking.api.v1.schemas import (
    ApiModel,
    ApiResponse,
    BalanceCheckoutSchema,
    BalanceDetailsSchema,
    CancelRequestSchema,
    CancellationPreviewSchema,
    CancellationSchema,
    PolicySchema,
    RefundRuleSchema,
    RefundScheduleEntrySchema,
    SessionSummarySchema,
    TransferOptionSchema,
    TransferOptionsSchema,
    TransferRequestSchema,
    TransferSchema,
)
from clubbooking.application.use_cases.cancel_booking import CancelBookingUseCase
from clubbooking.application.use_cases.pay_balance import PayBalanceUseCase
from clubbooking.application.use_cases.transfer_booking import TransferBookingUseCase
from clubbooking.domain.entities.session import Session
from clubbooking.wiring.dependencies import (
    get_cancel_booking_use_case,
    get_pay_balance_use_case,
    get_transfer_booking_use_case,
)

router = APIRouter()


def _ok(data: ApiModel) -> dict:
    return {"success": True, "data": data}


def _session_summary(session: Session) -> dict:
    return {
        "id": session.id,
        "name": session.name,
        "service_type": session.service_type,
        "location": session.location,
        "day_of_week": session.day_of_week,
        "start_time": session.start_time,
        "end_time": session.end_time,
        "start_date": session.start_date,
        "price": session.price,
        "spots_left": session.spots_left,
    }


@router.get(
    "/{booking_id}/cancel",
    response_model=ApiResponse[CancellationPreviewSchema],
    response_model_exclude_none=True,
)
def preview_cancellation(
    booking_id: str,
    caller_email: str = Depends(get_caller_email),
    uc: CancelBookingUseCase = Depends(get_cancel_booking_use_case),
):
    preview = uc.preview(booking_id, caller_email)
    if not preview.can_cancel:
        data = CancellationPreviewSchema(booking_id=preview.booking_id, can_cancel=False, error=preview.error)
        return _ok(data)

    data = CancellationPreviewSchema(
        booking_id=preview.booking_id,
        can_cancel=True,
        session_name=preview.session_name,
        session_date=preview.session_date,
        original_amount=preview.original_amount,
        refund_amount=preview.refund_amount,
        refund_percentage=preview.refund_percentage,
        days_until_session=preview.days_until_session,
        explanation=preview.explanation,
        policy=PolicySchema(
            name=preview.policy_name,
            rules=[RefundRuleSchema(**rule) for rule in preview.policy_rules],
        ),
        schedule=[RefundScheduleEntrySchema(**entry) for entry in preview.schedule],
    )
    return _ok(data)


@router.post(
    "/{booking_id}/cancel",
    response_model=ApiResponse[CancellationSchema],
    response_model_exclude_none=True,
)
def cancel_booking(
    booking_id: str,
    req: CancelRequestSchema | None = None,
    caller_email: str = Depends(get_caller_email),
    uc: CancelBookingUseCase = Depends(get_cancel_booking_use_case),
):
    result = uc.execute(booking_id, caller_email, reason=req.reason if req else None)
    return _ok(
        data=CancellationSchema(
            booking_id=result.booking_id,
            status=result.status,
            payment_status=result.payment_status,
            refund_amount=result.refund_amount,
            refund_percentage=result.refund_percentage,
            refund_id=result.refund_id,
            refund_status=result.refund_status,
            explanation=result.explanation,
        )
    )


@router.get(
    "/{booking_id}/transfer-options",
    response_model=ApiResponse[TransferOptionsSchema],
    response_model_exclude_none=True,
)
def transfer_options(
    booking_id: str,
    caller_email: str = Depends(get_caller_email),
    uc: TransferBookingUseCase = Depends(get_transfer_booking_use_case),
):
    options = uc.list_options(booking_id, caller_email)
    return _ok(
        data=TransferOptionsSchema(
            booking_id=options.booking_id,
            current_session=SessionSummarySchema(**_session_summary(options.current_session)),
            available_sessions=[
                TransferOptionSchema(**_session_summary(o.session), price_difference=o.price_difference)
                for o in options.options
            ],
        )
    )


@router.post(
    "/{booking_id}/transfer",
    response_model=ApiResponse[TransferSchema],
    response_model_exclude_none=True,
)
def transfer_booking(
    booking_id: str,
    req: TransferRequestSchema,
    caller_email: str = Depends(get_caller_email),
    uc: TransferBookingUseCase = Depends(get_transfer_booking_use_case),
):
    result = uc.execute(booking_id, req.new_session_id, caller_email)
    if result.action == "checkout_required":
        data = TransferSchema(
            action=result.action,
            checkout_url=result.checkout_url,
            price_difference=result.price_difference,
        )
    else:
        data = TransferSchema(action=result.action, refund_amount=result.refund_amount, message=result.message)
    return _ok(data)


@router.get(
    "/{booking_id}/pay-balance",
    response_model=ApiResponse[BalanceDetailsSchema],
    response_model_exclude_none=True,
)
def balance_details(
    booking_id: str,
    caller_email: str = Depends(get_caller_email),
    uc: PayBalanceUseCase = Depends(get_pay_balance_use_case),
):
    details = uc.get_details(booking_id, caller_email)
    return _ok(
        data=BalanceDetailsSchema(
            booking_id=details.booking_id,
            booking_ref=details.booking_ref,
            child_name=details.child_name,
            total_amount=details.total_amount,
            deposit_paid=details.deposit_paid,
            balance_due=details.balance_due,
            payment_status=details.payment_status,
            balance_paid=details.balance_paid,
            session=SessionSummarySchema(**_session_summary(details.session)) if details.session else None,
        )
    )


@router.post(
    "/{booking_id}/pay-balance",
    response_model=ApiResponse[BalanceCheckoutSchema],
    response_model_exclude_none=True,
)
def pay_balance(
    booking_id: str,
    caller_email: str = Depends(get_caller_email),
    uc: PayBalanceUseCase = Depends(get_pay_balance_use_case),
):
    checkout = uc.execute(booking_id, caller_email)
    return _ok(
        data=BalanceCheckoutSchema(
            booking_id=checkout.booking_id,
            checkout_url=checkout.checkout_url,
            amount=checkout.amount,
        )
    )
