from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from clubbooking.application.ports.payment_gateway import PaymentGatewayPort
from clubbooking.application.use_cases.complete_checkout import CompleteCheckoutUseCase
from clubbooking.wiring.dependencies import get_complete_checkout_use_case, get_payment_gateway


router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    gateway: PaymentGatewayPort = Depends(get_payment_gateway),
    use_case: CompleteCheckoutUseCase = Depends(get_complete_checkout_use_case),
):
    body = await request.body()
    signature = request.headers.get("Stripe-Signature")
    try:
        event = gateway.parse_webhook(body, signature)
    except ValueError as e:
        logger.warning("Rejected webhook delivery", extra={"error": str(e)})
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid signature"})

    result = use_case.execute(event)
    logger.info(
        "Webhook processed",
        extra={"booking_id": result.booking_id, "reason": f"{event.type}:{result.action}"},
    )
    return {"received": True, "action": result.action}
