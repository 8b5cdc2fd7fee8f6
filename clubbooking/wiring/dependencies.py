from functools import lru_cache
import logging

from clubbooking.core.config import settings
from clubbooking.application.ports.booking_repository import BookingRepositoryPort
from clubbooking.application.ports.email_sender import EmailSenderPort
from clubbooking.application.ports.identity import IdentityVerifierPort
from clubbooking.application.ports.payment_gateway import PaymentGatewayPort
from clubbooking.application.use_cases.cancel_booking import CancelBookingUseCase
from clubbooking.application.use_cases.complete_checkout import CompleteCheckoutUseCase
from clubbooking.application.use_cases.notify_customer import NotifyCustomerUseCase
from clubbooking.application.use_cases.pay_balance import PayBalanceUseCase
from clubbooking.application.use_cases.transfer_booking import TransferBookingUseCase
from clubbooking.domain.entities.refund_policy import DEFAULT_REFUND_POLICY
from clubbooking.infrastructure.email.mock_email import MockEmailSender
from clubbooking.infrastructure.email.resend_client import ResendEmailSender
from clubbooking.infrastructure.identity.token_verifier import DevTokenVerifier, HmacTokenVerifier
from clubbooking.infrastructure.payments.mock_gateway import MockPaymentGateway
from clubbooking.infrastructure.payments.stripe_gateway import StripePaymentGateway
from clubbooking.infrastructure.store.json_store import JsonBookingRepository
from clubbooking.infrastructure.store.memory_store import MemoryBookingRepository


logger = logging.getLogger(__name__)


@lru_cache
def get_repository() -> BookingRepositoryPort:
    if settings.STORE_PROVIDER.lower() == "json":
        logger.info("Using JsonBookingRepository (DATA_DIR=%s)", settings.DATA_DIR)
        return JsonBookingRepository(data_dir=settings.DATA_DIR)
    logger.info("Using MemoryBookingRepository")
    return MemoryBookingRepository()


@lru_cache
def get_payment_gateway() -> PaymentGatewayPort:
    if not settings.STRIPE_SECRET_KEY:
        if settings.is_dev:
            logger.info("Using MockPaymentGateway (STRIPE_SECRET_KEY missing, ENV=%s)", settings.ENV)
            return MockPaymentGateway(webhook_secret=settings.STRIPE_WEBHOOK_SECRET, env=settings.ENV)
        raise ValueError("STRIPE_SECRET_KEY is required outside dev/local.")
    return StripePaymentGateway()


@lru_cache
def get_email_sender() -> EmailSenderPort:
    if not settings.RESEND_API_KEY:
        if settings.is_dev:
            logger.info("Using MockEmailSender (RESEND_API_KEY missing, ENV=%s)", settings.ENV)
            return MockEmailSender()
        raise ValueError("RESEND_API_KEY is required outside dev/local.")
    return ResendEmailSender(
        api_key=settings.RESEND_API_KEY,
        from_email=settings.EMAIL_FROM,
        base_url=settings.RESEND_BASE_URL,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )


@lru_cache
def get_identity_verifier() -> IdentityVerifierPort:
    if settings.AUTH_TOKEN_SECRET:
        return HmacTokenVerifier(settings.AUTH_TOKEN_SECRET)
    if settings.is_dev:
        logger.warning("AUTH_TOKEN_SECRET missing; accepting plain email tokens (ENV=%s)", settings.ENV)
        return DevTokenVerifier()
    raise ValueError("AUTH_TOKEN_SECRET is required outside dev/local.")


def get_notifier() -> NotifyCustomerUseCase:
    return NotifyCustomerUseCase(sender=get_email_sender(), enabled=settings.NOTIFICATIONS_ENABLED)


def get_cancel_booking_use_case() -> CancelBookingUseCase:
    return CancelBookingUseCase(
        repository=get_repository(),
        gateway=get_payment_gateway(),
        notifier=get_notifier(),
        policy=DEFAULT_REFUND_POLICY,
        business_name=settings.BUSINESS_NAME,
    )


def get_transfer_booking_use_case() -> TransferBookingUseCase:
    return TransferBookingUseCase(
        repository=get_repository(),
        gateway=get_payment_gateway(),
        notifier=get_notifier(),
        base_url=settings.PUBLIC_BASE_URL,
        business_name=settings.BUSINESS_NAME,
    )


def get_pay_balance_use_case() -> PayBalanceUseCase:
    return PayBalanceUseCase(
        repository=get_repository(),
        gateway=get_payment_gateway(),
        base_url=settings.PUBLIC_BASE_URL,
    )


def get_complete_checkout_use_case() -> CompleteCheckoutUseCase:
    return CompleteCheckoutUseCase(
        repository=get_repository(),
        notifier=get_notifier(),
        business_name=settings.BUSINESS_NAME,
    )
