from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(ApiModel, Generic[T]):
    success: bool = True
    data: T


class CancelRequestSchema(ApiModel):
    reason: str | None = Field(default=None, max_length=500)


class TransferRequestSchema(ApiModel):
    new_session_id: str = Field(min_length=1)


class RefundRuleSchema(ApiModel):
    days_before_session: int
    refund_percentage: int


class RefundScheduleEntrySchema(RefundRuleSchema):
    refund_amount: int


class PolicySchema(ApiModel):
    name: str
    rules: list[RefundRuleSchema]


class CancellationPreviewSchema(ApiModel):
    booking_id: str
    can_cancel: bool
    error: str | None = None
    session_name: str | None = None
    session_date: datetime | None = None
    original_amount: int | None = None
    refund_amount: int | None = None
    refund_percentage: int | None = None
    days_until_session: int | None = None
    explanation: str | None = None
    policy: PolicySchema | None = None
    schedule: list[RefundScheduleEntrySchema] | None = None


class CancellationSchema(ApiModel):
    booking_id: str
    status: str
    payment_status: str
    refund_amount: int
    refund_percentage: int
    refund_id: str | None = None
    refund_status: str
    explanation: str


class SessionSummarySchema(ApiModel):
    id: str
    name: str
    service_type: str
    location: str
    day_of_week: int
    start_time: str
    end_time: str
    start_date: datetime
    price: int
    spots_left: int


class TransferOptionSchema(SessionSummarySchema):
    price_difference: int


class TransferOptionsSchema(ApiModel):
    booking_id: str
    current_session: SessionSummarySchema
    available_sessions: list[TransferOptionSchema]


class TransferSchema(ApiModel):
    action: str
    checkout_url: str | None = None
    price_difference: int | None = None
    refund_amount: int | None = None
    message: str | None = None


class BalanceDetailsSchema(ApiModel):
    booking_id: str
    booking_ref: str
    child_name: str
    total_amount: int
    deposit_paid: int
    balance_due: int
    payment_status: str
    balance_paid: bool
    session: SessionSummarySchema | None = None


class BalanceCheckoutSchema(ApiModel):
    booking_id: str
    checkout_url: str
    amount: int
