"""OrderService: validated, retried order submission.

Submission sequence:
  1. Validate the customer fields (name, phone, message).
  2. Submit the order with the ``orders`` retry profile. Only connectivity
     failures are retried; a server error may already have created the order.
  3. Upload the preview image, if any, with the ``uploads`` profile. A failed
     upload is a warning on an otherwise successful result.
  4. Move the session to ``success``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, Field

from jewelctl.domain.steps import DesignStep
from jewelctl.domain.types import DesignConfiguration
from jewelctl.services._helpers import utcnow
from jewelctl.services.result import ErrorKind, ServiceResult, failure
from jewelctl.services.retry import (
    RETRY_PROFILES,
    RetryPolicy,
    Sleep,
    default_retry_condition,
    profiles_from_config,
    with_retry,
)

if TYPE_CHECKING:
    from jewelctl.config.settings import JewelSettings
    from jewelctl.services.designer import DesignSession

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^0[2-9]\d{7,8}$")
MAX_MESSAGE_LENGTH = 1000


class OrderRequest(BaseModel):
    """Everything the order back-end needs to create an order."""

    model_config = {"frozen": True}

    customer_name: str
    customer_phone: str
    customer_message: str = ""
    design_configuration: DesignConfiguration
    total_price: float
    wrist_circumference: float | None = None
    custom_text: str | None = None
    order_date: datetime = Field(default_factory=utcnow)
    order_status: str = "pending"


class OrderReceipt(BaseModel):
    model_config = {"frozen": True}

    order_id: str


class OrderGateway(Protocol):
    """Order back-end."""

    async def submit_order(self, request: OrderRequest) -> OrderReceipt: ...

    async def upload_preview_image(self, order_id: str, image: bytes) -> str: ...


# ---------------------------------------------------------------------------
# Customer field validation
# ---------------------------------------------------------------------------


def normalize_phone(phone: str) -> str:
    return re.sub(r"[\s-]", "", phone)


def is_valid_phone(phone: str) -> bool:
    """Israeli landline or mobile number, dashes and spaces ignored."""
    return PHONE_PATTERN.match(normalize_phone(phone)) is not None


def sanitize_message(message: str) -> str:
    """Trim, drop angle brackets and cap at the maximum message length."""
    return re.sub(r"[<>]", "", message.strip())[:MAX_MESSAGE_LENGTH]


def validate_customer(name: str, phone: str) -> list[str]:
    errors: list[str] = []
    if not name.strip():
        errors.append("Customer name is required")
    if not phone.strip():
        errors.append("Customer phone is required")
    elif not is_valid_phone(phone):
        errors.append(f"Invalid phone number: {phone}")
    return errors


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class OrderService:
    """Submit the session's design through an OrderGateway."""

    def __init__(
        self,
        gateway: OrderGateway,
        *,
        policies: dict[str, RetryPolicy] | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.gateway = gateway
        self._policies = policies or RETRY_PROFILES
        self._sleep = sleep

    @classmethod
    def from_settings(cls, gateway: OrderGateway, settings: JewelSettings) -> OrderService:
        return cls(gateway, policies=profiles_from_config(settings.retry))

    def build_request(
        self,
        session: DesignSession,
        *,
        customer_name: str,
        customer_phone: str,
        customer_message: str = "",
    ) -> OrderRequest:
        bracelet = session.bracelet_configuration
        return OrderRequest(
            customer_name=customer_name.strip(),
            customer_phone=normalize_phone(customer_phone),
            customer_message=sanitize_message(customer_message),
            design_configuration=session.design_data,
            total_price=session.total_price,
            wrist_circumference=bracelet.wrist_circumference if bracelet else None,
            custom_text=(bracelet.custom_text or None) if bracelet else None,
        )

    async def submit(
        self,
        session: DesignSession,
        *,
        customer_name: str,
        customer_phone: str,
        customer_message: str = "",
        preview_image: bytes | None = None,
    ) -> ServiceResult:
        op = "submit_order"
        if session.step != DesignStep.ORDER:
            return failure(
                op,
                "NOT_AT_ORDER_STEP",
                f"Orders are submitted from the order step, not {session.step}",
                kind=ErrorKind.STATE,
            )
        if not session.is_design_complete:
            return failure(
                op, "DESIGN_INCOMPLETE", "Required positions are empty", kind=ErrorKind.VALIDATION
            )
        errors = validate_customer(customer_name, customer_phone)
        if errors:
            return failure(
                op,
                "INVALID_CUSTOMER",
                errors[0],
                kind=ErrorKind.VALIDATION,
                detail={"errors": errors},
            )

        request = self.build_request(
            session,
            customer_name=customer_name,
            customer_phone=customer_phone,
            customer_message=customer_message,
        )

        session.set_loading("order", True)
        try:
            outcome = await with_retry(
                lambda: self.gateway.submit_order(request),
                self._policies["orders"],
                sleep=self._sleep,
            )
            if not outcome.success or outcome.data is None:
                error = outcome.error
                logger.warning("Order submission failed after %d attempt(s)", outcome.attempts)
                return failure(
                    op,
                    "ORDER_FAILED",
                    str(error) if error else "Order submission failed",
                    kind=_error_kind(error),
                    detail={"attempts": outcome.attempts, "error_type": type(error).__name__},
                )
            receipt = outcome.data

            warnings: list[str] = []
            image_url = ""
            if preview_image:
                image_url, upload_warning = await self._upload(receipt.order_id, preview_image)
                if upload_warning:
                    warnings.append(upload_warning)
        finally:
            session.set_loading("order", False)

        session.mark_order_submitted(receipt.order_id)
        logger.info("Order %s submitted", receipt.order_id)
        data: dict[str, Any] = {
            "order_id": receipt.order_id,
            "image_url": image_url,
            "total_price": request.total_price,
        }
        return ServiceResult(
            ok=True, op=op, data=data, warnings=warnings, meta={"attempts": outcome.attempts}
        )

    async def _upload(self, order_id: str, image: bytes) -> tuple[str, str | None]:
        outcome = await with_retry(
            lambda: self.gateway.upload_preview_image(order_id, image),
            self._policies["uploads"],
            sleep=self._sleep,
        )
        if outcome.success:
            return outcome.data or "", None
        logger.warning("Preview upload for order %s failed: %s", order_id, outcome.error)
        return "", f"Preview image upload failed: {outcome.error}"


def _error_kind(error: BaseException | None) -> ErrorKind:
    if error is not None and default_retry_condition(error):
        return ErrorKind.NETWORK
    return ErrorKind.UNKNOWN
