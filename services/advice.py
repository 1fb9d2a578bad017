import logging
from typing import Optional, Protocol

from models.confirmation import ConfirmationMessage, Tone
from models.order import OrderStatus
from models.outcome import OrderOutcome
from pipeline.errors import CollaboratorUnavailable
from services.llm import parse_json_reply

logger = logging.getLogger(__name__)


class AdviceGenerator(Protocol):
    async def generate(self, outcome: OrderOutcome) -> ConfirmationMessage:
        ...


def fallback_message(outcome: OrderOutcome) -> ConfirmationMessage:
    """Deterministic customer message for an outcome, used when generation fails."""
    order_id = outcome.order_id
    if outcome.status == OrderStatus.APPROVED:
        return ConfirmationMessage(
            subject=f"Order Confirmed: {order_id}",
            body="Thank you for your order! We've received it and will send updates soon.",
            tone=Tone.POSITIVE,
        )
    if outcome.status == OrderStatus.REJECTED_RISK:
        return ConfirmationMessage(
            subject=f"Order Under Review: {order_id}",
            body="We need to review your order for security. Our team will contact you within 24 hours.",
            tone=Tone.APOLOGETIC,
        )
    if outcome.status == OrderStatus.REJECTED_PAYMENT:
        return ConfirmationMessage(
            subject=f"Payment Issue: {order_id}",
            body="We couldn't process your payment. Please verify your payment method and try again.",
            tone=Tone.APOLOGETIC,
        )
    if outcome.status == OrderStatus.CANCELLED:
        return ConfirmationMessage(
            subject=f"Order Cancelled: {order_id}",
            body="Your order was cancelled before it completed. No further steps will be taken.",
            tone=Tone.APOLOGETIC,
        )
    return ConfirmationMessage(
        subject=f"Order Status: {order_id}",
        body="We're processing your order. You'll receive an update shortly.",
        tone=Tone.NEUTRAL,
    )


class TemplateAdviceGenerator:
    """Templated messages, one per terminal status. Never fails."""

    async def generate(self, outcome: OrderOutcome) -> ConfirmationMessage:
        order_id = outcome.order_id
        if outcome.status == OrderStatus.APPROVED:
            charge = outcome.payment_outcome
            body = "Your order has been confirmed and is being processed."
            if charge is not None:
                body += f" We charged ${charge.amount_charged:.2f} (reference {charge.charge_reference})."
            return ConfirmationMessage(subject=f"Order Confirmed: {order_id}", body=body, tone=Tone.POSITIVE)
        if outcome.status == OrderStatus.REJECTED_RISK:
            return ConfirmationMessage(
                subject=f"Order Review Required: {order_id}",
                body="Your order requires additional security verification.",
                tone=Tone.APOLOGETIC,
            )
        if outcome.status == OrderStatus.REJECTED_PAYMENT:
            return ConfirmationMessage(
                subject=f"Payment Failed: {order_id}",
                body="We couldn't process your payment. Please try again.",
                tone=Tone.APOLOGETIC,
            )
        if outcome.status == OrderStatus.CANCELLED:
            return ConfirmationMessage(
                subject=f"Order Cancelled: {order_id}",
                body="Your order has been cancelled as requested.",
                tone=Tone.APOLOGETIC,
            )
        return ConfirmationMessage(
            subject=f"Order Status: {order_id}",
            body="We're reviewing your order.",
            tone=Tone.NEUTRAL,
        )


ADVICE_PROMPT = """You are a Customer Communications Specialist for an e-commerce platform.

Generate a confirmation message for this order:

Order ID: {order_id}
Status: {status}
Risk decision: {risk}
Payment: {payment}

Return as JSON with this structure:
{{
  "subject": "email subject line",
  "body": "2-3 sentence message body",
  "tone": "positive" | "neutral" | "apologetic"
}}

Guidelines:
- APPROVED: Enthusiastic, confirm order and next steps
- REJECTED_RISK: Apologetic, mention security review needed
- REJECTED_PAYMENT: Helpful, suggest checking payment method
- CANCELLED: Apologetic, confirm nothing further will happen
"""


class OpenAiAdviceGenerator:
    """LLM-backed message writer. Errors and malformed replies fall back to templates."""

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini", client=None):
        if client is None:
            if not api_key:
                raise CollaboratorUnavailable("OpenAiAdviceGenerator", "OPENAI_API_KEY is not set")
            from openai import AsyncOpenAI

            client = AsyncOpenAI(api_key=api_key)
        self._client = client
        self.model = model

    def _prompt(self, outcome: OrderOutcome) -> str:
        risk = outcome.risk_assessment
        payment = outcome.payment_outcome
        return ADVICE_PROMPT.format(
            order_id=outcome.order_id,
            status=outcome.status.value if outcome.status else "IN_PROGRESS",
            risk=f"{'approved' if risk.approved else 'rejected'} ({risk.reason})" if risk else "not assessed",
            payment=payment.message if payment else "not attempted",
        )

    async def generate(self, outcome: OrderOutcome) -> ConfirmationMessage:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": self._prompt(outcome)}],
                temperature=0.3,
            )
            parsed = parse_json_reply(response.choices[0].message.content or "")
            return ConfirmationMessage(
                subject=str(parsed["subject"]),
                body=str(parsed["body"]),
                tone=Tone(str(parsed["tone"]).upper()),
            )
        except Exception as e:
            logger.warning(f"Confirmation message fallback for order {outcome.order_id}: {type(e).__name__}: {e}")
            return fallback_message(outcome)
