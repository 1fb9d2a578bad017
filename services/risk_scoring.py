import json
import logging
from typing import Optional, Protocol

from models.order import Order
from models.risk import RiskAssessment, RiskLevel
from pipeline.errors import CollaboratorUnavailable
from services.llm import parse_json_reply

logger = logging.getLogger(__name__)

FRAUD_MARKER = "fraud"
DEFAULT_QUANTITY_THRESHOLD = 100


class RiskScorer(Protocol):
    async def assess(self, order: Order) -> RiskAssessment:
        ...


def fail_closed_assessment(reason: str) -> RiskAssessment:
    """Approve with MEDIUM risk. Used when an external scorer cannot answer."""
    return RiskAssessment(
        approved=True,
        risk_score=0.5,
        reason=f"Risk scoring unavailable ({reason}). Approved with caution for manual review.",
        risk_level=RiskLevel.MEDIUM,
    )


class RuleBasedRiskScorer:
    """Reference risk rules: fraud marker in the order id, or an unusually large order."""

    def __init__(self, fraud_marker: str = FRAUD_MARKER, quantity_threshold: int = DEFAULT_QUANTITY_THRESHOLD):
        self.fraud_marker = fraud_marker.lower()
        self.quantity_threshold = quantity_threshold

    async def assess(self, order: Order) -> RiskAssessment:
        if self.fraud_marker in order.id.lower():
            return RiskAssessment(
                approved=False,
                risk_score=0.95,
                reason="Order ID contains fraud indicators",
                risk_level=RiskLevel.HIGH,
            )

        total_quantity = order.total_quantity
        if total_quantity > self.quantity_threshold:
            return RiskAssessment(
                approved=False,
                risk_score=0.85,
                reason=f"Unusually high quantity: {total_quantity} items",
                risk_level=RiskLevel.HIGH,
            )

        return RiskAssessment(
            approved=True,
            risk_score=0.1,
            reason="No fraud indicators detected",
            risk_level=RiskLevel.LOW,
        )


RISK_PROMPT = """You are a Fraud Detection AI for an e-commerce platform.

Analyze the following order for fraud indicators:
- Unusual quantities
- Suspicious patterns
- Order ID anomalies
- Item combinations

Return your analysis as valid JSON with this exact structure:
{{
  "approved": true/false,
  "riskScore": 0.0-1.0,
  "reason": "brief explanation of the decision",
  "riskLevel": "LOW" | "MEDIUM" | "HIGH"
}}

Order:
{order}

Be conservative: when in doubt, approve with MEDIUM risk for manual review.
"""


class OpenAiRiskScorer:
    """LLM-backed scorer. Any error while scoring fails closed to approve/MEDIUM."""

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini", client=None):
        if client is None:
            if not api_key:
                raise CollaboratorUnavailable("OpenAiRiskScorer", "OPENAI_API_KEY is not set")
            from openai import AsyncOpenAI

            client = AsyncOpenAI(api_key=api_key)
        self._client = client
        self.model = model

    async def assess(self, order: Order) -> RiskAssessment:
        prompt = RISK_PROMPT.format(order=json.dumps(order.model_dump(mode="json"), indent=2))
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are a structured JSON generator. Always return valid JSON only."},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.0,
            )
            parsed = parse_json_reply(response.choices[0].message.content or "")
            return RiskAssessment(
                approved=bool(parsed["approved"]),
                risk_score=float(parsed["riskScore"]),
                reason=str(parsed["reason"]),
                risk_level=RiskLevel(str(parsed["riskLevel"]).upper()),
            )
        except Exception as e:
            logger.warning(
                f"Risk scoring fallback for order {order.id}: {type(e).__name__}: {e}. Approving with MEDIUM risk."
            )
            return fail_closed_assessment(f"{type(e).__name__}: {e}")
