from services.advice import AdviceGenerator, OpenAiAdviceGenerator, TemplateAdviceGenerator, fallback_message
from services.payment_gateway import FakeCardGateway, PaymentGateway
from services.risk_scoring import OpenAiRiskScorer, RiskScorer, RuleBasedRiskScorer, fail_closed_assessment

__all__ = [
    "AdviceGenerator",
    "FakeCardGateway",
    "OpenAiAdviceGenerator",
    "OpenAiRiskScorer",
    "PaymentGateway",
    "RiskScorer",
    "RuleBasedRiskScorer",
    "TemplateAdviceGenerator",
    "fail_closed_assessment",
    "fallback_message",
]
