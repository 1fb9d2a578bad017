from models.confirmation import ConfirmationMessage, Tone
from models.order import LineItem, Order, OrderStatus, PipelineRequest
from models.outcome import OrderOutcome
from models.payment import PaymentOutcome
from models.risk import RiskAssessment, RiskLevel

__all__ = [
    "ConfirmationMessage",
    "LineItem",
    "Order",
    "OrderOutcome",
    "OrderStatus",
    "PaymentOutcome",
    "PipelineRequest",
    "RiskAssessment",
    "RiskLevel",
    "Tone",
]
