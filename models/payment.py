from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional


class PaymentOutcome(BaseModel):
    """Result of the final payment attempt for an order."""

    model_config = ConfigDict(frozen=True)

    success: bool
    charge_reference: Optional[str] = None
    message: str = ""
    amount_charged: float = Field(default=0.0, ge=0.0)

    @model_validator(mode="after")
    def check_consistency(self):
        if self.success and not self.charge_reference:
            raise ValueError("a successful payment must carry a charge reference")
        if not self.success and self.charge_reference is not None:
            raise ValueError("a failed payment cannot carry a charge reference")
        if self.success and self.amount_charged <= 0.0:
            raise ValueError("a successful payment must charge a positive amount")
        if not self.success and self.amount_charged != 0.0:
            raise ValueError("a failed payment cannot charge an amount")
        return self

    @classmethod
    def declined(cls, message: str) -> "PaymentOutcome":
        return cls(success=False, message=message)
