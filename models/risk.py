from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    approved: bool
    risk_score: float = Field(ge=0.0, le=1.0)
    reason: str
    risk_level: RiskLevel
