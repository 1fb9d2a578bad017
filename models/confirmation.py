from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


class Tone(str, Enum):
    POSITIVE = "POSITIVE"
    NEUTRAL = "NEUTRAL"
    APOLOGETIC = "APOLOGETIC"


class ConfirmationMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject: str = Field(min_length=1)
    body: str = Field(min_length=1)
    tone: Tone
