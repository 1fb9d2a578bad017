import logging
import os
from typing import Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

from services.advice import AdviceGenerator, OpenAiAdviceGenerator, TemplateAdviceGenerator
from services.risk_scoring import OpenAiRiskScorer, RiskScorer, RuleBasedRiskScorer

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    temporal_host: str = "localhost"
    temporal_port: int = 7233
    temporal_namespace: str = "default"
    task_queue: str = "order-pipeline-task-queue"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    api_host: str = "localhost"
    api_port: int = 8000

    @property
    def temporal_address(self) -> str:
        return f"{self.temporal_host}:{self.temporal_port}"


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Read settings from the environment, after loading a .env file if present."""
    load_dotenv(env_file)
    return Settings(
        temporal_host=os.getenv("TEMPORAL_HOST", "localhost"),
        temporal_port=int(os.getenv("TEMPORAL_PORT", "7233")),
        temporal_namespace=os.getenv("TEMPORAL_NAMESPACE", "default"),
        task_queue=os.getenv("ORDER_TASK_QUEUE", "order-pipeline-task-queue"),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        api_host=os.getenv("API_HOST", "localhost"),
        api_port=int(os.getenv("API_PORT", "8000")),
    )


def build_collaborators(settings: Settings) -> Tuple[RiskScorer, AdviceGenerator]:
    """Pick the risk scorer and advice generator once, at process start."""
    if settings.openai_api_key:
        logger.info(f"Using OpenAI collaborators (model {settings.openai_model})")
        return (
            OpenAiRiskScorer(settings.openai_api_key, settings.openai_model),
            OpenAiAdviceGenerator(settings.openai_api_key, settings.openai_model),
        )
    logger.info("OPENAI_API_KEY not set - using rule-based risk scoring and templated messages")
    return RuleBasedRiskScorer(), TemplateAdviceGenerator()


def configure_logging(level: int = logging.INFO):
    logging.basicConfig(level=level, format=LOG_FORMAT)
