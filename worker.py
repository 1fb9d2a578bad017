import asyncio
import logging

from temporalio.worker import Worker

from workflows.order_workflow import OrderPipelineWorkflow

from activities.confirmation_activities import ConfirmationActivities
from activities.payment_activities import PaymentActivities
from activities.risk_activities import RiskActivities
from utils.config import build_collaborators, configure_logging, load_settings
from utils.temporal import get_temporal_client

configure_logging()
logger = logging.getLogger(__name__)


def build_activities(settings) -> list:
    risk_scorer, advice_generator = build_collaborators(settings)
    return (
        RiskActivities(risk_scorer).activities()
        + PaymentActivities().activities()
        + ConfirmationActivities(advice_generator).activities()
    )


async def main():
    settings = load_settings()

    logger.info(f"Connecting to Temporal at {settings.temporal_address}...")
    try:
        client = await get_temporal_client(settings)
        logger.info(f"Successfully connected to namespace: {settings.temporal_namespace}")

        activities = build_activities(settings)
        logger.info(f"Creating order pipeline worker for task queue: {settings.task_queue}")
        worker = Worker(
            client,
            task_queue=settings.task_queue,
            workflows=[OrderPipelineWorkflow],
            activities=activities,
            max_concurrent_activities=50,
        )
        logger.info(f"Order pipeline worker created with {len(activities)} activities")

        logger.info("Starting worker... Press Ctrl+C to exit")
        await worker.run()
    except Exception as e:
        logger.error(f"Error in worker: {e}")
        raise


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Worker shutdown complete")
