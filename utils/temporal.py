from typing import Optional

from temporalio.client import Client

from utils.config import Settings, load_settings


async def get_temporal_client(settings: Optional[Settings] = None) -> Client:
    """
    Connect to the Temporal server named by the settings
    """
    settings = settings or load_settings()
    client = await Client.connect(settings.temporal_address, namespace=settings.temporal_namespace)
    return client
