import logging
import os

from fastapi import FastAPI

from api.orders import router as orders_router
from utils.config import LOG_FORMAT, load_settings
from utils.temporal import get_temporal_client

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT,
    handlers=[
        logging.FileHandler(os.getenv("API_LOG_FILE", "api.log")),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Order Pipeline API")
app.state.settings = load_settings()
app.state.temporal_client = None

app.include_router(orders_router, prefix="/orders", tags=["orders"])


@app.on_event("startup")
async def startup_event():
    settings = app.state.settings
    try:
        app.state.temporal_client = await get_temporal_client(settings)
        logger.info(f"Connected to Temporal server at {settings.temporal_address} in namespace '{settings.temporal_namespace}'")
    except Exception as e:
        logger.error(f"Failed to connect to Temporal: {e}")
        app.state.temporal_client = None


if __name__ == "__main__":
    import uvicorn
    settings = app.state.settings
    uvicorn.run("api.main:app", host=settings.api_host, port=settings.api_port, reload=True)
