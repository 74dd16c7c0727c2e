"""
RealityCheck API: AI-generated content detection cascade over HTTP.

Run with:
    uvicorn realitycheck.main:app
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

# Load environment variables before settings-dependent modules read them
load_dotenv()

from realitycheck.api import detection, system  # noqa: E402
from realitycheck.config import settings  # noqa: E402
from realitycheck.detection.model_backend import FeatureModelBackend  # noqa: E402
from realitycheck.detection.onnx_backend import OnnxModelBackend  # noqa: E402
from realitycheck.detection.pipeline import DetectionPipeline  # noqa: E402
from realitycheck.integrations import http_client  # noqa: E402

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    await http_client.initialize()
    if settings.onnx_model_path:
        backend = OnnxModelBackend.from_settings()
    else:
        backend = FeatureModelBackend()
    app.state.pipeline = DetectionPipeline(backend=backend)
    logger.info(f"[STARTUP] Model backend: {type(backend).__name__}")
    logger.info("[STARTUP] Detection pipeline ready")

    yield

    await http_client.close()
    logger.info("[SHUTDOWN] RealityCheck API stopped")


app = FastAPI(title="RealityCheck Detection API", lifespan=lifespan)

app.include_router(system.router)
app.include_router(detection.router)
