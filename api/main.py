"""
FastAPI application entrypoint.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from api import routes

logging.basicConfig(level=logging.DEBUG)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # silent teardown: stop the camera and drop the model on shutdown
    routes.detector.close()
    routes.image_loader.dispose()


app = FastAPI(title="Mood Detection API", version="1.0.0", lifespan=lifespan)
app.include_router(routes.router)

@app.get("/health")
def health() -> dict:
    """
    Health check endpoint.

    Returns:
        dict: Simple status payload.
    """
    return {"status": "ok"}
