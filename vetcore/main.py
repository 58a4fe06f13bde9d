import asyncio
import logging
import time
from fastapi import FastAPI, Request
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from vetcore.core.config import settings
from vetcore.core.logging import setup_logging, request_id_ctx
from vetcore.core.errors import register_exception_handlers
from vetcore.core.db import init_models
from vetcore.core.redis import redis_manager
from vetcore.api.router import api_router
from vetcore.platform.provider_registry import ProviderRegistry
from vetcore.modules.appointments.sweeps import run_scheduling_sweeps


setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)
app.state.providers = ProviderRegistry()
register_exception_handlers(app)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id", "-")
    token = request_id_ctx.set(rid)
    try:
        response = await call_next(request)
    finally:
        request_id_ctx.reset(token)
    response.headers["x-request-id"] = rid
    return response

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000
    formatted_process_time = f"{process_time:.2f}ms"

    logger.info(
        f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {formatted_process_time}"
    )

    return response


@app.on_event("startup")
async def on_startup():
    await init_models()
    await redis_manager.connect()
    if settings.SWEEP_ENABLED:
        app.state.sweep_task = asyncio.create_task(run_scheduling_sweeps(app.state.providers))

@app.on_event("shutdown")
async def on_shutdown():
    task = getattr(app.state, "sweep_task", None)
    if task:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await redis_manager.close()


app.include_router(api_router, prefix=settings.API_PREFIX)
