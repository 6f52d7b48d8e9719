import nearbuy.logging_config
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from nearbuy.api.v1.webhook import get_conversation_manager, router as webhook_router
from nearbuy.core.config import get_settings
from nearbuy.core.timezone_helper import TimezoneHelper

logger = logging.getLogger(__name__)
local_time = TimezoneHelper.now()
logger.info(
    f"[TIMEZONE] Zona horaria {get_settings().TIMEZONE}. "
    f"Hora actual: {local_time.strftime('%d/%m/%Y %H:%M:%S %Z')}"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Cerrar clientes HTTP si se llegaron a crear
    if get_conversation_manager.cache_info().currsize:
        await get_conversation_manager().close()


app = FastAPI(title="NearBuy – WhatsApp", lifespan=lifespan)

app.include_router(webhook_router)


@app.get("/")
async def root():
    return {"message": "NearBuy – WhatsApp"}
