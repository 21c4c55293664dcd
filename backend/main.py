import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import orders_router, storage_router
from config import settings
from db import init_db
from errors import AppError
from services.orders_service import ensure_ticket_counter
from services.storage_service import parse_rack_layout, seed_racks

logger = logging.getLogger("laundry-panel")

app = FastAPI(title="Laundry Panel API")

if settings.allowed_origins == ["*"]:
    allow_origins = ["*"]
else:
    allow_origins = settings.allowed_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(orders_router)
app.include_router(storage_router)


@app.exception_handler(AppError)
async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Application error on %s", request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )


@app.on_event("startup")
async def _on_startup() -> None:
    await asyncio.to_thread(init_db)
    await asyncio.to_thread(ensure_ticket_counter)
    layouts = parse_rack_layout(settings.storage_racks)
    if layouts:
        await asyncio.to_thread(seed_racks, layouts)
    else:
        logger.warning("STORAGE_RACKS is empty; orders cannot be allocated until racks exist.")
    if allow_origins == ["*"]:
        logger.warning(
            "CORS is set to allow all origins with credentials; set ALLOWED_ORIGINS to explicit values for local dev."
        )

