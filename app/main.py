import logging
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

load_dotenv(Path(__file__).resolve().parents[1] / ".env")

import app.config.config as configs
from app.api.v1.route import api_router as SupportRouter
from app.api.v1.socket import socket_router as SocketRouter
from app.client.order.order_client import close_clients
from app.db import models  # noqa: F401
from app.db.session import Base, engine
from app.service.exceptions import SupportError

logging.basicConfig(
    level=configs.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=configs.APP_TITLE, version=configs.APP_VERSION)
app.include_router(router=SupportRouter, prefix="/api/v1")
app.include_router(router=SocketRouter, prefix="/api/v1")


def _error_body(message: str, error_code, request: Request) -> dict:
    return {
        "message": message,
        "error_code": error_code,
        "path": request.url.path,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.exception_handler(SupportError)
async def support_error_handler(request: Request, exc: SupportError) -> JSONResponse:
    logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.error_code)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.error_code, request))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=_error_body("Something went wrong. Please try again later.", "SERVER_ERROR", request),
    )


@app.on_event("startup")
def create_tables() -> None:
    Base.metadata.create_all(bind=engine)


@app.on_event("shutdown")
async def shutdown_event() -> None:
    await close_clients()
