from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from settlement_api.core.config import settings
from settlement_api.core.errors import SettlementError
from settlement_api.core.logging import setup_logging
from settlement_api.db.mongo import connect_to_mongo, close_mongo_connection
from settlement_api.api.v1.api import api_router

setup_logging(settings.LOG_LEVEL)

@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_mongo()
    yield
    await close_mongo_connection()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(SettlementError)
async def settlement_error_handler(request: Request, exc: SettlementError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind.value}
    )

@app.get("/")
async def root():
    return {"message": "Welcome to Site Settlement API"}

app.include_router(api_router, prefix=settings.API_V1_STR)
