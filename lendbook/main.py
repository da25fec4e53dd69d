from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from lendbook.core.config import settings
from lendbook.core.errors import LedgerError, NotFound, StoreUnavailable, Unauthorized, ValidationFailure
from lendbook.core.logging import setup_logging
from lendbook.db.mongo import connect_to_mongo, close_mongo_connection
from lendbook.routes import auth, loans

setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

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

ERROR_STATUS = {
    ValidationFailure: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    Unauthorized: status.HTTP_403_FORBIDDEN,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}

@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = next(
        (code for error, code in ERROR_STATUS.items() if isinstance(exc, error)),
        status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": str(exc)}
    )

@app.get("/")
async def root():
    return {"message": "Lendbook API is running"}

@app.get("/health")
async def health():
    return {"status": "ok"}

app.include_router(auth.router, prefix=settings.API_PREFIX)
app.include_router(loans.router, prefix=settings.API_PREFIX)
