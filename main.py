"""
MCQ Question Bank API — Main Application
FastAPI application for the question bank.
Stores MCQs by unit/topic/Bloom's level, assembles question sets from filter
criteria, and exports them as PDF, plain text or Markdown.
"""

from dotenv import load_dotenv
load_dotenv()

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from database.database import engine, Base
from database import models  # noqa: F401  registers tables on Base.metadata
from generation.errors import QuestionBankError, StoreError
from routers import questions, units, export, imports

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create tables."""
    Base.metadata.create_all(bind=engine)
    log.info(f"[STARTUP] question store ready ({engine.url.get_backend_name()})")
    yield


app = FastAPI(
    title="MCQ Question Bank API",
    description="Question bank, filtered question set generation, and PDF/TXT/MD export",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


# ─── Error translation ─────────────────────────────────────────────────────────

@app.exception_handler(QuestionBankError)
async def question_bank_error_handler(request: Request, exc: QuestionBankError):
    if exc.status_code >= 500:
        log.error(f"[ERROR] {request.method} {request.url.path} → {exc.status_code}: {exc.message}")
    else:
        log.info(f"[REJECT] {request.method} {request.url.path} → {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", "invalid"))
    message = "; ".join(parts)
    log.info(f"[REJECT] {request.method} {request.url.path} → 422: {message}")
    return JSONResponse(
        status_code=422,
        content={"error": message or "Invalid request", "details": jsonable_encoder(errors)},
    )


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    log.error(f"[ERROR] {request.method} {request.url.path} → store failure", exc_info=exc)
    error = StoreError()
    return JSONResponse(status_code=error.status_code, content={"error": error.message})


# ─── Routers ───────────────────────────────────────────────────────────────────

app.include_router(questions.router, prefix=API_PREFIX)   # /api/questions/*
app.include_router(units.router, prefix=API_PREFIX)       # /api/units/*
app.include_router(imports.router, prefix=API_PREFIX)     # /api/import
app.include_router(export.router, prefix=API_PREFIX)      # /api/export


@app.get("/")
def root():
    return {
        "name": "MCQ Question Bank API",
        "version": "1.0.0",
        "endpoints": {
            "docs": "/docs",
            "questions": f"{API_PREFIX}/questions",
            "units": f"{API_PREFIX}/units",
            "import": f"{API_PREFIX}/import",
            "export": f"{API_PREFIX}/export",
        },
    }


@app.get("/health")
@app.get(f"{API_PREFIX}/health")
def health_check():
    return {"status": "healthy", "service": "mcq-question-bank-api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3001")))
