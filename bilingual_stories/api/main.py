"""FastAPI application for the Bilingual Story Generator."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bilingual_stories.config import configure_dspy
from .logging import configure_logging_from_env
from .routes import generate

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    configure_logging_from_env()

    # Text model: configure DSPy only if a provider key is present
    if any(os.getenv(key) for key in ("GOOGLE_API_KEY", "ANTHROPIC_API_KEY", "OPENAI_API_KEY")):
        configure_dspy()
        logger.info("Text model configured")
    else:
        logger.warning("No LLM API key set - story generation requests will fail")

    yield


app = FastAPI(
    title="Bilingual Story Generator API",
    description="""
Generate bilingual (English/Chinese) children's stories, optionally illustrated.

## Features
- **Bilingual text**: English pages with faithful Chinese translations
- **Tailored difficulty**: vocabulary by age group, script and vocabulary by Chinese level
- **Illustrations**: every page drawn with the same character from a reference image

## Workflow
1. POST `/generate` with prompt, ageGroup, chineseLevel (and optionally includeImages + subjectReference)
2. Receive the complete story in the response
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for web frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed bodies as 400 {error} like every other validation failure."""
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request: " + "; ".join(problems)},
    )


# Include routers
app.include_router(generate.router, prefix="/generate", tags=["Stories"])


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
