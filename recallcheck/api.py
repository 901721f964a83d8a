from __future__ import annotations

"""
FastAPI application for the recall checker.

- POST /check    scan fields (+ optional candidate records) -> MatchResult
- POST /extract  OCR / manual-entry text -> parsed lots and expiries
- GET  /health

When a request carries no candidates, the catalog loaded at startup from
RECALL_CATALOG_PATH is used as the candidate set.
"""

from dataclasses import asdict
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from .config import RECALL_CATALOG_PATH, HealthResponse, MatchResult, RecallRecord, ScanInput
from .decision import decide
from .lot import extract_from_text
from .mapping import load_recall_records


# -----------------------
# FastAPI app + startup
# -----------------------

app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_catalog: Optional[List[RecallRecord]] = None


@app.on_event("startup")
def startup_event() -> None:
    global _catalog
    logger.info("Starting app warmup...")
    if not RECALL_CATALOG_PATH.exists():
        logger.warning("No recall catalog at {}; /check will need explicit candidates", RECALL_CATALOG_PATH)
        return
    try:
        _catalog = load_recall_records(RECALL_CATALOG_PATH)
    except (OSError, ValueError) as e:
        _catalog = None
        logger.warning("Failed to load recall catalog: {}", e)
        return
    logger.info("Warmup complete with {} recall records", len(_catalog))


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="healthy")


class CheckRequest(BaseModel):
    scan: ScanInput = Field(default_factory=ScanInput)
    candidates: Optional[List[RecallRecord]] = None


class ExtractRequest(BaseModel):
    text: str = Field(..., min_length=1)


@app.post("/check", response_model=MatchResult)
def check(req: CheckRequest) -> MatchResult:
    candidates = req.candidates
    if candidates is None:
        if _catalog is None:
            raise HTTPException(status_code=503, detail="Recall catalog not loaded")
        candidates = _catalog
    result = decide(req.scan, candidates)
    logger.info(
        "Checked scan against {} candidates: {} ({} matches)",
        len(candidates), result.decision.value, len(result.matches),
    )
    return result


@app.post("/extract")
def extract(req: ExtractRequest):
    if not req.text.strip():
        raise HTTPException(status_code=422, detail="Text must be non-empty")
    return asdict(extract_from_text(req.text))
