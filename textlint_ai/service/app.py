"""FastAPI application entrypoint for textlint-ai service mode."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import load_config
from ..documents import TextDocument
from ..errors import ConfigurationError, TextLintError
from ..extraction import in_document_order
from ..models import Correction, CorrectionOptions, ExtractedText
from ..orchestrator import CorrectionOrchestrator


class PositionModel(BaseModel):
    line: int
    column: int


class SpanModel(BaseModel):
    text: str
    type: str
    start: PositionModel
    end: PositionModel
    confidence: float
    context: Optional[str] = None


class ChangeModel(BaseModel):
    type: str
    original: str
    corrected: str
    explanation: Optional[str] = None


class CorrectionModel(BaseModel):
    text: str
    original: str
    start: PositionModel
    end: PositionModel
    confidence: float
    changes: List[ChangeModel] = Field(default_factory=list)


class StatsModel(BaseModel):
    total_texts: int
    corrected: int
    cached: int
    failed: int
    duration: float


class ExtractRequest(BaseModel):
    text: str
    language: str = "auto"
    language_id: str = "plaintext"


class ExtractResponse(BaseModel):
    spans: List[SpanModel]


class CorrectRequest(BaseModel):
    text: str
    language_id: str = "plaintext"
    target_language: Optional[str] = None
    style: Optional[str] = None
    apply: bool = False


class CorrectResponse(BaseModel):
    state: str
    corrections: List[CorrectionModel]
    stats: StatsModel
    text: Optional[str] = None


class CacheStatsResponse(BaseModel):
    size: int
    entries: int
    hits: int
    misses: int
    hit_rate: float
    oldest_entry: int
    newest_entry: int


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> CorrectionOrchestrator:
    return CorrectionOrchestrator.from_config(load_config(Path.cwd()))


def create_app(
    orchestrator_factory: Callable[[], CorrectionOrchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing extraction and correction."""

    app = FastAPI(title="textlint-ai Service", version="1.0.0")
    holder: Dict[str, CorrectionOrchestrator] = {}

    async def get_orchestrator() -> CorrectionOrchestrator:
        # Built once so the correction cache outlives a single request.
        if "orchestrator" not in holder:
            holder["orchestrator"] = orchestrator_factory()
        return holder["orchestrator"]

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/extract", response_model=ExtractResponse)
    async def extract(
        payload: ExtractRequest,
        orchestrator: CorrectionOrchestrator = Depends(get_orchestrator),
    ) -> ExtractResponse:
        document = TextDocument(payload.text, language_id=payload.language_id)
        options = orchestrator.extraction_options()
        options.language = payload.language
        spans = orchestrator.extractor.extract_from_document(document, options)
        return ExtractResponse(spans=[_span_model(span) for span in in_document_order(spans)])

    @app.post("/correct", response_model=CorrectResponse)
    async def correct(
        payload: CorrectRequest,
        orchestrator: CorrectionOrchestrator = Depends(get_orchestrator),
    ) -> CorrectResponse:
        document = TextDocument(payload.text, language_id=payload.language_id)
        defaults = orchestrator.correction_options()
        options = CorrectionOptions(
            language=payload.target_language or defaults.language,
            style=payload.style or defaults.style,
            custom_prompt=defaults.custom_prompt,
        )
        if payload.apply:
            result = await orchestrator.apply_all(document, options)
            if result.run is None:
                raise TextLintError("Correction run produced no result")
            run = result.run
            corrections = result.applied
            text: Optional[str] = document.get_text()
        else:
            run = await orchestrator.preview(document, options)
            corrections = run.corrections
            text = None
        return CorrectResponse(
            state=run.state.value,
            corrections=[_correction_model(correction) for correction in corrections],
            stats=StatsModel(**vars(run.stats)),
            text=text,
        )

    @app.get("/cache/stats", response_model=CacheStatsResponse)
    async def cache_stats(
        orchestrator: CorrectionOrchestrator = Depends(get_orchestrator),
    ) -> CacheStatsResponse:
        return CacheStatsResponse(**vars(orchestrator.cache.get_stats()))

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        _: Any, exc: ConfigurationError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(TextLintError)
    async def textlint_error_handler(
        _: Any, exc: TextLintError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def _position(position: Any) -> PositionModel:
    return PositionModel(line=position.line, column=position.column)


def _span_model(span: ExtractedText) -> SpanModel:
    return SpanModel(
        text=span.text,
        type=span.type,
        start=_position(span.start),
        end=_position(span.end),
        confidence=span.confidence,
        context=span.context,
    )


def _correction_model(correction: Correction) -> CorrectionModel:
    return CorrectionModel(
        text=correction.text,
        original=correction.original,
        start=_position(correction.start),
        end=_position(correction.end),
        confidence=correction.confidence,
        changes=[ChangeModel(**vars(change)) for change in correction.changes],
    )


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
