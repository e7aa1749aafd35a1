"""FastAPI application entrypoint for bdg service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, TypeVar

import uvicorn
from fastapi import Depends, FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..orchestrator import EditOutcome, Orchestrator

T = TypeVar("T")


class AddRequest(BaseModel):
    path: str
    only: Optional[List[str]] = None
    allow_yy_calver: Optional[bool] = None
    offline: bool = False
    dry_run: bool = False
    heading: Optional[str] = None
    recommended_only: bool = False


class RemoveRequest(BaseModel):
    path: str
    all: bool = False
    ids: List[str] = Field(default_factory=list)
    kinds: List[str] = Field(default_factory=list)
    strict: bool = False
    dry_run: bool = False


class EditResponse(BaseModel):
    path: str
    diff: str
    changed: bool
    dry_run: bool
    written: bool
    exit_code: int
    added_ids: List[str] = Field(default_factory=list)
    removed_ids: Optional[List[str]] = None
    missing_ids: Optional[List[str]] = None
    removed_kinds: Optional[Dict[str, int]] = None
    warnings: List[Dict[str, Any]] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    version: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def _to_response(outcome: EditOutcome) -> EditResponse:
    return EditResponse(
        path=str(outcome.path),
        diff=outcome.diff,
        changed=outcome.changed,
        dry_run=outcome.dry_run,
        written=outcome.written,
        exit_code=outcome.exit_code,
        added_ids=outcome.added_ids,
        removed_ids=outcome.removed_ids,
        missing_ids=outcome.missing_ids,
        removed_kinds=outcome.removed_kinds,
        warnings=outcome.warnings,
    )


async def _run_blocking(func: Callable[[], T]) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing bdg operations."""
    app = FastAPI(title="bdg service", version=__version__)

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.get("/badges")
    async def list_badges(
        path: str = Query(...),
        offline: bool = Query(False),
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        outcome = await _run_blocking(lambda: orchestrator.run_list(path, offline=offline))
        return outcome.payload

    @app.post("/badges/add", response_model=EditResponse)
    async def add_badges(
        payload: AddRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> EditResponse:
        def _recommended(candidates: Any, recommended: Any) -> Any:
            return recommended

        outcome = await _run_blocking(
            lambda: orchestrator.run_add(
                payload.path,
                only=payload.only,
                allow_yy_calver=payload.allow_yy_calver,
                offline=payload.offline,
                dry_run=payload.dry_run,
                heading=payload.heading,
                select=_recommended if payload.recommended_only else None,
            )
        )
        return _to_response(outcome)

    @app.post("/badges/remove", response_model=EditResponse)
    async def remove_badges(
        payload: RemoveRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> EditResponse:
        outcome = await _run_blocking(
            lambda: orchestrator.run_remove(
                payload.path,
                all=payload.all,
                ids=payload.ids,
                kinds=payload.kinds,
                strict=payload.strict,
                dry_run=payload.dry_run,
            )
        )
        return _to_response(outcome)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_: Any, exc: RuntimeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Serve the API with uvicorn."""
    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["AddRequest", "EditResponse", "RemoveRequest", "create_app", "run_service"]
