"""
NoteGraph FastAPI Application

A REST API server for the NoteGraph knowledge graph.
Provides endpoints for notes, links, search and automatic layout.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from notegraph import __version__
from notegraph.config import Config
from notegraph.models import Graph, Link, Note
from notegraph.services.graph_service import GraphService
from notegraph.utils.exceptions import InternalError, NotFoundError, ValidationError
from notegraph.utils.logger import get_logger, log_context, setup_logging

logger = get_logger(__name__)


# Pydantic models for API
class CamelModel(BaseModel):
    """Request/response body using the camelCase wire format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateNoteRequest(CamelModel):
    """Request model for creating a note. Missing coordinates mean default spawn."""

    title: str
    subtitle: str | None = None
    content: str | None = None
    x: float | None = None
    y: float | None = None
    related_ids: list[int] | None = None


class UpdateNoteRequest(CamelModel):
    """Request model for replacing a note. relatedIds, when given, reconciles links."""

    title: str
    subtitle: str
    content: str
    x: float
    y: float
    related_ids: list[int] | None = None


class UpdatePositionRequest(CamelModel):
    """Request model for moving a note."""

    x: float
    y: float


class LinkRequest(CamelModel):
    """Request model for creating or deleting a link."""

    source_id: int
    target_id: int


class SearchResponse(CamelModel):
    """Search results in relevance order."""

    results: list[Note] = Field(default_factory=list)


def create_app(config: Config | None = None) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Configuration; loaded from the environment when omitted

    Returns:
        FastAPI app whose lifespan opens the graph service
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup/shutdown."""
        app_config = config or Config.from_env()

        setup_logging(
            level=app_config.logging.level,
            log_to_file=app_config.logging.log_to_file,
            log_dir=app_config.logging.log_dir,
            file_rotation=app_config.logging.file_rotation,
            file_retention=app_config.logging.file_retention,
            compression=app_config.logging.compression,
            serialize=app_config.logging.serialize,
        )

        logger.info(f"Starting NoteGraph server (data dir: {app_config.storage.data_dir})")

        service = GraphService.from_config(app_config)
        await service.initialize()

        app.state.config = app_config
        app.state.service = service

        yield

        logger.info("Shutting down NoteGraph server")
        await service.close()
        logger.info("Cleanup complete")

    app = FastAPI(
        title="NoteGraph API",
        description="Personal knowledge graph: notes, links, search and auto-layout",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    register_routes(app)

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Map service errors to HTTP responses."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": exc.message})

    @app.exception_handler(InternalError)
    async def internal_error_handler(request: Request, exc: InternalError) -> JSONResponse:
        log_context(
            logger, cause=repr(exc.__cause__), error_type=type(exc).__name__
        ).error(f"Internal error on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=500, content={"error": "internal server error"})


def get_service(request: Request) -> GraphService:
    return request.app.state.service


def register_routes(app: FastAPI) -> None:
    """Attach every endpoint to the app."""

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint with note and index document counts."""
        counts = await get_service(request).health()
        return {"status": "ok", **counts}

    @app.get("/graph", response_model=Graph)
    async def get_graph(request: Request):
        """All notes, most recently modified first, and all links."""
        return await get_service(request).graph()

    @app.post("/notes", response_model=Note, status_code=201)
    async def create_note(request: Request, payload: CreateNoteRequest):
        """
        Create a note.

        Without both x and y the note spawns on the default ring layout.
        Every id in relatedIds is linked to the new note.
        """
        return await get_service(request).create_note(
            title=payload.title,
            subtitle=payload.subtitle,
            content=payload.content,
            x=payload.x,
            y=payload.y,
            related_ids=payload.related_ids,
        )

    @app.get("/notes/{note_id}", response_model=Note)
    async def get_note(request: Request, note_id: int):
        """Retrieve a note by ID."""
        return await get_service(request).get_note(note_id)

    @app.put("/notes/{note_id}", response_model=Note)
    async def update_note(request: Request, note_id: int, payload: UpdateNoteRequest):
        """Replace a note's fields; relatedIds, when present, becomes its exact link set."""
        return await get_service(request).update_note(
            note_id,
            title=payload.title,
            subtitle=payload.subtitle,
            content=payload.content,
            x=payload.x,
            y=payload.y,
            related_ids=payload.related_ids,
        )

    @app.put("/notes/{note_id}/position", response_model=Note)
    async def update_note_position(
        request: Request, note_id: int, payload: UpdatePositionRequest
    ):
        """Move a note on the canvas."""
        return await get_service(request).update_position(note_id, payload.x, payload.y)

    @app.delete("/notes/{note_id}", status_code=204)
    async def delete_note(request: Request, note_id: int):
        """Delete a note together with its links."""
        if not await get_service(request).delete_note(note_id):
            raise NotFoundError(f"note {note_id} not found")
        return Response(status_code=204)

    @app.post("/links", response_model=Link, status_code=201)
    async def create_link(request: Request, payload: LinkRequest):
        """Link two notes. Linking an already linked pair is not an error."""
        return await get_service(request).create_link(payload.source_id, payload.target_id)

    @app.delete("/links", status_code=204)
    async def delete_link(request: Request, payload: LinkRequest):
        """Remove the link between two notes."""
        if not await get_service(request).delete_link(payload.source_id, payload.target_id):
            raise NotFoundError("link not found")
        return Response(status_code=204)

    @app.get("/search", response_model=SearchResponse)
    async def search_notes(
        request: Request,
        q: str = Query(..., description="Search query"),
        limit: int | None = Query(default=None, description="Max results"),
    ):
        """
        Full-text search over title, subtitle and content.

        Falls back to substring matching when the index finds nothing.
        """
        search_config = request.app.state.config.search
        if limit is None:
            limit = search_config.default_limit
        limit = max(1, min(limit, search_config.max_limit))

        results = await get_service(request).search_notes(q, limit)
        return SearchResponse(results=results)

    @app.post("/layout/auto", response_model=Graph)
    async def auto_layout(request: Request):
        """Re-arrange notes on rings by link count, best connected in the centre."""
        return await get_service(request).auto_layout()


app = create_app()
