"""FastAPI app, lifespan bootstrap, and HTTP routes.

Exposes the in-memory character registry:

- GET    /population    -> reset the registry from the upstream API
- GET    /characters    -> every stored character, in insertion order
- POST   /create        -> validate and add a character
- PATCH  /update/{id}   -> change whitelisted fields of a character
- DELETE /delete/{id}   -> remove a character
- GET    /healthz       -> in-process liveness
- GET    /              -> redirect to Swagger UI (/docs)

Registry failures are answered as RFC 7807 problem+json.
"""

import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Dict, List

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from . import ingest, metrics
from .errors import RegistryError, ValidationFailed
from .logging_config import configure_logging
from .registry import Registry, registry
from .schemas import (
    CharacterOut,
    HealthzOut,
    MessageOut,
    PopulationOut,
    ProblemDetail,
)
from .settings import settings

configure_logging()
log = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Optionally populate the registry once before serving."""
    if settings.POPULATE_ON_STARTUP:
        try:
            n = await ingest.populate(get_registry())
            log.info("startup.populate stored=%d", n)
        except RegistryError as exc:
            # Serve anyway; GET /population can be retried by clients
            log.warning("startup.populate_failed error=%s", exc.detail)
    yield


app = FastAPI(title="Rick & Morty Character Registry", version="1.0.0", lifespan=lifespan)
metrics.install(app)


def get_registry() -> Registry:
    """FastAPI dependency returning the process-wide registry."""
    return registry


# ---------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------

_STATUS_TITLES = {
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    424: "Failed Dependency",
    500: "Internal Server Error",
}


def _problem(
    status: int,
    title: str | None = None,
    detail: str | None = None,
    instance: str | None = None,
    errors: List[str] | None = None,
) -> JSONResponse:
    """Return an RFC7807 problem+json response."""
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": title or _STATUS_TITLES.get(status, "Error"),
        "status": status,
        "detail": detail,
        "instance": instance,
    }
    if errors is not None:
        body["errors"] = errors
    return JSONResponse(
        status_code=status, content=body, media_type="application/problem+json"
    )


@app.exception_handler(RegistryError)
async def registry_error_handler(req: Request, exc: RegistryError):
    errors = exc.errors if isinstance(exc, ValidationFailed) else None
    return _problem(
        status=exc.status_code,
        title=exc.title,
        detail=exc.detail,
        instance=req.url.path,
        errors=errors,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(_req: Request, exc: HTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else None
    return _problem(
        status=exc.status_code, title=_STATUS_TITLES.get(exc.status_code), detail=detail
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_req: Request, exc: RequestValidationError):
    msg = exc.errors()[0]["msg"] if exc.errors() else "Validation error"
    return _problem(status=422, title=_STATUS_TITLES[422], detail=msg)


@contextmanager
def _tracked(op: str, reg: Registry):
    """Count a registry operation by outcome and refresh the registry gauges.

    Errors propagate unchanged.
    """
    try:
        yield
    except RegistryError as exc:
        metrics.record_op(op, type(exc).__name__)
        raise
    else:
        metrics.record_op(op)
    finally:
        # a failed population also empties the registry
        metrics.observe_registry(reg.count(), ingest.last_population_age())


def _problem_responses(*codes: int) -> Dict[int | str, Dict[str, Any]]:
    content = {"application/problem+json": {"schema": ProblemDetail.model_json_schema()}}
    return {code: {"content": content, "model": ProblemDetail} for code in codes}


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------


@app.get("/", include_in_schema=False)
async def root(_request: Request):
    """Redirect the root path to the interactive API docs (/docs)."""
    return RedirectResponse(url=app.docs_url or "/docs", status_code=307)


@app.get("/healthz", response_model=HealthzOut, include_in_schema=False)
async def healthz(reg: Registry = Depends(get_registry)):
    """In-process liveness; never touches the upstream API."""
    count = reg.count()
    age = ingest.last_population_age()
    metrics.observe_registry(count, age)
    return {"status": "ok", "character_count": count, "last_population_age": age}


@app.get(
    "/population", response_model=PopulationOut, responses=_problem_responses(424)
)
async def population(reg: Registry = Depends(get_registry)):
    """Drop every stored character and reload them from the upstream API."""
    with _tracked("populate", reg):
        n = await ingest.populate(reg)
    log.info("route.population stored=%d", n)
    return {"message": "characters fetched", "count": n}


@app.get(
    "/characters",
    response_model=List[CharacterOut],
    responses=_problem_responses(404),
)
async def characters(reg: Registry = Depends(get_registry)):
    """Return every stored character in insertion order."""
    with _tracked("list", reg):
        rows = reg.list_all()
    log.debug("route.characters returned=%d", len(rows))
    return rows


@app.post(
    "/create",
    status_code=201,
    response_model=MessageOut,
    responses=_problem_responses(400, 409),
)
async def create_character(
    candidate: Dict[str, Any] = Body(...), reg: Registry = Depends(get_registry)
):
    """Add a character after checking every required field."""
    with _tracked("create", reg):
        reg.create(candidate)
    return {"message": "character created"}


@app.patch(
    "/update/{character_id}",
    response_model=MessageOut,
    responses=_problem_responses(400, 403, 404),
)
async def update_character(
    character_id: int,
    patch: Dict[str, Any] = Body(...),
    reg: Registry = Depends(get_registry),
):
    """Change whitelisted fields of a character; `id` cannot be changed."""
    with _tracked("update", reg):
        reg.update(character_id, patch)
    return {"message": "character updated"}


@app.delete(
    "/delete/{character_id}",
    response_model=MessageOut,
    responses=_problem_responses(404),
)
async def delete_character(character_id: int, reg: Registry = Depends(get_registry)):
    """Remove a character."""
    with _tracked("delete", reg):
        reg.delete(character_id)
    return {"message": "character deleted"}
