import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from libris.config import settings
from libris.db import Database
from libris.errors import LibraryError, ValidationError, NotFound
from libris.logging_config import setup_logging
from libris.api.router import router

logger = logging.getLogger(__name__)

setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

app = FastAPI(
    title="Library information system",
    version="1.0.0",
    description="API for running a library: books, readers, issuing and returning.",
    docs_url="/api-docs",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)

def _status_for(exc: LibraryError) -> int:
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, ValidationError) and exc.code == "EMAIL_EXISTS":
        return 409
    # validation errors and refused transitions
    return 400

@app.exception_handler(LibraryError)
async def on_library_error(request: Request, exc: LibraryError):
    body = {"error": exc.message, "code": exc.code}
    if isinstance(exc, ValidationError):
        body["fields"] = dict(exc.errors)
    return JSONResponse(status_code=_status_for(exc), content=body)

@app.exception_handler(RequestValidationError)
async def on_request_validation_error(request: Request, exc: RequestValidationError):
    fields = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        fields.setdefault(".".join(loc) or "body", err.get("msg", "invalid"))
    message = "; ".join(f"{field}: {msg}" for field, msg in fields.items())
    return JSONResponse(status_code=400, content={"error": message, "code": "VALIDATION_ERROR", "fields": fields})

if Path(settings.STATIC_DIR).is_dir():
    app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="front")

@app.on_event("startup")
async def on_startup():
    app.state.db = await Database(settings.DATABASE_URL, echo=settings.DB_ECHO).open()
    logger.info("%s started (env=%s), docs at /api-docs", settings.APP_NAME, settings.ENV)

@app.on_event("shutdown")
async def on_shutdown():
    db = getattr(app.state, "db", None)
    if db is not None:
        await db.close()
