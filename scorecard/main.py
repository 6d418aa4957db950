import importlib
import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .deps import engine
from .errors import ScorecardError
from . import models

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="Sales Scorecard API", version="1.0.0")

# CORS (dev-friendly; tighten per deployment)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

@app.exception_handler(ScorecardError)
async def scorecard_error_handler(request: Request, exc: ScorecardError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})

@app.get("/health")
def health():
    return {"ok": True}

def _include_routers() -> None:
    for modname in [
        "salespersons",
        "objectives",
        "qualitative",
        "dashboard",
    ]:
        mod = importlib.import_module(f"{__package__}.routers.{modname}")
        app.include_router(mod.router)
        logger.info("[routers] mounted %s", modname)

@app.on_event("startup")
def _on_startup():
    models.Base.metadata.create_all(bind=engine)

_include_routers()
