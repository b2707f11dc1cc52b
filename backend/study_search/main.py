import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .ai_analysis import SYSTEM_PROMPT, CompletionError, Completer, get_completer
from .document_store import PostgresDocumentStore, StoreUnavailableError, get_document_store
from .resource_matcher import ResourceMatcher
from .schemas import HealthResponse, SearchRequest, SearchResponse
from .search_service import InvalidPromptError, run_search

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

app = FastAPI(title="Study Search API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/healthz", response_model=HealthResponse)
@app.get("/api/healthz", response_model=HealthResponse)
def health(store: PostgresDocumentStore = Depends(get_document_store)):
    try:
        store.ping()
        db_ok = True
    except Exception:
        db_ok = False

    return HealthResponse(status="ok", db_ok=db_ok)


@app.post("/search", response_model=SearchResponse)
@app.post("/api/search", response_model=SearchResponse)
async def search_endpoint(
    req: SearchRequest,
    store: PostgresDocumentStore = Depends(get_document_store),
    completer: Optional[Completer] = Depends(get_completer),
):
    """
    Analyse a study query and return ranked course resources.

    An unreachable store is a 503, kept apart from a 200 with no resources.
    AI failures never surface here; the analysis degrades to the
    rule-based fallback instead.
    """
    matcher = ResourceMatcher(store, limit=config.MAX_RESULTS)
    try:
        return await run_search(req.prompt, completer, matcher, filters=req.filters)
    except InvalidPromptError as exc:
        log.error("Missing or invalid prompt in request")
        raise HTTPException(status_code=400, detail=str(exc))
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc))


@app.get("/api/search/test")
def search_test(
    store: PostgresDocumentStore = Depends(get_document_store),
    completer: Optional[Completer] = Depends(get_completer),
):
    """Connectivity probe for the document store and the completion service."""
    try:
        sample = store.sample_document()
    except Exception as exc:
        log.error("Store test failed: %s", exc)
        return JSONResponse(status_code=500, content={"status": "error", "message": str(exc)})

    ai_status = {"connected": False, "response": None}
    if completer is not None:
        try:
            ai_status = {
                "connected": True,
                "response": completer.complete(SYSTEM_PROMPT, "Say hello!"),
            }
        except CompletionError as exc:
            log.warning("AI test failed: %s", exc)
            ai_status["error"] = str(exc)

    return {
        "status": "success",
        "store": {
            "connected": True,
            "sample_resource": {"id": sample.id, **sample.data} if sample else None,
        },
        "openai": ai_status,
    }
