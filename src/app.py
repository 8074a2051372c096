"""LeadCollect connector FastAPI application.

Serves the LeadCollect polling API, the health check and the storefront
restore links. Every request runs inside the leadcollect domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → event_processing = "sync"  (handlers fire in UoW)
#   - "production" → event_processing = "async" (handlers fire via Engine)
from fastapi import FastAPI, Request
from leadcollect.domain import leadcollect
from protean.integrations.fastapi import register_exception_handlers

leadcollect.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="LeadCollect Connector",
    description="Abandoned-cart recovery bridge between the shop and LeadCollect",
)

register_exception_handlers(app)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the leadcollect domain context for each request."""
    with leadcollect.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from leadcollect.api.routes import api_router, restore_router  # noqa: E402

app.include_router(api_router)
app.include_router(restore_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return {"status": "ok", "domain": leadcollect.name}
