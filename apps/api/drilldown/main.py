import logging
import sys

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from drilldown.core.config import settings
from drilldown.core.errors import InvalidRequestError, QueryExecutionError, SchemaError
from drilldown.routers.drilldown import router as drilldown_router
from drilldown.schemas.drilldown_response import ErrorResponse

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Facet Drill-down API")

# Mount routers
app.include_router(drilldown_router, prefix="/api/v1")


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code,
                        content=ErrorResponse(error=type(exc).__name__, detail=str(exc)).model_dump())


@app.exception_handler(SchemaError)
async def schema_error_handler(request: Request, exc: SchemaError):
    return _error(404, exc)


@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError):
    return _error(400, exc)


@app.exception_handler(QueryExecutionError)
async def query_error_handler(request: Request, exc: QueryExecutionError):
    logger.error("Drill-down query failed for %s: %s", request.url.path, exc)
    return _error(503, exc)


# Simple health for E2E bring-up
@app.get("/healthz")
def healthz():
    return {"status": "ok"}
