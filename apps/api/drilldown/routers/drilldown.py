from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from drilldown.core.config import Settings
from drilldown.dependencies import get_db, get_settings
from drilldown.schemas.drilldown_request import DrilldownRequest
from drilldown.schemas.drilldown_response import DrilldownResponse
from drilldown.services.drilldown_service import DrilldownService
from drilldown.services.full_text import LikeFullTextSearch
from drilldown.repositories.drilldown_repo import DrilldownRepository

router = APIRouter(prefix="/drilldown", tags=["drilldown"])

@router.post("/{table_name}", response_model=DrilldownResponse)
def drilldown_endpoint(table_name: str, body: DrilldownRequest,
                       db: Session = Depends(get_db),
                       settings: Settings = Depends(get_settings)) -> DrilldownResponse:
    repo = DrilldownRepository(db, settings)
    svc = DrilldownService(repo=repo, full_text=LikeFullTextSearch(), settings=settings)
    return svc.execute(table_name, body)
