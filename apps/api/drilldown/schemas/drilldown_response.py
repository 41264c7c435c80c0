from pydantic import BaseModel
from typing import Dict, List, Optional

from drilldown.core.enums import TimeGranularity


class FacetValue(BaseModel):
    value: str
    count: int


class FacetValues(BaseModel):
    name: str
    type: str
    is_applied: bool = False
    granularity: Optional[TimeGranularity] = None
    values: List[FacetValue] = []


class DrilldownResponse(BaseModel):
    table: str
    facets: Dict[str, FacetValues] = {}


class ErrorResponse(BaseModel):
    error: str
    detail: str
