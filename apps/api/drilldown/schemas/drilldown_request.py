from pydantic import BaseModel
from typing import Dict, List, Optional


class AppliedFilterSpec(BaseModel):
    values: List[str] = []
    search_terms: List[str] = []
    # a bucket label such as "1990 - 1999" or "March 2024"
    time_period: Optional[str] = None


class DrilldownRequest(BaseModel):
    q: Optional[str] = None
    applied: Dict[str, AppliedFilterSpec] = {}
    facets: Optional[List[str]] = None
