import logging
from typing import Dict, List, Optional

from drilldown.core.config import Settings, settings as default_settings
from drilldown.core.errors import InvalidRequestError
from drilldown.domain.filters import AppliedFilter, DrilldownContext, Filter, FilterRegistry
from drilldown.repositories.drilldown_repo import DrilldownRepository
from drilldown.schemas.drilldown_request import AppliedFilterSpec, DrilldownRequest
from drilldown.schemas.drilldown_response import DrilldownResponse, FacetValue, FacetValues
from drilldown.services.full_text import FullTextSearch, LikeFullTextSearch

logger = logging.getLogger(__name__)


class DrilldownService:
    def __init__(self, repo: DrilldownRepository, full_text: Optional[FullTextSearch] = None,
                 settings: Optional[Settings] = None):
        self.repo = repo
        self.full_text = full_text if full_text is not None else LikeFullTextSearch()
        self.settings = settings or default_settings

    def execute(self, table_name: str, req: DrilldownRequest) -> DrilldownResponse:
        """Compute the possible values of the requested facets under the applied filters."""
        registry = FilterRegistry.for_table(self.repo.catalog, table_name, self.settings)
        applied = self._applied_filters(registry, req.applied)
        applied_names = {af.filter.name for af in applied}
        context = DrilldownContext(repo=self.repo, full_text=self.full_text)

        if req.facets is None:
            wanted = registry.get_all()
        else:
            wanted = [registry.get(name) for name in req.facets]

        facets: Dict[str, FacetValues] = {}
        for flt in wanted:
            if not flt.requirements_met(applied_names):
                logger.debug("Skipping facet %s: requires %s", flt.name, flt.required_filters)
                continue
            facets[flt.name] = self._compute_facet(context, flt, req.q, applied, flt.name in applied_names)

        return DrilldownResponse(table=table_name, facets=facets)

    def _applied_filters(self, registry: FilterRegistry,
                         specs: Dict[str, AppliedFilterSpec]) -> List[AppliedFilter]:
        applied = []
        for name, spec in specs.items():
            flt = registry.get(name)
            if spec.time_period is not None:
                if not flt.field_descriptor.type.is_date:
                    raise InvalidRequestError(f"Facet {name!r} is not a date facet")
                try:
                    af = AppliedFilter.for_time_period(flt, spec.time_period)
                except ValueError as exc:
                    raise InvalidRequestError(str(exc)) from exc
                af.values.extend(spec.values)
            else:
                af = AppliedFilter(flt, values=list(spec.values))
            af.search_terms.extend(spec.search_terms)
            applied.append(af)
        return applied

    def _compute_facet(self, context: DrilldownContext, flt: Filter, q: Optional[str],
                       applied: List[AppliedFilter], is_applied: bool) -> FacetValues:
        granularity = None
        # date facets stay bucketed once applied, so a bucket can be drilled into further
        if flt.field_descriptor.type.is_date:
            granularity = flt.time_granularity(context, q, applied)
            values = flt.possible_time_periods(context, q, applied) if granularity else {}
        elif is_applied:
            values = flt.possible_values(context, q, applied, is_applied=True)
        else:
            values = flt.possible_values(context, q, applied)

        return FacetValues(
            name=flt.name,
            type=str(flt.field_descriptor.type),
            is_applied=is_applied,
            granularity=granularity,
            values=[FacetValue(value=v, count=c) for v, c in values.items()],
        )
