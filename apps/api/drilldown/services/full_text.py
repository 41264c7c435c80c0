from typing import List, Protocol

from sqlalchemy import and_, or_

from drilldown.repositories.catalog import SchemaCatalog
from drilldown.repositories.query_builder import PAGE_ID_COLUMN, JoinCondition, QueryParts

PAGE_DATA_TABLE = "_pageData"
FILE_DATA_TABLE = "_fileData"
FULL_TEXT_COLUMN = "_fullText"


class FullTextSearch(Protocol):
    def query_parts(self, catalog: SchemaCatalog, term: str, base_table: str,
                    searchable_pages: bool, searchable_files: bool) -> QueryParts:
        """Extra tables, conditions and joins restricting base_table to rows matching term."""
        ...


def _tokens(term: str) -> List[str]:
    return [t for t in (term or "").lower().split() if t]


class LikeFullTextSearch:
    """
    Substring search over the stored text of pages and files.

    Every token has to occur in the text; a row matches when its page text or
    any of its files' text matches.
    """

    def query_parts(self, catalog: SchemaCatalog, term: str, base_table: str,
                    searchable_pages: bool, searchable_files: bool) -> QueryParts:
        parts = QueryParts()
        tokens = _tokens(term)
        if not tokens:
            return parts

        matches = []
        for searchable, text_table in ((searchable_pages, PAGE_DATA_TABLE),
                                       (searchable_files, FILE_DATA_TABLE)):
            if not searchable:
                continue
            parts.add_join(JoinCondition(base_table, PAGE_ID_COLUMN, text_table, PAGE_ID_COLUMN))
            text_col = catalog.column(text_table, FULL_TEXT_COLUMN)
            matches.append(and_(*[text_col.icontains(t, autoescape=True) for t in tokens]))

        if matches:
            parts.conditions.append(or_(*matches))
        return parts
