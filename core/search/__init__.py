"""Search module - query model, lifecycle states and the query parser."""
from core.search.query import (
    ParsedQuery,
    MultiValueField,
    QueryTag,
    PARSED_QUERY_SCHEMA_VERSION,
    NOT_SPECIFIED,
    field_values,
    format_field,
    generate_search_name,
)
from core.search.states import SearchStatus, SearchStage, can_transition, check_transition

__all__ = [
    'ParsedQuery',
    'MultiValueField',
    'QueryTag',
    'PARSED_QUERY_SCHEMA_VERSION',
    'NOT_SPECIFIED',
    'field_values',
    'format_field',
    'generate_search_name',
    'SearchStatus',
    'SearchStage',
    'can_transition',
    'check_transition',
]
