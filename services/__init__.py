"""
Business logic services.

Each service handles one step of the import pipeline.
"""

from services.field_resolver import resolve_field, resolve_path
from services.condition_evaluator import evaluate, check_condition
from services.markup_service import apply_markup, describe_markup, calculate_marked_up_price
from services.selection_filter import (
    parse_selector_tokens,
    select_row_indices,
    select_items,
    apply_filter_tags,
    build_attribute_options,
)
from services.source_transformer import from_csv, from_api, fetch_api_items
from services.import_session_service import ImportSessionService, get_import_session_service
from services.import_service import ImportService, get_import_service

__all__ = [
    "resolve_field",
    "resolve_path",
    "evaluate",
    "check_condition",
    "apply_markup",
    "describe_markup",
    "calculate_marked_up_price",
    "parse_selector_tokens",
    "select_row_indices",
    "select_items",
    "apply_filter_tags",
    "build_attribute_options",
    "from_csv",
    "from_api",
    "fetch_api_items",
    "ImportSessionService",
    "get_import_session_service",
    "ImportService",
    "get_import_service",
]
