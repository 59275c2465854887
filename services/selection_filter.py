"""
Selection of the records to import.

The filter step produces selector tokens of the form "attributeKey::value".
A record is selected when ANY token matches it. A token matches when the
record's value at attributeKey (trimmed, case-insensitive) equals the token
value, contains it, or is contained by it. No tokens means every record.

The values of the selected tokens are also appended to each product's tags
so markup conditions can target them ("tags eq Summer").
"""

from collections import Counter
from collections.abc import Mapping
from typing import Any, Iterable, Optional, Sequence

import structlog

from utils.text_utils import as_text, normalize_match_text

logger = structlog.get_logger(__name__)

TOKEN_SEPARATOR = "::"
MAX_TAGS = 250


# ===================
# TOKENS
# ===================

def parse_selector_token(token: Any) -> Optional[tuple[str, str]]:
    """
    Split "key::value" on the first separator.

    Returns:
        (key, value), or None for malformed tokens (no separator, empty
        key or empty value)
    """
    if not isinstance(token, str):
        return None
    key, separator, value = token.partition(TOKEN_SEPARATOR)
    if not separator or not key.strip() or not value.strip():
        return None
    return key, value


def parse_selector_tokens(tokens: Optional[Iterable[Any]]) -> list[tuple[str, str]]:
    """Parse every token, silently dropping malformed ones."""
    parsed = []
    for token in tokens or []:
        pair = parse_selector_token(token)
        if pair is None:
            logger.debug("selector_token_ignored", token=token)
            continue
        parsed.append(pair)
    return parsed


def values_match(record_value: Any, filter_value: Any) -> bool:
    """
    Exact, contains or contained-by, all case-insensitive after trim.

    A blank record value is contained by every filter value and therefore
    matches.
    """
    have = normalize_match_text(record_value)
    want = normalize_match_text(filter_value)
    return have == want or want in have or have in want


def record_matches(record: Any, pairs: Sequence[tuple[str, str]]) -> bool:
    """True if any (key, value) pair matches the record."""
    data = record if isinstance(record, Mapping) else {}
    return any(values_match(data.get(key), value) for key, value in pairs)


# ===================
# SELECTION
# ===================

def select_row_indices(rows: Sequence[Any], tokens: Optional[Iterable[Any]]) -> list[int]:
    """
    Indices of CSV rows to import, in original order.

    Args:
        rows: CSV rows (dicts keyed by header)
        tokens: Selector tokens; empty means all rows

    Returns:
        Sorted, de-duplicated row indices
    """
    token_list = list(tokens or [])
    if not token_list:
        return list(range(len(rows)))

    pairs = parse_selector_tokens(token_list)
    selected: set[int] = set()
    for key, value in pairs:
        for index, row in enumerate(rows):
            data = row if isinstance(row, Mapping) else {}
            if values_match(data.get(key), value):
                selected.add(index)

    logger.info(
        "csv_rows_selected",
        total_rows=len(rows),
        selected=len(selected),
        tokens=len(pairs)
    )
    return sorted(selected)


def select_rows(rows: Sequence[Any], tokens: Optional[Iterable[Any]]) -> list[Any]:
    """CSV rows to import; the rows unchanged when there are no tokens."""
    return [rows[index] for index in select_row_indices(rows, tokens)]


def select_items(items: Sequence[Any], tokens: Optional[Iterable[Any]]) -> list[Any]:
    """
    API items to import, in original order.

    Args:
        items: Items returned by the supplier API
        tokens: Selector tokens; empty means all items

    Returns:
        Matching items
    """
    token_list = list(tokens or [])
    if not token_list:
        return list(items)

    pairs = parse_selector_tokens(token_list)
    selected = [item for item in items if record_matches(item, pairs)]

    logger.info(
        "api_items_selected",
        total_items=len(items),
        selected=len(selected),
        tokens=len(pairs)
    )
    return selected


def count_matching(records: Sequence[Any], tokens: Optional[Iterable[Any]]) -> int:
    """How many records an import with these tokens would process."""
    return len(select_items(records, tokens))


# ===================
# FILTER TAGS
# ===================

def filter_tag_values(tokens: Optional[Iterable[Any]]) -> list[str]:
    """Values of all well-formed tokens, in token order."""
    return [value for _, value in parse_selector_tokens(tokens)]


def cap_tags(tags: Sequence[str], limit: int = MAX_TAGS) -> list[str]:
    """Keep the first `limit` tags, order preserved."""
    if len(tags) <= limit:
        return list(tags)
    logger.warning("tags_truncated", count=len(tags), limit=limit)
    return list(tags[:limit])


def apply_filter_tags(
    tags: Sequence[str],
    tokens: Optional[Iterable[Any]],
    limit: int = MAX_TAGS
) -> list[str]:
    """
    Append selected filter values to a product's tags, then cap the list.

    Args:
        tags: Tags the product already has
        tokens: Selector tokens used for the import
        limit: Maximum number of tags to keep

    Returns:
        New tag list
    """
    return cap_tags([*tags, *filter_tag_values(tokens)], limit)


# ===================
# FACETS
# ===================

def build_attribute_options(
    records: Sequence[Any],
    keys: Optional[Sequence[str]] = None
) -> list[dict]:
    """
    Distinct values per attribute, most frequent first.

    Args:
        records: CSV rows or API items
        keys: Attribute keys to report (CSV headers); defaults to every
            key seen across records, in first-seen order

    Returns:
        [{"key": ..., "values": [{"value": ..., "count": ...}, ...]}, ...]
    """
    mappings = [record for record in records if isinstance(record, Mapping)]

    if keys is None:
        seen: dict[str, None] = {}
        for record in mappings:
            for key in record:
                seen.setdefault(str(key), None)
        keys = list(seen)

    options = []
    for key in keys:
        if not key:
            continue
        counts: Counter = Counter()
        for record in mappings:
            value = as_text(record.get(key)).strip()
            if value:
                counts[value] += 1
        options.append({
            "key": key,
            "values": [
                {"value": value, "count": count}
                for value, count in counts.most_common()
            ],
        })
    return options
