"""CSV ingestion pipeline: tokenizer, header resolver and row normalizer."""

from .headers import (
    CSV_FIELDS,
    REVIEW_THRESHOLD,
    HeaderResolution,
    MappingSuggestion,
    field_confidence,
    fields_needing_review,
    header_signature,
    normalize_header,
    resolve_headers,
    sanitize_mapping,
    suggest_column_mapping,
)
from .normalize import (
    infer_currency_from_symbol,
    normalize_row,
    parse_date,
    parse_number,
    parse_transactions_csv,
)
from .tokenizer import detect_delimiter, tokenize

__all__ = [
    "CSV_FIELDS",
    "REVIEW_THRESHOLD",
    "HeaderResolution",
    "MappingSuggestion",
    "detect_delimiter",
    "field_confidence",
    "fields_needing_review",
    "header_signature",
    "infer_currency_from_symbol",
    "normalize_header",
    "normalize_row",
    "parse_date",
    "parse_number",
    "parse_transactions_csv",
    "resolve_headers",
    "sanitize_mapping",
    "suggest_column_mapping",
    "tokenize",
]
