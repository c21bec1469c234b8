"""Core text utilities shared by every report parser."""

from psychaudit.core.html import html_to_text, looks_like_html
from psychaudit.core.utils import (
    extract_mrn,
    merge_unique,
    normalize_text,
    parse_date_string,
    split_lines,
    within_days,
)
