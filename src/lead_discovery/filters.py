"""Filter normalization for Wiza prospect searches.

``normalize_filters`` turns whatever the AI model (or a caller) produced into
a complete ``FilterSet``. Malformed values degrade to defaults; nothing here
raises.
"""

from typing import Any, Dict, List

from .models import FILTER_KEYS, FilterSet, LocationHash, ValueHash

DEFAULT_LOCATION_BUCKET = "city"

STRING_ARRAY_FIELDS = (
    "first_name",
    "last_name",
    "job_title_level",
    "job_role",
    "job_sub_role",
    "skill",
    "school",
    "major",
    "linkedin_slug",
    "job_company",
    "past_company",
    "company_industry",
    "company_size",
    "revenue",
    "company_type",
    "company_summary",
)

YEAR_FIELDS = ("year_founded_start", "year_founded_end")


def _string_array_schema() -> Dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}}


# Structured-output schema for the AI model: {"filters": {<every key>}}.
FILTERS_JSON_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "filters": {
            "type": "object",
            "properties": {
                **{key: _string_array_schema() for key in FILTER_KEYS},
                "location": {"type": "object"},
                "year_founded_start": {"type": "string"},
                "year_founded_end": {"type": "string"},
            },
            "required": list(FILTER_KEYS),
        },
    },
    "required": ["filters"],
}


def safe_string_array(value: Any) -> List[str]:
    """Keep the trimmed, non-empty strings of a list; anything else is []."""
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def normalize_value_hashes(value: Any) -> List[ValueHash]:
    """Normalize bare strings or `{v}` objects into `{v}` hashes."""
    if not isinstance(value, list):
        return []

    out = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("v")
        if isinstance(item, str) and item.strip():
            out.append(ValueHash(v=item.strip()))
    return out


def normalize_location_hashes(
    value: Any, fallback_bucket: str = DEFAULT_LOCATION_BUCKET
) -> List[LocationHash]:
    """Normalize bare strings or `{v, b}` objects into `{v, b}` hashes.

    Wiza expects company_location as hashes such as
    ``{"v": "Toronto, Ontario, Canada", "b": "city"}``.
    """
    if not isinstance(value, list):
        return []

    out = []
    for item in value:
        if isinstance(item, dict):
            v = item.get("v")
            if not isinstance(v, str) or not v.strip():
                continue
            b = item.get("b")
            bucket = b.strip() if isinstance(b, str) else ""
            out.append(LocationHash(v=v.strip(), b=bucket or fallback_bucket))
        elif isinstance(item, str) and item.strip():
            out.append(LocationHash(v=item.strip(), b=fallback_bucket))
    return out


def normalize_filters(raw: Any) -> FilterSet:
    """Coerce arbitrary filter data into a complete FilterSet.

    Args:
        raw: Filter data of any shape; None, partial or wrongly typed.

    Returns:
        FilterSet with every key present and correctly typed.
    """
    if not isinstance(raw, dict):
        return FilterSet()

    values: Dict[str, Any] = {
        field: safe_string_array(raw.get(field)) for field in STRING_ARRAY_FIELDS
    }
    values["job_title"] = normalize_value_hashes(raw.get("job_title"))
    values["company_location"] = normalize_location_hashes(raw.get("company_location"))

    location = raw.get("location")
    values["location"] = location if isinstance(location, dict) else {}

    for field in YEAR_FIELDS:
        year = raw.get(field)
        values[field] = year if isinstance(year, str) else ""

    return FilterSet(**values)
