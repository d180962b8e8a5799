"""Query translation: free-text request to Wiza prospect filters.

The AI model is asked for structured JSON first. When no credential is
configured, when the model hits its quota, or when its output cannot be
parsed, a deterministic keyword heuristic produces the filters instead.
"""

import json
import re
from typing import Any, Optional

from .errors import LLMError, LLMQuotaError
from .filters import DEFAULT_LOCATION_BUCKET, FILTERS_JSON_SCHEMA, normalize_filters
from .llm_client import LLMClient
from .logging_utils import get_logger
from .models import FilterSet, LocationHash, UserLocation

LOCATION_CLAUSE = re.compile(r"\b(in|at|near|around)\s+([A-Za-z .,'-]{2,})$", re.IGNORECASE)
RESEARCH_TERMS = re.compile(r"\bresearch\b|\br&d\b|\bresearch and development\b", re.IGNORECASE)
TRAILING_COMMAS = re.compile(r",\s*([}\]])")

# Home market: named anywhere in the prompt when no trailing clause matches.
HOME_CITY = "Toronto"
HOME_CITY_TERM = re.compile(r"\btoronto\b", re.IGNORECASE)

RESEARCH_SUMMARY = ["research and development", "R&D"]


def extract_first_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` substring of ``text``, if any."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def parse_model_json(text: str) -> Optional[Any]:
    """Parse model output as JSON, salvaging an embedded object once.

    Returns None when nothing parseable is found.
    """
    try:
        return json.loads(text)
    except ValueError:
        pass

    extracted = extract_first_json_object(text)
    if extracted is None:
        return None
    try:
        return json.loads(TRAILING_COMMAS.sub(r"\1", extracted))
    except ValueError:
        return None


def heuristic_filters(prompt: str) -> FilterSet:
    """Build filters from the prompt with regexes alone.

    A trailing "in/at/near/around <place>" clause becomes a city-level
    company location, otherwise a mention of the home city does. Research
    wording becomes a company summary filter.
    """
    filters = FilterSet()
    text = (prompt or "").strip()

    place = ""
    match = LOCATION_CLAUSE.search(text)
    if match:
        place = match.group(2).strip().rstrip(".,").strip()
    if not place and HOME_CITY_TERM.search(text):
        place = HOME_CITY
    if place:
        filters.company_location = [LocationHash(v=place, b=DEFAULT_LOCATION_BUCKET)]

    if RESEARCH_TERMS.search(text):
        filters.company_summary = list(RESEARCH_SUMMARY)

    return filters


def build_translation_prompt(prompt: str, hint: Optional[UserLocation] = None) -> str:
    text = (
        "Convert the user request into Wiza Prospect Search filters for "
        f"POST /api/prospects/search.\n\nUser request: {prompt}"
    )
    if hint is not None:
        text += (
            f"\n\nContext: The user is located at {hint.lat}, {hint.lng}. "
            "Use this location for filtering ONLY if the user's request implies "
            '"near me" or "local".'
        )
    return text


class QueryTranslator:
    """Translates natural-language lead requests into a FilterSet.

    ``translate`` never raises: every failure path ends in the heuristic.
    """

    TEMPERATURE = 0.2
    MAX_OUTPUT_TOKENS = 600

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self.logger = get_logger(__name__)
        self._llm_client = llm_client

    @property
    def llm_client(self) -> LLMClient:
        if self._llm_client is None:
            self._llm_client = LLMClient()
        return self._llm_client

    def translate(self, prompt: str, hint: Optional[UserLocation] = None) -> FilterSet:
        """Translate ``prompt`` into a complete FilterSet.

        Args:
            prompt: Free-text request.
            hint: Optional caller location, applied only to local requests.
        """
        if not self.llm_client.is_configured:
            self.logger.info("No AI credential, using heuristic filters")
            return heuristic_filters(prompt)

        try:
            text = self.llm_client.generate(
                build_translation_prompt(prompt, hint),
                temperature=self.TEMPERATURE,
                max_output_tokens=self.MAX_OUTPUT_TOKENS,
                response_schema=FILTERS_JSON_SCHEMA,
            )
        except LLMQuotaError as e:
            self.logger.warning(
                "AI quota exhausted, using heuristic filters",
                extra={"error": str(e)},
            )
            return heuristic_filters(prompt)
        except LLMError as e:
            self.logger.error(
                "AI translation failed, using heuristic filters",
                extra={"error": str(e), "status_code": e.status_code},
            )
            return heuristic_filters(prompt)

        parsed = parse_model_json(text)
        if not isinstance(parsed, dict):
            self.logger.warning(
                "Unparseable AI filter output, using heuristic filters",
                extra={"content": text[:200]},
            )
            return heuristic_filters(prompt)

        filters = normalize_filters(parsed.get("filters"))
        self.logger.info(
            "Translated prompt into filters",
            extra={"populated": [k for k, v in filters.model_dump().items() if v]},
        )
        return filters
