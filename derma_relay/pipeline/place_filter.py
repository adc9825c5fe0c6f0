from __future__ import annotations
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from derma_relay.schemas import PlaceResult
from derma_relay.utils.logging import get_logger

logger = get_logger("place_filter")

EXCLUDED_NAME_KEYWORDS = ("veterinary", "animal", "pet")
TB_KEYWORDS = ("tb", "tuberculosis")

# Name keyword -> relevance weight. A name collects every weight it matches.
NAME_KEYWORD_WEIGHTS = (
    ("dermat", 50),
    ("skin", 30),
    ("specialist", 15),
    ("medical center", 10),
    ("clinic", 5),
    ("hospital", 5),
)
ADDRESS_DERMAT_WEIGHT = 10


def _name(place: PlaceResult) -> str:
    if place.display_name and place.display_name.text:
        return place.display_name.text
    return ""


def _lowered(place: PlaceResult) -> tuple[str, str]:
    return _name(place).lower(), (place.formatted_address or "").lower()


def parse_places(raw_places: Iterable[Dict[str, Any] | PlaceResult]) -> List[PlaceResult]:
    """Convert upstream JSON records to PlaceResult, dropping records that do not fit the model."""
    parsed: List[PlaceResult] = []
    for raw in raw_places:
        if isinstance(raw, PlaceResult):
            parsed.append(raw)
            continue
        try:
            parsed.append(PlaceResult.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping malformed place record: {e.error_count()} validation errors")
    return parsed


def dedupe_by_display_name(places: Iterable[PlaceResult]) -> List[PlaceResult]:
    """Keep the first place seen for each display name.

    Two distinct clinics sharing a name collapse into one entry. Places with
    no display name share the empty key.
    """
    seen: set[str] = set()
    unique: List[PlaceResult] = []
    for place in places:
        key = _name(place)
        if key in seen:
            continue
        seen.add(key)
        unique.append(place)
    return unique


def is_dermatology_place(place: PlaceResult) -> bool:
    name, address = _lowered(place)

    if any(word in name for word in EXCLUDED_NAME_KEYWORDS):
        return False

    mentions_tb = any(word in name for word in TB_KEYWORDS)
    return (
        "dermat" in name
        or "skin" in name
        or "dermat" in address
        or ("clinic" in name and not mentions_tb)
        or ("hospital" in name and not mentions_tb)
        or "medical center" in name
        or "specialist" in name
    )


def relevance_score(place: PlaceResult) -> int:
    name, address = _lowered(place)
    score = sum(weight for word, weight in NAME_KEYWORD_WEIGHTS if word in name)
    if "dermat" in address:
        score += ADDRESS_DERMAT_WEIGHT
    return score


def _rank_key(place: PlaceResult) -> tuple[bool, int, float]:
    closed = place.business_status == "CLOSED_PERMANENTLY"
    return closed, -relevance_score(place), -(place.rating or 0.0)


def select_dermatology_places(raw_places: Iterable[Dict[str, Any] | PlaceResult]) -> List[PlaceResult]:
    """
    Turn the merged output of all text-search queries into the list returned to clients.

    Args:
        raw_places: upstream place records, in aggregation order

    Returns:
        Deduplicated dermatology-related places, most relevant first. The sort
        is stable, so equally ranked places keep their aggregation order.
    """
    unique = dedupe_by_display_name(parse_places(raw_places))
    relevant = [p for p in unique if is_dermatology_place(p)]
    return sorted(relevant, key=_rank_key)
