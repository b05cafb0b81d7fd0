"""
Normalization of the hosted model's loosely-structured responses.

The model is asked for strict JSON, but what comes back varies: the text may
sit inside a Responses-API ``output`` array, a chat-completions ``choices``
list or a bare ``text`` field; it may be wrapped in a markdown code fence or
surrounded by prose; and the tier keys are sometimes camelCased or shortened.
Everything here turns that into an ``AnalysisResult``.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .errors import ResponseFormatError
from .schemas import AnalysisResult, FoodItem, PurineTier

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 500

FENCED_OBJECT = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")
GREEDY_OBJECT = re.compile(r"\{[\s\S]*\}")
LAZY_OBJECT = re.compile(r"\{[\s\S]*?\}")

# Canonical key first, then the variants seen in the wild
TIER_FIELD_VARIANTS = {
    PurineTier.HIGH: ("high_purine_foods", "highPurineFoods", "high_purine", "highPurine"),
    PurineTier.MEDIUM: (
        "medium_purine_foods",
        "mediumPurineFoods",
        "medium_purine",
        "mediumPurine",
    ),
    PurineTier.LOW: ("low_purine_foods", "lowPurineFoods", "low_purine", "lowPurine"),
}


def _text_from_output_array(output: List[Any]) -> str:
    """Return the ``output_text`` of the last message item that has one."""
    for item in reversed(output):
        if not isinstance(item, dict) or item.get("type") != "message":
            continue
        content = item.get("content")
        if not isinstance(content, list):
            continue
        for part in content:
            if (
                isinstance(part, dict)
                and part.get("type") == "output_text"
                and isinstance(part.get("text"), str)
                and part["text"]
            ):
                return part["text"]
    return ""


def _as_text(value: Any) -> str:
    """
    Coerce an envelope field to text.

    Strings pass through and chat-style part lists are joined by their text
    parts. Anything else is re-encoded as JSON so it can still be searched
    for an embedded object.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        texts = [
            part["text"]
            for part in value
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ]
        if texts:
            return "\n".join(texts)
    return json.dumps(value, ensure_ascii=False)


def extract_response_text(data: Any) -> str:
    """
    Pull the model's text out of whichever envelope the endpoint used.

    Args:
        data: Decoded JSON body of the model response

    Returns:
        The text the model produced, or the whole payload re-encoded as JSON
        when no known envelope matches
    """
    if isinstance(data, dict):
        output = data.get("output")
        if isinstance(output, list):
            text = _text_from_output_array(output)
            if text:
                return text
        if isinstance(output, str) and output:
            return output

        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict):
                content = message.get("content")
                return _as_text(content) if content else ""

        if data.get("text"):
            return _as_text(data["text"])
        if data.get("content"):
            return _as_text(data["content"])

    return _as_text(data)


def _try_loads(candidate: str) -> Optional[Any]:
    try:
        return json.loads(candidate)
    except (TypeError, ValueError):
        return None


def extract_json_payload(text: str) -> Any:
    """
    Parse JSON from model text, tolerating code fences and surrounding prose.

    Raises:
        ResponseFormatError: If no parseable JSON object can be found
    """
    result = _try_loads(text)
    if result is not None:
        return result
    logger.debug("Direct JSON parse failed, looking for an embedded object")

    fenced = FENCED_OBJECT.search(text)
    if fenced:
        result = _try_loads(fenced.group(1))
        if result is not None:
            logger.debug("Parsed JSON from markdown code fence")
            return result

    preview = text[:PREVIEW_CHARS]
    greedy = GREEDY_OBJECT.search(text)
    if not greedy:
        raise ResponseFormatError(
            f"No JSON found in model response. First {PREVIEW_CHARS} chars: {preview}"
        )

    result = _try_loads(greedy.group(0))
    if result is not None:
        return result

    # Prose with several fragments: the last complete object is usually the answer
    for candidate in reversed(LAZY_OBJECT.findall(text)):
        result = _try_loads(candidate)
        if result is not None:
            return result

    raise ResponseFormatError(
        f"Could not parse JSON from model response. First {PREVIEW_CHARS} chars: {preview}"
    )


def _resolve_tier(payload: Dict[str, Any], tier: PurineTier) -> Optional[List[Any]]:
    for key in TIER_FIELD_VARIANTS[tier]:
        value = payload.get(key)
        if isinstance(value, list):
            if key != tier.field_name:
                logger.info(f"Using field '{key}' for {tier.value} purine foods")
            return value
    return None


def _coerce_items(raw_items: List[Any], tier: PurineTier) -> List[FoodItem]:
    items = []
    for raw in raw_items:
        try:
            item = FoodItem.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Dropping unreadable {tier.value} purine entry {raw!r}: {e}")
            continue
        if item.coordinates is None and isinstance(raw, dict) and raw.get("coordinates"):
            logger.warning(
                f"Food '{item.food_name}' has unreadable coordinates: {raw['coordinates']!r}"
            )
        items.append(item)
    return items


def normalize_result(payload: Any) -> AnalysisResult:
    """
    Build an ``AnalysisResult`` from the parsed model JSON.

    Each tier is looked up under its canonical key and then its known
    variants. A missing tier becomes an empty list, but at least one tier
    must be present.

    Raises:
        ResponseFormatError: If the payload is not an object or has no tiers
    """
    if not isinstance(payload, dict):
        raise ResponseFormatError(
            f"Expected a JSON object from the model, got {type(payload).__name__}"
        )

    tiers = {tier: _resolve_tier(payload, tier) for tier in PurineTier}
    if all(raw is None for raw in tiers.values()):
        keys = ", ".join(payload.keys()) or "(none)"
        raise ResponseFormatError(
            "Model response is missing high_purine_foods, medium_purine_foods "
            f"and low_purine_foods; fields present: {keys}"
        )

    result = AnalysisResult(
        **{
            tier.field_name: _coerce_items(raw or [], tier)
            for tier, raw in tiers.items()
        }
    )
    check_coordinates(result)
    return result


def check_coordinates(result: AnalysisResult) -> int:
    """Log foods whose boxes look wrong; returns how many were flagged."""
    flagged = 0
    for _, items in result.iter_tiers():
        for item in items:
            if item.coordinates is not None and not item.coordinates.is_plausible():
                logger.warning(
                    f"Coordinates for '{item.food_name}' may be invalid: "
                    f"{item.coordinates.model_dump()}"
                )
                flagged += 1
    if flagged:
        logger.warning(f"{flagged} detected food(s) have questionable coordinates")
    return flagged


def parse_model_response(data: Any) -> AnalysisResult:
    """Turn a raw model response body into a normalized ``AnalysisResult``."""
    text = extract_response_text(data)
    if text:
        logger.debug(f"Extracted response text: {text[:PREVIEW_CHARS]}")
        payload = extract_json_payload(text)
    else:
        logger.debug("Model response carried no text, using the body as-is")
        payload = data

    result = normalize_result(payload)
    if result.is_empty:
        logger.warning("Model did not detect any food")
    else:
        logger.info(
            f"Recognized {len(result.high_purine_foods)} high, "
            f"{len(result.medium_purine_foods)} medium, "
            f"{len(result.low_purine_foods)} low purine foods"
        )
    return result
