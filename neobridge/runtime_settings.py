"""Per-request knobs read from ``<saved>/settings.json``.

The file is written by the settings panel with PascalCase keys. Each key is
validated on its own so one bad value does not discard the rest.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from neobridge.log import logger
from neobridge.models.request import ProviderRouting, RequestSettings


def _positive_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value > 0 else None


def _positive_int(value: Any) -> int | None:
    number = _positive_number(value)
    if number is None or int(number) <= 0:
        return None
    return int(number)


def _provider_routing(routing: Any, model_id: str) -> ProviderRouting | None:
    if not isinstance(routing, dict):
        return None
    model_routing = routing.get(model_id)
    if not isinstance(model_routing, dict):
        return None

    result = ProviderRouting()
    if isinstance(model_routing.get("provider"), str):
        result.provider = model_routing["provider"]
    if isinstance(model_routing.get("sort_by"), str):
        result.sort_by = model_routing["sort_by"]
    if isinstance(model_routing.get("allow_fallbacks"), bool):
        result.allow_fallbacks = model_routing["allow_fallbacks"]
    return result


def parse_request_settings(raw: dict[str, Any], model_id: str) -> RequestSettings:
    settings = RequestSettings(
        max_cost_per_query=_positive_number(raw.get("MaxCostPerQuery")),
        max_tokens=_positive_int(raw.get("MaxTokens")),
        max_thinking_tokens=_positive_int(raw.get("MaxThinkingTokens")),
        provider_routing=_provider_routing(raw.get("ProviderRouting"), model_id),
    )
    if isinstance(raw.get("EnableThinking"), bool):
        settings.enable_thinking = raw["EnableThinking"]
    if isinstance(raw.get("ReasoningEffort"), str) and raw["ReasoningEffort"]:
        settings.reasoning_effort = raw["ReasoningEffort"]
    return settings


def load_request_settings(path: Path, model_id: str) -> RequestSettings | None:
    """Return the settings object for ``model_id``, or None when there is no usable file."""
    if not path.exists():
        return None
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable settings file {path}: {e}")
        return None
    if not isinstance(raw, dict):
        logger.warning(f"Ignoring settings file {path}: expected a JSON object")
        return None
    return parse_request_settings(raw, model_id)
