"""Per-image cost estimation and text rendering for the image model catalogue."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any


# Image token count assumed for token-priced models.
ESTIMATED_TOKENS_PER_IMAGE = 1024


@dataclass(frozen=True)
class CostEstimate:
    cost: str
    notes: str
    sort_key: float


def _as_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _cents_estimate(cents_value: Any, note: str) -> CostEstimate:
    cents = _as_float(cents_value) or 0.0
    usd = cents / 100
    return CostEstimate(cost=f"${usd:.2f}", notes=note.format(cents=cents), sort_key=usd)


def estimate_cost_per_image(model: dict[str, Any]) -> CostEstimate:
    endpoint = model.get("endpoint") or {}
    pricing = endpoint.get("pricing") or {}
    pricing_json = endpoint.get("pricing_json") or {}

    if pricing_json.get("sourceful:cents_per_image_output") is not None:
        return _cents_estimate(pricing_json["sourceful:cents_per_image_output"], "Sourceful: {cents:g}c per image")
    if pricing_json.get("sourceful:cents_per_2k_image_output") is not None:
        return _cents_estimate(pricing_json["sourceful:cents_per_2k_image_output"], "Sourceful 2K: {cents:g}c")
    if pricing_json.get("bfl:informational_output_megapixels") is not None:
        usd = _as_float(pricing_json["bfl:informational_output_megapixels"]) or 0.0
        return CostEstimate(cost=f"${usd:.3f}", notes="BFL: first megapixel", sort_key=usd)
    if pricing_json.get("seedream:cents_per_image_output") is not None:
        return _cents_estimate(pricing_json["seedream:cents_per_image_output"], "Seedream: flat rate")

    per_token = _as_float(pricing.get("image_output", pricing.get("image_token")))
    if per_token is not None and per_token > 0:
        usd = per_token * ESTIMATED_TOKENS_PER_IMAGE
        cost = f"{usd:.3f}" if usd < 0.01 else f"{usd:.2f}"
        return CostEstimate(
            cost=f"~${cost}",
            notes=f"~{ESTIMATED_TOKENS_PER_IMAGE} tokens x ${per_token}/token",
            sort_key=usd,
        )

    return CostEstimate(cost="-", notes="no price in API", sort_key=math.inf)


def format_models(models: list[dict[str, Any]]) -> str:
    rows = []
    for model in models:
        endpoint = model.get("endpoint") or {}
        pricing = endpoint.get("pricing") or {}
        rows.append(
            (
                estimate_cost_per_image(model),
                model.get("permaslug") or model.get("slug") or "",
                model.get("name") or model.get("short_name") or "",
                endpoint.get("provider_display_name") or model.get("author") or "",
                pricing.get("image_output") or pricing.get("image_token") or "-",
            )
        )
    rows.sort(key=lambda row: row[0].sort_key)

    lines = [
        "# OpenRouter image models (output_modalities=image)",
        "",
        f"models: {len(rows)}",
        "",
        "| id | name | provider | image_output | approx. cost/image | notes |",
        "|---|---|---|:---:|---:|---|",
    ]
    for estimate, model_id, name, provider, image_output in rows:
        lines.append(f"| {model_id} | {name} | {provider} | {image_output} | {estimate.cost} | {estimate.notes} |")
    return "\n".join(lines) + "\n"
