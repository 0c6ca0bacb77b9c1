"""Static model price table and local cost estimation.

Prices are USD per million tokens. The table is built once at import time
and exposed read-only.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import Mapping, Optional

TOKENS_PER_UNIT = Decimal(1_000_000)

# Snapshot and alias suffixes: claude-sonnet-4-20250514, claude-3-5-haiku-latest
_VERSION_SUFFIX_RE = re.compile(r"-(?:\d{8}|latest)$")


@dataclass(frozen=True)
class ModelPrice:
    """Per-million-token prices for one model."""

    input_per_mtok: Decimal
    output_per_mtok: Decimal


def _price(input_usd: str, output_usd: str) -> ModelPrice:
    return ModelPrice(Decimal(input_usd), Decimal(output_usd))


PRICE_TABLE: Mapping[str, ModelPrice] = MappingProxyType({
    # Claude 4.x
    "claude-opus-4-5": _price("5", "25"),
    "claude-opus-4-1": _price("15", "75"),
    "claude-opus-4": _price("15", "75"),
    "claude-sonnet-4-5": _price("3", "15"),
    "claude-sonnet-4": _price("3", "15"),
    "claude-haiku-4-5": _price("1", "5"),
    # Claude 3.x
    "claude-3-7-sonnet": _price("3", "15"),
    "claude-3-5-sonnet": _price("3", "15"),
    "claude-3-5-haiku": _price("0.80", "4"),
    "claude-3-opus": _price("15", "75"),
    "claude-3-haiku": _price("0.25", "1.25"),
})


def lookup_price(model: str) -> Optional[ModelPrice]:
    """Price for ``model``.

    Exact ids win; otherwise a trailing date or ``-latest`` suffix is dropped
    (``claude-sonnet-4-20250514`` -> ``claude-sonnet-4``). Anything else is
    unknown.
    """
    if not model:
        return None
    if model in PRICE_TABLE:
        return PRICE_TABLE[model]
    return PRICE_TABLE.get(_VERSION_SUFFIX_RE.sub("", model))


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> Optional[Decimal]:
    """Estimated request cost in USD, or None for an unknown model."""
    price = lookup_price(model)
    if price is None:
        return None
    return (
        Decimal(input_tokens) * price.input_per_mtok
        + Decimal(output_tokens) * price.output_per_mtok
    ) / TOKENS_PER_UNIT


def format_cost(cost: Optional[Decimal]) -> str:
    """``$0.012`` style, three decimals; ``unknown`` when not priced."""
    if cost is None:
        return "unknown"
    return f"${cost.quantize(Decimal('0.001'), rounding=ROUND_HALF_UP)}"
