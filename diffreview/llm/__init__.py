"""Review backend client and cost accounting."""

from diffreview.llm.client import ReviewClient
from diffreview.llm.pricing import PRICE_TABLE, ModelPrice, estimate_cost, format_cost, lookup_price

__all__ = [
    "ReviewClient",
    "PRICE_TABLE",
    "ModelPrice",
    "estimate_cost",
    "format_cost",
    "lookup_price",
]
