"""Prometheus metrics for the storefront service."""

from __future__ import annotations

from typing import Final

from prometheus_client import Counter, Histogram

# Cart ------------------------------------------------------------------------------------
CART_MUTATIONS_TOTAL: Final = Counter(
    "storefront_cart_mutations_total",
    "Cart mutations persisted successfully.",
    labelnames=("operation",),
)

CART_PERSISTENCE_FAILURES_TOTAL: Final = Counter(
    "storefront_cart_persistence_failures_total",
    "Cart reads or writes that failed and were reported to the user.",
    labelnames=("operation",),
)

# Checkout --------------------------------------------------------------------------------
CHECKOUT_TOTAL: Final = Counter(
    "storefront_checkout_total",
    "Checkout attempts by outcome.",
    labelnames=("outcome",),
)

CHECKOUT_ORDER_VALUE_NAIRA: Final = Histogram(
    "storefront_checkout_order_value_naira",
    "Total value of orders requested through WhatsApp checkout.",
    buckets=(5_000, 20_000, 50_000, 100_000, 250_000, 500_000, 1_000_000, 2_500_000),
)

# Admin dashboard -------------------------------------------------------------------------
DASHBOARD_CACHE_EVENTS_TOTAL: Final = Counter(
    "storefront_dashboard_cache_events_total",
    "Dashboard statistics cache hits, misses, writes and errors.",
    labelnames=("event",),
)
