#!/usr/bin/env python3
"""Synthetic smoke check for the storefront WhatsApp checkout.

Seeds a throwaway gadget, adds it to a synthetic user's cart, checks out, and
verifies the returned deep link, the recorded order and (optionally) the
checkout metrics. Intended for scheduled synthetic checks against a running
storefront.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import re
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence
from urllib.parse import unquote

import httpx

OUTCOME_LABEL = "outcome"
CHECKOUT_METRIC = "storefront_checkout_total"

_METRIC_LINE = re.compile(
    r"^(?P<name>[a-zA-Z_:][a-zA-Z0-9_:]*)(?:\{(?P<labels>[^}]*)\})?\s+(?P<value>[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)$"
)
_LABEL_PAIR = re.compile(r'(?P<key>[a-zA-Z_][a-zA-Z0-9_]*)="(?P<value>(?:[^"\\]|\\.)*)"')


@dataclass(slots=True)
class MetricSample:
    name: str
    labels: Mapping[str, str]
    value: float


class SmokeCheckError(RuntimeError):
    def __init__(self, message: str, *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = dict(context or {})


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synthetic smoke check for storefront checkout")
    parser.add_argument(
        "--base-url",
        default=os.getenv("STOREFRONT_BASE_URL", "http://127.0.0.1:8000"),
        help="Base URL for the storefront service (default: %(default)s or STOREFRONT_BASE_URL)",
    )
    parser.add_argument(
        "--metrics-path",
        default=os.getenv("STOREFRONT_METRICS_PATH", "/metrics"),
        help="Path to Prometheus metrics endpoint (default: %(default)s or STOREFRONT_METRICS_PATH)",
    )
    parser.add_argument(
        "--skip-metrics",
        action="store_true",
        help="Skip verification of Prometheus metric deltas",
    )
    parser.add_argument(
        "--whatsapp-number",
        default=os.getenv("STOREFRONT_SMOKE_WHATSAPP_NUMBER"),
        help="Expected recipient in the deep link; unchecked when omitted",
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=5.0,
        help="HTTP client timeout in seconds (default: %(default)s)",
    )
    parser.add_argument(
        "--max-checkout-ms",
        type=float,
        default=float(os.getenv("STOREFRONT_SMOKE_MAX_CHECKOUT_MS", "2000")),
        help="Maximum allowed checkout latency in milliseconds (default: %(default)s)",
    )
    parser.add_argument(
        "--keep-data",
        action="store_true",
        help="Leave the synthetic gadget and order in place after the smoke check",
    )
    return parser.parse_args(argv)


def parse_metrics(text: str) -> List[MetricSample]:
    samples: List[MetricSample] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _METRIC_LINE.match(stripped)
        if not match:
            continue
        labels = {
            pair.group("key"): pair.group("value").replace('\\"', '"').replace("\\\\", "\\")
            for pair in _LABEL_PAIR.finditer(match.group("labels") or "")
        }
        samples.append(MetricSample(name=match.group("name"), labels=labels, value=float(match.group("value"))))
    return samples


def find_metric_value(samples: Sequence[MetricSample], name: str, *, labels: Mapping[str, str]) -> float:
    for sample in samples:
        if sample.name != name:
            continue
        if all(sample.labels.get(key) == value for key, value in labels.items()):
            return sample.value
    return 0.0


async def fetch_metrics(client: httpx.AsyncClient, path: str) -> List[MetricSample]:
    response = await client.get(path)
    response.raise_for_status()
    return parse_metrics(response.text)


def _expect(response: httpx.Response, status_code: int, message: str) -> Dict[str, Any]:
    if response.status_code != status_code:
        raise SmokeCheckError(message, context={"status_code": response.status_code, "body": response.text})
    return response.json()


async def run_smoke_check(args: argparse.Namespace, *, transport: httpx.AsyncBaseTransport | None = None) -> Dict[str, Any]:
    identifier = uuid.uuid4().hex[:8]
    headers = {
        "X-User-Id": f"synthetic-{identifier}",
        "X-User-Email": f"synthetic+{identifier}@example.com",
    }
    timeout = httpx.Timeout(args.request_timeout)
    async with httpx.AsyncClient(base_url=args.base_url, timeout=timeout, transport=transport) as client:
        metrics_before: Sequence[MetricSample] = ()
        if not args.skip_metrics:
            metrics_before = await fetch_metrics(client, args.metrics_path)

        gadget = _expect(
            await client.post(
                "/gadgets",
                json={"name": f"Synthetic gadget {identifier}", "category": "synthetic", "price": 1_000},
            ),
            201,
            "Failed to create synthetic gadget",
        )
        _expect(
            await client.post("/cart/items", json={"gadgetId": gadget["id"]}, headers=headers),
            200,
            "Failed to add synthetic gadget to cart",
        )

        start = time.monotonic()
        checkout = _expect(await client.post("/checkout", headers=headers), 201, "Checkout did not complete")
        checkout_ms = (time.monotonic() - start) * 1000.0

        url = str(checkout.get("whatsappUrl") or "")
        if not url.startswith("https://wa.me/") or "?text=" not in url:
            raise SmokeCheckError("Checkout returned an invalid WhatsApp link", context={"url": url})
        if args.whatsapp_number and not url.startswith(f"https://wa.me/{args.whatsapp_number}?"):
            raise SmokeCheckError(
                "WhatsApp link targets an unexpected recipient",
                context={"url": url, "expected": args.whatsapp_number},
            )
        if gadget["name"] not in unquote(url.split("?text=", 1)[1]):
            raise SmokeCheckError("WhatsApp message does not mention the ordered gadget", context={"url": url})
        if checkout_ms > args.max_checkout_ms:
            raise SmokeCheckError(
                "Checkout latency exceeded threshold",
                context={"checkout_ms": round(checkout_ms, 2), "threshold_ms": args.max_checkout_ms},
            )

        order_id = int(checkout["orderId"])
        order = _expect(await client.get(f"/orders/{order_id}"), 200, "Recorded order could not be fetched")
        cart = _expect(await client.get("/cart", headers=headers), 200, "Cart could not be fetched")
        if cart.get("items"):
            raise SmokeCheckError("Cart was not cleared after checkout", context={"items": cart["items"]})

        metric_delta: float | None = None
        if not args.skip_metrics:
            metrics_after = await fetch_metrics(client, args.metrics_path)
            labels = {OUTCOME_LABEL: "completed"}
            metric_delta = find_metric_value(metrics_after, CHECKOUT_METRIC, labels=labels) - find_metric_value(
                metrics_before, CHECKOUT_METRIC, labels=labels
            )
            if metric_delta < 1:
                raise SmokeCheckError(f"{CHECKOUT_METRIC} did not increment", context={"delta": metric_delta})

        if not args.keep_data:
            await client.delete(f"/orders/{order_id}")
            await client.delete(f"/gadgets/{gadget['id']}")

    return {
        "status": "ok",
        "orderId": order_id,
        "orderStatus": order.get("status"),
        "durationsMs": {"checkout": round(checkout_ms, 2)},
        "checkoutMetricDelta": metric_delta,
    }


async def main_async(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        result = await run_smoke_check(args)
    except (SmokeCheckError, httpx.HTTPError) as exc:
        context = exc.context if isinstance(exc, SmokeCheckError) else {"exc_type": exc.__class__.__name__}
        print(json.dumps({"status": "error", "message": str(exc), "context": context}, indent=2, sort_keys=True))
        return 1
    print(json.dumps(result, indent=2, sort_keys=True))
    return 0


def main() -> None:
    exit_code = asyncio.run(main_async())
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
