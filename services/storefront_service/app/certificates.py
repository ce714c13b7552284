"""Certificate number normalisation and verification links."""

from __future__ import annotations

from urllib.parse import quote

DEFAULT_ISSUER = "JE Tech Hub"


def normalize_certificate_number(value: str) -> str:
    return value.strip().upper()


def verification_url(base_url: str, certificate_number: str) -> str:
    """Public page a QR code on the printed certificate points at."""

    return f"{base_url.rstrip('/')}/verify/{quote(certificate_number, safe='')}"
