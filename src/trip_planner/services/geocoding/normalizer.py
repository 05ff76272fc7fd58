"""Address clean-up and retry variants for geocoding."""

from __future__ import annotations

import re

STATE_CODE = re.compile(r"\b[A-Z]{2}\b")
ZIP_CODE = re.compile(r"\b\d{5}(?:-\d{4})?\b")
ZIP_PLUS_FOUR = re.compile(r"\b(\d{5})-\d{4}\b")
UNIT = re.compile(r"(?:\b(?:APT|APARTMENT|UNIT|STE|SUITE)\b|#)\s*[A-Z0-9\-]+\b", re.IGNORECASE)
NUMBER_STREET = re.compile(r"^(\d+\s+[^\d,]+?)(?:\s+[A-Z]{2}\b.*)?$")
WHITESPACE = re.compile(r"\s+")


def _squash(value: str) -> str:
    return WHITESPACE.sub(" ", value).strip()


def address_variants(raw: str | None, common_locality: str = "") -> list[str]:
    """Return de-duplicated address variants, most specific first.

    The first entry is the cleaned original. Later entries progressively drop
    detail (ZIP+4, ZIP, unit numbers, punctuation) so that a provider which
    rejects the full string still has a chance to resolve the street.
    """
    if not raw or not raw.strip():
        return []

    base = _squash(raw).strip('"')
    if not STATE_CODE.search(base) and common_locality:
        base = _squash(f"{base} {common_locality}")

    no_unit = _squash(UNIT.sub("", base))
    match = NUMBER_STREET.match(base)
    number_street_only = match.group(1).strip() if match else base

    candidates = [
        base,
        ZIP_PLUS_FOUR.sub(r"\1", base),
        _squash(ZIP_CODE.sub("", base)),
        no_unit,
        _squash(base.replace(",", " ")),
        _squash(no_unit.replace(",", " ")),
        _squash(re.sub(r",\s*", " ", ZIP_CODE.sub("", base))),
        number_street_only,
    ]

    variants: list[str] = []
    for candidate in candidates:
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants
