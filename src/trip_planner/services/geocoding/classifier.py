"""Best-effort diagnosis of why an address failed to geocode."""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Sequence

from ...models.domain import FailedGeocode
from .normalizer import STATE_CODE, ZIP_CODE

EMPTY = "Empty"
NO_ADDRESS = "No address"
NO_LEADING_NUMBER = "No leading number"
INCOMPLETE_STREET = "Incomplete street"
MISSING_STATE = "Missing state"
MISSING_ZIP = "Missing zip"
NOT_FOUND = "Not found"

FAILURE_REASONS = (
    EMPTY,
    NO_ADDRESS,
    NO_LEADING_NUMBER,
    INCOMPLETE_STREET,
    MISSING_STATE,
    MISSING_ZIP,
    NOT_FOUND,
)

# share of the batch that must carry a ZIP before a ZIP-less address is blamed on it
ZIP_MAJORITY = 0.6

_LEADING_NUMBER = re.compile(r"^\d+")
_NUMBER_ONLY = re.compile(r"^\d+\s*$")


def zip_ratio(corpus: Sequence[str]) -> float:
    if not corpus:
        return 0.0
    with_zip = sum(1 for address in corpus if ZIP_CODE.search(address or ""))
    return with_zip / len(corpus)


def classify_failure(address: str | None, corpus: Sequence[str] = ()) -> str:
    """Label a failed address; ``corpus`` is the rest of the batch."""
    if not address or not address.strip():
        return EMPTY
    stripped = address.strip()
    if not _LEADING_NUMBER.match(stripped):
        return NO_LEADING_NUMBER
    if _NUMBER_ONLY.match(stripped):
        return INCOMPLETE_STREET
    if not STATE_CODE.search(address):
        return MISSING_STATE
    if not ZIP_CODE.search(address) and zip_ratio(corpus) > ZIP_MAJORITY:
        return MISSING_ZIP
    return NOT_FOUND


def summarize_failures(failures: Iterable[FailedGeocode]) -> dict[str, int]:
    return dict(Counter(failure.reason for failure in failures))
