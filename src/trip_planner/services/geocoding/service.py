"""Sequential batch geocoding and manual failure fixes."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Sequence

from ...models.domain import FailedGeocode, GeoPoint, Record
from .classifier import NO_ADDRESS, classify_failure, summarize_failures
from .client import GeocodingClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GeocodeBatch:
    geocoded: list[GeoPoint] = field(default_factory=list)
    failed: list[FailedGeocode] = field(default_factory=list)
    cancelled: bool = False

    def failure_summary(self) -> dict[str, int]:
        return summarize_failures(self.failed)


def geocode_records(
    records: Sequence[Record],
    client: GeocodingClient,
    *,
    cancel: threading.Event | None = None,
    delay: float | None = None,
) -> GeocodeBatch:
    """Geocode ``records`` one after another.

    Each address is fully resolved (or exhausted) before the next one is
    requested. Setting ``cancel`` stops the loop before the next address and
    keeps whatever was produced so far.
    """
    batch = GeocodeBatch()
    if not records:
        logger.warning("No records loaded; nothing to geocode.")
        return batch

    pause = client.delay if delay is None else delay
    corpus = [record.address or "" for record in records]
    logger.info(f"Starting geocoding of {len(records)} records with {client.provider}")

    for index, record in enumerate(records, start=1):
        if cancel is not None and cancel.is_set():
            logger.info(f"Geocoding cancelled after {index - 1}/{len(records)} records")
            batch.cancelled = True
            break

        if not record.address:
            batch.failed.append(FailedGeocode(name=record.name or "(Unknown)", address=record.address, reason=NO_ADDRESS))
            continue

        logger.info(f"  {index}/{len(records)}: {record.address}")
        result = client.geocode(record.address)
        if result is not None:
            batch.geocoded.append(GeoPoint.from_record(record, result.lat, result.lon))
            logger.info(f"    ok [{result.lat:.6f}, {result.lon:.6f}] via '{result.used_variant}'")
        else:
            reason = classify_failure(record.address, corpus)
            batch.failed.append(FailedGeocode(name=record.name or "(Unknown)", address=record.address, reason=reason))
            logger.info(f"    failed ({reason})")

        if pause > 0 and index < len(records):
            time.sleep(pause)

    if batch.failed:
        summary = " | ".join(f"{reason}: {count}" for reason, count in batch.failure_summary().items())
        logger.warning(f"Failure summary: {summary}")
    logger.info(f"Geocoding complete: {len(batch.geocoded)}/{len(records)} succeeded")
    return batch


def apply_manual_fix(
    batch: GeocodeBatch,
    name: str,
    client: GeocodingClient | None = None,
    *,
    address: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
    records: Sequence[Record] = (),
) -> GeoPoint | None:
    """Resolve a failed item from explicit coordinates or a corrected address.

    On success the item moves from ``batch.failed`` to ``batch.geocoded``;
    otherwise it stays in the failed list for another attempt.
    """
    failure = next((item for item in batch.failed if item.name == name), None)
    if failure is None:
        raise ValueError(f"No failed geocode named '{name}'.")

    new_address = address if address is not None else failure.address
    if lat is not None and lon is not None:
        logger.info(f"Manual coordinate override for {name}")
        coordinates: tuple[float, float] | None = (float(lat), float(lon))
    else:
        if client is None:
            raise ValueError("A geocoding client is required to fix an address without coordinates.")
        result = client.geocode(new_address)
        coordinates = (result.lat, result.lon) if result else None

    if coordinates is None:
        logger.warning(
            f"Failed to fix {name}. Please try a different address or enter coordinates."
        )
        return None

    original = next((record for record in records if record.name == name), None)
    if original is None:
        original = Record(name=name, address=new_address)
    point = GeoPoint.from_record(original, coordinates[0], coordinates[1], address=new_address)
    batch.geocoded.append(point)
    batch.failed.remove(failure)
    logger.info(f"Fixed {name} successfully.")
    return point
