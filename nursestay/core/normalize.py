from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from nursestay.core.availability import parse_date
from nursestay.core.models import (
    STATUS_BLOCKED,
    AvailabilityBlock,
    AvailabilityWindow,
    Listing,
)


def flatten_joined(value: Any) -> dict[str, Any] | None:
    """
    Embedded relations come back either as an object or as a one-element list
    depending on the foreign key shape; collapse both to a dict.
    """
    if isinstance(value, list):
        return value[0] if value and isinstance(value[0], dict) else None
    if isinstance(value, dict):
        return value
    return None


def row_to_listing(row: dict[str, Any]) -> Listing:
    return Listing(
        id=int(row["id"]),
        title=row.get("title") or "",
        city=row.get("city") or "",
        state=row.get("state") or "",
        hospital_name=row.get("hospital_name") or "",
        hospital_city=row.get("hospital_city") or "",
        hospital_state=row.get("hospital_state") or "",
        minutes_to_hospital=_safe_int(row.get("minutes_to_hospital")) or 0,
        price_per_month=float(row["price_per_month"]),
        room_type=row.get("room_type") or "private-room",
        tags=list(row.get("tags") or []),
        rating=_safe_float(row.get("rating")),
        review_count=_safe_int(row.get("review_count")),
        availability=_windows_from_row(row.get("availability")),
        available_from=parse_date(row.get("available_from")),
        available_to=parse_date(row.get("available_to")),
        image_url=row.get("image_url"),
        perks=list(row.get("perks") or []),
        is_verified_host=bool(row.get("is_verified_host")),
        ideal_contract_lengths=list(row.get("ideal_contract_lengths") or []),
        host_id=row.get("host_id"),
    )


def row_to_block(row: dict[str, Any]) -> AvailabilityBlock:
    start = parse_date(row.get("start_date"))
    end = parse_date(row.get("end_date"))
    if start is None or end is None:
        raise ValueError(f"Availability block {row.get('id')} has invalid dates.")
    return AvailabilityBlock(
        id=str(row["id"]) if row.get("id") is not None else None,
        listing_id=int(row["listing_id"]),
        start_date=start,
        end_date=end,
        status=row.get("status") or STATUS_BLOCKED,
        booking_id=str(row["booking_id"]) if row.get("booking_id") is not None else None,
        min_stay_nights=_safe_int(row.get("min_stay_nights")),
        price_per_month=_safe_float(row.get("price_per_month")),
        block_reason=row.get("block_reason"),
        notes=row.get("notes"),
        created_at=_parse_dt(row.get("created_at")),
        updated_at=_parse_dt(row.get("updated_at")),
    )


def block_to_record(block: AvailabilityBlock) -> dict[str, Any]:
    record: dict[str, Any] = {
        "listing_id": block.listing_id,
        "start_date": block.start_date.isoformat(),
        "end_date": block.end_date.isoformat(),
        "status": block.status,
        "booking_id": block.booking_id,
        "min_stay_nights": block.min_stay_nights,
        "price_per_month": block.price_per_month,
        "block_reason": block.block_reason,
        "notes": block.notes,
    }
    if block.id is not None:
        record["id"] = block.id
    return record


def _windows_from_row(value: Any) -> list[AvailabilityWindow]:
    if not isinstance(value, list):
        return []
    windows: list[AvailabilityWindow] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        start = parse_date(item.get("start"))
        end = parse_date(item.get("end"))
        # Unparsable windows are dropped rather than treated as open-ended.
        if start is None or end is None or end < start:
            continue
        windows.append(AvailabilityWindow(start=start, end=end))
    return windows


def _parse_dt(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _safe_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _safe_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None
