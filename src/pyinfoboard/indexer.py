"""Build the (month, day) lookup consumed by the birthday display."""

from __future__ import annotations

import re
from collections.abc import Mapping

from pyinfoboard.models.display import DateBucketIndex, DisplayEntry
from pyinfoboard.models.records import UnifiedRecord

DEFAULT_IMAGE_URL_TEMPLATE = "https://schaledb.com/images/student/collection/{id}.webp"

_MONTH_DAY_RE = re.compile(r"(?<!\d)(\d{1,2})/(\d{1,2})(?!\d)")


def parse_month_day(text: str | None) -> tuple[int, int] | None:
    """Return ``(month, day)`` from a ``"M/D"`` string, or ``None`` if it has none."""
    if not text:
        return None
    match = _MONTH_DAY_RE.search(text)
    if match is None:
        return None
    month, day = int(match.group(1)), int(match.group(2))
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    return month, day


def display_name(record: UnifiedRecord) -> str:
    return " ".join(part for part in (record.family_name, record.personal_name) if part)


def record_image(record: UnifiedRecord, template: str = DEFAULT_IMAGE_URL_TEMPLATE) -> str:
    return record.direct_image or template.format(id=record.id)


def build_index(
    unified_by_id: Mapping[str, UnifiedRecord],
    *,
    image_url_template: str = DEFAULT_IMAGE_URL_TEMPLATE,
) -> DateBucketIndex:
    """Group records by birthday, merging same-name entries within a day.

    Records without a parsable date are left out. When two records on the
    same day share a name, the second contributes its image to the first
    entry instead of adding a duplicate.
    """
    buckets: dict[int, dict[int, list[tuple[str, list[str]]]]] = {}

    for record in unified_by_id.values():
        month_day = parse_month_day(record.birth_day)
        if month_day is None:
            continue
        month, day = month_day
        name = display_name(record)
        image = record_image(record, image_url_template)

        bucket = buckets.setdefault(month, {}).setdefault(day, [])
        for existing_name, images in bucket:
            if existing_name == name:
                if image not in images:
                    images.append(image)
                break
        else:
            bucket.append((name, [image]))

    return DateBucketIndex(
        {
            month: {
                day: [DisplayEntry(name=name, images=tuple(images)) for name, images in entries]
                for day, entries in days.items()
            }
            for month, days in buckets.items()
        }
    )
