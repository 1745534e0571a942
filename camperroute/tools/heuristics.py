"""Heuristic text checks used by the campsite filters.

These guess from free-form OSM text. When unsure they lean towards keeping
a campsite visible, except for the free-only check which only matches
explicit hints.
"""

import re
from datetime import datetime

from camperroute.models import Campsite, CampsiteType

TIME_RANGE = re.compile(r"(\d{1,2}):(\d{2})\s*-\s*(\d{1,2}):(\d{2})")

FREE_NAME_HINTS = ("free", "wild", "aire")
FREE_TYPES = {CampsiteType.AIRE}

BOOKING_HINTS = ("booking", "reservation", "reserve")
BOOKABLE_TYPES = {CampsiteType.CAMPSITE, CampsiteType.CARAVAN_SITE}


def is_open_now(opening_hours: str | None, now: datetime | None = None) -> bool:
    """
    Guess whether a place is open, from an OSM-style opening_hours string.

    Unspecified or unparseable hours count as open.
    """
    if not opening_hours or not opening_hours.strip():
        return True

    hours = opening_hours.lower()

    if "24/7" in hours or "always open" in hours:
        return True

    ranges = TIME_RANGE.findall(hours)
    if not ranges:
        return not ("closed" in hours or re.search(r"\boff\b", hours))

    now = now or datetime.now()
    minute = now.hour * 60 + now.minute

    for start_h, start_m, end_h, end_m in ranges:
        start = int(start_h) * 60 + int(start_m)
        end = int(end_h) * 60 + int(end_m)
        if start <= end:
            if start <= minute < end:
                return True
        elif minute >= start or minute < end:
            # Range wraps past midnight
            return True

    return False


def is_free(campsite: Campsite) -> bool:
    """Guess whether staying is free. Only explicit hints count."""
    name = campsite.name.lower()

    if any(hint in name for hint in FREE_NAME_HINTS):
        return True

    if campsite.type in FREE_TYPES:
        return True

    return (campsite.fee or "").strip().lower() == "no"


def accepts_reservations(campsite: Campsite) -> bool:
    """Guess whether the site takes bookings."""
    website = (campsite.contact.website or "").lower()

    if campsite.contact.phone or any(hint in website for hint in BOOKING_HINTS):
        return True

    if (campsite.reservation or "").lower() in ("yes", "required", "recommended"):
        return True

    return campsite.type in BOOKABLE_TYPES
