"""
Timezone utilities for organization-local dates.
"""
import zoneinfo
from datetime import datetime, time, timedelta
from django.utils import timezone as dj_timezone

DEFAULT_TIMEZONE = "Europe/London"


def get_organization_timezone(organization):
    """Get the zone for an organization, falling back to DEFAULT_TIMEZONE."""
    tz_str = DEFAULT_TIMEZONE
    if organization and getattr(organization, "timezone", None):
        tz_str = str(organization.timezone).strip() or DEFAULT_TIMEZONE
    try:
        return zoneinfo.ZoneInfo(tz_str)
    except zoneinfo.ZoneInfoNotFoundError:
        return zoneinfo.ZoneInfo(DEFAULT_TIMEZONE)


def local_date(dt, organization):
    """Calendar date of an aware datetime in the organization's zone."""
    return dt.astimezone(get_organization_timezone(organization)).date()


def local_day_bounds(day, organization):
    """Aware [start, end) datetimes covering a local calendar day."""
    tz = get_organization_timezone(organization)
    start = datetime.combine(day, time.min).replace(tzinfo=tz)
    return start, start + timedelta(days=1)


def combine_local(day, clock_time, organization):
    """Aware datetime for a local date and time-of-day."""
    tz = get_organization_timezone(organization)
    return datetime.combine(day, clock_time).replace(tzinfo=tz)


def now_local(organization):
    return dj_timezone.now().astimezone(get_organization_timezone(organization))
