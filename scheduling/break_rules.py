"""
Break rule engine.

A rule set is an ordered list of tiers ``{"min_hours": h, "break_minutes": m}``.
The tier with the largest ``min_hours`` not exceeding the worked hours wins;
the lower bound is inclusive.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional

from django.conf import settings

from core.exceptions import ValidationError


@dataclass(frozen=True)
class BreakTier:
    min_hours: float
    break_minutes: int


def parse_break_rules(raw) -> List[BreakTier]:
    """
    Validate a JSON rule list and return tiers sorted by min_hours.

    Raises ValidationError for anything that is not a list of tiers with
    non-negative numbers.
    """
    if raw in (None, ''):
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError('Break rules must be a list.')

    tiers = []
    for index, item in enumerate(raw):
        if isinstance(item, BreakTier):
            tiers.append(item)
            continue
        if not isinstance(item, dict):
            raise ValidationError(f'Break rule #{index + 1} must be an object.')
        try:
            min_hours = float(item['min_hours'])
            break_minutes = int(item['break_minutes'])
        except (KeyError, TypeError, ValueError):
            raise ValidationError(
                f'Break rule #{index + 1} needs numeric "min_hours" and "break_minutes".'
            )
        if min_hours < 0 or break_minutes < 0:
            raise ValidationError(f'Break rule #{index + 1} cannot be negative.')
        tiers.append(BreakTier(min_hours=min_hours, break_minutes=break_minutes))

    return sorted(tiers, key=lambda tier: tier.min_hours)


def serialize_break_rules(tiers: Iterable[BreakTier]) -> List[dict]:
    return [{'min_hours': t.min_hours, 'break_minutes': t.break_minutes} for t in tiers]


def mandated_break_minutes(hours: float, tiers) -> int:
    """Break minutes owed for a span of ``hours``; 0 when no tier applies."""
    selected: Optional[BreakTier] = None
    for tier in parse_break_rules(tiers):
        if tier.min_hours <= hours and (selected is None or tier.min_hours >= selected.min_hours):
            selected = tier
    return selected.break_minutes if selected else 0


def resolve_break_rules(location=None, organization=None) -> List[BreakTier]:
    """
    Rules in force for a location: its own override when non-empty,
    else the organization's rules, else the configured defaults.
    """
    if location is not None and location.break_rules:
        return parse_break_rules(location.break_rules)
    if organization is None and location is not None:
        organization = location.organization
    if organization is not None and organization.break_rules:
        return parse_break_rules(organization.break_rules)
    return parse_break_rules(settings.DEFAULT_BREAK_RULES)
