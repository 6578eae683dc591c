"""
Staff cost analytics: gross pay, holiday accrual and employer contributions
derived from approved time entries, rolled up by staff and by location.
Everything is recomputed from source on each call.
"""
import calendar
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from django.conf import settings

from accounts.models import CustomUser
from core.exceptions import NotFoundError, ValidationError
from core.permissions import is_admin
from core.timezone_utils import local_date, local_day_bounds
from core.utils import round_money, to_decimal
from scheduling.models import StaffCategoryRate
from timeclock.models import TimeEntry
from .models import PayPeriod

logger = logging.getLogger(__name__)

UNASSIGNED = 'unassigned'
WEEKS_PER_MONTH = Decimal(52) / Decimal(12)
MONTHS_PER_DAY = Decimal(12) / Decimal(365)


@dataclass(frozen=True)
class ReportWindow:
    start: date
    end: date  # inclusive
    label: str
    pay_period: Optional[PayPeriod] = None

    @property
    def days(self):
        return (self.end - self.start).days + 1

    @property
    def is_calendar_month(self):
        return (
            self.start.day == 1
            and self.start.year == self.end.year
            and self.start.month == self.end.month
            and self.end.day == calendar.monthrange(self.end.year, self.end.month)[1]
        )

    @property
    def month_factor(self) -> Decimal:
        """Length of the window in months; exactly 1 for a calendar month"""
        if self.is_calendar_month:
            return Decimal(1)
        return Decimal(self.days) * MONTHS_PER_DAY


# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------

def month_window(month: str) -> ReportWindow:
    """Window for a ``YYYY-MM`` string"""
    try:
        year, month_number = (int(part) for part in month.split('-'))
        last_day = calendar.monthrange(year, month_number)[1]
    except (AttributeError, ValueError, calendar.IllegalMonthError):
        raise ValidationError('Month must be in YYYY-MM format.')
    return ReportWindow(date(year, month_number, 1), date(year, month_number, last_day), f'{year:04d}-{month_number:02d}')


def pay_period_window(organization, pay_period_id) -> ReportWindow:
    try:
        period = PayPeriod.objects.get(id=pay_period_id, organization=organization)
    except (PayPeriod.DoesNotExist, ValueError):
        raise NotFoundError('Pay period not found.')
    return ReportWindow(period.start_date, period.end_date, period.name, pay_period=period)


def previous_window(window: ReportWindow, organization) -> ReportWindow:
    """
    The comparison window: the previous calendar month, the pay period that
    ended before this one, or an equal-length window immediately before.
    """
    if window.pay_period is not None:
        earlier = PayPeriod.objects.filter(
            organization=organization, end_date__lt=window.start
        ).order_by('-end_date').first()
        if earlier is not None:
            return ReportWindow(earlier.start_date, earlier.end_date, earlier.name, pay_period=earlier)
    if window.is_calendar_month:
        last_month_end = window.start - timedelta(days=1)
        return month_window(f'{last_month_end.year}-{last_month_end.month:02d}')
    end = window.start - timedelta(days=1)
    return ReportWindow(end - timedelta(days=window.days - 1), end, 'previous')


# ---------------------------------------------------------------------------
# Statutory costs
# ---------------------------------------------------------------------------

def holiday_accrual(gross) -> Decimal:
    return to_decimal(gross) * to_decimal(settings.HOLIDAY_ACCRUAL_RATE)


def employer_contribution(gross, month_factor=Decimal(1)) -> Decimal:
    """Employer contribution on earnings above the secondary threshold"""
    threshold = to_decimal(settings.EMPLOYER_CONTRIBUTION_WEEKLY_THRESHOLD) * WEEKS_PER_MONTH * month_factor
    taxable = to_decimal(gross) - threshold
    if taxable <= 0:
        return Decimal('0')
    return taxable * to_decimal(settings.EMPLOYER_CONTRIBUTION_RATE)


def employee_contribution(gross, month_factor=Decimal(1)) -> Decimal:
    """Employee contribution: main rate between the thresholds, upper rate above"""
    gross = to_decimal(gross)
    lower = to_decimal(settings.EMPLOYEE_CONTRIBUTION_WEEKLY_LOWER) * WEEKS_PER_MONTH * month_factor
    upper = to_decimal(settings.EMPLOYEE_CONTRIBUTION_WEEKLY_UPPER) * WEEKS_PER_MONTH * month_factor
    if gross <= lower:
        return Decimal('0')
    main_band = min(gross, upper) - lower
    contribution = main_band * to_decimal(settings.EMPLOYEE_CONTRIBUTION_MAIN_RATE)
    if gross > upper:
        contribution += (gross - upper) * to_decimal(settings.EMPLOYEE_CONTRIBUTION_UPPER_RATE)
    return contribution


def prorated_salary(monthly_salary, window: ReportWindow, employed_from: Optional[date] = None) -> Decimal:
    """
    Monthly salary pro-rated by the days of the window in each calendar month.
    Days before employed_from are not paid.
    """
    salary = to_decimal(monthly_salary)
    total = Decimal('0')
    cursor = window.start
    if employed_from is not None and employed_from > cursor:
        cursor = employed_from
    while cursor <= window.end:
        days_in_month = calendar.monthrange(cursor.year, cursor.month)[1]
        month_end = date(cursor.year, cursor.month, days_in_month)
        covered = (min(month_end, window.end) - cursor).days + 1
        total += salary * Decimal(covered) / Decimal(days_in_month)
        cursor = month_end + timedelta(days=1)
    return total


# ---------------------------------------------------------------------------
# Rates and hours
# ---------------------------------------------------------------------------

def resolve_rate(staff, category, overrides: Dict) -> Decimal:
    """Staff override for the category, then the category rate, then the staff default"""
    if category is not None:
        override = overrides.get((staff.id, category.id))
        if override is not None:
            return to_decimal(override)
        if category.hourly_rate is not None:
            return to_decimal(category.hourly_rate)
    return to_decimal(staff.hourly_rate)


def apportion_entry(entry: TimeEntry) -> List[tuple]:
    """
    Split an entry's net hours across the categories it was worked under.

    Returns:
        [(category or None, net_hours Decimal), ...]
    """
    net_hours = to_decimal(entry.net_hours)
    if entry.shift is None or net_hours == 0:
        return [(None, net_hours)]

    worked_seconds = Decimal((entry.clock_out - entry.clock_in).total_seconds())
    portions = []
    covered = Decimal('0')
    for segment in entry.shift.wage_segments():
        overlap = (min(segment.end, entry.clock_out) - max(segment.start, entry.clock_in)).total_seconds()
        if overlap > 0:
            overlap = Decimal(overlap)
            covered += overlap
            portions.append((segment.category, net_hours * overlap / worked_seconds))

    uncovered = worked_seconds - covered
    if uncovered > 0:
        portions.append((entry.shift.category, net_hours * uncovered / worked_seconds))
    return portions


def entry_location(entry: TimeEntry):
    if entry.shift is not None and entry.shift.location is not None:
        return entry.shift.location
    return entry.staff.primary_location


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def _visible_staff(viewer):
    queryset = CustomUser.objects.filter(organization=viewer.organization)
    if not is_admin(viewer):
        queryset = queryset.filter(role='EMPLOYEE')
    return queryset


def _location_key(location):
    return str(location.id) if location is not None else UNASSIGNED


def _accumulate(viewer, window: ReportWindow, location_id=None) -> Dict:
    organization = viewer.organization
    start, _ = local_day_bounds(window.start, organization)
    _, end = local_day_bounds(window.end, organization)

    staff_qs = _visible_staff(viewer).select_related('primary_location')
    entries = TimeEntry.objects.filter(
        staff__in=staff_qs,
        state='CLOSED',
        status='APPROVED',
        clock_in__gte=start,
        clock_in__lt=end,
    ).select_related(
        'staff', 'staff__primary_location', 'shift', 'shift__location', 'shift__category'
    ).prefetch_related('shift__segments__category')

    overrides = {
        (rate.staff_id, rate.category_id): rate.hourly_rate
        for rate in StaffCategoryRate.objects.filter(staff__in=staff_qs)
    }

    # staff_id -> location_key -> {'hours', 'gross'}
    buckets = defaultdict(lambda: defaultdict(lambda: {'hours': Decimal('0'), 'gross': Decimal('0')}))
    locations = {}
    staff_by_id = {}

    for entry in entries:
        staff = entry.staff
        staff_by_id[staff.id] = staff
        location = entry_location(entry)
        key = _location_key(location)
        locations[key] = location
        for category, hours in apportion_entry(entry):
            cell = buckets[staff.id][key]
            cell['hours'] += hours
            if not staff.is_salaried:
                cell['gross'] += hours * resolve_rate(staff, category, overrides)

    for staff in staff_qs.filter(pay_type='MONTHLY', is_active=True):
        staff_by_id[staff.id] = staff
        salary = prorated_salary(
            staff.monthly_salary or 0, window, employed_from=local_date(staff.date_joined, organization)
        )
        if salary == 0 and staff.id not in buckets:
            continue
        cells = buckets[staff.id]
        total_hours = sum((cell['hours'] for cell in cells.values()), Decimal('0'))
        if total_hours > 0:
            for cell in cells.values():
                cell['gross'] = salary * cell['hours'] / total_hours
        else:
            key = _location_key(staff.primary_location)
            locations[key] = staff.primary_location
            cells[key]['gross'] = salary

    return {
        'buckets': buckets,
        'locations': locations,
        'staff': staff_by_id,
        'location_filter': str(location_id) if location_id else None,
    }


def _build_report(viewer, window: ReportWindow, location_id=None) -> Dict:
    data = _accumulate(viewer, window, location_id)
    location_filter = data['location_filter']
    factor = window.month_factor

    staff_rows = []
    location_rows = {}
    totals = defaultdict(lambda: Decimal('0'))

    for staff_id, cells in data['buckets'].items():
        staff = data['staff'][staff_id]
        staff_gross = sum((cell['gross'] for cell in cells.values()), Decimal('0'))
        staff_holiday = Decimal('0') if staff.is_salaried else holiday_accrual(staff_gross)
        staff_employer = employer_contribution(staff_gross, factor)
        staff_employee = employee_contribution(staff_gross, factor)

        breakdown = []
        for key, cell in cells.items():
            if location_filter and key != location_filter:
                continue
            share = cell['gross'] / staff_gross if staff_gross else Decimal('0')
            holiday = staff_holiday * share
            employer = staff_employer * share
            location = data['locations'].get(key)
            row = {
                'location_id': key,
                'location_name': location.name if location is not None else 'Unassigned',
                'hours': round_money(cell['hours']),
                'gross_pay': round_money(cell['gross']),
                'holiday_accrual': round_money(holiday),
                'employer_contribution': round_money(employer),
                'employee_contribution': round_money(staff_employee * share),
                'total_cost': round_money(cell['gross'] + holiday + employer),
            }
            breakdown.append(row)

            rollup = location_rows.setdefault(key, {
                'location_id': key,
                'location_name': row['location_name'],
                'hours': Decimal('0'),
                'gross_pay': Decimal('0'),
                'holiday_accrual': Decimal('0'),
                'employer_contribution': Decimal('0'),
                'total_cost': Decimal('0'),
                'staff_count': 0,
            })
            for field in ('hours', 'gross_pay', 'holiday_accrual', 'employer_contribution', 'total_cost'):
                rollup[field] += row[field]
            rollup['staff_count'] += 1

        if not breakdown:
            continue

        staff_row = {
            'staff_id': str(staff.id),
            'name': staff.get_full_name() or staff.email,
            'role': staff.role,
            'pay_type': staff.pay_type,
            'locations': sorted(breakdown, key=lambda r: r['location_name']),
        }
        for field in ('hours', 'gross_pay', 'holiday_accrual', 'employer_contribution',
                      'employee_contribution', 'total_cost'):
            staff_row[field] = sum((r[field] for r in breakdown), Decimal('0'))
            totals[field] += staff_row[field]
        staff_rows.append(staff_row)

    for field in ('hours', 'gross_pay', 'holiday_accrual', 'employer_contribution',
                  'employee_contribution', 'total_cost'):
        totals[field] = round_money(totals[field])

    return {
        'window': {'start': window.start, 'end': window.end, 'label': window.label},
        'currency': viewer.organization.currency,
        'staff': sorted(staff_rows, key=lambda r: r['name']),
        'locations': sorted(location_rows.values(), key=lambda r: r['location_name']),
        'totals': dict(totals),
    }


def variance(current_total, previous_total) -> Dict:
    """Change against the previous window; the percentage is 0 when there is nothing to compare"""
    current_total = to_decimal(current_total)
    previous_total = to_decimal(previous_total)
    amount = round_money(current_total - previous_total)
    if previous_total == 0:
        return {
            'previous_total': round_money(previous_total),
            'amount': amount,
            'percentage': Decimal('0.00'),
            'percentage_defined': False,
        }
    return {
        'previous_total': round_money(previous_total),
        'amount': amount,
        'percentage': round_money(amount / previous_total * 100),
        'percentage_defined': True,
    }


def staff_cost_report(viewer, month: Optional[str] = None, pay_period_id=None, location_id=None) -> Dict:
    """
    Staff cost report for a month or a pay period.

    Returns:
        {
            'window': {'start', 'end', 'label'},
            'currency': str,
            'staff': [{staff_id, name, role, pay_type, hours, gross_pay, holiday_accrual,
                       employer_contribution, employee_contribution, total_cost, locations}],
            'locations': [{location_id, location_name, hours, gross_pay, holiday_accrual,
                           employer_contribution, total_cost, staff_count}],
            'totals': {...},
            'variance': {previous_total, amount, percentage, percentage_defined, previous_window}
        }
    """
    organization = viewer.organization
    if pay_period_id:
        window = pay_period_window(organization, pay_period_id)
    elif month:
        window = month_window(month)
    else:
        raise ValidationError('Provide a month (YYYY-MM) or a pay period.')

    if location_id and not organization.locations.filter(id=location_id).exists():
        raise NotFoundError('Location not found.')

    report = _build_report(viewer, window, location_id)
    earlier = previous_window(window, organization)
    previous = _build_report(viewer, earlier, location_id)

    report['variance'] = {
        **variance(report['totals'].get('total_cost', 0), previous['totals'].get('total_cost', 0)),
        'previous_window': previous['window'],
    }
    logger.info(
        "Staff cost report built",
        extra={'organization_id': str(organization.id), 'window': window.label, 'rows': len(report['staff'])},
    )
    return report
