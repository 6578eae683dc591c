"""
Time entry state machine.

    (no entry) -> ACTIVE <-> ON_BREAK -> CLOSED/PENDING -> CLOSED/APPROVED | CLOSED/REJECTED

Every transition runs in one transaction and holds a row lock on the staff
member, so concurrent requests from the same person are applied one at a time.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from django.db import IntegrityError, transaction
from django.utils import timezone

from accounts.models import AuditLog, CustomUser
from core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from core.timezone_utils import local_date, local_day_bounds
from notifications.services import NotificationService
from scheduling.break_rules import mandated_break_minutes, resolve_break_rules
from scheduling.models import Shift
from .geofence import check_geofence, resolve_target
from .models import TimeEntry

logger = logging.getLogger(__name__)


def classify_clock_in(now: datetime, shift_start: Optional[datetime], window_minutes: int, late_grace_minutes: int = 0) -> str:
    """
    EARLY before ``start - window``, LATE after ``start + grace``, NONE otherwise.
    Both boundaries count as on time.
    """
    if shift_start is None:
        return 'NONE'
    if now < shift_start - timedelta(minutes=window_minutes):
        return 'EARLY'
    if now > shift_start + timedelta(minutes=late_grace_minutes):
        return 'LATE'
    return 'NONE'


def elapsed_minutes(start: datetime, end: datetime) -> int:
    return max(0, round((end - start).total_seconds() / 60))


class TimeEntryService:

    @staticmethod
    def _lock_staff(staff) -> CustomUser:
        return CustomUser.objects.select_for_update().get(pk=staff.pk)

    @staticmethod
    def get_open_entry(staff, for_update=False) -> Optional[TimeEntry]:
        queryset = TimeEntry.objects.filter(staff=staff, state__in=TimeEntry.OPEN_STATES)
        if for_update:
            queryset = queryset.select_for_update(of=('self',))
        return queryset.select_related('shift').first()

    @staticmethod
    def _require_open_entry(staff) -> TimeEntry:
        entry = TimeEntryService.get_open_entry(staff, for_update=True)
        if entry is None:
            raise ValidationError('You are not clocked in.')
        return entry

    @staticmethod
    def get_entry(organization, entry_id, for_update=False) -> TimeEntry:
        queryset = TimeEntry.objects.select_related('staff', 'shift')
        if for_update:
            queryset = queryset.select_for_update(of=('self',))
        try:
            return queryset.get(id=entry_id, staff__organization=organization)
        except (TimeEntry.DoesNotExist, ValueError):
            raise NotFoundError('Time entry not found.')

    @staticmethod
    def match_shift(staff, now: datetime, shift_id=None) -> Optional[Shift]:
        """
        The shift a clock-in belongs to: the explicit one, which must be the
        caller's, or the caller's shift today whose start is nearest to now.
        """
        if shift_id:
            try:
                shift = Shift.objects.select_related('location').get(
                    id=shift_id, organization=staff.organization, is_archived=False
                )
            except (Shift.DoesNotExist, ValueError):
                raise NotFoundError('Shift not found.')
            if shift.assigned_to_id != staff.id:
                raise AuthorizationError('This shift is not assigned to you.')
            return shift

        day_start, day_end = local_day_bounds(local_date(now, staff.organization), staff.organization)
        candidates = Shift.objects.filter(
            assigned_to=staff,
            is_archived=False,
            start__lt=day_end,
            end__gt=day_start,
        ).select_related('location')
        return min(candidates, key=lambda s: abs((s.start - now).total_seconds()), default=None)

    @staticmethod
    def break_rules_for(entry: TimeEntry):
        location = entry.shift.location if entry.shift_id and entry.shift.location_id else entry.staff.primary_location
        return resolve_break_rules(location, entry.staff.organization)

    @staticmethod
    def mandated_break_for(entry: TimeEntry) -> int:
        hours = (entry.clock_out - entry.clock_in).total_seconds() / 3600
        return mandated_break_minutes(hours, TimeEntryService.break_rules_for(entry))

    @staticmethod
    @transaction.atomic
    def clock_in(staff, latitude=None, longitude=None, shift_id=None, now=None) -> TimeEntry:
        now = now or timezone.now()
        staff = TimeEntryService._lock_staff(staff)
        organization = staff.organization

        if TimeEntryService.get_open_entry(staff) is not None:
            raise ConflictError('You are already clocked in.')

        shift = TimeEntryService.match_shift(staff, now, shift_id)

        flag = 'NONE'
        if shift is not None:
            flag = classify_clock_in(
                now, shift.start,
                organization.clock_in_window_minutes,
                organization.late_grace_minutes,
            )

        geofence = check_geofence(latitude, longitude, resolve_target(shift, staff))
        location_flagged = not geofence.allowed
        location_note = '' if geofence.allowed else geofence.reason
        if organization.require_geolocation and (latitude is None or longitude is None):
            location_flagged = True
            location_note = 'Location not provided'

        try:
            with transaction.atomic():
                entry = TimeEntry.objects.create(
                    staff=staff,
                    shift=shift,
                    clock_in=now,
                    state='ACTIVE',
                    clock_in_flag=flag,
                    latitude=latitude,
                    longitude=longitude,
                    distance_metres=geofence.distance_metres,
                    location_flagged=location_flagged,
                    location_note=location_note,
                )
        except IntegrityError:
            raise ConflictError('You are already clocked in.')

        AuditLog.create_log(
            organization, staff, 'CLOCK_IN', 'TimeEntry', f'{staff} clocked in',
            entity_id=entry.id,
            new_values={'shift': shift.id if shift else None, 'flag': flag, 'location_flagged': location_flagged},
        )

        reasons = []
        if flag != 'NONE':
            reasons.append(f'clocked in {flag.lower()} for {shift.title}')
        if location_flagged:
            reasons.append(location_note.lower())
        if reasons:
            NotificationService().notify_managers(
                organization, 'TIME_ENTRY_FLAGGED', 'Time entry flagged',
                f'{staff}: ' + '; '.join(reasons) + '.',
                link=f'/time-entries/{entry.id}',
            )
            logger.warning(
                "Clock-in flagged",
                extra={'staff_id': str(staff.id), 'entry_id': str(entry.id), 'reasons': reasons},
            )
        else:
            logger.info("Clock-in", extra={'staff_id': str(staff.id), 'entry_id': str(entry.id)})
        return entry

    @staticmethod
    @transaction.atomic
    def start_break(staff, now=None) -> TimeEntry:
        now = now or timezone.now()
        staff = TimeEntryService._lock_staff(staff)
        entry = TimeEntryService._require_open_entry(staff)
        if entry.state == 'ON_BREAK':
            raise ValidationError('You are already on a break.')

        entry.state = 'ON_BREAK'
        entry.break_start = now
        entry.save(update_fields=['state', 'break_start', 'updated_at'])

        AuditLog.create_log(staff.organization, staff, 'BREAK_START', 'TimeEntry', f'{staff} started a break', entity_id=entry.id)
        logger.info("Break started", extra={'staff_id': str(staff.id), 'entry_id': str(entry.id)})
        return entry

    @staticmethod
    @transaction.atomic
    def end_break(staff, now=None) -> TimeEntry:
        now = now or timezone.now()
        staff = TimeEntryService._lock_staff(staff)
        entry = TimeEntryService._require_open_entry(staff)
        if entry.state != 'ON_BREAK':
            raise ValidationError('You are not on a break.')

        minutes = elapsed_minutes(entry.break_start, now)
        entry.total_break_minutes += minutes
        entry.state = 'ACTIVE'
        entry.break_start = None
        entry.save(update_fields=['state', 'break_start', 'total_break_minutes', 'updated_at'])

        AuditLog.create_log(
            staff.organization, staff, 'BREAK_END', 'TimeEntry', f'{staff} ended a {minutes} minute break',
            entity_id=entry.id, new_values={'total_break_minutes': entry.total_break_minutes},
        )
        logger.info("Break ended", extra={'staff_id': str(staff.id), 'entry_id': str(entry.id), 'minutes': minutes})
        return entry

    @staticmethod
    def _apply_break_rules(entry: TimeEntry):
        entry.mandated_break_minutes = TimeEntryService.mandated_break_for(entry)
        if entry.staff.organization.enforce_break_rules:
            entry.total_break_minutes = max(entry.total_break_minutes, entry.mandated_break_minutes)

    @staticmethod
    def _close(entry: TimeEntry, clock_out: datetime):
        if entry.state == 'ON_BREAK' and entry.break_start is not None:
            # A break still running at clock-out ends with it
            entry.total_break_minutes += elapsed_minutes(entry.break_start, clock_out)
        entry.clock_out = clock_out
        entry.state = 'CLOSED'
        entry.break_start = None
        TimeEntryService._apply_break_rules(entry)

    @staticmethod
    @transaction.atomic
    def clock_out(staff, now=None, notes=None) -> Tuple[TimeEntry, Optional[str]]:
        """
        Close the caller's open entry.

        Returns:
            (entry, warning) where warning mentions a clock-out well past the shift end
        """
        now = now or timezone.now()
        staff = TimeEntryService._lock_staff(staff)
        entry = TimeEntryService._require_open_entry(staff)
        if entry.state == 'ON_BREAK':
            raise ValidationError('End your break before clocking out.')

        TimeEntryService._close(entry, now)
        if notes:
            entry.notes = notes
        entry.save()

        warning = None
        grace = timedelta(minutes=staff.organization.clock_out_grace_minutes)
        if entry.shift_id and now > entry.shift.end + grace:
            late_by = elapsed_minutes(entry.shift.end, now)
            warning = f'Clocked out {late_by} minutes after the shift ended.'

        AuditLog.create_log(
            staff.organization, staff, 'CLOCK_OUT', 'TimeEntry', f'{staff} clocked out',
            entity_id=entry.id,
            new_values={'clock_out': entry.clock_out, 'total_break_minutes': entry.total_break_minutes},
        )
        logger.info(
            "Clock-out",
            extra={'staff_id': str(staff.id), 'entry_id': str(entry.id), 'net_hours': round(entry.net_hours, 2)},
        )
        return entry, warning

    @staticmethod
    @transaction.atomic
    def decide(manager, entry_id, approve: bool, reason='') -> TimeEntry:
        """
        Approve or reject a closed entry. Repeating the current decision
        changes nothing; switching decisions is a logged manager correction.
        """
        entry = TimeEntryService.get_entry(manager.organization, entry_id, for_update=True)
        if entry.state != 'CLOSED':
            raise ValidationError('Only closed time entries can be approved or rejected.')

        target = 'APPROVED' if approve else 'REJECTED'
        previous = entry.status
        if previous == target:
            AuditLog.create_log(
                manager.organization, manager, 'APPROVE' if approve else 'REJECT', 'TimeEntry',
                f'Time entry already {target.lower()}', entity_id=entry.id,
                old_values={'status': previous}, new_values={'status': target},
            )
            return entry

        entry.status = target
        entry.approved_by = manager
        entry.approved_at = timezone.now()
        if reason:
            entry.notes = f'{entry.notes}\n{reason}'.strip()
        entry.save(update_fields=['status', 'approved_by', 'approved_at', 'notes', 'updated_at'])

        AuditLog.create_log(
            manager.organization, manager,
            'APPROVE' if approve else 'REJECT', 'TimeEntry',
            f'Time entry {target.lower()}' + (' (correction)' if previous != 'PENDING' else ''),
            entity_id=entry.id, old_values={'status': previous}, new_values={'status': target},
        )
        NotificationService().notify(
            entry.staff, f'TIMESHEET_{target}', f'Timesheet {target.lower()}',
            f'Your time entry for {entry.clock_in:%A %d %b} was {target.lower()}.'
            + (f' Reason: {reason}' if reason and not approve else ''),
            link=f'/time-entries/{entry.id}',
        )
        logger.info("Time entry decided", extra={'entry_id': str(entry.id), 'status': target})
        return entry

    @staticmethod
    def approve(manager, entry_id) -> TimeEntry:
        return TimeEntryService.decide(manager, entry_id, approve=True)

    @staticmethod
    def reject(manager, entry_id, reason='') -> TimeEntry:
        return TimeEntryService.decide(manager, entry_id, approve=False, reason=reason)

    @staticmethod
    @transaction.atomic
    def approve_clock_in(manager, entry_id) -> TimeEntry:
        """Clear an early or late clock-in; both flags need the same sign-off"""
        entry = TimeEntryService.get_entry(manager.organization, entry_id, for_update=True)
        if entry.clock_in_flag == 'NONE':
            raise ValidationError('This clock-in was not flagged.')
        if entry.clock_in_approved:
            return entry

        entry.clock_in_approved = True
        entry.clock_in_approved_by = manager
        entry.clock_in_approved_at = timezone.now()
        entry.save(update_fields=['clock_in_approved', 'clock_in_approved_by', 'clock_in_approved_at', 'updated_at'])

        AuditLog.create_log(
            manager.organization, manager, 'APPROVE', 'TimeEntry',
            f'Approved {entry.clock_in_flag.lower()} clock-in', entity_id=entry.id,
        )
        NotificationService().notify(
            entry.staff, 'CLOCK_IN_APPROVED', 'Clock-in approved',
            f'Your {entry.clock_in_flag.lower()} clock-in on {entry.clock_in:%A %d %b} was approved.',
            link=f'/time-entries/{entry.id}',
        )
        return entry

    @staticmethod
    @transaction.atomic
    def correct(manager, entry_id, changes: Dict) -> TimeEntry:
        """Manager edit of times, breaks or notes, including decided entries"""
        entry = TimeEntryService.get_entry(manager.organization, entry_id, for_update=True)
        old_values = {
            'clock_in': entry.clock_in,
            'clock_out': entry.clock_out,
            'total_break_minutes': entry.total_break_minutes,
            'notes': entry.notes,
        }

        if 'clock_in' in changes and changes['clock_in'] is not None:
            entry.clock_in = changes['clock_in']
        if 'notes' in changes:
            entry.notes = changes['notes'] or ''

        if changes.get('clock_out') is not None:
            if changes['clock_out'] < entry.clock_in:
                raise ValidationError('Clock-out cannot be before clock-in.')
            if entry.is_open:
                TimeEntryService._close(entry, changes['clock_out'])
            else:
                entry.clock_out = changes['clock_out']
                entry.mandated_break_minutes = TimeEntryService.mandated_break_for(entry)
        elif entry.clock_out is not None and entry.clock_out < entry.clock_in:
            raise ValidationError('Clock-out cannot be before clock-in.')

        if changes.get('total_break_minutes') is not None:
            minutes = int(changes['total_break_minutes'])
            if minutes < 0:
                raise ValidationError('Break minutes cannot be negative.')
            entry.total_break_minutes = minutes

        entry.save()

        AuditLog.create_log(
            manager.organization, manager, 'CORRECTION', 'TimeEntry',
            f'Corrected time entry for {entry.staff}', entity_id=entry.id,
            old_values=old_values,
            new_values={
                'clock_in': entry.clock_in,
                'clock_out': entry.clock_out,
                'total_break_minutes': entry.total_break_minutes,
                'notes': entry.notes,
            },
        )
        NotificationService().notify(
            entry.staff, 'TIMESHEET_EDITED', 'Timesheet edited',
            f'A manager edited your time entry for {entry.clock_in:%A %d %b}.',
            link=f'/time-entries/{entry.id}',
        )
        return entry

    @staticmethod
    @transaction.atomic
    def create_manual_entry(manager, staff, clock_in: datetime, clock_out: datetime,
                            break_minutes: Optional[int] = None, shift_id=None, notes='') -> TimeEntry:
        if staff.organization_id != manager.organization_id:
            raise NotFoundError('Staff member not found.')
        if clock_in is None or clock_out is None:
            raise ValidationError('Clock-in and clock-out are required.')
        if clock_out <= clock_in:
            clock_out = clock_out + timedelta(days=1)

        shift = None
        if shift_id:
            try:
                shift = Shift.objects.get(id=shift_id, organization=manager.organization)
            except (Shift.DoesNotExist, ValueError):
                raise NotFoundError('Shift not found.')

        entry = TimeEntry(
            staff=staff,
            shift=shift,
            clock_in=clock_in,
            clock_out=clock_out,
            state='CLOSED',
            status='PENDING',
            is_manual=True,
            notes=notes or '',
        )
        if break_minutes is not None and break_minutes < 0:
            raise ValidationError('Break minutes cannot be negative.')
        entry.total_break_minutes = break_minutes or 0
        TimeEntryService._apply_break_rules(entry)
        if break_minutes is None:
            entry.total_break_minutes = max(entry.total_break_minutes, entry.mandated_break_minutes)
        entry.save()

        AuditLog.create_log(
            manager.organization, manager, 'CREATE', 'TimeEntry', f'Manual time entry for {staff}',
            entity_id=entry.id,
            new_values={'clock_in': clock_in, 'clock_out': clock_out, 'total_break_minutes': entry.total_break_minutes},
        )
        NotificationService().notify(
            staff, 'MANUAL_TIME_ENTRY', 'Time entry added',
            f'A manager added a time entry for you on {clock_in:%A %d %b}.',
            link=f'/time-entries/{entry.id}',
        )
        return entry

    @staticmethod
    def flag_missed_clock_outs(now=None) -> int:
        """
        Flag open entries that began before today's local midnight. Entries
        stay open for a manager to correct.
        """
        now = now or timezone.now()
        flagged = 0
        candidates = TimeEntry.objects.filter(
            state__in=TimeEntry.OPEN_STATES, missed_clock_out=False
        ).select_related('staff__organization')

        for entry in candidates:
            organization = entry.staff.organization
            midnight, _ = local_day_bounds(local_date(now, organization), organization)
            if entry.clock_in >= midnight:
                continue
            with transaction.atomic():
                updated = TimeEntry.objects.filter(id=entry.id, missed_clock_out=False).update(missed_clock_out=True)
                if not updated:
                    continue
                flagged += 1
                NotificationService().notify_managers(
                    organization, 'MISSED_CLOCK_OUT', 'Missed clock-out',
                    f'{entry.staff} has not clocked out since {entry.clock_in:%A %d %b, %H:%M}.',
                    link=f'/time-entries/{entry.id}',
                )
        if flagged:
            logger.warning("Flagged %s missed clock-outs", flagged)
        return flagged
