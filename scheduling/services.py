"""
Scheduling service layer - contains business logic for shift operations
"""
import logging
from datetime import datetime, timedelta, date
from typing import Dict, List, Optional

from django.db import transaction
from django.utils import timezone

from accounts.models import AuditLog, CustomUser
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.timezone_utils import combine_local, get_organization_timezone
from notifications.services import NotificationService
from .break_rules import mandated_break_minutes, resolve_break_rules
from .models import Shift, ShiftCategory, ShiftSegment, ShiftTemplate

logger = logging.getLogger(__name__)


def validate_segments(shift_start: datetime, shift_end: datetime, segments: List[Dict]) -> List[Dict]:
    """
    Check segment windows against the shift and each other.

    Each segment is a dict with ``start``, ``end`` and ``category``.
    Returns the segments sorted by start; touching boundaries are allowed.
    """
    for index, segment in enumerate(segments, start=1):
        if not segment.get('start') or not segment.get('end') or not segment.get('category'):
            raise ValidationError(f'Segment {index} requires start, end and category.')
        if segment['end'] <= segment['start']:
            raise ValidationError(f'Segment {index} must end after it starts.')
        if segment['start'] < shift_start or segment['end'] > shift_end:
            raise ValidationError(f'Segment {index} must fall within the shift.')

    ordered = sorted(segments, key=lambda s: s['start'])
    for previous, current in zip(ordered, ordered[1:]):
        if current['start'] < previous['end']:
            raise ValidationError('Segments cannot overlap.')
    return ordered


class ShiftService:
    """Service for managing shifts and their assignment"""

    @staticmethod
    def get_shift(organization, shift_id, for_update=False) -> Shift:
        queryset = Shift.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(id=shift_id, organization=organization)
        except (Shift.DoesNotExist, ValueError):
            raise NotFoundError('Shift not found.')

    @staticmethod
    def normalize_window(start: datetime, end: datetime):
        """Roll an overnight end forward one day"""
        if start is None or end is None:
            raise ValidationError('Shift start and end are required.')
        if end <= start:
            end = end + timedelta(days=1)
        return start, end

    @staticmethod
    def scheduled_break_for(start: datetime, end: datetime, location=None, organization=None) -> int:
        hours = (end - start).total_seconds() / 3600
        return mandated_break_minutes(hours, resolve_break_rules(location, organization))

    @staticmethod
    def find_overlapping_shifts(staff, start: datetime, end: datetime, exclude_id=None):
        queryset = Shift.objects.filter(
            assigned_to=staff,
            is_archived=False,
            start__lt=end,
            end__gt=start,
        )
        if exclude_id:
            queryset = queryset.exclude(id=exclude_id)
        return queryset

    @staticmethod
    def check_assignee(organization, staff, start, end, exclude_id=None):
        if staff is None:
            return
        if staff.organization_id != organization.id or not staff.is_active:
            raise NotFoundError('Staff member not found.')
        clash = ShiftService.find_overlapping_shifts(staff, start, end, exclude_id).first()
        if clash:
            raise ConflictError(
                f'{staff} already has an overlapping shift '
                f'({clash.start:%Y-%m-%d %H:%M}-{clash.end:%H:%M}).'
            )

    @staticmethod
    @transaction.atomic
    def create_shift(actor, data: Dict) -> Shift:
        organization = actor.organization
        start, end = ShiftService.normalize_window(data.get('start'), data.get('end'))
        location = data.get('location')
        assigned_to = data.get('assigned_to')

        if assigned_to is not None:
            # Serializes concurrent assignments of the same staff member
            CustomUser.objects.select_for_update().filter(pk=assigned_to.pk).first()
        ShiftService.check_assignee(organization, assigned_to, start, end)

        scheduled_break = data.get('scheduled_break_minutes')
        if scheduled_break is None:
            scheduled_break = ShiftService.scheduled_break_for(start, end, location, organization)

        shift = Shift.objects.create(
            organization=organization,
            title=data.get('title') or 'Shift',
            description=data.get('description'),
            start=start,
            end=end,
            scheduled_break_minutes=scheduled_break,
            location=location,
            category=data.get('category'),
            assigned_to=assigned_to,
            status='ASSIGNED' if assigned_to else 'OPEN',
            created_by=actor,
        )

        AuditLog.create_log(
            organization, actor, 'CREATE', 'Shift', f'Created shift {shift.title}',
            entity_id=shift.id,
            new_values={'start': start, 'end': end, 'assigned_to': assigned_to.id if assigned_to else None},
        )
        logger.info("Shift created", extra={'shift_id': str(shift.id), 'staff_id': str(shift.assigned_to_id)})

        if assigned_to:
            NotificationService().notify(
                assigned_to, 'SHIFT_ASSIGNED', 'New shift assigned',
                f'You have been assigned {shift.title} on {shift.start:%A %d %b, %H:%M}.',
                link=f'/shifts/{shift.id}',
            )
        return shift

    @staticmethod
    @transaction.atomic
    def update_shift(actor, shift_id, data: Dict) -> Shift:
        shift = ShiftService.get_shift(actor.organization, shift_id, for_update=True)
        if shift.is_archived:
            raise ConflictError('Archived shifts cannot be edited.')

        old_values = {'start': shift.start, 'end': shift.end, 'title': shift.title}
        start = data.get('start', shift.start)
        end = data.get('end', shift.end)
        window_changed = 'start' in data or 'end' in data
        if 'start' in data and 'end' in data:
            start, end = ShiftService.normalize_window(start, end)
        elif end <= start:
            # Overnight input only when both times are sent together
            raise ValidationError('Shift must end after it starts.')

        for segment in shift.segments.all():
            if segment.start < start or segment.end > end:
                raise ValidationError('Existing segments fall outside the new shift window.')

        ShiftService.check_assignee(actor.organization, shift.assigned_to, start, end, exclude_id=shift.id)

        for field in ('title', 'description', 'location', 'category', 'scheduled_break_minutes'):
            if field in data:
                setattr(shift, field, data[field])
        if data.get('scheduled_break_minutes') is None and (
            window_changed or 'location' in data or 'scheduled_break_minutes' in data
        ):
            shift.scheduled_break_minutes = ShiftService.scheduled_break_for(
                start, end, shift.location, actor.organization
            )
        if data.get('status') == 'CONFIRMED':
            if shift.assigned_to_id is None:
                raise ValidationError('Only assigned shifts can be confirmed.')
            shift.status = 'CONFIRMED'
        shift.start, shift.end = start, end
        shift.save()

        AuditLog.create_log(
            actor.organization, actor, 'UPDATE', 'Shift', f'Updated shift {shift.title}',
            entity_id=shift.id, old_values=old_values,
            new_values={'start': shift.start, 'end': shift.end, 'title': shift.title},
        )
        return shift

    @staticmethod
    @transaction.atomic
    def assign_shift(actor, shift_id, staff: Optional[CustomUser]) -> Shift:
        """Assign a shift to ``staff``, or open it up again when staff is None"""
        shift = ShiftService.get_shift(actor.organization, shift_id, for_update=True)
        if shift.is_archived:
            raise ConflictError('Archived shifts cannot be reassigned.')
        ShiftService.check_assignee(actor.organization, staff, shift.start, shift.end, exclude_id=shift.id)

        previous = shift.assigned_to
        shift.assigned_to = staff
        shift.status = 'ASSIGNED' if staff else 'OPEN'
        shift.save(update_fields=['assigned_to', 'status', 'updated_at'])

        if previous is not None and previous != staff:
            # The previous assignee's exchange requests no longer apply
            stale = shift.swap_requests.filter(requester=previous, status='PENDING')
            cancelled = stale.update(status='CANCELLED', resolved_by=actor, resolved_at=timezone.now())
            if cancelled:
                NotificationService().notify(
                    previous, 'REQUEST_CANCELLED', 'Request cancelled',
                    f'Your request for {shift.title} was cancelled because the shift was reassigned.',
                    link=f'/shifts/{shift.id}',
                )

        AuditLog.create_log(
            actor.organization, actor, 'ASSIGN', 'Shift',
            f'Assigned shift {shift.title} to {staff}' if staff else f'Opened shift {shift.title}',
            entity_id=shift.id,
            old_values={'assigned_to': previous.id if previous else None},
            new_values={'assigned_to': staff.id if staff else None},
        )
        if staff and staff != previous:
            NotificationService().notify(
                staff, 'SHIFT_ASSIGNED', 'New shift assigned',
                f'You have been assigned {shift.title} on {shift.start:%A %d %b, %H:%M}.',
                link=f'/shifts/{shift.id}',
            )
        return shift

    @staticmethod
    @transaction.atomic
    def pickup_shift(staff, shift_id) -> Shift:
        """Claim an open shift; only the first claimant wins"""
        shift = ShiftService.get_shift(staff.organization, shift_id, for_update=True)
        if shift.is_archived or shift.assigned_to_id is not None:
            raise ConflictError('This shift is no longer open.')
        ShiftService.check_assignee(staff.organization, staff, shift.start, shift.end, exclude_id=shift.id)

        shift.assigned_to = staff
        shift.status = 'ASSIGNED'
        shift.save(update_fields=['assigned_to', 'status', 'updated_at'])

        AuditLog.create_log(
            staff.organization, staff, 'ASSIGN', 'Shift', f'{staff} picked up {shift.title}',
            entity_id=shift.id, new_values={'assigned_to': staff.id},
        )
        NotificationService().notify_managers(
            staff.organization, 'SHIFT_PICKUP', 'Open shift picked up',
            f'{staff} picked up {shift.title} on {shift.start:%A %d %b, %H:%M}.',
            link=f'/shifts/{shift.id}',
        )
        logger.info("Open shift picked up", extra={'shift_id': str(shift.id), 'staff_id': str(staff.id)})
        return shift

    @staticmethod
    @transaction.atomic
    def replace_segments(actor, shift_id, segments: List[Dict]) -> Shift:
        """Validate and atomically replace every segment of a shift"""
        shift = ShiftService.get_shift(actor.organization, shift_id, for_update=True)

        resolved = []
        for segment in segments:
            category = segment.get('category')
            if category is not None and not isinstance(category, ShiftCategory):
                try:
                    category = ShiftCategory.objects.get(id=category, organization=actor.organization)
                except (ShiftCategory.DoesNotExist, ValueError):
                    raise ValidationError('Segment category not found.')
            elif category is not None and category.organization_id != actor.organization.id:
                raise ValidationError('Segment category not found.')
            resolved.append({**segment, 'category': category})

        ordered = validate_segments(shift.start, shift.end, resolved)

        shift.segments.all().delete()
        ShiftSegment.objects.bulk_create([
            ShiftSegment(shift=shift, start=s['start'], end=s['end'], category=s['category'])
            for s in ordered
        ])

        AuditLog.create_log(
            actor.organization, actor, 'UPDATE', 'Shift', f'Replaced segments of {shift.title}',
            entity_id=shift.id,
            new_values={'segments': [
                {'start': s['start'], 'end': s['end'], 'category': s['category'].id} for s in ordered
            ]},
        )
        return shift

    @staticmethod
    @transaction.atomic
    def delete_shift(actor, shift_id) -> str:
        """
        Hard delete a shift nobody has logged time against; archive it otherwise.

        Returns:
            'deleted' or 'archived'
        """
        shift = ShiftService.get_shift(actor.organization, shift_id, for_update=True)
        if shift.time_entries.exists():
            if not shift.is_archived:
                shift.is_archived = True
                shift.archived_at = timezone.now()
                shift.save(update_fields=['is_archived', 'archived_at', 'updated_at'])
            AuditLog.create_log(
                actor.organization, actor, 'ARCHIVE', 'Shift', f'Archived shift {shift.title}',
                entity_id=shift.id,
            )
            return 'archived'

        AuditLog.create_log(
            actor.organization, actor, 'DELETE', 'Shift', f'Deleted shift {shift.title}',
            entity_id=shift.id, old_values={'start': shift.start, 'end': shift.end},
        )
        shift.delete()
        return 'deleted'

    @staticmethod
    def create_from_template(actor, template: ShiftTemplate, shift_date: date, assigned_to=None) -> Shift:
        organization = actor.organization
        start = combine_local(shift_date, template.start_time, organization)
        end = combine_local(shift_date, template.end_time, organization)
        return ShiftService.create_shift(actor, {
            'title': template.name,
            'description': template.description,
            'start': start,
            'end': end,
            'location': template.location,
            'category': template.category,
            'assigned_to': assigned_to,
        })


class AvailabilityService:
    """Advisory availability lookups; never blocks assignment"""

    @staticmethod
    def has_stated_availability(staff, start: datetime, end: datetime) -> bool:
        """
        True when a slot covers the shift's local start and end times.
        Reads ``staff.availability`` so listings can prefetch it.
        """
        if staff is None:
            return False
        tz = get_organization_timezone(staff.organization)
        local_start = start.astimezone(tz)
        local_end = end.astimezone(tz)
        if local_end.date() != local_start.date():
            # Overnight shifts are matched on their starting day only
            end_time = None
        else:
            end_time = local_end.time()

        for slot in staff.availability.all():
            if slot.is_recurring:
                same_day = slot.day_of_week == local_start.weekday()
            else:
                same_day = slot.specific_date == local_start.date()
            if not same_day:
                continue
            if slot.start_time <= local_start.time() and (end_time is None or end_time <= slot.end_time):
                return True
        return False
