"""
Shift exchange workflow: staff ask to drop or swap an assigned shift and a
manager resolves the request.
"""
import logging
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from accounts.models import AuditLog, CustomUser
from core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from core.permissions import is_manager
from notifications.services import NotificationService
from .models import Shift, SwapRequest
from .services import ShiftService

logger = logging.getLogger(__name__)


class DropResolution:
    """Approved drops put the shift back on the open board"""

    def apply(self, request: SwapRequest, shift: Shift, replacement: Optional[CustomUser]):
        if replacement is not None:
            raise ValidationError('Drop requests do not take a replacement.')
        shift.assigned_to = None
        shift.status = 'OPEN'
        shift.save(update_fields=['assigned_to', 'status', 'updated_at'])
        return None


class SwapResolution:
    """Approved swaps hand the shift to the replacement staff member"""

    def apply(self, request: SwapRequest, shift: Shift, replacement: Optional[CustomUser]):
        replacement = replacement or request.proposed_to
        if replacement is None:
            raise ValidationError('Choose a replacement staff member to approve a swap.')
        if replacement.id == request.requester_id:
            raise ValidationError('The replacement must be someone other than the requester.')
        ShiftService.check_assignee(shift.organization, replacement, shift.start, shift.end, exclude_id=shift.id)

        shift.assigned_to = replacement
        shift.status = 'ASSIGNED'
        shift.save(update_fields=['assigned_to', 'status', 'updated_at'])
        return replacement


RESOLUTIONS = {
    'DROP': DropResolution(),
    'SWAP': SwapResolution(),
}


class SwapRequestService:

    @staticmethod
    def visible_requests(user):
        """Managers see the whole organization; staff see their own and those proposed to them"""
        queryset = SwapRequest.objects.filter(
            shift__organization=user.organization
        ).select_related('shift', 'requester', 'proposed_to', 'replacement', 'resolved_by')
        if not is_manager(user):
            queryset = queryset.filter(Q(requester=user) | Q(proposed_to=user))
        return queryset

    @staticmethod
    @transaction.atomic
    def create_request(staff, shift_id, request_type, proposed_to=None, message='') -> SwapRequest:
        if request_type not in RESOLUTIONS:
            raise ValidationError('Request type must be SWAP or DROP.')

        shift = ShiftService.get_shift(staff.organization, shift_id, for_update=True)
        if shift.is_archived:
            raise ValidationError('Archived shifts cannot be exchanged.')
        if shift.assigned_to_id != staff.id:
            raise AuthorizationError('You can only request changes to your own shifts.')

        if request_type == 'DROP':
            proposed_to = None
        elif proposed_to is not None:
            if proposed_to.organization_id != staff.organization_id:
                raise NotFoundError('Staff member not found.')
            if proposed_to.id == staff.id:
                raise ValidationError('You cannot propose yourself.')

        if SwapRequest.objects.filter(shift=shift, requester=staff, status='PENDING').exists():
            raise ConflictError('You already have a pending request for this shift.')

        try:
            with transaction.atomic():
                swap_request = SwapRequest.objects.create(
                    shift=shift,
                    requester=staff,
                    request_type=request_type,
                    proposed_to=proposed_to,
                    request_message=message or None,
                )
        except IntegrityError:
            raise ConflictError('You already have a pending request for this shift.')

        label = 'drop' if request_type == 'DROP' else 'swap'
        NotificationService().notify_managers(
            staff.organization, f'{request_type}_REQUEST', f'Shift {label} request',
            f'{staff} asked to {label} {shift.title} on {shift.start:%A %d %b, %H:%M}.',
            link=f'/swap-requests/{swap_request.id}',
        )
        if proposed_to is not None:
            NotificationService().notify(
                proposed_to, 'SWAP_REQUEST', 'Shift swap proposed',
                f'{staff} proposed you take {shift.title} on {shift.start:%A %d %b, %H:%M}.',
                link=f'/swap-requests/{swap_request.id}',
            )
        logger.info(
            "Exchange request created",
            extra={'request_id': str(swap_request.id), 'shift_id': str(shift.id), 'staff_id': str(staff.id)},
        )
        return swap_request

    @staticmethod
    def _lock_request(organization, request_id):
        """Lock the shift first, then the request, so competing resolutions queue on the shift"""
        try:
            shift_id = SwapRequest.objects.filter(
                id=request_id, shift__organization=organization
            ).values_list('shift_id', flat=True).get()
        except (SwapRequest.DoesNotExist, ValueError):
            raise NotFoundError('Request not found.')
        shift = Shift.objects.select_for_update().get(id=shift_id)
        swap_request = SwapRequest.objects.select_for_update().get(id=request_id)
        return swap_request, shift

    @staticmethod
    @transaction.atomic
    def resolve_request(manager, request_id, approve: bool, replacement=None) -> SwapRequest:
        swap_request, shift = SwapRequestService._lock_request(manager.organization, request_id)

        if swap_request.status != 'PENDING':
            raise ConflictError(f'This request has already been {swap_request.get_status_display().lower()}.')

        if replacement is not None and replacement.organization_id != manager.organization_id:
            raise NotFoundError('Staff member not found.')

        if approve:
            if shift.assigned_to_id != swap_request.requester_id:
                raise ConflictError('The shift is no longer assigned to the requester.')
            swap_request.replacement = RESOLUTIONS[swap_request.request_type].apply(swap_request, shift, replacement)
            swap_request.status = 'APPROVED'
        else:
            swap_request.status = 'REJECTED'

        swap_request.resolved_by = manager
        swap_request.resolved_at = timezone.now()
        swap_request.save()

        AuditLog.create_log(
            manager.organization, manager, 'APPROVE' if approve else 'REJECT', 'SwapRequest',
            f'{swap_request.get_status_display()} {swap_request.get_request_type_display().lower()} '
            f'request for {shift.title}',
            entity_id=swap_request.id,
            new_values={
                'status': swap_request.status,
                'assigned_to': shift.assigned_to_id,
            },
        )

        service = NotificationService()
        verdict = 'approved' if approve else 'rejected'
        service.notify(
            swap_request.requester, f'REQUEST_{swap_request.status}', f'Request {verdict}',
            f'Your request for {shift.title} on {shift.start:%A %d %b} was {verdict}.',
            link=f'/swap-requests/{swap_request.id}',
        )
        if approve and swap_request.replacement is not None:
            service.notify(
                swap_request.replacement, 'SHIFT_ASSIGNED', 'New shift assigned',
                f'You have been assigned {shift.title} on {shift.start:%A %d %b, %H:%M}.',
                link=f'/shifts/{shift.id}',
            )
        logger.info(
            "Exchange request resolved",
            extra={'request_id': str(swap_request.id), 'shift_id': str(shift.id), 'status': swap_request.status},
        )
        return swap_request

    @staticmethod
    @transaction.atomic
    def cancel_request(actor, request_id) -> SwapRequest:
        swap_request, shift = SwapRequestService._lock_request(actor.organization, request_id)

        if swap_request.requester_id != actor.id and not is_manager(actor):
            raise AuthorizationError('Only the requester or a manager can cancel this request.')
        if swap_request.status != 'PENDING':
            raise ConflictError(f'This request has already been {swap_request.get_status_display().lower()}.')

        swap_request.status = 'CANCELLED'
        swap_request.resolved_by = actor
        swap_request.resolved_at = timezone.now()
        swap_request.save()

        AuditLog.create_log(
            actor.organization, actor, 'CANCEL', 'SwapRequest',
            f'Cancelled request for {shift.title}', entity_id=swap_request.id,
        )
        if actor.id != swap_request.requester_id:
            NotificationService().notify(
                swap_request.requester, 'REQUEST_CANCELLED', 'Request cancelled',
                f'Your request for {shift.title} was cancelled by a manager.',
                link=f'/swap-requests/{swap_request.id}',
            )
        return swap_request
