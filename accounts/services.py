"""
Staff management service

Handles:
- Location memberships (which sites a staff member works at)
"""
import logging

from django.db import transaction

from core.exceptions import NotFoundError
from .models import AuditLog, CustomUser, LocationMembership

logger = logging.getLogger(__name__)


class StaffManagementService:
    """Service for staff membership of an organization's locations"""

    @staticmethod
    def get_staff(organization, staff_id) -> CustomUser:
        try:
            return CustomUser.objects.get(id=staff_id, organization=organization)
        except (CustomUser.DoesNotExist, ValueError):
            raise NotFoundError('Staff member not found.')

    @staticmethod
    def member_location_ids(staff):
        return list(staff.location_memberships.values_list('location_id', flat=True))

    @staticmethod
    @transaction.atomic
    def set_locations(actor, staff, locations):
        """
        Replace every location membership of ``staff``.

        Returns: the member locations ordered by name
        """
        if staff.organization_id != actor.organization_id:
            raise NotFoundError('Staff member not found.')
        if any(location.organization_id != actor.organization_id for location in locations):
            raise NotFoundError('Location not found.')

        previous = StaffManagementService.member_location_ids(staff)
        wanted = {location.id: location for location in locations}

        staff.location_memberships.exclude(location_id__in=wanted.keys()).delete()
        LocationMembership.objects.bulk_create([
            LocationMembership(staff=staff, location=location)
            for location_id, location in wanted.items()
            if location_id not in previous
        ])

        AuditLog.create_log(
            actor.organization, actor, 'UPDATE', 'CustomUser',
            f'Updated locations of {staff}', entity_id=staff.id,
            old_values={'locations': previous},
            new_values={'locations': list(wanted.keys())},
        )
        logger.info(
            "Staff locations updated",
            extra={'staff_id': str(staff.id), 'locations': len(wanted)},
        )
        return sorted(wanted.values(), key=lambda location: location.name)
