from django.test import TestCase

from core.exceptions import AuthorizationError, ConflictError, ValidationError
from core.tests.helpers import WorkforceFixtureMixin, london
from notifications.models import Notification
from scheduling.models import Shift, SwapRequest
from scheduling.services import ShiftService
from scheduling.swap_service import SwapRequestService


class SwapRequestTests(WorkforceFixtureMixin, TestCase):

    def setUp(self):
        self.organization = self.create_organization()
        self.manager = self.create_user('manager@example.com', self.organization, role='MANAGER')
        self.admin = self.create_user('admin@example.com', self.organization, role='ADMIN')
        self.staff = self.create_user('ada@example.com', self.organization)
        self.colleague = self.create_user('liam@example.com', self.organization)
        self.shift = Shift.objects.create(
            organization=self.organization, title='Day',
            start=london(2026, 1, 12, 9), end=london(2026, 1, 12, 17),
            assigned_to=self.staff, status='ASSIGNED',
        )

    def test_only_assignee_can_ask(self):
        with self.assertRaises(AuthorizationError):
            SwapRequestService.create_request(self.colleague, self.shift.id, 'DROP')

    def test_one_pending_request_per_shift(self):
        SwapRequestService.create_request(self.staff, self.shift.id, 'DROP')
        with self.assertRaises(ConflictError):
            SwapRequestService.create_request(self.staff, self.shift.id, 'SWAP', proposed_to=self.colleague)

    def test_managers_are_notified(self):
        SwapRequestService.create_request(self.staff, self.shift.id, 'DROP', message='Dentist')
        recipients = set(Notification.objects.filter(notification_type='DROP_REQUEST').values_list('recipient', flat=True))
        self.assertEqual(recipients, {self.manager.id, self.admin.id})

    def test_approved_drop_opens_the_shift(self):
        request = SwapRequestService.create_request(self.staff, self.shift.id, 'DROP')
        request = SwapRequestService.resolve_request(self.manager, request.id, approve=True)
        self.assertEqual(request.status, 'APPROVED')
        self.shift.refresh_from_db()
        self.assertIsNone(self.shift.assigned_to)
        self.assertEqual(self.shift.status, 'OPEN')
        self.assertTrue(Notification.objects.filter(recipient=self.staff, notification_type='REQUEST_APPROVED').exists())

    def test_drop_with_replacement_is_invalid(self):
        request = SwapRequestService.create_request(self.staff, self.shift.id, 'DROP')
        with self.assertRaises(ValidationError):
            SwapRequestService.resolve_request(self.manager, request.id, approve=True, replacement=self.colleague)

    def test_approved_swap_hands_over_to_proposed_staff(self):
        request = SwapRequestService.create_request(self.staff, self.shift.id, 'SWAP', proposed_to=self.colleague)
        self.assertTrue(Notification.objects.filter(recipient=self.colleague, notification_type='SWAP_REQUEST').exists())

        request = SwapRequestService.resolve_request(self.manager, request.id, approve=True)
        self.assertEqual(request.replacement, self.colleague)
        self.shift.refresh_from_db()
        self.assertEqual(self.shift.assigned_to, self.colleague)
        self.assertTrue(Notification.objects.filter(recipient=self.colleague, notification_type='SHIFT_ASSIGNED').exists())

    def test_swap_needs_a_replacement(self):
        request = SwapRequestService.create_request(self.staff, self.shift.id, 'SWAP')
        with self.assertRaises(ValidationError):
            SwapRequestService.resolve_request(self.manager, request.id, approve=True)
        request.refresh_from_db()
        self.assertEqual(request.status, 'PENDING')

        request = SwapRequestService.resolve_request(self.manager, request.id, approve=True, replacement=self.colleague)
        self.assertEqual(request.status, 'APPROVED')

    def test_swap_replacement_with_clashing_shift(self):
        Shift.objects.create(
            organization=self.organization, title='Overlap',
            start=london(2026, 1, 12, 12), end=london(2026, 1, 12, 20),
            assigned_to=self.colleague, status='ASSIGNED',
        )
        request = SwapRequestService.create_request(self.staff, self.shift.id, 'SWAP', proposed_to=self.colleague)
        with self.assertRaises(ConflictError):
            SwapRequestService.resolve_request(self.manager, request.id, approve=True)

    def test_second_resolution_conflicts(self):
        request = SwapRequestService.create_request(self.staff, self.shift.id, 'DROP')
        SwapRequestService.resolve_request(self.manager, request.id, approve=True)
        with self.assertRaises(ConflictError):
            SwapRequestService.resolve_request(self.admin, request.id, approve=False)

    def test_reassigned_shift_cannot_be_approved(self):
        request = SwapRequestService.create_request(self.staff, self.shift.id, 'DROP')
        Shift.objects.filter(id=self.shift.id).update(assigned_to=self.colleague)
        with self.assertRaises(ConflictError):
            SwapRequestService.resolve_request(self.manager, request.id, approve=True)

    def test_reassignment_cancels_previous_assignees_requests(self):
        request = SwapRequestService.create_request(self.staff, self.shift.id, 'SWAP', proposed_to=self.colleague)
        ShiftService.assign_shift(self.manager, self.shift.id, self.colleague)
        request.refresh_from_db()
        self.assertEqual(request.status, 'CANCELLED')
        self.assertEqual(request.resolved_by, self.manager)
        self.assertTrue(
            Notification.objects.filter(recipient=self.staff, notification_type='REQUEST_CANCELLED').exists()
        )
        # The new assignee can ask straight away
        SwapRequestService.create_request(self.colleague, self.shift.id, 'DROP')

    def test_rejection_keeps_assignment(self):
        request = SwapRequestService.create_request(self.staff, self.shift.id, 'DROP')
        request = SwapRequestService.resolve_request(self.manager, request.id, approve=False)
        self.assertEqual(request.status, 'REJECTED')
        self.shift.refresh_from_db()
        self.assertEqual(self.shift.assigned_to, self.staff)

    def test_cancel(self):
        request = SwapRequestService.create_request(self.staff, self.shift.id, 'DROP')
        with self.assertRaises(AuthorizationError):
            SwapRequestService.cancel_request(self.colleague, request.id)
        request = SwapRequestService.cancel_request(self.staff, request.id)
        self.assertEqual(request.status, 'CANCELLED')
        with self.assertRaises(ConflictError):
            SwapRequestService.resolve_request(self.manager, request.id, approve=True)
        # A new request is allowed once the old one is no longer pending
        SwapRequestService.create_request(self.staff, self.shift.id, 'DROP')
        self.assertEqual(SwapRequest.objects.filter(shift=self.shift).count(), 2)

    def test_visibility(self):
        SwapRequestService.create_request(self.staff, self.shift.id, 'SWAP', proposed_to=self.colleague)
        outsider = self.create_user('mei@example.com', self.organization)
        self.assertEqual(SwapRequestService.visible_requests(self.colleague).count(), 1)
        self.assertEqual(SwapRequestService.visible_requests(outsider).count(), 0)
        self.assertEqual(SwapRequestService.visible_requests(self.manager).count(), 1)
