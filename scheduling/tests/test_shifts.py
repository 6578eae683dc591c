from datetime import time

from django.test import TestCase

from accounts.models import AuditLog
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.tests.helpers import WorkforceFixtureMixin, london
from notifications.models import Notification
from scheduling.models import Availability, Shift, ShiftCategory, ShiftTemplate
from scheduling.services import AvailabilityService, ShiftService, validate_segments
from timeclock.models import TimeEntry


class ValidateSegmentsTests(TestCase):

    def setUp(self):
        self.start = london(2026, 1, 12, 9)
        self.end = london(2026, 1, 12, 17)

    def segment(self, start_hour, end_hour, category='floor'):
        return {'start': london(2026, 1, 12, start_hour), 'end': london(2026, 1, 12, end_hour), 'category': category}

    def test_touching_segments_are_sorted(self):
        ordered = validate_segments(self.start, self.end, [self.segment(13, 17), self.segment(9, 13)])
        self.assertEqual([s['start'].hour for s in ordered], [9, 13])

    def test_overlap_rejected(self):
        with self.assertRaises(ValidationError):
            validate_segments(self.start, self.end, [self.segment(9, 13), self.segment(12, 17)])

    def test_outside_shift_rejected(self):
        with self.assertRaises(ValidationError):
            validate_segments(self.start, self.end, [self.segment(8, 10)])

    def test_empty_segment_rejected(self):
        with self.assertRaises(ValidationError):
            validate_segments(self.start, self.end, [self.segment(10, 10)])

    def test_category_required(self):
        with self.assertRaises(ValidationError):
            validate_segments(self.start, self.end, [self.segment(9, 10, category=None)])


class ShiftServiceTests(WorkforceFixtureMixin, TestCase):

    def setUp(self):
        self.organization = self.create_organization()
        self.site = self.create_location(self.organization)
        self.manager = self.create_user('manager@example.com', self.organization, role='MANAGER')
        self.staff = self.create_user('ada@example.com', self.organization)
        self.floor = ShiftCategory.objects.create(organization=self.organization, name='Floor')
        self.kitchen = ShiftCategory.objects.create(organization=self.organization, name='Kitchen')

    def create(self, start, end, **extra):
        return ShiftService.create_shift(self.manager, {'title': 'Day', 'start': start, 'end': end, **extra})

    def test_create_assigned_shift(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17), assigned_to=self.staff, location=self.site)
        self.assertEqual(shift.status, 'ASSIGNED')
        self.assertEqual(shift.scheduled_break_minutes, 60)
        self.assertAlmostEqual(shift.scheduled_hours, 7.0)
        self.assertTrue(Notification.objects.filter(recipient=self.staff, notification_type='SHIFT_ASSIGNED').exists())
        self.assertTrue(AuditLog.objects.filter(entity_id=str(shift.id), action_type='CREATE').exists())

    def test_overnight_shift_rolls_forward(self):
        shift = self.create(london(2026, 1, 12, 22), london(2026, 1, 12, 6))
        self.assertEqual(shift.end, london(2026, 1, 13, 6))
        self.assertTrue(shift.is_open)
        self.assertEqual(shift.status, 'OPEN')

    def test_explicit_break_is_kept(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17), scheduled_break_minutes=45)
        self.assertEqual(shift.scheduled_break_minutes, 45)

    def test_overlapping_assignment_conflicts(self):
        self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17), assigned_to=self.staff)
        with self.assertRaises(ConflictError):
            self.create(london(2026, 1, 12, 16), london(2026, 1, 12, 20), assigned_to=self.staff)
        # Back to back is fine
        self.create(london(2026, 1, 12, 17), london(2026, 1, 12, 20), assigned_to=self.staff)

    def test_staff_from_other_organization(self):
        outsider = self.create_user('liam@elsewhere.com', self.create_organization(name='Elsewhere'))
        with self.assertRaises(NotFoundError):
            self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17), assigned_to=outsider)

    def test_assign_and_open(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17))
        shift = ShiftService.assign_shift(self.manager, shift.id, self.staff)
        self.assertEqual(shift.assigned_to, self.staff)
        shift = ShiftService.assign_shift(self.manager, shift.id, None)
        self.assertIsNone(shift.assigned_to)
        self.assertEqual(shift.status, 'OPEN')

    def test_pickup_first_claimant_wins(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17))
        other = self.create_user('liam@example.com', self.organization)

        ShiftService.pickup_shift(self.staff, shift.id)
        with self.assertRaises(ConflictError):
            ShiftService.pickup_shift(other, shift.id)
        shift.refresh_from_db()
        self.assertEqual(shift.assigned_to, self.staff)
        self.assertTrue(Notification.objects.filter(recipient=self.manager, notification_type='SHIFT_PICKUP').exists())

    def test_confirm_requires_assignee(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17))
        with self.assertRaises(ValidationError):
            ShiftService.update_shift(self.manager, shift.id, {'status': 'CONFIRMED'})

    def test_update_keeps_segments_inside_window(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17))
        ShiftService.replace_segments(self.manager, shift.id, [
            {'start': london(2026, 1, 12, 9), 'end': london(2026, 1, 12, 13), 'category': self.floor},
        ])
        with self.assertRaises(ValidationError):
            ShiftService.update_shift(self.manager, shift.id, {'start': london(2026, 1, 12, 10)})

    def test_moving_start_past_end_is_refused(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17))
        with self.assertRaises(ValidationError):
            ShiftService.update_shift(self.manager, shift.id, {'start': london(2026, 1, 12, 18)})
        shift.refresh_from_db()
        self.assertEqual(shift.end, london(2026, 1, 12, 17))

    def test_update_with_both_times_rolls_overnight(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17))
        shift = ShiftService.update_shift(
            self.manager, shift.id, {'start': london(2026, 1, 12, 22), 'end': london(2026, 1, 12, 4)},
        )
        self.assertEqual(shift.end, london(2026, 1, 13, 4))

    def test_shortened_shift_gets_new_break(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17))
        self.assertEqual(shift.scheduled_break_minutes, 60)
        shift = ShiftService.update_shift(self.manager, shift.id, {'end': london(2026, 1, 12, 14)})
        self.assertEqual(shift.scheduled_break_minutes, 15)

    def test_explicit_break_survives_window_change(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17))
        shift = ShiftService.update_shift(
            self.manager, shift.id, {'end': london(2026, 1, 12, 14), 'scheduled_break_minutes': 40},
        )
        self.assertEqual(shift.scheduled_break_minutes, 40)

    def test_replace_segments(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17), category=self.floor)
        self.assertEqual([s.category for s in shift.wage_segments()], [self.floor])

        ShiftService.replace_segments(self.manager, shift.id, [
            {'start': london(2026, 1, 12, 13), 'end': london(2026, 1, 12, 17), 'category': str(self.kitchen.id)},
            {'start': london(2026, 1, 12, 9), 'end': london(2026, 1, 12, 13), 'category': self.floor},
        ])
        segments = shift.wage_segments()
        self.assertEqual([s.category for s in segments], [self.floor, self.kitchen])

        ShiftService.replace_segments(self.manager, shift.id, [])
        self.assertEqual(shift.segments.count(), 0)

    def test_segment_category_from_other_organization(self):
        other_org = self.create_organization(name='Elsewhere')
        foreign = ShiftCategory.objects.create(organization=other_org, name='Bar')
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17))
        with self.assertRaises(ValidationError):
            ShiftService.replace_segments(self.manager, shift.id, [
                {'start': london(2026, 1, 12, 9), 'end': london(2026, 1, 12, 13), 'category': foreign},
            ])

    def test_delete_without_time_entries(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17))
        self.assertEqual(ShiftService.delete_shift(self.manager, shift.id), 'deleted')
        self.assertFalse(Shift.objects.filter(id=shift.id).exists())

    def test_delete_with_time_entries_archives(self):
        shift = self.create(london(2026, 1, 12, 9), london(2026, 1, 12, 17), assigned_to=self.staff)
        TimeEntry.objects.create(staff=self.staff, shift=shift, clock_in=london(2026, 1, 12, 9))
        self.assertEqual(ShiftService.delete_shift(self.manager, shift.id), 'archived')
        shift.refresh_from_db()
        self.assertTrue(shift.is_archived)
        with self.assertRaises(ConflictError):
            ShiftService.update_shift(self.manager, shift.id, {'title': 'Renamed'})

    def test_create_from_template(self):
        template = ShiftTemplate.objects.create(
            organization=self.organization, name='Late', start_time=time(18), end_time=time(2),
            location=self.site, category=self.floor,
        )
        shift = ShiftService.create_from_template(self.manager, template, london(2026, 1, 12).date(), assigned_to=self.staff)
        self.assertEqual(shift.start, london(2026, 1, 12, 18))
        self.assertEqual(shift.end, london(2026, 1, 13, 2))
        self.assertEqual(shift.location, self.site)


class AvailabilityTests(WorkforceFixtureMixin, TestCase):

    def setUp(self):
        self.organization = self.create_organization()
        self.staff = self.create_user('ada@example.com', self.organization)

    def test_recurring_slot_covers_shift(self):
        # 12 January 2026 is a Monday
        Availability.objects.create(staff=self.staff, is_recurring=True, day_of_week=0, start_time=time(8), end_time=time(18))
        self.assertTrue(AvailabilityService.has_stated_availability(self.staff, london(2026, 1, 12, 9), london(2026, 1, 12, 17)))
        self.assertFalse(AvailabilityService.has_stated_availability(self.staff, london(2026, 1, 13, 9), london(2026, 1, 13, 17)))

    def test_one_off_slot(self):
        Availability.objects.create(
            staff=self.staff, is_recurring=False, specific_date=london(2026, 1, 14).date(),
            start_time=time(12), end_time=time(16),
        )
        self.assertFalse(AvailabilityService.has_stated_availability(self.staff, london(2026, 1, 14, 9), london(2026, 1, 14, 17)))
        self.assertTrue(AvailabilityService.has_stated_availability(self.staff, london(2026, 1, 14, 12), london(2026, 1, 14, 16)))
