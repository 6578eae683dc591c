from unittest.mock import patch

from django.test import SimpleTestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.tests.helpers import WorkforceFixtureMixin, london
from timeclock.models import TimeEntry
from timeclock.tasks import flag_missed_clock_outs


class ClockingAPITests(WorkforceFixtureMixin, APITestCase):

    def setUp(self):
        self.organization = self.create_organization()
        self.manager = self.create_user('manager@example.com', self.organization, role='MANAGER')
        self.staff = self.create_user('ada@example.com', self.organization)
        self.client.force_authenticate(self.staff)

    def test_clock_in_break_and_out(self):
        response = self.client.post(reverse('clock-in'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        self.assertEqual(response.data['state'], 'ACTIVE')

        response = self.client.post(reverse('clock-in'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'conflict')

        response = self.client.post(reverse('break'), {'action': 'start'}, format='json')
        self.assertEqual(response.data['state'], 'ON_BREAK')

        response = self.client.post(reverse('clock-out'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(reverse('current-session'))
        self.assertTrue(response.data['is_on_break'])

        self.client.post(reverse('break'), {'action': 'end'}, format='json')
        response = self.client.post(reverse('clock-out'), {'notes': 'Closed till'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        self.assertEqual(response.data['state'], 'CLOSED')
        self.assertIn('warning', response.data)

        response = self.client.get(reverse('current-session'))
        self.assertFalse(response.data['is_clocked_in'])

    def test_clock_in_needs_both_coordinates(self):
        response = self.client.post(reverse('clock-in'), {'latitude': 51.5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_verify_location_without_target(self):
        response = self.client.post(reverse('verify-location'), {'latitude': 51.5, 'longitude': -0.1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['within_geofence'])
        self.assertIsNone(response.data['distance_metres'])

    def test_staff_only_see_their_own_entries(self):
        TimeEntry.objects.create(staff=self.staff, clock_in=london(2026, 1, 12, 9), clock_out=london(2026, 1, 12, 17), state='CLOSED')
        TimeEntry.objects.create(staff=self.manager, clock_in=london(2026, 1, 12, 9), clock_out=london(2026, 1, 12, 17), state='CLOSED')

        response = self.client.get(reverse('time-entry-list'))
        self.assertEqual(len(response.data), 1)

        self.client.force_authenticate(self.manager)
        response = self.client.get(reverse('time-entry-list'))
        self.assertEqual(len(response.data), 2)

    def test_date_filters_use_local_days(self):
        # 00:30 on 15 July in London is still 14 July in UTC
        late = TimeEntry.objects.create(staff=self.staff, clock_in=london(2026, 7, 14, 23, 30), state='CLOSED',
                                        clock_out=london(2026, 7, 15, 3))
        early = TimeEntry.objects.create(staff=self.staff, clock_in=london(2026, 7, 15, 0, 30), state='CLOSED',
                                         clock_out=london(2026, 7, 15, 4))

        response = self.client.get(reverse('time-entry-list'), {'date_from': '2026-07-15', 'date_to': '2026-07-15'})
        self.assertEqual([row['id'] for row in response.data], [str(early.id)])

        response = self.client.get(reverse('time-entry-list'), {'date_to': '2026-07-14'})
        self.assertEqual([row['id'] for row in response.data], [str(late.id)])


class TimeEntryReviewAPITests(WorkforceFixtureMixin, APITestCase):

    def setUp(self):
        self.organization = self.create_organization()
        self.manager = self.create_user('manager@example.com', self.organization, role='MANAGER')
        self.staff = self.create_user('ada@example.com', self.organization)
        self.entry = TimeEntry.objects.create(
            staff=self.staff, clock_in=london(2026, 1, 12, 9), clock_out=london(2026, 1, 12, 17),
            state='CLOSED', total_break_minutes=60,
        )

    def test_employee_cannot_approve(self):
        self.client.force_authenticate(self.staff)
        response = self.client.post(reverse('time-entry-approve', args=[self.entry.id]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_manager_approves_and_rejects(self):
        self.client.force_authenticate(self.manager)
        response = self.client.post(reverse('time-entry-approve', args=[self.entry.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'APPROVED')

        response = self.client.post(reverse('time-entry-reject', args=[self.entry.id]), {'reason': 'Duplicate'}, format='json')
        self.assertEqual(response.data['status'], 'REJECTED')

    def test_employee_cannot_edit(self):
        self.client.force_authenticate(self.staff)
        response = self.client.patch(
            reverse('time-entry-detail', args=[self.entry.id]), {'total_break_minutes': 0}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_manager_edit(self):
        self.client.force_authenticate(self.manager)
        response = self.client.patch(
            reverse('time-entry-detail', args=[self.entry.id]), {'total_break_minutes': 30}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        self.assertEqual(response.data['total_break_minutes'], 30)
        self.assertEqual(response.data['net_hours'], 7.5)

    def test_other_staff_cannot_view_entry(self):
        other = self.create_user('liam@example.com', self.organization)
        self.client.force_authenticate(other)
        response = self.client.get(reverse('time-entry-detail', args=[self.entry.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_manual_entry(self):
        self.client.force_authenticate(self.manager)
        response = self.client.post(reverse('time-entry-manual'), {
            'staff': str(self.staff.id),
            'clock_in': '2026-01-13T09:00:00Z',
            'clock_out': '2026-01-13T13:00:00Z',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        self.assertTrue(response.data['is_manual'])
        self.assertEqual(response.data['total_break_minutes'], 15)


class MissedClockOutTaskTests(SimpleTestCase):

    @patch('timeclock.tasks.TimeEntryService.flag_missed_clock_outs', return_value=3)
    def test_task_delegates_to_service(self, mock_flag):
        self.assertEqual(flag_missed_clock_outs(), 3)
        mock_flag.assert_called_once_with()
