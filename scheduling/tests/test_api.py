from datetime import time

from django.db import connection
from django.test.utils import CaptureQueriesContext
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import LocationMembership
from core.tests.helpers import WorkforceFixtureMixin, london
from scheduling.models import Availability, Shift, ShiftCategory


class ShiftAPITests(WorkforceFixtureMixin, APITestCase):

    def setUp(self):
        self.organization = self.create_organization()
        self.site = self.create_location(self.organization)
        self.manager = self.create_user('manager@example.com', self.organization, role='MANAGER')
        self.staff = self.create_user('ada@example.com', self.organization)
        self.floor = ShiftCategory.objects.create(organization=self.organization, name='Floor')
        self.kitchen = ShiftCategory.objects.create(organization=self.organization, name='Kitchen')

    def create_shift(self, **extra):
        fields = {'start': london(2026, 1, 12, 9), 'end': london(2026, 1, 12, 17)}
        fields.update(extra)
        return Shift.objects.create(
            organization=self.organization, title='Day', **fields
        )

    def test_manager_creates_shift(self):
        self.client.force_authenticate(self.manager)
        response = self.client.post(reverse('shift-list'), {
            'title': 'Open',
            'start': '2026-01-12T09:00:00Z',
            'end': '2026-01-12T17:00:00Z',
            'location': str(self.site.id),
            'assigned_to': str(self.staff.id),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        self.assertEqual(response.data['status'], 'ASSIGNED')
        self.assertEqual(response.data['scheduled_break_minutes'], 60)
        self.assertEqual(response.data['location_name'], 'Kings Cross')

    def test_create_requires_window(self):
        self.client.force_authenticate(self.manager)
        response = self.client.post(reverse('shift-list'), {'title': 'Open'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_employee_cannot_create(self):
        self.client.force_authenticate(self.staff)
        response = self.client.post(reverse('shift-list'), {
            'start': '2026-01-12T09:00:00Z', 'end': '2026-01-12T17:00:00Z',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_hides_archived_and_filters_open(self):
        self.create_shift()
        self.create_shift(assigned_to=self.staff, status='ASSIGNED')
        self.create_shift(is_archived=True)
        self.client.force_authenticate(self.staff)

        response = self.client.get(reverse('shift-list'))
        self.assertEqual(len(response.data), 2)
        response = self.client.get(reverse('shift-list'), {'is_open': 'true'})
        self.assertEqual(len(response.data), 1)

    def test_employee_picks_up_open_shift(self):
        shift = self.create_shift()
        self.client.force_authenticate(self.staff)
        response = self.client.post(reverse('shift-pickup', args=[shift.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        self.assertEqual(response.data['assigned_to'], self.staff.id)

        response = self.client.post(reverse('shift-pickup', args=[shift.id]))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_replace_segments(self):
        shift = self.create_shift()
        self.client.force_authenticate(self.manager)
        url = reverse('shift-segments', args=[shift.id])

        response = self.client.put(url, {'segments': [
            {'start': '2026-01-12T09:00:00Z', 'end': '2026-01-12T13:00:00Z', 'category': str(self.floor.id)},
            {'start': '2026-01-12T12:00:00Z', 'end': '2026-01-12T17:00:00Z', 'category': str(self.kitchen.id)},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.put(url, {'segments': [
            {'start': '2026-01-12T09:00:00Z', 'end': '2026-01-12T13:00:00Z', 'category': str(self.floor.id)},
            {'start': '2026-01-12T13:00:00Z', 'end': '2026-01-12T17:00:00Z', 'category': str(self.kitchen.id)},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        self.assertEqual([s['category_name'] for s in response.data['segments']], ['Floor', 'Kitchen'])

    def test_destroy(self):
        shift = self.create_shift()
        self.client.force_authenticate(self.manager)
        response = self.client.delete(reverse('shift-detail', args=[shift.id]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_other_organization_shift_is_invisible(self):
        other_org = self.create_organization(name='Elsewhere')
        foreign = Shift.objects.create(
            organization=other_org, title='Theirs', start=london(2026, 1, 12, 9), end=london(2026, 1, 12, 17),
        )
        self.client.force_authenticate(self.manager)
        response = self.client.get(reverse('shift-detail', args=[foreign.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_staff_see_shifts_at_their_locations(self):
        shoreditch = self.create_location(self.organization, name='Shoreditch')
        LocationMembership.objects.create(staff=self.staff, location=self.site)
        here = self.create_shift(location=self.site)
        self.create_shift(location=shoreditch)
        own = self.create_shift(location=shoreditch, assigned_to=self.staff, status='ASSIGNED')

        self.client.force_authenticate(self.staff)
        response = self.client.get(reverse('shift-list'))
        self.assertEqual({row['id'] for row in response.data}, {str(here.id), str(own.id)})

        self.client.force_authenticate(self.manager)
        response = self.client.get(reverse('shift-list'))
        self.assertEqual(len(response.data), 3)

    def test_staff_without_locations_see_every_shift(self):
        shoreditch = self.create_location(self.organization, name='Shoreditch')
        self.create_shift(location=self.site)
        self.create_shift(location=shoreditch)
        self.client.force_authenticate(self.staff)
        response = self.client.get(reverse('shift-list'))
        self.assertEqual(len(response.data), 2)

    def test_listing_does_not_query_per_shift(self):
        colleague = self.create_user('liam@example.com', self.organization)
        for person in (self.staff, colleague):
            Availability.objects.create(staff=person, day_of_week=0, start_time=time(8), end_time=time(18))
        self.client.force_authenticate(self.manager)

        self.create_shift(assigned_to=self.staff, status='ASSIGNED')
        with CaptureQueriesContext(connection) as few:
            self.client.get(reverse('shift-list'))

        self.create_shift(assigned_to=colleague, status='ASSIGNED')
        self.create_shift(start=london(2026, 1, 13, 9), end=london(2026, 1, 13, 17), assigned_to=self.staff)
        with CaptureQueriesContext(connection) as many:
            response = self.client.get(reverse('shift-list'))

        self.assertEqual(len(response.data), 3)
        self.assertTrue(all(row['has_availability'] for row in response.data if row['start'].startswith('2026-01-12')))
        self.assertEqual(len(many), len(few))


class SwapRequestAPITests(WorkforceFixtureMixin, APITestCase):

    def setUp(self):
        self.organization = self.create_organization()
        self.manager = self.create_user('manager@example.com', self.organization, role='MANAGER')
        self.staff = self.create_user('ada@example.com', self.organization)
        self.colleague = self.create_user('liam@example.com', self.organization)
        self.shift = Shift.objects.create(
            organization=self.organization, title='Day',
            start=london(2026, 1, 12, 9), end=london(2026, 1, 12, 17),
            assigned_to=self.staff, status='ASSIGNED',
        )

    def test_swap_flow(self):
        self.client.force_authenticate(self.staff)
        response = self.client.post(reverse('swap-request-list'), {
            'shift': str(self.shift.id), 'request_type': 'SWAP', 'proposed_to': str(self.colleague.id),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        request_id = response.data['id']

        response = self.client.post(reverse('swap-request-resolve', args=[request_id]), {'action': 'approve'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.manager)
        response = self.client.post(reverse('swap-request-resolve', args=[request_id]), {'action': 'approve'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        self.assertEqual(response.data['status'], 'APPROVED')

        response = self.client.post(reverse('swap-request-resolve', args=[request_id]), {'action': 'reject'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        self.shift.refresh_from_db()
        self.assertEqual(self.shift.assigned_to, self.colleague)

    def test_cancel_own_request(self):
        self.client.force_authenticate(self.staff)
        response = self.client.post(reverse('swap-request-list'), {
            'shift': str(self.shift.id), 'request_type': 'DROP',
        }, format='json')
        response = self.client.post(reverse('swap-request-cancel', args=[response.data['id']]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'CANCELLED')
