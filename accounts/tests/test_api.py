from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import AuditLog, LocationMembership
from core.tests.helpers import WorkforceFixtureMixin


class AccountsAPITests(WorkforceFixtureMixin, APITestCase):

    def setUp(self):
        self.organization = self.create_organization()
        self.admin = self.create_user('admin@example.com', self.organization, role='ADMIN')
        self.manager = self.create_user('manager@example.com', self.organization, role='MANAGER')
        self.staff = self.create_user('ada@example.com', self.organization)

    def test_token_login(self):
        response = self.client.post(reverse('token_obtain_pair'), {
            'email': 'ada@example.com', 'password': 'Pass12345!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        self.assertIn('access', response.data)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        response = self.client.get(reverse('me'))
        self.assertEqual(response.data['email'], 'ada@example.com')
        self.assertEqual(response.data['organization_name'], 'Northside Group')

    def test_organization_settings_read(self):
        self.client.force_authenticate(self.staff)
        response = self.client.get(reverse('organization_settings'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['break_rules']), 3)

    def test_only_admins_change_settings(self):
        self.client.force_authenticate(self.manager)
        response = self.client.patch(reverse('organization_settings'), {'late_grace_minutes': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.patch(reverse('organization_settings'), {
            'late_grace_minutes': 5,
            'break_rules': [{'min_hours': 6, 'break_minutes': 20}, {'min_hours': 4.5, 'break_minutes': 10}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        self.organization.refresh_from_db()
        self.assertEqual(self.organization.late_grace_minutes, 5)
        self.assertEqual(self.organization.break_rules[0], {'min_hours': 4.5, 'break_minutes': 10})

    def test_invalid_break_rules(self):
        self.client.force_authenticate(self.admin)
        response = self.client.patch(reverse('organization_settings'), {
            'break_rules': [{'min_hours': -1, 'break_minutes': 20}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_staff_list_for_managers(self):
        self.client.force_authenticate(self.staff)
        self.assertEqual(self.client.get(reverse('staff_list')).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.manager)
        response = self.client.get(reverse('staff_list'), {'role': 'EMPLOYEE'})
        self.assertEqual([u['email'] for u in response.data], ['ada@example.com'])

    def test_salaried_staff_need_salary(self):
        self.client.force_authenticate(self.manager)
        response = self.client.patch(reverse('staff_detail', args=[self.staff.id]), {'pay_type': 'MONTHLY'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(
            reverse('staff_detail', args=[self.staff.id]),
            {'pay_type': 'MONTHLY', 'monthly_salary': '2400.00'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)

    def test_audit_log(self):
        AuditLog.create_log(self.organization, self.manager, 'UPDATE', 'Shift', 'Moved shift', entity_id='abc')
        self.client.force_authenticate(self.manager)
        response = self.client.get(reverse('audit_logs'), {'entity_type': 'Shift'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['description'], 'Moved shift')
        self.assertEqual(response.data[0]['user_email'], 'manager@example.com')


class StaffLocationsAPITests(WorkforceFixtureMixin, APITestCase):

    def setUp(self):
        self.organization = self.create_organization()
        self.kings_cross = self.create_location(self.organization, name='Kings Cross')
        self.shoreditch = self.create_location(self.organization, name='Shoreditch')
        self.admin = self.create_user('admin@example.com', self.organization, role='ADMIN')
        self.manager = self.create_user('manager@example.com', self.organization, role='MANAGER')
        self.staff = self.create_user('ada@example.com', self.organization)
        self.url = reverse('staff_locations', args=[self.staff.id])

    def test_admin_replaces_locations(self):
        LocationMembership.objects.create(staff=self.staff, location=self.kings_cross)
        self.client.force_authenticate(self.admin)
        response = self.client.put(self.url, {'location_ids': [str(self.shoreditch.id)]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        self.assertEqual([loc['name'] for loc in response.data], ['Shoreditch'])
        self.assertEqual(
            list(self.staff.location_memberships.values_list('location_id', flat=True)), [self.shoreditch.id]
        )
        self.assertTrue(AuditLog.objects.filter(entity_type='CustomUser', entity_id=str(self.staff.id)).exists())

        response = self.client.put(self.url, {'location_ids': []}, format='json')
        self.assertEqual(response.data, [])
        self.assertFalse(self.staff.location_memberships.exists())

    def test_managers_read_but_cannot_change(self):
        LocationMembership.objects.create(staff=self.staff, location=self.kings_cross)
        self.client.force_authenticate(self.manager)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([loc['name'] for loc in response.data], ['Kings Cross'])

        response = self.client.put(self.url, {'location_ids': [str(self.shoreditch.id)]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_employees_cannot_read(self):
        self.client.force_authenticate(self.staff)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_403_FORBIDDEN)

    def test_foreign_location_rejected(self):
        elsewhere = self.create_location(self.create_organization(name='Elsewhere'), name='Far')
        self.client.force_authenticate(self.admin)
        response = self.client.put(self.url, {'location_ids': [str(elsewhere.id)]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_foreign_staff_not_found(self):
        outsider = self.create_user('liam@elsewhere.com', self.create_organization(name='Elsewhere'))
        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse('staff_locations', args=[outsider.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
