from unittest.mock import AsyncMock, MagicMock, patch

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.tests.helpers import WorkforceFixtureMixin
from notifications.models import Notification
from notifications.services import NotificationService


class NotificationServiceTests(WorkforceFixtureMixin, APITestCase):

    def setUp(self):
        self.organization = self.create_organization()
        self.manager = self.create_user('manager@example.com', self.organization, role='MANAGER')
        self.admin = self.create_user('admin@example.com', self.organization, role='ADMIN')
        self.staff = self.create_user('ada@example.com', self.organization)
        self.channel_layer = MagicMock()
        self.channel_layer.group_send = AsyncMock()
        patcher = patch('notifications.services.get_channel_layer', return_value=self.channel_layer)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_push_happens_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            notification = NotificationService().notify(self.staff, 'SHIFT_ASSIGNED', 'New shift', 'Monday 09:00')
            self.channel_layer.group_send.assert_not_awaited()

        self.assertEqual(len(callbacks), 1)
        group, event = self.channel_layer.group_send.await_args.args
        self.assertEqual(group, f'user_{self.staff.id}_notifications')
        self.assertEqual(event['type'], 'send_notification')
        self.assertEqual(event['notification']['id'], str(notification.id))

    def test_push_failure_is_logged_not_raised(self):
        self.channel_layer.group_send.side_effect = RuntimeError('redis down')
        with self.assertLogs('notifications.services', level='ERROR'):
            with self.captureOnCommitCallbacks(execute=True):
                notification = NotificationService().notify(self.staff, 'OTHER', 'Hello', 'World')
        self.assertTrue(Notification.objects.filter(id=notification.id).exists())

    def test_notify_managers(self):
        self.create_user('old@example.com', self.organization, role='MANAGER', is_active=False)
        sent = NotificationService().notify_managers(self.organization, 'SHIFT_PICKUP', 'Picked up', 'Ada took Monday')
        self.assertCountEqual([n.recipient for n in sent], [self.manager, self.admin])

    def test_notify_managers_with_exclusion(self):
        sent = NotificationService().notify_managers(
            self.organization, 'OTHER', 'Title', 'Body', exclude=self.manager,
        )
        self.assertEqual([n.recipient for n in sent], [self.admin])

    def test_no_recipient(self):
        self.assertIsNone(NotificationService().notify(None, 'OTHER', 'Title', 'Body'))


class NotificationAPITests(WorkforceFixtureMixin, APITestCase):

    def setUp(self):
        self.organization = self.create_organization()
        self.staff = self.create_user('ada@example.com', self.organization)
        self.other = self.create_user('liam@example.com', self.organization)
        self.mine = Notification.objects.create(recipient=self.staff, title='One', message='First', notification_type='SHIFT_ASSIGNED')
        Notification.objects.create(recipient=self.staff, title='Two', message='Second')
        self.theirs = Notification.objects.create(recipient=self.other, title='Three', message='Third')
        self.client.force_authenticate(self.staff)

    def test_list_own_notifications(self):
        response = self.client.get(reverse('notifications:notification-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        response = self.client.get(reverse('notifications:notification-list'), {'type': 'SHIFT_ASSIGNED'})
        self.assertEqual(response.data['count'], 1)

    def test_mark_read(self):
        response = self.client.post(reverse('notifications:mark-notification-read', args=[self.mine.id]))
        self.assertTrue(response.data['is_read'])

        response = self.client.post(reverse('notifications:mark-notification-read', args=[self.theirs.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_all_read(self):
        response = self.client.post(reverse('notifications:mark-all-notifications-read'))
        self.assertEqual(response.data['updated'], 2)
        self.theirs.refresh_from_db()
        self.assertFalse(self.theirs.is_read)
