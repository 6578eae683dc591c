import json
import logging
from urllib.parse import parse_qs
from channels.generic.websocket import AsyncWebsocketConsumer
from channels.db import database_sync_to_async

logger = logging.getLogger(__name__)


class NotificationConsumer(AsyncWebsocketConsumer):

    @database_sync_to_async
    def get_user_from_token(self, token_key):
        """
        Authenticate user from JWT, imported only after Django setup.
        """
        from rest_framework_simplejwt.tokens import AccessToken
        from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
        from django.contrib.auth import get_user_model

        User = get_user_model()
        try:
            token = AccessToken(token_key)
            return User.objects.get(id=token["user_id"], is_active=True)
        except (InvalidToken, TokenError, KeyError, User.DoesNotExist):
            return None

    async def connect(self):
        query_params = parse_qs(self.scope["query_string"].decode())
        token = query_params.get("token", [None])[0]

        if not token:
            await self.close(code=4001)
            return

        self.user = await self.get_user_from_token(token)
        if not self.user:
            logger.warning("Rejected notification socket with invalid token")
            await self.close(code=4002)
            return

        self.group_name = f"user_{self.user.id}_notifications"
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # Server push only
        pass

    async def send_notification(self, event):
        await self.send(text_data=json.dumps({
            "type": "notification_message",
            "notification": event["notification"],
        }, default=str))
