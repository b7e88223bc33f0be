from __future__ import annotations

import logging

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin import exceptions as firebase_exceptions

from app.core.exceptions import GatewayError
from app.services.gateways import NotificationGateway, NotificationResult

APP_NAME = "carwash-push"
TOKEN_URI = "https://oauth2.googleapis.com/token"


class FcmNotificationGateway(NotificationGateway):
    """Firebase Cloud Messaging multicast through the Admin SDK."""

    def __init__(self, app) -> None:
        self._app = app
        self._logger = logging.getLogger(__name__)

    @classmethod
    def from_service_account(cls, project_id: str, client_email: str, private_key: str,
                             timeout: float = 10.0) -> "FcmNotificationGateway":
        try:
            app = firebase_admin.get_app(APP_NAME)
        except ValueError:
            cred = credentials.Certificate({
                "type": "service_account",
                "project_id": project_id,
                "client_email": client_email,
                # env files carry the key with escaped newlines
                "private_key": private_key.replace("\\n", "\n"),
                "token_uri": TOKEN_URI,
            })
            app = firebase_admin.initialize_app(
                cred, {"projectId": project_id, "httpTimeout": timeout}, name=APP_NAME
            )
        return cls(app)

    def send(self, tokens, title, body, data=None) -> NotificationResult:
        tokens = [t for t in tokens if t]
        if not tokens:
            self._logger.info("No push tokens provided")
            return NotificationResult(success_count=0, failure_count=0)

        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            # FCM data values must be strings
            data={k: str(v) for k, v in (data or {}).items()},
        )

        try:
            response = messaging.send_each_for_multicast(message, app=self._app)
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise GatewayError(f"Push notification failed: {e}") from e

        self._logger.info("Push notification sent: %s/%s", response.success_count, len(tokens))
        if response.failure_count:
            failed = [
                {"token": token, "error": str(r.exception)}
                for token, r in zip(tokens, response.responses)
                if not r.success
            ]
            self._logger.warning("Some push notifications failed: %s", failed)
        return NotificationResult(success_count=response.success_count, failure_count=response.failure_count)
