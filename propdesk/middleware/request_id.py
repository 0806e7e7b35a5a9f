"""Correlation middleware: every request gets an X-Request-ID bound to its log lines."""
from uuid import uuid4

from propdesk.utils.logging import current_request_id, current_user_id


class RequestIdMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = dict(scope.get("headers", [])).get(b"x-request-id", b"").decode()
        request_id = incoming[:64] or uuid4().hex[:12]
        request_token = current_request_id.set(request_id)
        user_token = current_user_id.set("anonymous")

        async def send_with_request_id(message):
            if message["type"] == "http.response.start":
                message["headers"] = [
                    *message.get("headers", []),
                    (b"x-request-id", request_id.encode()),
                ]
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            current_user_id.reset(user_token)
            current_request_id.reset(request_token)
