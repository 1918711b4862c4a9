"""Error taxonomy shared by the stores, the HTTP API and the realtime gateway.

Services raise these; ``pairchat.main`` maps them to JSON responses and the
gateway turns them into ``error`` events or error acknowledgments.
"""
from typing import Optional


class ChatError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, debug: Optional[str] = None):
        self.message = message or self.default_message
        self.debug = debug
        super().__init__(self.message)

    def to_dict(self, include_debug: bool = False) -> dict:
        body = {"message": self.message}
        if include_debug and self.debug:
            body["debug"] = self.debug
        return body


class ValidationError(ChatError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(ChatError):
    status_code = 401
    default_message = "Not authenticated"


class AuthorizationError(ChatError):
    status_code = 403
    default_message = "Not allowed"


class NotFoundError(ChatError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ChatError):
    status_code = 409
    default_message = "Already exists"


class StoreError(ChatError):
    status_code = 500
    default_message = "Storage failure"


class InternalError(ChatError):
    status_code = 500
    default_message = "Internal server error"
