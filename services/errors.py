"""
Error taxonomy for the handoff engine. Routes let these propagate; the app's
error handler turns them into JSON responses with the matching status code.
"""


class HandoffError(Exception):
    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"message": self.message}


class InvalidRequest(HandoffError):
    status_code = 400


class Unauthorized(HandoffError):
    status_code = 403


class NotFound(HandoffError):
    status_code = 404


class Conflict(HandoffError):
    """Another operator already holds the conversation."""
    status_code = 409


class UpstreamFailure(HandoffError):
    """Responder backend unreachable, erroring or timed out. Never leaves the orchestrator."""
    status_code = 502
