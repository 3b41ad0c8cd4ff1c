"""
Typed business-rule errors.

Services raise these; the handlers registered in app.main translate them into
the ``{"success": false, "message": ...}`` envelope with the matching status.
"""

class QuizAppError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class ValidationError(QuizAppError):
    """Missing or malformed input"""
    status_code = 400

class AuthorizationError(QuizAppError):
    """Wrong role, wrong owner, or a bad/expired access code"""
    status_code = 403

class NotFoundError(QuizAppError):
    status_code = 404

class ConflictError(QuizAppError):
    """Duplicate submission, self-attempt, or a write that lost a race"""
    status_code = 409

class UpstreamError(QuizAppError):
    """An external dependency (e.g. the trivia source) failed"""
    status_code = 500
    public_message = "Something went wrong, please try again later"
