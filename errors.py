"""
Error kinds raised by the identity and workflow layers.

Every failure is recoverable: the core raises before touching any state, and
the Flask layer turns the exception into a small JSON payload using `code`
and `status_code`.
"""


class WorkflowError(Exception):
    code = "workflow_error"
    status_code = 400
    default_message = "Request could not be completed."

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {"error": self.code, "message": self.message}


class MissingInput(WorkflowError):
    code = "missing_input"
    default_message = "Please fill in all required fields."


class InvalidInput(WorkflowError):
    code = "invalid_input"
    default_message = "Invalid value supplied."


class InvalidCredentials(WorkflowError):
    code = "invalid_credentials"
    status_code = 401
    default_message = "Invalid username or password"


class Unauthenticated(WorkflowError):
    code = "unauthenticated"
    status_code = 401
    default_message = "Please log in."


class Forbidden(WorkflowError):
    code = "forbidden"
    status_code = 403
    default_message = "Access denied. Insufficient privileges."


class NotFound(WorkflowError):
    code = "not_found"
    status_code = 404
    default_message = "No matching record found."
