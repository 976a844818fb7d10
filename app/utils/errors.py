"""
Typed failures raised by the services.

Every failure carries a stable `kind` (for clients) and the HTTP
status code the API layer renders it with.
"""


class ContestHubError(Exception):
    """Base class for all expected service failures"""
    kind = "error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(ContestHubError):
    kind = "unauthenticated"
    status_code = 401
    default_message = "Unauthorized Access!"


class Forbidden(ContestHubError):
    kind = "forbidden"
    status_code = 403
    default_message = "Forbidden Access!"


class NotRegistered(Forbidden):
    """Participant has no paid registration for the contest"""
    kind = "not_registered"
    default_message = "You must register for this contest before submitting"


class NotFound(ContestHubError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class InvalidState(ContestHubError):
    kind = "invalid_state"
    status_code = 409
    default_message = "Operation not allowed in the current state"


class AlreadyProcessed(InvalidState):
    kind = "already_processed"
    default_message = "Contest has already been processed"


class AlreadyDeclared(InvalidState):
    kind = "already_declared"
    default_message = "A winner has already been declared for this contest"


class DeadlinePassed(InvalidState):
    kind = "deadline_passed"
    default_message = "The contest deadline has passed"


class Conflict(ContestHubError):
    kind = "conflict"
    status_code = 409
    default_message = "Resource already exists"


class AlreadyRequested(Conflict):
    kind = "already_requested"
    default_message = (
        "You have already requested to become a creator. "
        "Please wait patiently for the admin to review"
    )


class UpstreamFailure(ContestHubError):
    kind = "upstream_failure"
    status_code = 502
    default_message = "External provider call failed"


class InternalFailure(ContestHubError):
    kind = "internal_failure"
    status_code = 500
    default_message = "Internal error"
