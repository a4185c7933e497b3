"""
Error taxonomy shared by the service layer
"""


class PlannerError(Exception):
    """Base class for errors raised by the planner services"""


class InvalidArgument(PlannerError, ValueError):
    """A caller passed a malformed date or relative date"""


class MalformedInput(PlannerError):
    """Structural problem with an uploaded file (missing headers, empty sheet)"""


class PreconditionFailed(PlannerError):
    """The operation cannot start in the current state (e.g. no tables)"""


class NotFound(PlannerError):
    """A referenced wedding, guest, table or section does not exist"""

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class PersistenceFailure(PlannerError):
    """The storage layer failed while committing"""
