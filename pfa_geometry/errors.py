"""
Status-code exceptions raised by the geometry helper and its collaborators.
"""


class GeometryError(Exception):
    """Base class for all geometry failures"""

    status_code = "FAILURE"

    def __init__(self, message=None):
        super().__init__(message or self.status_code)


class NotInitializedError(GeometryError, RuntimeError):
    """Query made before the relevant geometry was initialized"""

    status_code = "NOT_INITIALIZED"


class AlreadyInitializedError(GeometryError, RuntimeError):
    """Attempt to initialize geometry state a second time"""

    status_code = "ALREADY_INITIALIZED"


class InvalidParameterError(GeometryError, ValueError):
    """Malformed geometry, gap shape or calculator"""

    status_code = "INVALID_PARAMETER"


class NotFoundError(GeometryError, KeyError):
    """Unregistered hit type, unknown sub detector or unresolvable position"""

    status_code = "NOT_FOUND"

    def __str__(self):
        # KeyError would otherwise repr() the message
        return str(self.args[0]) if self.args else self.status_code
