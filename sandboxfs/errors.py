# sandboxfs/errors.py
"""
Failure taxonomy for filesystem tools.

Every error is terminal for the request that raised it. The builtin base
classes let callers keep catching PermissionError / FileNotFoundError / ...
"""


class FilesystemToolError(Exception):
    """Base class for all tool failures surfaced to the caller."""


class ValidationError(FilesystemToolError, ValueError):
    """Malformed or missing arguments."""


class PathRejected(FilesystemToolError, PermissionError):
    """The sandbox refused a path."""


class OutsideSandbox(PathRejected):
    pass


class UnresolvableSymlink(PathRejected):
    pass


class AncestorNotFound(PathRejected):
    pass


class PermissionDenied(FilesystemToolError, PermissionError):
    """A capability flag required by the operation is not granted."""


class NotFound(FilesystemToolError, FileNotFoundError):
    pass


class AlreadyExists(FilesystemToolError, FileExistsError):
    pass


class SizeLimitExceeded(FilesystemToolError, ValueError):
    pass


class MatchFailure(FilesystemToolError, ValueError):
    """An edit's old text could not be located, exactly or fuzzily."""


class IOFailure(FilesystemToolError, OSError):
    pass
