"""Error taxonomy for database bootstrap.

Fatal errors abort the bootstrap and reach the caller with their message
unchanged.  Non-fatal errors are raised by single primitives (dropping an
extension, reindexing) and are logged and swallowed at the step boundary.

Authoring problems in a declared schema are never errors; they are
collected in ``DatabaseSchema.warnings``.
"""


class ReconcilerError(Exception):
    """Base class for all bootstrap errors."""

    fatal: bool = True


class UnsupportedDatabaseVersionError(ReconcilerError):
    """Raised when the Postgres server version is outside the supported range."""

    pass


class ExtensionUnavailableError(ReconcilerError):
    """Raised when the vector extension is missing from the Postgres catalog."""

    pass


class ExtensionVersionOutOfRangeError(ReconcilerError):
    """Raised when the available or installed version is outside the supported range."""

    pass


class ExtensionVersionIsNightlyError(ReconcilerError):
    """Raised for the ``0.0.0`` placeholder version of a nightly build."""

    pass


class ExtensionDowngradeDetectedError(ReconcilerError):
    """Raised when the installed version is newer than the available one."""

    pass


class ExtensionCreateFailedError(ReconcilerError):
    """Raised when ``CREATE EXTENSION`` fails."""

    pass


class ExtensionUpdateFailedError(ReconcilerError):
    """Raised when ``ALTER EXTENSION ... UPDATE`` fails."""

    pass


class ExtensionDropFailedError(ReconcilerError):
    """Raised when an unused extension cannot be dropped."""

    fatal = False


class ReindexFailedError(ReconcilerError):
    """Raised when vector index checks or rebuilds fail."""

    fatal = False
