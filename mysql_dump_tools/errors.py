from __future__ import annotations


class DumpError(Exception):
    """Base class for failures that abort a dump before the dump utility reports anything."""


class ConnectionNotFoundError(DumpError):
    """The configured connection ID is not registered."""


class QueryError(DumpError):
    """Looking up the database name on the connection failed."""


class FilesystemError(DumpError):
    """The dump directory could not be created."""


class ProcessLaunchError(DumpError):
    """The dump binary is missing or could not be spawned."""
