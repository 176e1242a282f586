"""
Error taxonomy for the mock SFTP server.

Every namespace and handle failure is a MockSFTPError. Command handlers catch
these at the handler boundary and turn them into a protocol failure response.
NeverObserved is the exception: it is raised straight to test code.
"""


class MockSFTPError(Exception):
    """Base class for failures that end up as an SFTP status response."""

    def __init__(self, path: str, detail: str | None = None):
        self.path = path
        self.detail = detail
        super().__init__(f"{detail}: {path!r}" if detail else repr(path))


class NotFound(MockSFTPError):
    """A path segment does not exist."""

    def __init__(self, path: str, detail: str | None = "No such file or directory"):
        super().__init__(path, detail)


class NotADirectory(MockSFTPError):
    def __init__(self, path: str, detail: str | None = "Not a directory"):
        super().__init__(path, detail)


class IsADirectory(MockSFTPError):
    def __init__(self, path: str, detail: str | None = "Is a directory"):
        super().__init__(path, detail)


class AlreadyExists(MockSFTPError):
    def __init__(self, path: str, detail: str | None = "Already exists"):
        super().__init__(path, detail)


class InvalidPath(MockSFTPError):
    """Root mutation or a rename that escapes the root."""

    def __init__(self, path: str, detail: str | None = "Invalid path"):
        super().__init__(path, detail)


class InvalidHandle(MockSFTPError):
    """Handle token that is not open, or not open for this request."""

    def __init__(self, handle, detail: str | None = "Invalid handle"):
        super().__init__(handle.hex() if isinstance(handle, bytes) else str(handle), detail)


class EndOfStream(MockSFTPError):
    """Read or listing cursor exhausted."""

    def __init__(self, path: str, detail: str | None = "End of file"):
        super().__init__(path, detail)


class ReadFailure(MockSFTPError):
    """I/O against a real backing file failed."""


class ServerFailure(MockSFTPError):
    """A handler raised something outside the taxonomy."""


class NeverObserved(LookupError):
    """Test query against a path that never completed an upload."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"never sent {path}")
