class IpfsSyncError(Exception):
    """Base class for ipfs-sync errors"""

    pass


class StoreError(IpfsSyncError):
    """Raised when talking to the IPFS node or daemon fails"""

    pass


class NodeUnavailableError(StoreError):
    """Raised when the local node control layer cannot be reached"""

    pass


class NodeCommandError(StoreError):
    """Raised when an ipfs command exits with an error"""

    def __init__(self, command: list[str], returncode: int, stderr: str):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"{' '.join(command)} exited with {returncode}: {stderr.strip() or 'no output'}"
        )


class DaemonStartError(StoreError):
    """Raised when the daemon process does not become ready"""

    pass


class ConfigParseError(StoreError):
    """Raised when the daemon config cannot be read as JSON"""

    pass


class InvalidAddressError(StoreError, ValueError):
    """Raised when an API multiaddr cannot be turned into a URL"""

    pass


class IngestError(StoreError):
    """Raised when adding files to IPFS fails"""

    pass


class NotConnectedError(StoreError):
    """Raised when files are added before a daemon is connected"""

    pass


class FileError(IpfsSyncError):
    """Base exception for file operations."""

    pass


class EnumerationError(FileError):
    """Raised when a folder cannot be listed."""

    pass
