"""ipfs-sync - keep a local folder in sync with an IPFS repository."""

__version__ = "0.1.0"
