"""Conversion of IPFS API multiaddrs to HTTP base URLs."""

from ipfs_sync.exceptions import InvalidAddressError

HOST_PROTOCOLS = {"ip4", "ip6", "dns", "dns4", "dns6"}
SCHEMES = {"http", "https"}


def multiaddr_to_url(address: str) -> str:
    """
    Convert an API multiaddr to a URL httpx can use.

    Examples:
        /ip4/127.0.0.1/tcp/5001        -> http://127.0.0.1:5001
        /ip6/::1/tcp/5001              -> http://[::1]:5001
        /dns4/ipfs.local/tcp/443/https -> https://ipfs.local:443

    URLs that already start with http:// or https:// are returned unchanged.

    Raises:
        InvalidAddressError: If the address is not a TCP multiaddr
    """
    address = address.strip()
    if address.startswith(("http://", "https://")):
        return address.rstrip("/")

    parts = address.strip("/").split("/")
    if len(parts) not in (4, 5) or not address.startswith("/"):
        raise InvalidAddressError(f"Unsupported API address: {address!r}")

    host_proto, host, transport, port = parts[:4]
    scheme = parts[4] if len(parts) == 5 else "http"

    if host_proto not in HOST_PROTOCOLS or not host:
        raise InvalidAddressError(f"Unsupported host protocol in {address!r}")
    if transport != "tcp" or not port.isdigit():
        raise InvalidAddressError(f"API address must use tcp with a port: {address!r}")
    if scheme not in SCHEMES:
        raise InvalidAddressError(f"Unsupported scheme {scheme!r} in {address!r}")

    if host_proto == "ip6":
        host = f"[{host}]"
    return f"{scheme}://{host}:{port}"
