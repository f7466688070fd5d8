"""
Expvar Monitor - Address Expansion

Expands the ``--ports`` syntax into expvar URLs:

    1234                   http://localhost:1234/debug/vars
    2000-2002              three localhost ports
    remoteapp:80           http://remoteapp:80/debug/vars
    https://host:8080-8081 two https ports on host
"""

from typing import Iterable, List, Union
from urllib.parse import urlsplit

from expvarmon.errors import InvalidAddressError

MAX_PORT = 65535


def _parse_port(text: str, item: str) -> int:
    if not (text.isascii() and text.isdigit()):
        raise InvalidAddressError(f"Invalid port {text!r} in {item!r}")
    port = int(text)
    if not 0 < port <= MAX_PORT:
        raise InvalidAddressError(f"Port {port} out of range in {item!r}")
    return port


def parse_port_range(text: str, item: str) -> List[int]:
    """Parse ``port`` or ``start-end`` into a list of ports."""
    if "-" in text:
        start_text, end_text = text.split("-", 1)
        start = _parse_port(start_text, item)
        end = _parse_port(end_text, item)
        if end < start:
            raise InvalidAddressError(f"Reversed port range in {item!r}")
        return list(range(start, end + 1))
    return [_parse_port(text, item)]


def parse_address(item: str, endpoint: str = "/debug/vars") -> List[str]:
    """Expand one ports item into URLs."""
    item = item.strip()
    if not item:
        raise InvalidAddressError("Empty address")

    scheme = "http"
    rest = item
    if "://" in item:
        parts = urlsplit(item)
        scheme = parts.scheme
        rest = parts.netloc
        if not rest:
            raise InvalidAddressError(f"Missing host in {item!r}")

    if ":" in rest:
        host, port_text = rest.rsplit(":", 1)
    elif rest[0].isdigit() and "://" not in item:
        host, port_text = "localhost", rest
    else:
        raise InvalidAddressError(f"Missing port in {item!r}")

    if not host:
        host = "localhost"

    return [f"{scheme}://{host}:{port}{endpoint}" for port in parse_port_range(port_text, item)]


def parse_ports(values: Union[str, Iterable[str]], endpoint: str = "/debug/vars") -> List[str]:
    """Expand a comma-separated ports string (or several) into unique URLs, in order."""
    chunks = [values] if isinstance(values, str) else list(values)

    urls: List[str] = []
    for chunk in chunks:
        for item in chunk.split(","):
            if not item.strip():
                continue
            for url in parse_address(item, endpoint):
                if url not in urls:
                    urls.append(url)
    return urls
