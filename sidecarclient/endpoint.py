"""Parsing of sidecar gRPC endpoint addresses into dial targets."""

from __future__ import annotations

import json
import string
from dataclasses import dataclass, field
from urllib.parse import unquote, unquote_plus

from sidecarclient.errors import ClientError

_KNOWN_SCHEMES = ("dns", "unix", "unix-abstract", "vsock", "http", "https")
_HOST_CHARS = frozenset(
    string.ascii_letters + string.digits + "-_.~!$&'()*+,;=:[]<>\""
)
_SCHEME_TAIL_CHARS = frozenset(string.ascii_letters + string.digits + "+-.")


@dataclass(frozen=True)
class ParsedEndpoint:
    """A dial target and whether TLS should be used for it."""

    target: str
    tls: bool = False


class _MissingPortError(ClientError):
    pass


@dataclass
class _URL:
    scheme: str
    host: str = ""
    path: str = ""
    query: dict[str, list[str]] = field(default_factory=dict)


def _q(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _valid_optional_port(port: str) -> bool:
    if not port:
        return True
    return port.startswith(":") and all(c in string.digits for c in port[1:])


def _parse_host(host: str) -> str:
    if host.startswith("["):
        end = host.rfind("]")
        if end < 0:
            raise ClientError("missing ']' in host")
        colon_port = host[end + 1 :]
        if not _valid_optional_port(colon_port):
            raise ClientError(f"invalid port {_q(colon_port)} after host")
    else:
        colon = host.rfind(":")
        if colon != -1:
            colon_port = host[colon:]
            if not _valid_optional_port(colon_port):
                raise ClientError(f"invalid port {_q(colon_port)} after host")
    for char in host:
        if char != "%" and char.isascii() and char not in _HOST_CHARS:
            raise ClientError(f"invalid character {_q(char)} in host name")
    return unquote(host)


def _parse_query(raw: str) -> dict[str, list[str]]:
    values: dict[str, list[str]] = {}
    for part in raw.split("&"):
        if not part or ";" in part:
            continue
        key, _, value = part.partition("=")
        values.setdefault(unquote_plus(key), []).append(unquote_plus(value))
    return values


def _split_scheme(raw: str) -> tuple[str, str]:
    for index, char in enumerate(raw):
        if char in string.ascii_letters:
            continue
        if char in _SCHEME_TAIL_CHARS and index > 0:
            continue
        if char == ":":
            if index == 0:
                raise ClientError("missing protocol scheme")
            return raw[:index], raw[index + 1 :]
        break
    raise ClientError(f"invalid URL {_q(raw)}: first path segment cannot contain colon")


def _parse_url(raw: str) -> _URL:
    raw = raw.partition("#")[0]
    if any(ord(c) < 0x20 or ord(c) == 0x7F for c in raw):
        raise ClientError("invalid control character in URL")

    scheme, rest = _split_scheme(raw)
    url = _URL(scheme=scheme.lower())

    if rest.endswith("?") and rest.count("?") == 1:
        rest = rest[:-1]
    else:
        rest, _, raw_query = rest.partition("?")
        url.query = _parse_query(raw_query)

    if not rest.startswith("/"):
        return url

    if rest.startswith("//"):
        authority, slash, remainder = rest[2:].partition("/")
        rest = slash + remainder
        url.host = _parse_host(authority.rpartition("@")[2])
    url.path = unquote(rest)
    return url


def _split_host_port(hostport: str) -> tuple[str, str]:
    last_colon = hostport.rfind(":")
    if last_colon < 0:
        raise _MissingPortError("missing port in address")

    start, after = 0, 0
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ClientError("missing ']' in address")
        if end + 1 == len(hostport):
            raise _MissingPortError("missing port in address")
        if end + 1 != last_colon:
            if hostport[end + 1] == ":":
                raise ClientError("too many colons in address")
            raise _MissingPortError("missing port in address")
        host = hostport[1:end]
        start, after = 1, end + 1
    else:
        host = hostport[:last_colon]
        if ":" in host:
            raise ClientError("too many colons in address")

    if "[" in hostport[start:]:
        raise ClientError("unexpected '[' in address")
    if "]" in hostport[after:]:
        raise ClientError("unexpected ']' in address")
    return host, hostport[last_colon + 1 :]


def _normalise(endpoint: str) -> tuple[str, str]:
    """Return the target rewritten as a URL, and any DNS authority found."""
    target = endpoint
    parts = target.split(":")
    if "://" not in target and (
        len(parts) == 3 or (len(parts) >= 2 and parts[0] in _KNOWN_SCHEMES)
    ):
        return target.replace(":", "://", 1), ""

    pieces = target.split("://")
    if len(pieces) == 1:
        return "dns://" + target, ""

    scheme = pieces[0]
    if scheme not in _KNOWN_SCHEMES:
        raise ClientError(f"unknown scheme: {_q(scheme)}")
    if scheme != "dns":
        return target, ""

    segments = target.split("/")
    if len(segments) < 4:
        raise ClientError(f"invalid dns scheme: {_q(target)}")
    return "dns://" + segments[3], segments[2]


def parse_grpc_endpoint(endpoint: str) -> ParsedEndpoint:
    """Turn a user supplied endpoint into a gRPC dial target.

    Raises ClientError when the endpoint cannot be used.
    """
    if not endpoint:
        raise ClientError("target is required")

    target, dns_authority = _normalise(endpoint)
    url = _parse_url(target)

    unknown = [key for key in url.query if key != "tls"]
    if unknown:
        reasons = "; ".join(f"unrecognized query parameter: {_q(k)}" for k in unknown)
        raise ClientError(f"failed to parse target {_q(target)}: {reasons}")

    tls = False
    if "tls" in url.query:
        if url.scheme in ("http", "https"):
            raise ClientError("cannot use tls query parameter with http(s) scheme")
        value = url.query["tls"][0]
        if value not in ("true", "false"):
            raise ClientError(f"invalid value for tls query parameter: {_q(value)}")
        tls = value == "true"

    scheme = url.scheme
    if scheme == "https":
        tls = True
    if scheme in ("http", "https"):
        scheme = "dns"

    hostname = url.host
    try:
        host, port = _split_host_port(hostname)
    except _MissingPortError:
        port = "443"
    else:
        hostname = host

    if not hostname:
        hostname = "localhost" if scheme == "dns" else url.path

    if scheme == "unix":
        separator = "://" if endpoint.startswith("unix://") else ":"
        target = scheme + separator + hostname
    elif scheme == "vsock":
        target = f"{scheme}:{hostname}:{port}"
    elif scheme == "unix-abstract":
        target = f"{scheme}:{hostname}"
    elif scheme == "dns":
        if url.path:
            raise ClientError(f"path is not allowed: {_q(url.path)}")
        if (
            hostname.count(":") == 7
            and not hostname.startswith("[")
            and not hostname.endswith("]")
        ):
            hostname = f"[{hostname}]"
        authority = f"//{dns_authority}/" if dns_authority else ""
        target = f"{scheme}:{authority}{hostname}:{port}"
    else:
        raise ClientError(f"unsupported scheme: {_q(scheme)}")

    return ParsedEndpoint(target=target, tls=tls)