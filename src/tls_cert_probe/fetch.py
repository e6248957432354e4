from __future__ import annotations

import logging
import socket
import ssl
import time
from typing import Any

from cryptography.exceptions import UnsupportedAlgorithm

from .config import DEFAULT_HTTPS_PORT, DEFAULT_TIMEOUT_MS, MAX_PORT, MIN_PORT
from .errors import CertificateError, CertificateErrorCode, code_for
from .models import PeerCertificate
from .parse import link_chain, peer_certificate_from_der

logger = logging.getLogger(__name__)


def _make_context(verify_trust: bool) -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    if not verify_trust:
        # inspect expired, self-signed and mismatched certificates too
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


def _remaining(deadline: float) -> float:
    left = deadline - time.monotonic()
    if left <= 0:
        # a zero socket timeout would mean non-blocking, not "expired"
        raise socket.timeout("deadline exceeded")
    return left


def _connect(host: str, port: int, deadline: float) -> socket.socket:
    """
    Try each resolved address in turn. Every attempt only gets what is left
    of the deadline, so several unreachable addresses cannot stack up.
    """
    infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    last_error: OSError | None = None
    for family, socktype, proto, _, addr in infos:
        sock = socket.socket(family, socktype, proto)
        try:
            # also charges a slow name lookup against the deadline
            sock.settimeout(_remaining(deadline))
            sock.connect(addr)
        except socket.timeout:
            sock.close()
            raise
        except OSError as e:
            sock.close()
            logger.debug("connect to %s failed: %s", addr, e)
            last_error = e
            continue
        return sock
    raise last_error or OSError(f"no addresses found for {host}")


def _to_der(item: Any) -> bytes:
    if isinstance(item, (bytes, bytearray)):
        return bytes(item)
    # ssl.Certificate objects default to PEM
    return ssl.PEM_cert_to_DER_cert(item.public_bytes())


def _presented_chain(ssock: ssl.SSLSocket, verified: bool) -> list[bytes]:
    """
    Chain retrieval beyond the leaf depends on the interpreter (3.13+).
    With verification disabled only the unverified chain is populated.
    """
    name = "get_verified_chain" if verified else "get_unverified_chain"
    getter = getattr(ssock, name, None)
    if getter is None:
        logger.debug("%s not available, returning leaf only", name)
        return []
    return [_to_der(c) for c in getter() or []]


def _parse_chain(ders: list[bytes], leaf_der: bytes) -> list[PeerCertificate]:
    out: list[PeerCertificate] = []
    for der in ders:
        # leaf first, and only once
        if not der or der == leaf_der:
            continue
        try:
            out.append(peer_certificate_from_der(der))
        except (ValueError, UnsupportedAlgorithm) as e:
            logger.debug("skipping unparsable chain certificate: %s", e)
    return out


def fetch_certificate(
    host: str,
    port: int = DEFAULT_HTTPS_PORT,
    timeout: int = DEFAULT_TIMEOUT_MS,
    detailed: bool = False,
    verify_trust: bool = False,
) -> PeerCertificate:
    """
    Fetch the certificate presented by host:port.

    `timeout` is a total deadline in milliseconds covering name lookup, TCP
    connect and the TLS handshake. With `detailed`, the returned leaf links
    forward to its issuers as far as the server presented them.

    Raises CertificateError.
    """
    if not (MIN_PORT <= port <= MAX_PORT):
        raise CertificateError(
            f"Invalid port number {port}. Port must be between {MIN_PORT} and {MAX_PORT}.",
            CertificateErrorCode.INVALID_PORT,
        )

    ctx = _make_context(verify_trust)
    deadline = time.monotonic() + timeout / 1000.0
    logger.debug(
        "connecting to %s:%d (timeout=%dms, detailed=%s, verify_trust=%s)",
        host, port, timeout, detailed, verify_trust,
    )

    try:
        with _connect(host, port, deadline) as sock:
            sock.settimeout(_remaining(deadline))
            with ctx.wrap_socket(sock, server_hostname=host) as ssock:
                cipher = ssock.cipher()
                logger.debug(
                    "handshake with %s:%d done: %s %s",
                    host, port, ssock.version(), cipher[0] if cipher else None,
                )
                leaf_der = ssock.getpeercert(binary_form=True)
                chain_ders = _presented_chain(ssock, verify_trust) if detailed else []

    except socket.timeout as e:
        raise CertificateError(
            f"Connection to {host}:{port} timed out after {timeout} ms",
            CertificateErrorCode.TIMEOUT,
        ) from e
    except ssl.SSLCertVerificationError as e:
        raise CertificateError(
            e.verify_message or str(e),
            code_for(e.verify_code),
        ) from e
    except ssl.SSLError as e:
        raise CertificateError(f"TLS handshake with {host}:{port} failed: {e}") from e
    except socket.gaierror as e:
        raise CertificateError(f"DNS resolution failed for {host}: {e}") from e
    except ConnectionRefusedError as e:
        raise CertificateError(f"Connection refused by {host}:{port}: {e}") from e
    except OSError as e:
        raise CertificateError(f"Network error connecting to {host}:{port}: {e}") from e

    if not leaf_der:
        raise CertificateError(
            "No certificate information available",
            CertificateErrorCode.MISSING_CERTIFICATE,
        )

    try:
        leaf = peer_certificate_from_der(leaf_der)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise CertificateError(
            f"Unable to parse certificate from {host}:{port}: {e}",
            CertificateErrorCode.MISSING_CERTIFICATE,
        ) from e

    if not detailed:
        return leaf
    return link_chain([leaf, *_parse_chain(chain_ders, leaf_der)]) or leaf
