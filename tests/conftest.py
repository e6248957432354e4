from __future__ import annotations

import ipaddress
import socket
import ssl
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID


@dataclass
class Issued:
    cert: x509.Certificate
    key: object

    @property
    def der(self) -> bytes:
        return self.cert.public_bytes(serialization.Encoding.DER)

    @property
    def pem(self) -> bytes:
        return self.cert.public_bytes(serialization.Encoding.PEM)

    @property
    def key_pem(self) -> bytes:
        return self.key.private_bytes(  # type: ignore[attr-defined]
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )


def _name(cn: str | None, org: str | None = None) -> x509.Name:
    attrs = []
    if cn:
        attrs.append(x509.NameAttribute(NameOID.COMMON_NAME, cn))
    if org:
        attrs.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, org))
    return x509.Name(attrs)


def make_cert(
    cn: str | None = "example.com",
    *,
    org: str | None = None,
    issuer: Issued | None = None,
    dns: tuple[str, ...] = (),
    ips: tuple[str, ...] = (),
    not_before: datetime | None = None,
    not_after: datetime | None = None,
    key=None,
    is_ca: bool = False,
    hash_alg: hashes.HashAlgorithm | None = None,
    extensions: tuple[x509.ExtensionType, ...] = (),
) -> Issued:
    """Self-signed unless `issuer` is given."""
    key = key or ec.generate_private_key(ec.SECP256R1())
    subject = _name(cn, org)
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer.cert.subject if issuer else subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=89))
        .add_extension(x509.BasicConstraints(ca=is_ca, path_length=None), critical=True)
    )
    alt = [x509.DNSName(d) for d in dns] + [x509.IPAddress(ipaddress.ip_address(i)) for i in ips]
    if alt:
        builder = builder.add_extension(x509.SubjectAlternativeName(alt), critical=False)
    for ext in extensions:
        builder = builder.add_extension(ext, critical=False)
    signer = issuer.key if issuer else key
    cert = builder.sign(signer, hash_alg or hashes.SHA256())  # type: ignore[arg-type]
    return Issued(cert, key)


@pytest.fixture(scope="session")
def root_ca() -> Issued:
    return make_cert("Test Root CA", org="Test Org", is_ca=True)


@pytest.fixture(scope="session")
def leaf(root_ca: Issued) -> Issued:
    return make_cert("localhost", issuer=root_ca, dns=("localhost",), ips=("127.0.0.1",))


class LocalServer:
    """Accepts connections on 127.0.0.1 and hands each one to `handler`."""

    def __init__(self, handler: Callable[[socket.socket], None] | None) -> None:
        self.sock = socket.create_server(("127.0.0.1", 0))
        self.sock.settimeout(0.1)
        self.port = self.sock.getsockname()[1]
        self.handler = handler
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def __enter__(self) -> LocalServer:
        if self.handler is not None:
            self._thread.start()
        return self

    def __exit__(self, *exc) -> None:
        self._stop.set()
        if self._thread.is_alive():
            self._thread.join(timeout=2)
        self.sock.close()

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            conn.settimeout(2)
            try:
                self.handler(conn)  # type: ignore[misc]
            except OSError:
                # client hung up or rejected the handshake
                pass
            finally:
                conn.close()


def _write_chain(tmp: Path, leaf: Issued, *chain: Issued) -> tuple[Path, Path]:
    certfile = tmp / "chain.pem"
    keyfile = tmp / "key.pem"
    certfile.write_bytes(leaf.pem + b"".join(c.pem for c in chain))
    keyfile.write_bytes(leaf.key_pem)
    return certfile, keyfile


@pytest.fixture
def tls_server(tmp_path: Path):
    """Factory: tls_server(leaf, *intermediates) -> running LocalServer."""
    servers: list[LocalServer] = []

    def start(leaf: Issued, *chain: Issued) -> LocalServer:
        certfile, keyfile = _write_chain(tmp_path, leaf, *chain)
        ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        ctx.load_cert_chain(certfile, keyfile)

        def handle(conn: socket.socket) -> None:
            with ctx.wrap_socket(conn, server_side=True) as tls:
                tls.recv(1)

        server = LocalServer(handle).__enter__()
        servers.append(server)
        return server

    yield start
    for s in servers:
        s.__exit__(None, None, None)


@pytest.fixture
def silent_server():
    """Accepts TCP connections (via the backlog) but never speaks TLS."""
    with LocalServer(None) as server:
        yield server


@pytest.fixture
def plaintext_server():
    def handle(conn: socket.socket) -> None:
        conn.recv(1024)
        conn.sendall(b"HTTP/1.1 400 Bad Request\r\nContent-Length: 0\r\n\r\n")

    with LocalServer(handle) as server:
        yield server


@pytest.fixture
def closed_port() -> int:
    s = socket.create_server(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port
