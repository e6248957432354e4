from __future__ import annotations

from types import SimpleNamespace

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, ObjectIdentifier, SignatureAlgorithmOID

from conftest import make_cert
from tls_cert_probe import link_chain, peer_certificate_from_der
from tls_cert_probe.config import WEAK_SIGNATURE_ALGORITHMS
from tls_cert_probe.parse import _public_key, _sig_alg
from tls_cert_probe.utils import sha256_hex


def test_parse_leaf_fields(root_ca, leaf) -> None:
    peer = peer_certificate_from_der(leaf.der)

    assert peer.subject == {"CN": "localhost"}
    assert peer.issuer == {"CN": "Test Root CA", "O": "Test Org"}
    assert peer.subjectaltname == "DNS:localhost, IP Address:127.0.0.1"
    assert peer.raw == leaf.der
    assert peer.pubkey
    assert peer.signature_algorithm == "ecdsa-with-SHA256"
    assert peer.modulus is None
    assert peer.extensions["ca"] is False
    assert peer.valid_to == leaf.cert.not_valid_after_utc
    assert peer.fingerprint256.replace(":", "").lower() == sha256_hex(leaf.der)
    assert peer.issuer_certificate is None


def test_parse_rsa_key_details() -> None:
    key = rsa.generate_private_key(public_exponent=65537, key_size=1024)
    issued = make_cert("legacy.example", key=key, dns=("legacy.example",))
    peer = peer_certificate_from_der(issued.der)

    assert peer.signature_algorithm == "sha256WithRSAEncryption"
    assert peer.exponent == "0x10001"
    assert peer.modulus is not None
    assert len(peer.modulus) * 4 == 1024
    assert peer.public_key_type is not None and "RSA" in peer.public_key_type


def test_signature_algorithm_names() -> None:
    # SHA-1 signing is refused by current cryptography, so map the OIDs directly
    sha1 = SimpleNamespace(signature_algorithm_oid=SignatureAlgorithmOID.RSA_WITH_SHA1)
    md5 = SimpleNamespace(signature_algorithm_oid=SignatureAlgorithmOID.RSA_WITH_MD5)
    unknown = SimpleNamespace(signature_algorithm_oid=ObjectIdentifier("1.2.3.4"))

    assert _sig_alg(sha1) == "sha1WithRSAEncryption"
    assert _sig_alg(md5) == "md5WithRSAEncryption"
    assert _sig_alg(sha1) in WEAK_SIGNATURE_ALGORITHMS
    assert _sig_alg(unknown) == "1.2.3.4"


def test_unloadable_public_key_is_tolerated() -> None:
    def refuse():
        raise UnsupportedAlgorithm("unknown key type")

    assert _public_key(SimpleNamespace(public_key=refuse)) is None


def test_extension_summary() -> None:
    key = ec.generate_private_key(ec.SECP256R1())
    issued = make_cert(
        "ext.example",
        key=key,
        extensions=(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]),
            x509.SubjectKeyIdentifier.from_public_key(key.public_key()),
            x509.AuthorityKeyIdentifier.from_issuer_public_key(key.public_key()),
        ),
    )
    ext = peer_certificate_from_der(issued.der).extensions

    assert ext["ca"] is False
    assert ext["key_usage"] == ["digital_signature"]
    assert ext["ext_key_usage"] == [ExtendedKeyUsageOID.SERVER_AUTH.dotted_string]
    assert ext["ski"] is not None
    assert ext["ski"] == ext["aki"]


def test_extension_summary_when_absent(leaf) -> None:
    ext = peer_certificate_from_der(leaf.der).extensions
    assert ext["key_usage"] == []
    assert ext["ext_key_usage"] == []
    assert ext["ski"] is None
    assert ext["aki"] is None


def test_parse_without_san() -> None:
    peer = peer_certificate_from_der(make_cert("bare.example").der)
    assert peer.subjectaltname is None


def test_link_chain_follows_issuers(root_ca, leaf) -> None:
    intermediate = make_cert("Intermediate", issuer=root_ca, is_ca=True)
    child = make_cert("child.example", issuer=intermediate, dns=("child.example",))

    linked = link_chain(
        [
            peer_certificate_from_der(child.der),
            # presented out of order on purpose
            peer_certificate_from_der(root_ca.der),
            peer_certificate_from_der(intermediate.der),
        ]
    )
    assert linked is not None
    assert linked.subject["CN"] == "child.example"
    assert linked.issuer_certificate is not None
    assert linked.issuer_certificate.subject["CN"] == "Intermediate"
    root = linked.issuer_certificate.issuer_certificate
    assert root is not None
    assert root.subject["CN"] == "Test Root CA"
    # the root never becomes its own issuer
    assert root.issuer_certificate is None


def test_link_chain_drops_unrelated(root_ca, leaf) -> None:
    stranger = make_cert("Somebody Else")
    linked = link_chain(
        [peer_certificate_from_der(leaf.der), peer_certificate_from_der(stranger.der)]
    )
    assert linked is not None
    assert linked.issuer_certificate is None


def test_link_chain_empty() -> None:
    assert link_chain([]) is None
