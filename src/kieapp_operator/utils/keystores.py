"""PKCS#12 keystore and truststore generation and validation."""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

KEY_ALIAS = b"jboss"
KEY_SIZE = 2048
VALIDITY_DAYS = 3650


def generate_keystore(common_name: str, password: str, validity_days: int = VALIDITY_DAYS) -> bytes:
    """Generate a keystore holding a self-signed certificate for ``common_name``.

    Args:
        common_name: Subject CN (and DNS SAN) of the certificate
        password: Keystore password
        validity_days: Certificate lifetime

    Returns:
        PKCS#12 bytes
    """
    key = rsa.generate_private_key(public_exponent=65537, key_size=KEY_SIZE)
    # Route hostnames may exceed the 64 character CN upper bound.
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name, _validate=False)])
    now = datetime.now(timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(days=validity_days))
        .add_extension(x509.SubjectAlternativeName([x509.DNSName(common_name)]), critical=False)
        .sign(key, hashes.SHA256())
    )
    return pkcs12.serialize_key_and_certificates(
        KEY_ALIAS,
        key,
        certificate,
        None,
        serialization.BestAvailableEncryption(password.encode("utf-8")),
    )


def keystore_common_name(keystore: bytes, password: str) -> str | None:
    """Open a keystore and return its certificate CN, or None if it cannot be read."""
    try:
        key, certificate, _ = pkcs12.load_key_and_certificates(keystore, password.encode("utf-8"))
    except ValueError:
        return None
    if key is None or certificate is None:
        return None
    names = certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not names:
        return None
    return str(names[0].value)


def is_valid_keystore(keystore: bytes | None, common_name: str, password: str) -> bool:
    """A keystore is reusable when it opens with ``password`` and its CN matches exactly."""
    if not keystore:
        return False
    return keystore_common_name(keystore, password) == common_name


def ca_bundle_fingerprints(ca_bundle: bytes) -> list[str]:
    """SHA-256 fingerprints of every certificate in a PEM bundle, sorted.

    Raises:
        ValueError: If the bundle holds no PEM certificate
    """
    certificates = x509.load_pem_x509_certificates(ca_bundle)
    return sorted(_fingerprint(cert) for cert in certificates)


def generate_truststore(ca_bundle: bytes, password: str) -> bytes:
    """Generate a truststore containing every CA certificate from a PEM bundle."""
    certificates = x509.load_pem_x509_certificates(ca_bundle)
    return pkcs12.serialize_key_and_certificates(
        None,
        None,
        None,
        certificates,
        serialization.BestAvailableEncryption(password.encode("utf-8")),
    )


def is_valid_truststore(truststore: bytes | None, ca_bundle: bytes, password: str) -> bool:
    """A truststore is reusable when it holds exactly the certificates of ``ca_bundle``."""
    if not truststore:
        return False
    try:
        _, _, certificates = pkcs12.load_key_and_certificates(truststore, password.encode("utf-8"))
    except ValueError:
        return False
    stored = sorted(_fingerprint(cert) for cert in certificates)
    return stored == ca_bundle_fingerprints(ca_bundle)


def _fingerprint(certificate: x509.Certificate) -> str:
    return hashlib.sha256(certificate.public_bytes(serialization.Encoding.DER)).hexdigest()
