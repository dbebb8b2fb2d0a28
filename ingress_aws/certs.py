"""Parsing of PEM-encoded X.509 certificates and certificate summaries."""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass, field

from cryptography import x509
from cryptography.x509.oid import NameOID

_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([^\r\n-]*)-----\r?\n(.*?)-----END \1-----",
    re.DOTALL,
)


class NoCertificatesError(ValueError):
    """No certificate was found in the PEM data."""

    def __init__(self, message: str = "no certificates found in PEM data") -> None:
        super().__init__(message)


class TooManyCertificatesError(ValueError):
    """More than one certificate was found where exactly one was expected."""

    def __init__(
        self, message: str = "too many certificates found in PEM data"
    ) -> None:
        super().__init__(message)


@dataclass(frozen=True)
class CertificateSummary:
    """A certificate known by an identifier, with its optional chain."""

    id: str
    certificate: x509.Certificate
    chain: list[x509.Certificate] = field(default_factory=list)

    def domain_names(self) -> list[str]:
        """Return the common name followed by the DNS subject alternative names."""
        names: list[str] = []
        for attribute in self.certificate.subject.get_attributes_for_oid(
            NameOID.COMMON_NAME
        ):
            value = str(attribute.value)
            if value and value not in names:
                names.append(value)
        try:
            san = self.certificate.extensions.get_extension_for_class(
                x509.SubjectAlternativeName
            )
        except x509.ExtensionNotFound:
            return names
        for dns_name in san.value.get_values_for_type(x509.DNSName):
            if dns_name not in names:
                names.append(dns_name)
        return names


def _pem_blocks(data: bytes):
    """Yield the decoded payload of every well-formed PEM block in order."""
    for match in _PEM_BLOCK.finditer(data):
        body = b"".join(match.group(2).split())
        try:
            yield base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            continue


def parse_certificates(pem_certificates: str) -> list[x509.Certificate]:
    """Parse every PEM-encoded certificate in the string.

    Raises ValueError when a PEM block does not hold a valid certificate.
    """
    return [
        x509.load_der_x509_certificate(der)
        for der in _pem_blocks(pem_certificates.encode())
    ]


def parse_certificate(pem_certificate: str) -> x509.Certificate:
    """Parse exactly one PEM-encoded certificate from the string."""
    certificates = parse_certificates(pem_certificate)
    if not certificates:
        raise NoCertificatesError()
    if len(certificates) > 1:
        raise TooManyCertificatesError()
    return certificates[0]