"""
Data models of the trust chain generator
Classes representing requests, issued identities and material stores
"""

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, List, Dict, Tuple

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from .errors import InvalidSubjectError


# Attribute keys accepted in a subject, mapped to DistinguishedName fields
_DN_KEYS = {
    "C": "country",
    "ST": "state",
    "L": "locality",
    "O": "organization",
    "OU": "organizational_unit",
    "CN": "common_name",
    "EMAILADDRESS": "email",
    "E": "email",
}

_SLASH_SEPARATOR = re.compile(r'(?<!\\)/')
_COMMA_SEPARATOR = re.compile(r'(?<!\\),')


@dataclass(frozen=True)
class DistinguishedName:
    """
    An X.509 Distinguished Name (DN)
    """
    common_name: str
    organization: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    locality: Optional[str] = None
    organizational_unit: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "DistinguishedName":
        """
        Parses a subject string

        Both the OpenSSL form ("/C=GB/O=Org/CN=Name") and the RFC 4514 form
        ("CN=Name,O=Org,C=GB") are accepted.

        Args:
            text: Subject to parse

        Returns:
            DistinguishedName: Parsed subject

        Raises:
            InvalidSubjectError: If the subject is malformed
        """
        if not text or not text.strip():
            raise InvalidSubjectError("Empty distinguished name", subject=text)

        text = text.strip()
        if text.startswith("/"):
            parts = _SLASH_SEPARATOR.split(text[1:])
            unescape = (("\\/", "/"),)
        else:
            parts = _COMMA_SEPARATOR.split(text)
            unescape = (("\\,", ","),)

        values = {}
        for part in parts:
            if not part.strip():
                continue
            if "=" not in part:
                raise InvalidSubjectError(f"Attribute without value: '{part}'", subject=text)

            key, value = part.split("=", 1)
            key = key.strip().upper()
            for old, new in unescape:
                value = value.replace(old, new)
            value = value.strip()

            if key not in _DN_KEYS:
                raise InvalidSubjectError(f"Unknown attribute '{key}'", subject=text)
            if not value:
                raise InvalidSubjectError(f"Empty value for attribute '{key}'", subject=text)

            field_name = _DN_KEYS[key]
            if field_name in values:
                raise InvalidSubjectError(f"Attribute '{key}' given twice", subject=text)
            values[field_name] = value

        if "common_name" not in values:
            raise InvalidSubjectError("Missing common name (CN)", subject=text)

        country = values.get("country")
        if country is not None and (len(country) != 2 or not country.isalpha()):
            raise InvalidSubjectError(
                "Country code must be exactly 2 letters (ISO 3166-1 alpha-2)", subject=text
            )

        return cls(**values)

    def to_name(self) -> x509.Name:
        """Builds the x509.Name, most general attribute first"""
        attributes = [
            (NameOID.COUNTRY_NAME, self.country),
            (NameOID.STATE_OR_PROVINCE_NAME, self.state),
            (NameOID.LOCALITY_NAME, self.locality),
            (NameOID.ORGANIZATION_NAME, self.organization),
            (NameOID.ORGANIZATIONAL_UNIT_NAME, self.organizational_unit),
            (NameOID.COMMON_NAME, self.common_name),
            (NameOID.EMAIL_ADDRESS, self.email),
        ]
        try:
            return x509.Name([
                x509.NameAttribute(oid, value) for oid, value in attributes if value
            ])
        except ValueError as e:
            raise InvalidSubjectError(str(e), subject=self.to_string()) from e

    def to_string(self) -> str:
        """Converts the DN to an RFC 4514 string"""
        parts = [f"CN={self.common_name}"]

        if self.email:
            parts.append(f"emailAddress={self.email}")

        if self.organizational_unit:
            parts.append(f"OU={self.organizational_unit}")

        if self.organization:
            parts.append(f"O={self.organization}")

        if self.locality:
            parts.append(f"L={self.locality}")

        if self.state:
            parts.append(f"ST={self.state}")

        if self.country:
            parts.append(f"C={self.country}")

        return ",".join(parts)


def subject_alt_name(dns_name: str) -> x509.SubjectAlternativeName:
    """
    Builds a single DNS name SAN extension

    Raises:
        InvalidSubjectError: If the name is not an ASCII (IDNA A-label) DNS name
    """
    try:
        return x509.SubjectAlternativeName([x509.DNSName(dns_name)])
    except (ValueError, TypeError) as e:
        raise InvalidSubjectError(f"Invalid DNS name '{dns_name}': {e}", subject=dns_name) from e


class ExtensionProfile(Enum):
    """Permitted uses embedded in a leaf certificate"""
    SERVER_CLIENT_AUTH = "server_client_auth"
    CLIENT_AUTH_ONLY = "client_auth_only"


class StoreKind(Enum):
    KEYSTORE = "keystore"
    TRUSTSTORE = "truststore"


@dataclass(frozen=True)
class CertificateRequest:
    """
    What a participant asks the authority to certify

    name labels the participant in working files (ex: "primary").
    """
    name: str
    subject: DistinguishedName
    key_size: int
    dns_name: str


@dataclass
class IssuedCertificate:
    """
    A leaf certificate signed by the authority, with its private key
    """
    name: str
    certificate: x509.Certificate
    private_key: Optional[rsa.RSAPrivateKey]
    issuer_certificate: x509.Certificate
    profile: ExtensionProfile

    @property
    def serial_number(self) -> int:
        return self.certificate.serial_number

    @property
    def chain(self) -> List[x509.Certificate]:
        """Leaf first, then its issuer"""
        return [self.certificate, self.issuer_certificate]

    def discard(self) -> None:
        """Drops the reference to the private key"""
        self.private_key = None


@dataclass(frozen=True)
class StoreEntry:
    """
    One aliased entry of a material store

    A key entry carries a private key and its chain (leaf first); a trusted
    entry carries a bare certificate. A key entry stays a key entry once its
    private key has been discarded.
    """
    alias: str
    certificate: x509.Certificate
    password: str
    private_key: Optional[rsa.RSAPrivateKey] = None
    chain: Tuple[x509.Certificate, ...] = ()

    @property
    def is_key_entry(self) -> bool:
        return bool(self.chain)

    def without_key(self) -> "StoreEntry":
        return replace(self, private_key=None)

    @classmethod
    def key_entry(cls, alias: str, issued: IssuedCertificate, password: str) -> "StoreEntry":
        return cls(
            alias=alias,
            certificate=issued.certificate,
            password=password,
            private_key=issued.private_key,
            chain=tuple(issued.chain)
        )

    @classmethod
    def trusted(cls, alias: str, certificate: x509.Certificate, password: str) -> "StoreEntry":
        return cls(alias=alias, certificate=certificate, password=password)


@dataclass
class MaterialStore:
    """
    An assembled keystore or truststore

    data holds the encoded store; manifest holds the alias/password
    properties when the format profile asks for one.
    """
    kind: StoreKind
    store_type: str
    password: str
    entries: Dict[str, StoreEntry] = field(default_factory=dict)
    data: bytes = b""
    manifest: Optional[str] = None

    @property
    def aliases(self) -> List[str]:
        return list(self.entries)

    def certificate(self, alias: str) -> x509.Certificate:
        return self.entries[alias].certificate

    def verbatim_copy(self) -> "MaterialStore":
        """Same entries and same bytes, without the manifest"""
        return replace(self, entries=dict(self.entries), manifest=None)

    def discard_keys(self) -> None:
        """Drops private keys from the entries, the encoded data is kept"""
        self.entries = {alias: entry.without_key() for alias, entry in self.entries.items()}


__all__ = [
    'DistinguishedName',
    'ExtensionProfile',
    'StoreKind',
    'CertificateRequest',
    'IssuedCertificate',
    'StoreEntry',
    'MaterialStore',
    'subject_alt_name'
]
