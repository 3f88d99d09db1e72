"""
Root CA (Certificate Authority)
Creates the self-signed root and hands out serial numbers for everything it signs
"""

from datetime import datetime, timedelta
from typing import Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa

from . import config, utils
from .errors import SigningError
from .keygen import KeyGenerator
from .models import DistinguishedName, subject_alt_name


class CertificateAuthority:
    """
    The self-signed root anchoring the whole trust chain

    Lives for a single generation run. Used as a context manager, the private
    key is discarded on every exit path.
    """

    def __init__(
            self,
            dn: DistinguishedName,
            private_key: rsa.RSAPrivateKey,
            certificate: x509.Certificate
    ):
        self.dn = dn
        self._private_key: Optional[rsa.RSAPrivateKey] = private_key
        self.certificate = certificate
        self._next_serial = config.FIRST_SERIAL_NUMBER

    # ============================================
    # 👑 ROOT CA CREATION
    # ============================================

    @classmethod
    def initialize(
            cls,
            dn: Union[DistinguishedName, str],
            key_size: int,
            validity_days: int,
            dns_name: Optional[str] = None,
            key_generator: Optional[KeyGenerator] = None
    ) -> "CertificateAuthority":
        """
        Creates the root key pair and its self-signed certificate

        Args:
            dn: Distinguished Name of the root (parsed when given as a string)
            key_size: RSA key size
            validity_days: Validity period in days
            dns_name: Subject alternative DNS name of the issuing context
            key_generator: Key backend (a quiet KeyGenerator by default)

        Returns:
            CertificateAuthority: Ready authority

        Raises:
            KeyGenerationError: If the key size is not supported
            InvalidSubjectError: If the DN or the DNS name cannot be parsed or encoded
        """
        if isinstance(dn, str):
            dn = DistinguishedName.parse(dn)
        key_generator = key_generator or KeyGenerator()

        subject = issuer = dn.to_name()
        private_key = key_generator.generate_rsa_key(key_size)

        not_before = utils.now_utc()
        not_after = not_before + timedelta(days=validity_days)

        cert_builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer)
            .public_key(private_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
        )
        cert_builder = cls._add_root_ca_extensions(cert_builder, private_key, dns_name)

        try:
            certificate = cert_builder.sign(private_key=private_key, algorithm=hashes.SHA256())
        except (ValueError, TypeError) as e:
            raise SigningError(str(e), subject=dn.to_string()) from e

        utils.logger.info("Root CA created: %s", certificate.subject.rfc4514_string())

        return cls(dn, private_key, certificate)

    @staticmethod
    def _add_root_ca_extensions(
            cert_builder: x509.CertificateBuilder,
            private_key: rsa.RSAPrivateKey,
            dns_name: Optional[str]
    ) -> x509.CertificateBuilder:
        """Adds the X.509v3 extensions of a root that signs leaves only"""

        # CA=TRUE, pathLength=0 (leaves only, no intermediate)
        cert_builder = cert_builder.add_extension(
            x509.BasicConstraints(ca=True, path_length=0),
            critical=True
        )

        cert_builder = cert_builder.add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False
            ),
            critical=True
        )

        cert_builder = cert_builder.add_extension(
            x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
            critical=False
        )

        # Self-signed: same as the SubjectKeyIdentifier
        cert_builder = cert_builder.add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(private_key.public_key()),
            critical=False
        )

        if dns_name:
            cert_builder = cert_builder.add_extension(
                subject_alt_name(dns_name),
                critical=False
            )

        return cert_builder

    # ============================================
    # 🔢 SERIALS
    # ============================================

    def issue_serial(self) -> int:
        """
        Allocates the next serial number

        Returns:
            int: Strictly increasing serial, starting at 0x1000
        """
        serial = self._next_serial
        self._next_serial += 1
        return serial

    # ============================================
    # 🔏 SIGNING
    # ============================================

    @property
    def private_key(self) -> Optional[rsa.RSAPrivateKey]:
        return self._private_key

    @property
    def not_valid_before(self) -> datetime:
        return self.certificate.not_valid_before_utc

    @property
    def not_valid_after(self) -> datetime:
        return self.certificate.not_valid_after_utc

    def sign(self, cert_builder: x509.CertificateBuilder) -> x509.Certificate:
        """
        Signs a certificate builder with the root key

        Raises:
            SigningError: If the key was discarded or the backend refuses to sign
        """
        if self._private_key is None:
            raise SigningError("Root CA private key has been discarded", subject=self.dn.to_string())

        try:
            return cert_builder.sign(private_key=self._private_key, algorithm=hashes.SHA256())
        except (ValueError, TypeError) as e:
            raise SigningError(str(e), subject=self.dn.to_string()) from e

    def discard(self) -> None:
        """Drops the root private key; only the certificate stays usable"""
        if self._private_key is not None:
            utils.logger.debug("Discarding root CA private key")
        self._private_key = None

    def __enter__(self) -> "CertificateAuthority":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.discard()


__all__ = ['CertificateAuthority']
