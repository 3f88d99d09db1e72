"""
Certificate Issuer
Issues leaf certificates (server+client or client only) signed by the root CA
"""

from datetime import timedelta
from typing import Optional, List

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.x509.oid import ExtendedKeyUsageOID

from . import config, utils
from .errors import SigningError, TrustChainError
from .keygen import KeyGenerator
from .models import CertificateRequest, ExtensionProfile, IssuedCertificate, subject_alt_name
from .root_ca import CertificateAuthority


class CertificateIssuer:
    """
    Certificate issuer
    Signs participant certificates with the root CA
    """

    def __init__(
            self,
            key_generator: Optional[KeyGenerator] = None,
            validity_days: int = config.VALIDITY_PERIODS["leaf"]
    ):
        self.key_gen = key_generator or KeyGenerator()
        self.validity_days = validity_days
        self._consumed: List[CertificateRequest] = []

    # ============================================
    # 📜 ISSUANCE
    # ============================================

    def issue(
            self,
            authority: CertificateAuthority,
            request: CertificateRequest,
            profile: ExtensionProfile
    ) -> IssuedCertificate:
        """
        Issues a leaf certificate for a request

        Args:
            authority: Root CA signing the certificate
            request: Subject, key size and SAN DNS name of the participant
            profile: Permitted uses of the certificate

        Returns:
            IssuedCertificate: Signed certificate and its private key

        Raises:
            InvalidSubjectError: If the request DN or DNS name cannot be encoded
            KeyGenerationError: If the key size is not supported
            SigningError: If the authority cannot produce a valid signature
        """
        if any(consumed is request for consumed in self._consumed):
            raise TrustChainError("Certificate request already consumed", subject=request.subject.to_string())

        subject = request.subject.to_name()
        private_key = self.key_gen.generate_rsa_key(request.key_size)

        not_before = max(utils.now_utc(), authority.not_valid_before)
        not_after = min(not_before + timedelta(days=self.validity_days), authority.not_valid_after)

        cert_builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(authority.certificate.subject)
            .public_key(private_key.public_key())
            .serial_number(authority.issue_serial())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
        )
        cert_builder = self._add_extensions(cert_builder, private_key.public_key(),
                                            authority.certificate, profile, request.dns_name)

        certificate = authority.sign(cert_builder)
        self._consumed.append(request)

        issued = IssuedCertificate(
            name=request.name,
            certificate=certificate,
            private_key=private_key,
            issuer_certificate=authority.certificate,
            profile=profile
        )
        self.verify(issued, authority.certificate)

        utils.logger.info(
            "Issued %s certificate for %s (SN: %X)",
            profile.value, request.subject.common_name, certificate.serial_number
        )

        return issued

    def _add_extensions(
            self,
            cert_builder: x509.CertificateBuilder,
            public_key,
            issuer_cert: x509.Certificate,
            profile: ExtensionProfile,
            dns_name: str
    ) -> x509.CertificateBuilder:
        """Adds the extensions matching the profile"""

        # Always CA=False for leaf certificates
        cert_builder = cert_builder.add_extension(
            x509.BasicConstraints(ca=False, path_length=None),
            critical=True
        )

        if profile is ExtensionProfile.SERVER_CLIENT_AUTH:
            cert_builder = cert_builder.add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False
                ),
                critical=True
            )
            cert_builder = cert_builder.add_extension(
                x509.ExtendedKeyUsage([
                    ExtendedKeyUsageOID.SERVER_AUTH,
                    ExtendedKeyUsageOID.CLIENT_AUTH
                ]),
                critical=False
            )

        elif profile is ExtensionProfile.CLIENT_AUTH_ONLY:
            cert_builder = cert_builder.add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=True,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False
                ),
                critical=True
            )
            cert_builder = cert_builder.add_extension(
                x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]),
                critical=False
            )

        else:
            raise ValueError(f"Unknown extension profile: {profile}")

        cert_builder = cert_builder.add_extension(
            subject_alt_name(dns_name),
            critical=False
        )

        cert_builder = cert_builder.add_extension(
            x509.SubjectKeyIdentifier.from_public_key(public_key),
            critical=False
        )

        cert_builder = cert_builder.add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_cert.public_key()),
            critical=False
        )

        return cert_builder

    # ============================================
    # 🔍 VERIFICATION
    # ============================================

    @staticmethod
    def verify(issued: IssuedCertificate, authority_certificate: x509.Certificate) -> None:
        """
        Checks that a leaf was signed by the given root

        Raises:
            SigningError: If the signature or the issuer name does not match
        """
        try:
            issued.certificate.verify_directly_issued_by(authority_certificate)
        except (ValueError, TypeError, InvalidSignature) as e:
            raise SigningError(
                f"Certificate does not verify against the root CA: {e}",
                subject=issued.certificate.subject.rfc4514_string()
            ) from e


__all__ = ['CertificateIssuer']
