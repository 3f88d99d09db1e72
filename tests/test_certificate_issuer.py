from datetime import timedelta

import pytest
from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID

from trustchain.certificate_issuer import CertificateIssuer
from trustchain.errors import InvalidSubjectError, KeyGenerationError, SigningError, TrustChainError
from trustchain.models import ExtensionProfile
from trustchain.root_ca import CertificateAuthority

from conftest import CA_DN


def _extension(cert, ext_class):
    return cert.extensions.get_extension_for_class(ext_class).value


def test_server_client_profile(issued_primary):
    cert = issued_primary.certificate
    usages = list(_extension(cert, x509.ExtendedKeyUsage))
    assert usages == [ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]

    key_usage = _extension(cert, x509.KeyUsage)
    assert key_usage.digital_signature
    assert key_usage.key_encipherment
    assert not key_usage.key_cert_sign

    assert not _extension(cert, x509.BasicConstraints).ca


def test_client_only_profile(authority, issuer, make_request):
    issued = issuer.issue(authority, make_request(name="browser", cn="Browser"), ExtensionProfile.CLIENT_AUTH_ONLY)
    usages = list(_extension(issued.certificate, x509.ExtendedKeyUsage))
    assert usages == [ExtendedKeyUsageOID.CLIENT_AUTH]
    assert issued.profile is ExtensionProfile.CLIENT_AUTH_ONLY


def test_san_copied_verbatim(authority, issuer, make_request):
    issued = issuer.issue(authority, make_request(dns_name="Search.Example.internal"),
                          ExtensionProfile.SERVER_CLIENT_AUTH)
    san = _extension(issued.certificate, x509.SubjectAlternativeName)
    assert san.get_values_for_type(x509.DNSName) == ["Search.Example.internal"]


def test_signed_by_authority(authority, issued_primary):
    assert issued_primary.certificate.issuer == authority.certificate.subject
    issued_primary.certificate.verify_directly_issued_by(authority.certificate)
    assert issued_primary.chain == [issued_primary.certificate, authority.certificate]


def test_verify_rejects_foreign_root(issued_primary):
    with CertificateAuthority.initialize(CA_DN, 2048, 30) as other:
        with pytest.raises(SigningError):
            CertificateIssuer.verify(issued_primary, other.certificate)


def test_serials_strictly_increase(authority, issuer, make_request):
    serials = [
        issuer.issue(authority, make_request(cn=f"Leaf {i}"), ExtensionProfile.SERVER_CLIENT_AUTH).serial_number
        for i in range(3)
    ]
    assert serials == [0x1000, 0x1001, 0x1002]


def test_validity_clamped_to_authority(make_request):
    with CertificateAuthority.initialize(CA_DN, 2048, validity_days=10) as short_lived:
        issued = CertificateIssuer(validity_days=3650).issue(
            short_lived, make_request(), ExtensionProfile.SERVER_CLIENT_AUTH
        )
    cert = issued.certificate
    assert cert.not_valid_before_utc >= short_lived.not_valid_before
    assert cert.not_valid_after_utc == short_lived.not_valid_after


def test_validity_days(authority, issuer, issued_primary):
    cert = issued_primary.certificate
    assert cert.not_valid_after_utc - cert.not_valid_before_utc == timedelta(days=issuer.validity_days)


def test_request_consumed_once(authority, issuer, make_request):
    request = make_request()
    issuer.issue(authority, request, ExtensionProfile.SERVER_CLIENT_AUTH)
    with pytest.raises(TrustChainError, match="already consumed"):
        issuer.issue(authority, request, ExtensionProfile.SERVER_CLIENT_AUTH)


def test_unsupported_key_size(authority, issuer, make_request):
    with pytest.raises(KeyGenerationError):
        issuer.issue(authority, make_request(key_size=512), ExtensionProfile.SERVER_CLIENT_AUTH)


def test_discarded_authority_cannot_sign(authority, issuer, make_request):
    authority.discard()
    with pytest.raises(SigningError):
        issuer.issue(authority, make_request(), ExtensionProfile.SERVER_CLIENT_AUTH)


def test_non_ascii_dns_name(authority, issuer, make_request):
    with pytest.raises(InvalidSubjectError) as exc_info:
        issuer.issue(authority, make_request(dns_name="dépôt.local"), ExtensionProfile.SERVER_CLIENT_AUTH)
    assert exc_info.value.subject == "dépôt.local"
