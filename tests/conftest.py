"""
Shared fixtures for the trustchain test suite
"""

from pathlib import Path
from typing import List, Optional

import pytest

from trustchain.config import GenerationConfig
from trustchain.keytool import Keytool, KeytoolError
from trustchain.models import CertificateRequest, DistinguishedName, ExtensionProfile
from trustchain.root_ca import CertificateAuthority
from trustchain.certificate_issuer import CertificateIssuer


CA_DN = "/C=GB/ST=UK/L=Maidenhead/O=Test Org/OU=Unknown/CN=Test CA"


class FakeKeytool(Keytool):
    """
    Records keytool invocations and appends a line per call to the target store

    fail_on names a keytool command (ex: "-genseckey") that should fail.
    """

    def __init__(self, fail_on: Optional[str] = None):
        super().__init__("fake-keytool")
        self.calls: List[List[str]] = []
        self.fail_on = fail_on

    def available(self) -> bool:
        return True

    def run(self, args: List[str]) -> str:
        command = args[0]
        self.calls.append(list(args))
        if command == self.fail_on:
            raise KeytoolError(f"keytool {command} failed", status=1, detail="simulated failure")

        store = Path(option(args, "-destkeystore") or option(args, "-keystore"))
        alias = option(args, "-destalias") or option(args, "-alias")
        store_type = option(args, "-deststoretype") or option(args, "-storetype")
        with open(store, "ab") as f:
            f.write(f"{command} {store_type} {alias}\n".encode())
        return ""

    def commands(self) -> List[str]:
        return [call[0] for call in self.calls]


def option(args: List[str], name: str) -> Optional[str]:
    """Value following a flag in a keytool argument list"""
    if name not in args:
        return None
    return args[args.index(name) + 1]


@pytest.fixture
def fake_keytool():
    return FakeKeytool()


@pytest.fixture
def authority():
    with CertificateAuthority.initialize(CA_DN, key_size=2048, validity_days=365) as ca:
        yield ca


@pytest.fixture
def issuer():
    return CertificateIssuer(validity_days=30)


@pytest.fixture
def make_request():
    def _make(name="primary", cn="Test Repository", dns_name="repo.local", key_size=2048):
        return CertificateRequest(
            name=name,
            subject=DistinguishedName(common_name=cn, organization="Test Org", country="GB"),
            key_size=key_size,
            dns_name=dns_name
        )
    return _make


@pytest.fixture
def issued_primary(authority, issuer, make_request):
    return issuer.issue(authority, make_request(), ExtensionProfile.SERVER_CLIENT_AUTH)


@pytest.fixture
def settings(tmp_path):
    """Current/enterprise settings writing into a fresh directory"""
    return GenerationConfig(
        edition="enterprise",
        format_profile="current",
        primary_dns_name="repo.local",
        search_dns_name="search.local",
        output_dir=tmp_path / "keystores"
    )
