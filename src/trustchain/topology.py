"""
Trust Topology
Which aliases land in which store, and the staged pipeline that builds them
"""

from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from . import config, utils
from .certificate_issuer import CertificateIssuer
from .config import GenerationConfig
from .errors import StoreAssemblyError, TrustChainError
from .format_profile import (
    FormatProfile,
    PRIMARY_KEYSTORE, PRIMARY_TRUSTSTORE, SEARCH_KEYSTORE, SEARCH_TRUSTSTORE, BROWSER_BUNDLE
)
from .keygen import KeyGenerator
from .keytool import Keytool
from .models import (
    CertificateRequest, DistinguishedName, ExtensionProfile, IssuedCertificate,
    MaterialStore, StoreEntry, StoreKind
)
from .output import OutputWriter
from .root_ca import CertificateAuthority
from .secrets_vault import SecretsStore, SecretsVault
from .store_assembler import StoreAssembler

# ============================================
# 🗺️ DECLARATIVE TABLE
# ============================================

ROOT = "root"

ROOT_ALIAS = config.ALIASES["root"]
PRIMARY_ALIAS = config.ALIASES["primary"]
SEARCH_ALIAS = config.ALIASES["search"]
BROWSER_ALIAS = config.ALIASES["browser"]


@dataclass(frozen=True)
class Source:
    """One row of a store: alias, owner of the material, key or bare cert"""
    alias: str
    owner: str
    with_key: bool = False


@dataclass(frozen=True)
class StoreRequirement:
    participant: str
    store_id: str
    kind: StoreKind
    sources: Tuple[Source, ...]


@dataclass(frozen=True)
class Mirror:
    """A store copied verbatim from another participant"""
    participant: str
    source_participant: str
    store_id: str


REQUIREMENTS = (
    StoreRequirement("primary", PRIMARY_TRUSTSTORE, StoreKind.TRUSTSTORE, (
        Source(ROOT_ALIAS, ROOT),
        Source(SEARCH_ALIAS, "search"),
    )),
    StoreRequirement("primary", PRIMARY_KEYSTORE, StoreKind.KEYSTORE, (
        Source(ROOT_ALIAS, ROOT),
        Source(PRIMARY_ALIAS, "primary", with_key=True),
    )),
    StoreRequirement("search", SEARCH_TRUSTSTORE, StoreKind.TRUSTSTORE, (
        Source(ROOT_ALIAS, ROOT),
        Source(PRIMARY_ALIAS, "primary"),
        Source(SEARCH_ALIAS, "search"),
    )),
    StoreRequirement("search", SEARCH_KEYSTORE, StoreKind.KEYSTORE, (
        Source(ROOT_ALIAS, ROOT),
        Source(SEARCH_ALIAS, "search", with_key=True),
    )),
    StoreRequirement("client", BROWSER_BUNDLE, StoreKind.KEYSTORE, (
        Source(BROWSER_ALIAS, "browser", with_key=True),
        Source(ROOT_ALIAS, ROOT),
    )),
)

# Only for editions shipping the analytics client
ANALYTICS_MIRRORS = (
    Mirror("analytics", "search", SEARCH_KEYSTORE),
    Mirror("analytics", "search", SEARCH_TRUSTSTORE),
)


class TrustTopology:
    """
    Resolves the declarative table against the material of one run

    Read-only once built.
    """

    def __init__(
            self,
            authority_certificate: x509.Certificate,
            identities: Dict[str, IssuedCertificate],
            requirements: Tuple[StoreRequirement, ...] = REQUIREMENTS
    ):
        self.authority_certificate = authority_certificate
        self.identities = dict(identities)
        self.requirements = requirements

    def entries(self, requirement: StoreRequirement, store_password: str, key_password: str) -> List[StoreEntry]:
        """
        Builds the ordered entries of one store

        Raises:
            StoreAssemblyError: If a source identity was never issued
        """
        entries = []
        for source in requirement.sources:
            if source.owner == ROOT:
                if source.with_key:
                    raise StoreAssemblyError("The root private key never enters a store", alias=source.alias)
                entries.append(StoreEntry.trusted(source.alias, self.authority_certificate, store_password))
                continue

            issued = self.identities.get(source.owner)
            if issued is None:
                raise StoreAssemblyError(f"No certificate issued for '{source.owner}'", alias=source.alias)

            if source.with_key:
                entries.append(StoreEntry.key_entry(source.alias, issued, key_password))
            else:
                entries.append(StoreEntry.trusted(source.alias, issued.certificate, store_password))
        return entries


# ============================================
# 🚦 PIPELINE STAGES
# ============================================

STAGES = ("AuthorityReady", "PrimaryIssued", "SearchServiceIssued", "BrowserIssued", "StoresAssembled")


@dataclass(frozen=True)
class AuthorityReady:
    authority: CertificateAuthority


@dataclass(frozen=True)
class PrimaryIssued:
    authority: CertificateAuthority
    primary: IssuedCertificate


@dataclass(frozen=True)
class SearchServiceIssued:
    authority: CertificateAuthority
    primary: IssuedCertificate
    search: IssuedCertificate


@dataclass(frozen=True)
class BrowserIssued:
    authority: CertificateAuthority
    primary: IssuedCertificate
    search: IssuedCertificate
    browser: IssuedCertificate

    def identities(self) -> Dict[str, IssuedCertificate]:
        return {"primary": self.primary, "search": self.search, "browser": self.browser}


@dataclass
class PlacedStore:
    """An assembled store and where it goes in the output tree"""
    participant: str
    store_id: str
    file_name: str
    store: MaterialStore
    manifest_name: Optional[str] = None


@dataclass
class StoresAssembled:
    """
    Everything a run produced, ready to be written

    Holds no private key objects: keys only survive as encrypted bytes.
    """
    profile: FormatProfile
    authority_certificate: x509.Certificate
    certificates: Dict[str, x509.Certificate]
    stores: List[PlacedStore]
    secrets: SecretsStore
    working_files: Dict[str, bytes] = field(default_factory=dict)

    def store(self, participant: str, store_id: str) -> MaterialStore:
        for placed in self.stores:
            if placed.participant == participant and placed.store_id == store_id:
                return placed.store
        raise KeyError(f"{participant}/{store_id}")

    def participants(self) -> List[str]:
        return sorted({placed.participant for placed in self.stores})


def _expect(stage, expected_type) -> None:
    if not isinstance(stage, expected_type):
        raise TypeError(f"Expected {expected_type.__name__}, got {type(stage).__name__}")


class Orchestrator:
    """
    Drives authority, issuer, assembler and vault through the five stages

    AuthorityReady → PrimaryIssued → SearchServiceIssued → BrowserIssued → StoresAssembled
    """

    def __init__(
            self,
            settings: GenerationConfig,
            keytool: Optional[Keytool] = None,
            show_progress: bool = False
    ):
        settings.validate()
        self.settings = settings
        self.profile = FormatProfile.resolve(settings.format_profile)
        self.key_gen = KeyGenerator(show_progress=show_progress)
        self.issuer = CertificateIssuer(self.key_gen, validity_days=settings.cert_validity_days)

        keytool = keytool or Keytool()
        self.assembler = StoreAssembler(keytool)
        self.vault = SecretsVault(keytool)
        self.requirements = REQUIREMENTS

        self.current_stage: Optional[str] = None
        self._subjects: Optional[Dict[str, DistinguishedName]] = None

    @contextmanager
    def _stage(self, name: str):
        """Tags any error escaping the stage with its name"""
        self.current_stage = name
        utils.logger.info("Stage %s", name)
        try:
            yield
        except TrustChainError as e:
            if e.stage is None:
                e.stage = name
            raise

    @property
    def subjects(self) -> Dict[str, DistinguishedName]:
        if self._subjects is None:
            self._subjects = self.settings.distinguished_names()
        return self._subjects

    def _request(self, name: str, dns_name: str) -> CertificateRequest:
        return CertificateRequest(
            name=name,
            subject=self.subjects[name],
            key_size=self.settings.key_size,
            dns_name=dns_name
        )

    # ============================================
    # 1️⃣ - 4️⃣ AUTHORITY AND ISSUANCE
    # ============================================

    def create_authority(self) -> AuthorityReady:
        with self._stage("AuthorityReady"):
            authority = CertificateAuthority.initialize(
                dn=self.subjects["ca"],
                key_size=self.settings.key_size,
                validity_days=self.settings.ca_validity_days,
                dns_name=self.settings.ca_dns_name,
                key_generator=self.key_gen
            )
            return AuthorityReady(authority)

    def issue_primary(self, stage: AuthorityReady) -> PrimaryIssued:
        _expect(stage, AuthorityReady)
        with self._stage("PrimaryIssued"):
            primary = self.issuer.issue(
                stage.authority,
                self._request("primary", self.settings.primary_dns_name),
                ExtensionProfile.SERVER_CLIENT_AUTH
            )
            return PrimaryIssued(stage.authority, primary)

    def issue_search(self, stage: PrimaryIssued) -> SearchServiceIssued:
        _expect(stage, PrimaryIssued)
        with self._stage("SearchServiceIssued"):
            search = self.issuer.issue(
                stage.authority,
                self._request("search", self.settings.search_dns_name),
                ExtensionProfile.SERVER_CLIENT_AUTH
            )
            return SearchServiceIssued(stage.authority, stage.primary, search)

    def issue_browser(self, stage: SearchServiceIssued) -> BrowserIssued:
        _expect(stage, SearchServiceIssued)
        with self._stage("BrowserIssued"):
            browser = self.issuer.issue(
                stage.authority,
                self._request("browser", self.settings.effective_browser_dns_name),
                ExtensionProfile.CLIENT_AUTH_ONLY
            )
            return BrowserIssued(stage.authority, stage.primary, stage.search, browser)

    # ============================================
    # 5️⃣ ASSEMBLY
    # ============================================

    def _store_settings(self, requirement: StoreRequirement) -> Tuple[str, str, str]:
        """Store type, store password and key entry password of a requirement"""
        settings = self.settings

        if requirement.store_id == BROWSER_BUNDLE:
            return "PKCS12", settings.keystore_password, settings.keystore_password

        if requirement.kind is StoreKind.TRUSTSTORE:
            return settings.truststore_type, settings.truststore_password, settings.truststore_password

        # PKCS12 has a single password for the store and its keys
        if settings.keystore_type == "PKCS12":
            return settings.keystore_type, settings.keystore_password, settings.keystore_password
        return settings.keystore_type, settings.keystore_password, settings.effective_key_password

    def assemble_stores(self, stage: BrowserIssued) -> StoresAssembled:
        _expect(stage, BrowserIssued)
        with self._stage("StoresAssembled"):
            authority_certificate = stage.authority.certificate
            topology = TrustTopology(authority_certificate, stage.identities(), self.requirements)

            placed = []
            for requirement in topology.requirements:
                store_type, store_password, key_password = self._store_settings(requirement)
                manifest_name = self.profile.manifest_file_name(requirement.store_id)

                store = self.assembler.assemble(
                    topology.entries(requirement, store_password, key_password),
                    kind=requirement.kind,
                    store_type=store_type,
                    password=store_password,
                    manifest_required=manifest_name is not None
                )
                placed.append(PlacedStore(
                    participant=requirement.participant,
                    store_id=requirement.store_id,
                    file_name=self.profile.file_name(requirement.store_id),
                    store=store,
                    manifest_name=manifest_name
                ))

            if self.settings.analytics_enabled:
                by_key = {(p.participant, p.store_id): p for p in placed}
                for mirror in ANALYTICS_MIRRORS:
                    original = by_key[(mirror.source_participant, mirror.store_id)]
                    placed.append(PlacedStore(
                        participant=mirror.participant,
                        store_id=mirror.store_id,
                        file_name=original.file_name,
                        store=original.store.verbatim_copy()
                    ))

            secrets = self.vault.generate(
                self.profile,
                store_password=self.settings.secrets_store_password,
                key_password=self.settings.secrets_key_password
            )

            working_files = self._working_files(stage, placed)

            for item in placed:
                item.store.discard_keys()

            return StoresAssembled(
                profile=self.profile,
                authority_certificate=authority_certificate,
                certificates={name: issued.certificate for name, issued in stage.identities().items()},
                stores=placed,
                secrets=secrets,
                working_files=working_files
            )

    def _working_files(self, stage: BrowserIssued, placed: List[PlacedStore]) -> Dict[str, bytes]:
        """Individual certificates and keys written for inspection"""
        settings = self.settings
        files = {
            "ca.cert.pem": _pem(stage.authority.certificate),
            "ca.key.pem": self.key_gen.private_key_pem(stage.authority.private_key, settings.keystore_password),
        }

        browser_bundle = next(p.store for p in placed if p.store_id == BROWSER_BUNDLE)
        for name, issued in stage.identities().items():
            files[f"{name}.cert.pem"] = _pem(issued.certificate)
            files[f"{name}.key.pem"] = self.key_gen.private_key_pem(
                issued.private_key, settings.effective_key_password
            )
            if name == "browser":
                files[f"{name}.p12"] = browser_bundle.data
                continue

            bundle = self.assembler.assemble(
                [StoreEntry.key_entry(name, issued, settings.keystore_password)],
                kind=StoreKind.KEYSTORE,
                store_type="PKCS12",
                password=settings.keystore_password
            )
            files[f"{name}.p12"] = bundle.data
        return files

    # ============================================
    # ▶️ FULL RUN
    # ============================================

    def build(self) -> StoresAssembled:
        """
        Runs the five stages in memory

        Private keys are dropped on every exit path, errors included.

        Returns:
            StoresAssembled: Everything to write
        """
        if self.settings.key_password is None and self.settings.keystore_type != "PKCS12":
            utils.logger.warning("No key password configured, leaf keys reuse the keystore password")

        with ExitStack() as scope:
            ready = self.create_authority()
            scope.enter_context(ready.authority)

            primary = self.issue_primary(ready)
            scope.callback(primary.primary.discard)

            search = self.issue_search(primary)
            scope.callback(search.search.discard)

            browser = self.issue_browser(search)
            scope.callback(browser.browser.discard)

            return self.assemble_stores(browser)

    def run(self, writer: Optional[OutputWriter] = None) -> StoresAssembled:
        """
        Builds everything and writes it to the output directory

        The directory is checked before any key is generated.

        Args:
            writer: Output writer (defaults to one on settings.output_dir)

        Returns:
            StoresAssembled: What was written

        Raises:
            AlreadyInitializedError: If the output directory is not empty
        """
        writer = writer or OutputWriter(self.settings.output_dir)
        writer.check_precondition()

        assembled = self.build()
        writer.write(assembled)
        return assembled


def _pem(certificate: x509.Certificate) -> bytes:
    return certificate.public_bytes(serialization.Encoding.PEM)


__all__ = [
    'Source', 'StoreRequirement', 'Mirror', 'REQUIREMENTS', 'ANALYTICS_MIRRORS',
    'TrustTopology', 'STAGES',
    'AuthorityReady', 'PrimaryIssued', 'SearchServiceIssued', 'BrowserIssued',
    'PlacedStore', 'StoresAssembled', 'Orchestrator'
]
