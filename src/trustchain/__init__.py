"""
trustchain - Mutual TLS trust chain generator
==============================================

Builds, in one run, everything a repository server and its search service
need to authenticate each other:
- A root CA (serials handed out from 0x1000)
- Server+client identities for the repository and the search service
- A client-only identity for browser access
- Keystores, truststores and the browser bundle (PKCS12, JKS or JCEKS)
- A symmetric secret key protecting metadata at rest

Main modules:
- config: Constants and the GenerationConfig options
- root_ca: The certificate authority
- certificate_issuer: Leaf certificates and extension profiles
- store_assembler: Keystore/truststore encoding and manifests
- format_profile: "classic" and "current" output conventions
- topology: Which alias goes in which store, and the staged pipeline
- secrets_vault: The metadata secret key store
"""

__version__ = "1.0.0"

from . import config
from . import utils
from .config import GenerationConfig
from .errors import (
    TrustChainError, ConfigurationError, AlreadyInitializedError, InvalidSubjectError,
    KeyGenerationError, SigningError, StoreAssemblyError, DuplicateAliasError, StoreEncodingError
)
from .models import DistinguishedName, CertificateRequest, IssuedCertificate, ExtensionProfile, StoreEntry, StoreKind
from .root_ca import CertificateAuthority
from .certificate_issuer import CertificateIssuer
from .store_assembler import StoreAssembler
from .format_profile import FormatProfile
from .secrets_vault import SecretsVault
from .topology import TrustTopology, Orchestrator

__all__ = [
    'config',
    'utils',
    'GenerationConfig',
    'TrustChainError',
    'ConfigurationError',
    'AlreadyInitializedError',
    'InvalidSubjectError',
    'KeyGenerationError',
    'SigningError',
    'StoreAssemblyError',
    'DuplicateAliasError',
    'StoreEncodingError',
    'DistinguishedName',
    'CertificateRequest',
    'IssuedCertificate',
    'ExtensionProfile',
    'StoreEntry',
    'StoreKind',
    'CertificateAuthority',
    'CertificateIssuer',
    'StoreAssembler',
    'FormatProfile',
    'SecretsVault',
    'TrustTopology',
    'Orchestrator',
]
