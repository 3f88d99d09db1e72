"""
Global configuration of the trust chain generator
Holds every constant and default used by the generation run
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Dict, Any

from .errors import ConfigurationError
from .models import DistinguishedName

# ============================================
# 🔐 CRYPTOGRAPHIC PARAMETERS
# ============================================

# Supported RSA key sizes
RSA_KEY_SIZES = {
    "legacy": 1024,
    "standard": 2048,
    "medium": 3072,
    "strong": 4096
}

# Standard RSA public exponent
RSA_PUBLIC_EXPONENT = 65537

# First serial number handed out by the authority
FIRST_SERIAL_NUMBER = 0x1000

# Validity periods (days)
VALIDITY_PERIODS = {
    "root_ca": 7300,  # 20 years
    "leaf": 3650  # 10 years
}

# ============================================
# 🗂️ STORES
# ============================================

STORE_TYPES = ("PKCS12", "JKS", "JCEKS")

# Stable aliases, shared by every format profile
ALIASES = {
    "root": "root-ca",
    "primary": "primary",
    "search": "search",
    "browser": "browser",
    "secret": "metadata"
}

# Participant directories under the output directory
PARTICIPANT_DIRS = {
    "primary": "primary",
    "search": "search",
    "analytics": "analytics",
    "client": "client",
    "certificates": "certificates"
}

EDITIONS = ("community", "enterprise")

# Editions shipping the analytics client copies
EDITIONS_WITH_ANALYTICS = ("enterprise",)

FORMAT_PROFILES = ("classic", "current")

# ============================================
# 👤 DEFAULT IDENTITIES
# ============================================

DEFAULT_DN = {
    "ca": "/C=GB/ST=UK/L=Maidenhead/O=Alfresco Software Ltd./OU=Unknown/CN=Custom Alfresco CA",
    "primary": "/C=GB/ST=UK/L=Maidenhead/O=Alfresco Software Ltd./OU=Unknown/CN=Custom Alfresco Repository",
    "search": "/C=GB/ST=UK/L=Maidenhead/O=Alfresco Software Ltd./OU=Unknown/CN=Custom Alfresco Repository Client",
    "browser": "/C=GB/ST=UK/L=Maidenhead/O=Alfresco Software Ltd./OU=Unknown/CN=Custom Browser Client"
}

DEFAULT_DNS_NAME = "localhost"

# ============================================
# 🔑 DEFAULT PASSWORDS
# ============================================

DEFAULT_PASSWORDS = {
    "keystore": "keystore",
    "truststore": "truststore",
    "secrets_store": "password",
    "secrets_key": "password"
}

# ============================================
# 🎨 CLI DISPLAY
# ============================================

CLI_SYMBOLS = {
    "success": "✓",
    "error": "✗",
    "warning": "⚠",
    "info": "ℹ",
    "cert": "📜",
    "key": "🔑",
    "root": "👑",
    "store": "🗄️",
    "client": "👤",
    "server": "🖥️"
}

# ============================================
# 📊 LOGS
# ============================================

LOG_LEVEL = "INFO"
LOG_FORMAT = "%(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# ============================================
# 🔒 SECURITY
# ============================================

PRIVATE_KEY_PERMISSIONS = 0o600  # rw-------
CERT_PERMISSIONS = 0o644  # rw-r--r--

# ============================================
# ⚙️ GENERATION SETTINGS
# ============================================


@dataclass
class GenerationConfig:
    """
    Every option accepted by a generation run

    key_password is the passphrase protecting each leaf private key. When left
    unset the keystore password is reused for it, which is what the historical
    tooling always did.
    """
    edition: str = "enterprise"
    format_profile: str = "current"
    key_size: int = RSA_KEY_SIZES["standard"]

    keystore_type: str = "PKCS12"
    truststore_type: str = "PKCS12"

    keystore_password: str = DEFAULT_PASSWORDS["keystore"]
    truststore_password: str = DEFAULT_PASSWORDS["truststore"]
    secrets_store_password: str = DEFAULT_PASSWORDS["secrets_store"]
    secrets_key_password: str = DEFAULT_PASSWORDS["secrets_key"]
    key_password: Optional[str] = None

    ca_dn: str = DEFAULT_DN["ca"]
    primary_dn: str = DEFAULT_DN["primary"]
    search_dn: str = DEFAULT_DN["search"]
    browser_dn: str = DEFAULT_DN["browser"]

    ca_dns_name: str = DEFAULT_DNS_NAME
    primary_dns_name: str = DEFAULT_DNS_NAME
    search_dns_name: str = DEFAULT_DNS_NAME
    browser_dns_name: Optional[str] = None

    ca_validity_days: int = VALIDITY_PERIODS["root_ca"]
    cert_validity_days: int = VALIDITY_PERIODS["leaf"]

    output_dir: Path = Path("keystores")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "GenerationConfig":
        """
        Builds a configuration from a mapping, ignoring None values

        Args:
            values: Option names mapped to their values

        Returns:
            GenerationConfig: New configuration

        Raises:
            ConfigurationError: If an option name is unknown
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration option(s): {', '.join(unknown)}")

        config = cls(**{k: v for k, v in values.items() if v is not None})
        config.output_dir = Path(config.output_dir)
        return config

    @property
    def effective_key_password(self) -> str:
        """Passphrase used for leaf private keys"""
        return self.key_password if self.key_password is not None else self.keystore_password

    @property
    def effective_browser_dns_name(self) -> str:
        return self.browser_dns_name or self.search_dns_name

    @property
    def analytics_enabled(self) -> bool:
        return self.edition in EDITIONS_WITH_ANALYTICS

    def distinguished_names(self) -> Dict[str, DistinguishedName]:
        """
        Parses the four configured subjects

        Returns:
            dict: Participant name mapped to its parsed DN

        Raises:
            InvalidSubjectError: If one of the subjects is malformed
        """
        return {
            "ca": DistinguishedName.parse(self.ca_dn),
            "primary": DistinguishedName.parse(self.primary_dn),
            "search": DistinguishedName.parse(self.search_dn),
            "browser": DistinguishedName.parse(self.browser_dn),
        }

    def validate(self) -> None:
        """
        Checks every option before a run starts

        Raises:
            ConfigurationError: On an unknown, empty or non-ASCII value
            InvalidSubjectError: On a malformed distinguished name
        """
        if self.edition not in EDITIONS:
            raise ConfigurationError(
                f"Unknown edition: {self.edition}. Allowed values: {list(EDITIONS)}"
            )

        if self.format_profile not in FORMAT_PROFILES:
            raise ConfigurationError(
                f"Unknown format profile: {self.format_profile}. Allowed values: {list(FORMAT_PROFILES)}"
            )

        for option in ("keystore_type", "truststore_type"):
            value = getattr(self, option)
            if value.upper() not in STORE_TYPES:
                raise ConfigurationError(f"Unsupported {option}: {value}. Allowed values: {list(STORE_TYPES)}")
            setattr(self, option, value.upper())

        for option in ("keystore_password", "truststore_password",
                       "secrets_store_password", "secrets_key_password"):
            if not getattr(self, option):
                raise ConfigurationError(f"{option} must not be empty")

        if self.key_password == "":
            raise ConfigurationError("key_password must not be empty")

        for option in ("ca_validity_days", "cert_validity_days"):
            if getattr(self, option) <= 0:
                raise ConfigurationError(f"{option} must be a positive number of days")

        for option in ("ca_dns_name", "primary_dns_name", "search_dns_name", "browser_dns_name"):
            value = getattr(self, option)
            if value is None and option == "browser_dns_name":
                continue
            if not value:
                raise ConfigurationError(f"{option} must not be empty")
            # SAN dNSName values are IA5 strings: IDNs must be given as A-labels (xn--...)
            if not value.isascii():
                raise ConfigurationError(
                    f"{option} must be an ASCII DNS name, encode IDNs as A-labels: {value}"
                )

        self.distinguished_names()


__all__ = [
    'RSA_KEY_SIZES', 'RSA_PUBLIC_EXPONENT',
    'FIRST_SERIAL_NUMBER', 'VALIDITY_PERIODS',
    'STORE_TYPES', 'ALIASES', 'PARTICIPANT_DIRS',
    'EDITIONS', 'EDITIONS_WITH_ANALYTICS', 'FORMAT_PROFILES',
    'DEFAULT_DN', 'DEFAULT_DNS_NAME', 'DEFAULT_PASSWORDS',
    'CLI_SYMBOLS', 'LOG_LEVEL', 'LOG_FORMAT', 'LOG_DATE_FORMAT',
    'PRIVATE_KEY_PERMISSIONS', 'CERT_PERMISSIONS',
    'GenerationConfig'
]
