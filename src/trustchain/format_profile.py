"""
On-disk format conventions ("classic" and "current")
Every file name and secrets-store choice that depends on the format lives here
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from .errors import ConfigurationError


# Store identifiers used by the topology
PRIMARY_KEYSTORE = "primary_keystore"
PRIMARY_TRUSTSTORE = "primary_truststore"
SEARCH_KEYSTORE = "search_keystore"
SEARCH_TRUSTSTORE = "search_truststore"
BROWSER_BUNDLE = "browser_bundle"
SECRETS_STORE = "secrets_store"

# Names shared by both profiles
_COMMON_FILE_NAMES = {
    PRIMARY_KEYSTORE: "ssl.keystore",
    PRIMARY_TRUSTSTORE: "ssl.truststore",
    BROWSER_BUNDLE: "browser.p12",
    SECRETS_STORE: "keystore",
}

_MANIFEST_FILE_NAMES = {
    PRIMARY_KEYSTORE: "ssl-keystore-passwords.properties",
    PRIMARY_TRUSTSTORE: "ssl-truststore-passwords.properties",
    SEARCH_KEYSTORE: "ssl-keystore-passwords.properties",
    SEARCH_TRUSTSTORE: "ssl-truststore-passwords.properties",
    SECRETS_STORE: "keystore-passwords.properties",
}


@dataclass(frozen=True)
class FormatProfile:
    """
    One output convention, resolved once at the start of a run
    """
    name: str
    store_file_names: Dict[str, str]
    manifest_required: bool
    secrets_store_type: str
    secrets_key_algorithm: str
    secrets_key_size: Optional[int] = None
    manifest_file_names: Dict[str, str] = field(default_factory=lambda: dict(_MANIFEST_FILE_NAMES))

    @classmethod
    def resolve(cls, name: str) -> "FormatProfile":
        """
        Returns the profile registered under a name

        Raises:
            ConfigurationError: If the name is unknown
        """
        try:
            return PROFILES[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown format profile: {name}. Allowed values: {sorted(PROFILES)}"
            ) from None

    def file_name(self, store_id: str) -> str:
        return self.store_file_names[store_id]

    def manifest_file_name(self, store_id: str) -> Optional[str]:
        """Manifest file of a store, None when this profile emits none"""
        if not self.manifest_required:
            return None
        return self.manifest_file_names.get(store_id)


CLASSIC = FormatProfile(
    name="classic",
    store_file_names={
        **_COMMON_FILE_NAMES,
        SEARCH_KEYSTORE: "ssl.repo.client.keystore",
        SEARCH_TRUSTSTORE: "ssl.repo.client.truststore",
    },
    manifest_required=True,
    secrets_store_type="JCEKS",
    secrets_key_algorithm="DESede",
)

CURRENT = FormatProfile(
    name="current",
    store_file_names={
        **_COMMON_FILE_NAMES,
        SEARCH_KEYSTORE: "ssl-repo-client.keystore",
        SEARCH_TRUSTSTORE: "ssl-repo-client.truststore",
    },
    manifest_required=False,
    secrets_store_type="PKCS12",
    secrets_key_algorithm="AES",
    secrets_key_size=256,
)

PROFILES = {profile.name: profile for profile in (CLASSIC, CURRENT)}


__all__ = [
    'FormatProfile', 'CLASSIC', 'CURRENT', 'PROFILES',
    'PRIMARY_KEYSTORE', 'PRIMARY_TRUSTSTORE', 'SEARCH_KEYSTORE', 'SEARCH_TRUSTSTORE',
    'BROWSER_BUNDLE', 'SECRETS_STORE'
]
