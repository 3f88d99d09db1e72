"""
Secrets Vault
One symmetric key protecting metadata at rest, independent of the trust chain
"""

import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import config, utils
from .errors import KeyGenerationError
from .format_profile import FormatProfile
from .keytool import Keytool, KeytoolError


@dataclass
class SecretsStore:
    """The encoded secrets store and its optional manifest"""
    store_type: str
    algorithm: str
    alias: str
    data: bytes
    manifest: Optional[str] = None


class SecretsVault:
    """
    Generates the secret key store through keytool -genseckey
    """

    def __init__(self, keytool: Optional[Keytool] = None, alias: str = config.ALIASES["secret"]):
        self.keytool = keytool or Keytool()
        self.alias = alias

    def generate(self, profile: FormatProfile, store_password: str, key_password: str) -> SecretsStore:
        """
        Creates the secrets store for a format profile

        Args:
            profile: Selects store type and key algorithm
            store_password: Password of the store
            key_password: Password of the secret key entry

        Returns:
            SecretsStore: Encoded store (plus manifest when the profile wants one)

        Raises:
            KeyGenerationError: If keytool cannot generate the key
        """
        with tempfile.TemporaryDirectory(prefix="trustchain-") as tmp:
            store_path = Path(tmp) / "secrets"
            try:
                self.keytool.generate_secret_key(
                    store=store_path,
                    store_type=profile.secrets_store_type,
                    store_password=store_password,
                    alias=self.alias,
                    key_password=key_password,
                    algorithm=profile.secrets_key_algorithm,
                    key_size=profile.secrets_key_size
                )
                data = store_path.read_bytes()
            except KeytoolError as e:
                raise KeyGenerationError(str(e), alias=self.alias) from e
            except OSError as e:
                raise KeyGenerationError(f"keytool produced no secrets store: {e}", alias=self.alias) from e
            finally:
                utils.secure_delete(store_path)

        utils.logger.info(
            "Secret key '%s' generated (%s in %s)",
            self.alias, profile.secrets_key_algorithm, profile.secrets_store_type
        )

        manifest = None
        if profile.manifest_required:
            manifest = self.render_manifest(profile, store_password, key_password)

        return SecretsStore(
            store_type=profile.secrets_store_type,
            algorithm=profile.secrets_key_algorithm,
            alias=self.alias,
            data=data,
            manifest=manifest
        )

    def render_manifest(self, profile: FormatProfile, store_password: str, key_password: str) -> str:
        lines = [
            f"aliases={self.alias}",
            f"keystore.password={store_password}",
            f"{self.alias}.keyData=",
            f"{self.alias}.algorithm={profile.secrets_key_algorithm}",
            f"{self.alias}.password={key_password}",
        ]
        return "\n".join(lines) + "\n"


__all__ = ['SecretsVault', 'SecretsStore']
