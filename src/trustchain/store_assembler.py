"""
Store Assembler
Builds keystores and truststores from ordered alias entries
"""

import secrets
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from . import utils
from .errors import DuplicateAliasError, StoreAssemblyError, StoreEncodingError
from .keytool import Keytool, KeytoolError
from .models import MaterialStore, StoreEntry, StoreKind


class StoreAssembler:
    """
    Imports entries one by one into a store, then encodes it

    PKCS12 truststores and single-entry PKCS12 key bundles are encoded
    in-process with cryptography. Every other store, JKS/JCEKS or PKCS12,
    goes through keytool.
    """

    def __init__(self, keytool: Optional[Keytool] = None):
        self.keytool = keytool or Keytool()

    # ============================================
    # 🧩 ASSEMBLY
    # ============================================

    def assemble(
            self,
            entries: Iterable[StoreEntry],
            kind: StoreKind,
            store_type: str,
            password: str,
            manifest_required: bool = False
    ) -> MaterialStore:
        """
        Builds one store

        Args:
            entries: Entries in import order
            kind: Keystore or truststore
            store_type: PKCS12, JKS or JCEKS
            password: Store password
            manifest_required: Also render the alias/password manifest

        Returns:
            MaterialStore: Store with its encoded data

        Raises:
            DuplicateAliasError: If an alias is imported twice
            StoreAssemblyError: If an entry does not fit the store kind
            StoreEncodingError: If the encoding backend fails
        """
        store = MaterialStore(kind=kind, store_type=store_type.upper(), password=password)

        for entry in entries:
            self._import_entry(store, entry)

        if not store.entries:
            raise StoreAssemblyError(f"Refusing to build an empty {kind.value}")

        store.data = self.encode(store)
        if manifest_required:
            store.manifest = render_manifest(store)

        utils.logger.debug("Assembled %s %s with aliases %s", store.store_type, kind.value, store.aliases)
        return store

    @staticmethod
    def _import_entry(store: MaterialStore, entry: StoreEntry) -> None:
        if entry.alias in store.entries:
            raise DuplicateAliasError(
                f"Alias already present in {store.kind.value}", alias=entry.alias
            )

        if entry.is_key_entry:
            if store.kind is StoreKind.TRUSTSTORE:
                raise StoreAssemblyError("A truststore cannot hold a private key", alias=entry.alias)
            if entry.private_key is None:
                raise StoreAssemblyError("Private key has already been discarded", alias=entry.alias)
            if entry.chain[0] != entry.certificate:
                raise StoreAssemblyError("Key entry chain must start with its own certificate",
                                         alias=entry.alias)
        elif entry.private_key is not None:
            raise StoreAssemblyError("Trusted entry carries a private key", alias=entry.alias)

        store.entries[entry.alias] = entry

    # ============================================
    # 💾 ENCODING
    # ============================================

    def encode(self, store: MaterialStore) -> bytes:
        key_entries = [e for e in store.entries.values() if e.is_key_entry]

        if store.store_type == "PKCS12":
            if not key_entries:
                return self._encode_java_truststore(store)
            if len(store.entries) == 1:
                return self._encode_key_bundle(store, key_entries[0])

        # Java only reads a PKCS12 certificate bag as a trusted entry when it
        # carries the Oracle trust attribute, which cryptography writes for
        # pure truststores only
        return self._encode_with_keytool(store)

    @staticmethod
    def _encode_java_truststore(store: MaterialStore) -> bytes:
        encryption = serialization.BestAvailableEncryption(store.password.encode())
        trusted_certs = [
            pkcs12.PKCS12Certificate(e.certificate, e.alias.encode()) for e in store.entries.values()
        ]
        try:
            return pkcs12.serialize_java_truststore(trusted_certs, encryption)
        except (ValueError, TypeError) as e:
            raise StoreEncodingError(f"PKCS12 encoding failed: {e}") from e

    @staticmethod
    def _encode_key_bundle(store: MaterialStore, key_entry: StoreEntry) -> bytes:
        if key_entry.password != store.password:
            utils.logger.warning(
                "PKCS12 protects '%s' with the store password, its own password is ignored",
                key_entry.alias
            )

        try:
            return pkcs12.serialize_key_and_certificates(
                name=key_entry.alias.encode(),
                key=key_entry.private_key,
                cert=key_entry.certificate,
                cas=list(key_entry.chain[1:]),
                encryption_algorithm=serialization.BestAvailableEncryption(store.password.encode())
            )
        except (ValueError, TypeError) as e:
            raise StoreEncodingError(f"PKCS12 encoding failed: {e}", alias=key_entry.alias) from e

    def _encode_with_keytool(self, store: MaterialStore) -> bytes:
        with tempfile.TemporaryDirectory(prefix="trustchain-") as tmp:
            workdir = Path(tmp)
            target = workdir / "store"
            transfer_password = secrets.token_urlsafe(24)
            alias = None

            try:
                for index, entry in enumerate(store.entries.values()):
                    alias = entry.alias
                    if entry.is_key_entry:
                        source = workdir / f"entry-{index}.p12"
                        source.write_bytes(pkcs12.serialize_key_and_certificates(
                            name=entry.alias.encode(),
                            key=entry.private_key,
                            cert=entry.certificate,
                            cas=list(entry.chain[1:]),
                            encryption_algorithm=serialization.BestAvailableEncryption(
                                transfer_password.encode()
                            )
                        ))
                        self.keytool.import_keystore(
                            source=source,
                            source_type="PKCS12",
                            source_password=transfer_password,
                            source_alias=entry.alias,
                            destination=target,
                            destination_type=store.store_type,
                            destination_password=store.password,
                            destination_alias=entry.alias,
                            key_password=entry.password
                        )
                    else:
                        source = workdir / f"entry-{index}.pem"
                        source.write_bytes(entry.certificate.public_bytes(serialization.Encoding.PEM))
                        self.keytool.import_certificate(
                            certificate=source,
                            alias=entry.alias,
                            store=target,
                            store_type=store.store_type,
                            store_password=store.password
                        )

                return target.read_bytes()

            except KeytoolError as e:
                raise StoreEncodingError(str(e), alias=alias) from e
            except OSError as e:
                raise StoreEncodingError(f"keytool produced no store: {e}", alias=alias) from e
            finally:
                for key_file in workdir.glob("*.p12"):
                    utils.secure_delete(key_file)


# ============================================
# 📝 MANIFESTS
# ============================================

def render_manifest(store: MaterialStore) -> str:
    """
    Renders the alias/password properties of a store

    Returns:
        str: aliases line, keystore.password line, one <alias>.password line per alias
    """
    lines = [
        f"aliases={','.join(store.aliases)}",
        f"keystore.password={store.password}",
    ]
    lines += [f"{alias}.password={entry.password}" for alias, entry in store.entries.items()]
    return "\n".join(lines) + "\n"


def pkcs12_aliases(data: bytes, password: str) -> List[str]:
    """
    Lists the friendly names found in a PKCS12 store

    Args:
        data: Encoded PKCS12 store
        password: Store password

    Returns:
        list: Aliases, key entry first
    """
    bundle = pkcs12.load_pkcs12(data, password.encode())
    aliases = []
    if bundle.cert is not None and bundle.cert.friendly_name:
        aliases.append(bundle.cert.friendly_name.decode())
    aliases += [c.friendly_name.decode() for c in bundle.additional_certs if c.friendly_name]
    return aliases


__all__ = ['StoreAssembler', 'render_manifest', 'pkcs12_aliases']
