"""
Thin wrapper around the JDK keytool
Used for the JKS/JCEKS encodings and for symmetric secret keys
"""

import shutil
import subprocess
from pathlib import Path
from typing import List, Optional


class KeytoolError(Exception):
    """
    keytool could not be started or exited with an error

    Args:
        summary: What was being attempted
        status: Exit status of keytool, if it ran
        detail: Captured output of keytool
    """

    def __init__(self, summary: str, status: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(summary)
        self.summary = summary
        self.status = status
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.summary}\n{self.detail.strip()}"
        return self.summary


class Keytool:
    """
    Runs keytool commands against store files
    """

    def __init__(self, executable: str = "keytool"):
        self.executable = executable

    def available(self) -> bool:
        return shutil.which(self.executable) is not None

    def run(self, args: List[str]) -> str:
        """
        Runs one keytool command

        Args:
            args: Arguments after the executable name

        Returns:
            str: Standard output

        Raises:
            KeytoolError: If keytool is missing or exits with a non-zero status
        """
        command = [self.executable] + args
        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except OSError as e:
            raise KeytoolError(f"Cannot run {self.executable}: {e}") from e

        if result.returncode != 0:
            raise KeytoolError(
                f"keytool {args[0]} failed",
                status=result.returncode,
                detail=result.stderr or result.stdout
            )
        return result.stdout

    # ============================================
    # 📥 IMPORTS
    # ============================================

    def import_keystore(
            self,
            source: Path,
            source_type: str,
            source_password: str,
            source_alias: str,
            destination: Path,
            destination_type: str,
            destination_password: str,
            destination_alias: str,
            key_password: str
    ) -> None:
        """Copies one key entry from a source store into a destination store"""
        self.run([
            "-importkeystore", "-noprompt",
            "-srckeystore", str(source),
            "-srcstoretype", source_type,
            "-srcstorepass", source_password,
            "-srcalias", source_alias,
            "-srckeypass", source_password,
            "-destkeystore", str(destination),
            "-deststoretype", destination_type,
            "-deststorepass", destination_password,
            "-destalias", destination_alias,
            "-destkeypass", key_password,
        ])

    def import_certificate(
            self,
            certificate: Path,
            alias: str,
            store: Path,
            store_type: str,
            store_password: str
    ) -> None:
        """Adds a trusted certificate entry to a store"""
        self.run([
            "-importcert", "-noprompt", "-trustcacerts",
            "-alias", alias,
            "-file", str(certificate),
            "-keystore", str(store),
            "-storetype", store_type,
            "-storepass", store_password,
        ])

    # ============================================
    # 🔑 SECRET KEYS
    # ============================================

    def generate_secret_key(
            self,
            store: Path,
            store_type: str,
            store_password: str,
            alias: str,
            key_password: str,
            algorithm: str,
            key_size: Optional[int] = None
    ) -> None:
        """Generates a symmetric key entry inside a store"""
        args = [
            "-genseckey",
            "-alias", alias,
            "-keypass", key_password,
            "-storepass", store_password,
            "-keystore", str(store),
            "-storetype", store_type,
            "-keyalg", algorithm,
        ]
        if key_size is not None:
            args += ["-keysize", str(key_size)]
        self.run(args)


__all__ = ['Keytool', 'KeytoolError']
