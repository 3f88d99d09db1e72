"""
RSA key generator
Generation and PEM serialization of private keys
"""

from typing import Optional

from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization
from cryptography.exceptions import UnsupportedAlgorithm
from tqdm import tqdm

from . import config
from . import utils
from .errors import KeyGenerationError


class KeyGenerator:
    """
    Generates and serializes RSA private keys
    """

    def __init__(self, show_progress: bool = False):
        """
        Args:
            show_progress: Display a progress bar while generating
        """
        self.show_progress = show_progress

    # ============================================
    # 🔐 RSA KEY GENERATION
    # ============================================

    def generate_rsa_key(self, key_size: int) -> rsa.RSAPrivateKey:
        """
        Generates an RSA key pair

        Args:
            key_size: Key size in bits (1024, 2048, 3072, 4096)

        Returns:
            RSAPrivateKey: Generated private key

        Raises:
            KeyGenerationError: If the key size is not supported or the backend fails
        """
        if key_size not in config.RSA_KEY_SIZES.values():
            raise KeyGenerationError(
                f"Unsupported RSA key size: {key_size}. "
                f"Allowed values: {sorted(config.RSA_KEY_SIZES.values())}"
            )

        utils.logger.debug("Generating a %d-bit RSA key", key_size)

        with tqdm(total=1, desc=f"RSA {key_size}", disable=not self.show_progress,
                  bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt}") as pbar:
            try:
                private_key = rsa.generate_private_key(
                    public_exponent=config.RSA_PUBLIC_EXPONENT,
                    key_size=key_size
                )
            except (ValueError, UnsupportedAlgorithm) as e:
                raise KeyGenerationError(str(e)) from e
            pbar.update(1)

        return private_key

    # ============================================
    # 💾 SERIALIZATION
    # ============================================

    @staticmethod
    def private_key_pem(private_key: rsa.RSAPrivateKey, password: Optional[str] = None) -> bytes:
        """
        Serializes a private key as PKCS#8 PEM

        Args:
            private_key: Key to serialize
            password: Encrypts the key (AES-256) when given

        Returns:
            bytes: PEM data
        """
        if password:
            encryption = serialization.BestAvailableEncryption(password.encode())
        else:
            encryption = serialization.NoEncryption()

        return private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=encryption
        )


__all__ = ['KeyGenerator']
