"""
Exceptions raised while building the trust chain and its stores
"""

from typing import Optional


class TrustChainError(Exception):
    """
    Base class for every error raised by trustchain

    Args:
        message: Human readable description
        stage: Pipeline stage that was running (filled by the orchestrator)
        alias: Store alias involved, if any
        subject: Distinguished name involved, if any
    """

    def __init__(
            self,
            message: str,
            stage: Optional[str] = None,
            alias: Optional[str] = None,
            subject: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.alias = alias
        self.subject = subject

    def __str__(self) -> str:
        context = []
        if self.stage:
            context.append(f"stage={self.stage}")
        if self.alias:
            context.append(f"alias={self.alias}")
        if self.subject:
            context.append(f"subject={self.subject}")

        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class ConfigurationError(TrustChainError):
    """Unknown or inconsistent configuration value"""


class AlreadyInitializedError(TrustChainError):
    """The output directory already holds files"""


class InvalidSubjectError(TrustChainError):
    """A distinguished name could not be parsed"""


class KeyGenerationError(TrustChainError):
    """The backend refused to generate a key"""


class SigningError(TrustChainError):
    """The authority could not produce a valid signature"""


class StoreAssemblyError(TrustChainError):
    """A store was asked to hold material it cannot hold"""


class DuplicateAliasError(StoreAssemblyError):
    """The same alias was imported twice into one store"""


class StoreEncodingError(TrustChainError):
    """The encoding backend failed to serialize a store"""


__all__ = [
    'TrustChainError',
    'ConfigurationError',
    'AlreadyInitializedError',
    'InvalidSubjectError',
    'KeyGenerationError',
    'SigningError',
    'StoreAssemblyError',
    'DuplicateAliasError',
    'StoreEncodingError',
]
