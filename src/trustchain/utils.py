"""
Utility functions for the trust chain generator
"""

import os
import hashlib
import logging
import secrets
from pathlib import Path
from datetime import datetime, timezone
from typing import Iterable

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.panel import Panel
from rich import box
from rich.markup import escape

from . import config
from .models import MaterialStore

# Rich console for display
console = Console()

logger = logging.getLogger("trustchain")


# ============================================
# 📊 LOGGING
# ============================================

def setup_logging(verbose: bool = False) -> None:
    """
    Routes the trustchain logger to the rich console

    Args:
        verbose: Log at DEBUG level instead of the configured level
    """
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL)
    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter(config.LOG_FORMAT, datefmt=config.LOG_DATE_FORMAT))

    logger.handlers[:] = [handler]
    logger.setLevel(level)
    logger.propagate = False


# ============================================
# 🔐 CRYPTO HELPERS
# ============================================

def calculate_fingerprint(cert: x509.Certificate) -> str:
    """
    Computes the SHA-256 fingerprint of a certificate

    Args:
        cert: X.509 certificate

    Returns:
        str: Fingerprint as colon separated hex pairs (ex: "A1:B2:C3:...")
    """
    digest = hashlib.sha256(cert.public_bytes(serialization.Encoding.DER)).hexdigest().upper()
    return ':'.join(digest[i:i + 2] for i in range(0, len(digest), 2))


# ============================================
# 📁 FILES
# ============================================

def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def set_file_permissions(filepath: Path, permissions: int) -> None:
    """
    Sets file permissions (Unix only, no-op on Windows)

    Args:
        filepath: File path
        permissions: Octal permissions (ex: 0o600 for rw-------)
    """
    if os.name != 'nt':
        os.chmod(filepath, permissions)


def secure_delete(filepath: Path, passes: int = 3) -> None:
    """
    Overwrites a file several times, then removes it

    Args:
        filepath: File to delete
        passes: Number of overwrite passes
    """
    if not filepath.exists():
        return

    file_size = filepath.stat().st_size

    with open(filepath, "r+b") as f:
        for _ in range(passes):
            f.seek(0)
            f.write(secrets.token_bytes(file_size))
            f.flush()
            os.fsync(f.fileno())

    filepath.unlink()


def is_empty_directory(path: Path) -> bool:
    return path.is_dir() and not any(path.iterdir())


# ============================================
# 📅 DATES
# ============================================

def now_utc() -> datetime:
    return datetime.now(timezone.utc)


# ============================================
# 🎨 RICH CLI DISPLAY
# ============================================

def print_success(message: str) -> None:
    """Prints a success message in green"""
    console.print(f"[green]{config.CLI_SYMBOLS['success']} {escape(message)}[/green]")


def print_error(message: str) -> None:
    """Prints an error message in red"""
    console.print(f"[red]{config.CLI_SYMBOLS['error']} {escape(message)}[/red]")


def print_warning(message: str) -> None:
    """Prints a warning in yellow"""
    console.print(f"[yellow]{config.CLI_SYMBOLS['warning']} {escape(message)}[/yellow]")


def print_info(message: str) -> None:
    """Prints an information line in cyan"""
    console.print(f"[cyan]{config.CLI_SYMBOLS['info']} {escape(message)}[/cyan]")


def print_header(title: str) -> None:
    """
    Prints a framed header

    Args:
        title: Header text
    """
    console.print()
    console.print(Panel.fit(
        f"[bold magenta]{title}[/bold magenta]",
        border_style="magenta",
        box=box.DOUBLE
    ))
    console.print()


def create_table(title: str, columns: Iterable[str]) -> Table:
    """
    Creates a styled rich table ready to be filled

    Args:
        title: Table title
        columns: Column names

    Returns:
        Table: Rich table
    """
    table = Table(
        title=title,
        title_style="bold cyan",
        border_style="blue",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    for col in columns:
        table.add_column(col)

    return table


def display_cert_info(cert: x509.Certificate) -> None:
    """
    Prints the main fields of an X.509 certificate

    Args:
        cert: Certificate to display
    """
    table = create_table(f"{config.CLI_SYMBOLS['cert']} Certificate", ["Field", "Value"])

    table.add_row("Subject", f"[cyan]{cert.subject.rfc4514_string()}[/cyan]")
    table.add_row("Issuer", f"[yellow]{cert.issuer.rfc4514_string()}[/yellow]")
    table.add_row("Serial", f"[green]{cert.serial_number:X}[/green]")
    table.add_row("Valid from", cert.not_valid_before_utc.strftime("%Y-%m-%d %H:%M:%S UTC"))
    table.add_row("Valid until", cert.not_valid_after_utc.strftime("%Y-%m-%d %H:%M:%S UTC"))
    table.add_row("SHA-256", f"[dim]{calculate_fingerprint(cert)}[/dim]")

    console.print(table)


def display_store_info(name: str, store: MaterialStore) -> None:
    """
    Prints the aliases of an assembled store

    Args:
        name: File name of the store
        store: Assembled store
    """
    table = create_table(
        f"{config.CLI_SYMBOLS['store']} {name} ({store.kind.value}, {store.store_type})",
        ["Alias", "Entry", "Subject"]
    )

    for alias, entry in store.entries.items():
        entry_type = "[yellow]key + chain[/yellow]" if entry.is_key_entry else "trusted cert"
        table.add_row(alias, entry_type, entry.certificate.subject.rfc4514_string())

    console.print(table)


__all__ = [
    'console', 'logger', 'setup_logging',
    'calculate_fingerprint',
    'ensure_directory', 'set_file_permissions', 'secure_delete', 'is_empty_directory',
    'now_utc',
    'print_success', 'print_error', 'print_warning', 'print_info', 'print_header',
    'create_table', 'display_cert_info', 'display_store_info'
]
