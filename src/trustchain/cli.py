"""
Command line entry point
Generates the whole trust chain and its stores in one run
"""

import argparse
import sys
from typing import List, Optional

from . import config, utils
from .config import GenerationConfig
from .errors import TrustChainError
from .keytool import Keytool
from .topology import Orchestrator, StoresAssembled

# CLI flag → GenerationConfig option
_OPTION_FLAGS = (
    (("-alfrescoversion", "--edition"), "edition", {"choices": config.EDITIONS}),
    (("-alfrescoformat", "--format"), "format_profile", {"choices": config.FORMAT_PROFILES}),
    (("-keysize", "--key-size"), "key_size", {"type": int, "choices": sorted(config.RSA_KEY_SIZES.values())}),
    (("-keystoretype", "--keystore-type"), "keystore_type", {}),
    (("-truststoretype", "--truststore-type"), "truststore_type", {}),
    (("-keystorepass", "--keystore-password"), "keystore_password", {}),
    (("-truststorepass", "--truststore-password"), "truststore_password", {}),
    (("-encstorepass", "--secrets-store-password"), "secrets_store_password", {}),
    (("-encmetadatapass", "--secrets-key-password"), "secrets_key_password", {}),
    (("-cacertdname", "--ca-dn"), "ca_dn", {}),
    (("-repocertdname", "--primary-dn"), "primary_dn", {}),
    (("-solrcertdname", "--search-dn"), "search_dn", {}),
    (("-browsercertdname", "--browser-dn"), "browser_dn", {}),
    (("-caservername", "--ca-dns-name"), "ca_dns_name", {}),
    (("-alfrescoservername", "--primary-dns-name"), "primary_dns_name", {}),
    (("-solrservername", "--search-dns-name"), "search_dns_name", {}),
    (("--browser-dns-name",), "browser_dns_name", {}),
    (("--key-password",), "key_password", {}),
    (("--ca-validity-days",), "ca_validity_days", {"type": int}),
    (("--cert-validity-days",), "cert_validity_days", {"type": int}),
    (("--output-dir",), "output_dir", {}),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trustchain",
        description="Generate a root CA, mutual TLS identities and their keystores/truststores."
    )

    defaults = GenerationConfig()
    for flags, dest, extra in _OPTION_FLAGS:
        default = getattr(defaults, dest)
        parser.add_argument(
            *flags,
            dest=dest,
            default=None,
            help=f"(default: {default})",
            **extra
        )

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--keytool", default="keytool", help="Path to the JDK keytool executable")
    return parser


def settings_from_args(args: argparse.Namespace) -> GenerationConfig:
    """Turns parsed arguments into a configuration, unset flags keep their defaults"""
    values = {dest: getattr(args, dest) for _, dest, _ in _OPTION_FLAGS}
    return GenerationConfig.from_dict(values)


def print_summary(assembled: StoresAssembled, settings: GenerationConfig) -> None:
    utils.print_header(f"{config.CLI_SYMBOLS['root']} Trust chain ready ({assembled.profile.name})")
    utils.display_cert_info(assembled.authority_certificate)

    for placed in assembled.stores:
        utils.display_store_info(f"{placed.participant}/{placed.file_name}", placed.store)

    utils.print_info(
        f"Secrets store: {assembled.secrets.store_type} / {assembled.secrets.algorithm} "
        f"(alias {assembled.secrets.alias})"
    )
    utils.print_success(f"Stores written to {settings.output_dir}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    utils.setup_logging(args.verbose)

    keytool = Keytool(args.keytool)
    if not keytool.available():
        utils.print_warning(f"{args.keytool} not found: JKS/JCEKS stores and the secrets store cannot be built")

    try:
        settings = settings_from_args(args)
        orchestrator = Orchestrator(settings, keytool=keytool, show_progress=True)
        assembled = orchestrator.run()
    except TrustChainError as e:
        utils.print_error(str(e))
        return 1
    except OSError as e:
        utils.print_error(f"I/O error: {e}")
        return 1

    print_summary(assembled, settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
