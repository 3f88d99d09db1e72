import pytest

from trustchain.errors import KeyGenerationError
from trustchain.format_profile import CLASSIC, CURRENT
from trustchain.secrets_vault import SecretsVault

from conftest import FakeKeytool, option


def test_classic(fake_keytool):
    secrets = SecretsVault(fake_keytool).generate(CLASSIC, store_password="store", key_password="meta")

    call, = fake_keytool.calls
    assert call[0] == "-genseckey"
    assert option(call, "-alias") == "metadata"
    assert option(call, "-storetype") == "JCEKS"
    assert option(call, "-keyalg") == "DESede"
    assert "-keysize" not in call

    assert secrets.data == b"-genseckey JCEKS metadata\n"
    assert (secrets.store_type, secrets.algorithm, secrets.alias) == ("JCEKS", "DESede", "metadata")
    assert secrets.manifest == (
        "aliases=metadata\n"
        "keystore.password=store\n"
        "metadata.keyData=\n"
        "metadata.algorithm=DESede\n"
        "metadata.password=meta\n"
    )


def test_current(fake_keytool):
    secrets = SecretsVault(fake_keytool).generate(CURRENT, store_password="store", key_password="meta")

    call, = fake_keytool.calls
    assert option(call, "-storetype") == "PKCS12"
    assert option(call, "-keyalg") == "AES"
    assert option(call, "-keysize") == "256"
    assert option(call, "-storepass") == "store"
    assert option(call, "-keypass") == "meta"
    assert secrets.manifest is None


def test_backend_failure():
    vault = SecretsVault(FakeKeytool(fail_on="-genseckey"))
    with pytest.raises(KeyGenerationError) as exc_info:
        vault.generate(CURRENT, store_password="store", key_password="meta")
    assert exc_info.value.alias == "metadata"


def test_custom_alias(fake_keytool):
    secrets = SecretsVault(fake_keytool, alias="vault").generate(CURRENT, "store", "meta")
    assert secrets.alias == "vault"
    assert option(fake_keytool.calls[0], "-alias") == "vault"
