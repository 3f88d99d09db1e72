import pytest
from cryptography.x509.oid import NameOID

from trustchain.errors import InvalidSubjectError
from trustchain.models import DistinguishedName, MaterialStore, StoreEntry, StoreKind


class TestDistinguishedNameParse:

    def test_slash_form(self):
        dn = DistinguishedName.parse(
            "/C=GB/ST=UK/L=Maidenhead/O=Alfresco Software Ltd./OU=Unknown/CN=Custom Alfresco CA"
        )
        assert dn.country == "GB"
        assert dn.state == "UK"
        assert dn.locality == "Maidenhead"
        assert dn.organization == "Alfresco Software Ltd."
        assert dn.organizational_unit == "Unknown"
        assert dn.common_name == "Custom Alfresco CA"

    def test_rfc4514_form(self):
        dn = DistinguishedName.parse("CN=repo, O=Example, C=FR")
        assert dn == DistinguishedName(common_name="repo", organization="Example", country="FR")

    def test_escaped_separators(self):
        assert DistinguishedName.parse(r"/O=A\/B/CN=x").organization == "A/B"
        assert DistinguishedName.parse(r"CN=x,O=Smith\, Jones").organization == "Smith, Jones"

    def test_email_attribute(self):
        dn = DistinguishedName.parse("/CN=x/emailAddress=ops@example.com")
        assert dn.email == "ops@example.com"

    @pytest.mark.parametrize("text", [
        "",
        "   ",
        "/CN=",
        "/O=org",
        "/XX=1/CN=a",
        "/CNa",
        "/CN=a/CN=b",
        "/C=GBR/CN=a",
        "/C=G1/CN=a",
    ])
    def test_malformed(self, text):
        with pytest.raises(InvalidSubjectError):
            DistinguishedName.parse(text)

    def test_error_carries_subject(self):
        with pytest.raises(InvalidSubjectError) as exc_info:
            DistinguishedName.parse("/O=org")
        assert exc_info.value.subject == "/O=org"
        assert "subject=/O=org" in str(exc_info.value)


class TestDistinguishedNameEncoding:

    def test_to_name_order(self):
        name = DistinguishedName.parse("/C=GB/O=Org/CN=Leaf").to_name()
        oids = [attribute.oid for attribute in name]
        assert oids == [NameOID.COUNTRY_NAME, NameOID.ORGANIZATION_NAME, NameOID.COMMON_NAME]

    def test_to_string(self):
        dn = DistinguishedName(common_name="Leaf", organization="Org", country="GB")
        assert dn.to_string() == "CN=Leaf,O=Org,C=GB"

    def test_to_name_rejects_oversized_country(self):
        with pytest.raises(InvalidSubjectError):
            DistinguishedName(common_name="x", country="GBR").to_name()


class TestStoreEntry:

    def test_key_entry(self, issued_primary):
        entry = StoreEntry.key_entry("primary", issued_primary, "secret")
        assert entry.is_key_entry
        assert entry.chain[0] == issued_primary.certificate
        assert entry.chain[1] == issued_primary.issuer_certificate

    def test_key_entry_survives_key_discard(self, issued_primary):
        entry = StoreEntry.key_entry("primary", issued_primary, "secret").without_key()
        assert entry.private_key is None
        assert entry.is_key_entry

    def test_trusted_entry(self, authority):
        entry = StoreEntry.trusted("root-ca", authority.certificate, "secret")
        assert not entry.is_key_entry
        assert entry.private_key is None


class TestMaterialStore:

    def test_verbatim_copy_drops_manifest(self, authority):
        store = MaterialStore(kind=StoreKind.TRUSTSTORE, store_type="PKCS12", password="pw")
        store.entries["root-ca"] = StoreEntry.trusted("root-ca", authority.certificate, "pw")
        store.data = b"encoded"
        store.manifest = "aliases=root-ca\n"

        copy = store.verbatim_copy()
        assert copy.data == store.data
        assert copy.aliases == store.aliases
        assert copy.manifest is None
        assert copy.entries is not store.entries

    def test_discard_keys(self, issued_primary):
        store = MaterialStore(kind=StoreKind.KEYSTORE, store_type="PKCS12", password="pw")
        store.entries["primary"] = StoreEntry.key_entry("primary", issued_primary, "pw")
        store.discard_keys()
        assert store.entries["primary"].private_key is None
        assert store.certificate("primary") == issued_primary.certificate
