import os
import stat

import pytest

from trustchain.errors import AlreadyInitializedError
from trustchain.output import OutputWriter
from trustchain.topology import Orchestrator


def _mode(path):
    return stat.S_IMODE(path.stat().st_mode)


def _tree(root):
    return sorted(str(p.relative_to(root)) for p in root.rglob("*") if p.is_file())


class TestPrecondition:

    def test_missing_directory_is_accepted(self, tmp_path):
        OutputWriter(tmp_path / "new").check_precondition()

    def test_empty_directory_is_accepted(self, tmp_path):
        OutputWriter(tmp_path).check_precondition()

    def test_non_empty_directory(self, tmp_path):
        (tmp_path / "ssl.keystore").write_bytes(b"old")
        with pytest.raises(AlreadyInitializedError):
            OutputWriter(tmp_path).check_precondition()

    def test_default_participant_dirs(self, tmp_path):
        writer = OutputWriter(tmp_path)
        assert writer.participant_dir("client") == tmp_path / "client"
        assert writer.participant_dir("certificates") == tmp_path / "certificates"

    def test_custom_participant_dirs(self, tmp_path):
        writer = OutputWriter(tmp_path, participant_dirs={"client": "browser"})
        assert writer.participant_dir("client") == tmp_path / "browser"

    def test_path_is_a_file(self, tmp_path):
        target = tmp_path / "keystores"
        target.write_text("not a directory")
        with pytest.raises(AlreadyInitializedError):
            OutputWriter(target).check_precondition()


class TestRun:

    def test_current_layout(self, settings, fake_keytool):
        Orchestrator(settings, keytool=fake_keytool).run()

        assert _tree(settings.output_dir) == sorted([
            "analytics/ssl-repo-client.keystore",
            "analytics/ssl-repo-client.truststore",
            "certificates/browser.cert.pem",
            "certificates/browser.key.pem",
            "certificates/browser.p12",
            "certificates/ca.cert.pem",
            "certificates/ca.key.pem",
            "certificates/primary.cert.pem",
            "certificates/primary.key.pem",
            "certificates/primary.p12",
            "certificates/search.cert.pem",
            "certificates/search.key.pem",
            "certificates/search.p12",
            "client/browser.p12",
            "primary/keystore",
            "primary/ssl.keystore",
            "primary/ssl.truststore",
            "search/ssl-repo-client.keystore",
            "search/ssl-repo-client.truststore",
        ])

        search_dir = settings.output_dir / "search"
        analytics_dir = settings.output_dir / "analytics"
        for name in ("ssl-repo-client.keystore", "ssl-repo-client.truststore"):
            assert (analytics_dir / name).read_bytes() == (search_dir / name).read_bytes()

    def test_classic_manifests(self, settings, fake_keytool):
        settings.format_profile = "classic"
        Orchestrator(settings, keytool=fake_keytool).run()

        primary_dir = settings.output_dir / "primary"
        assert (primary_dir / "ssl-keystore-passwords.properties").read_text().startswith(
            "aliases=root-ca,primary\n"
        )
        assert (primary_dir / "keystore-passwords.properties").read_text().startswith("aliases=metadata\n")
        assert (settings.output_dir / "search" / "ssl.repo.client.keystore").exists()
        assert list((settings.output_dir / "analytics").glob("*.properties")) == []
        assert list((settings.output_dir / "client").glob("*.properties")) == []

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_permissions(self, settings, fake_keytool):
        Orchestrator(settings, keytool=fake_keytool).run()
        certificates_dir = settings.output_dir / "certificates"

        assert _mode(certificates_dir / "ca.key.pem") == 0o600
        assert _mode(certificates_dir / "primary.p12") == 0o600
        assert _mode(certificates_dir / "ca.cert.pem") == 0o644
        assert _mode(settings.output_dir / "primary" / "ssl.keystore") == 0o600

    def test_refuses_non_empty_directory_before_any_work(self, settings, fake_keytool):
        settings.output_dir.mkdir()
        marker = settings.output_dir / "marker"
        marker.write_text("keep me")

        with pytest.raises(AlreadyInitializedError):
            Orchestrator(settings, keytool=fake_keytool).run()

        assert fake_keytool.calls == []
        assert _tree(settings.output_dir) == ["marker"]
        assert marker.read_text() == "keep me"


class TestCleanup:

    @staticmethod
    def _failing_write(limit):
        original = OutputWriter._write
        calls = []

        def _write(path, data, permissions):
            calls.append(path)
            if len(calls) > limit:
                raise OSError("disk full")
            return original(path, data, permissions)

        return staticmethod(_write)

    def test_created_directory_removed(self, settings, fake_keytool, monkeypatch):
        monkeypatch.setattr(OutputWriter, "_write", self._failing_write(3))

        with pytest.raises(OSError, match="disk full"):
            Orchestrator(settings, keytool=fake_keytool).run()

        assert not settings.output_dir.exists()

    def test_existing_directory_emptied(self, settings, fake_keytool, monkeypatch):
        settings.output_dir.mkdir()
        monkeypatch.setattr(OutputWriter, "_write", self._failing_write(5))

        with pytest.raises(OSError):
            Orchestrator(settings, keytool=fake_keytool).run()

        assert settings.output_dir.is_dir()
        assert list(settings.output_dir.iterdir()) == []

    def test_directory_can_be_reused_after_failure(self, settings, fake_keytool, monkeypatch):
        with monkeypatch.context() as patch:
            patch.setattr(OutputWriter, "_write", self._failing_write(1))
            with pytest.raises(OSError):
                Orchestrator(settings, keytool=fake_keytool).run()

        Orchestrator(settings, keytool=fake_keytool).run()
        assert (settings.output_dir / "primary" / "ssl.keystore").exists()
