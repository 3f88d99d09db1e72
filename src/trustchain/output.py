"""
Output layout writer
Puts assembled stores, manifests and working certificates on disk
"""

import shutil
from pathlib import Path
from typing import Dict, List, Optional

from . import config, utils
from .errors import AlreadyInitializedError
from .format_profile import SECRETS_STORE


class OutputWriter:
    """
    Writes one run into an output directory it owns exclusively

    The directory must be absent or empty. If writing fails, everything the
    run created is removed again.
    """

    def __init__(self, output_dir: Path, participant_dirs: Optional[Dict[str, str]] = None):
        self.output_dir = Path(output_dir)
        self.participant_dirs = participant_dirs or config.PARTICIPANT_DIRS

    def check_precondition(self) -> None:
        """
        Raises:
            AlreadyInitializedError: If the output directory holds anything
        """
        if not self.output_dir.exists():
            return
        if not self.output_dir.is_dir():
            raise AlreadyInitializedError(f"Output path exists and is not a directory: {self.output_dir}")
        if not utils.is_empty_directory(self.output_dir):
            raise AlreadyInitializedError(f"Output directory is not empty: {self.output_dir}")

    def participant_dir(self, participant: str) -> Path:
        return self.output_dir / self.participant_dirs.get(participant, participant)

    def write(self, assembled) -> List[Path]:
        """
        Writes every artifact of a run

        Args:
            assembled: StoresAssembled result of the pipeline

        Returns:
            list: Paths written
        """
        self.check_precondition()
        created_root = not self.output_dir.exists()
        written = []

        try:
            utils.ensure_directory(self.output_dir)

            for placed in assembled.stores:
                directory = self.participant_dir(placed.participant)
                written.append(self._write(directory / placed.file_name, placed.store.data,
                                           config.PRIVATE_KEY_PERMISSIONS))
                if placed.manifest_name and placed.store.manifest is not None:
                    written.append(self._write(directory / placed.manifest_name,
                                               placed.store.manifest.encode(),
                                               config.PRIVATE_KEY_PERMISSIONS))

            primary_dir = self.participant_dir("primary")
            profile = assembled.profile
            written.append(self._write(primary_dir / profile.file_name(SECRETS_STORE),
                                       assembled.secrets.data, config.PRIVATE_KEY_PERMISSIONS))
            manifest_name = profile.manifest_file_name(SECRETS_STORE)
            if manifest_name and assembled.secrets.manifest is not None:
                written.append(self._write(primary_dir / manifest_name,
                                           assembled.secrets.manifest.encode(),
                                           config.PRIVATE_KEY_PERMISSIONS))

            certificates_dir = self.participant_dir("certificates")
            for name, data in assembled.working_files.items():
                permissions = config.CERT_PERMISSIONS if name.endswith(".cert.pem") else config.PRIVATE_KEY_PERMISSIONS
                written.append(self._write(certificates_dir / name, data, permissions))

        except BaseException:
            utils.logger.error("Writing failed, removing partial output in %s", self.output_dir)
            self._remove_partial_output(created_root)
            raise

        utils.logger.info("Wrote %d files under %s", len(written), self.output_dir)
        return written

    @staticmethod
    def _write(path: Path, data: bytes, permissions: int) -> Path:
        utils.ensure_directory(path.parent)
        path.write_bytes(data)
        utils.set_file_permissions(path, permissions)
        return path

    def _remove_partial_output(self, created_root: bool) -> None:
        if not self.output_dir.is_dir():
            return
        for child in self.output_dir.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child, ignore_errors=True)
            else:
                child.unlink()
        if created_root:
            self.output_dir.rmdir()


__all__ = ['OutputWriter']
