"""Process-wide initialization context.

Built once by the entry point and passed to whatever needs staged fixture
files, the artifact directory or the kubeconfig path.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import threading
from pathlib import Path

from kubewait.models.config import KubeWaitConfig
from kubewait.observability.logging import get_logger

_logger = get_logger("context")

_FILE_MODE = 0o640
_DIR_MODE = 0o755


class InitContext:
    """Owns the lazily created fixture staging directory."""

    def __init__(self, fixture_root: str = "", artifact_dir: str = "", kubeconfig: str = "") -> None:
        self.fixture_root = fixture_root
        self.artifact_dir = artifact_dir
        self.kubeconfig = kubeconfig
        self._staging_dir: Path | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: KubeWaitConfig) -> InitContext:
        return cls(
            fixture_root=config.paths.fixture_root,
            artifact_dir=config.paths.artifact_dir,
            kubeconfig=config.paths.kubeconfig,
        )

    @property
    def staging_dir(self) -> Path:
        with self._lock:
            if self._staging_dir is None:
                self._staging_dir = Path(tempfile.mkdtemp(prefix="fixture-testdata-dir"))
                _logger.debug("staging_dir_created", path=str(self._staging_dir))
            return self._staging_dir

    def fixture_path(self, *elem: str) -> Path:
        """Copy a fixture file or directory into the staging dir and return its path."""
        if not elem:
            raise ValueError("must specify path")
        if not self.fixture_root:
            raise ValueError("no fixture root configured")

        relative = Path(*elem)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"fixtures must live under {self.fixture_root}, not {relative}")

        source = Path(self.fixture_root) / relative
        target = self.staging_dir / relative
        if source.is_dir():
            shutil.copytree(source, target, dirs_exist_ok=True)
            for root, dirs, files in os.walk(target):
                os.chmod(root, _DIR_MODE)
                for name in files:
                    os.chmod(os.path.join(root, name), _FILE_MODE)
        elif source.is_file():
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
            os.chmod(target, _FILE_MODE)
        else:
            raise FileNotFoundError(f"fixture {relative} not found under {self.fixture_root}")
        return target

    def artifact_path(self, *elem: str) -> Path:
        if not self.artifact_dir:
            raise ValueError("ARTIFACT_DIR is not set")
        return Path(self.artifact_dir, *elem)

    def kubeconfig_path(self) -> str:
        return self.kubeconfig

    def close(self) -> None:
        with self._lock:
            if self._staging_dir is not None:
                shutil.rmtree(self._staging_dir, ignore_errors=True)
                _logger.debug("staging_dir_removed", path=str(self._staging_dir))
                self._staging_dir = None

    def __enter__(self) -> InitContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
