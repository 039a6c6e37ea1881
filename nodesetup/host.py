"""Access to the machine being set up.

All side effects of a run (commands, file writes, downloads) go through
:class:`Host`, so a run can be replayed in dry-run mode or pointed at a
different root directory.
"""

import io
import logging
import os
import shlex
import shutil
import subprocess
import tarfile
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence, Union

import requests

from .errors import StepFailedError
from .utils import redact_command

logger = logging.getLogger("nodesetup.host")

PathLike = Union[str, Path]


class Host:
    """Runs commands and writes files on the local machine.

    Args:
        root: Directory that absolute paths are resolved against (default: ``/``)
        dry_run: If True, only log commands and writes without executing them
        timeout: HTTP timeout in seconds for downloads
    """

    def __init__(self, root: PathLike = "/", dry_run: bool = False, timeout: int = 60):
        self.root = Path(root)
        self.dry_run = dry_run
        self.timeout = timeout
        self.session = requests.Session()

    def path(self, path: PathLike) -> Path:
        """Resolve an absolute host path under :attr:`root`."""
        return self.root / str(path).lstrip("/")

    def is_root(self) -> bool:
        return os.geteuid() == 0

    def which(self, command: str) -> Optional[str]:
        return shutil.which(command)

    def system(self) -> str:
        return os.uname().sysname

    def machine(self) -> str:
        return os.uname().machine

    def run(
        self,
        args: Sequence[str],
        step: str,
        input: Optional[str] = None,
        capture: bool = False,
    ) -> str:
        """Run a command, failing the step on a non-zero exit.

        Args:
            args: Command and arguments
            step: Name of the step the command belongs to
            input: Text passed on stdin
            capture: Return stdout instead of letting it through

        Returns:
            str: Captured stdout, or an empty string

        Raises:
            StepFailedError: If the command is missing or exits non-zero
        """
        printable = shlex.join(redact_command(args))
        if self.dry_run:
            logger.info(f"[dry-run] {printable}")
            return ""

        logger.debug(f"+ {printable}")
        try:
            return self._execute(list(args), input=input, capture=capture)
        except subprocess.CalledProcessError as e:
            raise StepFailedError(
                f"Command '{printable}' failed with exit code {e.returncode}",
                step=step,
                returncode=e.returncode
            ) from e
        except OSError as e:
            raise StepFailedError(f"Could not run '{printable}': {e}", step=step) from e

    def output(self, args: Sequence[str], step: str) -> str:
        """Run a command and return its stdout."""
        return self.run(args, step, capture=True)

    def _execute(self, args: List[str], input: Optional[str] = None, capture: bool = False) -> str:
        result = subprocess.run(
            args,
            input=input,
            stdout=subprocess.PIPE if capture else None,
            text=True,
            check=True
        )
        return result.stdout or ""

    def make_dirs(self, path: PathLike, step: str) -> Path:
        """Create a directory (and parents) if it does not exist."""
        target = self.path(path)
        if self.dry_run:
            logger.info(f"[dry-run] mkdir -p {path}")
            return target
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StepFailedError(f"Failed to create directory {path}: {e}", step=step) from e
        return target

    def write_file(self, path: PathLike, content: Union[str, bytes], step: str, mode: int = 0o644) -> Path:
        """Write a file, replacing any previous content.

        The content goes to a temporary file next to ``path`` which is then
        renamed over it, so a running binary can be replaced and an
        interrupted write never leaves a truncated file behind.
        """
        target = self.path(path)
        if self.dry_run:
            logger.info(f"[dry-run] write {path} ({len(content)} bytes)")
            return target

        logger.debug(f"Writing {path}")
        if isinstance(content, str):
            content = content.encode()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(content)
                os.chmod(tmp_name, mode)
                os.replace(tmp_name, target)
            except OSError:
                os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StepFailedError(f"Failed to write {path}: {e}", step=step) from e
        return target

    def fetch(self, url: str, step: str) -> bytes:
        """Download a URL into memory.

        Raises:
            StepFailedError: On any network error or non-2xx response
        """
        if self.dry_run:
            logger.info(f"[dry-run] GET {url}")
            return b""

        logger.debug(f"GET {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise StepFailedError(f"Failed to download {url}: {e}", step=step) from e
        return response.content

    def download(self, url: str, dest: PathLike, step: str, mode: int = 0o755) -> Path:
        """Download a URL to ``dest`` on the host."""
        return self.write_file(dest, self.fetch(url, step), step=step, mode=mode)

    def extract_tarball(self, url: str, dest_dir: PathLike, step: str) -> Path:
        """Download a gzipped tarball and unpack it into ``dest_dir``."""
        data = self.fetch(url, step)
        target = self.make_dirs(dest_dir, step)
        if self.dry_run:
            logger.info(f"[dry-run] extract {url} into {dest_dir}")
            return target

        logger.debug(f"Extracting {url} into {dest_dir}")
        try:
            with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
                self._unlink_existing(tar, target)
                tar.extractall(target, filter="data")
        except (OSError, tarfile.TarError) as e:
            raise StepFailedError(f"Failed to extract {url} into {dest_dir}: {e}", step=step) from e
        return target

    @staticmethod
    def _unlink_existing(tar: tarfile.TarFile, target: Path) -> None:
        """Remove files the archive is about to replace.

        tarfile opens existing files for writing, which fails on a binary
        that is currently running.
        """
        for member in tar.getmembers():
            member = tarfile.data_filter(member, str(target))
            dest = target / member.name
            if not member.isdir() and (dest.is_symlink() or dest.is_file()):
                dest.unlink()
