import logging
import subprocess
from typing import Dict, List, Optional, Sequence

import pytest

from nodesetup.config import NodeSetupConfig
from nodesetup.host import Host

DEFAULT_CONTAINERD_CONFIG = """version = 2
[plugins."io.containerd.grpc.v1.cri".containerd.runtimes.runc.options]
            SystemdCgroup = false
"""


class FakeHost(Host):
    """Host that records commands and downloads instead of performing them.

    File writes still happen, below ``root``.
    """

    def __init__(
        self,
        root,
        root_user: bool = True,
        machine: str = "x86_64",
        system: str = "Linux",
        executables: Sequence[str] = ("apt",),
        fail_on: Optional[Sequence[str]] = None,
    ):
        super().__init__(root=root)
        self.root_user = root_user
        self._machine = machine
        self._system = system
        self.executables = set(executables)
        self.fail_on = list(fail_on) if fail_on else None
        self.commands: List[List[str]] = []
        self.fetched: List[str] = []
        self.extracted: List[tuple] = []
        self.responses: Dict[str, bytes] = {}

    def is_root(self) -> bool:
        return self.root_user

    def which(self, command: str) -> Optional[str]:
        return f"/usr/bin/{command}" if command in self.executables else None

    def machine(self) -> str:
        return self._machine

    def system(self) -> str:
        return self._system

    def _execute(self, args, input=None, capture=False) -> str:
        self.commands.append(list(args))
        if self.fail_on is not None and list(args[:len(self.fail_on)]) == self.fail_on:
            raise subprocess.CalledProcessError(1, args)
        if list(args) == ["containerd", "config", "default"]:
            return DEFAULT_CONTAINERD_CONFIG
        return ""

    def fetch(self, url: str, step: str) -> bytes:
        self.fetched.append(url)
        return self.responses.get(url, b"ExecStart=/usr/bin/kubelet\n")

    def extract_tarball(self, url: str, dest_dir, step: str):
        self.extracted.append((url, str(dest_dir)))
        return self.path(dest_dir)

    def files(self) -> List[str]:
        """Return every file written below root, as absolute host paths."""
        return sorted(
            "/" + str(p.relative_to(self.root))
            for p in self.root.rglob("*") if p.is_file()
        )


@pytest.fixture
def host(tmp_path):
    return FakeHost(tmp_path)


@pytest.fixture
def config():
    return NodeSetupConfig.from_env({})


@pytest.fixture
def make_host(tmp_path):
    def factory(**kwargs):
        return FakeHost(tmp_path, **kwargs)
    return factory


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to streams that only existed during one test."""
    yield
    logger = logging.getLogger("nodesetup")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
