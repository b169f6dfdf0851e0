from __future__ import annotations

from pathlib import Path

import pytest

from kn import container


PROJECT_IMAGE = "kubenow/provisioners:project"


class FakeDocker:
    def __init__(self) -> None:
        self.calls: list[tuple[list, dict | None]] = []
        self.returncode = 0

    def __call__(self, args, env=None):
        self.calls.append((list(args), env))
        return self.returncode

    @property
    def last_args(self) -> list:
        return self.calls[-1][0]


@pytest.fixture()
def docker(monkeypatch: pytest.MonkeyPatch) -> FakeDocker:
    fake = FakeDocker()
    monkeypatch.setattr(container.subprocess, "call", fake)
    return fake


def make_project(directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "ssh_key").write_text("private\n", encoding="utf-8")
    (directory / "ssh_key.pub").write_text("ssh-rsa AAAA public\n", encoding="utf-8")
    (directory / "config.tfvars").write_text(
        '# cluster configuration\ncluster_prefix = "test"\nprovisioner_image = "%s"\n' % PROJECT_IMAGE,
        encoding="utf-8",
    )
    (directory / "ansible.cfg").write_text("[defaults]\n", encoding="utf-8")
    return directory


@pytest.fixture()
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    directory = make_project(tmp_path / "project")
    monkeypatch.chdir(directory)
    return directory
