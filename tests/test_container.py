from __future__ import annotations

import os
from pathlib import Path

import pytest

from conftest import FakeDocker
from kn import command
from kn import configuration
from kn import container


@pytest.fixture()
def config(tmp_path: Path) -> configuration.EffectiveConfig:
    return configuration.resolve({}, str(tmp_path))._replace(provisioner_image="kubenow/provisioners:test")


def test_context_forwards_only_allow_listed_variables(config: configuration.EffectiveConfig, tmp_path: Path) -> None:
    environ = {
        "AWS_ACCESS_KEY_ID": "key",
        "OS_AUTH_URL": "https://keystone",
        "TF_LOG": "DEBUG",
        "GOOGLE_CREDENTIALS": "creds",
        "ARM_CLIENT_ID": "client",
        "KN_CUSTOM": "yes",
        "HOME": "/home/someone",
        "PATH": "/usr/bin",
        "SECRET_TOKEN": "nope",
    }

    context = container.build_context(config, str(tmp_path), "kn-apply", [], environ)

    for name in ("AWS_ACCESS_KEY_ID", "OS_AUTH_URL", "TF_LOG", "GOOGLE_CREDENTIALS", "ARM_CLIENT_ID", "KN_CUSTOM"):
        assert context.environment[name] == environ[name]
    for name in ("HOME", "PATH", "SECRET_TOKEN"):
        assert name not in context.environment
    assert context.environment["LOCAL_USER_ID"] == str(os.getuid())
    assert context.environment["LOCAL_GROUP_IDS"].split()[0] == str(os.getgid())


def test_context_carries_effective_configuration(config: configuration.EffectiveConfig, tmp_path: Path) -> None:
    config = config._replace(branch="v2", plugin_name="acme/plugin-x")

    context = container.build_context(config, str(tmp_path), "kn-apply", [], {"KN_GIT_BRANCH": "stale"})

    assert context.environment["KN_GIT_BRANCH"] == "v2"
    assert context.environment["KN_PLUGIN_NAME"] == "acme/plugin-x"
    assert context.environment["KN_PROVISIONERS_IMG"] == "kubenow/provisioners:test"
    assert context.image == "kubenow/provisioners:test"


def test_context_mounts_absolute_directory(config: configuration.EffectiveConfig, tmp_path: Path,
                                           monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    context = container.build_context(config, ".", "bash", [], {})

    assert os.path.isabs(context.host_dir)
    assert context.host_dir == os.path.abspath(str(tmp_path))


def test_docker_command_layout(config: configuration.EffectiveConfig, tmp_path: Path) -> None:
    context = container.build_context(config, str(tmp_path), "kubectl", ["get", "pods"], {"AWS_SECRET_ACCESS_KEY": "s3cr3t"})

    args = context.docker_command()

    assert args[:4] == ["docker", "run", "--rm", "-it"]
    assert "%s:/KubeNow_root:Z" % tmp_path in args
    assert args[-3:] == ["kubectl", "get", "pods"]
    assert args[-4] == "kubenow/provisioners:test"
    assert "AWS_SECRET_ACCESS_KEY" in args
    assert not any("s3cr3t" in arg for arg in args)


def test_run_propagates_exit_status_and_passes_values(config: configuration.EffectiveConfig, tmp_path: Path,
                                                      docker: FakeDocker) -> None:
    docker.returncode = 3
    context = container.build_context(config, str(tmp_path), "terraform", ["plan"], {"TF_VAR_x": "1"})

    assert container.run(context) == 3

    args, env = docker.calls[0]
    assert args[-2:] == ["terraform", "plan"]
    assert env["TF_VAR_x"] == "1"
    assert env["KN_PROVISIONERS_IMG"] == "kubenow/provisioners:test"


def test_missing_docker_binary_fails(config: configuration.EffectiveConfig, monkeypatch: pytest.MonkeyPatch) -> None:
    def missing(args, env=None):
        raise FileNotFoundError(args[0])

    monkeypatch.setattr(container.subprocess, "call", missing)

    with pytest.raises(command.CommandFailedException, match="could not run docker"):
        container.pull(config)


def test_pull_fetches_configured_image(config: configuration.EffectiveConfig, docker: FakeDocker) -> None:
    assert container.pull(config) == 0

    assert docker.last_args == ["docker", "pull", "kubenow/provisioners:test"]


def test_init_creates_project_and_runs_kn_init(config: configuration.EffectiveConfig, tmp_path: Path,
                                              docker: FakeDocker) -> None:
    target = tmp_path / "new-cluster"

    assert container.init(config, "aws", str(target)) == 0

    assert target.is_dir()
    args = docker.last_args
    assert args[-2:] == ["kn-init", "aws"]
    assert "%s:/KubeNow_root:Z" % target in args


@pytest.mark.parametrize("cloud", ["digitalocean", "AWS", ""])
def test_init_rejects_unknown_cloud(config: configuration.EffectiveConfig, tmp_path: Path, docker: FakeDocker,
                                    cloud: str) -> None:
    target = tmp_path / "new-cluster"

    with pytest.raises(command.UsageError):
        container.init(config, cloud, str(target))

    assert not target.exists()
    assert docker.calls == []


@pytest.mark.parametrize("kind", ["directory", "file"])
def test_init_refuses_existing_path(config: configuration.EffectiveConfig, tmp_path: Path, docker: FakeDocker,
                                    kind: str) -> None:
    target = tmp_path / "existing"
    if kind == "directory":
        target.mkdir()
    else:
        target.write_text("data", encoding="utf-8")

    with pytest.raises(command.CommandFailedException, match="already exists"):
        container.init(config, "gce", str(target))

    assert docker.calls == []


@pytest.mark.parametrize("params", [(), ("gce",), ("gce", "a", "b")])
def test_init_requires_two_arguments(config: configuration.EffectiveConfig, docker: FakeDocker, params: tuple) -> None:
    with pytest.raises(command.UsageError):
        container.init(config, *params)

    assert docker.calls == []


def test_entry_point_strategies() -> None:
    assert container.Passthrough("run kubectl", requires_project=True).entry_point("kubectl") == "kubectl"
    assert container.KnCommand("deploy", requires_project=True).entry_point("apply") == "kn-apply"
