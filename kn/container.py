import os
import subprocess
from typing import NamedTuple

from kn import command
from kn import configuration
from kn import preconditions


DOCKER = "docker"
MOUNT_POINT = "/KubeNow_root"

# environment variables whose names start with one of these are visible inside the container
FORWARDED_PREFIXES = ("TF_", "KN_", "GOOGLE_", "AWS_", "OS_", "ARM_")

CLOUDS = ("gce", "aws", "openstack", "azure")
INIT_ENTRY_POINT = "kn-init"


class ExecutionContext(NamedTuple):
    image: str
    host_dir: str
    entry_point: str
    arguments: tuple
    environment: dict

    def docker_command(self) -> list:
        cmd = [DOCKER, "run", "--rm", "-it",
               "-v", "%s:%s:Z" % (self.host_dir, MOUNT_POINT)]
        for name in sorted(self.environment):
            # values travel through the process environment, not the command line
            cmd += ["-e", name]
        return cmd + [self.image, self.entry_point] + list(self.arguments)


def identity_environment() -> dict:
    gids = [os.getgid()] + [gid for gid in os.getgroups() if gid != os.getgid()]
    return {"LOCAL_USER_ID": str(os.getuid()),
            "LOCAL_GROUP_IDS": " ".join(str(gid) for gid in gids)}


def forwarded_environment(environ) -> dict:
    return {name: value for name, value in environ.items() if name.startswith(FORWARDED_PREFIXES)}


def build_context(config: configuration.EffectiveConfig, host_dir: str, entry_point: str, arguments,
                  environ=None) -> ExecutionContext:
    if environ is None:
        environ = os.environ
    environment = forwarded_environment(environ)
    environment.update(config.as_environment())
    environment.update(identity_environment())
    return ExecutionContext(image=config.provisioner_image,
                            host_dir=os.path.abspath(host_dir),
                            entry_point=entry_point,
                            arguments=tuple(arguments),
                            environment=environment)


def call_docker(args: list, environment: dict = None) -> int:
    env = None
    if environment:
        env = dict(os.environ)
        env.update(environment)
    try:
        return subprocess.call(args, env=env)
    except FileNotFoundError:
        command.fail("could not run %s" % DOCKER, "is docker installed and on your PATH?")


def run(context: ExecutionContext) -> int:
    "run the context's entry point in the provisioner container; returns the container's exit status"
    return call_docker(context.docker_command(), context.environment)


def run_in(config: configuration.EffectiveConfig, host_dir: str, entry_point: str, arguments, environ=None) -> int:
    return run(build_context(config, host_dir, entry_point, arguments, environ))


@command.wrap
def pull(config):
    "pull the provisioner image"
    return call_docker([DOCKER, "pull", config.provisioner_image])


@command.wrap(usage_args="<cloud> <dir>")
def init(config, *params, environ=None):
    "create a new project for <cloud> (gce, aws, openstack, azure) in <dir>"
    if len(params) != 2:
        command.usage_fail("init expects exactly two arguments: <cloud> <dir>")
    cloud, directory = params
    if cloud not in CLOUDS:
        command.usage_fail("unsupported cloud: %s" % cloud, "choose one of: %s" % ", ".join(CLOUDS))
    directory = os.path.abspath(directory)
    if os.path.lexists(directory):
        command.fail("%s already exists" % directory, "pick a directory that does not exist yet")
    os.makedirs(directory)
    return run_in(config, directory, INIT_ENTRY_POINT, [cloud], environ)


class Passthrough(command.Command):
    "Run the subcommand's own name as the entry point, mounting the current directory."

    def __init__(self, description: str, requires_project: bool, usage_args: str = "[<args>...]"):
        super().__init__(None, usage_args=usage_args)
        self.__doc__ = description
        self.requires_project = requires_project

    def entry_point(self, name: str) -> str:
        return name

    def invoke(self, mux, name, config, params, environ=None):
        project_dir = os.getcwd()
        if self.requires_project:
            preconditions.check_project(project_dir)
        return run_in(config, project_dir, self.entry_point(name), params, environ)


class KnCommand(Passthrough):
    "Run the container's kn-<subcommand> entry point, mounting the current directory."

    def entry_point(self, name: str) -> str:
        return "kn-" + name
