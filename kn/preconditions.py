import os

from kn import command


# checked in this order; the first missing file aborts the command
PROJECT_FILES = ("ssh_key", "ssh_key.pub", "config.tfvars", "ansible.cfg")


def check_project(directory: str) -> None:
    "fail unless directory holds every file a KubeNow project needs"
    for filename in PROJECT_FILES:
        if not os.path.isfile(os.path.join(directory, filename)):
            raise command.PreconditionError(
                "%s not found in %s" % (filename, directory),
                "is this a KubeNow project? create one with: kn init <cloud> <dir>")
