import sys

from kn import command
from kn import container
from kn import metadata
from kn import upgrade

main_command = command.Mux("Configure and launch the KubeNow provisioners container.", {
    "help": command.Help(),
    "version": metadata.version_command,
    "init": container.init,
    "apply": container.KnCommand("deploy the cluster described by the current project", requires_project=True),
    "destroy": container.KnCommand("destroy the cluster of the current project", requires_project=True),
    "provision": container.KnCommand("run the project's provisioning playbooks", requires_project=True),
    "scale": container.KnCommand("change the number of nodes in the cluster", requires_project=True),
    "ssh": container.KnCommand("ssh into a cluster node", requires_project=True),
    "upgrade": upgrade.upgrade,
    "pull": container.pull,
    "kubectl": container.Passthrough("run kubectl against the cluster", requires_project=True),
    "helm": container.Passthrough("run helm against the cluster", requires_project=True),
    "terraform": container.Passthrough("run terraform in the project", requires_project=True),
    "ansible": container.Passthrough("run ansible in the project", requires_project=True),
    "ansible-playbook": container.Passthrough("run ansible-playbook in the project", requires_project=True),
    "gcloud": container.Passthrough("run the Google Cloud CLI", requires_project=False),
    "openstack": container.Passthrough("run the OpenStack CLI", requires_project=False),
    "az": container.Passthrough("run the Azure CLI", requires_project=False),
    "bash": container.Passthrough("open a shell in the provisioners container", requires_project=False),
    "kubetoken": container.KnCommand("generate a token for kubeadm", requires_project=False),
    "git": container.Passthrough("run git in the current directory", requires_project=False),
})


def main(argv: list = None) -> int:
    return command.main_invoke(main_command, argv)


if __name__ == "__main__":
    sys.exit(main())
