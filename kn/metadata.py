from kn import command


@command.wrap
def display_version(config):
    "print the KubeNow version and provisioner image in use"
    print("KubeNow version:", config.branch)
    print("Provisioner image:", config.provisioner_image)


version_command = display_version
