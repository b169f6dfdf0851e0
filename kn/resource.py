import pkgutil

RESOURCE_PACKAGE = "kn.resources"


def get_resource(name: str) -> bytes:
    try:
        b = pkgutil.get_data(RESOURCE_PACKAGE, name)
    except OSError:
        raise Exception("no such embedded resource: %s" % name) from None
    if b is None:
        raise Exception("package cannot be located or loaded: %s" % RESOURCE_PACKAGE)
    return b


def has_resource(name: str) -> bool:
    try:
        get_resource(name)
    except Exception:
        return False
    return True
