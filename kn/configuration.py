import os
import urllib.parse
from typing import NamedTuple, Optional

import jsonschema
import yaml

from kn import command
from kn import resource
from kn import util


PROJECT_CONFIG = "config.tfvars"
IMAGE_KEY = "provisioner_image"

DEFAULT_REPO = "https://github.com/kubenow/KubeNow.git"
DEFAULT_PLUGIN_REPO_BRANCH = "master"
IMAGE_NAME = "kubenow/provisioners"

PRESET_DIR_ENV = "KN_PRESET_DIR"

# EffectiveConfig field -> environment variable seen by kn and the provisioner container
ENVIRONMENT = {
    "repo": "KN_GIT_REPO",
    "branch": "KN_GIT_BRANCH",
    "plugin_repo": "KN_PLUGIN_REPO",
    "plugin_repo_branch": "KN_PLUGIN_REPO_BRANCH",
    "plugin_name": "KN_PLUGIN_NAME",
    "provisioner_image": "KN_PROVISIONERS_IMG",
}

SCHEMA = yaml.safe_load(resource.get_resource("preset-schema.yaml"))


def get_version() -> str:
    return resource.get_resource("VERSION").decode().strip()


class EffectiveConfig(NamedTuple):
    repo: str
    branch: str
    plugin_repo: str
    plugin_repo_branch: str
    plugin_name: str
    provisioner_image: str

    def as_environment(self) -> dict:
        return {variable: getattr(self, field) for field, variable in ENVIRONMENT.items()}


def defaults() -> EffectiveConfig:
    version = get_version()
    return EffectiveConfig(repo=DEFAULT_REPO,
                           branch=version,
                           plugin_repo="",
                           plugin_repo_branch=DEFAULT_PLUGIN_REPO_BRANCH,
                           plugin_name="",
                           provisioner_image="%s:%s" % (IMAGE_NAME, version))


def _parse_value(value: str) -> str:
    "the quoted segment of value if it starts with a quote, otherwise value up to any trailing comment"
    if value and value[0] in "\"'":
        end = value.find(value[0], 1)
        if end > 0:
            return value[1:end]
    for marker in ("#", "//"):
        value = value.split(marker, 1)[0]
    return value.strip()


def parse_assignments(text: str) -> dict:
    """Parse ``key = value`` lines into a dict.

    Blank lines and lines starting with ``#`` or ``//`` are skipped, as are
    lines without an ``=``. A quoted value is the text between its quotes, and
    anything after the closing quote is ignored. An unquoted value ends at a
    ``#`` or ``//`` comment. The last assignment of a key wins.
    """
    assignments = {}
    for line in text.split("\n"):
        line = line.strip()
        if not line or line.startswith("#") or line.startswith("//"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue
        assignments[key] = _parse_value(value.strip())
    return assignments


def read_assignment(path: str, key: str) -> Optional[str]:
    if not os.path.isfile(path):
        return None
    return parse_assignments(util.readfile(path).decode(errors="replace")).get(key)


def _overlay(config: EffectiveConfig, values: dict) -> EffectiveConfig:
    "replace fields of config with the non-empty entries of values"
    return config._replace(**{field: value for field, value in values.items() if value})


def resolve(environ, project_dir: str) -> EffectiveConfig:
    "built-in defaults, then the project's config.tfvars, then KN_* environment variables"
    config = defaults()
    config = _overlay(config, {"provisioner_image": read_assignment(os.path.join(project_dir, PROJECT_CONFIG),
                                                                    IMAGE_KEY)})
    return _overlay(config, {field: environ.get(variable) for field, variable in ENVIRONMENT.items()})


def derive_plugin_name(url: str) -> str:
    """Derive the plugin name from a plugin repository URL.

    https://github.com/acme/plugin-x.git and git@github.com:acme/plugin-x.git
    both become acme/plugin-x.
    """
    parsed = urllib.parse.urlsplit(url)
    if parsed.scheme and parsed.netloc:
        path = parsed.path
    elif not parsed.scheme and ":" in url and "@" in url.split(":", 1)[0]:
        # scp-like syntax: user@host:path
        path = url.split(":", 1)[1]
    else:
        command.usage_fail("cannot derive plugin name from %r" % url,
                           "expected a repository URL such as https://github.com/<owner>/<plugin>.git")
    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-len(".git")]
    segments = path.split("/")
    if not path or any(not segment for segment in segments):
        command.usage_fail("cannot derive plugin name from %r" % url,
                           "the repository URL has no usable path")
    return path


def find_preset(name: str, environ) -> Optional[bytes]:
    if os.path.isfile(name):
        return util.readfile(name)
    directories = []
    if environ.get(PRESET_DIR_ENV):
        directories.append(environ[PRESET_DIR_ENV])
    if environ.get("HOME"):
        directories.append(os.path.join(environ["HOME"], ".config", "kn", "presets"))
    for directory in directories:
        path = os.path.join(directory, name + ".yaml")
        if os.path.isfile(path):
            return util.readfile(path)
    if "/" not in name and resource.has_resource("presets/%s.yaml" % name):
        return resource.get_resource("presets/%s.yaml" % name)
    return None


def load_preset(name: str, environ) -> dict:
    contents = find_preset(name, environ)
    if contents is None:
        command.fail("no such preset: %s" % name,
                     "presets are looked up in $%s and ~/.config/kn/presets" % PRESET_DIR_ENV)
    try:
        values = yaml.safe_load(contents) or {}
        jsonschema.validate(values, SCHEMA)
    except (yaml.YAMLError, jsonschema.ValidationError) as e:
        command.fail("invalid preset %s: %s" % (name, e))
    if values.get("plugin_repo") and not values.get("plugin_name"):
        values["plugin_name"] = derive_plugin_name(values["plugin_repo"])
    return values


def apply_option(config: EffectiveConfig, option: str, value: str, environ) -> EffectiveConfig:
    if option == "preset":
        return _overlay(config, load_preset(value, environ))
    if option == "docker_image":
        return config._replace(provisioner_image=value)
    if option == "branch":
        return config._replace(branch=value)
    if option == "plugin_repo":
        return config._replace(plugin_repo=value, plugin_name=derive_plugin_name(value))
    if option == "plugin_repo_branch":
        return config._replace(plugin_repo_branch=value)
    command.usage_fail("unrecognized option: %s" % option)


def apply_options(config: EffectiveConfig, options: list, environ=None) -> EffectiveConfig:
    "apply command-line options in the order they were given"
    if environ is None:
        environ = os.environ
    for option, value in options:
        config = apply_option(config, option, value, environ)
    return config


def check_dispatchable(config: EffectiveConfig) -> None:
    if not config.provisioner_image:
        command.usage_fail("no provisioner image configured",
                           "pass -i <image> or set %s" % ENVIRONMENT["provisioner_image"])
