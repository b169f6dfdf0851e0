import os
import random
import shutil
import subprocess
import sys
import tempfile

import requests

from kn import command
from kn import util


RELEASES_URL = "https://api.github.com/repos/kubenow/KubeNow/releases"
SCRIPT_URL = "https://raw.githubusercontent.com/kubenow/KubeNow/{ref}/bin/kn"
REQUEST_TIMEOUT = 30

DEFAULT_VERSION = "latest-stable"
SYMBOLIC_VERSIONS = ("latest", "latest-stable", "current")

# a working kn prints this as the first line of `kn help`
USAGE_BANNER = "usage: kn "


def fetch_releases() -> list:
    try:
        resp = requests.get(RELEASES_URL, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        releases = resp.json()
    except (requests.RequestException, ValueError) as e:
        command.print_debug_traceback()
        raise command.NetworkError("could not fetch the release list: %s" % e) from e
    if type(releases) != list or any(type(release) != dict or "tag_name" not in release for release in releases):
        raise command.NetworkError("unexpected format of the release list from %s" % RELEASES_URL)
    return releases


def resolve_ref(version: str, config) -> str:
    "turn a requested version into a concrete branch or tag name"
    if version not in SYMBOLIC_VERSIONS:
        return version
    if version == "current":
        return config.branch
    releases = fetch_releases()
    if version == "latest-stable":
        releases = [release for release in releases if release.get("prerelease") is False]
    if not releases:
        raise command.NetworkError("no %s release found" % version)
    return releases[0]["tag_name"]


def fetch_script(ref: str) -> bytes:
    url = SCRIPT_URL.format(ref=ref)
    try:
        resp = requests.get(url, params={"nocache": random.randint(0, 2 ** 31)}, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as e:
        command.print_debug_traceback()
        raise command.NetworkError("could not download kn %s: %s" % (ref, e)) from e
    return resp.content


def self_check(candidate: str) -> None:
    "run `<candidate> help` and fail unless it behaves like kn"
    try:
        result = subprocess.run([candidate, "help"], stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    except OSError as e:
        command.print_debug_traceback()
        raise command.VerificationError("downloaded kn could not be executed: %s" % e) from e
    if result.returncode != 0:
        raise command.VerificationError("downloaded kn failed its self-check (exit status %d)" % result.returncode)
    if USAGE_BANNER not in result.stdout.decode(errors="replace"):
        raise command.VerificationError("downloaded kn printed unexpected output during its self-check")


def get_target() -> str:
    "the physical path of the running kn script, following symlinks"
    target = os.path.realpath(sys.argv[0])
    # under `python -m kn`, argv[0] is the package's own __main__.py
    if target.endswith(".py") or not os.path.isfile(target):
        raise command.ReplacementError("cannot upgrade %s: it is not an installed kn script" % target,
                                       "run the upgrade through the kn command on your PATH")
    return target


def replace_target(candidate: str, target: str) -> None:
    """Swap candidate in for target.

    The candidate is staged in target's directory with target's mode; target
    itself is only modified by the final os.replace.
    """
    staged = None
    try:
        fd, staged = tempfile.mkstemp(prefix=".kn-upgrade-", dir=os.path.dirname(target))
        os.close(fd)
        util.copy(candidate, staged)
        shutil.copymode(target, staged)
        os.replace(staged, target)
    except OSError as e:
        if staged is not None and os.path.exists(staged):
            os.remove(staged)
        command.print_debug_traceback()
        raise command.ReplacementError("could not replace %s: %s" % (target, e),
                                       "do you have write permission on %s?" % os.path.dirname(target)) from e


def upgrade_to(ref: str, target: str) -> None:
    with tempfile.TemporaryDirectory() as d:
        candidate = os.path.join(d, "kn")
        util.writefile(candidate, fetch_script(ref))
        util.make_executable(candidate)
        self_check(candidate)
        replace_target(candidate, target)


@command.wrap(usage_args="[version]")
def upgrade(config, *params):
    "upgrade kn to [version] (latest, latest-stable, current or a tag/branch; default latest-stable)"
    if len(params) > 1:
        command.usage_fail("upgrade takes at most one argument: [version]")
    version = params[0] if params else DEFAULT_VERSION
    target = get_target()
    ref = resolve_ref(version, config)
    print("fetching kn %s" % ref)
    upgrade_to(ref, target)
    print("upgraded %s to %s" % (target, ref))
