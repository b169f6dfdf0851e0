import argparse
import inspect
import os
import sys
import traceback

from kn import configuration


ANSI_ESCAPE_CODE_RED = "\x1b[1;31m"
ANSI_ESCAPE_CODE_YELLOW = "\x1b[1;33m"
ANSI_ESCAPE_CODE_RESET = "\x1b[1;0m"

DEBUG_ENV = "KN_DEBUG"


class CommandFailedException(Exception):
    exit_code = 1

    def __init__(self, message, hint=None):
        super().__init__(message)
        self.hint = hint

    def __str__(self):
        return '{}command failed: {}{}{}'.format(
            ANSI_ESCAPE_CODE_RED,
            super().__str__(),
            '\n{}{}'.format(ANSI_ESCAPE_CODE_YELLOW, self.hint)
            if self.hint is not None else '',
            ANSI_ESCAPE_CODE_RESET)


class UsageError(CommandFailedException):
    pass


class PreconditionError(CommandFailedException):
    pass


class NetworkError(CommandFailedException):
    pass


class VerificationError(CommandFailedException):
    pass


class ReplacementError(CommandFailedException):
    pass


def fail(message: str, hint: str = None) -> None:
    raise CommandFailedException(message, hint)


def usage_fail(message: str, hint: str = None) -> None:
    raise UsageError(message, hint)


def print_debug_traceback() -> None:
    print("[set %s for traceback]" % DEBUG_ENV, file=sys.stderr)
    if os.environ.get(DEBUG_ENV):
        traceback.print_exc()


class Command:
    """A routable subcommand.

    The wrapped function receives the effective configuration followed by the
    positional arguments that came after the subcommand name. A function that
    takes an ``environ`` keyword also receives the environment kn started with.
    Its return value, if any, is the exit status.
    """

    def __init__(self, func, usage_args: str = ""):
        self.func = func
        self.usage_args = usage_args

    # so that this can still be called as the original function
    def __call__(self, *args, **kwargs):
        return self.func(*args, **kwargs)

    def summary(self) -> str:
        doc = inspect.getdoc(self)
        return doc.split('\n')[0] if doc else ""

    def invoke(self, mux: "Mux", name: str, config, params: list, environ=None) -> int:
        sig = inspect.signature(self.func)
        kwargs = {"environ": environ} if "environ" in sig.parameters else {}
        # fail early if arguments do not match function signature
        try:
            sig.bind(config, *params, **kwargs)
        except TypeError:
            raise UsageError("wrong number of arguments for %s" % name) from None
        result = self.func(config, *params, **kwargs)
        return 0 if result is None else result


def wrap(f=None, usage_args: str = ""):
    if f is None:
        return lambda g: wrap(g, usage_args=usage_args)
    cmd = Command(f, usage_args=usage_args)
    cmd.__doc__ = f.__doc__
    return cmd


class Help(Command):
    "print this message"

    def __init__(self):
        super().__init__(None)

    def invoke(self, mux, name, config, params, environ=None):
        mux.print_help(sys.stdout)
        return 0


class OrderedOption(argparse.Action):
    "Record (option, value) pairs in the order they appear on the command line."

    def __call__(self, parser, namespace, values, option_string=None):
        namespace.options = list(getattr(namespace, "options", None) or []) + [(self.dest, values)]


class ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


OPTIONS = [
    (("-p", "--preset"), "preset", "<preset>", "load configuration from a named preset"),
    (("-i", "--docker-image"), "docker_image", "<image>", "provisioner container image"),
    (("-b", "--branch"), "branch", "<branch>", "KubeNow branch or tag to deploy"),
    (("-r", "--plugin-repo"), "plugin_repo", "<url>", "git repository of a KubeNow plugin"),
    (("-rb", "--plugin-repo-branch"), "plugin_repo_branch", "<branch>", "branch of the plugin repository"),
]


class Mux:
    def __init__(self, description, mapping):
        self.__doc__ = description
        self.mapping = mapping

    def lookup(self, name: str) -> Command:
        if name not in self.mapping:
            raise UsageError("%s is not a valid command" % name)
        return self.mapping[name]

    def commands_text(self) -> str:
        lines = ["commands:"]
        for name, subcommand in self.mapping.items():
            left = ("%s %s" % (name, subcommand.usage_args)).rstrip()
            lines.append("  {:<28}{}".format(left, subcommand.summary()))
        return "\n".join(lines)

    def parser(self) -> ArgumentParser:
        parser = ArgumentParser(
            prog="kn",
            usage="%(prog)s [options] <command> [<args>...]",
            description=self.__doc__,
            epilog=self.commands_text(),
            formatter_class=argparse.RawDescriptionHelpFormatter,
            add_help=False,
            allow_abbrev=False)
        parser.set_defaults(options=[])
        for flags, dest, metavar, help_text in OPTIONS:
            parser.add_argument(*flags, dest=dest, metavar=metavar, action=OrderedOption, help=help_text)
        parser.add_argument("command", nargs="?", help=argparse.SUPPRESS)
        parser.add_argument("params", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
        return parser

    def print_help(self, file=None) -> None:
        self.parser().print_help(file)


def main_invoke(mux: Mux, argv: list = None, environ: dict = None) -> int:
    if environ is None:
        environ = os.environ
    try:
        args = mux.parser().parse_args(argv)
        if not args.command:
            print("no command specified")
            mux.print_help(sys.stdout)
            return 0
        subcommand = mux.lookup(args.command)
        # help works even when the configuration cannot be resolved
        if isinstance(subcommand, Help):
            return subcommand.invoke(mux, args.command, None, args.params, environ)
        config = configuration.resolve(environ, os.getcwd())
        config = configuration.apply_options(config, args.options, environ)
        configuration.check_dispatchable(config)
        return subcommand.invoke(mux, args.command, config, args.params, environ)
    except UsageError as e:
        print(e, file=sys.stderr)
        mux.print_help(sys.stderr)
        return e.exit_code
    except CommandFailedException as e:
        print(e, file=sys.stderr)
        return e.exit_code
