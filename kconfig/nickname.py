"""
Nickname lookup and parsing

A nickname definition is a shell-like string: an optional kubectl executable
name followed by kubectl-style options, e.g.

    kubectl-1.21.0 --context staging --namespace testing
"""

import shlex
from typing import List, Sequence

import click
import structlog

from .errors import NicknameError
from .models import KconfigOptions, NicknameDefinition

logger = structlog.get_logger(__name__)


def _option_params() -> List[click.Parameter]:
    return [
        click.Option(["--kubeconfig"], metavar="FILE"),
        click.Option(["--context"], metavar="NAME"),
        click.Option(["-n", "--namespace"], metavar="NAME"),
        click.Option(["--user"], metavar="NAME"),
        click.Option(["--teleport-proxy", "teleport_proxy"], metavar="NAME"),
    ]


_OPTIONS_COMMAND = click.Command(
    "kconfig-options",
    params=_option_params(),
    add_help_option=False,
    context_settings={"allow_extra_args": True},
)


def parse_options(args: Sequence[str], source: str = "kconfig specification") -> KconfigOptions:
    """Parse kubectl-style options into KconfigOptions

    Raises:
        NicknameError: On unknown flags, missing values or positional arguments
    """
    try:
        ctx = _OPTIONS_COMMAND.make_context("kconfig", list(args))
    except click.UsageError as e:
        raise NicknameError(f"Error parsing {source}: {e.format_message()}") from e

    if ctx.args:
        raise NicknameError(
            f"The {source} has unrecognized arguments: {shlex.join(ctx.args)}"
        )

    return KconfigOptions(**ctx.params)


def parse_nickname_definition(definition: str) -> NicknameDefinition:
    """Parse a nickname definition string

    Raises:
        NicknameError: If the definition is empty or malformed
    """
    try:
        args = shlex.split(definition)
    except ValueError as e:
        raise NicknameError(f"Error parsing kconfig specification \"{definition}\": {e}") from e

    if not args:
        raise NicknameError("The kconfig specification is empty")

    kubectl_executable = None
    if args[0] and not args[0].startswith("-"):
        kubectl_executable = args[0]
        args = args[1:]

    definition_obj = NicknameDefinition(
        kubectl_executable=kubectl_executable,
        options=parse_options(args),
    )
    logger.debug(
        "Parsed kconfig definition",
        kubectl_executable=kubectl_executable,
        options=definition_obj.options.model_dump(exclude_none=True),
    )
    return definition_obj


def lookup_nickname(nicknames: dict, nickname: str) -> str:
    """Return the definition text of a nickname

    Raises:
        NicknameError: If the nickname is not defined
    """
    try:
        return nicknames[nickname]
    except KeyError:
        raise NicknameError(f"Nickname \"{nickname}\" is not defined.") from None


def complete_nicknames(nicknames: dict, prefix: str) -> List[str]:
    """Nicknames that start with prefix, sorted"""
    return sorted(name for name in nicknames if name.startswith(prefix))
