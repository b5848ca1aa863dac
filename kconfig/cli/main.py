"""
CLI front-end using Typer framework

kconfig-util is called by the kset and koff shell functions, which evaluate
whatever it writes to standard output. Errors and logs go to standard error.

Commands:
- kset: create or update the session-local kubectl config file
- koff: remove the session-local kubectl config file
- complete: list nicknames for shell completion
- version: print the kconfig version
"""

import os
from typing import Optional

import structlog
import typer
from typing_extensions import Annotated

from .. import __version__
from ..errors import KconfigError
from ..logging_config import configure_logging, log_command_execution, setup_logging_from_config

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="kconfig-util",
    help="Session-local kubectl context switching",
    add_completion=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _fail(message: str) -> None:
    typer.echo(message, err=True)
    raise typer.Exit(1)


def _load_config(ctx: typer.Context):
    """Load kconfig.yaml/kalias.txt and apply its logging settings"""
    from ..config import Config

    try:
        config = Config()
    except KconfigError as e:
        _fail(f"Error reading kconfig configuration file(s): {e}")

    setup_logging_from_config(config, debug=bool(ctx.obj and ctx.obj.get("debug")))
    return config


def _emit(statements) -> None:
    for statement in statements:
        typer.echo(statement)


@app.callback()
def main(
    ctx: typer.Context,
    debug: Annotated[bool, typer.Option("--debug", help="Enable debug-level messages")] = False,
):
    """
    kconfig: per-shell kubectl context, namespace and user selection

    Nicknames are defined in [cyan]~/.kube/kconfig.yaml[/cyan]. The
    [cyan]kset[/cyan] and [cyan]koff[/cyan] shell functions evaluate the
    output of this program.
    """
    ctx.obj = {"debug": debug}
    if debug:
        configure_logging(level="DEBUG")


@app.command()
def kset(
    ctx: typer.Context,
    nickname: Annotated[Optional[str], typer.Argument(help="Nickname, or '-' for the previous environment")] = None,
    kubeconfig: Annotated[Optional[str], typer.Option("--kubeconfig", metavar="FILE", help="Path to the kubectl config file to use")] = None,
    context: Annotated[Optional[str], typer.Option("--context", metavar="NAME", help="Context to use from the kubectl config file")] = None,
    namespace: Annotated[Optional[str], typer.Option("--namespace", "-n", metavar="NAME", help="Namespace to use")] = None,
    user: Annotated[Optional[str], typer.Option("--user", metavar="NAME", help="User to use")] = None,
    teleport_proxy: Annotated[Optional[str], typer.Option("--teleport-proxy", metavar="NAME", help="Teleport proxy to export as TELEPORT_PROXY")] = None,
):
    """
    Create or update a session-local kubectl configuration file

    The file's current context is set from the selected nickname, possibly
    modified by the override options. KUBECONFIG is set to a search path that
    makes the session-local file active.

    [bold]Examples:[/bold]
      kset dev
      kset dev -n kube-system
      kset -n other-namespace   # keep the current nickname
      kset -                    # back to the previous environment
    """
    from ..models import KconfigOptions
    from ..nickname import parse_options
    from ..session import SessionConfigSynthesizer
    from ..shell import (
        KSET_ENV_VAR,
        OLD_KSET_ENV_VAR,
        get_args_from_kset_args,
        get_nickname_from_kset_args,
        kset_statements,
    )
    from ..validation import InputValidator, validate_overrides

    config = _load_config(ctx)
    log_command_execution("kset", {
        "nickname": nickname,
        "kubeconfig": kubeconfig,
        "context": context,
        "namespace": namespace,
        "user": user,
        "teleport_proxy": teleport_proxy,
    })

    try:
        overrides = validate_overrides(KconfigOptions(
            kubeconfig=kubeconfig,
            context=context,
            namespace=namespace,
            user=user,
            teleport_proxy=teleport_proxy,
        ))

        if nickname is None:
            nickname = get_nickname_from_kset_args(os.environ.get(KSET_ENV_VAR))
            if not nickname:
                _fail("A kconfig nickname must be specified unless one is already in effect.")
            logger.debug("Deduced nickname from current environment", nickname=nickname)

        elif nickname == "-":
            previous = get_args_from_kset_args(os.environ.get(OLD_KSET_ENV_VAR))
            if not previous or not previous[0]:
                _fail("A kconfig nickname of \"-\" can only be used when a previous kconfig environment is in effect.")
            nickname = previous[0]
            if overrides.is_empty():
                # A plain "kset -" replays the previous overrides too.
                overrides = validate_overrides(
                    parse_options(previous[1:], source="previous kset environment")
                )
            logger.debug("Deduced nickname from previous environment", nickname=nickname)

        InputValidator.validate_nickname(nickname)

        result = SessionConfigSynthesizer(config).resolve(nickname, overrides, session_mode=True)
    except KconfigError as e:
        _fail(str(e))

    statements, _ = kset_statements(
        nickname,
        overrides,
        result,
        config.preferences,
        previous_kset=os.environ.get(KSET_ENV_VAR),
    )
    _emit(statements)


@app.command()
def koff(ctx: typer.Context):
    """
    Clean up the session-local kubectl config file

    Removes the session-local file named by KUBECONFIG and restores KUBECONFIG
    to its normal value.
    """
    from ..kubeconfig import expand_search_path
    from ..session import SessionConfigSynthesizer
    from ..shell import koff_statements

    if not os.environ.get("KUBECONFIG"):
        return

    config = _load_config(ctx)
    log_command_execution("koff", {"kubeconfig": os.environ.get("KUBECONFIG")})

    try:
        SessionConfigSynthesizer(config).remove_session_file()
    except KconfigError as e:
        # Still restore KUBECONFIG so the shell isn't left pointing at it.
        typer.echo(str(e), err=True)

    _emit(koff_statements(expand_search_path(config.preferences.base_kubeconfig)))


@app.command()
def complete(
    ctx: typer.Context,
    prefix: Annotated[str, typer.Argument(help="Nickname prefix entered so far")],
):
    """
    Print eligible auto-completion results

    Prints the nicknames that are valid completions of the prefix.
    """
    from ..nickname import complete_nicknames

    config = _load_config(ctx)
    for name in complete_nicknames(config.nicknames, prefix):
        typer.echo(name)


@app.command()
def version():
    """Print the kconfig version"""
    typer.echo(__version__)


def run() -> None:
    app(prog_name="kconfig-util")


if __name__ == "__main__":
    run()
