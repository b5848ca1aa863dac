"""
kubectl launcher

Forwards its arguments to the kubectl executable selected by the current kset
environment (the _KCONFIG_KUBECTL env var). When the first argument is
``-k NICKNAME`` or ``--kconfig NICKNAME``, a one-shot local config file is
created for that nickname and used for this single invocation:

    kconfig-kubectl -k staging get pods
"""

import os
import sys
from pathlib import Path
from typing import List, Mapping, MutableMapping, Optional, Tuple

import structlog

from .config import Config
from .errors import KconfigError
from .logging_config import configure_logging, setup_logging_from_config
from .models import DEFAULT_KUBECTL
from .session import SessionConfigSynthesizer
from .shell import KUBECTL_ENV_VAR

logger = structlog.get_logger(__name__)

KCONFIG_FLAGS = ("-k", "--kconfig")


class LauncherError(KconfigError):
    """Raised when the kubectl executable cannot be selected"""
    pass


def maybe_create_local_config_file(
    args: List[str],
    environ: MutableMapping[str, str],
    config_factory=Config,
) -> Tuple[List[str], Optional[str]]:
    """Handle a leading ``--kconfig NICKNAME`` option

    On success KUBECONFIG in ``environ`` names the one-shot file.

    Returns:
        The arguments to pass on, and the nickname's kubectl executable (if any)
    """
    if len(args) < 2 or args[0] not in KCONFIG_FLAGS:
        return args, None

    nickname = args[1]
    if nickname.startswith("-"):
        raise LauncherError(f"The kconfig nickname is missing after the \"{args[0]}\" option.")

    config = config_factory()
    setup_logging_from_config(config)

    synthesizer = SessionConfigSynthesizer(config, environ=environ)
    result = synthesizer.resolve(nickname, session_mode=False)
    environ["KUBECONFIG"] = result.kubeconfig_env_var
    return args[2:], result.kubectl_executable


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def _is_same_file(path: Path, skip: Optional[Path]) -> bool:
    if skip is None:
        return False
    try:
        return path.resolve() == skip
    except OSError:
        return False


def find_executable(name: str, skip: Optional[Path], path_env: str) -> Path:
    """Locate ``name`` like a shell would, never returning ``skip``

    Raises:
        LauncherError: If no suitable executable is found
    """
    if "/" in name:
        candidate = Path(name)
        if not _is_executable(candidate):
            raise LauncherError(f"Executable not found (or is not executable): {name}")
        if _is_same_file(candidate, skip):
            raise LauncherError(f"Specified path name is this executable: {skip}")
        return candidate

    for directory in path_env.split(os.pathsep):
        candidate = Path(directory or ".") / name
        if _is_same_file(candidate, skip):
            continue
        if _is_executable(candidate):
            return candidate

    raise LauncherError(f"Executable not found or is not executable: {name}")


def select_kubectl(nickname_kubectl: Optional[str], environ: Mapping[str, str]) -> str:
    return nickname_kubectl or environ.get(KUBECTL_ENV_VAR) or DEFAULT_KUBECTL


def main(argv: Optional[List[str]] = None) -> None:
    configure_logging(level=os.environ.get("KCONFIG_LOGGING_LEVEL", "WARNING"))
    args = list(sys.argv[1:] if argv is None else argv)
    me = Path(sys.argv[0]).resolve()

    try:
        args, nickname_kubectl = maybe_create_local_config_file(args, os.environ)
        kubectl = select_kubectl(nickname_kubectl, os.environ)
        logger.debug("Looking up executable", kubectl=kubectl)
        executable = find_executable(kubectl, me, os.environ.get("PATH", ""))
    except KconfigError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    logger.debug(
        "Found executable",
        executable=str(executable),
        kubeconfig=os.environ.get("KUBECONFIG"),
    )
    try:
        os.execv(str(executable), [str(executable)] + args)
    except OSError as e:
        print(f"Unable to run {executable}: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
