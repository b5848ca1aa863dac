"""
Session-local kubectl config file synthesis

Given a nickname and optional override options, the synthesizer writes a
minimal kubectl config file and works out the KUBECONFIG value that puts it
in front of the base configuration.

Two kinds of local files exist:
- session files, one per interactive shell, with a random name under
  $TMPDIR/kconfig/session/ and reused for as long as KUBECONFIG names them
- one-shot files, named after the nickname under $TMPDIR/kconfig/nicks/,
  used by the kubectl launcher
"""

import copy
import os
import tempfile
from pathlib import Path
from typing import Mapping, Optional

import structlog

from .config import Config
from .errors import KubeconfigError, SessionFileError
from .kubeconfig import (
    KCONFIG_CONTEXT_NAME,
    build_local_kubeconfig,
    default_kubeconfig_path,
    expand_search_path,
    read_kubeconfig,
    write_kubeconfig,
)
from .models import DEFAULT_NAMESPACE, KconfigOptions, SessionResult
from .nickname import lookup_nickname, parse_nickname_definition

logger = structlog.get_logger(__name__)


def kconfig_temp_dir(temp_root: Optional[Path] = None) -> Path:
    return Path(temp_root if temp_root is not None else tempfile.gettempdir()) / "kconfig"


def session_dir(temp_root: Optional[Path] = None) -> Path:
    return kconfig_temp_dir(temp_root) / "session"


def nickname_dir(temp_root: Optional[Path] = None) -> Path:
    return kconfig_temp_dir(temp_root) / "nicks"


def get_existing_session_filename(
    kubeconfig_env_var: Optional[str],
    temp_root: Optional[Path] = None,
) -> Optional[Path]:
    """Return the session-local file named first in a KUBECONFIG value, if any"""
    if not kubeconfig_env_var:
        return None

    first = kubeconfig_env_var.split(os.pathsep, 1)[0]
    directory = session_dir(temp_root)
    if Path(first).parent != directory:
        logger.debug("KUBECONFIG doesn't name a session config file", kubeconfig=kubeconfig_env_var)
        return None

    logger.debug("KUBECONFIG names a session config file", filename=first)
    return Path(first)


class SessionConfigSynthesizer:
    """Creates session-local and one-shot kubectl config files"""

    def __init__(
        self,
        config: Config,
        environ: Optional[Mapping[str, str]] = None,
        temp_root: Optional[Path] = None,
    ):
        self.config = config
        self.environ = os.environ if environ is None else environ
        self.temp_root = temp_root

    def resolve(
        self,
        nickname: str,
        overrides: Optional[KconfigOptions] = None,
        session_mode: bool = True,
    ) -> SessionResult:
        """Create or replace the local kubectl config file for a nickname

        Args:
            nickname: Nickname defined in kconfig.yaml or kalias.txt
            overrides: Command-line options that beat the nickname's own
            session_mode: True for a per-shell session file, False for a
                one-shot file named after the nickname

        Returns:
            The new KUBECONFIG value, kubectl executable and overrides description

        Raises:
            NicknameError: If the nickname is unknown or malformed
            KubeconfigError: If no usable context can be found
            SessionFileError: If the local file cannot be created
        """
        if not session_mode and overrides is not None and not overrides.is_empty():
            raise ValueError("Override options are only allowed for session files")
        overrides = overrides or KconfigOptions()

        definition_text = lookup_nickname(self.config.nicknames, nickname)
        logger.debug("Nickname definition", nickname=nickname, definition=definition_text)
        definition = parse_nickname_definition(definition_text)
        nick = definition.options
        preferences = self.config.preferences

        kubectl_executable = definition.kubectl_executable or preferences.default_kubectl
        teleport_proxy = overrides.teleport_proxy or nick.teleport_proxy

        search_path = expand_search_path(
            overrides.kubeconfig or nick.kubeconfig or preferences.base_kubeconfig
        )
        logger.debug("Search path for reading config", search_path=search_path)
        base = read_kubeconfig(search_path, self.config.home_dir)

        context_name = overrides.context or nick.context or base.current_context
        logger.debug(
            "Resolved context",
            base_context=base.current_context,
            context=context_name,
        )
        if not context_name:
            raise KubeconfigError(f"There is no current context in search path: {search_path}")

        if context_name not in base.contexts:
            raise KubeconfigError(f"Context \"{context_name}\" doesn't exist.")
        base_context = base.contexts[context_name]

        overrides_description = []
        if nick.needs_new_context() or overrides.needs_new_context():
            new_context = copy.deepcopy(base_context)

            if nick.namespace:
                new_context["namespace"] = nick.namespace
            if overrides.namespace:
                new_context["namespace"] = overrides.namespace
                overrides_description.append(f"ns={overrides.namespace}")

            if nick.user:
                new_context["user"] = nick.user
            if overrides.user:
                new_context["user"] = overrides.user
                overrides_description.append(f"u={overrides.user}")

            content = build_local_kubeconfig(KCONFIG_CONTEXT_NAME, new_context)
            context_namespace = new_context.get("namespace") or DEFAULT_NAMESPACE
        else:
            content = build_local_kubeconfig(context_name)
            context_namespace = base_context.get("namespace") or DEFAULT_NAMESPACE

        local_file, created = self._local_config_file(nickname, session_mode)
        try:
            write_kubeconfig(local_file, content)
        except SessionFileError:
            if created:
                self._remove_quietly(local_file)
            raise

        logger.debug(
            "Created local config file" if created else "Replaced local config file",
            path=str(local_file),
        )

        if not search_path:
            search_path = str(default_kubeconfig_path(self.config.home_dir))

        return SessionResult(
            kubeconfig_env_var=f"{local_file}{os.pathsep}{search_path}",
            kubectl_executable=kubectl_executable,
            overrides_description=",".join(overrides_description),
            context_namespace=context_namespace,
            teleport_proxy=teleport_proxy,
            local_config_file=local_file,
            created=created,
        )

    def _local_config_file(self, nickname: str, session_mode: bool):
        """Pick the file to write, creating the parent directory and a new session file as needed"""
        if session_mode:
            parent = session_dir(self.temp_root)
            filename = get_existing_session_filename(self.environ.get("KUBECONFIG"), self.temp_root)
        else:
            parent = nickname_dir(self.temp_root)
            filename = parent / f"{nickname}.yaml"

        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SessionFileError(
                f"Unable to create temporary directory \"{parent}\" for local kubectl config file: {e}"
            ) from e

        if filename is not None:
            return filename, False

        try:
            fd, name = tempfile.mkstemp(suffix=".yaml", dir=parent)
        except OSError as e:
            raise SessionFileError(
                f"Unable to create session-local temporary kubectl config file: {e}"
            ) from e
        os.close(fd)
        return Path(name), True

    def remove_session_file(self, kubeconfig_env_var: Optional[str] = None) -> Optional[Path]:
        """Delete the session file named by KUBECONFIG

        Returns:
            The session file path, or None when KUBECONFIG names none

        Raises:
            SessionFileError: If an existing file cannot be removed
        """
        if kubeconfig_env_var is None:
            kubeconfig_env_var = self.environ.get("KUBECONFIG")

        filename = get_existing_session_filename(kubeconfig_env_var, self.temp_root)
        if filename is None:
            return None

        try:
            filename.unlink()
        except FileNotFoundError:
            logger.debug("Session config file already gone", path=str(filename))
        except OSError as e:
            raise SessionFileError(f"Error removing session-local kubectl configuration file: {e}") from e
        else:
            logger.debug("Removed session config file", path=str(filename))

        return filename

    def _remove_quietly(self, path: Path) -> None:
        try:
            path.unlink()
        except OSError as e:
            logger.warning("Unable to remove local config file", path=str(path), error=str(e))
