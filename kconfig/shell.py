"""
Shell statements emitted for the kset and koff shell functions

Everything produced here is written to standard output and evaluated by the
calling shell, one statement per line.
"""

import shlex
from typing import List, Optional, Tuple

from .models import KconfigOptions, KconfigPreferences, SessionResult

# Separates fields of the _KCONFIG_KSET value when any field contains a blank.
KSET_ENV_VAR_DELIMITER = "\x1f"

KSET_ENV_VAR = "_KCONFIG_KSET"
OLD_KSET_ENV_VAR = "_KCONFIG_OLDKSET"
KUBECTL_ENV_VAR = "_KCONFIG_KUBECTL"
PROMPT_VAR = "_KP"


def export(name: str, value: str) -> str:
    return f"export {name}={shlex.quote(value)};"


def assign(name: str, value: str) -> str:
    return f"{name}={shlex.quote(value)};"


def unset(name: str) -> str:
    return f"unset {name};"


def create_kset_args(nickname: str, overrides: KconfigOptions) -> str:
    """Describe a kset environment so that it can be replayed later

    Fields are joined with a blank, unless a blank appears in any field, in
    which case the ASCII unit separator is used instead.
    """
    if overrides.is_empty():
        return nickname

    args = [nickname] + overrides.to_args()
    delimiter = KSET_ENV_VAR_DELIMITER if any(" " in arg for arg in args) else " "
    return delimiter.join(args)


def get_args_from_kset_args(kset_env_value: Optional[str]) -> List[str]:
    if not kset_env_value:
        return []
    delimiter = KSET_ENV_VAR_DELIMITER if KSET_ENV_VAR_DELIMITER in kset_env_value else " "
    return kset_env_value.split(delimiter)


def get_nickname_from_kset_args(kset_env_value: Optional[str]) -> str:
    args = get_args_from_kset_args(kset_env_value)
    return args[0] if args else ""


def prompt_prefix(
    nickname: str,
    result: SessionResult,
    preferences: KconfigPreferences,
) -> Optional[str]:
    """The text placed in front of the shell prompt, or None to leave it alone"""
    if not preferences.change_prompt:
        return None

    description = result.overrides_description
    if description and preferences.show_overrides_in_prompt:
        if preferences.always_show_namespace_in_prompt and "ns=" not in description:
            description = f"ns={result.context_namespace},{description}"
        return f"{nickname}[{description}]"

    if preferences.always_show_namespace_in_prompt:
        return f"{nickname}[ns={result.context_namespace}]"

    return nickname


def kset_statements(
    nickname: str,
    overrides: KconfigOptions,
    result: SessionResult,
    preferences: KconfigPreferences,
    previous_kset: Optional[str] = None,
) -> Tuple[List[str], str]:
    """Shell statements that activate a kset environment

    Returns:
        The statements and the new _KCONFIG_KSET description
    """
    statements = [export("KUBECONFIG", result.kubeconfig_env_var)]

    if result.teleport_proxy:
        statements.append(export("TELEPORT_PROXY", result.teleport_proxy))

    prefix = prompt_prefix(nickname, result, preferences)
    if prefix is not None:
        statements.append(assign(PROMPT_VAR, prefix))

    statements.append(export(KUBECTL_ENV_VAR, result.kubectl_executable))

    description = create_kset_args(nickname, overrides)
    if previous_kset and previous_kset != description:
        statements.append(f'export {OLD_KSET_ENV_VAR}="${KSET_ENV_VAR}";')
    statements.append(export(KSET_ENV_VAR, description))

    return statements, description


def koff_statements(base_kubeconfig: str) -> List[str]:
    """Shell statements that restore KUBECONFIG after koff"""
    if base_kubeconfig:
        return [export("KUBECONFIG", base_kubeconfig)]
    return [unset("KUBECONFIG")]
