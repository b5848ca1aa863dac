"""
Reading the base kubectl configuration and writing local config files

Base kubeconfig files are only ever opened for reading. Files along a search
path are merged the way kubectl merges KUBECONFIG:
- files that don't exist are skipped
- the first file that sets current-context wins
- the first file that defines a named context wins
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
import yaml

from .errors import KubeconfigError, SessionFileError
from .models import MergedKubeconfig

logger = structlog.get_logger(__name__)

KCONFIG_CONTEXT_NAME = "kconfig_context"


def default_kubeconfig_path(home_dir: Optional[Path] = None) -> Path:
    """The file kubectl uses when KUBECONFIG is empty"""
    home = Path(home_dir) if home_dir is not None else Path.home()
    return home / ".kube" / "config"


def expand_search_path(search_path: str) -> str:
    """Expand ``~`` and environment variables in every search path element"""
    if not search_path:
        return ""
    elements = [
        os.path.expandvars(os.path.expanduser(element)) if element else element
        for element in search_path.split(os.pathsep)
    ]
    return os.pathsep.join(elements)


def search_path_files(search_path: str, home_dir: Optional[Path] = None) -> List[Path]:
    """Files named by a KUBECONFIG-style search path, in precedence order"""
    if not search_path:
        return [default_kubeconfig_path(home_dir)]

    files: List[Path] = []
    for element in search_path.split(os.pathsep):
        if not element:
            continue
        path = Path(element)
        if path not in files:
            files.append(path)
    return files


def _read_kubeconfig_file(path: Path) -> Optional[Dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        logger.debug("Kubeconfig file not found, skipping", path=str(path))
        return None
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise KubeconfigError(f"Error reading kubectl config file \"{path}\": {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise KubeconfigError(
            f"Error reading kubectl config file \"{path}\": top level must be a mapping"
        )
    return content


def read_kubeconfig(search_path: str, home_dir: Optional[Path] = None) -> MergedKubeconfig:
    """Read and merge the kubectl configuration along a search path

    Args:
        search_path: KUBECONFIG-style list of files, empty for ~/.kube/config
        home_dir: Home directory used to locate the default file

    Raises:
        KubeconfigError: If an existing file cannot be read or parsed
    """
    merged = MergedKubeconfig()

    for path in search_path_files(search_path, home_dir):
        content = _read_kubeconfig_file(path)
        if content is None:
            continue
        merged.files_read.append(path)

        if not merged.current_context and content.get("current-context"):
            merged.current_context = str(content["current-context"])

        for entry in content.get("contexts") or []:
            if not isinstance(entry, dict) or not entry.get("name"):
                continue
            name = str(entry["name"])
            if name in merged.contexts:
                continue
            context = entry.get("context") or {}
            if not isinstance(context, dict):
                raise KubeconfigError(
                    f"Error reading kubectl config file \"{path}\": context \"{name}\" is not a mapping"
                )
            merged.contexts[name] = context

    logger.debug(
        "Read kubectl configuration",
        files=[str(p) for p in merged.files_read],
        current_context=merged.current_context,
        contexts=len(merged.contexts),
    )
    return merged


def build_local_kubeconfig(
    current_context: str,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the content of a local kubectl config file

    With no context, the file only points at an existing context. Otherwise
    it defines ``context`` under the synthetic name and makes it current.
    """
    contexts: List[Dict[str, Any]] = []
    if context is not None:
        contexts.append({"name": current_context, "context": context})

    return {
        "apiVersion": "v1",
        "kind": "Config",
        "preferences": {},
        "clusters": [],
        "users": [],
        "contexts": contexts,
        "current-context": current_context,
    }


def render_kubeconfig(content: Dict[str, Any]) -> str:
    return yaml.safe_dump(content, default_flow_style=False, sort_keys=False)


def write_kubeconfig(path: Path, content: Dict[str, Any]) -> None:
    """Create or replace a local kubectl config file

    Raises:
        SessionFileError: If the file cannot be written
    """
    try:
        with open(path, "w") as f:
            f.write(render_kubeconfig(content))
    except OSError as e:
        raise SessionFileError(
            f"Error creating the session-local kubectl configuration file \"{path}\": {e}"
        ) from e
