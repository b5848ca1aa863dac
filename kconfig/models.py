"""
Core data models for kconfig

These models describe the kconfig.yaml preferences, parsed nickname
definitions, the merged view of the base kubectl configuration, and the
outcome of synthesizing a session-local kubectl config file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_KUBECTL = "kubectl"
DEFAULT_NAMESPACE = "default"


class KconfigOptions(BaseModel):
    """Options that can appear in a nickname definition or as kset overrides"""

    model_config = ConfigDict(frozen=True)

    kubeconfig: Optional[str] = Field(default=None, description="Path (or search path) of kubectl config file(s)")
    context: Optional[str] = Field(default=None, description="Context to use from the kubectl config")
    namespace: Optional[str] = Field(default=None, description="Namespace to use instead of the context's")
    user: Optional[str] = Field(default=None, description="User to use instead of the context's")
    teleport_proxy: Optional[str] = Field(default=None, description="Value for the TELEPORT_PROXY env var")

    @field_validator("*", mode="before")
    @classmethod
    def empty_is_unset(cls, v):
        """Treat empty strings the same as a missing option"""
        if v == "":
            return None
        return v

    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())

    def needs_new_context(self) -> bool:
        """Whether a namespace or user must be overridden in a synthetic context"""
        return self.namespace is not None or self.user is not None

    def to_args(self) -> List[str]:
        """Render the set options back into command-line arguments"""
        args: List[str] = []
        if self.kubeconfig is not None:
            args.extend(["--kubeconfig", self.kubeconfig])
        if self.context is not None:
            args.extend(["--context", self.context])
        if self.namespace is not None:
            args.extend(["-n", self.namespace])
        if self.user is not None:
            args.extend(["--user", self.user])
        if self.teleport_proxy is not None:
            args.extend(["--teleport-proxy", self.teleport_proxy])
        return args


class NicknameDefinition(BaseModel):
    """A parsed nickname definition, such as ``kubectl-1.21 --context staging -n testing``"""

    model_config = ConfigDict(frozen=True)

    kubectl_executable: Optional[str] = None
    options: KconfigOptions = Field(default_factory=KconfigOptions)


class KconfigPreferences(BaseModel):
    """The ``preferences`` section of ~/.kube/kconfig.yaml"""

    default_kubectl: str = DEFAULT_KUBECTL
    change_prompt: bool = True
    show_overrides_in_prompt: bool = True
    always_show_namespace_in_prompt: bool = False
    read_kalias_config: bool = False
    base_kubeconfig: str = ""

    @field_validator("default_kubectl", "base_kubeconfig", mode="before")
    @classmethod
    def numbers_as_strings(cls, v):
        # YAML reads "default_kubectl: 1.21" as a float
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("default_kubectl", mode="before")
    @classmethod
    def default_kubectl_fallback(cls, v):
        return v or DEFAULT_KUBECTL

    @field_validator("base_kubeconfig", mode="before")
    @classmethod
    def base_kubeconfig_string(cls, v):
        return v or ""


class Kconfig(BaseModel):
    """Full contents of the kconfig configuration"""

    preferences: KconfigPreferences = Field(default_factory=KconfigPreferences)
    nicknames: Dict[str, str] = Field(default_factory=dict)

    @field_validator("nicknames", mode="before")
    @classmethod
    def nicknames_as_strings(cls, v):
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("nicknames must be a mapping of nickname to definition")
        return {str(name): "" if defn is None else str(defn) for name, defn in v.items()}


class MergedKubeconfig(BaseModel):
    """The parts of the base kubectl configuration that kconfig relies on

    Built by reading every file along a KUBECONFIG search path with the same
    precedence rules kubectl uses.
    """

    current_context: str = ""
    contexts: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    files_read: List[Path] = Field(default_factory=list)


class SessionResult(BaseModel):
    """Outcome of creating or replacing a local kubectl config file"""

    kubeconfig_env_var: str
    kubectl_executable: str
    overrides_description: str = ""
    context_namespace: str = DEFAULT_NAMESPACE
    teleport_proxy: Optional[str] = None
    local_config_file: Path
    created: bool = False
