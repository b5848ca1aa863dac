"""
Input validation for kconfig

Override values given to kset end up in a kubectl config file and in shell
statements that the caller evaluates, so they are checked before use.
"""

import re
from typing import Optional

import structlog

from .errors import KconfigError
from .models import KconfigOptions

logger = structlog.get_logger(__name__)


class ValidationError(KconfigError):
    """Raised when input validation fails"""
    pass


class InputValidator:
    """Validates user-supplied nicknames and override options"""

    # Namespaces are RFC 1123 DNS labels
    NAMESPACE_PATTERN = re.compile(r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?$')
    # Context and user names are free-form in kubeconfig files (EKS ARNs,
    # "admin@cluster", ...), only control characters are refused.
    CONTROL_CHARS_PATTERN = re.compile(r'[\x00-\x1f\x7f]')

    MAX_NAMESPACE_LENGTH = 63
    MAX_NAME_LENGTH = 253

    @classmethod
    def validate_nickname(cls, nickname: str) -> str:
        """Validate a nickname given on the command line

        Raises:
            ValidationError: If nickname is invalid
        """
        if not nickname:
            raise ValidationError("Nickname cannot be empty")

        if nickname.startswith("-"):
            raise ValidationError(f"Invalid nickname '{nickname}': cannot start with '-'")

        if cls.CONTROL_CHARS_PATTERN.search(nickname):
            raise ValidationError(f"Invalid nickname {nickname!r}: contains control characters")

        return nickname

    @classmethod
    def validate_namespace(cls, namespace: Optional[str]) -> Optional[str]:
        """Validate a Kubernetes namespace

        Args:
            namespace: Namespace to validate (can be None)

        Returns:
            Validated namespace or None

        Raises:
            ValidationError: If namespace is invalid
        """
        if namespace is None:
            return None

        if not namespace:
            raise ValidationError("Namespace cannot be empty string")

        if len(namespace) > cls.MAX_NAMESPACE_LENGTH:
            raise ValidationError(
                f"Namespace too long: {len(namespace)} chars "
                f"(max {cls.MAX_NAMESPACE_LENGTH})"
            )

        if not cls.NAMESPACE_PATTERN.match(namespace):
            raise ValidationError(
                f"Invalid namespace '{namespace}': must match pattern "
                f"{cls.NAMESPACE_PATTERN.pattern}"
            )

        return namespace

    @classmethod
    def validate_name(cls, value: Optional[str], what: str) -> Optional[str]:
        """Validate a context, user or proxy name

        Raises:
            ValidationError: If the value is invalid
        """
        if value is None:
            return None

        if not value:
            raise ValidationError(f"{what} cannot be empty string")

        if len(value) > cls.MAX_NAME_LENGTH:
            raise ValidationError(
                f"{what} too long: {len(value)} chars (max {cls.MAX_NAME_LENGTH})"
            )

        if cls.CONTROL_CHARS_PATTERN.search(value):
            raise ValidationError(f"Invalid {what.lower()} {value!r}: contains control characters")

        return value

    @classmethod
    def validate_path(cls, path: Optional[str]) -> Optional[str]:
        """Validate a kubeconfig file or search path"""
        if path is None:
            return None

        if cls.CONTROL_CHARS_PATTERN.search(path):
            raise ValidationError(f"Invalid kubeconfig path {path!r}: contains control characters")

        return path


def validate_overrides(options: KconfigOptions) -> KconfigOptions:
    """Validate every set field of a kset override

    Raises:
        ValidationError: If any value is invalid
    """
    try:
        InputValidator.validate_path(options.kubeconfig)
        InputValidator.validate_name(options.context, "Context")
        InputValidator.validate_namespace(options.namespace)
        InputValidator.validate_name(options.user, "User")
        InputValidator.validate_name(options.teleport_proxy, "Teleport proxy")
    except ValidationError as e:
        logger.debug("Override validation failed", error=str(e))
        raise

    return options
