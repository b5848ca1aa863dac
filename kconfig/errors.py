"""Exception hierarchy for kconfig"""


class KconfigError(Exception):
    """Base class for all kconfig errors"""
    pass


class ConfigurationError(KconfigError):
    """Raised when kconfig.yaml or kalias.txt cannot be read or validated"""
    pass


class NicknameError(KconfigError):
    """Raised when a nickname is unknown or its definition cannot be parsed"""
    pass


class KubeconfigError(KconfigError):
    """Raised when the base kubectl configuration is unusable"""
    pass


class SessionFileError(KconfigError):
    """Raised when a session-local kubectl config file cannot be written"""
    pass
