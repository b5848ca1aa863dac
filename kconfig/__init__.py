"""
kconfig: session-local kubectl configuration switching

This package lets each shell session select a named kubectl context,
namespace and user combination ("nickname") without modifying the user's
kubeconfig files.
"""

__version__ = "1.0.0"
__author__ = "kconfig team"
__description__ = "Session-local kubectl context switching"
