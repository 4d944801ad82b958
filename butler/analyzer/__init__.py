"""Анализ каталога развёртывания и проверки его корректности"""

from .project import ProjectAnalyzer, deployment_environment, interpolate_compose
from .checks import (
    CheckResult,
    check_placeholders_defined,
    check_plaintext_secrets,
    check_persistent_volume,
    check_plugins_in_image,
    check_plugins_removed,
    check_port_exposed,
    check_restart_policy,
)

__all__ = [
    "CheckResult",
    "ProjectAnalyzer",
    "check_placeholders_defined",
    "check_plaintext_secrets",
    "check_persistent_volume",
    "check_plugins_in_image",
    "check_plugins_removed",
    "check_port_exposed",
    "check_restart_policy",
    "deployment_environment",
    "interpolate_compose",
]
