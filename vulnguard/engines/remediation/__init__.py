"""Remediation engine — fix requests and chat notifications for risky scans."""

from vulnguard.engines.remediation.backend import RemediationBackend, RemediationOutcome
from vulnguard.engines.remediation.chat import ChatNotifier
from vulnguard.engines.remediation.dispatcher import RemediationDispatcher
from vulnguard.engines.remediation.jules import JulesClient

__all__ = [
    "ChatNotifier",
    "JulesClient",
    "RemediationBackend",
    "RemediationDispatcher",
    "RemediationOutcome",
]
