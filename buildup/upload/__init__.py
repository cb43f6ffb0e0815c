"""
Buildup Upload Module

Uploads mobile build artifacts to the Buildup testing service, tagged with CI
and git provenance, and triggers remote runs.

Upload: Validate -> Package -> Upload (with retry) -> Report error on failure
Trigger: Validate -> Trigger (with retry)
"""

from .environment_detector import CIEnvironmentDetector, detect_ci_info
from .repository import GitProvenanceResolver, infer_git_info
from .upload_orchestrator import UploadOrchestrator
from .trigger_orchestrator import TriggerOrchestrator
from .exceptions import (
    BuildupError,
    ConfigurationError,
    BuildValidationError,
    PackagingError,
    SubmissionError,
    APIConnectionError,
    AuthenticationError,
    WAFBlockedError,
    HTTPStatusError
)

__all__ = [
    'CIEnvironmentDetector',
    'detect_ci_info',
    'GitProvenanceResolver',
    'infer_git_info',
    'UploadOrchestrator',
    'TriggerOrchestrator',
    'BuildupError',
    'ConfigurationError',
    'BuildValidationError',
    'PackagingError',
    'SubmissionError',
    'APIConnectionError',
    'AuthenticationError',
    'WAFBlockedError',
    'HTTPStatusError'
]
