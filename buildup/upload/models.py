"""
Data Models for the Build Upload Workflow

Dataclass-based models shared by the CI scanner, git resolver, build packager
and the upload/trigger orchestrators.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from dataclasses import dataclass, field
from enum import Enum


MAX_NETWORK_ATTEMPTS = 2

DEFAULT_API_BUILD_NEW_ENDPOINT = "https://api.buildup.io/1.0/applications/${APP_ID}/versions"
DEFAULT_API_BUILD_OLD_ENDPOINT = "https://api.buildup.io/versions"
DEFAULT_API_ERROR_ENDPOINT = "https://api.buildup.io/uploadError"
DEFAULT_API_TRIGGER_ENDPOINT = "https://api.buildup.io/suites"


class CIProvider(Enum):
    """CI platform enumeration, values are the names reported to the API"""
    UNKNOWN = "Unknown"
    APP_CENTER = "App Center"
    AZURE_DEVOPS = "Azure DevOps"
    BITRISE = "Bitrise"
    CIRCLE_CI = "CircleCI"
    CODE_BUILD = "CodeBuild"
    GITHUB_ACTIONS = "GitHub Actions"
    JENKINS = "Jenkins"
    TEAM_CITY = "TeamCity"
    TRAVIS_CI = "Travis CI"
    XCODE_CLOUD = "Xcode Cloud"


class GitAccess(Enum):
    """Outcome of probing for git and a working repository"""
    OK = "ok"
    NO_GIT_COMMAND_FOUND = "noGitCommandFound"
    NOT_GIT_REPOSITORY = "notGitRepository"


class BuildFlavor(Enum):
    ANDROID = "Android"
    IOS = "iOS"


class AttemptOutcome(Enum):
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"


@dataclass(frozen=True)
class ProvenanceInfo:
    """CI provider plus whatever branch/commit the provider publishes"""
    provider: CIProvider = CIProvider.UNKNOWN
    ci_git_branch: str = ""
    ci_git_commit: str = ""
    skip_count: int = 0


@dataclass(frozen=True)
class GitInfo:
    """Provenance inferred from the local git repository"""
    access: GitAccess
    branch: str = ""
    commit: str = ""


@dataclass(frozen=True)
class BuildKind:
    """Entry of the build suffix table"""
    flavor: BuildFlavor
    is_directory: bool
    content_type: str


@dataclass(frozen=True)
class BuildDescriptor:
    """Validated build artifact"""
    absolute_path: str
    suffix: str
    flavor: BuildFlavor
    payload_path: str
    content_type: str
    is_directory: bool = False


@dataclass
class SubmissionAttempt:
    """Record of a single HTTP call"""
    attempt_index: int
    retry_allowed: bool
    outcome: AttemptOutcome
    http_status: Optional[int] = None


@dataclass(frozen=True)
class RuntimeInfo:
    """Host OS/architecture as reported to the API"""
    arch: str
    platform: str


@dataclass(frozen=True)
class AgentConfig:
    """Immutable agent configuration built once by the CLI"""
    upload_token: str = ""
    build_path: str = ""
    app_id: str = ""
    variant_name: str = ""
    git_branch: str = ""
    git_commit: str = ""
    rule_name: str = ""
    verbose: bool = False
    overrides: Dict[str, str] = field(default_factory=dict)
    max_attempts: int = MAX_NETWORK_ATTEMPTS

    @property
    def wrapper_name(self) -> str:
        return self.overrides.get("wrapperName", "")

    @property
    def wrapper_version(self) -> str:
        return self.overrides.get("wrapperVersion", "")


@dataclass
class UploadResponse:
    """Subset of the build upload response body"""
    app_version_id: str = ""
    application_id: str = ""
    app_name: Optional[str] = None
    app_version: Optional[str] = None
    git_hash: Optional[str] = None
    package_name: Optional[str] = None
    variant_name: Optional[str] = None
    upload_status: Optional[str] = None
    size: int = 0

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'UploadResponse':
        return cls(
            app_version_id=data.get("id", ""),
            application_id=data.get("applicationId", ""),
            app_name=data.get("name"),
            app_version=data.get("version"),
            git_hash=data.get("gitSha"),
            package_name=data.get("packageName"),
            variant_name=data.get("variantName"),
            upload_status=data.get("status"),
            size=data.get("size", 0)
        )


@dataclass
class UploadResult:
    """Overall upload operation result"""
    success: bool
    build_name: Optional[str] = None
    app_version_id: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0
    error_reported: bool = False
    upload_time: Optional[datetime] = None
