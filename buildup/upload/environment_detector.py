"""
CI Environment Detector

Identifies which CI platform the agent is running on and extracts whatever
git branch/commit information that platform publishes natively.
"""

import os
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .models import CIProvider, ProvenanceInfo


Environ = Mapping[str, str]
Extraction = Tuple[str, str, int]


def _is_set(var: str) -> Callable[[Environ], bool]:
    return lambda env: len(env.get(var, "")) > 0


def _is_true(var: str) -> Callable[[Environ], bool]:
    return lambda env: env.get(var, "") == "true"


# Priority order: first match wins
CI_PLATFORMS: List[Tuple[CIProvider, Callable[[Environ], bool]]] = [
    (CIProvider.APP_CENTER, _is_set("APPCENTER_BUILD_ID")),
    (CIProvider.AZURE_DEVOPS, _is_set("AGENT_ID")),
    (CIProvider.BITRISE, _is_true("BITRISE_IO")),
    (CIProvider.CIRCLE_CI, _is_true("CIRCLECI")),
    (CIProvider.CODE_BUILD, _is_set("CODEBUILD_BUILD_ID")),
    (CIProvider.GITHUB_ACTIONS, _is_true("GITHUB_ACTIONS")),
    (CIProvider.JENKINS, _is_set("JENKINS_URL")),
    (CIProvider.TEAM_CITY, _is_set("TEAMCITY_VERSION")),
    (CIProvider.TRAVIS_CI, _is_true("TRAVIS")),
    (CIProvider.XCODE_CLOUD, _is_set("CI_BUILD_ID")),
]


def _branch_and_commit(branch_var: Optional[str], commit_var: Optional[str]) -> Callable[[Environ], Extraction]:
    def extract(env: Environ) -> Extraction:
        branch = env.get(branch_var, "") if branch_var else ""
        commit = env.get(commit_var, "") if commit_var else ""
        return branch, commit, 0
    return extract


def _extract_code_build(env: Environ) -> Extraction:
    trigger = env.get("CODEBUILD_WEBHOOK_TRIGGER", "")
    branch = trigger[len("branch/"):] if trigger.startswith("branch/") else ""
    return branch, env.get("CODEBUILD_WEBHOOK_PREV_COMMIT", ""), 0


def _extract_github_actions(env: Environ) -> Extraction:
    event_name = env.get("GITHUB_EVENT_NAME", "")
    is_branch = env.get("GITHUB_REF_TYPE", "") == "branch"

    if event_name in ("pull_request", "pull_request_target"):
        branch = env.get("GITHUB_HEAD_REF", "") if is_branch else ""
        # Must be exported by the workflow from github.event.pull_request.head.sha
        commit = env.get("GITHUB_EVENT_PULL_REQUEST_HEAD_SHA", "")
        # The checked-out HEAD is a synthetic merge commit
        return branch, commit, 1

    if event_name == "push":
        branch = env.get("GITHUB_REF_NAME", "") if is_branch else ""
        return branch, env.get("GITHUB_SHA", ""), 0

    return "", "", 0


# Jenkins and TeamCity publish no branch/commit variables we rely on
PROVIDER_EXTRACTORS: Dict[CIProvider, Callable[[Environ], Extraction]] = {
    CIProvider.APP_CENTER: _branch_and_commit("APPCENTER_BRANCH", None),
    CIProvider.AZURE_DEVOPS: _branch_and_commit("BUILD_SOURCEBRANCHNAME", "BUILD_SOURCEVERSION"),
    CIProvider.BITRISE: _branch_and_commit("BITRISE_GIT_BRANCH", "BITRISE_GIT_COMMIT"),
    CIProvider.CIRCLE_CI: _branch_and_commit("CIRCLE_BRANCH", "CIRCLE_SHA1"),
    CIProvider.CODE_BUILD: _extract_code_build,
    CIProvider.GITHUB_ACTIONS: _extract_github_actions,
    CIProvider.JENKINS: _branch_and_commit(None, None),
    CIProvider.TEAM_CITY: _branch_and_commit(None, None),
    CIProvider.TRAVIS_CI: _branch_and_commit("TRAVIS_BRANCH", "TRAVIS_COMMIT"),
    CIProvider.XCODE_CLOUD: _branch_and_commit("CI_BRANCH", "CI_COMMIT"),
}


class CIEnvironmentDetector:
    """Detects the CI platform from environment variables"""

    def __init__(self, environ: Optional[Environ] = None):
        self.environ = environ if environ is not None else os.environ

    def detect_provider(self) -> CIProvider:
        for provider, matches in CI_PLATFORMS:
            if matches(self.environ):
                return provider

        return CIProvider.UNKNOWN

    def detect(self, full_info: bool = False) -> ProvenanceInfo:
        """Detect the provider and, with full_info, its branch/commit/skip count."""
        provider = self.detect_provider()

        if not full_info:
            return ProvenanceInfo(provider=provider)

        extract = PROVIDER_EXTRACTORS.get(provider)
        if extract is None:
            return ProvenanceInfo(provider=provider)

        branch, commit, skip_count = extract(self.environ)

        return ProvenanceInfo(
            provider=provider,
            ci_git_branch=branch,
            ci_git_commit=commit,
            skip_count=skip_count
        )


def detect_ci_info(full_info: bool, environ: Optional[Environ] = None) -> ProvenanceInfo:
    return CIEnvironmentDetector(environ).detect(full_info)
