"""
Git Provenance Resolver

Infers the commit being built and the most plausible branch name for it by
shelling out to git. Used when CI-supplied provenance is absent or ambiguous.
"""

import logging
import os
from typing import List, Optional

from .models import GitAccess, GitInfo
from .process_runner import ProcessRunner

logger = logging.getLogger(__name__)


def git_executable_name() -> str:
    return "git.exe" if os.name == "nt" else "git"


def ref_name_to_branch_name(ref_name: str) -> str:
    """Map a full ref name from for-each-ref to a bare branch name, or ''."""
    branch_name = ref_name.strip()

    if branch_name.startswith("refs/heads/"):
        branch_name = branch_name[len("refs/heads/"):]
    elif branch_name.startswith("refs/remotes/"):
        branch_name = _strip_remote(branch_name[len("refs/remotes/"):])
    else:
        return ""

    if branch_name == "HEAD":
        return ""

    return branch_name


def name_rev_to_branch_name(name: str) -> str:
    """Map a name-rev result to a bare branch name, or ''."""
    branch_name = name.strip()

    if branch_name.startswith("tags/"):
        return ""

    if branch_name.startswith("remotes/"):
        branch_name = _strip_remote(branch_name[len("remotes/"):])

    if branch_name == "HEAD":
        return ""

    return branch_name


def branch_names_from_for_each_ref(output: str) -> List[str]:
    """Branch names in listing order, duplicates removed."""
    seen = set()
    branch_names = []

    for line in output.split("\n"):
        branch_name = ref_name_to_branch_name(line)
        if branch_name and branch_name not in seen:
            seen.add(branch_name)
            branch_names.append(branch_name)

    return branch_names


def _strip_remote(name: str) -> str:
    # origin/feature/x -> feature/x
    slash = name.find("/")
    if slash == -1:
        return ""
    return name[slash + 1:]


class GitProvenanceResolver:
    """Resolve commit and branch from the local repository"""

    def __init__(self, runner: Optional[ProcessRunner] = None):
        self.runner = runner or ProcessRunner()
        self.git = git_executable_name()

    def resolve(self, skip_count: int = 0) -> GitInfo:
        if not self.is_git_installed():
            return GitInfo(access=GitAccess.NO_GIT_COMMAND_FOUND)

        if not self.has_git_repository():
            return GitInfo(access=GitAccess.NOT_GIT_REPOSITORY)

        commit = self.infer_commit(skip_count)
        branch = self.infer_branch(commit) if commit else ""

        logger.debug(f"Inferred git commit {commit or '(none)'} on branch {branch or '(none)'}")

        return GitInfo(access=GitAccess.OK, branch=branch, commit=commit)

    def is_git_installed(self) -> bool:
        return self.runner.which(self.git) is not None

    def has_git_repository(self) -> bool:
        return self.runner.run(self.git, "rev-parse").ok

    def infer_commit(self, skip_count: int) -> str:
        # Fails on shallow clones without enough history to skip
        result = self.runner.run(self.git, "log", "--format=%H", f"--skip={skip_count}", "-1")
        if not result.ok:
            return ""
        return result.stdout.strip()

    def infer_branch(self, commit: str) -> str:
        return (
            self._branch_from_for_each_ref(commit)
            or self._branch_from_name_rev(commit)
            or self._branch_from_rev_parse()
        )

    def _branch_from_for_each_ref(self, commit: str) -> str:
        result = self.runner.run(self.git, "for-each-ref", f"--points-at={commit}", "--format=%(refname)")
        if not result.ok:
            return ""

        branch_names = branch_names_from_for_each_ref(result.stdout)
        if len(branch_names) > 1:
            logger.debug(f"Multiple branches point at {commit}: {branch_names}; using {branch_names[0]}")

        return branch_names[0] if branch_names else ""

    def _branch_from_name_rev(self, commit: str) -> str:
        result = self.runner.run(self.git, "name-rev", "--always", "--name-only", commit)
        if not result.ok:
            return ""
        return name_rev_to_branch_name(result.stdout)

    def _branch_from_rev_parse(self) -> str:
        result = self.runner.run(self.git, "rev-parse", "--abbrev-ref", "HEAD")
        if not result.ok:
            return ""

        branch = result.stdout.strip()
        return "" if branch == "HEAD" else branch  # Detached head


def infer_git_info(skip_count: int, runner: Optional[ProcessRunner] = None) -> GitInfo:
    return GitProvenanceResolver(runner).resolve(skip_count)
