from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass, field
from enum import Enum


class PathExcludeReason(str, Enum):
    BUILD_TOOL_OF = "BUILD_TOOL_OF"
    DATA_FILE_OF = "DATA_FILE_OF"
    DOCUMENTATION_OF = "DOCUMENTATION_OF"
    EXAMPLE_OF = "EXAMPLE_OF"
    OPTIONAL_COMPONENT_OF = "OPTIONAL_COMPONENT_OF"
    OTHER = "OTHER"
    PROVIDED_BY = "PROVIDED_BY"
    TEST_OF = "TEST_OF"


class ScopeExcludeReason(str, Enum):
    BUILD_DEPENDENCY_OF = "BUILD_DEPENDENCY_OF"
    DEV_DEPENDENCY_OF = "DEV_DEPENDENCY_OF"
    DOCUMENTATION_DEPENDENCY_OF = "DOCUMENTATION_DEPENDENCY_OF"
    PROVIDED_DEPENDENCY_OF = "PROVIDED_DEPENDENCY_OF"
    TEST_DEPENDENCY_OF = "TEST_DEPENDENCY_OF"
    RUNTIME_DEPENDENCY_OF = "RUNTIME_DEPENDENCY_OF"


class IssueResolutionReason(str, Enum):
    BUILD_TOOL_ISSUE = "BUILD_TOOL_ISSUE"
    CANT_FIX_ISSUE = "CANT_FIX_ISSUE"
    SCANNER_ISSUE = "SCANNER_ISSUE"


class RuleViolationResolutionReason(str, Enum):
    CANT_FIX_EXCEPTION = "CANT_FIX_EXCEPTION"
    DYNAMIC_LINKAGE_EXCEPTION = "DYNAMIC_LINKAGE_EXCEPTION"
    EXAMPLE_OF_EXCEPTION = "EXAMPLE_OF_EXCEPTION"
    LICENSE_ACQUIRED_EXCEPTION = "LICENSE_ACQUIRED_EXCEPTION"
    NOT_MODIFIED_EXCEPTION = "NOT_MODIFIED_EXCEPTION"
    PATENT_GRANT_EXCEPTION = "PATENT_GRANT_EXCEPTION"


@dataclass(frozen=True)
class PathExclude:
    """Marks files matching a glob pattern as out of scope."""

    pattern: str
    reason: PathExcludeReason
    comment: str = ""

    def matches(self, path: str) -> bool:
        return fnmatch.fnmatchcase(path, self.pattern)


@dataclass(frozen=True)
class ScopeExclude:
    """Marks dependency scopes whose name matches a regular expression as out of scope."""

    pattern: str
    reason: ScopeExcludeReason
    comment: str = ""

    def matches(self, scope_name: str) -> bool:
        return re.fullmatch(self.pattern, scope_name) is not None


@dataclass(frozen=True)
class IssueResolution:
    message: str
    reason: IssueResolutionReason
    comment: str = ""

    def matches(self, message: str) -> bool:
        return re.fullmatch(self.message, message, flags=re.DOTALL) is not None


@dataclass(frozen=True)
class RuleViolationResolution:
    message: str
    reason: RuleViolationResolutionReason
    comment: str = ""

    def matches(self, message: str) -> bool:
        return re.fullmatch(self.message, message, flags=re.DOTALL) is not None


@dataclass
class Excludes:
    paths: list[PathExclude] = field(default_factory=list)
    scopes: list[ScopeExclude] = field(default_factory=list)


@dataclass
class Resolutions:
    issues: list[IssueResolution] = field(default_factory=list)
    rule_violations: list[RuleViolationResolution] = field(default_factory=list)

    def merge(self, other: "Resolutions") -> "Resolutions":
        return Resolutions(
            issues=self.issues + [r for r in other.issues if r not in self.issues],
            rule_violations=self.rule_violations
            + [r for r in other.rule_violations if r not in self.rule_violations],
        )


@dataclass
class RepositoryConfiguration:
    excludes: Excludes = field(default_factory=Excludes)
    resolutions: Resolutions = field(default_factory=Resolutions)

    def as_dict(self) -> dict:
        return {
            "excludes": {
                "paths": [
                    {"pattern": e.pattern, "reason": e.reason.value, "comment": e.comment}
                    for e in self.excludes.paths
                ],
                "scopes": [
                    {"pattern": e.pattern, "reason": e.reason.value, "comment": e.comment}
                    for e in self.excludes.scopes
                ],
            },
            "resolutions": {
                "issues": [
                    {"message": r.message, "reason": r.reason.value, "comment": r.comment}
                    for r in self.resolutions.issues
                ],
                "rule_violations": [
                    {"message": r.message, "reason": r.reason.value, "comment": r.comment}
                    for r in self.resolutions.rule_violations
                ],
            },
        }
