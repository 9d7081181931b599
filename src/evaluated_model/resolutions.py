from __future__ import annotations

from typing import List, Protocol

from .types_config import IssueResolution, Resolutions, RuleViolationResolution
from .types_input import OrtIssue, RuleViolation


class ResolutionProvider(Protocol):
    def get_issue_resolutions_for(self, issue: OrtIssue) -> List[IssueResolution]: ...

    def get_rule_violation_resolutions_for(self, violation: RuleViolation) -> List[RuleViolationResolution]: ...


class DefaultResolutionProvider:
    """Matches resolutions against issue and violation messages by regular expression."""

    def __init__(self, resolutions: Resolutions | None = None) -> None:
        self.resolutions = Resolutions()
        if resolutions:
            self.add(resolutions)

    def add(self, resolutions: Resolutions) -> "DefaultResolutionProvider":
        self.resolutions = self.resolutions.merge(resolutions)
        return self

    def get_issue_resolutions_for(self, issue: OrtIssue) -> List[IssueResolution]:
        return [r for r in self.resolutions.issues if r.matches(issue.message)]

    def get_rule_violation_resolutions_for(self, violation: RuleViolation) -> List[RuleViolationResolution]:
        return [r for r in self.resolutions.rule_violations if r.matches(violation.message)]
