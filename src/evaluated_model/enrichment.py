from __future__ import annotations

from typing import Iterable, List, Optional

from .interning import EntityInterner
from .resolutions import ResolutionProvider
from .types_config import IssueResolution, RuleViolationResolution
from .types_identifiers import Identifier
from .types_input import OrtIssue, OrtResult, RuleViolation
from .types_model import (
    EvaluatedOrtIssue,
    EvaluatedOrtIssueType,
    EvaluatedPackage,
    EvaluatedPackagePath,
    EvaluatedRuleViolation,
    EvaluatedScanResult,
)


class MissingPackageError(LookupError):
    """Raised when input data refers to a project or package that was never added to the model."""

    def __init__(self, id: Identifier, context: str = "") -> None:
        detail = f" ({context})" if context else ""
        super().__init__(
            f"No evaluated package exists for '{id.to_coordinates()}'{detail}; "
            "the analysis result references an id outside its projects and packages"
        )
        self.id = id


class IssueEnricher:
    """Attaches resolutions and owner back-references to raw issues and rule violations."""

    def __init__(
        self,
        result: OrtResult,
        packages: EntityInterner[EvaluatedPackage],
        issues: EntityInterner[EvaluatedOrtIssue],
        issue_resolutions: EntityInterner[IssueResolution],
        violation_resolutions: EntityInterner[RuleViolationResolution],
        resolution_provider: ResolutionProvider,
    ) -> None:
        self.result = result
        self.packages = packages
        self.issues = issues
        self.issue_resolutions = issue_resolutions
        self.violation_resolutions = violation_resolutions
        self.resolution_provider = resolution_provider

    def require_package(self, id: Identifier, context: str = "") -> EvaluatedPackage:
        pkg = self.packages.find(id)
        if pkg is None:
            raise MissingPackageError(id, context)
        return pkg

    def enrich_issues(
        self,
        issues: Iterable[OrtIssue],
        type: EvaluatedOrtIssueType,
        pkg: EvaluatedPackage,
        scan_result: Optional[EvaluatedScanResult] = None,
        path: Optional[EvaluatedPackagePath] = None,
    ) -> List[EvaluatedOrtIssue]:
        evaluated = []
        for issue in issues:
            resolutions = self.issue_resolutions.add_all_if_required(
                self.resolution_provider.get_issue_resolutions_for(issue)
            )
            evaluated.append(
                EvaluatedOrtIssue(
                    timestamp=issue.timestamp,
                    type=type,
                    source=issue.source,
                    message=issue.message,
                    severity=issue.severity,
                    resolutions=tuple(resolutions),
                    pkg=pkg,
                    scan_result=scan_result,
                    path=path,
                )
            )
        return self.issues.add_all_if_required(evaluated)

    def enrich_analyzer_issues(self, id: Identifier) -> List[EvaluatedOrtIssue]:
        raw_issues = self.result.get_analyzer_issues(id)
        if not raw_issues:
            return []
        pkg = self.require_package(id, "analyzer issues")
        return self.enrich_issues(raw_issues, EvaluatedOrtIssueType.ANALYZER, pkg)

    def enrich_violation(self, violation: RuleViolation) -> EvaluatedRuleViolation:
        resolutions = self.violation_resolutions.add_all_if_required(
            self.resolution_provider.get_rule_violation_resolutions_for(violation)
        )
        pkg = self.require_package(violation.pkg, f"rule violation '{violation.rule}'")
        return EvaluatedRuleViolation(
            rule=violation.rule,
            pkg=pkg,
            severity=violation.severity,
            message=violation.message,
            how_to_fix=violation.how_to_fix,
            resolutions=tuple(resolutions),
            license=violation.license,
            license_source=violation.license_source,
        )
