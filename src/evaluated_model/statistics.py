from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Iterable, List

from .excludes import PackageExcludes, RepositoryExcludes
from .interning import OccurrenceCounter
from .resolutions import ResolutionProvider
from .types_identifiers import Identifier, Severity
from .types_input import OrtIssue, OrtResult, PackageReference


@dataclass
class IssueStatistics:
    errors: int = 0
    warnings: int = 0
    hints: int = 0

    def add(self, severity: Severity) -> None:
        if severity == Severity.ERROR:
            self.errors += 1
        elif severity == Severity.WARNING:
            self.warnings += 1
        else:
            self.hints += 1


@dataclass
class DependencyTreeStatistics:
    included_projects: int = 0
    excluded_projects: int = 0
    included_packages: int = 0
    excluded_packages: int = 0
    total_tree_depth: int = 0
    included_tree_depth: int = 0
    included_scopes: List[str] = field(default_factory=list)
    excluded_scopes: List[str] = field(default_factory=list)


@dataclass
class LicenseStatistics:
    declared: dict[str, int] = field(default_factory=dict)
    detected: dict[str, int] = field(default_factory=dict)


@dataclass
class Statistics:
    """Summary numbers about a result, carried through the model unchanged."""

    open_issues: IssueStatistics = field(default_factory=IssueStatistics)
    open_rule_violations: IssueStatistics = field(default_factory=IssueStatistics)
    dependency_tree: DependencyTreeStatistics = field(default_factory=DependencyTreeStatistics)
    licenses: LicenseStatistics = field(default_factory=LicenseStatistics)

    def as_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Statistics":
        return cls(
            open_issues=IssueStatistics(**data["open_issues"]),
            open_rule_violations=IssueStatistics(**data["open_rule_violations"]),
            dependency_tree=DependencyTreeStatistics(**data["dependency_tree"]),
            licenses=LicenseStatistics(
                declared=dict(data["licenses"]["declared"]), detected=dict(data["licenses"]["detected"])
            ),
        )


def _reference_depth(reference: PackageReference) -> int:
    return 1 + max((_reference_depth(child) for child in reference.dependencies), default=0)


def _tree_depth(references: Iterable[PackageReference]) -> int:
    return max((_reference_depth(ref) for ref in references), default=0)


def calculate_statistics(result: OrtResult, resolution_provider: ResolutionProvider) -> Statistics:
    excludes = RepositoryExcludes(result.get_excludes())
    package_excludes = PackageExcludes(result, excludes)
    stats = Statistics()

    excluded_ids: set[Identifier] = set()
    for project in result.get_projects():
        if excludes.is_project_excluded(project):
            excluded_ids.add(project.id)
            stats.dependency_tree.excluded_projects += 1
        else:
            stats.dependency_tree.included_projects += 1
    for curated in result.get_packages():
        if package_excludes.is_excluded(curated.pkg.id):
            excluded_ids.add(curated.pkg.id)
            stats.dependency_tree.excluded_packages += 1
        else:
            stats.dependency_tree.included_packages += 1

    included_scopes: set[str] = set()
    excluded_scopes: set[str] = set()
    for project in result.get_projects():
        project_excluded = project.id in excluded_ids
        for scope in project.scopes:
            depth = _tree_depth(scope.dependencies)
            stats.dependency_tree.total_tree_depth = max(stats.dependency_tree.total_tree_depth, depth)
            if project_excluded or excludes.is_scope_excluded(scope):
                excluded_scopes.add(scope.name)
            else:
                included_scopes.add(scope.name)
                stats.dependency_tree.included_tree_depth = max(stats.dependency_tree.included_tree_depth, depth)
    stats.dependency_tree.included_scopes = sorted(included_scopes)
    stats.dependency_tree.excluded_scopes = sorted(excluded_scopes - included_scopes)

    def _count_open(issues: Iterable[OrtIssue]) -> None:
        for issue in issues:
            if not resolution_provider.get_issue_resolutions_for(issue):
                stats.open_issues.add(issue.severity)

    for id, issues in result.analyzer_issues.items():
        if id not in excluded_ids:
            _count_open(issues)
    for id, scan_results in result.scan_results.items():
        if id not in excluded_ids:
            for scan_result in scan_results:
                _count_open(scan_result.summary.issues)
    for project in result.get_projects():
        for scope in project.scopes:
            for dependency in scope.dependencies:
                for reference in dependency.walk():
                    if reference.id not in excluded_ids:
                        _count_open(reference.issues)

    for violation in result.rule_violations:
        if not resolution_provider.get_rule_violation_resolutions_for(violation):
            stats.open_rule_violations.add(violation.severity)

    declared = OccurrenceCounter()
    for project in result.get_projects():
        for license_name in project.declared_licenses_processed.all_licenses:
            declared.count(license_name, project.id)
    for curated in result.get_packages():
        for license_name in curated.pkg.declared_licenses_processed.all_licenses:
            declared.count(license_name, curated.pkg.id)

    detected = OccurrenceCounter()
    for id, scan_results in result.scan_results.items():
        for scan_result in scan_results:
            for finding in scan_result.summary.license_findings:
                detected.count(finding.license, id)

    stats.licenses = LicenseStatistics(declared=declared.as_sorted_counts(), detected=detected.as_sorted_counts())
    return stats
