from __future__ import annotations

from typing import Callable, Dict, List, Optional

import yaml

from .dependency_tree import DependencyTreeBuilder, PackageAccumulator, SkippedReference
from .enrichment import IssueEnricher, MissingPackageError
from .excludes import PackageExcludes, RepositoryExcludes
from .findings import FindingAttacher, FindingsMatcher
from .interning import EntityInterner, OccurrenceCounter
from .resolutions import DefaultResolutionProvider, ResolutionProvider
from .statistics import Statistics, calculate_statistics
from .types_config import IssueResolution, PathExclude, RuleViolationResolution, ScopeExclude
from .types_identifiers import Identifier, RemoteArtifact
from .types_input import CuratedPackage, OrtResult, ProcessedDeclaredLicense, Project, RuleViolation, ScanResult
from .types_model import (
    Copyright,
    EvaluatedModel,
    EvaluatedOrtIssue,
    EvaluatedOrtIssueType,
    EvaluatedPackage,
    EvaluatedRuleViolation,
    EvaluatedScanResult,
    License,
)

__all__ = ["EvaluatedModelBuilder", "MissingPackageError", "SkippedReference", "create_model"]

StatisticsProvider = Callable[[OrtResult, ResolutionProvider], Statistics]


def _append_distinct(target: list, values: List) -> None:
    for value in values:
        if not any(existing is value for existing in target):
            target.append(value)


class EvaluatedModelBuilder:
    """Assembles an ``EvaluatedModel`` from one analysis result.

    Call ``add_project`` for every project and ``add_package`` for every
    package before ``add_rule_violation``, then ``build`` once. The builder
    owns every interned list while it runs; it is single-use and not
    thread-safe.
    """

    def __init__(
        self,
        result: OrtResult,
        resolution_provider: Optional[ResolutionProvider] = None,
        matcher: Optional[FindingsMatcher] = None,
        statistics_provider: StatisticsProvider = calculate_statistics,
    ) -> None:
        self.result = result
        self.resolution_provider = resolution_provider or DefaultResolutionProvider(result.get_resolutions())
        self.statistics_provider = statistics_provider

        self.packages: EntityInterner[EvaluatedPackage] = EntityInterner(key=lambda pkg: pkg.id)
        self.scan_results: EntityInterner[EvaluatedScanResult] = EntityInterner(key=EvaluatedScanResult.key)
        self.issues: EntityInterner[EvaluatedOrtIssue] = EntityInterner(key=EvaluatedOrtIssue.key)
        self.licenses: EntityInterner[License] = EntityInterner()
        self.copyrights: EntityInterner[Copyright] = EntityInterner()
        self.issue_resolutions: EntityInterner[IssueResolution] = EntityInterner()
        self.violation_resolutions: EntityInterner[RuleViolationResolution] = EntityInterner()
        self.path_excludes: EntityInterner[PathExclude] = EntityInterner()
        self.scope_excludes: EntityInterner[ScopeExclude] = EntityInterner()
        self.violations: List[EvaluatedRuleViolation] = []
        self.declared_license_stats = OccurrenceCounter()
        self.detected_license_stats = OccurrenceCounter()
        self.skipped_references: List[SkippedReference] = []

        self._accumulators: Dict[Identifier, PackageAccumulator] = {}
        self._excludes = RepositoryExcludes(result.get_excludes())
        self._package_excludes = PackageExcludes(result, self._excludes)
        self._enricher = IssueEnricher(
            result,
            self.packages,
            self.issues,
            self.issue_resolutions,
            self.violation_resolutions,
            self.resolution_provider,
        )
        self._attacher = FindingAttacher(self.licenses, self.copyrights, self.detected_license_stats, matcher)
        self._built = False

    def add_project(self, project: Project) -> EvaluatedPackage:
        applicable_path_excludes = self._excludes.path_excludes_for(project)

        evaluated = EvaluatedPackage(
            id=project.id,
            is_project=True,
            definition_file_path=project.definition_file_path,
            purl=project.id.to_purl(),
            declared_licenses=tuple(sorted(project.declared_licenses)),
            declared_licenses_processed=project.declared_licenses_processed,
            concluded_license=None,
            description="",
            homepage_url=project.homepage_url,
            binary_artifact=RemoteArtifact.empty(),
            source_artifact=RemoteArtifact.empty(),
            vcs=project.vcs,
            vcs_processed=project.vcs_processed or project.vcs.normalize(),
            is_excluded=bool(applicable_path_excludes),
            path_excludes=self.path_excludes.add_all_if_required(applicable_path_excludes),
        )
        return self._populate(evaluated, project.declared_licenses_processed, levels={0})

    def add_package(self, curated: CuratedPackage) -> EvaluatedPackage:
        pkg = curated.pkg

        # Walking every project's scopes is costly, so only excluded packages pay for it.
        is_excluded = self._package_excludes.is_excluded(pkg.id)
        if is_excluded:
            applicable_path_excludes, applicable_scope_excludes = self._package_excludes.transitive_excludes(pkg.id)
        else:
            applicable_path_excludes, applicable_scope_excludes = [], []

        evaluated = EvaluatedPackage(
            id=pkg.id,
            is_project=False,
            definition_file_path="",
            purl=pkg.purl or pkg.id.to_purl(),
            declared_licenses=tuple(sorted(pkg.declared_licenses)),
            declared_licenses_processed=pkg.declared_licenses_processed,
            concluded_license=pkg.concluded_license,
            description=pkg.description,
            homepage_url=pkg.homepage_url,
            binary_artifact=pkg.binary_artifact,
            source_artifact=pkg.source_artifact,
            vcs=pkg.vcs,
            vcs_processed=pkg.vcs_processed or pkg.vcs.normalize(),
            curations=list(curated.curations),
            is_excluded=is_excluded,
            path_excludes=self.path_excludes.add_all_if_required(applicable_path_excludes),
            scope_excludes=self.scope_excludes.add_all_if_required(applicable_scope_excludes),
        )
        return self._populate(evaluated, pkg.declared_licenses_processed, levels=set())

    def add_result(self) -> "EvaluatedModelBuilder":
        for project in self.result.get_projects():
            self.add_project(project)
        for curated in self.result.get_packages():
            self.add_package(curated)
        for violation in self.result.rule_violations:
            self.add_rule_violation(violation)
        return self

    def add_rule_violation(self, violation: RuleViolation) -> EvaluatedRuleViolation:
        evaluated = self._enricher.enrich_violation(violation)
        self.violations.append(evaluated)
        return evaluated

    def _populate(
        self, evaluated: EvaluatedPackage, declared: ProcessedDeclaredLicense, levels: set[int]
    ) -> EvaluatedPackage:
        actual = self.packages.add_if_required(evaluated)
        if actual is not evaluated:
            # Already added and populated under the same id.
            return actual

        accumulator = self._accumulators.setdefault(actual.id, PackageAccumulator())
        accumulator.levels.update(levels)

        for license_name in declared.all_licenses:
            license = self.licenses.add_if_required(License(license_name))
            self.declared_license_stats.count(license.id, actual.id)

        _append_distinct(actual.issues, self._enricher.enrich_analyzer_issues(actual.id))

        for raw in self.result.get_scan_results_for_id(actual.id):
            scan_result = self._convert_scan_result(raw, actual, accumulator)
            _append_distinct(actual.scan_results, [scan_result])

        return actual

    def _convert_scan_result(
        self, raw: ScanResult, pkg: EvaluatedPackage, accumulator: PackageAccumulator
    ) -> EvaluatedScanResult:
        summary = raw.summary
        scan_result = self.scan_results.add_if_required(
            EvaluatedScanResult(
                provenance=raw.provenance,
                scanner=raw.scanner,
                start_time=summary.start_time,
                end_time=summary.end_time,
                file_count=summary.file_count,
                package_verification_code=summary.package_verification_code,
            )
        )

        scanner_issues = self._enricher.enrich_issues(summary.issues, EvaluatedOrtIssueType.SCANNER, pkg, scan_result)
        _append_distinct(scan_result.issues, scanner_issues)
        _append_distinct(pkg.issues, scanner_issues)

        self._attacher.attach(summary, scan_result, pkg.id, pkg.findings, accumulator.detected_licenses)
        return scan_result

    def build(self) -> EvaluatedModel:
        if self._built:
            raise RuntimeError("EvaluatedModelBuilder instances are single-use; create a new builder per build")
        self._built = True

        for id in self.result.analyzer_issues:
            self._enricher.require_package(id, "analyzer issues")

        # Trees are built last so that every package can be looked up by id.
        tree_builder = DependencyTreeBuilder(
            self.packages, self._accumulators, self._enricher, self._excludes, self.scope_excludes
        )
        dependency_trees = [tree_builder.build_tree(project) for project in self.result.get_projects()]
        self.skipped_references = list(tree_builder.skipped_references)

        for pkg in self.packages:
            self._accumulators.setdefault(pkg.id, PackageAccumulator()).apply_to(pkg)

        return EvaluatedModel(
            path_excludes=self.path_excludes.to_list(),
            scope_excludes=self.scope_excludes.to_list(),
            issue_resolutions=self.issue_resolutions.to_list(),
            issues=self.issues.to_list(),
            copyrights=self.copyrights.to_list(),
            licenses=self.licenses.to_list(),
            scan_results=self.scan_results.to_list(),
            packages=self.packages.to_list(),
            dependency_trees=dependency_trees,
            violation_resolutions=self.violation_resolutions.to_list(),
            violations=list(self.violations),
            declared_license_stats=self.declared_license_stats.as_sorted_counts(),
            detected_license_stats=self.detected_license_stats.as_sorted_counts(),
            statistics=self.statistics_provider(self.result, self.resolution_provider),
            repository_configuration=yaml.safe_dump(self.result.repository_config.as_dict(), sort_keys=False),
            custom_data=dict(self.result.custom_data),
        )


def create_model(
    result: OrtResult,
    resolution_provider: Optional[ResolutionProvider] = None,
    matcher: Optional[FindingsMatcher] = None,
    statistics_provider: StatisticsProvider = calculate_statistics,
) -> EvaluatedModel:
    """Run the full pipeline: projects, packages, rule violations, then dependency trees."""

    builder = EvaluatedModelBuilder(result, resolution_provider, matcher, statistics_provider)
    return builder.add_result().build()
