from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .enrichment import IssueEnricher, MissingPackageError
from .excludes import ExcludesProvider
from .interning import EntityInterner
from .types_config import ScopeExclude
from .types_identifiers import Identifier
from .types_input import PackageReference, Project, Scope
from .types_model import (
    DependencyTreeNode,
    EvaluatedOrtIssueType,
    EvaluatedPackage,
    EvaluatedPackagePath,
    License,
)


@dataclass
class PackageAccumulator:
    """Build-time state of a package that only grows until the model is finished."""

    paths: List[EvaluatedPackagePath] = field(default_factory=list)
    levels: set[int] = field(default_factory=set)
    detected_licenses: set[License] = field(default_factory=set)

    def apply_to(self, pkg: EvaluatedPackage) -> None:
        pkg.paths = tuple(self.paths)
        pkg.levels = tuple(sorted(self.levels))
        pkg.detected_licenses = tuple(sorted(self.detected_licenses))


@dataclass(frozen=True)
class SkippedReference:
    """A dependency edge that was left out of the tree because its target is unknown."""

    project: Identifier
    scope: str
    id: Identifier


class DependencyTreeBuilder:
    """Mirrors each project's scopes and dependencies as a tree of ``DependencyTreeNode``.

    Every visited package records the path it was reached by and the depth it
    was found at. Node keys come from a counter owned by this instance, so
    keys are unique within one build and start at zero for every builder.
    """

    def __init__(
        self,
        packages: EntityInterner[EvaluatedPackage],
        accumulators: Dict[Identifier, PackageAccumulator],
        enricher: IssueEnricher,
        excludes: ExcludesProvider,
        scope_excludes: EntityInterner[ScopeExclude],
    ) -> None:
        self.packages = packages
        self.accumulators = accumulators
        self.enricher = enricher
        self.excludes = excludes
        self.scope_excludes = scope_excludes
        self.skipped_references: List[SkippedReference] = []
        self._next_key = 0

    def next_key(self) -> int:
        key = self._next_key
        self._next_key += 1
        return key

    def build_tree(self, project: Project) -> DependencyTreeNode:
        project_pkg = self.packages.find(project.id)
        if project_pkg is None:
            raise MissingPackageError(project.id, "dependency tree root")

        root = DependencyTreeNode(
            title=project.id.to_coordinates(),
            key=self.next_key(),
            pkg=project_pkg,
            path_excludes=list(project_pkg.path_excludes),
        )
        root.children = [self._build_scope(project, scope) for scope in project.scopes]
        return root

    def _build_scope(self, project: Project, scope: Scope) -> DependencyTreeNode:
        node = DependencyTreeNode(
            title=scope.name,
            key=self.next_key(),
            scope_excludes=self.scope_excludes.add_all_if_required(self.excludes.scope_excludes_for(scope)),
        )
        node.children = self._build_references(project.id, scope.name, scope.dependencies, (project.id,))
        return node

    def _build_references(
        self,
        project_id: Identifier,
        scope: str,
        references: List[PackageReference],
        path: tuple[Identifier, ...],
    ) -> List[DependencyTreeNode]:
        nodes: List[DependencyTreeNode] = []
        for reference in references:
            pkg = self.packages.find(reference.id)
            if pkg is None:
                # No node for an unknown package; its dependencies move up to the parent.
                self.skipped_references.append(SkippedReference(project_id, scope, reference.id))
                nodes.extend(
                    self._build_references(project_id, scope, reference.dependencies, path + (reference.id,))
                )
            else:
                nodes.append(self._build_reference(project_id, scope, reference, pkg, path))
        return nodes

    def _build_reference(
        self,
        project_id: Identifier,
        scope: str,
        reference: PackageReference,
        pkg: EvaluatedPackage,
        path: tuple[Identifier, ...],
    ) -> DependencyTreeNode:
        package_path = EvaluatedPackagePath(project=project_id, scope=scope, packages=path)
        accumulator = self.accumulators.setdefault(pkg.id, PackageAccumulator())
        if package_path not in accumulator.paths:
            accumulator.paths.append(package_path)
        accumulator.levels.add(len(path))

        issues = self.enricher.enrich_issues(reference.issues, EvaluatedOrtIssueType.ANALYZER, pkg, path=package_path)
        for issue in issues:
            if not any(existing is issue for existing in pkg.issues):
                pkg.issues.append(issue)

        node = DependencyTreeNode(
            title=reference.id.to_coordinates(),
            key=self.next_key(),
            pkg=pkg,
            issues=issues,
        )
        node.children = self._build_references(project_id, scope, reference.dependencies, path + (pkg.id,))
        return node
