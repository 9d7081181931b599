from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from .types_config import Excludes, PathExclude, ScopeExclude, ScopeExcludeReason
from .types_identifiers import Identifier
from .types_input import OrtResult, Project, Scope


class ExcludesProvider(Protocol):
    def path_excludes_for(self, project: Project) -> List[PathExclude]: ...

    def scope_excludes_for(self, scope: Scope) -> List[ScopeExclude]: ...


def _distinct(values: Iterable) -> list:
    result: list = []
    for value in values:
        if value not in result:
            result.append(value)
    return result


class RepositoryExcludes:
    """Applies the path and scope excludes of a repository configuration."""

    def __init__(self, excludes: Excludes) -> None:
        self.excludes = excludes

    def path_excludes_for(self, project: Project) -> List[PathExclude]:
        return [e for e in self.excludes.paths if e.matches(project.definition_file_path)]

    def scope_excludes_for(self, scope: Scope) -> List[ScopeExclude]:
        return [e for e in self.excludes.scopes if e.matches(scope.name)]

    def is_project_excluded(self, project: Project) -> bool:
        return bool(self.path_excludes_for(project))

    def is_scope_excluded(self, scope: Scope) -> bool:
        return bool(self.scope_excludes_for(scope))


class PackageExcludes:
    """Answers exclusion questions for packages by looking at every project that uses them.

    A package is excluded when at least one scope references it and every
    referencing scope is excluded, either directly or because its project is.
    Results are cached per package id; the underlying result must not change
    while an instance is in use.
    """

    def __init__(self, result: OrtResult, provider: RepositoryExcludes) -> None:
        self.result = result
        self.provider = provider
        self._occurrences: Dict[Identifier, List[Tuple[Project, Scope]]] = {}
        self._transitive: Dict[Identifier, Tuple[List[PathExclude], List[ScopeExclude]]] = {}

    def _occurrences_of(self, id: Identifier) -> List[Tuple[Project, Scope]]:
        if id not in self._occurrences:
            self._occurrences[id] = [
                (project, scope)
                for project in self.result.get_projects()
                for scope in project.scopes
                if scope.contains(id)
            ]
        return self._occurrences[id]

    def is_excluded(self, id: Identifier) -> bool:
        occurrences = self._occurrences_of(id)
        if not occurrences:
            return False
        return all(
            self.provider.is_project_excluded(project) or self.provider.is_scope_excluded(scope)
            for project, scope in occurrences
        )

    def transitive_excludes(self, id: Identifier) -> Tuple[List[PathExclude], List[ScopeExclude]]:
        """Return the path excludes of projects and scope excludes of scopes that contain ``id``."""

        if id not in self._transitive:
            occurrences = self._occurrences_of(id)
            path_excludes = _distinct(
                e for project in _distinct(p for p, _ in occurrences) for e in self.provider.path_excludes_for(project)
            )
            scope_excludes = _distinct(e for _, scope in occurrences for e in self.provider.scope_excludes_for(scope))
            self._transitive[id] = (path_excludes, scope_excludes)
        return self._transitive[id]


class PackageManager(str, Enum):
    BOWER = "Bower"
    BUNDLER = "Bundler"
    CARGO = "Cargo"
    GO_MOD = "GoMod"
    GRADLE = "Gradle"
    MAVEN = "Maven"
    NPM = "NPM"
    PHP_COMPOSER = "PhpComposer"
    SBT = "SBT"
    STACK = "Stack"
    YARN = "Yarn"

    @classmethod
    def from_type(cls, type_name: str) -> Optional["PackageManager"]:
        try:
            return cls(type_name)
        except ValueError:
            return None


_NOT_RELEASED = "Not included in released artifacts."

_DEV = ScopeExclude(
    "devDependencies",
    ScopeExcludeReason.DEV_DEPENDENCY_OF,
    f"Scope with dependencies only used for development. {_NOT_RELEASED}",
)
_PROVIDED = ScopeExclude(
    "provided",
    ScopeExcludeReason.PROVIDED_DEPENDENCY_OF,
    f"Scope with dependencies provided by the JDK or container at runtime. {_NOT_RELEASED}",
)
_TEST = ScopeExclude(
    "test",
    ScopeExcludeReason.TEST_DEPENDENCY_OF,
    f"Scope with dependencies only used for testing. {_NOT_RELEASED}",
)

DEFAULT_SCOPE_EXCLUDES: Dict[PackageManager, List[ScopeExclude]] = {
    PackageManager.BOWER: [_DEV],
    PackageManager.BUNDLER: [
        ScopeExclude(
            "test",
            ScopeExcludeReason.TEST_DEPENDENCY_OF,
            f"Scope with dependencies only used for building the testing. {_NOT_RELEASED}",
        )
    ],
    PackageManager.CARGO: [
        ScopeExclude(
            "build-dependencies",
            ScopeExcludeReason.BUILD_DEPENDENCY_OF,
            f"Scope with dependencies only used for building the source code. {_NOT_RELEASED}",
        ),
        ScopeExclude(
            "dev-dependencies",
            ScopeExcludeReason.DEV_DEPENDENCY_OF,
            f"Scope with dependencies only used for development. {_NOT_RELEASED}",
        ),
    ],
    PackageManager.GO_MOD: [
        ScopeExclude(
            "all",
            ScopeExcludeReason.BUILD_DEPENDENCY_OF,
            "Scope with dependencies used to build all targets including non-released artifacts like tests.",
        )
    ],
    PackageManager.GRADLE: [
        ScopeExclude(
            "checkstyle",
            ScopeExcludeReason.BUILD_DEPENDENCY_OF,
            f"Scope with dependencies only used to check code styling (testing). {_NOT_RELEASED}",
        ),
        ScopeExclude(
            "detekt",
            ScopeExcludeReason.DEV_DEPENDENCY_OF,
            f"Scope with dependencies only used for static code analysis (testing). {_NOT_RELEASED}",
        ),
        ScopeExclude(
            "findbugs",
            ScopeExcludeReason.BUILD_DEPENDENCY_OF,
            f"Scope with dependencies only used for static code analysis (testing). {_NOT_RELEASED}",
        ),
        ScopeExclude(
            "jacocoAgent",
            ScopeExcludeReason.TEST_DEPENDENCY_OF,
            f"Scope with dependencies only used for code coverage (testing). {_NOT_RELEASED}",
        ),
        ScopeExclude(
            "jacocoAnt",
            ScopeExcludeReason.TEST_DEPENDENCY_OF,
            f"Scope with dependencies only used for code coverage (testing). {_NOT_RELEASED}",
        ),
        ScopeExclude(
            "kapt.*",
            ScopeExcludeReason.PROVIDED_DEPENDENCY_OF,
            f"Scope with dependencies used to process code annotation. {_NOT_RELEASED}",
        ),
        ScopeExclude(
            "lintClassPath",
            ScopeExcludeReason.TEST_DEPENDENCY_OF,
            f"Scope with dependencies only used for code linting (testing). {_NOT_RELEASED}",
        ),
        ScopeExclude(
            "test.*",
            ScopeExcludeReason.TEST_DEPENDENCY_OF,
            f"Scope with dependencies only used for testing. {_NOT_RELEASED}",
        ),
        ScopeExclude(
            ".*Test.*",
            ScopeExcludeReason.TEST_DEPENDENCY_OF,
            f"Scope with dependencies only used for testing. {_NOT_RELEASED}",
        ),
    ],
    PackageManager.MAVEN: [_PROVIDED, _TEST],
    PackageManager.NPM: [_DEV],
    PackageManager.PHP_COMPOSER: [
        ScopeExclude(
            "require-dev",
            ScopeExcludeReason.DEV_DEPENDENCY_OF,
            f"Scope with dependencies only used for development. {_NOT_RELEASED}",
        )
    ],
    PackageManager.SBT: [_PROVIDED, _TEST],
    PackageManager.STACK: [
        ScopeExclude(
            "bench",
            ScopeExcludeReason.TEST_DEPENDENCY_OF,
            f"Scope with dependencies only used for benchmark testing. {_NOT_RELEASED}",
        ),
        _TEST,
    ],
    PackageManager.YARN: [_DEV],
}


def default_scope_excludes(type_name: str) -> List[ScopeExclude]:
    manager = PackageManager.from_type(type_name)
    return list(DEFAULT_SCOPE_EXCLUDES.get(manager, [])) if manager else []


def minimize_scope_excludes(excludes: Iterable[ScopeExclude], scope_names: Iterable[str]) -> List[ScopeExclude]:
    """Keep only excludes that match at least one scope, without duplicates, sorted by pattern."""

    names = list(scope_names)
    used = [e for e in _distinct(excludes) if any(e.matches(name) for name in names)]
    return sorted(used, key=lambda e: e.pattern)


def generate_scope_excludes(result: OrtResult) -> List[ScopeExclude]:
    scope_names = [scope.name for project in result.get_projects() for scope in project.scopes]
    candidates = [e for project in result.get_projects() for e in default_scope_excludes(project.id.type)]
    return minimize_scope_excludes(candidates, scope_names)
