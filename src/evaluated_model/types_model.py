"""Evaluated entities.

Entities are cross-referenced by object identity inside one model: every
``EvaluatedPackage``, ``EvaluatedScanResult``, ``License`` and so on exists
exactly once and is shared by everything that refers to it. Issues carry
back-references to their owning package and scan result. Those two fields
close reference cycles, so they are excluded from ``repr`` and equality
compares the owner's identifying key instead of the owner itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .types_config import IssueResolution, PathExclude, RuleViolationResolution, ScopeExclude
from .types_identifiers import Identifier, Provenance, RemoteArtifact, ScannerDetails, Severity, VcsInfo
from .types_input import LicenseSource, PackageCurationResult, ProcessedDeclaredLicense

if TYPE_CHECKING:
    from .statistics import Statistics


class EvaluatedFindingType(str, Enum):
    COPYRIGHT = "COPYRIGHT"
    LICENSE = "LICENSE"


class EvaluatedOrtIssueType(str, Enum):
    ANALYZER = "ANALYZER"
    SCANNER = "SCANNER"


@dataclass(frozen=True, order=True)
class License:
    id: str


@dataclass(frozen=True, order=True)
class Copyright:
    statement: str


@dataclass(frozen=True)
class EvaluatedPackagePath:
    """One way of reaching a package: project, scope and the packages in between."""

    project: Identifier
    scope: str
    packages: tuple[Identifier, ...] = ()


@dataclass(eq=False)
class EvaluatedScanResult:
    provenance: Provenance
    scanner: ScannerDetails
    start_time: datetime
    end_time: datetime
    file_count: int
    package_verification_code: str
    issues: list["EvaluatedOrtIssue"] = field(default_factory=list, repr=False)

    def key(self) -> tuple:
        return (
            self.provenance,
            self.scanner,
            self.start_time,
            self.end_time,
            self.file_count,
            self.package_verification_code,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EvaluatedScanResult):
            return NotImplemented
        return self.key() == other.key() and [i.key() for i in self.issues] == [i.key() for i in other.issues]


@dataclass
class EvaluatedFinding:
    type: EvaluatedFindingType
    license: Optional[License]
    copyright: Optional[Copyright]
    path: str
    start_line: int
    end_line: int
    scan_result: EvaluatedScanResult = field(repr=False)


@dataclass(eq=False)
class EvaluatedOrtIssue:
    timestamp: datetime
    type: EvaluatedOrtIssueType
    source: str
    message: str
    severity: Severity = Severity.ERROR
    resolutions: tuple[IssueResolution, ...] = ()
    pkg: Optional["EvaluatedPackage"] = field(default=None, repr=False)
    # Only set for scanner issues.
    scan_result: Optional[EvaluatedScanResult] = field(default=None, repr=False)
    # Only set for issues found on a dependency edge.
    path: Optional[EvaluatedPackagePath] = None

    def key(self) -> tuple:
        return (
            self.timestamp,
            self.type,
            self.source,
            self.message,
            self.severity,
            self.resolutions,
            self.pkg.id if self.pkg is not None else None,
            self.scan_result.key() if self.scan_result is not None else None,
            self.path,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EvaluatedOrtIssue):
            return NotImplemented
        return self.key() == other.key()

    @property
    def is_resolved(self) -> bool:
        return bool(self.resolutions)


@dataclass
class EvaluatedPackage:
    id: Identifier
    is_project: bool
    definition_file_path: str
    purl: str
    declared_licenses: tuple[str, ...]
    declared_licenses_processed: ProcessedDeclaredLicense
    concluded_license: Optional[str]
    description: str
    homepage_url: str
    binary_artifact: RemoteArtifact
    source_artifact: RemoteArtifact
    vcs: VcsInfo
    vcs_processed: VcsInfo
    curations: list[PackageCurationResult] = field(default_factory=list)
    # Filled in while the model is built, see EvaluatedModelBuilder.
    detected_licenses: tuple[License, ...] = ()
    paths: tuple[EvaluatedPackagePath, ...] = ()
    levels: tuple[int, ...] = ()
    scan_results: list[EvaluatedScanResult] = field(default_factory=list)
    findings: list[EvaluatedFinding] = field(default_factory=list)
    is_excluded: bool = False
    path_excludes: list[PathExclude] = field(default_factory=list)
    scope_excludes: list[ScopeExclude] = field(default_factory=list)
    issues: list[EvaluatedOrtIssue] = field(default_factory=list)


@dataclass
class EvaluatedRuleViolation:
    rule: str
    pkg: EvaluatedPackage = field(repr=False)
    severity: Severity
    message: str
    how_to_fix: str
    resolutions: tuple[RuleViolationResolution, ...] = ()
    license: Optional[str] = None
    license_source: Optional[LicenseSource] = None

    @property
    def is_resolved(self) -> bool:
        return bool(self.resolutions)


@dataclass
class DependencyTreeNode:
    title: str
    key: int
    pkg: Optional[EvaluatedPackage] = field(default=None, repr=False)
    path_excludes: list[PathExclude] = field(default_factory=list)
    scope_excludes: list[ScopeExclude] = field(default_factory=list)
    issues: list[EvaluatedOrtIssue] = field(default_factory=list)
    children: list["DependencyTreeNode"] = field(default_factory=list)

    def depth(self) -> int:
        return 1 + max((child.depth() for child in self.children), default=0)


@dataclass
class EvaluatedModel:
    """The outcome of evaluating an analysis result.

    Excludes and resolutions are applied, every entity is de-duplicated, and
    every issue points back at the package (and scan result) it came from.

    The field order is also the serialization order: containers are written
    before anything refers back into them, see ``serialization.encode_model``.
    """

    path_excludes: list[PathExclude]
    scope_excludes: list[ScopeExclude]
    issue_resolutions: list[IssueResolution]
    issues: list[EvaluatedOrtIssue]
    copyrights: list[Copyright]
    licenses: list[License]
    scan_results: list[EvaluatedScanResult]
    packages: list[EvaluatedPackage]
    dependency_trees: list[DependencyTreeNode]
    violation_resolutions: list[RuleViolationResolution]
    violations: list[EvaluatedRuleViolation]
    declared_license_stats: dict[str, int]
    detected_license_stats: dict[str, int]
    statistics: "Statistics"
    repository_configuration: str
    custom_data: dict = field(default_factory=dict)

    def find_package(self, id: Identifier) -> Optional[EvaluatedPackage]:
        return next((pkg for pkg in self.packages if pkg.id == id), None)

    def to_json(self, indent: int | None = 2) -> str:
        from .serialization import encode_model_json

        return encode_model_json(self, indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "EvaluatedModel":
        from .serialization import decode_model_json

        return decode_model_json(text)

    @classmethod
    def from_file(cls, path: Path | str) -> "EvaluatedModel":
        return cls.from_json(Path(path).read_text(encoding="utf-8"))
