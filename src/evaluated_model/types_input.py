from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterator, Optional

from .types_config import Excludes, RepositoryConfiguration, Resolutions
from .types_identifiers import Identifier, Provenance, RemoteArtifact, ScannerDetails, Severity, TextLocation, VcsInfo


class LicenseSource(str, Enum):
    CONCLUDED = "CONCLUDED"
    DECLARED = "DECLARED"
    DETECTED = "DETECTED"


_SPDX_SPLIT = re.compile(r"\s+(?:AND|OR)\s+|[()]")


@dataclass
class ProcessedDeclaredLicense:
    """Declared licenses after normalization into an SPDX expression."""

    spdx_expression: Optional[str] = None
    mapped: dict[str, str] = field(default_factory=dict)
    unmapped: list[str] = field(default_factory=list)

    @property
    def all_licenses(self) -> list[str]:
        licenses: list[str] = []
        if self.spdx_expression:
            for part in _SPDX_SPLIT.split(self.spdx_expression):
                part = part.strip()
                if part and part not in licenses:
                    licenses.append(part)
        for license_name in self.unmapped:
            if license_name not in licenses:
                licenses.append(license_name)
        return licenses


@dataclass(frozen=True)
class OrtIssue:
    timestamp: datetime
    source: str
    message: str
    severity: Severity = Severity.ERROR


@dataclass
class PackageReference:
    id: Identifier
    dependencies: list["PackageReference"] = field(default_factory=list)
    issues: list[OrtIssue] = field(default_factory=list)

    def walk(self) -> Iterator["PackageReference"]:
        yield self
        for dependency in self.dependencies:
            yield from dependency.walk()


@dataclass
class Scope:
    name: str
    dependencies: list[PackageReference] = field(default_factory=list)

    def contains(self, id: Identifier) -> bool:
        return any(ref.id == id for dependency in self.dependencies for ref in dependency.walk())


@dataclass
class Project:
    id: Identifier
    definition_file_path: str
    declared_licenses: list[str] = field(default_factory=list)
    declared_licenses_processed: ProcessedDeclaredLicense = field(default_factory=ProcessedDeclaredLicense)
    vcs: VcsInfo = field(default_factory=VcsInfo)
    vcs_processed: Optional[VcsInfo] = None
    homepage_url: str = ""
    scopes: list[Scope] = field(default_factory=list)


@dataclass
class Package:
    id: Identifier
    declared_licenses: list[str] = field(default_factory=list)
    declared_licenses_processed: ProcessedDeclaredLicense = field(default_factory=ProcessedDeclaredLicense)
    concluded_license: Optional[str] = None
    description: str = ""
    homepage_url: str = ""
    binary_artifact: RemoteArtifact = field(default_factory=RemoteArtifact)
    source_artifact: RemoteArtifact = field(default_factory=RemoteArtifact)
    vcs: VcsInfo = field(default_factory=VcsInfo)
    vcs_processed: Optional[VcsInfo] = None
    purl: Optional[str] = None


@dataclass
class PackageCurationResult:
    """A curation that was applied to a package, kept as opaque before/after data."""

    base: dict = field(default_factory=dict)
    curation: dict = field(default_factory=dict)


@dataclass
class CuratedPackage:
    pkg: Package
    curations: list[PackageCurationResult] = field(default_factory=list)


@dataclass(frozen=True)
class LicenseFinding:
    license: str
    location: TextLocation


@dataclass(frozen=True)
class CopyrightFinding:
    statement: str
    location: TextLocation


@dataclass
class ScanSummary:
    start_time: datetime
    end_time: datetime
    file_count: int
    package_verification_code: str = ""
    license_findings: list[LicenseFinding] = field(default_factory=list)
    copyright_findings: list[CopyrightFinding] = field(default_factory=list)
    issues: list[OrtIssue] = field(default_factory=list)


@dataclass
class ScanResult:
    provenance: Provenance
    scanner: ScannerDetails
    summary: ScanSummary


@dataclass(frozen=True)
class RuleViolation:
    rule: str
    pkg: Identifier
    severity: Severity
    message: str
    how_to_fix: str = ""
    license: Optional[str] = None
    license_source: Optional[LicenseSource] = None


@dataclass
class OrtResult:
    """The combined output of the analyzer, scanner and evaluator stages."""

    repository_config: RepositoryConfiguration = field(default_factory=RepositoryConfiguration)
    projects: list[Project] = field(default_factory=list)
    packages: list[CuratedPackage] = field(default_factory=list)
    analyzer_issues: dict[Identifier, list[OrtIssue]] = field(default_factory=dict)
    scan_results: dict[Identifier, list[ScanResult]] = field(default_factory=dict)
    rule_violations: list[RuleViolation] = field(default_factory=list)
    custom_data: dict = field(default_factory=dict)

    def get_projects(self) -> list[Project]:
        return self.projects

    def get_packages(self) -> list[CuratedPackage]:
        return self.packages

    def get_excludes(self) -> Excludes:
        return self.repository_config.excludes

    def get_resolutions(self) -> Resolutions:
        return self.repository_config.resolutions

    def get_analyzer_issues(self, id: Identifier) -> list[OrtIssue]:
        return self.analyzer_issues.get(id, [])

    def get_scan_results_for_id(self, id: Identifier) -> list[ScanResult]:
        return self.scan_results.get(id, [])
