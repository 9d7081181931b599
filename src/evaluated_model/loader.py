"""Loading of analysis results and resolution files from JSON or YAML.

The expected layout mirrors the stage outputs::

    repository: {config: {excludes: ..., resolutions: ...}}
    analyzer: {result: {projects: [...], packages: [...], issues: {<id>: [...]}}}
    scanner: {results: {scan_results: [{id: <id>, results: [...]}]}}
    evaluator: {violations: [...]}
    data: {...}

Identifiers are written as ``Type:namespace:name:version`` coordinates.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, List

import yaml

from .serialization import parse_datetime
from .types_config import (
    Excludes,
    IssueResolution,
    IssueResolutionReason,
    PathExclude,
    PathExcludeReason,
    RepositoryConfiguration,
    Resolutions,
    RuleViolationResolution,
    RuleViolationResolutionReason,
    ScopeExclude,
    ScopeExcludeReason,
)
from .types_identifiers import Identifier, Provenance, RemoteArtifact, ScannerDetails, Severity, TextLocation, VcsInfo
from .types_input import (
    CopyrightFinding,
    CuratedPackage,
    LicenseFinding,
    LicenseSource,
    OrtIssue,
    OrtResult,
    Package,
    PackageCurationResult,
    PackageReference,
    ProcessedDeclaredLicense,
    Project,
    RuleViolation,
    ScanResult,
    ScanSummary,
    Scope,
)


class ResultLoadError(ValueError):
    """Raised when an analysis result or resolutions file cannot be understood."""


def _regex(pattern: str, what: str) -> str:
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ResultLoadError(f"Invalid {what} pattern '{pattern}': {exc}") from exc
    return pattern


def _read_structured(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yml", ".yaml"}:
        return yaml.safe_load(text) or {}
    return json.loads(text)


def _vcs(raw: dict | None) -> VcsInfo:
    raw = raw or {}
    return VcsInfo(
        type=raw.get("type", ""), url=raw.get("url", ""), revision=raw.get("revision", ""), path=raw.get("path", "")
    )


def _artifact(raw: dict | None) -> RemoteArtifact:
    raw = raw or {}
    hash_info = raw.get("hash")
    if isinstance(hash_info, dict):
        return RemoteArtifact(
            url=raw.get("url", ""), hash=hash_info.get("value", ""), hash_algorithm=hash_info.get("algorithm", "")
        )
    return RemoteArtifact(url=raw.get("url", ""), hash=hash_info or "", hash_algorithm=raw.get("hash_algorithm", ""))


def _processed(raw: dict | None) -> ProcessedDeclaredLicense:
    raw = raw or {}
    return ProcessedDeclaredLicense(
        spdx_expression=raw.get("spdx_expression"),
        mapped=dict(raw.get("mapped") or {}),
        unmapped=list(raw.get("unmapped") or []),
    )


def _issue(raw: dict) -> OrtIssue:
    return OrtIssue(
        timestamp=parse_datetime(str(raw["timestamp"])),
        source=raw.get("source", ""),
        message=raw["message"],
        severity=Severity(str(raw.get("severity", Severity.ERROR.value)).upper()),
    )


def _reference(raw: dict) -> PackageReference:
    return PackageReference(
        id=Identifier.from_coordinates(raw["id"]),
        dependencies=[_reference(child) for child in raw.get("dependencies", []) or []],
        issues=[_issue(issue) for issue in raw.get("issues", []) or []],
    )


def _project(raw: dict) -> Project:
    return Project(
        id=Identifier.from_coordinates(raw["id"]),
        definition_file_path=raw.get("definition_file_path", ""),
        declared_licenses=list(raw.get("declared_licenses", []) or []),
        declared_licenses_processed=_processed(raw.get("declared_licenses_processed")),
        vcs=_vcs(raw.get("vcs")),
        vcs_processed=_vcs(raw["vcs_processed"]) if raw.get("vcs_processed") else None,
        homepage_url=raw.get("homepage_url", ""),
        scopes=[
            Scope(name=scope["name"], dependencies=[_reference(dep) for dep in scope.get("dependencies", []) or []])
            for scope in raw.get("scopes", []) or []
        ],
    )


def _package(raw: dict) -> CuratedPackage:
    pkg = raw.get("package", raw)
    return CuratedPackage(
        pkg=Package(
            id=Identifier.from_coordinates(pkg["id"]),
            purl=pkg.get("purl"),
            declared_licenses=list(pkg.get("declared_licenses", []) or []),
            declared_licenses_processed=_processed(pkg.get("declared_licenses_processed")),
            concluded_license=pkg.get("concluded_license"),
            description=pkg.get("description", ""),
            homepage_url=pkg.get("homepage_url", ""),
            binary_artifact=_artifact(pkg.get("binary_artifact")),
            source_artifact=_artifact(pkg.get("source_artifact")),
            vcs=_vcs(pkg.get("vcs")),
            vcs_processed=_vcs(pkg["vcs_processed"]) if pkg.get("vcs_processed") else None,
        ),
        curations=[
            PackageCurationResult(base=dict(c.get("base") or {}), curation=dict(c.get("curation") or {}))
            for c in raw.get("curations", []) or []
        ],
    )


def _location(raw: dict) -> TextLocation:
    return TextLocation(path=raw["path"], start_line=int(raw["start_line"]), end_line=int(raw["end_line"]))


def _scan_result(raw: dict) -> ScanResult:
    provenance = raw.get("provenance") or {}
    scanner = raw["scanner"]
    summary = raw["summary"]
    return ScanResult(
        provenance=Provenance(
            download_time=parse_datetime(str(provenance["download_time"])) if provenance.get("download_time") else None,
            source_artifact=_artifact(provenance["source_artifact"]) if provenance.get("source_artifact") else None,
            vcs_info=_vcs(provenance["vcs_info"]) if provenance.get("vcs_info") else None,
        ),
        scanner=ScannerDetails(
            name=scanner["name"], version=str(scanner["version"]), configuration=scanner.get("configuration", "")
        ),
        summary=ScanSummary(
            start_time=parse_datetime(str(summary["start_time"])),
            end_time=parse_datetime(str(summary["end_time"])),
            file_count=int(summary.get("file_count", 0)),
            package_verification_code=summary.get("package_verification_code", ""),
            license_findings=[
                LicenseFinding(license=f["license"], location=_location(f["location"]))
                for f in summary.get("licenses", []) or []
            ],
            copyright_findings=[
                CopyrightFinding(statement=f["statement"], location=_location(f["location"]))
                for f in summary.get("copyrights", []) or []
            ],
            issues=[_issue(issue) for issue in summary.get("issues", []) or []],
        ),
    )


def _violation(raw: dict) -> RuleViolation:
    return RuleViolation(
        rule=raw["rule"],
        pkg=Identifier.from_coordinates(raw["pkg"]),
        severity=Severity(str(raw.get("severity", Severity.ERROR.value)).upper()),
        message=raw.get("message", ""),
        how_to_fix=raw.get("how_to_fix", ""),
        license=raw.get("license"),
        license_source=LicenseSource(raw["license_source"]) if raw.get("license_source") else None,
    )


def parse_resolutions(raw: dict | None) -> Resolutions:
    raw = raw or {}
    return Resolutions(
        issues=[
            IssueResolution(
                _regex(r["message"], "issue resolution"), IssueResolutionReason(r["reason"]), r.get("comment", "")
            )
            for r in raw.get("issues", []) or []
        ],
        rule_violations=[
            RuleViolationResolution(
                _regex(r["message"], "rule violation resolution"),
                RuleViolationResolutionReason(r["reason"]),
                r.get("comment", ""),
            )
            for r in raw.get("rule_violations", []) or []
        ],
    )


def parse_repository_configuration(raw: dict | None) -> RepositoryConfiguration:
    raw = raw or {}
    excludes = raw.get("excludes") or {}
    return RepositoryConfiguration(
        excludes=Excludes(
            paths=[
                PathExclude(e["pattern"], PathExcludeReason(e["reason"]), e.get("comment", ""))
                for e in excludes.get("paths", []) or []
            ],
            scopes=[
                ScopeExclude(
                    _regex(e["pattern"], "scope exclude"), ScopeExcludeReason(e["reason"]), e.get("comment", "")
                )
                for e in excludes.get("scopes", []) or []
            ],
        ),
        resolutions=parse_resolutions(raw.get("resolutions")),
    )


def parse_result(raw: dict) -> OrtResult:
    try:
        analyzer = (raw.get("analyzer") or {}).get("result") or {}
        scanner = (raw.get("scanner") or {}).get("results") or {}
        evaluator = raw.get("evaluator") or {}

        scan_results: dict[Identifier, List[ScanResult]] = {}
        for container in scanner.get("scan_results", []) or []:
            id = Identifier.from_coordinates(container["id"])
            scan_results.setdefault(id, []).extend(_scan_result(r) for r in container.get("results", []) or [])

        return OrtResult(
            repository_config=parse_repository_configuration((raw.get("repository") or {}).get("config")),
            projects=[_project(p) for p in analyzer.get("projects", []) or []],
            packages=[_package(p) for p in analyzer.get("packages", []) or []],
            analyzer_issues={
                Identifier.from_coordinates(id): [_issue(issue) for issue in issues or []]
                for id, issues in (analyzer.get("issues") or {}).items()
            },
            scan_results=scan_results,
            rule_violations=[_violation(v) for v in evaluator.get("violations", []) or []],
            custom_data=dict(raw.get("data") or {}),
        )
    except ResultLoadError:
        raise
    except KeyError as exc:
        raise ResultLoadError(f"Missing required field {exc}") from exc
    except (TypeError, ValueError, AttributeError) as exc:
        raise ResultLoadError(f"Malformed analysis result: {exc}") from exc


def load_result(path: Path | str) -> OrtResult:
    path = Path(path)
    try:
        raw = _read_structured(path)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ResultLoadError(f"Unable to parse {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ResultLoadError(f"{path} does not contain an analysis result object")
    return parse_result(raw)


def load_resolutions(path: Path | str) -> Resolutions:
    path = Path(path)
    try:
        raw = _read_structured(path)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ResultLoadError(f"Unable to parse {path}: {exc}") from exc
    try:
        return parse_resolutions(raw)
    except ResultLoadError:
        raise
    except KeyError as exc:
        raise ResultLoadError(f"Missing required field {exc} in {path}") from exc
    except (TypeError, ValueError, AttributeError) as exc:
        raise ResultLoadError(f"Malformed resolutions file {path}: {exc}") from exc


def load_repository_configuration(path: Path | str) -> RepositoryConfiguration:
    path = Path(path)
    try:
        return parse_repository_configuration(_read_structured(path))
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ResultLoadError(f"Unable to parse {path}: {exc}") from exc
    except ResultLoadError:
        raise
    except KeyError as exc:
        raise ResultLoadError(f"Missing required field {exc} in {path}") from exc
    except (TypeError, ValueError, AttributeError) as exc:
        raise ResultLoadError(f"Malformed repository configuration {path}: {exc}") from exc
