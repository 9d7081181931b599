"""JSON encoding of an ``EvaluatedModel`` with integer surrogate ids.

The model is an object graph with cycles (package -> issues -> package), so
it cannot be written as plain nested JSON. Instances of the entity types in
``_ID_KINDS`` are written in full, with an ``_id`` member, the first time the
encoder reaches them; every later reference is written as that bare integer.
Ids are counted separately per kind.

The back-references from an issue to its package and scan result, and from a
rule violation to its package, are always written as ids. When decoding, the
issue back-references are recreated from the package and scan result
containers afterwards, then checked against the encoded ids.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from .statistics import Statistics
from .types_config import (
    IssueResolution,
    IssueResolutionReason,
    PathExclude,
    PathExcludeReason,
    RuleViolationResolution,
    RuleViolationResolutionReason,
    ScopeExclude,
    ScopeExcludeReason,
)
from .types_identifiers import Identifier, Provenance, RemoteArtifact, ScannerDetails, Severity, VcsInfo
from .types_input import LicenseSource, PackageCurationResult, ProcessedDeclaredLicense
from .types_model import (
    Copyright,
    DependencyTreeNode,
    EvaluatedFinding,
    EvaluatedFindingType,
    EvaluatedModel,
    EvaluatedOrtIssue,
    EvaluatedOrtIssueType,
    EvaluatedPackage,
    EvaluatedPackagePath,
    EvaluatedRuleViolation,
    EvaluatedScanResult,
    License,
)

_ID_KINDS: Dict[type, str] = {
    Copyright: "copyright",
    EvaluatedOrtIssue: "issue",
    EvaluatedPackage: "package",
    EvaluatedRuleViolation: "violation",
    EvaluatedScanResult: "scan_result",
    IssueResolution: "issue_resolution",
    License: "license",
    PathExclude: "path_exclude",
    RuleViolationResolution: "violation_resolution",
    ScopeExclude: "scope_exclude",
}

ID_FIELD = "_id"


class ModelDecodeError(ValueError):
    """Raised when a serialized model is malformed; no partial model is returned."""


def parse_datetime(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _vcs(vcs: VcsInfo) -> dict:
    return {"type": vcs.type, "url": vcs.url, "revision": vcs.revision, "path": vcs.path}


def _artifact(artifact: RemoteArtifact) -> dict:
    return {"url": artifact.url, "hash": artifact.hash, "hash_algorithm": artifact.hash_algorithm}


def _provenance(provenance: Provenance) -> dict:
    return {
        "download_time": provenance.download_time.isoformat() if provenance.download_time else None,
        "source_artifact": _artifact(provenance.source_artifact) if provenance.source_artifact else None,
        "vcs_info": _vcs(provenance.vcs_info) if provenance.vcs_info else None,
    }


def _package_path(path: EvaluatedPackagePath) -> dict:
    return {
        "project": path.project.to_coordinates(),
        "scope": path.scope,
        "packages": [id.to_coordinates() for id in path.packages],
    }


class _Encoder:
    def __init__(self) -> None:
        self._ids: Dict[int, int] = {}
        self._next_ids: Dict[str, int] = {}
        self._written: set[int] = set()
        # Keeps referenced objects alive so their id() values stay unique.
        self._pinned: list = []

    def ref(self, obj: Any) -> int:
        key = id(obj)
        if key not in self._ids:
            kind = _ID_KINDS[type(obj)]
            self._ids[key] = self._next_ids.get(kind, 0)
            self._next_ids[kind] = self._ids[key] + 1
            self._pinned.append(obj)
        return self._ids[key]

    def entity(self, obj: Any, body: Callable[[Any], dict]) -> Any:
        if id(obj) in self._written:
            return self.ref(obj)
        self._written.add(id(obj))
        payload = {ID_FIELD: self.ref(obj)}
        payload.update(body(obj))
        return payload

    def path_exclude(self, exclude: PathExclude) -> Any:
        return self.entity(
            exclude, lambda e: {"pattern": e.pattern, "reason": e.reason.value, "comment": e.comment}
        )

    def scope_exclude(self, exclude: ScopeExclude) -> Any:
        return self.entity(
            exclude, lambda e: {"pattern": e.pattern, "reason": e.reason.value, "comment": e.comment}
        )

    def issue_resolution(self, resolution: IssueResolution) -> Any:
        return self.entity(
            resolution, lambda r: {"message": r.message, "reason": r.reason.value, "comment": r.comment}
        )

    def violation_resolution(self, resolution: RuleViolationResolution) -> Any:
        return self.entity(
            resolution, lambda r: {"message": r.message, "reason": r.reason.value, "comment": r.comment}
        )

    def license(self, license: License) -> Any:
        return self.entity(license, lambda lic: {"id": lic.id})

    def copyright(self, copyright: Copyright) -> Any:
        return self.entity(copyright, lambda c: {"statement": c.statement})

    def issue(self, issue: EvaluatedOrtIssue) -> Any:
        def body(i: EvaluatedOrtIssue) -> dict:
            data = {
                "timestamp": i.timestamp.isoformat(),
                "type": i.type.value,
                "source": i.source,
                "message": i.message,
                "severity": i.severity.value,
                "resolutions": [self.issue_resolution(r) for r in i.resolutions],
                "pkg": self.ref(i.pkg) if i.pkg is not None else None,
                "scan_result": self.ref(i.scan_result) if i.scan_result is not None else None,
            }
            if i.path is not None:
                data["path"] = _package_path(i.path)
            return data

        return self.entity(issue, body)

    def scan_result(self, scan_result: EvaluatedScanResult) -> Any:
        return self.entity(
            scan_result,
            lambda s: {
                "provenance": _provenance(s.provenance),
                "scanner": {
                    "name": s.scanner.name,
                    "version": s.scanner.version,
                    "configuration": s.scanner.configuration,
                },
                "start_time": s.start_time.isoformat(),
                "end_time": s.end_time.isoformat(),
                "file_count": s.file_count,
                "package_verification_code": s.package_verification_code,
                "issues": [self.issue(i) for i in s.issues],
            },
        )

    def finding(self, finding: EvaluatedFinding) -> dict:
        return {
            "type": finding.type.value,
            "license": self.license(finding.license) if finding.license is not None else None,
            "copyright": self.copyright(finding.copyright) if finding.copyright is not None else None,
            "path": finding.path,
            "start_line": finding.start_line,
            "end_line": finding.end_line,
            "scan_result": self.scan_result(finding.scan_result),
        }

    def package(self, pkg: EvaluatedPackage) -> Any:
        def body(p: EvaluatedPackage) -> dict:
            data: dict = {
                "id": p.id.to_coordinates(),
                "is_project": p.is_project,
                "definition_file_path": p.definition_file_path,
                "purl": p.purl,
                "declared_licenses": list(p.declared_licenses),
                "declared_licenses_processed": {
                    "spdx_expression": p.declared_licenses_processed.spdx_expression,
                    "mapped": dict(p.declared_licenses_processed.mapped),
                    "unmapped": list(p.declared_licenses_processed.unmapped),
                },
                "detected_licenses": [self.license(lic) for lic in p.detected_licenses],
            }
            if p.concluded_license is not None:
                data["concluded_license"] = p.concluded_license
            data.update(
                {
                    "description": p.description,
                    "homepage_url": p.homepage_url,
                    "binary_artifact": _artifact(p.binary_artifact),
                    "source_artifact": _artifact(p.source_artifact),
                    "vcs": _vcs(p.vcs),
                    "vcs_processed": _vcs(p.vcs_processed),
                    "curations": [{"base": c.base, "curation": c.curation} for c in p.curations],
                    "paths": [_package_path(path) for path in p.paths],
                    "levels": list(p.levels),
                    "scan_results": [self.scan_result(s) for s in p.scan_results],
                    "findings": [self.finding(f) for f in p.findings],
                    "is_excluded": p.is_excluded,
                    "path_excludes": [self.path_exclude(e) for e in p.path_excludes],
                    "scope_excludes": [self.scope_exclude(e) for e in p.scope_excludes],
                    "issues": [self.issue(i) for i in p.issues],
                }
            )
            return data

        return self.entity(pkg, body)

    def tree_node(self, node: DependencyTreeNode) -> dict:
        data: dict = {
            "title": node.title,
            "key": node.key,
            "pkg": self.package(node.pkg) if node.pkg is not None else None,
        }
        if node.path_excludes:
            data["path_excludes"] = [self.path_exclude(e) for e in node.path_excludes]
        if node.scope_excludes:
            data["scope_excludes"] = [self.scope_exclude(e) for e in node.scope_excludes]
        if node.issues:
            data["issues"] = [self.issue(i) for i in node.issues]
        data["children"] = [self.tree_node(child) for child in node.children]
        return data

    def violation(self, violation: EvaluatedRuleViolation) -> Any:
        def body(v: EvaluatedRuleViolation) -> dict:
            data: dict = {"rule": v.rule, "pkg": self.ref(v.pkg)}
            if v.license is not None:
                data["license"] = v.license
            if v.license_source is not None:
                data["license_source"] = v.license_source.value
            data.update(
                {
                    "severity": v.severity.value,
                    "message": v.message,
                    "how_to_fix": v.how_to_fix,
                    "resolutions": [self.violation_resolution(r) for r in v.resolutions],
                }
            )
            return data

        return self.entity(violation, body)

    def model(self, model: EvaluatedModel) -> dict:
        return {
            "path_excludes": [self.path_exclude(e) for e in model.path_excludes],
            "scope_excludes": [self.scope_exclude(e) for e in model.scope_excludes],
            "issue_resolutions": [self.issue_resolution(r) for r in model.issue_resolutions],
            "issues": [self.issue(i) for i in model.issues],
            "copyrights": [self.copyright(c) for c in model.copyrights],
            "licenses": [self.license(lic) for lic in model.licenses],
            "scan_results": [self.scan_result(s) for s in model.scan_results],
            "packages": [self.package(p) for p in model.packages],
            "dependency_trees": [self.tree_node(n) for n in model.dependency_trees],
            "violation_resolutions": [self.violation_resolution(r) for r in model.violation_resolutions],
            "violations": [self.violation(v) for v in model.violations],
            "declared_license_stats": dict(model.declared_license_stats),
            "detected_license_stats": dict(model.detected_license_stats),
            "statistics": model.statistics.as_dict(),
            "repository_configuration": model.repository_configuration,
            "custom_data": model.custom_data,
        }


def encode_model(model: EvaluatedModel) -> dict:
    return _Encoder().model(model)


def encode_model_json(model: EvaluatedModel, indent: Optional[int] = 2) -> str:
    return json.dumps(encode_model(model), indent=indent)


def _identifier(value: str) -> Identifier:
    return Identifier.from_coordinates(value)


def _vcs_from(data: dict) -> VcsInfo:
    return VcsInfo(type=data["type"], url=data["url"], revision=data["revision"], path=data["path"])


def _artifact_from(data: dict) -> RemoteArtifact:
    return RemoteArtifact(url=data["url"], hash=data["hash"], hash_algorithm=data["hash_algorithm"])


def _provenance_from(data: dict) -> Provenance:
    return Provenance(
        download_time=parse_datetime(data["download_time"]) if data.get("download_time") else None,
        source_artifact=_artifact_from(data["source_artifact"]) if data.get("source_artifact") else None,
        vcs_info=_vcs_from(data["vcs_info"]) if data.get("vcs_info") else None,
    )


def _package_path_from(data: dict) -> EvaluatedPackagePath:
    return EvaluatedPackagePath(
        project=_identifier(data["project"]),
        scope=data["scope"],
        packages=tuple(_identifier(id) for id in data["packages"]),
    )


class _Decoder:
    def __init__(self) -> None:
        self._objects: Dict[str, Dict[int, Any]] = {kind: {} for kind in _ID_KINDS.values()}
        # Encoded (pkg, scan_result) ids per issue, checked once the model is reconciled.
        self._issue_owners: List[Tuple[EvaluatedOrtIssue, Any, Any]] = []

    def entity(self, cls: type, value: Any, parse: Callable[[dict], Any]) -> Any:
        kind = _ID_KINDS[cls]
        known = self._objects[kind]
        if isinstance(value, int) and not isinstance(value, bool):
            if value not in known:
                raise ModelDecodeError(f"Unknown {kind} id {value}")
            return known[value]
        if not isinstance(value, dict):
            raise ModelDecodeError(f"Expected a {kind} object or id, got {type(value).__name__}")
        surrogate = value[ID_FIELD]
        if surrogate in known:
            raise ModelDecodeError(f"Duplicate {kind} id {surrogate}")
        obj = parse(value)
        known[surrogate] = obj
        return obj

    def path_exclude(self, value: Any) -> PathExclude:
        return self.entity(
            PathExclude, value, lambda d: PathExclude(d["pattern"], PathExcludeReason(d["reason"]), d["comment"])
        )

    def scope_exclude(self, value: Any) -> ScopeExclude:
        return self.entity(
            ScopeExclude, value, lambda d: ScopeExclude(d["pattern"], ScopeExcludeReason(d["reason"]), d["comment"])
        )

    def issue_resolution(self, value: Any) -> IssueResolution:
        return self.entity(
            IssueResolution,
            value,
            lambda d: IssueResolution(d["message"], IssueResolutionReason(d["reason"]), d["comment"]),
        )

    def violation_resolution(self, value: Any) -> RuleViolationResolution:
        return self.entity(
            RuleViolationResolution,
            value,
            lambda d: RuleViolationResolution(d["message"], RuleViolationResolutionReason(d["reason"]), d["comment"]),
        )

    def license(self, value: Any) -> License:
        return self.entity(License, value, lambda d: License(d["id"]))

    def copyright(self, value: Any) -> Copyright:
        return self.entity(Copyright, value, lambda d: Copyright(d["statement"]))

    def _issue_body(self, d: dict) -> EvaluatedOrtIssue:
        # pkg and scan_result are restored by _recreate_references.
        issue = EvaluatedOrtIssue(
            timestamp=parse_datetime(d["timestamp"]),
            type=EvaluatedOrtIssueType(d["type"]),
            source=d["source"],
            message=d["message"],
            severity=Severity(d["severity"]),
            resolutions=tuple(self.issue_resolution(r) for r in d["resolutions"]),
            path=_package_path_from(d["path"]) if d.get("path") is not None else None,
        )
        self._issue_owners.append((issue, d["pkg"], d["scan_result"]))
        return issue

    def issue(self, value: Any) -> EvaluatedOrtIssue:
        return self.entity(EvaluatedOrtIssue, value, self._issue_body)

    def _owner(self, kind: str, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ModelDecodeError(f"Expected a {kind} id, got {type(value).__name__}")
        if value not in self._objects[kind]:
            raise ModelDecodeError(f"Unknown {kind} id {value}")
        return self._objects[kind][value]

    def check_issue_owners(self) -> None:
        """Fail unless every issue points at the package and scan result that list it."""

        for issue, pkg_id, scan_result_id in self._issue_owners:
            pkg = self._owner("package", pkg_id)
            scan_result = self._owner("scan_result", scan_result_id)
            if issue.pkg is not pkg:
                raise ModelDecodeError(
                    f"Issue '{issue.message}' refers to package id {pkg_id} but is not listed in its issues"
                )
            if issue.scan_result is not scan_result:
                raise ModelDecodeError(
                    f"Issue '{issue.message}' refers to scan_result id {scan_result_id} but is not listed in its issues"
                )

    def scan_result(self, value: Any) -> EvaluatedScanResult:
        return self.entity(
            EvaluatedScanResult,
            value,
            lambda d: EvaluatedScanResult(
                provenance=_provenance_from(d["provenance"]),
                scanner=ScannerDetails(
                    name=d["scanner"]["name"],
                    version=d["scanner"]["version"],
                    configuration=d["scanner"]["configuration"],
                ),
                start_time=parse_datetime(d["start_time"]),
                end_time=parse_datetime(d["end_time"]),
                file_count=int(d["file_count"]),
                package_verification_code=d["package_verification_code"],
                issues=[self.issue(i) for i in d["issues"]],
            ),
        )

    def finding(self, data: dict) -> EvaluatedFinding:
        return EvaluatedFinding(
            type=EvaluatedFindingType(data["type"]),
            license=self.license(data["license"]) if data.get("license") is not None else None,
            copyright=self.copyright(data["copyright"]) if data.get("copyright") is not None else None,
            path=data["path"],
            start_line=int(data["start_line"]),
            end_line=int(data["end_line"]),
            scan_result=self.scan_result(data["scan_result"]),
        )

    def _package_body(self, d: dict) -> EvaluatedPackage:
        processed = d["declared_licenses_processed"]
        return EvaluatedPackage(
            id=_identifier(d["id"]),
            is_project=bool(d["is_project"]),
            definition_file_path=d["definition_file_path"],
            purl=d["purl"],
            declared_licenses=tuple(d["declared_licenses"]),
            declared_licenses_processed=ProcessedDeclaredLicense(
                spdx_expression=processed.get("spdx_expression"),
                mapped=dict(processed.get("mapped") or {}),
                unmapped=list(processed.get("unmapped") or []),
            ),
            concluded_license=d.get("concluded_license"),
            description=d["description"],
            homepage_url=d["homepage_url"],
            binary_artifact=_artifact_from(d["binary_artifact"]),
            source_artifact=_artifact_from(d["source_artifact"]),
            vcs=_vcs_from(d["vcs"]),
            vcs_processed=_vcs_from(d["vcs_processed"]),
            curations=[PackageCurationResult(base=c["base"], curation=c["curation"]) for c in d["curations"]],
            detected_licenses=tuple(self.license(lic) for lic in d["detected_licenses"]),
            paths=tuple(_package_path_from(p) for p in d["paths"]),
            levels=tuple(int(level) for level in d["levels"]),
            scan_results=[self.scan_result(s) for s in d["scan_results"]],
            findings=[self.finding(f) for f in d["findings"]],
            is_excluded=bool(d["is_excluded"]),
            path_excludes=[self.path_exclude(e) for e in d["path_excludes"]],
            scope_excludes=[self.scope_exclude(e) for e in d["scope_excludes"]],
            issues=[self.issue(i) for i in d["issues"]],
        )

    def package(self, value: Any) -> EvaluatedPackage:
        return self.entity(EvaluatedPackage, value, self._package_body)

    def tree_node(self, data: dict) -> DependencyTreeNode:
        return DependencyTreeNode(
            title=data["title"],
            key=int(data["key"]),
            pkg=self.package(data["pkg"]) if data.get("pkg") is not None else None,
            path_excludes=[self.path_exclude(e) for e in data.get("path_excludes", [])],
            scope_excludes=[self.scope_exclude(e) for e in data.get("scope_excludes", [])],
            issues=[self.issue(i) for i in data.get("issues", [])],
            children=[self.tree_node(child) for child in data["children"]],
        )

    def violation(self, value: Any) -> EvaluatedRuleViolation:
        return self.entity(
            EvaluatedRuleViolation,
            value,
            lambda d: EvaluatedRuleViolation(
                rule=d["rule"],
                pkg=self.package(d["pkg"]),
            severity=Severity(d["severity"]),
            message=d["message"],
                how_to_fix=d["how_to_fix"],
            resolutions=tuple(self.violation_resolution(r) for r in d["resolutions"]),
                license=d.get("license"),
                license_source=LicenseSource(d["license_source"]) if d.get("license_source") else None,
            ),
        )

    def model(self, data: dict) -> EvaluatedModel:
        return EvaluatedModel(
            path_excludes=[self.path_exclude(e) for e in data["path_excludes"]],
            scope_excludes=[self.scope_exclude(e) for e in data["scope_excludes"]],
            issue_resolutions=[self.issue_resolution(r) for r in data["issue_resolutions"]],
            issues=[self.issue(i) for i in data["issues"]],
            copyrights=[self.copyright(c) for c in data["copyrights"]],
            licenses=[self.license(lic) for lic in data["licenses"]],
            scan_results=[self.scan_result(s) for s in data["scan_results"]],
            packages=[self.package(p) for p in data["packages"]],
            dependency_trees=[self.tree_node(n) for n in data["dependency_trees"]],
            violation_resolutions=[self.violation_resolution(r) for r in data["violation_resolutions"]],
            violations=[self.violation(v) for v in data["violations"]],
            declared_license_stats={str(k): int(v) for k, v in data["declared_license_stats"].items()},
            detected_license_stats={str(k): int(v) for k, v in data["detected_license_stats"].items()},
            statistics=Statistics.from_dict(data["statistics"]),
            repository_configuration=data["repository_configuration"],
            custom_data=dict(data.get("custom_data") or {}),
        )


def _recreate_references(model: EvaluatedModel) -> EvaluatedModel:
    for pkg in model.packages:
        for issue in pkg.issues:
            issue.pkg = pkg
    for scan_result in model.scan_results:
        for issue in scan_result.issues:
            issue.scan_result = scan_result
    return model


def decode_model(data: Any) -> EvaluatedModel:
    if not isinstance(data, dict):
        raise ModelDecodeError("Serialized model must be a JSON object")
    decoder = _Decoder()
    try:
        model = _recreate_references(decoder.model(data))
        decoder.check_issue_owners()
    except ModelDecodeError:
        raise
    except KeyError as exc:
        raise ModelDecodeError(f"Missing required field {exc}") from exc
    except (TypeError, ValueError, AttributeError) as exc:
        raise ModelDecodeError(f"Malformed model document: {exc}") from exc
    return model


def decode_model_json(text: str) -> EvaluatedModel:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ModelDecodeError(f"Invalid JSON: {exc}") from exc
    return decode_model(data)
