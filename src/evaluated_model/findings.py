from __future__ import annotations

import os
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, List, Protocol

from .interning import EntityInterner, OccurrenceCounter
from .types_identifiers import Identifier, TextLocation
from .types_input import CopyrightFinding, LicenseFinding, ScanSummary
from .types_model import Copyright, EvaluatedFinding, EvaluatedFindingType, EvaluatedScanResult, License

DEFAULT_TOLERANCE_LINES = 5


@dataclass
class CopyrightFindings:
    statement: str
    locations: List[TextLocation] = field(default_factory=list)


@dataclass
class LicenseFindings:
    """A license with every location it was found at and the copyrights attributed to it."""

    license: str
    locations: List[TextLocation] = field(default_factory=list)
    copyrights: List[CopyrightFindings] = field(default_factory=list)


class FindingsMatcher(Protocol):
    def match(
        self, license_findings: Iterable[LicenseFinding], copyright_findings: Iterable[CopyrightFinding]
    ) -> List[LicenseFindings]: ...


def _tolerance_from_env() -> int:
    env_tolerance = os.environ.get("EVALUATED_MODEL_MATCH_TOLERANCE")
    try:
        return max(0, int(env_tolerance)) if env_tolerance is not None else DEFAULT_TOLERANCE_LINES
    except ValueError:
        return DEFAULT_TOLERANCE_LINES


class ProximityFindingsMatcher:
    """Attributes copyright findings to license findings in the same file.

    When a file has a single license finding every copyright in that file is
    attributed to it. Otherwise a copyright goes to each license finding whose
    line range, widened by ``tolerance_lines``, contains the copyright's start
    line. Copyrights matching no license are dropped.
    """

    def __init__(self, tolerance_lines: int | None = None) -> None:
        self.tolerance_lines = _tolerance_from_env() if tolerance_lines is None else tolerance_lines

    def _in_range(self, license_finding: LicenseFinding, copyright_finding: CopyrightFinding) -> bool:
        start = license_finding.location.start_line - self.tolerance_lines
        end = license_finding.location.end_line + self.tolerance_lines
        return start <= copyright_finding.location.start_line <= end

    def match(
        self, license_findings: Iterable[LicenseFinding], copyright_findings: Iterable[CopyrightFinding]
    ) -> List[LicenseFindings]:
        licenses_by_path: dict[str, list[LicenseFinding]] = defaultdict(list)
        for finding in license_findings:
            licenses_by_path[finding.location.path].append(finding)
        copyrights_by_path: dict[str, list[CopyrightFinding]] = defaultdict(list)
        for finding in copyright_findings:
            copyrights_by_path[finding.location.path].append(finding)

        grouped: dict[str, LicenseFindings] = {}
        for path, path_licenses in licenses_by_path.items():
            path_copyrights = copyrights_by_path.get(path, [])
            for license_finding in path_licenses:
                group = grouped.setdefault(license_finding.license, LicenseFindings(license_finding.license))
                if license_finding.location not in group.locations:
                    group.locations.append(license_finding.location)

                if len(path_licenses) == 1:
                    matched = path_copyrights
                else:
                    matched = [c for c in path_copyrights if self._in_range(license_finding, c)]

                for copyright_finding in matched:
                    entry = next((c for c in group.copyrights if c.statement == copyright_finding.statement), None)
                    if entry is None:
                        entry = CopyrightFindings(copyright_finding.statement)
                        group.copyrights.append(entry)
                    if copyright_finding.location not in entry.locations:
                        entry.locations.append(copyright_finding.location)

        return list(grouped.values())


class FindingAttacher:
    """Turns the raw findings of one scan result into per-location ``EvaluatedFinding`` records."""

    def __init__(
        self,
        licenses: EntityInterner[License],
        copyrights: EntityInterner[Copyright],
        detected_license_stats: OccurrenceCounter,
        matcher: FindingsMatcher | None = None,
    ) -> None:
        self.licenses = licenses
        self.copyrights = copyrights
        self.detected_license_stats = detected_license_stats
        self.matcher = matcher or ProximityFindingsMatcher()

    def attach(
        self,
        summary: ScanSummary,
        scan_result: EvaluatedScanResult,
        pkg_id: Identifier,
        findings: List[EvaluatedFinding],
        detected_licenses: set[License],
    ) -> List[EvaluatedFinding]:
        emitted: List[EvaluatedFinding] = []
        for license_findings in self.matcher.match(summary.license_findings, summary.copyright_findings):
            for copyright_findings in license_findings.copyrights:
                copyright = self.copyrights.add_if_required(Copyright(copyright_findings.statement))
                for location in copyright_findings.locations:
                    emitted.append(
                        EvaluatedFinding(
                            type=EvaluatedFindingType.COPYRIGHT,
                            license=None,
                            copyright=copyright,
                            path=location.path,
                            start_line=location.start_line,
                            end_line=location.end_line,
                            scan_result=scan_result,
                        )
                    )

            license = self.licenses.add_if_required(License(license_findings.license))
            self.detected_license_stats.count(license.id, pkg_id)
            for location in license_findings.locations:
                emitted.append(
                    EvaluatedFinding(
                        type=EvaluatedFindingType.LICENSE,
                        license=license,
                        copyright=None,
                        path=location.path,
                        start_line=location.start_line,
                        end_line=location.end_line,
                        scan_result=scan_result,
                    )
                )

        findings.extend(emitted)
        detected_licenses.update(
            f.license for f in emitted if f.type == EvaluatedFindingType.LICENSE and f.license is not None
        )
        return emitted
