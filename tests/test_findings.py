from evaluated_model.findings import FindingAttacher, ProximityFindingsMatcher
from evaluated_model.interning import EntityInterner, OccurrenceCounter
from evaluated_model.types import (
    CopyrightFinding,
    EvaluatedFindingType,
    EvaluatedScanResult,
    LicenseFinding,
    TextLocation,
)

from conftest import T0, T1, X_ID, Y_ID, make_scan_result


def _loc(path, start, end=None):
    return TextLocation(path, start, end if end is not None else start)


def test_single_license_in_file_takes_every_copyright():
    matcher = ProximityFindingsMatcher(tolerance_lines=5)
    result = matcher.match(
        [LicenseFinding("MIT", _loc("LICENSE", 1, 20))],
        [CopyrightFinding("Copyright (c) 2020 Jane", _loc("LICENSE", 200))],
    )

    assert len(result) == 1
    assert result[0].license == "MIT"
    assert result[0].copyrights[0].statement == "Copyright (c) 2020 Jane"


def test_copyrights_are_matched_by_line_proximity_when_file_has_several_licenses():
    matcher = ProximityFindingsMatcher(tolerance_lines=5)
    result = matcher.match(
        [LicenseFinding("MIT", _loc("src/a.c", 10, 12)), LicenseFinding("BSD-3-Clause", _loc("src/a.c", 100, 120))],
        [
            CopyrightFinding("Copyright Alice", _loc("src/a.c", 6)),
            CopyrightFinding("Copyright Bob", _loc("src/a.c", 98)),
            CopyrightFinding("Copyright Nobody", _loc("src/other.c", 1)),
        ],
    )

    by_license = {group.license: group for group in result}
    assert [c.statement for c in by_license["MIT"].copyrights] == ["Copyright Alice"]
    assert [c.statement for c in by_license["BSD-3-Clause"].copyrights] == ["Copyright Bob"]


def test_tolerance_can_come_from_environment(monkeypatch):
    monkeypatch.setenv("EVALUATED_MODEL_MATCH_TOLERANCE", "0")
    assert ProximityFindingsMatcher().tolerance_lines == 0

    monkeypatch.setenv("EVALUATED_MODEL_MATCH_TOLERANCE", "not-a-number")
    assert ProximityFindingsMatcher().tolerance_lines == 5


def test_attacher_emits_findings_per_location_and_interns_values():
    licenses = EntityInterner()
    copyrights = EntityInterner()
    detected = OccurrenceCounter()
    attacher = FindingAttacher(licenses, copyrights, detected, ProximityFindingsMatcher(tolerance_lines=5))

    raw = make_scan_result(
        licenses=[("MIT", "a.py", 1, 1), ("MIT", "b.py", 3, 4)],
        copyrights=[("Copyright Jane", "a.py", 2, 2)],
    )
    scan_result = EvaluatedScanResult(
        provenance=raw.provenance,
        scanner=raw.scanner,
        start_time=T0,
        end_time=T1,
        file_count=3,
        package_verification_code="abc123",
    )
    findings = []
    detected_licenses = set()

    attacher.attach(raw.summary, scan_result, X_ID, findings, detected_licenses)
    attacher.attach(raw.summary, scan_result, Y_ID, [], set())

    license_findings = [f for f in findings if f.type == EvaluatedFindingType.LICENSE]
    copyright_findings = [f for f in findings if f.type == EvaluatedFindingType.COPYRIGHT]
    assert sorted((f.path, f.start_line) for f in license_findings) == [("a.py", 1), ("b.py", 3)]
    assert copyright_findings[0].copyright.statement == "Copyright Jane"
    assert all(f.scan_result is scan_result for f in findings)
    assert license_findings[0].license is license_findings[1].license
    assert len(licenses) == 1
    assert len(copyrights) == 1
    assert {lic.id for lic in detected_licenses} == {"MIT"}
    assert detected.as_sorted_counts() == {"MIT": 2}
