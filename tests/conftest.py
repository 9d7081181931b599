import json
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure src package is importable without installation
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if SRC.exists():
    sys.path.insert(0, str(SRC))

from evaluated_model.types import (  # noqa: E402
    CopyrightFinding,
    CuratedPackage,
    Identifier,
    LicenseFinding,
    OrtIssue,
    OrtResult,
    Package,
    PackageReference,
    ProcessedDeclaredLicense,
    Project,
    Provenance,
    ScanResult,
    ScannerDetails,
    ScanSummary,
    Scope,
    Severity,
    TextLocation,
)

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
T1 = datetime(2024, 1, 1, 12, 5, tzinfo=timezone.utc)

PROJECT_ID = Identifier("Maven", "com.example", "app", "1.0")
X_ID = Identifier("Maven", "org.example", "x", "2.0")
Y_ID = Identifier("Maven", "org.example", "y", "3.1")


def make_issue(message: str, severity: str = "ERROR", source: str = "Maven") -> OrtIssue:
    return OrtIssue(timestamp=T0, source=source, message=message, severity=Severity(severity))


def make_scan_result(
    licenses=(("MIT", "a.py", 1, 1),), copyrights=(), issues=(), verification_code: str = "abc123"
) -> ScanResult:
    return ScanResult(
        provenance=Provenance(download_time=T0),
        scanner=ScannerDetails(name="ScanCode", version="3.2.0"),
        summary=ScanSummary(
            start_time=T0,
            end_time=T1,
            file_count=3,
            package_verification_code=verification_code,
            license_findings=[
                LicenseFinding(license, TextLocation(path, start, end)) for license, path, start, end in licenses
            ],
            copyright_findings=[
                CopyrightFinding(statement, TextLocation(path, start, end))
                for statement, path, start, end in copyrights
            ],
            issues=list(issues),
        ),
    )


def make_package(id: Identifier, licenses=("MIT",)) -> CuratedPackage:
    return CuratedPackage(
        pkg=Package(
            id=id,
            declared_licenses=list(licenses),
            declared_licenses_processed=ProcessedDeclaredLicense(
                spdx_expression=" AND ".join(licenses) if licenses else None
            ),
        )
    )


def make_project(id: Identifier = PROJECT_ID, scopes=None, definition_file_path: str = "pom.xml") -> Project:
    return Project(id=id, definition_file_path=definition_file_path, scopes=list(scopes or []))


@pytest.fixture
def simple_result() -> OrtResult:
    """One project with a "compile" scope depending on X, which declares and contains MIT."""

    project = make_project(scopes=[Scope("compile", [PackageReference(X_ID)])])
    return OrtResult(
        projects=[project],
        packages=[make_package(X_ID)],
        scan_results={X_ID: [make_scan_result()]},
    )


def sample_result_data() -> dict:
    """A small analysis result in the on-disk layout read by ``loader.load_result``."""

    return {
        "repository": {
            "config": {
                "excludes": {"scopes": [{"pattern": "test", "reason": "TEST_DEPENDENCY_OF", "comment": "tests"}]},
                "resolutions": {"issues": [{"message": "Timeout.*", "reason": "SCANNER_ISSUE"}]},
            }
        },
        "analyzer": {
            "result": {
                "projects": [
                    {
                        "id": "Maven:com.example:app:1.0",
                        "definition_file_path": "pom.xml",
                        "declared_licenses": ["Apache-2.0"],
                        "declared_licenses_processed": {"spdx_expression": "Apache-2.0"},
                        "scopes": [
                            {"name": "compile", "dependencies": [{"id": "Maven:org.example:x:2.0"}]},
                            {
                                "name": "test",
                                "dependencies": [
                                    {
                                        "id": "Maven:org.example:y:3.1",
                                        "issues": [
                                            {
                                                "timestamp": "2024-01-01T12:00:00Z",
                                                "source": "Maven",
                                                "message": "Version conflict",
                                                "severity": "WARNING",
                                            }
                                        ],
                                    }
                                ],
                            },
                        ],
                    }
                ],
                "packages": [
                    {
                        "package": {
                            "id": "Maven:org.example:x:2.0",
                            "declared_licenses": ["MIT"],
                            "declared_licenses_processed": {"spdx_expression": "MIT"},
                            "binary_artifact": {"url": "https://repo/x.jar", "hash": {"value": "ab", "algorithm": "SHA-1"}},
                        },
                        "curations": [{"base": {"homepage_url": ""}, "curation": {"homepage_url": "https://x"}}],
                    },
                    {"package": {"id": "Maven:org.example:y:3.1", "declared_licenses": ["BSD-3-Clause"]}},
                ],
                "issues": {
                    "Maven:org.example:x:2.0": [
                        {"timestamp": "2024-01-01T12:00:00Z", "source": "Maven", "message": "Deprecated", "severity": "HINT"}
                    ]
                },
            }
        },
        "scanner": {
            "results": {
                "scan_results": [
                    {
                        "id": "Maven:org.example:x:2.0",
                        "results": [
                            {
                                "provenance": {"download_time": "2024-01-01T12:00:00Z"},
                                "scanner": {"name": "ScanCode", "version": "3.2.0"},
                                "summary": {
                                    "start_time": "2024-01-01T12:00:00Z",
                                    "end_time": "2024-01-01T12:05:00Z",
                                    "file_count": 3,
                                    "package_verification_code": "abc123",
                                    "licenses": [
                                        {"license": "MIT", "location": {"path": "LICENSE", "start_line": 1, "end_line": 21}}
                                    ],
                                    "copyrights": [
                                        {
                                            "statement": "Copyright 2020 Jane Doe",
                                            "location": {"path": "LICENSE", "start_line": 3, "end_line": 3},
                                        }
                                    ],
                                    "issues": [
                                        {
                                            "timestamp": "2024-01-01T12:01:00Z",
                                            "source": "ScanCode",
                                            "message": "Timeout while scanning a.py",
                                        }
                                    ],
                                },
                            }
                        ],
                    }
                ]
            }
        },
        "evaluator": {
            "violations": [
                {
                    "rule": "COPYLEFT_IN_SOURCE",
                    "pkg": "Maven:org.example:x:2.0",
                    "severity": "ERROR",
                    "message": "MIT found",
                    "license": "MIT",
                    "license_source": "DETECTED",
                }
            ]
        },
        "data": {"job": "nightly"},
    }


@pytest.fixture
def result_file(tmp_path) -> Path:
    path = tmp_path / "analyzer-result.json"
    path.write_text(json.dumps(sample_result_data()), encoding="utf-8")
    return path
