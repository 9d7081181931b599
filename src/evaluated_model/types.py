"""Shared data structures for the evaluated model.

The definitions live in domain-focused modules; this module re-exports them
so callers can import everything from one place.
"""

from __future__ import annotations

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

__all__ = [
    "Copyright",
    "CopyrightFinding",
    "CuratedPackage",
    "DependencyTreeNode",
    "EvaluatedFinding",
    "EvaluatedFindingType",
    "EvaluatedModel",
    "EvaluatedOrtIssue",
    "EvaluatedOrtIssueType",
    "EvaluatedPackage",
    "EvaluatedPackagePath",
    "EvaluatedRuleViolation",
    "EvaluatedScanResult",
    "Excludes",
    "Identifier",
    "IssueResolution",
    "IssueResolutionReason",
    "License",
    "LicenseFinding",
    "LicenseSource",
    "OrtIssue",
    "OrtResult",
    "Package",
    "PackageCurationResult",
    "PackageReference",
    "PathExclude",
    "PathExcludeReason",
    "ProcessedDeclaredLicense",
    "Project",
    "Provenance",
    "RemoteArtifact",
    "RepositoryConfiguration",
    "Resolutions",
    "RuleViolation",
    "RuleViolationResolution",
    "RuleViolationResolutionReason",
    "ScanResult",
    "ScanSummary",
    "ScannerDetails",
    "Scope",
    "ScopeExclude",
    "ScopeExcludeReason",
    "Severity",
    "TextLocation",
    "VcsInfo",
]
