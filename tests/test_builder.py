import pytest

from evaluated_model.builder import EvaluatedModelBuilder, MissingPackageError, SkippedReference, create_model
from evaluated_model.types import (
    EvaluatedFindingType,
    EvaluatedOrtIssueType,
    EvaluatedPackagePath,
    Excludes,
    Identifier,
    IssueResolution,
    IssueResolutionReason,
    License,
    OrtResult,
    PackageReference,
    RepositoryConfiguration,
    Resolutions,
    RuleViolation,
    RuleViolationResolution,
    RuleViolationResolutionReason,
    Scope,
    ScopeExclude,
    ScopeExcludeReason,
    Severity,
)

from conftest import PROJECT_ID, X_ID, Y_ID, make_issue, make_package, make_project, make_scan_result

Z_ID = Identifier("Maven", "org.example", "z", "0.1")


def test_single_package_with_detected_license(simple_result):
    model = create_model(simple_result)

    x = model.find_package(X_ID)
    assert model.licenses == [License("MIT")]
    assert x.detected_licenses == (License("MIT"),)
    assert x.detected_licenses[0] is model.licenses[0]
    assert x.paths == (EvaluatedPackagePath(PROJECT_ID, "compile", (PROJECT_ID,)),)
    assert x.levels == (1,)
    assert len(model.scan_results) == 1
    assert x.scan_results[0] is model.scan_results[0]
    assert [(f.type, f.license, f.path) for f in x.findings] == [(EvaluatedFindingType.LICENSE, License("MIT"), "a.py")]
    assert x.findings[0].scan_result is model.scan_results[0]
    assert model.declared_license_stats == {"MIT": 1}
    assert model.detected_license_stats == {"MIT": 1}


def test_project_is_a_package_at_level_zero(simple_result):
    model = create_model(simple_result)

    project = model.find_package(PROJECT_ID)
    assert project.is_project
    assert project.levels == (0,)
    assert project.definition_file_path == "pom.xml"
    assert project.purl == "pkg:maven/com.example/app@1.0"
    assert [pkg.id for pkg in model.packages] == [PROJECT_ID, X_ID]


def test_package_reached_from_two_scopes_has_two_paths(simple_result):
    simple_result.projects[0].scopes.append(Scope("test", [PackageReference(X_ID)]))

    x = create_model(simple_result).find_package(X_ID)

    assert [path.scope for path in x.paths] == ["compile", "test"]
    assert x.levels == (1,)


def test_paths_and_levels_accumulate_across_projects():
    project_b_id = Identifier("Maven", "com.example", "b", "1.0")
    project_a = make_project(scopes=[Scope("compile", [PackageReference(X_ID)])])
    project_b = make_project(
        id=project_b_id,
        definition_file_path="b/pom.xml",
        scopes=[Scope("compile", [PackageReference(Y_ID, [PackageReference(X_ID)])])],
    )
    result = OrtResult(projects=[project_a, project_b], packages=[make_package(X_ID), make_package(Y_ID)])

    x = create_model(result).find_package(X_ID)

    assert x.paths == (
        EvaluatedPackagePath(PROJECT_ID, "compile", (PROJECT_ID,)),
        EvaluatedPackagePath(project_b_id, "compile", (project_b_id, Y_ID)),
    )
    assert x.levels == (1, 2)


def test_identical_scan_results_are_shared():
    ids = [Identifier("Maven", "org.example", f"p{n}", "1") for n in range(3)]
    result = OrtResult(
        projects=[make_project(scopes=[Scope("compile", [PackageReference(id) for id in ids])])],
        packages=[make_package(id) for id in ids],
        scan_results={id: [make_scan_result()] for id in ids},
    )

    model = create_model(result)

    assert len(model.scan_results) == 1
    assert all(model.find_package(id).scan_results[0] is model.scan_results[0] for id in ids)
    assert model.detected_license_stats == {"MIT": 3}


def test_declared_licenses_are_counted_once_per_package():
    result = OrtResult(
        projects=[make_project()],
        packages=[make_package(X_ID, licenses=("MIT", "MIT")), make_package(Y_ID, licenses=("MIT", "Apache-2.0"))],
    )

    model = create_model(result)

    assert model.declared_license_stats == {"Apache-2.0": 1, "MIT": 2}
    assert sorted(lic.id for lic in model.licenses) == ["Apache-2.0", "MIT"]


def test_analyzer_issue_for_unknown_package_raises(simple_result):
    simple_result.analyzer_issues[Z_ID] = [make_issue("Could not resolve")]

    with pytest.raises(MissingPackageError) as excinfo:
        create_model(simple_result)

    assert excinfo.value.id == Z_ID
    assert "org.example:z:0.1" in str(excinfo.value)


def test_rule_violation_for_unknown_package_raises(simple_result):
    simple_result.rule_violations.append(RuleViolation("NO_GPL", Z_ID, Severity.ERROR, "GPL found"))

    with pytest.raises(MissingPackageError):
        create_model(simple_result)


def test_unknown_dependency_is_skipped_and_recorded(simple_result):
    simple_result.projects[0].scopes[0].dependencies.append(PackageReference(Z_ID, [PackageReference(X_ID)]))

    builder = EvaluatedModelBuilder(simple_result).add_result()
    model = builder.build()

    assert builder.skipped_references == [SkippedReference(PROJECT_ID, "compile", Z_ID)]
    scope_node = model.dependency_trees[0].children[0]
    assert [child.pkg.id for child in scope_node.children] == [X_ID, X_ID]
    assert model.find_package(Z_ID) is None
    assert model.find_package(X_ID).levels == (1, 2)


def test_packages_below_an_unknown_dependency_keep_their_paths():
    project = make_project(scopes=[Scope("compile", [PackageReference(Z_ID, [PackageReference(Y_ID)])])])
    result = OrtResult(projects=[project], packages=[make_package(Y_ID)])

    builder = EvaluatedModelBuilder(result).add_result()
    model = builder.build()

    y = model.find_package(Y_ID)
    assert y.paths == (EvaluatedPackagePath(PROJECT_ID, "compile", (PROJECT_ID, Z_ID)),)
    assert y.levels == (2,)
    scope_node = model.dependency_trees[0].children[0]
    assert [child.pkg for child in scope_node.children] == [y]
    assert [node.key for node in (model.dependency_trees[0], scope_node, scope_node.children[0])] == [0, 1, 2]
    assert builder.skipped_references == [SkippedReference(PROJECT_ID, "compile", Z_ID)]


def test_analyzer_issues_are_enriched_and_resolved(simple_result):
    simple_result.analyzer_issues[X_ID] = [make_issue("Timeout after 30s"), make_issue("Timeout after 30s")]
    simple_result.repository_config = RepositoryConfiguration(
        resolutions=Resolutions(issues=[IssueResolution("Timeout.*", IssueResolutionReason.BUILD_TOOL_ISSUE)])
    )

    model = create_model(simple_result)

    x = model.find_package(X_ID)
    assert len(model.issues) == 1
    issue = model.issues[0]
    assert issue.type is EvaluatedOrtIssueType.ANALYZER
    assert issue.pkg is x
    assert issue.is_resolved
    assert issue.resolutions[0] is model.issue_resolutions[0]
    assert x.issues == [issue]
    assert model.statistics.open_issues.errors == 0


def test_scanner_issues_point_at_scan_result(simple_result):
    simple_result.scan_results[X_ID] = [make_scan_result(issues=[make_issue("Scan timed out", source="ScanCode")])]

    model = create_model(simple_result)

    scan_result = model.scan_results[0]
    issue = model.issues[0]
    assert issue.type is EvaluatedOrtIssueType.SCANNER
    assert issue.scan_result is scan_result
    assert scan_result.issues == [issue]
    assert model.find_package(X_ID).issues == [issue]
    assert model.statistics.open_issues.errors == 1


def test_dependency_edge_issues_carry_the_path():
    project = make_project(
        scopes=[Scope("compile", [PackageReference(X_ID, issues=[make_issue("Version conflict", "WARNING")])])]
    )
    result = OrtResult(projects=[project], packages=[make_package(X_ID)])

    model = create_model(result)

    x_node = model.dependency_trees[0].children[0].children[0]
    assert len(x_node.issues) == 1
    assert x_node.issues[0].path == EvaluatedPackagePath(PROJECT_ID, "compile", (PROJECT_ID,))
    assert x_node.issues[0] is model.issues[0]
    assert model.find_package(X_ID).issues == x_node.issues


def test_rule_violations_are_resolved_by_message(simple_result):
    simple_result.rule_violations.append(RuleViolation("NO_GPL", X_ID, Severity.ERROR, "GPL-2.0 found in x"))
    simple_result.rule_violations.append(RuleViolation("HINT_ONLY", X_ID, Severity.HINT, "Consider a newer version"))
    simple_result.repository_config = RepositoryConfiguration(
        resolutions=Resolutions(
            rule_violations=[
                RuleViolationResolution("GPL-2\\.0 found.*", RuleViolationResolutionReason.CANT_FIX_EXCEPTION)
            ]
        )
    )

    model = create_model(simple_result)

    resolved, open_violation = model.violations
    assert resolved.pkg is model.find_package(X_ID)
    assert resolved.is_resolved
    assert not open_violation.is_resolved
    assert model.violation_resolutions == list(simple_result.get_resolutions().rule_violations)
    assert model.statistics.open_rule_violations.hints == 1
    assert model.statistics.open_rule_violations.errors == 0


def test_scope_excludes_mark_packages_and_tree_nodes():
    tests_exclude = ScopeExclude("test", ScopeExcludeReason.TEST_DEPENDENCY_OF)
    project = make_project(scopes=[Scope("compile", [PackageReference(Y_ID)]), Scope("test", [PackageReference(X_ID)])])
    result = OrtResult(
        repository_config=RepositoryConfiguration(excludes=Excludes(scopes=[tests_exclude])),
        projects=[project],
        packages=[make_package(X_ID), make_package(Y_ID)],
    )

    model = create_model(result)

    x = model.find_package(X_ID)
    assert x.is_excluded
    assert x.scope_excludes == [tests_exclude]
    assert not model.find_package(Y_ID).is_excluded
    assert model.scope_excludes == [tests_exclude]
    compile_node, test_node = model.dependency_trees[0].children
    assert compile_node.scope_excludes == []
    assert test_node.scope_excludes[0] is model.scope_excludes[0]
    assert model.statistics.dependency_tree.excluded_packages == 1
    assert model.statistics.dependency_tree.excluded_scopes == ["test"]


def test_tree_keys_are_unique_and_preorder():
    project = make_project(
        scopes=[Scope("compile", [PackageReference(Y_ID, [PackageReference(X_ID)])]), Scope("test")]
    )
    result = OrtResult(projects=[project], packages=[make_package(X_ID), make_package(Y_ID)])

    root = create_model(result).dependency_trees[0]

    compile_node, test_node = root.children
    y_node = compile_node.children[0]
    assert [root.key, compile_node.key, y_node.key, y_node.children[0].key, test_node.key] == [0, 1, 2, 3, 4]
    assert root.title == "Maven:com.example:app:1.0"
    assert root.pkg.id == PROJECT_ID
    assert y_node.children[0].pkg.id == X_ID
    assert root.depth() == 4


def test_builder_is_single_use(simple_result):
    builder = EvaluatedModelBuilder(simple_result).add_result()
    builder.build()

    with pytest.raises(RuntimeError):
        builder.build()


def test_repository_configuration_is_stored_as_yaml(simple_result):
    simple_result.repository_config = RepositoryConfiguration(
        excludes=Excludes(scopes=[ScopeExclude("test", ScopeExcludeReason.TEST_DEPENDENCY_OF)])
    )

    model = create_model(simple_result)

    assert "pattern: test" in model.repository_configuration
    assert "TEST_DEPENDENCY_OF" in model.repository_configuration
