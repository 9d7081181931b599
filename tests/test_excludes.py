from evaluated_model.excludes import (
    PackageExcludes,
    PackageManager,
    RepositoryExcludes,
    default_scope_excludes,
    generate_scope_excludes,
)
from evaluated_model.types import (
    Excludes,
    Identifier,
    OrtResult,
    PackageReference,
    PathExclude,
    PathExcludeReason,
    RepositoryConfiguration,
    Scope,
    ScopeExclude,
    ScopeExcludeReason,
)

from conftest import X_ID, Y_ID, make_project

EXAMPLES = PathExclude("examples/**", PathExcludeReason.EXAMPLE_OF, "examples only")
TESTS = ScopeExclude("test.*", ScopeExcludeReason.TEST_DEPENDENCY_OF)


def _result(projects, excludes):
    return OrtResult(repository_config=RepositoryConfiguration(excludes=excludes), projects=projects)


def test_path_and_scope_excludes_match_by_glob_and_regex():
    provider = RepositoryExcludes(Excludes(paths=[EXAMPLES], scopes=[TESTS]))

    assert provider.path_excludes_for(make_project(definition_file_path="examples/demo/pom.xml")) == [EXAMPLES]
    assert provider.path_excludes_for(make_project(definition_file_path="pom.xml")) == []
    assert provider.scope_excludes_for(Scope("testCompile")) == [TESTS]
    assert provider.scope_excludes_for(Scope("compile")) == []


def test_package_is_excluded_only_when_every_occurrence_is_excluded():
    example = make_project(
        id=Identifier("Maven", "com.example", "demo", "1.0"),
        definition_file_path="examples/demo/pom.xml",
        scopes=[Scope("compile", [PackageReference(X_ID), PackageReference(Y_ID)])],
    )
    main = make_project(scopes=[Scope("compile", [PackageReference(Y_ID)]), Scope("test", [PackageReference(X_ID)])])
    result = _result([example, main], Excludes(paths=[EXAMPLES], scopes=[TESTS]))

    package_excludes = PackageExcludes(result, RepositoryExcludes(result.get_excludes()))

    assert package_excludes.is_excluded(X_ID)
    assert not package_excludes.is_excluded(Y_ID)
    assert not package_excludes.is_excluded(Identifier("Maven", "org.example", "unused", "1"))
    assert package_excludes.transitive_excludes(X_ID) == ([EXAMPLES], [TESTS])


def test_default_scope_excludes_use_static_table():
    assert PackageManager.from_type("Maven") is PackageManager.MAVEN
    assert PackageManager.from_type("Unknown") is None
    assert [e.pattern for e in default_scope_excludes("NPM")] == ["devDependencies"]
    assert default_scope_excludes("Unknown") == []


def test_generate_scope_excludes_keeps_only_matching_patterns_sorted():
    maven = make_project(scopes=[Scope("compile"), Scope("test")])
    gradle = make_project(
        id=Identifier("Gradle", "com.example", "lib", "1.0"),
        scopes=[Scope("testCompile"), Scope("kaptAnnotations"), Scope("runtime")],
    )

    generated = generate_scope_excludes(_result([maven, gradle], Excludes()))

    assert [e.pattern for e in generated] == ["kapt.*", "test", "test.*"]
    assert generated[1].reason is ScopeExcludeReason.TEST_DEPENDENCY_OF
