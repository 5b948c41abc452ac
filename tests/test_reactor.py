"""Tests for loading a reactor from disk."""

from __future__ import annotations

from pathlib import Path

import pytest

from mvnsource.errors import FatalConfigurationError
from mvnsource.models import Coordinate
from mvnsource.project import MavenProject
from mvnsource.reactor import _ReactorLoader, load_session
from mvnsource.settings import ExecutionRequest
from tests._fixtures.reactor_builder import ReactorBuilder


def _by_artifact(session, artifact_id: str):  # type: ignore[no-untyped-def]
    return next(project for project in session.projects if project.coordinate.artifact_id == artifact_id)


def test_load_session_orders_modules_after_their_dependencies(reactor_builder: ReactorBuilder) -> None:
    reactor_builder.pom(".", "root", packaging="pom", modules=["app", "lib"])
    reactor_builder.pom("app", "app", parent="root", dependencies=["lib"])
    reactor_builder.pom("lib", "lib", parent="root")

    session = reactor_builder.session()

    assert [project.coordinate.artifact_id for project in session.projects] == ["root", "lib", "app"]
    root, lib, app = session.projects
    assert root.collected_projects == [app, lib]
    assert app.parent is root
    assert app.file == reactor_builder.path("app/pom.xml")
    assert app.coordinate == Coordinate("com.example", "app", "1.0.0")
    assert session.dependency_graph.upstream_projects(app, transitive=False) == [root, lib]
    assert app.compile_classpath_elements() == [
        str(app.paths.output_directory),
        str(lib.paths.output_directory),
    ]
    assert app.test_classpath_elements()[:2] == [
        str(app.paths.test_output_directory),
        str(app.paths.output_directory),
    ]
    assert session.other_project_directories(lib) == {root.basedir, app.basedir}


def test_load_session_reads_build_paths_and_properties(reactor_builder: ReactorBuilder) -> None:
    reactor_builder.pom(
        ".",
        "root",
        properties={"project.build.sourceEncoding": "ISO-8859-1", "generated": "${project.basedir}/gen"},
        extra="""
        <build>
          <directory>${project.basedir}/out</directory>
          <sourceDirectory>src/java</sourceDirectory>
          <testResources><testResource><directory>fixtures</directory></testResource></testResources>
        </build>
        """,
    )

    (project,) = reactor_builder.session().projects

    root = reactor_builder.path()
    assert project.paths.directory == root / "out"
    assert project.paths.source_directory == root / "src" / "java"
    assert project.paths.test_resource_directory == root / "fixtures"
    assert project.paths.resource_directory == root / "src" / "main" / "resources"
    assert project.properties["project.build.sourceEncoding"] == "ISO-8859-1"
    assert project.properties["generated"] == f"{root}/gen"


def test_load_session_inherits_properties_from_local_parent(reactor_builder: ReactorBuilder) -> None:
    reactor_builder.pom(".", "root", packaging="pom", modules=["app"], properties={"java.version": "17"})
    reactor_builder.pom("app", "app", parent="root", properties={"maven.compiler.release": "${java.version}"})

    app = _by_artifact(reactor_builder.session(), "app")

    assert app.properties["java.version"] == "17"
    assert app.properties["maven.compiler.release"] == "17"


def test_load_session_models_remote_parents(reactor_builder: ReactorBuilder) -> None:
    reactor_builder.pom(".", "service", parent="platform", parent_relative_path="")

    (project,) = reactor_builder.session().projects

    assert project.parent is not None
    assert project.parent.file is None
    assert project.parent.basedir == reactor_builder.local_repository / "com" / "example" / "platform" / "1.0.0"
    assert project.coordinate.version == "1.0.0"


def test_load_session_activates_profiles(reactor_builder: ReactorBuilder) -> None:
    reactor_builder.pom(
        ".",
        "root",
        extra="""
        <profiles>
          <profile><id>default</id><activation><activeByDefault>true</activeByDefault></activation></profile>
          <profile><id>release</id></profile>
        </profiles>
        """,
    )

    (plain,) = reactor_builder.session().projects
    (released,) = load_session(reactor_builder.path(), reactor_builder.request(("release",))).projects

    assert plain.active_profiles == ["default"]
    assert released.active_profiles == ["release"]


def test_load_session_requires_a_root_descriptor(tmp_path: Path) -> None:
    with pytest.raises(FatalConfigurationError):
        load_session(tmp_path)


def test_load_session_rejects_missing_modules(reactor_builder: ReactorBuilder) -> None:
    reactor_builder.pom(".", "root", packaging="pom", modules=["ghost"])

    with pytest.raises(FatalConfigurationError) as excinfo:
        reactor_builder.session()

    assert "ghost" in str(excinfo.value)


def test_session_rejects_reactor_projects_without_a_descriptor(tmp_path: Path) -> None:
    loader = _ReactorLoader(ExecutionRequest(), [])
    loader._reactor.append(MavenProject(coordinate=Coordinate("com.example", "ghost", "1.0.0"), basedir=tmp_path))

    with pytest.raises(FatalConfigurationError) as excinfo:
        loader.session()

    assert excinfo.value.project == "ghost"


def test_project_paths_require_build_paths(tmp_path: Path) -> None:
    project = MavenProject(coordinate=Coordinate("com.example", "app", "1.0.0"), basedir=tmp_path)
    project.build = None

    with pytest.raises(ValueError):
        project.paths
