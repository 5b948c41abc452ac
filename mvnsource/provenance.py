"""Provenance markers shared by every file of a module and of a run."""

from __future__ import annotations

import os
import re
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .logging import get_logger
from .markers import BuildEnvironment, BuildTool, GitProvenance, JavaProject, JavaVersion, Marker
from .project import MavenProject
from .utils import canonical_path

logger = get_logger("provenance")

Runner = Callable[..., str]


def default_runner(
    args: Iterable[str],
    *,
    cwd: Path,
    capture_output: bool = False,
    merge_stderr: bool = False,
) -> str:
    if merge_stderr:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
        return completed.stdout
    completed = subprocess.run(
        list(args),
        cwd=str(cwd),
        check=True,
        text=True,
        capture_output=capture_output,
    )
    return completed.stdout if capture_output else ""


# ----------------------------------------------------------------------
# Runtime information


@dataclass(frozen=True)
class RuntimeInformation:
    """Versions of the build tool and Java runtime driving the run."""

    maven_version: Optional[str] = None
    java_runtime_version: Optional[str] = None
    java_vendor: Optional[str] = None

    @classmethod
    def detect(cls, runner: Runner | None = None, cwd: Path | None = None) -> "RuntimeInformation":
        """Probe ``mvn`` and ``java`` on the PATH; unknown values stay ``None``."""
        run = runner or default_runner
        workdir = cwd or Path.cwd()
        maven_version = None
        java_version = None
        java_vendor = None

        try:
            output = run(["mvn", "--version"], cwd=workdir, capture_output=True)
        except Exception as exc:
            logger.debug("Unable to determine the Maven version: %s", exc)
        else:
            match = re.search(r"Apache Maven (\S+)", output)
            if match:
                maven_version = match.group(1)

        try:
            # -XshowSettings reports on stderr.
            output = run(
                ["java", "-XshowSettings:properties", "-version"],
                cwd=workdir,
                capture_output=True,
                merge_stderr=True,
            )
        except Exception as exc:
            logger.debug("Unable to determine the Java runtime: %s", exc)
        else:
            properties = _parse_java_properties(output)
            java_version = properties.get("java.runtime.version")
            java_vendor = properties.get("java.vm.vendor")

        return cls(
            maven_version=maven_version,
            java_runtime_version=java_version,
            java_vendor=java_vendor,
        )


def _parse_java_properties(output: str) -> Dict[str, str]:
    properties: Dict[str, str] = {}
    for line in output.splitlines():
        key, separator, value = line.strip().partition(" = ")
        if separator:
            properties[key.strip()] = value.strip()
    return properties


# ----------------------------------------------------------------------
# CI environment detection


@dataclass(frozen=True)
class _CiRule:
    ci: str
    detect: str
    build_id: Optional[str]
    job: Optional[str]
    branch: Sequence[str]
    build_url: Callable[[Mapping[str, str]], Optional[str]]


def _github_url(env: Mapping[str, str]) -> Optional[str]:
    server, repository, run_id = (
        env.get("GITHUB_SERVER_URL"),
        env.get("GITHUB_REPOSITORY"),
        env.get("GITHUB_RUN_ID"),
    )
    if server and repository and run_id:
        return f"{server}/{repository}/actions/runs/{run_id}"
    return None


def _azure_url(env: Mapping[str, str]) -> Optional[str]:
    collection, project, build_id = (
        env.get("SYSTEM_TEAMFOUNDATIONCOLLECTIONURI"),
        env.get("SYSTEM_TEAMPROJECT"),
        env.get("BUILD_BUILDID"),
    )
    if collection and project and build_id:
        return f"{collection}{project}/_build/results?buildId={build_id}"
    return None


def _bitbucket_url(env: Mapping[str, str]) -> Optional[str]:
    origin, number = env.get("BITBUCKET_GIT_HTTP_ORIGIN"), env.get("BITBUCKET_BUILD_NUMBER")
    if origin and number:
        return f"{origin}/addon/pipelines/home#!/results/{number}"
    return None


def _env_url(name: str) -> Callable[[Mapping[str, str]], Optional[str]]:
    return lambda env: env.get(name)


_CI_RULES: Sequence[_CiRule] = (
    _CiRule("GitHub Actions", "GITHUB_ACTIONS", "GITHUB_RUN_ID", "GITHUB_WORKFLOW",
            ("GITHUB_HEAD_REF", "GITHUB_REF_NAME"), _github_url),
    _CiRule("GitLab CI", "GITLAB_CI", "CI_PIPELINE_ID", "CI_JOB_NAME",
            ("CI_COMMIT_REF_NAME",), _env_url("CI_JOB_URL")),
    _CiRule("Jenkins", "JENKINS_URL", "BUILD_NUMBER", "JOB_NAME",
            ("BRANCH_NAME", "GIT_BRANCH"), _env_url("BUILD_URL")),
    _CiRule("CircleCI", "CIRCLECI", "CIRCLE_BUILD_NUM", "CIRCLE_JOB",
            ("CIRCLE_BRANCH",), _env_url("CIRCLE_BUILD_URL")),
    _CiRule("Travis CI", "TRAVIS", "TRAVIS_BUILD_ID", "TRAVIS_JOB_NAME",
            ("TRAVIS_BRANCH",), _env_url("TRAVIS_BUILD_WEB_URL")),
    _CiRule("Azure Pipelines", "TF_BUILD", "BUILD_BUILDID", "BUILD_DEFINITIONNAME",
            ("BUILD_SOURCEBRANCHNAME",), _azure_url),
    _CiRule("Buildkite", "BUILDKITE", "BUILDKITE_BUILD_ID", "BUILDKITE_PIPELINE_SLUG",
            ("BUILDKITE_BRANCH",), _env_url("BUILDKITE_BUILD_URL")),
    _CiRule("Bitbucket Pipelines", "BITBUCKET_BUILD_NUMBER", "BITBUCKET_BUILD_NUMBER",
            "BITBUCKET_REPO_SLUG", ("BITBUCKET_BRANCH",), _bitbucket_url),
    _CiRule("Drone", "DRONE", "DRONE_BUILD_NUMBER", "DRONE_REPO",
            ("DRONE_BRANCH",), _env_url("DRONE_BUILD_LINK")),
)


def build_environment(environ: Mapping[str, str]) -> Optional[BuildEnvironment]:
    """Return CI facts for the first recognised CI system, or ``None``."""
    for rule in _CI_RULES:
        flag = environ.get(rule.detect, "")
        if not flag or flag.lower() == "false":
            continue
        branch = next((environ[name] for name in rule.branch if environ.get(name)), None)
        return BuildEnvironment(
            ci=rule.ci,
            build_id=environ.get(rule.build_id) if rule.build_id else None,
            build_url=rule.build_url(environ),
            job=environ.get(rule.job) if rule.job else None,
            branch=branch,
        )
    return None


# ----------------------------------------------------------------------
# Git detection


def git_provenance(
    base_dir: Path,
    environment: Optional[BuildEnvironment] = None,
    runner: Runner | None = None,
) -> Optional[GitProvenance]:
    """Describe the git checkout containing ``base_dir``; ``None`` outside git."""
    run = runner or default_runner
    try:
        run(["git", "rev-parse", "--is-inside-work-tree"], cwd=base_dir, capture_output=True)
        change = run(["git", "rev-parse", "HEAD"], cwd=base_dir, capture_output=True).strip()
        branch = run(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"], cwd=base_dir, capture_output=True
        ).strip()
        origin = _origin_url(run, base_dir)
    except Exception as exc:
        # Expected for projects that are not git checkouts.
        logger.debug("Unable to determine git provenance: %s", exc)
        return None

    if (not branch or branch == "HEAD") and environment is not None and environment.branch:
        branch = environment.branch
    if branch == "HEAD":
        branch = None
    return GitProvenance(origin=origin, branch=branch or None, change=change or None)


def _origin_url(run: Runner, base_dir: Path) -> Optional[str]:
    try:
        origin = run(["git", "remote", "get-url", "origin"], cwd=base_dir, capture_output=True)
    except Exception as exc:
        logger.debug("Unable to read the origin remote: %s", exc)
        return None
    return origin.strip() or None


# ----------------------------------------------------------------------
# Builder


class ProvenanceBuilder:
    """Computes provenance once per module and once per run, then shares it.

    Run-scoped markers (CI environment, git) are computed at most once, even
    when several threads ask for them concurrently.
    """

    def __init__(
        self,
        base_dir: Path,
        runtime: RuntimeInformation,
        *,
        environ: Mapping[str, str] | None = None,
        runner: Runner | None = None,
    ) -> None:
        self._base_dir = canonical_path(base_dir)
        self._runtime = runtime
        self._environ = environ if environ is not None else os.environ
        self._runner = runner
        self._lock = threading.Lock()
        self._run_markers: Optional[Tuple[Marker, ...]] = None
        self._project_markers: Dict[Path, Tuple[Marker, ...]] = {}
        self.build_tool = BuildTool(type="Maven", version=runtime.maven_version)

    def run_markers(self) -> Tuple[Marker, ...]:
        with self._lock:
            if self._run_markers is None:
                environment = build_environment(self._environ)
                git = git_provenance(self._base_dir, environment, self._runner)
                self._run_markers = tuple(
                    marker for marker in (environment, git) if marker is not None
                )
            return self._run_markers

    def project_markers(self, project: MavenProject) -> List[Marker]:
        """Markers shared by every file of ``project``, in attachment order."""
        run_markers = self.run_markers()
        key = canonical_path(project.basedir)
        with self._lock:
            markers = self._project_markers.get(key)
            if markers is None:
                markers = (
                    *run_markers,
                    self.build_tool,
                    self._java_version(project),
                    JavaProject(project_name=project.display_name, publication=project.coordinate),
                )
                self._project_markers[key] = markers
        return list(markers)

    def _java_version(self, project: MavenProject) -> JavaVersion:
        runtime_version = self._runtime.java_runtime_version
        source = runtime_version
        target = runtime_version
        properties = project.properties
        if properties.get("maven.compiler.source"):
            source = properties["maven.compiler.source"]
        if properties.get("maven.compiler.target"):
            target = properties["maven.compiler.target"]
        if properties.get("maven.compiler.release"):
            source = target = properties["maven.compiler.release"]
        return JavaVersion(
            created_by=runtime_version,
            vm_vendor=self._runtime.java_vendor,
            source_compatibility=source,
            target_compatibility=target,
        )


__all__ = [
    "ProvenanceBuilder",
    "RuntimeInformation",
    "build_environment",
    "default_runner",
    "git_provenance",
]
