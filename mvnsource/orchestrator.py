"""Lists every source, resource and descriptor file of the modules of a build."""

from __future__ import annotations

import codecs
from dataclasses import replace
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Set

from .config import ParserConfig
from .errors import FatalConfigurationError
from .globs import compile_matchers, matches_any
from .graph import ProjectGraphCollector, pom_path
from .logging import ProjectLogger, get_logger
from .markers import Marker
from .models import SCOPE_MAIN, SCOPE_TEST, SourceFile
from .parsers.base import DescriptorParser, ParseContext, SourceParser
from .parsers.java import JavaParser
from .parsers.pom import PomParser
from .parsers.resources import ResourceParser
from .project import MavenProject, MavenSession
from .provenance import ProvenanceBuilder, Runner, RuntimeInformation
from .settings import PlainTextDecrypter, SettingsDecrypter, build_settings
from .source_sets import SourceSetProcessor, with_provenance
from .stores import DEFAULT_POM_CACHE_FACTORY, InMemoryPomCache, PomCacheFactory
from .styles import NamedStyles
from .utils import canonical_path

_SOURCE_ENCODING = "project.build.sourceEncoding"


class ProjectParser:
    """Produces the ordered ``SourceFile`` list for the modules of one session.

    One instance holds the run-wide collaborators: the Java parser, the
    descriptor parser, the provenance builder and the pom cache factory.
    """

    def __init__(
        self,
        session: MavenSession,
        config: ParserConfig | None = None,
        *,
        base_dir: Path | None = None,
        runtime: RuntimeInformation | None = None,
        decrypter: SettingsDecrypter | None = None,
        cache_factory: PomCacheFactory | None = None,
        java_parser: SourceParser | None = None,
        descriptor_parser: DescriptorParser | None = None,
        provenance: ProvenanceBuilder | None = None,
        environ: Mapping[str, str] | None = None,
        runner: Runner | None = None,
    ) -> None:
        if base_dir is None:
            if not session.projects:
                raise ValueError("A session without projects needs an explicit base_dir")
            base_dir = session.projects[0].basedir
        self.session = session
        self.base_dir = canonical_path(base_dir)
        self.config = config or ParserConfig(root=self.base_dir)
        self.logger = ProjectLogger(get_logger("orchestrator"))
        self._decrypter = decrypter or PlainTextDecrypter()
        self._cache_factory = cache_factory or DEFAULT_POM_CACHE_FACTORY
        self._java_parser = java_parser or JavaParser()
        self._descriptor_parser = descriptor_parser or PomParser(
            maven_config=self.base_dir / ".mvn" / "maven.config"
        )
        if provenance is None:
            provenance = ProvenanceBuilder(
                self.base_dir,
                runtime or RuntimeInformation.detect(runner, self.base_dir),
                environ=environ,
                runner=runner,
            )
        self.provenance = provenance
        self._exclusions = compile_matchers(self.config.exclusions)

    def new_context(self) -> ParseContext:
        """Return the parse context shared by every module of a run."""
        settings = build_settings(self.session.request, self._decrypter)
        if self.config.pom_cache.enabled:
            pom_cache = self._cache_factory.get(self.config.pom_cache.directory)
        else:
            pom_cache = InMemoryPomCache()
        return ParseContext(
            pom_cache=pom_cache,
            settings=settings,
            active_profiles=tuple(settings.active_profiles),
        )

    def list_reactor_source_files(
        self,
        styles: Optional[Sequence[NamedStyles]] = None,
        ctx: ParseContext | None = None,
    ) -> List[SourceFile]:
        """List the files of every reactor module in build order."""
        ctx = ctx or self.new_context()
        records: List[SourceFile] = []
        for project in self.session.projects:
            records.extend(self.list_source_files(project, styles, ctx))
        return records

    def list_source_files(
        self,
        project: MavenProject,
        styles: Optional[Sequence[NamedStyles]] = None,
        ctx: ParseContext | None = None,
    ) -> List[SourceFile]:
        """List the files of one module.

        The result holds the module descriptor, then main sources and
        resources, then test sources and resources, then every other file
        found under the module directory.
        """
        name = project.display_name
        ctx = replace(ctx or self.new_context(), charset=self._charset_for(project))
        styles = list(styles) if styles is not None else self.config.named_styles()
        provenance = self.provenance.project_markers(project)
        already_parsed: Set[Path] = set()

        records = self.parse_maven(project, provenance, already_parsed, ctx)

        resource_parser = ResourceParser(
            self.base_dir,
            exclusions=self.config.exclusions,
            plain_text_masks=self.config.plain_text_masks,
            size_threshold_mb=self.config.size_threshold_mb,
            excluded_directories=self.session.other_project_directories(project),
            charset=ctx.charset,
        )
        for scope in (SCOPE_MAIN, SCOPE_TEST):
            processor = SourceSetProcessor(
                scope,
                parser=self._java_parser,
                resource_parser=resource_parser,
                styles=styles,
            )
            records.extend(processor.process(project, self.base_dir, provenance, already_parsed, ctx))

        records = [record for record in records if not self._is_excluded(record)]

        leftovers = resource_parser.parse(project.basedir, already_parsed)
        records.extend(with_provenance(record, provenance) for record in leftovers)

        self.logger.info(name, "Listed %d source files", len(records))
        return records

    def parse_maven(
        self,
        project: MavenProject,
        provenance: Sequence[Marker],
        already_parsed: Set[Path],
        ctx: ParseContext,
    ) -> List[SourceFile]:
        """Parse the descriptor graph of ``project`` and return its own descriptor."""
        name = project.display_name
        if self.config.skip_maven_parsing:
            self.logger.info(name, "Skipping Maven parsing...")
            return []

        poms = ProjectGraphCollector(self.session).collect(project)
        if self.logger.is_debug_enabled():
            self.logger.debug(name, "Parsing %d descriptors", len(poms))
            for path in poms:
                self.logger.debug(name, "  %s", path)

        own = pom_path(project)
        records = self._descriptor_parser.parse(poms, self.base_dir, ctx)
        descriptor = next(
            (record for record in records if canonical_path(self.base_dir / record.source_path) == own),
            None,
        )
        if descriptor is None or descriptor.tree is None:
            self.logger.error(name, "Unable to parse descriptor %s", own)
            raise FatalConfigurationError(name, f"unable to parse descriptor '{own}'")

        already_parsed.add(own)
        if project.file is not None:
            already_parsed.add(canonical_path(project.file))
        return [with_provenance(descriptor, provenance)]

    # ------------------------------------------------------------------
    # Internal helpers

    def _is_excluded(self, record: SourceFile) -> bool:
        return record.kind == "java" and matches_any(record.source_path, self._exclusions)

    @staticmethod
    def _charset_for(project: MavenProject) -> str:
        encoding = project.properties.get(_SOURCE_ENCODING)
        if not encoding:
            return "utf-8"
        try:
            return codecs.lookup(encoding).name
        except LookupError as exc:
            raise FatalConfigurationError(
                project.display_name, f"unsupported {_SOURCE_ENCODING} '{encoding}'"
            ) from exc


__all__ = ["ProjectParser"]
