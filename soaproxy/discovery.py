"""
Target discovery and orchestration of one translation unit.

The driver finds variables of the tracked container types, collects the
distinct element class names in first-seen order and runs extraction and
generation for each of them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .context import TransformContext
from .errors import DiagnosticsCollector
from .generation import ProxyClassGenerator
from .metadata import ClassMetaData, MetadataExtractor
from .rewriter import SourceRewriter

logger = logging.getLogger(__name__)


@dataclass
class ClassReport:
    """Summary of what happened to one discovered class."""

    name: str
    state: str
    kind: Optional[str] = None
    definitions: int = 0
    rejected_definitions: int = 0
    reasons: List[str] = field(default_factory=list)
    header: Optional[str] = None
    details: Optional[str] = None

    @property
    def eligible(self) -> bool:
        return self.state == "candidate"

    @classmethod
    def from_metadata(cls, meta: ClassMetaData, header: Optional[str] = None) -> "ClassReport":
        reasons: List[str] = []
        for definition in meta.rejections:
            reasons.extend(definition.report.reasons)
        return cls(
            name=meta.name,
            state=meta.state,
            kind=meta.kind.value,
            definitions=len(meta.definitions),
            rejected_definitions=len(meta.rejections),
            reasons=reasons,
            header=header,
            details=meta.describe(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state,
            "eligible": self.eligible,
            "kind": self.kind,
            "definitions": self.definitions,
            "rejected_definitions": self.rejected_definitions,
            "reasons": list(self.reasons),
            "header": self.header,
        }


@dataclass
class TransformationResult:
    """Outputs of one translation unit."""

    source_path: str
    main_file_text: str
    proxy_headers: Dict[str, str] = field(default_factory=dict)
    reports: List[ClassReport] = field(default_factory=list)
    diagnostics: DiagnosticsCollector = field(default_factory=DiagnosticsCollector)

    @property
    def changed(self) -> bool:
        return bool(self.proxy_headers)

    def report_for(self, name: str) -> Optional[ClassReport]:
        for report in self.reports:
            if report.name == name:
                return report
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_path": self.source_path,
            "changed": self.changed,
            "proxy_headers": sorted(self.proxy_headers),
            "classes": [report.to_dict() for report in self.reports],
            "diagnostics": self.diagnostics.to_dict(),
        }


class DiscoveryDriver:
    """Runs discovery, extraction and generation over one translation unit."""

    def __init__(self, context: TransformContext):
        self.context = context
        self.extractor = MetadataExtractor(
            context.store,
            context.diagnostics,
            context.generation.indent_width,
        )
        self.generator = ProxyClassGenerator(context)

    def discover(self, containers: Optional[Iterable[str]] = None) -> List[str]:
        """Distinct element class names of tracked containers in first-seen order."""
        tracked = list(containers or self.context.config.discovery_settings.containers)
        names: List[str] = []
        for variable in self.context.store.container_variables(tracked):
            if variable.element_type not in names:
                logger.debug(
                    "Found %s %s of %s<%s>",
                    variable.kind,
                    variable.name,
                    variable.container,
                    variable.element_type,
                )
                names.append(variable.element_type)
        logger.info("Discovered %d candidate class name(s): %s", len(names), ", ".join(names))
        return names

    def extract(self, names: Iterable[str]) -> List[ClassMetaData]:
        """Build class metadata for every name; definitions are added in source order."""
        entries: List[ClassMetaData] = []
        for name in names:
            records = self.context.store.records(name)
            is_template = bool(records) and records[0].is_template
            meta = self.extractor.register_declaration(name, is_template)
            if meta is None:
                continue
            for record in records:
                if not record.is_definition:
                    continue
                meta.add_definition(record, record.is_partial_specialization)
                if meta.is_rejected:
                    logger.info("%s: rejected, skipping remaining definitions", name)
                    break
            if meta not in entries:
                entries.append(meta)
        return entries

    def analyze(self, containers: Optional[Iterable[str]] = None) -> TransformationResult:
        """Extraction only; the main file text is returned unchanged."""
        entries = self.extract(self.discover(containers))
        return TransformationResult(
            source_path=self.context.source.path,
            main_file_text=self.context.source.text,
            reports=[ClassReport.from_metadata(meta) for meta in entries],
            diagnostics=self.context.diagnostics,
        )

    def transform(self, containers: Optional[Iterable[str]] = None) -> TransformationResult:
        """Extraction plus generation of the patched main file and the proxy headers."""
        entries = self.extract(self.discover(containers))
        main_rewriter = SourceRewriter(self.context.source)
        headers: Dict[str, str] = {}
        reports: List[ClassReport] = []
        for meta in entries:
            generated = self.generator.generate(meta, main_rewriter)
            header_name = None
            if generated is not None:
                header_name, header_text = generated
                headers[header_name] = header_text
            reports.append(ClassReport.from_metadata(meta, header_name))

        return TransformationResult(
            source_path=self.context.source.path,
            main_file_text=main_rewriter.materialize(),
            proxy_headers=headers,
            reports=reports,
            diagnostics=self.context.diagnostics,
        )
