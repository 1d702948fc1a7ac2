"""Request-scoped state shared by the extraction and generation steps."""

from dataclasses import dataclass, field

from .config import GenerationConfig, SoaProxyConfig
from .errors import DiagnosticsCollector
from .interfaces import DeclarationStore
from .source import SourceBuffer


@dataclass
class TransformContext:
    """Everything one translation unit's run needs, passed explicitly instead of held globally."""

    store: DeclarationStore
    config: SoaProxyConfig = field(default_factory=SoaProxyConfig)
    diagnostics: DiagnosticsCollector = field(default_factory=DiagnosticsCollector)

    @property
    def source(self) -> SourceBuffer:
        return self.store.source

    @property
    def generation(self) -> GenerationConfig:
        return self.config.generation_settings
