"""
Main API interface for soaproxy

Provides a unified facade over discovery, metadata extraction, proxy
generation and writing of the results.
"""

import logging
import shutil
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Union

from .config import SoaProxyConfig
from .context import TransformContext
from .discovery import DiscoveryDriver, TransformationResult
from .errors import SoaProxyError
from .interfaces import DeclarationStore

logger = logging.getLogger(__name__)

StoreFactory = Callable[[str, SoaProxyConfig], DeclarationStore]


def _clang_store_factory(path: str, config: SoaProxyConfig) -> DeclarationStore:
    from .clang_store import open_store

    return open_store(path, config.parse_settings)


class SoaProxy:
    """
    Main API class for soaproxy.

    One instance can process any number of files; every call works on a
    fresh :class:`TransformContext`, nothing is shared between files.
    """

    def __init__(
        self,
        config: Optional[SoaProxyConfig] = None,
        store_factory: Optional[StoreFactory] = None,
    ):
        """
        Initialize soaproxy with optional configuration.

        Args:
            config: Optional configuration object. If None, uses default configuration.
            store_factory: Builds the declaration store for a path. Defaults to libclang.
        """
        self.config = config or SoaProxyConfig.default()
        self.store_factory = store_factory or _clang_store_factory

    def _context(self, source: Union[str, Path, DeclarationStore]) -> TransformContext:
        if isinstance(source, (str, Path)):
            store = self.store_factory(str(source), self.config)
        else:
            store = source
        return TransformContext(store=store, config=self.config)

    def analyze(
        self,
        source: Union[str, Path, DeclarationStore],
        containers: Optional[Iterable[str]] = None,
    ) -> TransformationResult:
        """
        Decide eligibility for every element class of a tracked container.

        Args:
            source: Path of a C++ file or a ready declaration store
            containers: Container names overriding the configured ones

        Returns:
            TransformationResult without patches
        """
        context = self._context(source)
        result = DiscoveryDriver(context).analyze(containers)
        logger.info(
            "Analyzed %s: %d class(es), %d candidate(s)",
            result.source_path,
            len(result.reports),
            sum(1 for report in result.reports if report.eligible),
        )
        return result

    def transform(
        self,
        source: Union[str, Path, DeclarationStore],
        containers: Optional[Iterable[str]] = None,
    ) -> TransformationResult:
        """Analyze a file and generate the patched file and the proxy headers."""
        context = self._context(source)
        result = DiscoveryDriver(context).transform(containers)
        logger.info(
            "Transformed %s: %d proxy header(s)", result.source_path, len(result.proxy_headers)
        )
        return result

    def write(
        self, result: TransformationResult, output_dir: Optional[Union[str, Path]] = None
    ) -> Dict[str, Path]:
        """
        Write the patched file and the proxy headers.

        Without an output directory the original file is overwritten (after a
        backup when enabled) and the headers are placed next to it.

        Returns:
            Mapping of written file name to path
        """
        source_path = Path(result.source_path)
        target_dir = Path(output_dir or self.config.output_settings.output_dir or source_path.parent)
        target_dir.mkdir(parents=True, exist_ok=True)
        written: Dict[str, Path] = {}

        if not result.changed:
            logger.info("Nothing to write for %s", source_path)
            return written

        main_target = target_dir / source_path.name
        if main_target.exists() and self.config.output_settings.backup_enabled:
            backup_path = main_target.parent / (
                f"{main_target.stem}.backup_{int(time.time())}{main_target.suffix}"
            )
            shutil.copy2(main_target, backup_path)
            logger.info("Backup created: %s", backup_path)
            written[backup_path.name] = backup_path

        try:
            main_target.write_text(result.main_file_text, encoding="utf-8")
            written[main_target.name] = main_target
            for header_name, header_text in result.proxy_headers.items():
                header_path = target_dir / header_name
                header_path.write_text(header_text, encoding="utf-8")
                written[header_name] = header_path
        except OSError as e:
            raise SoaProxyError(f"Cannot write results for {source_path}: {e}")

        for name, path in written.items():
            logger.debug("Wrote %s -> %s", name, path)
        return written
