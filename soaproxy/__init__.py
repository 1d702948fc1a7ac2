"""
soaproxy - structure-of-arrays proxy generation for C++ value classes

Finds classes stored in tracked containers, decides whether they are plain
aggregates and generates reference-based ``<Name>_proxy`` views plus the
small patches the original classes need to convert from them.
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "SoaProxy",
    "SoaProxyConfig",
    "TransformationResult",
    "ClassReport",
    "ClangDeclarationStore",
    "SoaProxyError",
]


def __getattr__(name):
    """Lazy loading of the main API so importing the package does not load libclang."""
    if name == "SoaProxy":
        from .api import SoaProxy

        return SoaProxy

    if name in {"SoaProxyConfig", "load_config"}:
        from .config import SoaProxyConfig, load_config

        return {"SoaProxyConfig": SoaProxyConfig, "load_config": load_config}[name]

    if name in {"TransformationResult", "ClassReport"}:
        from .discovery import ClassReport, TransformationResult

        return {"TransformationResult": TransformationResult, "ClassReport": ClassReport}[name]

    if name == "ClangDeclarationStore":
        from .clang_store import ClangDeclarationStore

        return ClangDeclarationStore

    if name == "SoaProxyError":
        from .errors import SoaProxyError

        return SoaProxyError

    raise AttributeError(f"module 'soaproxy' has no attribute '{name}'")
