"""Generation of proxy classes and of the patches to the original classes."""

from .proxy_gen import Anchor, ProxyClassGenerator

__all__ = ["Anchor", "ProxyClassGenerator"]
