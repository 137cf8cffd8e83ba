"""Build instrumentation, configuration, build graph nodes and SPDX checks."""

__version__ = "0.2.0"