"""polyrun — run lifecycle commands across multi-language projects."""

__version__ = "0.1.0"
