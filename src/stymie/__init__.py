"""stymie-fs: an encrypted secret store laid out as a virtual directory tree."""

__version__ = "0.4.0"
