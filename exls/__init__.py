"""exls - example language server with pull diagnostics and completion."""

__version__ = "0.1.0"
