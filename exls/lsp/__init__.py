"""
LSP server for the example language.

This package provides:
- A Session holding negotiated capabilities, open documents and settings
- Protocol handlers dispatched from a method -> handler table
- Pull diagnostics and two-phase completion
"""

from .server import create_server, start_server

__all__ = ["create_server", "start_server"]
