"""Tool adapters."""

from .base import Adapter
from .command import CommandAdapter, make_line_parser

__all__ = ["Adapter", "CommandAdapter", "make_line_parser"]
