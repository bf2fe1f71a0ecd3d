"""Command-line interface."""

from .main import main
from .arguments import parse_arguments, create_argument_parser

__all__ = [
    "main",
    "parse_arguments",
    "create_argument_parser",
]
