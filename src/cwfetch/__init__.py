"""
cwfetch - CloudWatch Logs event fetcher

A command-line tool that pages through CloudWatch Logs (single-stream reads
or filtered searches) and streams the events to the terminal.
"""

__version__ = "0.1.0"

from .main import cli, main

__all__ = ["cli", "main"]
