"""Entry point for `python -m kubewait`.

Usage:
    python -m kubewait build my-app-1 -n my-project
"""

from __future__ import annotations

from kubewait.cli import cli

cli(prog_name="kubewait")
