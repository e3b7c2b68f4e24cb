"""``reelcritic`` command line.

Usage:
    reelcritic --help
    reelcritic serve --port 5000
    reelcritic promote critic@example.com
"""

import typer

from reelcritic.cli.admin_cmd import promote
from reelcritic.cli.serve import serve

app = typer.Typer(
    name="reelcritic",
    help="ReelCritic movie review backend",
    no_args_is_help=True,
)
app.command()(serve)
app.command()(promote)


def main() -> None:
    app()
