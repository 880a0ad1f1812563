"""
Console interacter — talks to the operator running the CLI.
"""

from __future__ import annotations

import click

from clickpkg.adapters.base import Interacter


class ConsoleInteracter(Interacter):
    """Status lines on stderr, license prompts on the terminal.

    With ``assume_yes`` every license is accepted without prompting
    (unattended installs).
    """

    def __init__(self, assume_yes: bool = False, quiet: bool = False):
        self.assume_yes = assume_yes
        self.quiet = quiet

    def notify(self, status: str) -> None:
        if not self.quiet:
            click.echo(status, err=True)

    def agreed(self, intro: str, license_text: str) -> bool:
        if self.assume_yes:
            return True
        click.echo(intro)
        click.echo_via_pager(license_text)
        return click.confirm("Do you agree?", default=False)
