"""CLI entry points for MistMatch Admin.

Provides command-line tools for:
- Inspecting the pending-verification queue
- Approving and rejecting pending users
- Reviewing and correcting user genders
"""

import click

from ..logging import setup_logging
from .review import decide, genders, pending, set_gender


@click.group()
@click.version_option(version="0.1.0", prog_name="mistmatch")
def main():
    """MistMatch Admin - moderation console.

    Command-line tools for reviewing pending verifications
    and correcting user genders.
    """
    setup_logging()


main.add_command(pending, name="pending")
main.add_command(decide, name="decide")
main.add_command(genders, name="genders")
main.add_command(set_gender, name="set-gender")


if __name__ == "__main__":
    main()
