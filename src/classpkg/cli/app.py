from typing import Annotated

import typer

from classpkg.cli import common
from classpkg.cli.db import db_app
from classpkg.cli.objects import change_node, change_object
from classpkg.cli.packages import extract, install, uninstall, update_modified, update_status
from classpkg.cli.repository import clean_up, diff, force_remove_class

app = typer.Typer(
    name="classpkg",
    help="Content class packages: extract, install, uninstall and compare with the database.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def _global_options(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Tell what is being done.")] = False,
    interactive: Annotated[
        bool, typer.Option("--interactive", "-i", help="Ask before replacing classes or deleting objects.")
    ] = False,
    database_url: Annotated[
        str | None, typer.Option("--database-url", envvar="DATABASE_URL", help="SQLAlchemy async database URL.")
    ] = None,
) -> None:
    common.settings.verbose = verbose
    common.settings.interactive = interactive
    common.settings.database_url = database_url
    common.configure_logging(verbose)


app.command("extract")(extract)
app.command("install")(install)
app.command("uninstall")(uninstall)
app.command("update-modified")(update_modified)
app.command("update-status")(update_status)
app.command("diff")(diff)
app.command("clean-up")(clean_up)
app.command("force-remove-class")(force_remove_class)
app.command("change-object")(change_object)
app.command("change-node")(change_node)
app.add_typer(db_app, name="db")


def main() -> None:
    app()
