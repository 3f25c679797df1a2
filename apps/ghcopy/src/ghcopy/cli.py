"""CLI for ghcopy."""

import logging
from pathlib import Path

import click
from dotenv import load_dotenv

from gh import GitHubClient

from .errors import CopyError
from .history import HistoryStore, default_history_path
from .picker import DEFAULT_PICKER, FzfPicker
from .session import CopySession
from .source import GitHubSource

logger = logging.getLogger(__name__)


def setup_logging(verbose: int) -> None:
    """Setup logging."""
    level = logging.DEBUG if verbose >= 2 else logging.INFO if verbose == 1 else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@click.command()
@click.option("--token", help="GitHub token  [default: GH_TOKEN, GITHUB_TOKEN, then gh cli]")
@click.option("--use-gh-cli/--no-gh-cli", default=True, show_default=True, help="Use gh cli credentials")
@click.option("--retries", "-r", type=click.IntRange(min=1), default=1, show_default=True, help="Attempts per request")
@click.option(
    "--history-file",
    envvar="GHCOPY_HISTORY_FILE",
    type=click.Path(dir_okay=False, path_type=Path),
    default=default_history_path,
    help="History location  [default: ~/.config/ghcopy/history.json]",
)
@click.option("--picker", envvar="GHCOPY_PICKER", default=DEFAULT_PICKER, show_default=True, help="Picker command")
@click.option("-v", "--verbose", count=True, help="Verbosity (-v, -vv)")
def cli(
    token: str | None,
    use_gh_cli: bool,
    retries: int,
    history_file: Path,
    picker: str,
    verbose: int,
) -> None:
    """Pick a file from one of your GitHub repositories and copy it here."""
    setup_logging(verbose)

    try:
        client = GitHubClient(token=token, use_gh_cli=use_gh_cli, max_retries=retries)
        session = CopySession(
            store=HistoryStore(history_file),
            source=GitHubSource(client),
            picker=FzfPicker(picker),
        )
        result = session.run()
    except CopyError as e:
        logger.debug("Run failed", exc_info=True)
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(e.exit_code)

    click.echo(f"File {result.file_path} copied successfully.")


def main() -> None:
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
