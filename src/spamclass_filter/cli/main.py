"""
smtpd-filter-spamclass CLI.

Commands:
  smtpd-filter-spamclass                        Run the filter on stdin/stdout
  smtpd-filter-spamclass classify ADDR SCORE    Show the class for a score
"""

import io
import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from spamclass_filter import __version__
from spamclass_filter.address import strip_alias
from spamclass_filter.classes import SpamClasses
from spamclass_filter.config import FilterConfig, load_config
from spamclass_filter.dataline import SPAM_CLASS_NAME
from spamclass_filter.errors import FilterError
from spamclass_filter.filter import FILTER_NAME, Filter

# stdout is the protocol channel; everything human-readable goes to stderr
console = Console(stderr=True)
logger = logging.getLogger("spamclass_filter")


def _setup_logging(verbose: bool) -> None:
    handler = RichHandler(console=console, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _load(ctx: click.Context) -> tuple[FilterConfig, SpamClasses]:
    opts = ctx.obj
    try:
        cfg = load_config(opts["config"], verbose=opts["verbose"] or None,
                          class_config_file=opts["classes"])
        _setup_logging(cfg.verbose)
        return cfg, SpamClasses.from_file(cfg.class_config_file)
    except FilterError as e:
        _setup_logging(False)
        logger.critical(f"{FILTER_NAME}: {e}")
        raise SystemExit(1)


def _protocol_streams() -> tuple[io.TextIOWrapper, io.TextIOWrapper]:
    """Byte-transparent text views of stdin/stdout for the protocol."""
    stdin = io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8", errors="surrogateescape", newline="\n")
    stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="surrogateescape", newline="",
                              write_through=True)
    return stdin, stdout


@click.group(invoke_without_command=True)
@click.version_option(__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log every protocol event")
@click.option("-c", "--config", "config_file", default=None, type=click.Path(dir_okay=False),
              help="Filter config file (JSON)")
@click.option("--classes", default=None, type=click.Path(dir_okay=False),
              help="Spam class thresholds file (JSON)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_file: Optional[str], classes: Optional[str]):
    """OpenSMTPD filter — add X-Spam / X-Spam-Class headers from rspamd scores."""
    ctx.obj = {"verbose": verbose, "config": config_file, "classes": classes}
    if ctx.invoked_subcommand is not None:
        return

    _, spam_classes = _load(ctx)
    stdin, stdout = _protocol_streams()
    f = Filter(stdin, stdout, spam_classes)
    try:
        f.run()
    except FilterError as e:
        logger.critical(f"{FILTER_NAME}: [{e.code}] {e}")
        raise SystemExit(1)
    finally:
        # leave the process's own stdin/stdout open
        stdin.detach()
        stdout.detach()


@main.command("classify")
@click.argument("address")
@click.argument("score", type=float)
@click.pass_context
def classify_cmd(ctx: click.Context, address: str, score: float):
    """Show the spam class ADDRESS would get for SCORE."""
    _, spam_classes = _load(ctx)
    spam_class = spam_classes.get_class([strip_alias(address)], score)
    state = "yes" if spam_class == SPAM_CLASS_NAME else "no"
    Console().print(f"{address} score={score} class={spam_class or '-'} spam={state}", markup=False, highlight=False)


if __name__ == "__main__":
    main()
