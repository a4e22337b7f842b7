"""Exit handling utilities for the CLI."""

from typing import NoReturn

import typer

from squirrly.cli.common.output import Out, out


def die(msg: str, code: int = 1, *, printer: Out = out) -> NoReturn:
    """Exit with an error message and optional exit code."""
    printer.error(msg)
    raise typer.Exit(code)


def exit_from_exc(
    exc: Exception, *, message: str, code: int = 1, printer: Out = out
) -> NoReturn:
    """
    Helper function to print an error message and exit with a given code.

    Keeps the original exception chained for debugging.
    """
    printer.error(message)
    raise typer.Exit(code) from exc
