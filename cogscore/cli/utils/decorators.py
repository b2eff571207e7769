"""Command decorators."""

import functools
from typing import Any, Callable, TypeVar

import typer

from cogscore.cli.utils.console import print_error
from cogscore.errors import CogScoreError
from cogscore.utils.logging import get_logger

logger = get_logger("cli")

F = TypeVar("F", bound=Callable[..., Any])


def handle_errors(func: F) -> F:
    """Turn known failures into a clean message and exit code 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except KeyboardInterrupt:
            print_error("Interrupted")
            raise typer.Exit(130) from None
        except CogScoreError as e:
            print_error(str(e))
            raise typer.Exit(1) from None
        except (FileNotFoundError, PermissionError) as e:
            print_error(str(e))
            raise typer.Exit(1) from None
        except Exception as e:
            logger.exception(f"Unexpected error in {func.__name__}")
            print_error(f"Unexpected error: {e}")
            raise typer.Exit(1) from None

    return wrapper  # type: ignore[return-value]
