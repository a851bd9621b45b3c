"""Shared plumbing for CLI commands: runtime construction and error display."""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError as PydanticValidationError

from codewith.app import Runtime, build_runtime, setup_logging
from codewith.config.messages import ERROR_MESSAGES, WARNING_MESSAGES
from codewith.config.paths import CodewithPaths
from codewith.config.settings import ClientSettings
from codewith.exceptions import (
    CodewithError,
    CorruptStoreError,
    DuplicateProviderError,
    PartialMaterializationError,
    ProviderInUseError,
    ProviderNotFoundError,
)
from codewith.models import Provider
from codewith.utils import print_error, print_info, print_warning, read_json, read_yaml

logger = logging.getLogger(__name__)


@dataclass
class CliState:
    """Options given to the top-level callback, shared with subcommands via ``ctx.obj``."""

    home: Path | None = None
    log_level: str | None = None
    runtime: Runtime | None = None


def get_runtime(ctx: typer.Context, migrate: bool = True) -> Runtime:
    """Build (once per invocation) the runtime for the selected home directory.

    Args:
        ctx: Typer context carrying CliState.
        migrate: Run the one-time legacy import before returning.
    """
    state = ctx.obj if isinstance(ctx.obj, CliState) else CliState()
    if state.runtime is None:
        settings = ClientSettings()
        home = state.home or settings.home
        setup_logging(settings, CodewithPaths.from_home(home), level=state.log_level)
        state.runtime = build_runtime(home=home)
        ctx.obj = state

    if migrate:
        with handle_errors():
            result = state.runtime.startup()
        if result.errors:
            print_warning(WARNING_MESSAGES["migration_errors"].format(count=len(result.errors)))
    return state.runtime


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn codewith errors into a red message and exit code 1."""
    try:
        yield
    except CorruptStoreError as e:
        print_error(ERROR_MESSAGES["corrupt_store"].format(path=e.path))
        print_error(f"  {e.reason}")
        print_info(ERROR_MESSAGES["corrupt_store_hint"])
        raise typer.Exit(code=1) from None
    except PartialMaterializationError as e:
        print_error(ERROR_MESSAGES["partial_write"].format(app=e.app))
        print_error(f"  {e}")
        raise typer.Exit(code=1) from None
    except ProviderNotFoundError as e:
        print_error(ERROR_MESSAGES["provider_not_found"].format(app=e.app, provider_id=e.provider_id))
        raise typer.Exit(code=1) from None
    except DuplicateProviderError as e:
        print_error(ERROR_MESSAGES["provider_exists"].format(app=e.app, provider_id=e.provider_id))
        raise typer.Exit(code=1) from None
    except ProviderInUseError as e:
        print_error(ERROR_MESSAGES["provider_active"].format(app=e.app, provider_id=e.provider_id))
        raise typer.Exit(code=1) from None
    except CodewithError as e:
        logger.debug(f"Command failed: {e!r}")
        print_error(ERROR_MESSAGES["generic_error"].format(error=str(e)))
        raise typer.Exit(code=1) from None


def load_provider_file(path: Path) -> Provider:
    """Read a provider definition from a YAML or JSON file.

    Raises:
        typer.Exit: If the file cannot be read or is not a valid provider.
    """
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = read_yaml(path)
        else:
            data = read_json(path)
            if data is None:
                raise FileNotFoundError(path)
        return Provider.model_validate(data)
    except (OSError, json.JSONDecodeError, yaml.YAMLError, PydanticValidationError) as e:
        print_error(ERROR_MESSAGES["invalid_provider_file"].format(path=path))
        print_error(f"  {type(e).__name__}")
        raise typer.Exit(code=1) from None
