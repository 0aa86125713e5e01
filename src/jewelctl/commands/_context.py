"""AppContext: shared Click context for all commands.

Created once by the root CLI group and handed to subcommands via
``@click.pass_obj``. Builds collaborators lazily so ``--help`` and
``--version`` never touch the catalog or the state directory.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import TYPE_CHECKING, Any, TypeVar

import click

from jewelctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from jewelctl.config.settings import JewelSettings
    from jewelctl.services.catalog import CatalogService
    from jewelctl.services.designer import DesignSession
    from jewelctl.services.result import ServiceResult

_T = TypeVar("_T")


class AppContext:
    """State shared across one CLI invocation."""

    def __init__(self, settings: JewelSettings) -> None:
        self.settings = settings
        self._catalog: CatalogService | None = None

        from jewelctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def catalog(self) -> CatalogService:
        """Catalog service over the configured JSON catalog (created on first use)."""
        if self._catalog is None:
            from jewelctl.infrastructure.catalog_files import JsonCatalogSource
            from jewelctl.services.catalog import CatalogService

            source = JsonCatalogSource(self.settings.catalog_path)
            self._catalog = CatalogService.from_settings(source, self.settings)
        return self._catalog

    def session(self) -> DesignSession:
        """A design session persisting under the configured state directory."""
        from jewelctl.services.designer import DesignSession

        return DesignSession.from_settings(self.settings)

    def require_valid_wrist(self, op: str, wrist: float) -> None:
        """Emit a validation failure (exit 1) when *wrist* breaks the bracelet rules."""
        from jewelctl.domain.bracelet import validate_wrist_size
        from jewelctl.services.result import ErrorKind, failure

        check = validate_wrist_size(wrist, self.settings.bracelet.rules)
        if not check.valid:
            self.emit(
                failure(
                    op,
                    "INVALID_WRIST_SIZE",
                    check.errors[0],
                    kind=ErrorKind.VALIDATION,
                    detail={"wrist_circumference": wrist, "errors": check.errors},
                )
            )

    def run(self, coro: Coroutine[Any, Any, _T]) -> _T:
        return asyncio.run(coro)

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: stdout; warnings go to stderr unless in JSON mode, where
          they are part of the payload.
        * Failure: stderr, exit code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
