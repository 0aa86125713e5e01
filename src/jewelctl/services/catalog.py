"""CatalogService: retried reads from the template/component catalog."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol

from jewelctl.domain.types import Component, ComponentType, Template
from jewelctl.infrastructure.catalog_files import CatalogFileError
from jewelctl.services.result import ErrorKind, ServiceResult, failure
from jewelctl.services.retry import (
    RETRY_PROFILES,
    RetryPolicy,
    Sleep,
    default_retry_condition,
    profiles_from_config,
    with_retry,
)

if TYPE_CHECKING:
    from jewelctl.config.settings import JewelSettings
    from jewelctl.services.designer import DesignSession

logger = logging.getLogger(__name__)


class CatalogSource(Protocol):
    """Read-only catalog back-end."""

    async def fetch_templates(self, category: str | None = None) -> list[Template]: ...

    async def fetch_components(self, component_type: str | None = None) -> list[Component]: ...


def classify_error(error: BaseException | None) -> ErrorKind:
    if isinstance(error, CatalogFileError):
        return ErrorKind.ASSET
    if error is not None and default_retry_condition(error):
        return ErrorKind.NETWORK
    return ErrorKind.UNKNOWN


def search_components(components: Iterable[Component], query: str) -> list[Component]:
    """Active components whose name or material contains *query* (case-insensitive)."""
    needle = query.strip().lower()
    return [
        c
        for c in components
        if c.is_active
        and (not needle or needle in c.name.lower() or needle in (c.material or "").lower())
    ]


class CatalogService:
    """Fetch templates and components with the catalog retry profiles."""

    def __init__(
        self,
        source: CatalogSource,
        *,
        policies: dict[str, RetryPolicy] | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.source = source
        self._policies = policies or RETRY_PROFILES
        self._sleep = sleep

    @classmethod
    def from_settings(cls, source: CatalogSource, settings: JewelSettings) -> CatalogService:
        return cls(source, policies=profiles_from_config(settings.retry))

    async def templates(self, category: str | None = None) -> ServiceResult:
        op = "fetch_templates"
        outcome = await with_retry(
            lambda: self.source.fetch_templates(category),
            self._policies["templates"],
            sleep=self._sleep,
        )
        if not outcome.success:
            return self._failed(op, "TEMPLATES_UNAVAILABLE", outcome.error, outcome.attempts)
        templates = outcome.data or []
        return ServiceResult(
            ok=True,
            op=op,
            data={"templates": templates, "count": len(templates)},
            meta={"attempts": outcome.attempts},
        )

    async def components(self, component_type: ComponentType | str | None = None) -> ServiceResult:
        op = "fetch_components"
        kind = str(component_type) if component_type is not None else None
        outcome = await with_retry(
            lambda: self.source.fetch_components(kind),
            self._policies["components"],
            sleep=self._sleep,
        )
        if not outcome.success:
            return self._failed(op, "COMPONENTS_UNAVAILABLE", outcome.error, outcome.attempts)
        components = outcome.data or []
        return ServiceResult(
            ok=True,
            op=op,
            data={"components": components, "count": len(components)},
            meta={"attempts": outcome.attempts},
        )

    async def search(self, query: str) -> ServiceResult:
        """Name/material search over all active components."""
        result = await self.components()
        if not result.ok:
            return result.model_copy(update={"op": "search_components"})
        found = search_components(result.data["components"], query)
        return ServiceResult(
            ok=True,
            op="search_components",
            data={"query": query, "components": found, "count": len(found)},
            meta=result.meta,
        )

    async def load_into(self, session: DesignSession) -> ServiceResult:
        """Fill *session*'s catalog; loading flags are raised while each fetch runs."""
        op = "load_catalog"
        session.set_loading("templates", True)
        try:
            templates = await self.templates()
        finally:
            session.set_loading("templates", False)
        if not templates.ok:
            return templates.model_copy(update={"op": op})

        session.set_loading("components", True)
        try:
            components = await self.components()
        finally:
            session.set_loading("components", False)
        if not components.ok:
            return components.model_copy(update={"op": op})

        session.set_catalog(templates.data["templates"], components.data["components"])
        logger.debug(
            "Catalog loaded: %d templates, %d components",
            templates.data["count"],
            components.data["count"],
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "templates": templates.data["count"],
                "components": components.data["count"],
            },
        )

    @staticmethod
    def _failed(
        op: str, code: str, error: BaseException | None, attempts: int
    ) -> ServiceResult:
        kind = classify_error(error)
        logger.warning("%s failed after %d attempt(s): %s", op, attempts, error)
        return failure(
            op,
            code,
            str(error) if error else "Catalog request failed",
            kind=kind,
            detail={"attempts": attempts, "error_type": type(error).__name__},
        )
