"""Credential maintenance for configured destinations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from .models import SinkConfig
from .resolver import FieldResolver
from .sinks.base import DEFAULT_SECRET_PREFIX, FieldScope, FieldSpec, Sink
from .sinks.registry import SinkRegistry
from .storage import SecretStore, clear_prefix

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CredentialEdit:
    kind: str
    saved: list[str] = field(default_factory=list)
    cancelled: bool = False


class CredentialManager:
    """Edit or clear the persisted setup values of destinations."""

    def __init__(
        self,
        registry: SinkRegistry,
        resolver: FieldResolver,
        secrets: SecretStore,
        *,
        secret_prefix: str = DEFAULT_SECRET_PREFIX,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._secrets = secrets
        self._secret_prefix = secret_prefix

    def _sink_for(self, kind: str) -> Sink:
        if kind not in self._registry:
            raise ValueError(f"Unknown sink kind '{kind}'")
        sinks = self._registry.create([SinkConfig(kind=kind)])
        if not sinks:
            raise ValueError(f"Sink kind '{kind}' could not be constructed")
        return sinks[0]

    def setup_fields(self, kind: str) -> list[FieldSpec]:
        return [spec for spec in self._sink_for(kind).requirements() if spec.scope is FieldScope.SETUP]

    async def edit(self, kind: str) -> CredentialEdit:
        """Prompt for every setup field of ``kind`` and persist what validates.

        Stops at the first cancelled prompt; values saved before it are kept.
        """

        outcome = CredentialEdit(kind=kind)
        for spec in self.setup_fields(kind):
            prompt_spec = spec
            if not spec.is_secret:
                stored = await self._resolver.read_stored(spec)
                if stored is not None:
                    prompt_spec = replace(spec, default=stored)

            value = await self._resolver.resolve(prompt_spec, force=True)
            if value is None:
                outcome.cancelled = True
                break
            outcome.saved.append(spec.key)

        logger.info(
            "Edited credentials",
            extra={"sink": kind, "saved": outcome.saved, "cancelled": outcome.cancelled},
        )
        return outcome

    async def clear(self, kind: str | None = None) -> list[str]:
        """Forget stored setup values for one kind, or for every known kind.

        Clearing everything also removes any secret under the ``clockit.``
        namespace, including ones no current destination declares.
        """

        kinds = [kind] if kind is not None else self._registry.kinds()
        removed: list[str] = []
        for name in kinds:
            try:
                specs = self.setup_fields(name)
            except ValueError:
                if kind is not None:
                    raise
                logger.warning("Cannot inspect sink while clearing credentials", extra={"sink": name})
                continue
            for spec in specs:
                if await self._resolver.forget(spec):
                    removed.append(spec.key)

        if kind is None:
            removed.extend(await clear_prefix(self._secrets, f"{self._secret_prefix}."))

        logger.info("Cleared credentials", extra={"sink": kind or "all", "removed": len(removed)})
        return removed


__all__ = ["CredentialEdit", "CredentialManager"]
