"""Model limits catalog.

Maps a (model name, provider) pair to its context and completion ceilings.
Resolution order: exact model name, case-insensitive substring match in
either direction (first match in table order), the provider's default row,
then a conservative global default. A lookup always returns limits.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path

from chunkflow.limits.loader import LimitsTable, load_limits_table
from chunkflow.schemas.limits import (
    ChunkEstimate,
    ModelLimits,
    TokenLimits,
    TokenValidation,
)

logger = logging.getLogger(__name__)


class ModelLimitsCatalog:
    """Immutable lookup over the model limits reference table.

    Build one per process and pass it to the orchestrator; it holds no
    mutable state and is safe to share between concurrent calls.
    """

    def __init__(self, table: LimitsTable) -> None:
        self._table = table

    @classmethod
    def from_config(cls, config_path: Path | None = None) -> ModelLimitsCatalog:
        """Build a catalog from limits.toml (or an explicit path)."""
        return cls(load_limits_table(config_path))

    @property
    def entries(self) -> tuple[ModelLimits, ...]:
        return self._table.models

    @property
    def providers(self) -> list[str]:
        return list(self._table.providers)

    def find(self, model_name: str) -> ModelLimits | None:
        """Find a known model by exact name, then by substring match."""
        for entry in self._table.models:
            if entry.model_name == model_name:
                return entry

        needle = model_name.lower()
        if not needle:
            return None
        for entry in self._table.models:
            known = entry.model_name.lower()
            if known in needle or needle in known:
                return entry
        return None

    def provider_default(self, provider: str) -> TokenLimits:
        return self._table.providers.get(provider, self._table.global_default)

    def lookup(self, model_name: str, provider: str) -> TokenLimits:
        """Resolve the token ceilings for a model. Never raises."""
        entry = self.find(model_name)
        if entry is not None:
            return entry.to_limits()
        return self.provider_default(provider)

    def validate(
        self, model_name: str, provider: str, requested_tokens: int
    ) -> TokenValidation:
        """Check a requested completion budget against the resolved ceiling.

        An invalid result is advisory: callers clamp to ``actual_limit``
        and carry on.
        """
        ceiling = self.lookup(model_name, provider).max_completion_tokens
        if requested_tokens <= ceiling:
            return TokenValidation(valid=True, actual_limit=ceiling)

        return TokenValidation(
            valid=False,
            actual_limit=ceiling,
            error=(
                f"Requested {requested_tokens} tokens, but the maximum for "
                f"model {model_name} is {ceiling} tokens"
            ),
        )

    def required_chunks(
        self,
        total_tokens: int,
        model_name: str,
        provider: str,
        reserved_tokens: int = 1000,
    ) -> ChunkEstimate:
        """Estimate how many chunks a conversation of ``total_tokens`` needs."""
        ceiling = self.lookup(model_name, provider).max_completion_tokens
        per_chunk = ceiling - reserved_tokens

        if total_tokens <= per_chunk:
            return ChunkEstimate(chunks_needed=1, tokens_per_chunk=total_tokens)
        if per_chunk <= 0:
            logger.warning(
                "Reservation of %d tokens leaves no room under %s's ceiling (%d)",
                reserved_tokens, model_name, ceiling,
            )
            return ChunkEstimate(chunks_needed=1, tokens_per_chunk=per_chunk)

        return ChunkEstimate(
            chunks_needed=math.ceil(total_tokens / per_chunk),
            tokens_per_chunk=per_chunk,
        )

    def report(self, model_name: str, provider: str) -> str:
        """Render a human-readable report of a model's limits."""
        entry = self.find(model_name)
        if entry is None:
            defaults = self.lookup(model_name, provider)
            return (
                f"Model {model_name} is not in the limits table. Using defaults:\n"
                f"- Max context: {defaults.max_context_tokens:,} tokens\n"
                f"- Max completion: {defaults.max_completion_tokens:,} tokens"
            )

        lines = [
            f"Limits for model {model_name}:",
            f"- Provider: {entry.provider}",
            f"- Max context: {entry.max_context_tokens:,} tokens",
            f"- Max completion: {entry.max_completion_tokens:,} tokens",
            f"- Last updated: {entry.last_updated}",
        ]
        if entry.notes:
            lines.append(f"- Notes: {entry.notes}")
        return "\n".join(lines)
