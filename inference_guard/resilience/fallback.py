"""
Fallback Resolver.

Produces a safe substitute result for a model after an inference failure.

Strategies:
    USE_DEFAULT: per-model default table entry, else a generic null result
    USE_CACHED: last successful output, else USE_DEFAULT
    USE_CONSERVATIVE: per-model conservative value, else the default entry,
        tagged conservative=True
    REJECT: explicit rejection marker
    SKIP_ML: marker telling the caller to continue without ML

Every result is a new dict carrying is_fallback=True, a fallback_reason and
the model_id. Mapping values from tables or the cache are copied and tagged;
non-mapping cached values are wrapped under "result".
"""

import copy
from collections.abc import Mapping
from typing import Any, Optional

from inference_guard.models.domain import FallbackStrategy
from inference_guard.resilience.cache import ResultCache
from inference_guard.resilience.metrics import record_fallback

# =============================================================================
# Constants
# =============================================================================

REASON_INFERENCE_FAILURE = "inference_failure"
REASON_CACHED = "cached_result"
REASON_CONSERVATIVE = "conservative_fallback"
REASON_REJECTED = "inference_rejected"
REASON_SKIPPED = "ml_skipped"

DEFAULT_KEY = "default"

DEFAULT_FALLBACKS: dict[str, dict[str, Any]] = {
    "subgenre_classification": {
        "subgenre": "hybrid",
        "confidence": 0.35,
        "probabilities": {},
        "tier": "VERY_LOW",
    },
    "confidence_score": {
        "confidence": 0.40,
        "tier": "LOW",
    },
    "risk_assessment": {
        "risk_level": "UNKNOWN",
        "risks": {},
    },
    "loudness_analysis": {
        "integrated_loudness": None,
        "true_peak": None,
        "loudness_range": None,
    },
    "transient_analysis": {
        "transient_sharpness": None,
        "transient_density": None,
    },
    DEFAULT_KEY: {
        "result": None,
    },
}


class FallbackResolver:
    """
    Resolves substitute results from default tables and the result cache.

    Attributes:
        defaults: Per-model default values (built-ins merged with overrides)
        conservative: Per-model conservative values
    """

    def __init__(
        self,
        cache: ResultCache,
        defaults: Optional[Mapping[str, Mapping[str, Any]]] = None,
        conservative: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> None:
        self._cache = cache
        self._defaults: dict[str, dict[str, Any]] = {
            **copy.deepcopy(DEFAULT_FALLBACKS),
            **{k: dict(v) for k, v in (defaults or {}).items()},
        }
        self._conservative = {k: dict(v) for k, v in (conservative or {}).items()}

    @property
    def defaults(self) -> dict[str, dict[str, Any]]:
        return self._defaults

    @property
    def conservative(self) -> dict[str, dict[str, Any]]:
        return self._conservative

    # =========================================================================
    # Table Lookups
    # =========================================================================

    def _default_value(self, model_id: str) -> dict[str, Any]:
        table_entry = self._defaults.get(model_id) or self._defaults.get(DEFAULT_KEY) or {
            "result": None
        }
        return copy.deepcopy(table_entry)

    def _conservative_value(self, model_id: str) -> dict[str, Any]:
        if model_id in self._conservative:
            return copy.deepcopy(self._conservative[model_id])
        return self._default_value(model_id)

    # =========================================================================
    # Resolution
    # =========================================================================

    def get_fallback(
        self,
        model_id: str,
        strategy: FallbackStrategy = FallbackStrategy.USE_DEFAULT,
    ) -> dict[str, Any]:
        """
        Resolve a fallback result for a model.

        Args:
            model_id: Model identifier
            strategy: Fallback strategy

        Returns:
            New dict with is_fallback=True and a fallback_reason
        """
        strategy = FallbackStrategy(strategy)
        result = self._resolve(model_id, strategy)
        result["is_fallback"] = True
        result["model_id"] = model_id
        record_fallback(model_id, strategy.value)
        return result

    def _resolve(self, model_id: str, strategy: FallbackStrategy) -> dict[str, Any]:
        if strategy is FallbackStrategy.USE_CACHED:
            entry = self._cache.get_cache_entry(model_id)
            if entry is not None and entry.value is not None:
                if isinstance(entry.value, Mapping):
                    result = dict(entry.value)
                else:
                    result = {"result": entry.value}
                result["fallback_reason"] = REASON_CACHED
                result["cached_at"] = entry.cached_at.isoformat()
                return result

        if strategy is FallbackStrategy.USE_CONSERVATIVE:
            result = self._conservative_value(model_id)
            result["fallback_reason"] = REASON_CONSERVATIVE
            result["conservative"] = True
            return result

        if strategy is FallbackStrategy.REJECT:
            return {"rejected": True, "fallback_reason": REASON_REJECTED}

        if strategy is FallbackStrategy.SKIP_ML:
            return {"skipped": True, "fallback_reason": REASON_SKIPPED}

        result = self._default_value(model_id)
        result["fallback_reason"] = REASON_INFERENCE_FAILURE
        return result
