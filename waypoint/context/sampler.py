"""
Context sampler for fitting game context into a token budget.

This module reduces raw context to a SampledContext under a SamplingPolicy.
The budget is split between save data, screenshot, and guide text by their
priority weights, and each source is reduced independently against its own
share with the policy's strategy.
"""

import logging
import re
from typing import Any

from waypoint.config.schema import SamplingPolicy, SamplingStrategy
from waypoint.constants import (
    DEFAULT_CHARS_PER_TOKEN,
    IMPORTANT_SAVEFILE_FIELDS,
    SUMMARY_PLACEHOLDER,
)
from waypoint.context.models import (
    GuideContext,
    RawContext,
    SampledContext,
    SampledGuide,
    SampledSavefile,
    SampledScreenshot,
    SavefileContext,
    ScreenshotContext,
)
from waypoint.exceptions import ValidationError
from waypoint.utils.text import (
    estimate_chars_tokens,
    estimate_image_tokens,
    estimate_text_tokens,
    to_json,
    truncate_to_tokens,
)

logger = logging.getLogger(__name__)

_HEADING_PATTERN = re.compile(r"\n#{1,6}\s+")
_PARAGRAPH_SEPARATOR = "\n\n"


class ContextSampler:
    """
    Reduces raw context to fit a token budget.

    The sampler performs no I/O and keeps no state besides its policy.

    Parameters
    ----------
    policy : SamplingPolicy | None, optional
        Sampling policy. Defaults to the full strategy with default limits.

    Examples
    --------
    >>> sampler = ContextSampler(SamplingPolicy(strategy="chunked", max_tokens=500))
    >>> sampled = sampler.sample(RawContext(guide=GuideContext(text=guide_text)))
    >>> sampled.guide.chunks
    """

    def __init__(self, policy: SamplingPolicy | None = None) -> None:
        self._policy: SamplingPolicy = policy or SamplingPolicy()

    def get_config(self) -> SamplingPolicy:
        """Copy of the current policy."""
        return self._policy.model_copy(deep=True)

    def update_config(self, **changes: Any) -> SamplingPolicy:
        """
        Merge changes into the policy.

        Parameters
        ----------
        **changes : Any
            Policy fields to replace, e.g. ``strategy="summary"``.

        Returns
        -------
        SamplingPolicy
            The new policy.

        Raises
        ------
        ValidationError
            If the merged policy is invalid. The previous policy is kept.

        Examples
        --------
        >>> sampler.update_config(max_tokens=2000, overlap=100)
        """
        merged: dict[str, Any] = self._policy.model_dump()
        merged.update(changes)
        self._policy = SamplingPolicy(**merged)
        logger.debug(f"Sampling policy updated: {self._policy.model_dump()}")
        return self.get_config()

    def budgets(self) -> dict[str, int]:
        """
        Compute the per-source token budgets.

        Each budget is ``floor(max_tokens * weight / total_weight)``.

        Returns
        -------
        dict[str, int]
            Budgets keyed by ``savefile``, ``screenshot`` and ``guide``.

        Examples
        --------
        >>> ContextSampler(SamplingPolicy(
        ...     max_tokens=500,
        ...     priority={"savefile": 3, "screenshot": 1, "guide": 1},
        ... )).budgets()
        {'savefile': 300, 'screenshot': 100, 'guide': 100}
        """
        weights = self._policy.priority
        total: float = weights.total
        max_tokens: int = self._policy.max_tokens

        return {
            name: int(max_tokens * getattr(weights, name) // total)
            for name in ("savefile", "screenshot", "guide")
        }

    def sample(self, raw: RawContext) -> SampledContext:
        """
        Sample raw context under the current policy.

        Parameters
        ----------
        raw : RawContext
            Unbounded context. Absent sources stay absent.

        Returns
        -------
        SampledContext
            Bounded context whose ``total_tokens`` never exceeds the policy's
            ``max_tokens``.
        """
        sampled = SampledContext()
        if raw.is_empty:
            return sampled

        budgets: dict[str, int] = self.budgets()

        if raw.savefile is not None:
            sampled.savefile = self._sample_savefile(
                raw.savefile,
                budgets["savefile"],
            )
            sampled.total_tokens += sampled.savefile.tokens

        if raw.screenshot is not None:
            sampled.screenshot = self._sample_screenshot(
                raw.screenshot,
                budgets["screenshot"],
            )
            sampled.total_tokens += sampled.screenshot.tokens

        if raw.guide is not None:
            sampled.guide = self._sample_guide(raw.guide, budgets["guide"])
            sampled.total_tokens += sampled.guide.tokens

        logger.debug(
            f"Sampled context with strategy={self._policy.strategy.value}: "
            f"{sampled.total_tokens}/{self._policy.max_tokens} tokens",
        )
        return sampled

    def _sample_savefile(
        self,
        savefile: SavefileContext,
        budget: int,
    ) -> SampledSavefile:
        serialized: str = to_json(savefile.data)
        tokens: int = estimate_text_tokens(serialized)

        if tokens <= budget:
            return SampledSavefile(data=savefile.data, tokens=tokens)

        reduced: dict[str, Any] | None = None
        if isinstance(savefile.data, dict):
            if self._policy.strategy == SamplingStrategy.SUMMARY:
                reduced = {key: SUMMARY_PLACEHOLDER for key in savefile.data}
            elif self._policy.strategy == SamplingStrategy.SELECTIVE:
                reduced = {
                    key: value
                    for key, value in savefile.data.items()
                    if str(key).lower() in IMPORTANT_SAVEFILE_FIELDS
                }

        if reduced is not None:
            reduced_tokens: int = estimate_text_tokens(to_json(reduced))
            if reduced_tokens <= budget:
                return SampledSavefile(data=reduced, tokens=reduced_tokens)
            logger.debug(
                f"Reduced save data still over budget ({reduced_tokens} > "
                f"{budget}), truncating",
            )

        return SampledSavefile(
            data=truncate_to_tokens(serialized, budget),
            tokens=budget,
        )

    def _sample_screenshot(
        self,
        screenshot: ScreenshotContext,
        budget: int,
    ) -> SampledScreenshot:
        tokens: int = estimate_image_tokens(screenshot.size_bytes)

        if tokens <= budget:
            return SampledScreenshot(data=screenshot.data, tokens=tokens)

        logger.debug(f"Dropping screenshot: {tokens} tokens > budget {budget}")
        return SampledScreenshot(data="", tokens=0)

    def _sample_guide(self, guide: GuideContext, budget: int) -> SampledGuide:
        """
        Reduce guide text to its budget.

        The chunked strategy always windows the text, even when it fits, so
        chunk counts depend only on the text length and the window. Other
        strategies pass a fitting guide through as a single chunk.
        """
        text: str = guide.text
        strategy: SamplingStrategy = self._policy.strategy

        if strategy == SamplingStrategy.CHUNKED:
            return self._chunk_guide(text, budget)

        tokens: int = estimate_text_tokens(text)
        if tokens <= budget:
            return SampledGuide(chunks=[text], tokens=tokens)

        if strategy == SamplingStrategy.SUMMARY:
            return self._take_sections(
                text.split(_PARAGRAPH_SEPARATOR),
                budget,
                strip=False,
            )
        if strategy == SamplingStrategy.SELECTIVE:
            return self._take_sections(
                _HEADING_PATTERN.split(text),
                budget,
                strip=True,
            )

        return SampledGuide(chunks=[truncate_to_tokens(text, budget)], tokens=budget)

    def _chunk_guide(self, text: str, budget: int) -> SampledGuide:
        """
        Slide a fixed window across the text until the budget is spent.

        The last chunk is clipped to the remaining character budget, and
        the window stops once it reaches the end of the text.
        """
        chunk_size: int = self._policy.chunk_size
        overlap: int = self._policy.overlap
        if chunk_size - overlap <= 0:
            raise ValidationError(
                f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})",
                field="overlap",
            )

        max_chars: int = budget * DEFAULT_CHARS_PER_TOKEN
        chunks: list[str] = []
        used: int = 0
        start: int = 0

        while start < len(text) and used < max_chars:
            end: int = min(start + chunk_size, len(text))
            chunk: str = text[start:end][: max_chars - used]
            chunks.append(chunk)
            used += len(chunk)

            if end >= len(text):
                break
            start = end - overlap

        return SampledGuide(chunks=chunks, tokens=estimate_chars_tokens(used))

    @staticmethod
    def _take_sections(
        sections: list[str],
        budget: int,
        strip: bool,
    ) -> SampledGuide:
        """Keep whole sections in order until the next one would not fit."""
        max_chars: int = budget * DEFAULT_CHARS_PER_TOKEN
        kept: list[str] = []
        used: int = 0

        for section in sections:
            if used + len(section) > max_chars:
                break
            kept.append(section.strip() if strip else section)
            used += len(section)

        return SampledGuide(chunks=kept, tokens=estimate_chars_tokens(used))
