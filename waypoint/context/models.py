"""
Data models for context sampling.

This module defines the raw, unbounded context collected from the game and
the token-bounded context produced from it for the AI backend.
"""

from typing import Any

from pydantic import BaseModel, Field


class SavefileContext(BaseModel):
    """
    Raw save-game state.

    Parameters
    ----------
    data : Any
        Save-game data, usually a JSON-compatible mapping.
    size_bytes : int, default=0
        Size of the save file on disk.
    """

    data: Any = Field(description="Save-game data")
    size_bytes: int = Field(default=0, description="Size in bytes")


class ScreenshotContext(BaseModel):
    """
    Raw screenshot.

    Parameters
    ----------
    data : str
        Base64-encoded image.
    size_bytes : int
        Size of the encoded image, used to estimate its token cost.
    """

    data: str = Field(description="Base64 image data")
    size_bytes: int = Field(description="Size in bytes")


class GuideContext(BaseModel):
    """
    Raw guide document.

    Parameters
    ----------
    text : str
        Guide text, optionally with markdown headings.
    size_bytes : int, default=0
        Size of the guide document.
    """

    text: str = Field(description="Guide text")
    size_bytes: int = Field(default=0, description="Size in bytes")


class RawContext(BaseModel):
    """
    Unbounded context collected for one chat turn.

    Every source is optional.

    Examples
    --------
    >>> raw = RawContext(
    ...     savefile=SavefileContext(data={"health": 80}, size_bytes=15),
    ...     guide=GuideContext(text="# Boss fight\\nDodge left."),
    ... )
    """

    savefile: SavefileContext | None = Field(default=None, description="Save data")
    screenshot: ScreenshotContext | None = Field(
        default=None,
        description="Screenshot",
    )
    guide: GuideContext | None = Field(default=None, description="Guide text")

    @property
    def is_empty(self) -> bool:
        return self.savefile is None and self.screenshot is None and self.guide is None


class SampledSavefile(BaseModel):
    """Save data reduced to its budget, with its estimated token cost."""

    data: Any = Field(description="Sampled save data")
    tokens: int = Field(default=0, description="Token cost")


class SampledScreenshot(BaseModel):
    """Screenshot kept whole or dropped (empty ``data`` and zero cost)."""

    data: str = Field(default="", description="Base64 image data")
    tokens: int = Field(default=0, description="Token cost")


class SampledGuide(BaseModel):
    """Guide text reduced to chunks, with their estimated token cost."""

    chunks: list[str] = Field(default_factory=list, description="Guide chunks")
    tokens: int = Field(default=0, description="Token cost")


class SampledContext(BaseModel):
    """
    Token-bounded context sent to the AI backend.

    Produced fresh for each chat turn. A source that was absent from the raw
    context is None here.

    Parameters
    ----------
    savefile : SampledSavefile | None, optional
        Sampled save data.
    screenshot : SampledScreenshot | None, optional
        Sampled screenshot.
    guide : SampledGuide | None, optional
        Sampled guide chunks.
    total_tokens : int, default=0
        Sum of the per-source token costs.
    """

    savefile: SampledSavefile | None = Field(default=None, description="Save data")
    screenshot: SampledScreenshot | None = Field(
        default=None,
        description="Screenshot",
    )
    guide: SampledGuide | None = Field(default=None, description="Guide chunks")
    total_tokens: int = Field(default=0, description="Total token cost")
