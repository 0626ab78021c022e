"""
Configuration schema definitions for the Waypoint client.

This module defines the Pydantic models for tool server descriptors, context
sampling policies, AI backend settings, and the complete client
configuration that ties them together.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from waypoint.constants import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_CONTEXT_TOKENS,
)
from waypoint.exceptions import DuplicateIdError, ValidationError


class ServerMetadata(BaseModel):
    """
    Free-form metadata attached to a tool server descriptor.

    Known keys are typed; any extra keys are preserved as-is.

    Parameters
    ----------
    game_id : str | None, optional
        Identifier of the game this server provides context for.
    description : str | None, optional
        Human-readable description of the server.
    version : str | None, optional
        Version of the server package.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    game_id: str | None = Field(default=None, description="Associated game id")
    description: str | None = Field(default=None, description="Server description")
    version: str | None = Field(default=None, description="Server version")


class ServerDescriptor(BaseModel):
    """
    Launch specification for one MCP tool server.

    Descriptors are frozen: once a connection exists for a descriptor it
    cannot be changed in place.

    Parameters
    ----------
    id : str
        Unique identifier of the server within a connection manager.
    name : str
        Display name of the server.
    command : str
        Executable to spawn.
    args : list[str], default=[]
        Arguments passed to the command.
    env : dict[str, str], default={}
        Environment overrides merged over the parent environment.
    enabled : bool, default=True
        Whether to connect immediately when the server is registered.
    metadata : ServerMetadata, optional
        Free-form metadata about the server.

    Raises
    ------
    ValidationError
        If the id or command is empty.

    Examples
    --------
    >>> server = ServerDescriptor(
    ...     id="savegame",
    ...     name="Save Game Reader",
    ...     command="python",
    ...     args=["-m", "savegame_server"],
    ... )
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique server id")
    name: str = Field(description="Display name")
    command: str = Field(description="Command for stdio transport")
    args: list[str] = Field(default_factory=list, description="Command arguments")
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Environment variable overrides",
    )
    enabled: bool = Field(default=True, description="Connect on registration")
    metadata: ServerMetadata = Field(
        default_factory=ServerMetadata,
        description="Free-form server metadata",
    )

    @field_validator("id", "command")
    @classmethod
    def validate_not_blank(cls, v: str, info: ValidationInfo) -> str:
        """
        Reject blank ids and commands.

        Raises
        ------
        ValidationError
            If the value is empty or whitespace.
        """
        if not v or not v.strip():
            raise ValidationError(
                f"Server '{info.field_name}' must not be empty",
                field=info.field_name,
            )
        return v


class SamplingStrategy(str, Enum):
    """Policies for reducing oversized context to fit a token budget."""

    FULL = "full"
    CHUNKED = "chunked"
    SUMMARY = "summary"
    SELECTIVE = "selective"


class PriorityWeights(BaseModel):
    """
    Relative share of the token budget given to each context source.

    Parameters
    ----------
    savefile : float, default=1.0
        Weight of the save-game data.
    screenshot : float, default=1.0
        Weight of the screenshot.
    guide : float, default=1.0
        Weight of the guide text.

    Raises
    ------
    ValidationError
        If any weight is negative or all weights are zero.

    Examples
    --------
    >>> weights = PriorityWeights(savefile=3, screenshot=1, guide=1)
    >>> weights.total
    5.0
    """

    savefile: float = Field(default=1.0, description="Save data weight")
    screenshot: float = Field(default=1.0, description="Screenshot weight")
    guide: float = Field(default=1.0, description="Guide weight")

    @model_validator(mode="after")
    def validate_weights(self) -> PriorityWeights:
        for name in ("savefile", "screenshot", "guide"):
            if getattr(self, name) < 0:
                raise ValidationError(
                    f"Priority weight '{name}' must be non-negative",
                    field=f"priority.{name}",
                )
        if self.total <= 0:
            raise ValidationError(
                "Priority weights must not all be zero",
                field="priority",
            )
        return self

    @property
    def total(self) -> float:
        """Sum of all weights."""
        return float(self.savefile + self.screenshot + self.guide)


class SamplingPolicy(BaseModel):
    """
    Configuration for context reduction.

    Parameters
    ----------
    strategy : SamplingStrategy, default=SamplingStrategy.FULL
        How to reduce context that exceeds its budget.
    max_tokens : int, default=4000
        Token budget shared by all context sources. Must be positive.
    chunk_size : int, default=500
        Window size in characters for the chunked strategy.
    overlap : int, default=50
        Characters shared by consecutive chunks. Must be smaller than
        ``chunk_size``.
    priority : PriorityWeights, optional
        Per-source weights. Defaults to equal weights.

    Raises
    ------
    ValidationError
        If ``max_tokens`` is not positive or the chunk window cannot advance.

    Examples
    --------
    >>> policy = SamplingPolicy(strategy="chunked", max_tokens=1000)
    """

    strategy: SamplingStrategy = Field(
        default=SamplingStrategy.FULL,
        description="Sampling strategy",
    )
    max_tokens: int = Field(
        default=DEFAULT_MAX_CONTEXT_TOKENS,
        description="Total token budget",
    )
    chunk_size: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        description="Chunk window size in characters",
    )
    overlap: int = Field(
        default=DEFAULT_CHUNK_OVERLAP,
        description="Chunk overlap in characters",
    )
    priority: PriorityWeights = Field(
        default_factory=PriorityWeights,
        description="Per-source priority weights",
    )

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        if v <= 0:
            raise ValidationError(
                f"max_tokens must be positive, got {v}",
                field="max_tokens",
            )
        return v

    @model_validator(mode="after")
    def validate_window(self) -> SamplingPolicy:
        """
        Validate that the chunk window always advances.

        Returns
        -------
        SamplingPolicy
            The validated policy.

        Raises
        ------
        ValidationError
            If the chunk size is not positive, the overlap is negative, or
            the overlap is not strictly smaller than the chunk size.
        """
        if self.chunk_size <= 0:
            raise ValidationError(
                f"chunk_size must be positive, got {self.chunk_size}",
                field="chunk_size",
            )
        if self.overlap < 0:
            raise ValidationError(
                f"overlap must be non-negative, got {self.overlap}",
                field="overlap",
            )
        if self.overlap >= self.chunk_size:
            raise ValidationError(
                f"overlap ({self.overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})",
                field="overlap",
            )
        return self


class Provider(str, Enum):
    """AI backend providers supported by the direct-credential mode."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    LOCAL = "local"
    GITHUB_COPILOT = "github-copilot"


class BackendConfig(BaseModel):
    """
    Identity and credentials for one AI backend.

    The model is frozen; updates produce a new instance that replaces the
    previous one wholesale.

    Parameters
    ----------
    provider : Provider, default=Provider.OPENAI
        Backend provider.
    model : str, default=""
        Model name. Empty selects the provider's default model.
    api_key : str | None, optional
        Pre-obtained credential.
    base_url : str | None, optional
        Endpoint override.
    max_tokens : int | None, optional
        Maximum output tokens. Defaults per mode when unset.
    temperature : float | None, optional
        Sampling temperature between 0.0 and 2.0.

    Examples
    --------
    >>> config = BackendConfig(provider="anthropic", api_key="sk-ant-...")
    """

    model_config = ConfigDict(frozen=True)

    provider: Provider = Field(default=Provider.OPENAI, description="Provider")
    model: str = Field(default="", description="Model name")
    api_key: str | None = Field(default=None, repr=False, description="API key")
    base_url: str | None = Field(default=None, description="Endpoint override")
    max_tokens: int | None = Field(default=None, description="Max output tokens")
    temperature: float | None = Field(default=None, description="Temperature")

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValidationError(
                f"max_tokens must be positive, got {v}",
                field="max_tokens",
            )
        return v

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float | None) -> float | None:
        """
        Validate temperature is within acceptable range.

        Raises
        ------
        ValidationError
            If temperature is outside the valid range.
        """
        if v is not None and not 0.0 <= v <= 2.0:
            raise ValidationError(
                f"Temperature must be between 0.0 and 2.0, got {v}",
                field="temperature",
            )
        return v


class ConnectionMode(str, Enum):
    """Selector for the AI connection mode variant."""

    API_KEY = "api-key"
    HOST_MEDIATED = "host-mediated"


class ClientConfiguration(BaseModel):
    """
    Complete configuration for the Waypoint orchestrator.

    Parameters
    ----------
    mode : ConnectionMode, default=ConnectionMode.API_KEY
        Which AI connection mode to construct.
    ai_model : BackendConfig, optional
        Backend identity and credentials.
    sampling : SamplingPolicy, optional
        Context sampling policy.
    servers : list[ServerDescriptor], default=[]
        Tool servers to register on initialize.
    expose_tools : bool, default=False
        Whether to advertise connected servers' tools to the backend.
    debug : bool, default=False
        Enable debug logging.

    Raises
    ------
    DuplicateIdError
        If two server descriptors share an id.

    Examples
    --------
    >>> config = ClientConfiguration(
    ...     ai_model=BackendConfig(provider="anthropic", api_key="key"),
    ...     sampling=SamplingPolicy(strategy="summary", max_tokens=2000),
    ... )
    """

    mode: ConnectionMode = Field(
        default=ConnectionMode.API_KEY,
        description="AI connection mode",
    )
    ai_model: BackendConfig = Field(
        default_factory=BackendConfig,
        description="AI backend configuration",
    )
    sampling: SamplingPolicy = Field(
        default_factory=SamplingPolicy,
        description="Context sampling policy",
    )
    servers: list[ServerDescriptor] = Field(
        default_factory=list,
        description="Tool server descriptors",
    )
    expose_tools: bool = Field(
        default=False,
        description="Advertise server tools to the backend",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    @model_validator(mode="after")
    def validate_unique_servers(self) -> ClientConfiguration:
        seen: set[str] = set()
        for server in self.servers:
            if server.id in seen:
                raise DuplicateIdError(server.id)
            seen.add(server.id)
        return self

    def to_dict(self) -> dict[str, Any]:
        """
        Convert configuration to a dictionary.

        The API key is masked.

        Returns
        -------
        dict[str, Any]
            Dictionary representation of the configuration.
        """
        data: dict[str, Any] = self.model_dump(mode="json")
        if data["ai_model"].get("api_key"):
            data["ai_model"]["api_key"] = "***"
        return data
