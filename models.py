from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

DEFAULT_REFRESH = timedelta(seconds=60)
MIN_REFRESH = timedelta(seconds=30)
MAX_REFRESH = timedelta(days=7)

_NS_PER_US = 1000


class Credential(BaseModel):
    access_token: str


class FiveHourWindow(BaseModel):
    utilization: float = 0.0
    resets_at: str | None = None  # ISO timestamp, not used for display


class OAuthUsage(BaseModel):
    five_hour: FiveHourWindow | None = None


class TokenCounts(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input_tokens: int = Field(0, alias="inputTokens")
    output_tokens: int = Field(0, alias="outputTokens")
    cache_creation_input_tokens: int = Field(0, alias="cacheCreationInputTokens")
    cache_read_input_tokens: int = Field(0, alias="cacheReadInputTokens")


class UsageWindow(BaseModel):
    """One 5h block as listed by ``ccusage blocks --json``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    start_time: str | None = Field(None, alias="startTime")
    end_time: str | None = Field(None, alias="endTime")
    is_active: bool = Field(False, alias="isActive")
    is_gap: bool = Field(False, alias="isGap")
    token_counts: TokenCounts = Field(default_factory=TokenCounts, alias="tokenCounts")
    total_tokens: int = Field(0, alias="totalTokens")


class UsageBlocks(BaseModel):
    blocks: list[UsageWindow] = []


class UsageSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    input_tokens_used: int = Field(0, ge=0)
    output_tokens_used: int = Field(0, ge=0)
    block_total_tokens: int = Field(0, ge=0)
    indicator_percent: float | None = None  # None: no percentage this cycle


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    refresh_interval: timedelta = DEFAULT_REFRESH
    pinned_on_top: bool = False


class WidgetState(BaseModel):
    """Settings and the latest snapshot, persisted together as one record."""

    model_config = ConfigDict(frozen=True)

    refresh_interval: timedelta = DEFAULT_REFRESH
    pinned_on_top: bool = False
    input_tokens_used: int = Field(0, ge=0)
    output_tokens_used: int = Field(0, ge=0)
    block_total_tokens: int = Field(0, ge=0)
    indicator_percent: float = 0.0

    @field_validator("refresh_interval", mode="before")
    @classmethod
    def _interval_from_ns(cls, value):
        # Stored on disk as integer nanoseconds; timedelta keeps whole
        # microseconds only, so sub-microsecond digits are dropped on load.
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return timedelta(microseconds=value // _NS_PER_US)
            except OverflowError as exc:
                raise ValueError(f"refresh_interval out of range: {value}") from exc
        return value

    @field_serializer("refresh_interval")
    def _interval_to_ns(self, value: timedelta) -> int:
        return (value // timedelta(microseconds=1)) * _NS_PER_US

    @property
    def settings(self) -> Settings:
        return Settings(refresh_interval=self.refresh_interval, pinned_on_top=self.pinned_on_top)

    @property
    def snapshot(self) -> UsageSnapshot:
        return UsageSnapshot(
            input_tokens_used=self.input_tokens_used,
            output_tokens_used=self.output_tokens_used,
            block_total_tokens=self.block_total_tokens,
            indicator_percent=self.indicator_percent,
        )

    def apply(self, snapshot: UsageSnapshot) -> "WidgetState":
        """Return a copy holding *snapshot*; a missing percent keeps the old one."""
        percent = snapshot.indicator_percent
        return self.model_copy(update={
            "input_tokens_used": snapshot.input_tokens_used,
            "output_tokens_used": snapshot.output_tokens_used,
            "block_total_tokens": snapshot.block_total_tokens,
            "indicator_percent": self.indicator_percent if percent is None else percent,
        })

    def with_settings(self, settings: Settings) -> "WidgetState":
        return self.model_copy(update={
            "refresh_interval": settings.refresh_interval,
            "pinned_on_top": settings.pinned_on_top,
        })


class RenderedSnapshot(BaseModel):
    fraction: float = 0.0  # progress bar position, 0..1
    percent: float = 0.0
    detail: str = ""
    status: str = ""


class EngineStatus(BaseModel):
    status: str = ""
    phase: str = "idle"
    snapshot: UsageSnapshot = UsageSnapshot()
    settings: Settings = Settings()
    last_refreshed: str | None = None  # ISO timestamp
