from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum
from typing import List, Optional

class Game(str, Enum):
    RUST = "Rust"
    CS2 = "CS2"
    MINECRAFT = "Minecraft"
    OTHER = "Other"

# Fixed reporting order for per-game breakdowns
GAME_ORDER = [Game.RUST, Game.CS2, Game.MINECRAFT, Game.OTHER]

class ServerStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    MAINTENANCE = "maintenance"

class ServerRecord(BaseModel):
    """One monitored game server, in the camelCase shape used on the wire"""
    id: str = Field(..., min_length=1)
    name: str
    game: Game = Game.OTHER
    region: str = ""
    ip: str = ""
    port: int = Field(default=0, ge=0, le=65535)
    map: str = ""
    players: int = Field(default=0, ge=0)
    max_players: int = Field(default=1, ge=1, alias="maxPlayers")
    queue: int = Field(default=0, ge=0)
    status: ServerStatus = ServerStatus.ONLINE
    last_wipe: str = Field(default="", alias="lastWipe")
    uptime_percent: float = Field(default=0.0, ge=0, le=100, alias="uptimePercent")
    avg_players_24h: int = Field(default=0, ge=0, alias="avgPlayers24h")
    peak_players_24h: int = Field(default=0, ge=0, alias="peakPlayers24h")
    avg_latency_ms: int = Field(default=0, ge=0, alias="avgLatencyMs")

    # Live data may carry fields we do not model; keep them
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @field_validator('id')
    @classmethod
    def validate_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Server id must not be blank')
        return v

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")

class ServerRow(ServerRecord):
    """A listing table row: the record plus its display helpers"""
    fill_percent: float = Field(alias="fillPercent")
    status_label: str = Field(alias="statusLabel")

class RconIntegration(BaseModel):
    enabled: bool = False
    host: str = ""
    port: str = ""
    note: str = ""

class Iw4madminIntegration(BaseModel):
    enabled: bool = False
    url: str = ""
    note: str = ""

class OtherIntegration(BaseModel):
    enabled: bool = False
    label: str = ""
    note: str = ""

class IntegrationsConfig(BaseModel):
    """Operator settings; `servers` is the authoritative catalog"""
    servers: List[ServerRecord] = Field(default_factory=list)
    live_data_url: str = Field(default="", alias="liveDataUrl")
    rcon: RconIntegration = Field(default_factory=RconIntegration)
    iw4madmin: Iw4madminIntegration = Field(default_factory=Iw4madminIntegration)
    other: OtherIntegration = Field(default_factory=OtherIntegration)

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")

class IntegrationsUpdateRequest(BaseModel):
    live_data_url: str = Field(default="", alias="liveDataUrl")
    rcon: RconIntegration = Field(default_factory=RconIntegration)
    iw4madmin: Iw4madminIntegration = Field(default_factory=Iw4madminIntegration)
    other: OtherIntegration = Field(default_factory=OtherIntegration)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('live_data_url')
    @classmethod
    def strip_url(cls, v):
        return v.strip()

class CatalogUpdateRequest(BaseModel):
    servers: List[ServerRecord]

    @field_validator('servers')
    @classmethod
    def validate_unique_ids(cls, v):
        ids = [s.id for s in v]
        if len(ids) != len(set(ids)):
            raise ValueError('Server ids must be unique')
        return v

class GameAverage(BaseModel):
    game: Game
    avg_players: Optional[float] = None  # None when no servers of this game

class UptimeBar(BaseModel):
    label: str
    name: str
    uptime_percent: float

class AnalyticsSummary(BaseModel):
    total_players: int
    total_max: int
    fill_percent: int
    avg_uptime: float
    total_peak: int
    avg_load: int
    by_game: List[GameAverage]
    by_game_text: str
    uptime_bars: List[UptimeBar]

class ServerListResponse(BaseModel):
    servers: List[ServerRow]
    total: int
    server_count: int
    live_players: int
    analytics: AnalyticsSummary
    timestamp: float

class FeaturedResponse(BaseModel):
    servers: List[ServerRow]
    server_count: int
    avg_latency_ms: Optional[int] = None
    total_peak: int
    timestamp: float

class RefreshResponse(BaseModel):
    servers: List[ServerRecord]
    last_fetch: float
    overlay_entries: int
    message: str = "Refreshed from integrations"

class UserRecord(BaseModel):
    username: str
    password: Optional[str] = None
    role: str = "user"
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")
    banner_url: Optional[str] = Field(default=None, alias="bannerUrl")
    bio: str = ""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

class UserInfo(BaseModel):
    username: str
    role: str
    avatar_url: Optional[str] = None
    banner_url: Optional[str] = None
    bio: str = ""

class SignupRequest(BaseModel):
    username: str
    password: str
    confirm: str

class LoginRequest(BaseModel):
    username: str
    password: str

class ProfileUpdateRequest(BaseModel):
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    banner_url: Optional[str] = None

class UsernameChangeRequest(BaseModel):
    new_username: str
    current_password: str

class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str

class DeleteAccountRequest(BaseModel):
    password: str

class HealthResponse(BaseModel):
    status: str
    timestamp: float
    servers: int
    version: str = "1.0.0"
