from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Bot configuration (YAML) ---


class AgentIdentity(BaseModel):
    role: str
    persona: str
    fallback_phrase: str = "¿En qué te puedo ayudar con tu reserva?"


class AgentStyle(BaseModel):
    tone: str = "cálido"
    politeness: str = "tú"
    emoji_policy: str = "rare"
    clean_text: bool = True
    max_sentences: int = 3
    max_questions: int = 1


class AgentRule(BaseModel):
    id: str
    priority: str = "normal"
    description: str
    positive_example: Optional[str] = None
    negative_example: Optional[str] = None


class LLMConfig(BaseModel):
    provider: str = "ollama"
    model: str = "llama3.2"
    temperature: float = 0.2
    max_tokens: int = 250
    max_history: int = 10
    api_base: Optional[str] = None
    timeout_seconds: float = 20.0


class AgentConfig(BaseModel):
    id: str
    name: str
    identity: AgentIdentity
    style: AgentStyle = Field(default_factory=AgentStyle)
    rules: list[AgentRule] = Field(default_factory=list)
    llm: LLMConfig = Field(default_factory=LLMConfig)


class IntentConfig(BaseModel):
    """One classification rule: substring markers and/or full-match regex patterns."""

    id: str
    markers: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    priority: int = 50


class DialoguePolicyConfig(BaseModel):
    intents: list[IntentConfig] = Field(default_factory=list)
    actions: list[IntentConfig] = Field(default_factory=list)


class BotConfig(BaseModel):
    """Full bot configuration assembled from the YAML files."""

    agent: AgentConfig
    dialogue_policy: DialoguePolicyConfig = Field(default_factory=DialoguePolicyConfig)


# --- Conversation draft ---


class DraftStep(str, Enum):
    NAME = "name"
    PARTY_SIZE = "party_size"
    ZONE_SELECTION = "zone_selection"
    CONFIRMATION = "confirmation"
    EDIT_MENU = "edit_menu"
    COMPLETED = "completed"


class EditField(str, Enum):
    PARTY_SIZE = "party_size"
    ZONE = "zone"


MIN_PARTY_SIZE = 1
MAX_PARTY_SIZE = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Draft(BaseModel):
    conversation_key: str
    venue_id: str
    step: DraftStep = DraftStep.NAME
    customer_name: Optional[str] = None
    party_size: Optional[int] = Field(default=None, ge=MIN_PARTY_SIZE, le=MAX_PARTY_SIZE)
    selected_zone: Optional[str] = None
    edit_mode: bool = False
    editing_field: Optional[EditField] = None
    linked_reservation_id: Optional[str] = None
    invalid_attempts: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.step == DraftStep.COMPLETED


# --- Availability snapshot ---


class ZoneInfo(BaseModel):
    id: str
    name: str
    priority: int = 0


class TableInfo(BaseModel):
    id: str
    zone_id: str
    capacity: int
    number: str
    active: bool = True
    occupied: bool = False


class AvailabilitySnapshot(BaseModel):
    zones: list[ZoneInfo] = Field(default_factory=list)
    tables: list[TableInfo] = Field(default_factory=list)


# --- Store records ---


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ARRIVED = "ARRIVED"
    SEATED = "SEATED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


ACTIVE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


class VenueInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    venue_type: str = "restaurante"
    auto_accept_reservations: bool = False
    bot_active: bool = True


class CustomerInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    venue_id: str
    name: str
    phone: str


class ReservationInfo(BaseModel):
    id: str
    venue_id: str
    customer_id: str
    display_code: str
    status: ReservationStatus
    party_size: int
    customer_name: Optional[str] = None
    zone_name: Optional[str] = None
    table_id: Optional[str] = None
    created_at: Optional[datetime] = None
