# ddialog/progress.py
# -----------------------------------------------------------------------------
# Progreso por conversación + persistencia.
# El store se invoca una vez al inicio (load) y otra al final (save) del turno.
# StorageProgressStore envuelve cualquier Storage de botbuilder (MemoryStorage,
# CosmosDb, Blob...).
# -----------------------------------------------------------------------------
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Protocol

from botbuilder.core import MemoryStorage, Storage
from botbuilder.schema import Activity
from pydantic import BaseModel, Field, ValidationError

from .errors import PersistenceError
from .step_recognizer import StepResult

logger = logging.getLogger("datadriven-bot.progress")


class ConfirmationState(str, Enum):
    NONE = "none"
    AWAITING = "awaiting_confirmation"


class ConversationProgress(BaseModel):
    # CosmosDB & co. pueden devolver floats (1.0); la validación lax los acepta
    model_config = {"extra": "ignore"}

    dialog_name: Optional[str] = None
    step_index: int = Field(default=0, ge=0)
    values: Dict[str, Any] = Field(default_factory=dict)
    confirmation: ConfirmationState = ConfirmationState.NONE
    pending_result: Optional[StepResult] = None
    completed_runs: int = Field(default=0, ge=0)

    @property
    def is_idle(self) -> bool:
        return self.dialog_name is None

    @property
    def awaiting_confirmation(self) -> bool:
        return self.confirmation is ConfirmationState.AWAITING

    def reset(self, dialog_name: Optional[str]) -> None:
        self.dialog_name = dialog_name
        self.step_index = 0
        self.values = {}
        self.confirmation = ConfirmationState.NONE
        self.pending_result = None


class ProgressStore(Protocol):
    async def load(self, key: str) -> Optional[ConversationProgress]:
        ...

    async def save(self, key: str, progress: ConversationProgress) -> None:
        ...


def progress_key(activity: Activity) -> str:
    conv = getattr(activity, "conversation", None)
    conv_id = getattr(conv, "id", None)
    channel_id = getattr(activity, "channel_id", None)
    # Channels.msteams y demás llegan como Enum
    channel_id = getattr(channel_id, "value", channel_id)
    if not (conv_id and channel_id):
        raise PersistenceError("La actividad no trae channel_id/conversation.id")
    return f"{channel_id}/conversations/{conv_id}/progress"


class StorageProgressStore:
    def __init__(self, storage: Optional[Storage] = None, log: Optional[logging.Logger] = None):
        self.storage = storage if storage is not None else MemoryStorage()
        self.log = log or logger

    async def load(self, key: str) -> Optional[ConversationProgress]:
        try:
            items = await self.storage.read([key])
        except Exception as e:
            raise PersistenceError(f"No se pudo leer el progreso '{key}': {e!r}") from e

        raw = items.get(key) if items else None
        if raw is None:
            return None
        if not isinstance(raw, Mapping):
            raw = getattr(raw, "__dict__", {})
        try:
            return ConversationProgress.model_validate(raw)
        except ValidationError as e:
            raise PersistenceError(f"Progreso corrupto en '{key}': {e}") from e

    async def save(self, key: str, progress: ConversationProgress) -> None:
        item = progress.model_dump(mode="json")
        item["e_tag"] = "*"
        try:
            await self.storage.write({key: item})
        except Exception as e:
            raise PersistenceError(f"No se pudo guardar el progreso '{key}': {e!r}") from e
        self.log.debug("[progress] guardado %s -> %s#%d", key, progress.dialog_name, progress.step_index)
