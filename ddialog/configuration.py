# ddialog/configuration.py
# -----------------------------------------------------------------------------
# Carga de definiciones desde disco.
#   <root>/Steps/*.json          -> StepDefinition (una por archivo)
#   <root>/<cualquier otro>/*.json -> DialogDefinition
# Se carga una sola vez al construir el stepper; sin hot reload.
# -----------------------------------------------------------------------------
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError
from .properties import PropertyResolver

logger = logging.getLogger("datadriven-bot.configuration")

STEPS_DIR = "Steps"


class RunMode(str, Enum):
    TRAINING = "training"
    DEV = "dev"
    NONE = "none"


class StepType(str, Enum):
    INT = "int"
    STRING = "string"
    ADAPTIVE_CARD = "adaptive_card"


def _lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


class _Definition(BaseModel):
    model_config = {"frozen": True, "extra": "ignore"}


class TelemetryDefinition(_Definition):
    custom_event_name: str = Field(min_length=1)
    fields: Tuple[str, ...] = ()

    @field_validator("custom_event_name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("fields")
    @classmethod
    def _known_addresses(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not PropertyResolver.validate(list(value), logger):
            raise ValueError("campos de telemetría inválidos")
        return value


class ModelDefinition(_Definition):
    name: str = Field(min_length=1)
    matching_entities: Tuple[str, ...] = ()
    type: Optional[str] = None
    description: Optional[str] = None


class StepDefinition(_Definition):
    name: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    retry_prompt: str = Field(min_length=1)
    type: StepType
    model: ModelDefinition
    run_mode: RunMode = RunMode.NONE
    telemetry: Tuple[TelemetryDefinition, ...] = ()
    card: Optional[Dict[str, Any]] = None

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get("retry_prompt"):
            data["retry_prompt"] = data.get("prompt")
        # el body de la card solo aplica a pasos card
        if _lower(data.get("type")) != StepType.ADAPTIVE_CARD.value:
            data.pop("card", None)
        return data

    @field_validator("type", "run_mode", mode="before")
    @classmethod
    def _case_insensitive(cls, value: Any) -> Any:
        return _lower(value)

    @model_validator(mode="after")
    def _card_required(self) -> "StepDefinition":
        if self.type is StepType.ADAPTIVE_CARD and self.card is None:
            raise ValueError("un paso 'adaptive_card' requiere el objeto 'card'")
        return self


class DialogDefinition(_Definition):
    name: str = Field(min_length=1)
    prompts: Tuple[str, ...] = Field(min_length=1)
    dispatch_intents: Tuple[str, ...] = ()
    run_mode: RunMode = RunMode.NONE
    telemetry: Tuple[TelemetryDefinition, ...] = ()

    @field_validator("run_mode", mode="before")
    @classmethod
    def _case_insensitive(cls, value: Any) -> Any:
        return _lower(value)


@dataclass(frozen=True)
class DialogCatalog:
    dialogs: Mapping[str, DialogDefinition] = field(default_factory=dict)
    steps: Mapping[str, StepDefinition] = field(default_factory=dict)

    def dialog(self, name: str) -> Optional[DialogDefinition]:
        return self.dialogs.get(name)

    def step(self, name: str) -> StepDefinition:
        return self.steps[name]

    def steps_for(self, dialog: DialogDefinition) -> List[StepDefinition]:
        return [self.steps[n] for n in dialog.prompts]

    def dialog_for_intent(self, intent: str) -> Optional[DialogDefinition]:
        for d in self.dialogs.values():
            if intent in d.dispatch_intents:
                return d
        return None

    def model_names(self) -> List[str]:
        return sorted({s.model.name for s in self.steps.values()})


# =========================
# Parsing
# =========================
def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"No se pudo leer {path}: {e}") from e


def parse_step(data: Mapping[str, Any], path: Path) -> StepDefinition:
    try:
        return StepDefinition.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"{path}: paso inválido: {e}") from e


def parse_dialog(data: Mapping[str, Any], path: Path) -> DialogDefinition:
    try:
        return DialogDefinition.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"{path}: diálogo inválido: {e}") from e


def _json_files(directory: Path) -> List[Path]:
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == ".json")


# =========================
# Carga
# =========================
def load_catalog(root) -> DialogCatalog:
    root = Path(root)
    if not root.is_dir():
        raise ConfigurationError(f"No existe el directorio de diálogos {root}")

    subdirs = sorted(p for p in root.iterdir() if p.is_dir())
    steps_dir = next((p for p in subdirs if p.name == STEPS_DIR), None)
    if steps_dir is None:
        raise ConfigurationError(f"No se encontró el directorio '{STEPS_DIR}' en {root}")

    steps: Dict[str, StepDefinition] = {}
    for path in _json_files(steps_dir):
        step = parse_step(_read_json(path), path)
        if step.name in steps:
            raise ConfigurationError(f"{path}: paso duplicado '{step.name}'")
        steps[step.name] = step

    dialogs: Dict[str, DialogDefinition] = {}
    for dialog_dir in (p for p in subdirs if p.name != STEPS_DIR):
        for path in _json_files(dialog_dir):
            dialog = parse_dialog(_read_json(path), path)
            if dialog.name in dialogs:
                raise ConfigurationError(f"{path}: diálogo duplicado '{dialog.name}'")
            missing = [n for n in dialog.prompts if n not in steps]
            if missing:
                raise ConfigurationError(
                    f"{path}: el diálogo '{dialog.name}' referencia pasos inexistentes: {', '.join(missing)}"
                )
            dialogs[dialog.name] = dialog

    logger.info("[config] %d diálogos, %d pasos cargados desde %s", len(dialogs), len(steps), root)
    return DialogCatalog(dialogs=dialogs, steps=steps)
