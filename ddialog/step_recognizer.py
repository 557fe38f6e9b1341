# ddialog/step_recognizer.py
# -----------------------------------------------------------------------------
# Normaliza la salida del NLU para un paso concreto:
#   - intent ganador (score más alto, "None" si no hay)
#   - sustitución por entidad (matching_entities) antes de tipar
#   - coerción al tipo del paso: string | int (64 bits) | adaptive_card
# -----------------------------------------------------------------------------
import logging
import re
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field
from recognizers_choice import recognize_boolean
from recognizers_number import recognize_number

from .configuration import StepDefinition, StepType
from .recognizer import NONE_INTENT, RecognizerOutput

logger = logging.getLogger("datadriven-bot.step_recognizer")

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class ResultType(str, Enum):
    STRING = "string"
    INT = "int"
    CARD = "card"
    NONE = "none"


class StepResult(BaseModel):
    intent: str = NONE_INTENT
    entities: Dict[str, Any] = Field(default_factory=dict)
    value: Any = None
    value_type: ResultType = ResultType.NONE
    succeeded: bool = False


def _culture(locale: Optional[str], default_locale: str) -> str:
    return (locale or default_locale or "en-us").lower()


def match_entity(entities: Mapping[str, List[Any]], matching_entities) -> Optional[str]:
    """Primer entity configurado presente en la bolsa de entidades."""
    for name in matching_entities:
        values = entities.get(name)
        if not values:
            continue
        value = values[0]
        # list entities de LUIS: [["valor normalizado"]]
        while isinstance(value, list) and value:
            value = value[0]
        if value is None or isinstance(value, (list, dict)):
            continue
        text = str(value).strip()
        if text:
            return text
    return None


_DIGITS = re.compile(r"[-+]?\d+")


def recognize_int(text: str, culture: str) -> Optional[int]:
    results = recognize_number(text, culture)
    if not results:
        return None
    raw = (results[0].resolution or {}).get("value")
    if raw is None:
        return None
    raw = str(raw)
    if "e" in raw.lower():
        # la resolución en notación científica pierde dígitos ("1.E+2");
        # solo vale si el texto reconocido es un entero literal
        literal = (results[0].text or "").replace(",", "").strip()
        if not _DIGITS.fullmatch(literal):
            return None
        raw = literal
    try:
        number = Decimal(raw)
    except InvalidOperation:
        return None
    if number != number.to_integral_value():
        return None
    value = int(number)
    if value < INT64_MIN or value > INT64_MAX:
        return None
    return value


def recognize_confirmation(text: str, locale: Optional[str], default_locale: str = "en-us") -> Optional[bool]:
    results = recognize_boolean((text or "").strip(), _culture(locale, default_locale))
    if results and "value" in (results[0].resolution or {}):
        return bool(results[0].resolution["value"])
    return None


def coerce_slot(step: StepDefinition, raw: Any, culture: str) -> Optional[Any]:
    """Tipa un valor de card para otro paso del diálogo; None si no encaja."""
    if step.type is StepType.ADAPTIVE_CARD:
        return raw if isinstance(raw, dict) else None
    if raw is None or isinstance(raw, (bool, list, dict)):
        return None
    if step.type is StepType.INT:
        if isinstance(raw, int):
            return raw if INT64_MIN <= raw <= INT64_MAX else None
        return recognize_int(str(raw), culture)
    text = str(raw).strip()
    return text or None


def recognize_step(
    text: Optional[str],
    locale: Optional[str],
    step: StepDefinition,
    recognizer_output: Optional[RecognizerOutput] = None,
    payload: Any = None,
    default_locale: str = "en-us",
    log: Optional[logging.Logger] = None,
) -> StepResult:
    log = log or logger
    output = recognizer_output or RecognizerOutput(text=text or "")
    result = StepResult(intent=output.top_intent(), entities=dict(output.entities))
    text = (text or "").strip()

    # Entrada estructurada (submit de una card)
    if step.type is StepType.ADAPTIVE_CARD:
        if isinstance(payload, dict) and not text:
            log.info("[step] card recibida en '%s': %s", step.name, payload)
            result.value = payload
            result.value_type = ResultType.CARD
            result.succeeded = True
        return result

    if isinstance(payload, dict) and not text:
        log.warning("[step] card recibida fuera de un paso card ('%s'); se repregunta", step.name)
        return result

    matched = match_entity(output.entities, step.model.matching_entities)
    if matched:
        # "my name is dave" -> "dave"
        text = matched

    if not text:
        return result

    if step.type is StepType.STRING:
        result.value = text
        result.value_type = ResultType.STRING
        result.succeeded = True
    elif step.type is StepType.INT:
        number = recognize_int(text, _culture(locale, default_locale))
        if number is not None:
            result.value = number
            result.value_type = ResultType.INT
            result.succeeded = True

    if result.succeeded:
        log.info("[step] reconocido '%s': type=%s value=%r", step.name, result.value_type.value, result.value)
    else:
        log.info("[step] no reconocido '%s': type=%s text=%r", step.name, step.type.value, text)
    return result
