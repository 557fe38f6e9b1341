# ddialog/properties.py
# -----------------------------------------------------------------------------
# Resolución de campos para telemetría.
# Sintaxis:  ClassName[.NestedField].PropertyName[ as alias]
#   "Activity.Text as text"
#   "Activity.From.Name"
#   "RecognizerResult.Intents.Greeting as greeting_score"
# El mapeo es cerrado (sin reflexión): solo lo que está en la allow-list.
# -----------------------------------------------------------------------------
import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from botbuilder.schema import Activity

from .recognizer import RecognizerOutput

logger = logging.getLogger("datadriven-bot.properties")

Accessor = Callable[[Activity, Optional[RecognizerOutput]], Any]


def _act(attr: str) -> Accessor:
    return lambda activity, _: getattr(activity, attr, None)


def _nested(container: str, attr: str) -> Accessor:
    def get(activity: Activity, _):
        return getattr(getattr(activity, container, None), attr, None)
    return get


def _rec(fn: Callable[[RecognizerOutput], Any]) -> Accessor:
    return lambda _, rec: fn(rec) if rec is not None else None


def _account(container: str) -> Dict[str, Accessor]:
    return {
        "Id": _nested(container, "id"),
        "Name": _nested(container, "name"),
        "Role": _nested(container, "role"),
    }


ALLOWED: Dict[str, Dict[str, Accessor]] = {
    "Activity": {
        "Id": _act("id"),
        "Type": _act("type"),
        "ChannelId": _act("channel_id"),
        "Text": _act("text"),
        "Locale": _act("locale"),
        "ServiceUrl": _act("service_url"),
        "Timestamp": _act("timestamp"),
        "LocalTimestamp": _act("local_timestamp"),
        "ReplyToId": _act("reply_to_id"),
        "Speak": _act("speak"),
        "TextFormat": _act("text_format"),
        "InputHint": _act("input_hint"),
        "Summary": _act("summary"),
        "DeliveryMode": _act("delivery_mode"),
        "Importance": _act("importance"),
        "Expiration": _act("expiration"),
        "Code": _act("code"),
        "AttachmentLayout": _act("attachment_layout"),
        "TopicName": _act("topic_name"),
        "HistoryDisclosed": _act("history_disclosed"),
    },
    "Activity.Conversation": {
        "Id": _nested("conversation", "id"),
        "Name": _nested("conversation", "name"),
        "ConversationType": _nested("conversation", "conversation_type"),
        "TenantId": _nested("conversation", "tenant_id"),
    },
    "Activity.From": _account("from_property"),
    "Activity.Recipient": _account("recipient"),
    "RecognizerResult": {
        "Intents": _rec(lambda r: r.intents),
        "Entities": _rec(lambda r: r.entities),
        "TopIntent": _rec(lambda r: r.top_intent()),
        "Text": _rec(lambda r: r.text),
    },
}

# Cualquier nombre de intent es válido aquí: devuelve su score.
DYNAMIC_INTENT_SCORE = "RecognizerResult.Intents"


def parse_address(address: str) -> Optional[Tuple[str, str, str]]:
    """Devuelve (clase, propiedad, clave) o None si la sintaxis no cuadra."""
    tokens = (address or "").split()
    if len(tokens) == 1:
        path, alias = tokens[0], None
    elif len(tokens) == 3 and tokens[1].lower() == "as":
        path, alias = tokens[0], tokens[2]
    else:
        return None

    if "." not in path:
        return None
    class_name, prop = path.rsplit(".", 1)
    if not class_name or not prop:
        return None
    return class_name, prop, alias or prop


def _stringify(value: Any) -> str:
    if isinstance(value, Enum):
        # enums de botbuilder.schema
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


class PropertyResolver:
    """Resuelve direcciones contra la actividad del turno y la salida del NLU.

    validate() es estricto (se usa al cargar la configuración); resolve() es
    tolerante: un campo inválido o sin valor simplemente no aparece.
    """

    def __init__(self, activity: Activity, recognizer_output: Optional[RecognizerOutput] = None,
                 log: Optional[logging.Logger] = None):
        self.activity = activity
        self.recognizer_output = recognizer_output
        self.log = log or logger

    @staticmethod
    def validate_address(address: str, log: Optional[logging.Logger] = None) -> bool:
        log = log or logger
        parsed = parse_address(address)
        if parsed is None:
            log.error("[props] '%s' no cumple `ClassName[.Nested].PropertyName[ as alias]`", address)
            return False

        class_name, prop, _ = parsed
        if class_name == DYNAMIC_INTENT_SCORE:
            return True
        if class_name not in ALLOWED:
            log.error("[props] '%s' referencia la clase desconocida '%s'", address, class_name)
            return False
        if prop not in ALLOWED[class_name]:
            log.error("[props] '%s' referencia la propiedad desconocida '%s' (sensible a mayúsculas)", address, prop)
            return False
        return True

    @classmethod
    def validate(cls, addresses: List[str], log: Optional[logging.Logger] = None) -> bool:
        return all(cls.validate_address(a, log) for a in addresses)

    def _lookup(self, class_name: str, prop: str) -> Any:
        if class_name == DYNAMIC_INTENT_SCORE:
            if self.recognizer_output is None:
                return None
            return self.recognizer_output.intents.get(prop)
        accessor = ALLOWED.get(class_name, {}).get(prop)
        if accessor is None:
            return None
        return accessor(self.activity, self.recognizer_output)

    def resolve(self, addresses: List[str]) -> Dict[str, str]:
        result: Dict[str, str] = {}
        for address in addresses:
            if not self.validate_address(address, self.log):
                continue
            class_name, prop, key = parse_address(address)
            try:
                value = self._lookup(class_name, prop)
                if value is None:
                    continue
                result[key] = _stringify(value)
            except Exception as e:
                self.log.warning("[props] no se pudo resolver '%s': %s", address, e)
        return result
