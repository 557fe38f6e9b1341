# ddialog/recognizer.py
# -----------------------------------------------------------------------------
# Colaborador NLU: texto -> {intents: {nombre: score}, entities: {nombre: [valores]}}
# - LuisRecognizer: endpoint de predicción v3 de LUIS vía httpx (producción).
# - RuleRecognizer (nlu_rules.py): reglas locales para dev/offline.
# - RecognizerSet: nombre de modelo (step.model.name) -> recognizer.
# -----------------------------------------------------------------------------
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

import httpx
from botbuilder.schema import Activity

from .errors import ConfigurationError, RecognizerError

logger = logging.getLogger("datadriven-bot.recognizer")

NONE_INTENT = "None"


@dataclass
class RecognizerOutput:
    text: str = ""
    intents: Dict[str, float] = field(default_factory=dict)
    entities: Dict[str, List[Any]] = field(default_factory=dict)

    def top_intent(self) -> str:
        # Empate: gana el primero declarado
        if not self.intents:
            return NONE_INTENT
        return max(self.intents.items(), key=lambda kv: kv[1])[0]


class Recognizer(Protocol):
    async def recognize(self, activity: Activity) -> RecognizerOutput:
        ...


class LuisRecognizer:
    """Cliente mínimo del endpoint de predicción v3 de LUIS."""

    def __init__(self, endpoint: str, app_id: str, api_key: str, slot: str = "production",
                 timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None,
                 log: Optional[logging.Logger] = None):
        if not (endpoint and app_id and api_key):
            raise ConfigurationError("LUIS requiere endpoint, app_id y api_key")
        self.url = f"{endpoint.rstrip('/')}/luis/prediction/v3.0/apps/{app_id}/slots/{slot}/predict"
        self.api_key = api_key
        self.timeout = timeout
        self._client = client
        self.log = log or logger

    async def _get(self, params: Dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(self.url, params=params, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(self.url, params=params)

    async def recognize(self, activity: Activity) -> RecognizerOutput:
        text = (activity.text or "").strip()
        if not text:
            return RecognizerOutput(text="")

        params = {
            "query": text,
            "subscription-key": self.api_key,
            "show-all-intents": "true",
        }
        try:
            r = await self._get(params)
        except httpx.HTTPError as e:
            raise RecognizerError(f"LUIS no respondió: {e!r}") from e

        if r.status_code >= 400:
            raise RecognizerError(f"LUIS devolvió {r.status_code}: {r.text[:200]}")

        try:
            data = r.json()
        except ValueError as e:
            raise RecognizerError("LUIS devolvió un payload que no es JSON") from e

        out = parse_luis_prediction(text, data)
        self.log.info("[luis] query=%r top=%s entities=%s", text, out.top_intent(), list(out.entities))
        return out


def parse_luis_prediction(text: str, data: Mapping[str, Any]) -> RecognizerOutput:
    prediction = data.get("prediction")
    if not isinstance(prediction, Mapping):
        raise RecognizerError("Respuesta de LUIS sin 'prediction'")

    intents: Dict[str, float] = {}
    for name, info in (prediction.get("intents") or {}).items():
        score = info.get("score") if isinstance(info, Mapping) else info
        try:
            intents[name] = float(score)
        except (TypeError, ValueError):
            intents[name] = 0.0

    entities: Dict[str, List[Any]] = {}
    for name, values in (prediction.get("entities") or {}).items():
        if name == "$instance":
            continue
        entities[name] = values if isinstance(values, list) else [values]

    return RecognizerOutput(text=text, intents=intents, entities=entities)


class RecognizerSet:
    """Nombre de modelo -> recognizer, con uno por defecto opcional."""

    def __init__(self, models: Optional[Mapping[str, Recognizer]] = None,
                 default: Optional[Recognizer] = None, dispatch: Optional[Recognizer] = None):
        self.models: Dict[str, Recognizer] = dict(models or {})
        self.default = default
        self.dispatch = dispatch

    def has_model(self, name: str) -> bool:
        return name in self.models or self.default is not None

    def for_model(self, name: str) -> Recognizer:
        recognizer = self.models.get(name) or self.default
        if recognizer is None:
            raise ConfigurationError(f"No hay recognizer para el modelo '{name}'")
        return recognizer
