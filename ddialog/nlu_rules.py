# ddialog/nlu_rules.py
# Recognizer por reglas: mismo contrato que LUIS, sin red.
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from botbuilder.schema import Activity

from .nlu_glossary import ENTITY_PATTERNS, GLOSSARY
from .recognizer import RecognizerOutput


def _rx(words: Sequence[str]) -> re.Pattern:
    return re.compile(r"(?<!\w)(" + "|".join(map(re.escape, words)) + r")(?!\w)", re.I)


class RuleRecognizer:
    def __init__(self, glossary: Optional[Mapping[str, Sequence[str]]] = None,
                 entity_patterns: Optional[Mapping[str, Sequence[str]]] = None):
        glossary = GLOSSARY if glossary is None else glossary
        entity_patterns = ENTITY_PATTERNS if entity_patterns is None else entity_patterns
        self._intents = {name: _rx(words) for name, words in glossary.items() if words}
        self._entities = {
            name: [re.compile(p, re.I) for p in patterns]
            for name, patterns in entity_patterns.items()
        }

    def detect(self, text: str) -> RecognizerOutput:
        t = (text or "").strip()
        if not t:
            return RecognizerOutput(text="")

        hits = {name: len(rx.findall(t)) for name, rx in self._intents.items()}
        top = max(hits.values(), default=0)
        # score relativo al intent con más coincidencias
        intents = {name: round(n / top, 3) for name, n in hits.items() if n > 0} if top else {}

        entities: Dict[str, List[Any]] = {}
        for name, patterns in self._entities.items():
            for rx in patterns:
                m = rx.search(t)
                if m:
                    entities.setdefault(name, []).append(m.group("value"))
                    break

        return RecognizerOutput(text=t, intents=intents, entities=entities)

    async def recognize(self, activity: Activity) -> RecognizerOutput:
        return self.detect(activity.text or "")
