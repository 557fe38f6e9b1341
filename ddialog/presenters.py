# ddialog/presenters.py
# Textos markdown que el stepper manda al canal.
import json
from typing import Any, Dict, Mapping

CONFIRM_PROMPT = "Please confirm."
TRAINING_GOOD = "Good Results!\nTraining results logged."
TRAINING_BAD = "Bad Results!\nTraining results logged."


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def training_summary(intent: str, entities: Mapping[str, Any]) -> str:
    return f"Result Intent:\n`{intent}`\nUpdates:\n`{_dump(dict(entities))}`"


def card_echo(payload: Mapping[str, Any]) -> str:
    return f"Card Result: `{_dump(dict(payload))}`"


def values_table(values: Dict[str, Any]) -> str:
    if not values:
        return "_(no values)_"
    header = "| step | value |\n| --- | --- |"
    body = "\n".join(f"| {k} | {v if not isinstance(v, (dict, list)) else _dump(v)} |" for k, v in values.items())
    return f"{header}\n{body}"
