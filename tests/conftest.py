from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pytest
from botbuilder.core import MemoryStorage
from botbuilder.schema import Activity, ActivityTypes, ChannelAccount, ConversationAccount

from ddialog import (
    DialogStepper,
    RecognizerOutput,
    RecognizerSet,
    StorageProgressStore,
    TelemetryEmitter,
    load_catalog,
)

REPO_DIALOGS = Path(__file__).resolve().parents[1] / "Dialogs"


def step_json(name: str, type_: str = "string", **extra: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "name": name,
        "prompt": f"{name} prompt",
        "retry_prompt": f"{name} retry",
        "type": type_,
        "model": {"name": "main", "matching_entities": []},
    }
    if type_ == "adaptive_card":
        data["card"] = {"type": "AdaptiveCard", "version": "1.0", "body": []}
    data.update(extra)
    return data


def write_config(root: Path, steps: List[Mapping[str, Any]], dialogs: List[Mapping[str, Any]]) -> Path:
    (root / "Steps").mkdir(parents=True, exist_ok=True)
    for step in steps:
        (root / "Steps" / f"{step['name']}.json").write_text(json.dumps(step), encoding="utf-8")
    for dialog in dialogs:
        d = root / dialog["name"]
        d.mkdir(parents=True, exist_ok=True)
        (d / f"{dialog['name']}.json").write_text(json.dumps(dialog), encoding="utf-8")
    return root


class FakeRecognizer:
    """Salidas programadas por texto; registra cada llamada."""

    def __init__(self, outputs: Optional[Mapping[str, RecognizerOutput]] = None, error: Optional[Exception] = None):
        self.outputs = dict(outputs or {})
        self.error = error
        self.calls: List[str] = []

    async def recognize(self, activity: Activity) -> RecognizerOutput:
        self.calls.append(activity.text)
        if self.error is not None:
            raise self.error
        return self.outputs.get(activity.text, RecognizerOutput(text=activity.text or ""))


class RecordingTransport:
    def __init__(self) -> None:
        self.sent: List[tuple] = []

    async def send_text(self, text: str) -> None:
        self.sent.append(("text", text))

    async def send_structured(self, payload: Mapping[str, Any]) -> None:
        self.sent.append(("structured", dict(payload)))

    @property
    def texts(self) -> List[str]:
        return [v for kind, v in self.sent if kind == "text"]


class RecordingTelemetryClient:
    def __init__(self, fail: bool = False) -> None:
        self.events: List[tuple] = []
        self.fail = fail

    def track_event(self, name: str, properties: Optional[Dict[str, Any]] = None, measurements=None) -> None:
        if self.fail:
            raise RuntimeError("app insights caído")
        self.events.append((name, dict(properties or {})))


def make_activity(text: Optional[str] = None, value: Any = None, type_: str = ActivityTypes.message,
                  locale: Optional[str] = "en-us", **extra: Any) -> Activity:
    return Activity(
        type=type_,
        text=text,
        value=value,
        locale=locale,
        channel_id="test",
        conversation=ConversationAccount(id="conv-1"),
        from_property=ChannelAccount(id="user-1", name="Dave"),
        recipient=ChannelAccount(id="bot", name="Bot"),
        **extra,
    )


@pytest.fixture
def greeting_root(tmp_path: Path) -> Path:
    steps = [
        step_json("name", "string", prompt="What is your name?", retry_prompt="Please tell me your name.",
                  model={"name": "main", "matching_entities": ["Name"]},
                  telemetry=[{"custom_event_name": "NameStep", "fields": ["Activity.Text as text"]}]),
        step_json("age", "int", prompt="What is your age?", retry_prompt="Please enter your age as a number."),
        step_json("confirm", "adaptive_card"),
    ]
    dialogs = [{
        "name": "greeting",
        "prompts": ["name", "age", "confirm"],
        "dispatch_intents": ["Greeting"],
        "telemetry": [{"custom_event_name": "GreetingDone", "fields": ["Activity.ChannelId"]}],
    }]
    return write_config(tmp_path / "Dialogs", steps, dialogs)


@pytest.fixture
def catalog(greeting_root: Path):
    return load_catalog(greeting_root)


@pytest.fixture
def recognizer() -> FakeRecognizer:
    return FakeRecognizer()


@pytest.fixture
def telemetry_client() -> RecordingTelemetryClient:
    return RecordingTelemetryClient()


@pytest.fixture
def completions() -> List[Any]:
    return []


@pytest.fixture
def stepper(catalog, recognizer, telemetry_client, completions) -> DialogStepper:
    async def on_complete(completion, transport) -> None:
        completions.append(completion)
        await transport.send_text("booked")

    return DialogStepper(
        catalog,
        RecognizerSet(default=recognizer),
        TelemetryEmitter(telemetry_client),
        root_dialog="greeting",
        on_complete=on_complete,
    )


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def store() -> StorageProgressStore:
    return StorageProgressStore(MemoryStorage())
