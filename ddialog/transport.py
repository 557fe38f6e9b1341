# ddialog/transport.py
# Canal de salida. El stepper solo conoce este contrato.
from typing import Any, Mapping, Protocol

from botbuilder.core import CardFactory, MessageFactory, TurnContext


class Transport(Protocol):
    async def send_text(self, text: str) -> None:
        ...

    async def send_structured(self, payload: Mapping[str, Any]) -> None:
        ...


class TurnContextTransport:
    """Envía por el TurnContext del turno actual."""

    def __init__(self, turn_context: TurnContext):
        self.turn_context = turn_context

    async def send_text(self, text: str) -> None:
        await self.turn_context.send_activity(MessageFactory.text(text))

    async def send_structured(self, payload: Mapping[str, Any]) -> None:
        attachment = CardFactory.adaptive_card(dict(payload))
        await self.turn_context.send_activity(MessageFactory.attachment(attachment))
