# ddialog/telemetry.py
# Un evento por TelemetryDefinition del paso/diálogo en ejecución.
# Fire-and-forget: nunca hace fallar el turno.
import logging
from typing import Iterable, Optional

from botbuilder.core import BotTelemetryClient, NullTelemetryClient
from botbuilder.schema import Activity

from .configuration import TelemetryDefinition
from .errors import TelemetryError
from .properties import PropertyResolver
from .recognizer import RecognizerOutput

logger = logging.getLogger("datadriven-bot.telemetry")


class TelemetryEmitter:
    def __init__(self, telemetry_client: Optional[BotTelemetryClient] = None,
                 log: Optional[logging.Logger] = None):
        self.client = telemetry_client or NullTelemetryClient()
        self.log = log or logger

    def _emit_one(self, definition: TelemetryDefinition, resolver: PropertyResolver) -> None:
        try:
            properties = resolver.resolve(list(definition.fields))
            self.client.track_event(definition.custom_event_name, properties)
        except Exception as e:
            raise TelemetryError(f"{definition.custom_event_name}: {e!r}") from e

    def emit(self, definitions: Iterable[TelemetryDefinition], activity: Activity,
             recognizer_output: Optional[RecognizerOutput] = None) -> int:
        """Devuelve cuántos eventos salieron."""
        sent = 0
        try:
            resolver = PropertyResolver(activity, recognizer_output, self.log)
            for definition in definitions:
                try:
                    self._emit_one(definition, resolver)
                    sent += 1
                except TelemetryError as e:
                    self.log.warning("[telemetry] evento descartado: %s", e)
        except Exception as e:
            self.log.warning("[telemetry] emisión abortada: %r", e)
        return sent
