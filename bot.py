# bot.py — Bot de prompts definidos por configuración
import asyncio
import logging
from typing import List, Optional

from botbuilder.core import ActivityHandler, TurnContext
from botbuilder.schema import ChannelAccount

from ddialog import (
    ConversationProgress,
    DialogCompletion,
    DialogStepper,
    ProgressStore,
    Transport,
    TurnContextTransport,
    TurnOutcome,
    progress_key,
)
from ddialog.presenters import values_table

WELCOME_TEXT = "This bot will introduce you to data driven prompts. Try typing `hello` to get started."
PROGRESS_STATE_KEY = "ConversationProgress"
OUTCOME_STATE_KEY = "TurnOutcome"

logger = logging.getLogger("datadriven-bot.bot")


async def booking_outcome(completion: DialogCompletion, transport: Transport) -> None:
    """Resultado de negocio por defecto al terminar un diálogo."""
    await transport.send_text(
        "Thank you, this is where we'd book your table where certain slots are filled.\n\n"
        + values_table(completion.values)
    )
    await transport.send_text("Try saying `hello`.")


class DataDrivenBot(ActivityHandler):
    def __init__(self, stepper: DialogStepper, store: ProgressStore,
                 turn_timeout: Optional[float] = None, log: Optional[logging.Logger] = None):
        self.stepper = stepper
        self.store = store
        self.turn_timeout = turn_timeout
        self.log = log or logger

    async def on_turn(self, turn_context: TurnContext):
        key = progress_key(turn_context.activity)
        progress = await self.store.load(key) or ConversationProgress()
        turn_context.turn_state[PROGRESS_STATE_KEY] = progress

        # Si vence el plazo o algo falla, no se guarda nada del turno.
        if self.turn_timeout:
            await asyncio.wait_for(super().on_turn(turn_context), timeout=self.turn_timeout)
        else:
            await super().on_turn(turn_context)

        await self.store.save(key, progress)

    async def on_message_activity(self, turn_context: TurnContext):
        progress: ConversationProgress = turn_context.turn_state[PROGRESS_STATE_KEY]
        transport = TurnContextTransport(turn_context)

        if progress.is_idle and not progress.awaiting_confirmation:
            outcome = await self.stepper.start(progress, turn_context.activity, transport)
        else:
            outcome = await self.stepper.resume(progress, turn_context.activity, transport)

        turn_context.turn_state[OUTCOME_STATE_KEY] = outcome
        self._log_outcome(outcome)

    async def on_members_added_activity(self, members_added: List[ChannelAccount], turn_context: TurnContext):
        for member in members_added:
            if member.id != turn_context.activity.recipient.id:
                await turn_context.send_activity(f"Welcome to DataDrivenBot {member.name or member.id}. {WELCOME_TEXT}")

    def _log_outcome(self, outcome: TurnOutcome) -> None:
        self.log.info("[bot] turno: status=%s dialog=%s step=%d",
                      outcome.status.value, outcome.dialog_name, outcome.step_index)
