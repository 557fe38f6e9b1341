# ddialog/stepper.py
# -----------------------------------------------------------------------------
# Máquina de estados reanudable:
#   Idle -> RunningStep(dialog, i) -> [AwaitingConfirmation(dialog, i+1)] -> RunningStep(dialog, i+1)
#                                                                          -> fin de diálogo
# - Un turno = una actividad entrante; el progreso lo carga/guarda el llamador.
# - Al llegar a len(steps) se completa el diálogo y se aplica la política
#   (RESTART: vuelve al paso 0 del mismo diálogo | END: queda Idle).
# -----------------------------------------------------------------------------
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from botbuilder.schema import Activity, ActivityTypes

from .configuration import DialogCatalog, DialogDefinition, RunMode, StepDefinition, StepType
from .errors import ConfigurationError, DialogError, UnknownDialogError
from .presenters import CONFIRM_PROMPT, TRAINING_BAD, TRAINING_GOOD, card_echo, training_summary
from .progress import ConfirmationState, ConversationProgress
from .recognizer import RecognizerOutput, RecognizerSet
from .step_recognizer import StepResult, coerce_slot, recognize_confirmation, recognize_step
from .telemetry import TelemetryEmitter
from .transport import Transport

logger = logging.getLogger("datadriven-bot.stepper")

CANCEL_TEXT = "Canceling the current dialog."


class CompletionPolicy(str, Enum):
    RESTART = "restart"
    END = "end"


class TurnStatus(str, Enum):
    IGNORED = "ignored"
    IDLE = "idle"
    STARTED = "started"
    ADVANCED = "advanced"
    RETRY = "retry"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class DialogCompletion:
    dialog_name: str
    values: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TurnOutcome:
    status: TurnStatus
    dialog_name: Optional[str] = None
    step_index: int = 0
    result: Optional[StepResult] = None
    completion: Optional[DialogCompletion] = None


CompletionHandler = Callable[[DialogCompletion, Transport], Awaitable[None]]


class DialogStepper:
    def __init__(
        self,
        catalog: DialogCatalog,
        recognizers: RecognizerSet,
        emitter: Optional[TelemetryEmitter] = None,
        *,
        root_dialog: Optional[str] = None,
        completion_policy: CompletionPolicy = CompletionPolicy.RESTART,
        on_complete: Optional[CompletionHandler] = None,
        cancel_intents: Iterable[str] = ("Cancel",),
        default_locale: str = "en-us",
        log: Optional[logging.Logger] = None,
    ):
        self.catalog = catalog
        self.recognizers = recognizers
        self.log = log or logger
        self.emitter = emitter or TelemetryEmitter(log=self.log)
        self.completion_policy = CompletionPolicy(completion_policy)
        self.on_complete = on_complete
        self.cancel_intents = frozenset(cancel_intents)
        self.default_locale = default_locale

        if root_dialog is not None and catalog.dialog(root_dialog) is None:
            raise ConfigurationError(f"El diálogo raíz '{root_dialog}' no está configurado")
        self.root_dialog = root_dialog

        for step in catalog.steps.values():
            if step.type is not StepType.ADAPTIVE_CARD and not recognizers.has_model(step.model.name):
                raise ConfigurationError(
                    f"El paso '{step.name}' usa el modelo '{step.model.name}' y no hay recognizer para él"
                )

    # ==========================
    # Helpers
    # ==========================
    def _dialog(self, name: str) -> DialogDefinition:
        dialog = self.catalog.dialog(name)
        if dialog is None:
            raise UnknownDialogError(name)
        return dialog

    async def _prompt(self, step: StepDefinition, transport: Transport, retry: bool = False) -> None:
        if step.type is StepType.ADAPTIVE_CARD:
            await transport.send_structured(step.card)
        else:
            await transport.send_text(step.retry_prompt if retry else step.prompt)

    def _is_training(self, dialog: DialogDefinition, step: StepDefinition) -> bool:
        return step.run_mode is RunMode.TRAINING or dialog.run_mode is RunMode.TRAINING

    def _fill_slots(self, progress: ConversationProgress, steps: List[StepDefinition],
                    card_step: StepDefinition, payload: Dict[str, Any], locale: Optional[str]) -> None:
        # solo huecos vacíos; un valor ya reconocido no se pisa
        culture = (locale or self.default_locale).lower()
        for other in steps:
            if other.name == card_step.name or other.name in progress.values or other.name not in payload:
                continue
            value = coerce_slot(other, payload[other.name], culture)
            if value is None:
                self.log.info("[stepper] slot '%s' de la card no encaja con el tipo %s",
                              other.name, other.type.value)
                continue
            progress.values[other.name] = value

    async def _complete(self, progress: ConversationProgress, dialog: DialogDefinition,
                        activity: Activity, output: Optional[RecognizerOutput],
                        transport: Transport) -> DialogCompletion:
        completion = DialogCompletion(dialog_name=dialog.name, values=dict(progress.values))
        self.emitter.emit(dialog.telemetry, activity, output)
        progress.completed_runs += 1
        self.log.info("[stepper] diálogo '%s' completado (%d)", dialog.name, progress.completed_runs)

        if self.on_complete is not None:
            await self.on_complete(completion, transport)

        if self.completion_policy is CompletionPolicy.RESTART:
            progress.reset(dialog.name)
        else:
            progress.reset(None)
        return completion

    # ==========================
    # Operaciones
    # ==========================
    async def begin(self, progress: ConversationProgress, dialog_name: str,
                    transport: Transport) -> TurnOutcome:
        dialog = self._dialog(dialog_name)
        progress.reset(dialog.name)
        self.log.info("[stepper] begin '%s'", dialog.name)
        await self._prompt(self.catalog.steps_for(dialog)[0], transport)
        return TurnOutcome(TurnStatus.STARTED, dialog.name, 0)

    async def start(self, progress: ConversationProgress, activity: Activity,
                    transport: Transport) -> TurnOutcome:
        """Entrada desde Idle: dispatch por intent y si no, diálogo raíz."""
        name = self.root_dialog
        dispatch = self.recognizers.dispatch
        if dispatch is not None and (activity.text or "").strip():
            intent = (await dispatch.recognize(activity)).top_intent()
            match = self.catalog.dialog_for_intent(intent)
            if match is not None:
                self.log.info("[stepper] dispatch intent=%s -> '%s'", intent, match.name)
                name = match.name

        if name is None:
            return TurnOutcome(TurnStatus.IDLE)
        return await self.begin(progress, name, transport)

    async def resume(self, progress: ConversationProgress, activity: Activity,
                     transport: Transport) -> TurnOutcome:
        # Solo mensajes; cualquier otro evento no toca el progreso.
        if activity.type != ActivityTypes.message:
            self.log.debug("[stepper] actividad '%s' ignorada", activity.type)
            return TurnOutcome(TurnStatus.IGNORED, progress.dialog_name, progress.step_index)

        if progress.awaiting_confirmation:
            confirmed = recognize_confirmation(activity.text, activity.locale, self.default_locale)
            if confirmed is None:
                await transport.send_text(CONFIRM_PROMPT)
                return TurnOutcome(TurnStatus.RETRY, progress.dialog_name, progress.step_index)
            return await self.resume_confirmation(progress, confirmed, transport)

        if progress.is_idle:
            return TurnOutcome(TurnStatus.IDLE)

        dialog = self.catalog.dialog(progress.dialog_name)
        if dialog is None or not 0 <= progress.step_index < len(dialog.prompts):
            self.log.warning("[stepper] progreso inconsistente (%s#%d); se descarta",
                             progress.dialog_name, progress.step_index)
            progress.reset(None)
            return TurnOutcome(TurnStatus.IDLE)

        index = progress.step_index
        steps = self.catalog.steps_for(dialog)
        step = steps[index]
        text = (activity.text or "").strip()
        payload = activity.value if isinstance(activity.value, dict) else None

        output: Optional[RecognizerOutput] = None
        if step.type is not StepType.ADAPTIVE_CARD and text:
            output = await self.recognizers.for_model(step.model.name).recognize(activity)

        result = recognize_step(text, activity.locale, step, output, payload,
                                default_locale=self.default_locale, log=self.log)

        if result.intent in self.cancel_intents:
            self.log.info("[stepper] cancelado en '%s'#%d", dialog.name, index)
            progress.reset(None)
            await transport.send_text(CANCEL_TEXT)
            return TurnOutcome(TurnStatus.CANCELLED, dialog.name, index, result)

        if not result.succeeded:
            progress.values.pop(step.name, None)
            await self._prompt(step, transport, retry=True)
            return TurnOutcome(TurnStatus.RETRY, dialog.name, index, result)

        progress.values[step.name] = result.value
        self.emitter.emit(step.telemetry, activity, output)

        if step.type is StepType.ADAPTIVE_CARD:
            self._fill_slots(progress, steps, step, result.value, activity.locale)
            await transport.send_text(card_echo(result.value))
            next_index = len(dialog.prompts)
        else:
            next_index = index + 1
        progress.step_index = next_index

        training = self._is_training(dialog, step)
        completion = None
        if next_index >= len(dialog.prompts):
            completion = await self._complete(progress, dialog, activity, output, transport)

        if training:
            progress.confirmation = ConfirmationState.AWAITING
            progress.pending_result = result
            await transport.send_text(training_summary(result.intent, result.entities))
            await transport.send_text(CONFIRM_PROMPT)
            return TurnOutcome(TurnStatus.AWAITING_CONFIRMATION, dialog.name,
                               progress.step_index, result, completion)

        if completion is not None:
            if not progress.is_idle:
                await self._prompt(steps[0], transport)
            return TurnOutcome(TurnStatus.COMPLETED, dialog.name, progress.step_index, result, completion)

        await self._prompt(steps[next_index], transport)
        return TurnOutcome(TurnStatus.ADVANCED, dialog.name, next_index, result)

    async def resume_confirmation(self, progress: ConversationProgress, confirmed: bool,
                                  transport: Transport) -> TurnOutcome:
        if not progress.awaiting_confirmation:
            raise DialogError("resume_confirmation fuera de AwaitingConfirmation")

        result = progress.pending_result or StepResult()
        self.log.info("[stepper] entrenamiento confirmado=%s intent=%s value=%r",
                      confirmed, result.intent, result.value)
        await transport.send_text(TRAINING_GOOD if confirmed else TRAINING_BAD)

        progress.confirmation = ConfirmationState.NONE
        progress.pending_result = None

        if not progress.is_idle:
            dialog = self._dialog(progress.dialog_name)
            await self._prompt(self.catalog.steps_for(dialog)[progress.step_index], transport)
        return TurnOutcome(TurnStatus.CONFIRMED, progress.dialog_name, progress.step_index, result)
