# ddialog — diálogos y prompts definidos por configuración
from .configuration import (
    DialogCatalog,
    DialogDefinition,
    ModelDefinition,
    RunMode,
    StepDefinition,
    StepType,
    TelemetryDefinition,
    load_catalog,
)
from .errors import (
    ConfigurationError,
    DialogError,
    PersistenceError,
    RecognizerError,
    TelemetryError,
    UnknownDialogError,
)
from .progress import ConfirmationState, ConversationProgress, ProgressStore, StorageProgressStore, progress_key
from .properties import PropertyResolver
from .recognizer import LuisRecognizer, Recognizer, RecognizerOutput, RecognizerSet
from .nlu_rules import RuleRecognizer
from .step_recognizer import ResultType, StepResult, recognize_step
from .stepper import CompletionPolicy, DialogCompletion, DialogStepper, TurnOutcome, TurnStatus
from .telemetry import TelemetryEmitter
from .transport import Transport, TurnContextTransport

__all__ = [
    "CompletionPolicy",
    "ConfigurationError",
    "ConfirmationState",
    "ConversationProgress",
    "DialogCatalog",
    "DialogCompletion",
    "DialogDefinition",
    "DialogError",
    "DialogStepper",
    "LuisRecognizer",
    "ModelDefinition",
    "PersistenceError",
    "ProgressStore",
    "PropertyResolver",
    "Recognizer",
    "RecognizerError",
    "RecognizerOutput",
    "RecognizerSet",
    "ResultType",
    "RuleRecognizer",
    "RunMode",
    "StepDefinition",
    "StepResult",
    "StepType",
    "StorageProgressStore",
    "TelemetryDefinition",
    "TelemetryEmitter",
    "TelemetryError",
    "Transport",
    "TurnContextTransport",
    "TurnOutcome",
    "TurnStatus",
    "UnknownDialogError",
    "load_catalog",
    "progress_key",
    "recognize_step",
]
