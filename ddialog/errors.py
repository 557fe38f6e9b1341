# ddialog/errors.py
# Taxonomía de errores del motor de diálogos.
# El fallo de reconocimiento NO es una excepción: es un StepResult con succeeded=False.


class DialogError(Exception):
    """Base de todos los errores del motor."""


class ConfigurationError(DialogError):
    """Definiciones ausentes o mal formadas. Fatal al arrancar."""


class UnknownDialogError(DialogError):
    def __init__(self, name: str):
        super().__init__(f"Dialog '{name}' no existe en la configuración cargada")
        self.name = name


class RecognizerError(DialogError):
    """Falla del servicio NLU (HTTP, payload inválido)."""


class PersistenceError(DialogError):
    """Falla de lectura/escritura del progreso. Siempre se propaga."""


class TelemetryError(DialogError):
    """Solo se usa internamente; el emisor la registra y la descarta."""
