# settings.py — configuración por entorno (acepta MAYÚSCULAS y camelCase de Azure)
import os
from dataclasses import dataclass
from typing import Dict, Optional

from ddialog import CompletionPolicy, ConfigurationError

# Alias camelCase (compat App Service / Render)
_ALIASES = {
    "MICROSOFT_APP_ID": "MicrosoftAppId",
    "MICROSOFT_APP_PASSWORD": "MicrosoftAppPassword",
    "MICROSOFT_APP_TENANT_ID": "MicrosoftAppTenantId",
    "MICROSOFT_APP_TYPE": "MicrosoftAppType",
    "TO_CHANNEL_SCOPE": "ToChannelFromBotOAuthScope",
}

_SECRETS = {"MICROSOFT_APP_PASSWORD", "LUIS_API_KEY", "APPLICATIONINSIGHTS_CONNECTION_STRING"}


def _get_env(name: str, fallback: str = "", env: Optional[Dict[str, str]] = None) -> str:
    env = os.environ if env is None else env
    return env.get(name, env.get(_ALIASES.get(name, ""), fallback))


@dataclass(frozen=True)
class Settings:
    app_id: str = ""
    app_password: str = ""
    app_tenant_id: str = ""
    app_type: str = "MultiTenant"
    to_channel_scope: str = "https://api.botframework.com/.default"
    appinsights_connection_string: str = ""
    dialogs_root: str = "Dialogs"
    root_dialog: str = "greeting"
    default_locale: str = "en-us"
    completion_policy: CompletionPolicy = CompletionPolicy.RESTART
    turn_timeout: float = 30.0
    luis_endpoint: str = ""
    luis_app_id: str = ""
    luis_api_key: str = ""
    luis_slot: str = "production"
    luis_timeout: float = 10.0
    log_level: str = "INFO"
    port: int = 3978

    @property
    def luis_enabled(self) -> bool:
        return bool(self.luis_endpoint and self.luis_app_id and self.luis_api_key)

    def bot_framework_config(self) -> Dict[str, str]:
        return {
            "MicrosoftAppId": self.app_id,
            "MicrosoftAppPassword": self.app_password,
            "MicrosoftAppTenantId": self.app_tenant_id,
            "MicrosoftAppType": self.app_type,  # SingleTenant | MultiTenant | UserAssignedMSI
            "ToChannelFromBotOAuthScope": self.to_channel_scope,
        }


def _positive_float(name: str, raw: str) -> float:
    try:
        value = float(raw)
        if value <= 0:
            raise ValueError
    except ValueError as exc:
        raise ConfigurationError(f"{name} debe ser un número > 0 (recibido {raw!r})") from exc
    return value


def load_settings(env: Optional[Dict[str, str]] = None) -> Settings:
    def get(name: str, fallback: str = "") -> str:
        return _get_env(name, fallback, env).strip()

    policy_raw = get("COMPLETION_POLICY", "restart").lower()
    try:
        policy = CompletionPolicy(policy_raw)
    except ValueError as exc:
        raise ConfigurationError(f"COMPLETION_POLICY debe ser 'restart' o 'end' (recibido {policy_raw!r})") from exc

    port_raw = get("PORT", "3978")
    try:
        port = int(port_raw)
    except ValueError as exc:
        raise ConfigurationError(f"PORT debe ser entero (recibido {port_raw!r})") from exc

    return Settings(
        app_id=get("MICROSOFT_APP_ID"),
        app_password=get("MICROSOFT_APP_PASSWORD"),
        app_tenant_id=get("MICROSOFT_APP_TENANT_ID"),
        app_type=get("MICROSOFT_APP_TYPE", "MultiTenant") or "MultiTenant",
        to_channel_scope=get("TO_CHANNEL_SCOPE", "https://api.botframework.com/.default"),
        appinsights_connection_string=get("APPLICATIONINSIGHTS_CONNECTION_STRING"),
        dialogs_root=get("DIALOGS_ROOT", "Dialogs") or "Dialogs",
        root_dialog=get("ROOT_DIALOG", "greeting") or "greeting",
        default_locale=(get("DEFAULT_LOCALE", "en-us") or "en-us").lower(),
        completion_policy=policy,
        turn_timeout=_positive_float("TURN_TIMEOUT_SECONDS", get("TURN_TIMEOUT_SECONDS", "30")),
        luis_endpoint=get("LUIS_ENDPOINT"),
        luis_app_id=get("LUIS_APP_ID"),
        luis_api_key=get("LUIS_API_KEY"),
        luis_slot=get("LUIS_SLOT", "production") or "production",
        luis_timeout=_positive_float("LUIS_TIMEOUT_SECONDS", get("LUIS_TIMEOUT_SECONDS", "10")),
        log_level=get("LOG_LEVEL", "INFO").upper() or "INFO",
        port=port,
    )


def public_env_snapshot(env: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    keys = [
        "MICROSOFT_APP_ID", "MICROSOFT_APP_PASSWORD", "MICROSOFT_APP_TENANT_ID", "MICROSOFT_APP_TYPE",
        "APPLICATIONINSIGHTS_CONNECTION_STRING", "DIALOGS_ROOT", "ROOT_DIALOG", "DEFAULT_LOCALE",
        "COMPLETION_POLICY", "LUIS_ENDPOINT", "LUIS_APP_ID", "LUIS_API_KEY", "PORT",
    ]
    out = {}
    for k in keys:
        v = _get_env(k, env=env)
        if k in _SECRETS:
            out[k] = "SET(***masked***)" if v else "MISSING"
        else:
            out[k] = v or "(unset)"
    return out
