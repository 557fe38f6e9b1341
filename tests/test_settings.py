from __future__ import annotations

import pytest

from ddialog import CompletionPolicy, ConfigurationError
from settings import load_settings, public_env_snapshot


def test_defaults_with_empty_env() -> None:
    settings = load_settings({})

    assert settings.root_dialog == "greeting"
    assert settings.dialogs_root == "Dialogs"
    assert settings.completion_policy is CompletionPolicy.RESTART
    assert settings.port == 3978
    assert settings.luis_enabled is False


def test_camel_case_aliases_are_accepted() -> None:
    settings = load_settings({"MicrosoftAppId": "abc", "MicrosoftAppType": "SingleTenant"})

    assert settings.app_id == "abc"
    assert settings.bot_framework_config()["MicrosoftAppType"] == "SingleTenant"


def test_luis_needs_all_three_values() -> None:
    env = {"LUIS_ENDPOINT": "https://westus.api.cognitive.microsoft.com", "LUIS_APP_ID": "app"}

    assert load_settings(env).luis_enabled is False
    assert load_settings({**env, "LUIS_API_KEY": "k"}).luis_enabled is True


def test_completion_policy_and_locale_are_normalised() -> None:
    settings = load_settings({"COMPLETION_POLICY": "END", "DEFAULT_LOCALE": "es-ES"})

    assert settings.completion_policy is CompletionPolicy.END
    assert settings.default_locale == "es-es"


@pytest.mark.parametrize("env", [
    {"COMPLETION_POLICY": "escalate"},
    {"PORT": "http"},
    {"TURN_TIMEOUT_SECONDS": "0"},
    {"LUIS_TIMEOUT_SECONDS": "soon"},
])
def test_invalid_values_raise_configuration_error(env) -> None:
    with pytest.raises(ConfigurationError):
        load_settings(env)


def test_snapshot_masks_secrets() -> None:
    snap = public_env_snapshot({"MICROSOFT_APP_PASSWORD": "s3cr3t", "LUIS_APP_ID": "app"})

    assert snap["MICROSOFT_APP_PASSWORD"] == "SET(***masked***)"
    assert snap["LUIS_API_KEY"] == "MISSING"
    assert snap["LUIS_APP_ID"] == "app"
    assert snap["ROOT_DIALOG"] == "(unset)"
    assert "s3cr3t" not in snap.values()
