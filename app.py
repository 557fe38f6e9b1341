# app.py — DataDrivenBot con CloudAdapter (aiohttp) + App Insights
import logging
import sys
from typing import Optional

from aiohttp import web

from botbuilder.core import BotTelemetryClient, MemoryStorage, NullTelemetryClient, TelemetryLoggerMiddleware, TurnContext
from botbuilder.schema import Activity
from botbuilder.integration.aiohttp.cloud_adapter import CloudAdapter
from botbuilder.integration.aiohttp.configuration_bot_framework_authentication import (
    ConfigurationBotFrameworkAuthentication,
)

# Telemetría (Application Insights)
from botbuilder.applicationinsights import ApplicationInsightsTelemetryClient, bot_telemetry_processor

from bot import DataDrivenBot, booking_outcome
from ddialog import (
    ConfigurationError,
    DialogCatalog,
    DialogStepper,
    LuisRecognizer,
    RecognizerSet,
    RuleRecognizer,
    StorageProgressStore,
    TelemetryEmitter,
    load_catalog,
)
from settings import Settings, load_settings, public_env_snapshot

log = logging.getLogger("datadriven-bot")


# ----------------------
# Logging básico
# ----------------------
def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


# ==========================
# Colaboradores
# ==========================
def build_recognizers(settings: Settings, catalog: DialogCatalog) -> RecognizerSet:
    if not settings.luis_enabled:
        log.warning("[NLU] LUIS no configurado; usando reglas locales")
        rules = RuleRecognizer()
        return RecognizerSet(default=rules, dispatch=rules)

    luis = LuisRecognizer(
        endpoint=settings.luis_endpoint,
        app_id=settings.luis_app_id,
        api_key=settings.luis_api_key,
        slot=settings.luis_slot,
        timeout=settings.luis_timeout,
    )
    log.info("[NLU] LUIS habilitado para modelos: %s", ", ".join(catalog.model_names()))
    # Una sola app LUIS sirve a todos los modelos declarados por los pasos
    return RecognizerSet(default=luis, dispatch=luis)


def build_telemetry_client(settings: Settings) -> BotTelemetryClient:
    if not settings.appinsights_connection_string:
        return NullTelemetryClient()
    try:
        client = ApplicationInsightsTelemetryClient(
            connection_string=settings.appinsights_connection_string,
            telemetry_processor=bot_telemetry_processor,
        )
    except Exception as e:
        log.warning("[AI] No se pudo inicializar App Insights: %s", e)
        return NullTelemetryClient()
    log.info("[AI] Application Insights habilitado")
    return client


# ==========================
# Manejo global de errores
# ==========================
async def on_error(context: TurnContext, error: Exception):
    log.error("[BOT ERROR] %s", error, exc_info=True)
    try:
        await context.send_activity("Sorry, something went wrong processing your message.")
    except Exception as e:
        log.error("[BOT ERROR][send_activity] %s", e, exc_info=True)


# ==========
# App AIOHTTP
# ==========
def create_app(settings: Settings, catalog: Optional[DialogCatalog] = None) -> web.Application:
    catalog = catalog or load_catalog(settings.dialogs_root)

    auth = ConfigurationBotFrameworkAuthentication(configuration=settings.bot_framework_config())
    adapter = CloudAdapter(auth)
    adapter.on_turn_error = on_error

    telemetry_client = build_telemetry_client(settings)
    if not isinstance(telemetry_client, NullTelemetryClient):
        # Loguea actividades entrantes/salientes sin PII
        adapter.use(TelemetryLoggerMiddleware(telemetry_client, log_personal_information=False))

    stepper = DialogStepper(
        catalog,
        build_recognizers(settings, catalog),
        TelemetryEmitter(telemetry_client),
        root_dialog=settings.root_dialog,
        completion_policy=settings.completion_policy,
        on_complete=booking_outcome,
        default_locale=settings.default_locale,
    )
    bot = DataDrivenBot(stepper, StorageProgressStore(MemoryStorage()), turn_timeout=settings.turn_timeout)

    async def messages(req: web.Request) -> web.Response:
        if "application/json" not in req.headers.get("Content-Type", ""):
            return web.Response(status=415, text="Content-Type must be application/json")

        body = await req.json()
        activity: Activity = Activity().deserialize(body)
        auth_header = req.headers.get("Authorization", "")

        log.info("[DIAG] activity type=%s channel=%s conversation=%s",
                 activity.type, activity.channel_id, getattr(activity.conversation, "id", None))

        # Orden CloudAdapter: (auth_header, activity, callback)
        invoke_response = await adapter.process_activity(auth_header, activity, bot.on_turn)
        if invoke_response:
            return web.json_response(data=invoke_response.body, status=invoke_response.status)
        return web.Response(status=201)

    async def health(_: web.Request) -> web.Response:
        return web.json_response({"ok": True})

    async def diag_env(_: web.Request) -> web.Response:
        return web.json_response(public_env_snapshot())

    async def diag_dialogs(_: web.Request) -> web.Response:
        return web.json_response({
            "root": settings.root_dialog,
            "dialogs": {
                d.name: {
                    "steps": list(d.prompts),
                    "dispatch_intents": list(d.dispatch_intents),
                    "run_mode": d.run_mode.value,
                }
                for d in catalog.dialogs.values()
            },
        })

    app = web.Application()
    app.router.add_post("/api/messages", messages)
    app.router.add_get("/health", health)
    app.router.add_get("/diag/env", diag_env)
    app.router.add_get("/diag/dialogs", diag_dialogs)
    return app


def main() -> None:
    try:
        settings = load_settings()
        configure_logging(settings.log_level)
        app = create_app(settings)
    except ConfigurationError as e:
        logging.basicConfig(level="INFO", format="%(levelname)s:%(name)s:%(message)s")
        log.error("Arranque fallido: %s", e)
        sys.exit(1)

    web.run_app(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
