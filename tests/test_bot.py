from __future__ import annotations

import asyncio

import pytest
from botbuilder.core import MemoryStorage
from botbuilder.core.adapters import TestAdapter
from botbuilder.schema import Activity, ActivityTypes, ChannelAccount

from bot import WELCOME_TEXT, DataDrivenBot, booking_outcome
from ddialog import (
    ConversationProgress,
    DialogStepper,
    RecognizerOutput,
    RecognizerSet,
    RuleRecognizer,
    StorageProgressStore,
    load_catalog,
)

from conftest import REPO_DIALOGS

KEY = "test/conversations/Convo1/progress"


class _SlowRecognizer:
    async def recognize(self, activity: Activity) -> RecognizerOutput:
        await asyncio.sleep(1)
        return RecognizerOutput(text=activity.text or "")


def _bot(store: StorageProgressStore, recognizers: RecognizerSet = None, turn_timeout: float = None) -> DataDrivenBot:
    rules = RuleRecognizer()
    stepper = DialogStepper(
        load_catalog(REPO_DIALOGS),
        recognizers or RecognizerSet(default=rules, dispatch=rules),
        root_dialog="greeting",
        on_complete=booking_outcome,
    )
    return DataDrivenBot(stepper, store, turn_timeout=turn_timeout)


def _starts_with(prefix: str):
    def inspect(activity: Activity, description: str = None) -> None:
        assert activity.text.startswith(prefix), activity.text
    return inspect


def _has_card(activity: Activity, description: str = None) -> None:
    assert activity.attachments[0].content_type == "application/vnd.microsoft.card.adaptive"


@pytest.mark.asyncio
async def test_welcome_on_members_added(store) -> None:
    adapter = TestAdapter(_bot(store).on_turn)
    update = Activity(
        type=ActivityTypes.conversation_update,
        members_added=[ChannelAccount(id="bot", name="Bot"), ChannelAccount(id="user-1", name="Dave")],
        recipient=ChannelAccount(id="bot", name="Bot"),
    )

    step = await adapter.send(update)
    await step.assert_reply(f"Welcome to DataDrivenBot Dave. {WELCOME_TEXT}")


@pytest.mark.asyncio
async def test_non_message_events_keep_stored_progress(store) -> None:
    saved = ConversationProgress(dialog_name="greeting", step_index=1, values={"name": "Dave"})
    await store.save(KEY, saved)
    adapter = TestAdapter(_bot(store).on_turn)
    update = Activity(
        type=ActivityTypes.conversation_update,
        members_added=[ChannelAccount(id="user-2", name="Eve")],
        recipient=ChannelAccount(id="bot", name="Bot"),
    )

    step = await adapter.send(update)
    await step.assert_reply(f"Welcome to DataDrivenBot Eve. {WELCOME_TEXT}")
    await adapter.send(Activity(type=ActivityTypes.typing))

    assert (await store.load(KEY)).model_dump() == saved.model_dump()


@pytest.mark.asyncio
async def test_greeting_conversation(store) -> None:
    adapter = TestAdapter(_bot(store).on_turn)

    step = await adapter.send("hello")
    step = await step.assert_reply("What is your name?")
    step = await step.send("Dave")
    step = await step.assert_reply("What is your age?")
    step = await step.send("thirty")
    await step.assert_reply(_has_card)

    progress = await store.load(KEY)
    assert progress.dialog_name == "greeting"
    assert progress.step_index == 2
    assert progress.values == {"name": "Dave", "age": 30}


@pytest.mark.asyncio
async def test_card_submit_completes_and_restarts(store) -> None:
    await store.save(KEY, ConversationProgress(dialog_name="greeting", step_index=2,
                                               values={"name": "Dave", "age": 30}))
    adapter = TestAdapter(_bot(store).on_turn)
    submit = Activity(type=ActivityTypes.message, value={"guests": 2, "date": "2026-10-20"})

    step = await adapter.send(submit)
    step = await step.assert_reply(_starts_with("Card Result:"))
    step = await step.assert_reply(_starts_with("Thank you, this is where we'd book your table"))
    step = await step.assert_reply("Try saying `hello`.")
    await step.assert_reply("What is your name?")

    progress = await store.load(KEY)
    assert progress.step_index == 0
    assert progress.values == {}
    assert progress.completed_runs == 1


@pytest.mark.asyncio
async def test_resumes_persisted_progress(store) -> None:
    await store.save(KEY, ConversationProgress(dialog_name="greeting", step_index=1, values={"name": "Dave"}))
    adapter = TestAdapter(_bot(store).on_turn)

    step = await adapter.send("purple")
    await step.assert_reply("Please enter your age as a number.")

    assert (await store.load(KEY)).step_index == 1


@pytest.mark.asyncio
async def test_timeout_discards_turn() -> None:
    store = StorageProgressStore(MemoryStorage())
    slow = _SlowRecognizer()
    adapter = TestAdapter(_bot(store, RecognizerSet(default=slow, dispatch=slow), turn_timeout=0.05).on_turn)

    with pytest.raises(asyncio.TimeoutError):
        await adapter.send("hello")

    assert await store.load(KEY) is None
