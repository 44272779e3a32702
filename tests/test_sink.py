import asyncio
from unittest import mock

import pytest
import requests

from creative_pipeline.core.errors import NotifyFailed, SourceUnavailable
from creative_pipeline.core.models import ScriptSuggestion
from creative_pipeline.notify.base import ApprovalChannel
from creative_pipeline.notify.channels import LogApprovalChannel, SlackApprovalChannel
from creative_pipeline.notify.notifier import Notifier
from creative_pipeline.pipeline.sink import LEDGER_HEADERS, LEDGER_TAB, SUGGESTION_HEADERS, ResultSink
from creative_pipeline.sheets.memory import InMemorySheetsStore

SHEET = "sheet-1"


class ExplodingChannel(ApprovalChannel):
    def submit(self, ref, metadata):
        raise NotifyFailed("channel_not_found")


def _sink(store=None, channel=None, ledger_enabled=False):
    store = store or InMemorySheetsStore({SHEET: {}})
    return ResultSink(store, Notifier(channel or LogApprovalChannel()), ledger_enabled=ledger_enabled)


def _generated():
    return [
        ScriptSuggestion(index=0, title="Festival", content="Find your tent with three words.",
                         reasoning="Problem first", target_metrics=["ctr"], audio_ref="/uploads/audio/a.mp3"),
        ScriptSuggestion(index=1, title="Festival ES", content="Find your tent.",
                         native_content="Encuentra tu tienda.", language="es"),
        ScriptSuggestion(index=2, title="Broken"),
    ]


def test_append_then_read_back_round_trip():
    store = InMemorySheetsStore({SHEET: {}})
    sink = _sink(store)

    saved = asyncio.run(sink.append_suggestions(SHEET, _generated(), tab="New Scripts"))
    rows = asyncio.run(sink.read_existing_scripts(SHEET, "New Scripts"))

    assert saved is True
    assert store.rows(SHEET, "New Scripts")[0] == SUGGESTION_HEADERS
    assert len(rows) == 2

    english, spanish = rows
    assert english.content == "Find your tent with three words."
    assert english.native_content is None
    assert english.recording_language == "English"
    assert english.generated_date
    assert spanish.content == "Find your tent."
    assert spanish.native_content == "Encuentra tu tienda."
    assert spanish.recording_language == "Spanish"
    assert spanish.to_suggestion(0).language == "es"


def test_append_never_overwrites():
    store = InMemorySheetsStore({SHEET: {}})
    sink = _sink(store)

    asyncio.run(sink.append_suggestions(SHEET, _generated()[:1], tab="Out"))
    asyncio.run(sink.append_suggestions(SHEET, _generated()[:1], tab="Out"))

    rows = store.rows(SHEET, "Out")
    assert len(rows) == 3
    assert rows[1][2] == rows[2][2] == "Festival"


def test_write_failure_returns_false():
    store = InMemorySheetsStore({SHEET: {}})
    with mock.patch.object(store, "append_rows", side_effect=ConnectionError("quota exceeded")):
        saved = asyncio.run(_sink(store).append_suggestions(SHEET, _generated(), tab="Out"))
    assert saved is False


def test_nothing_to_write_returns_false():
    assert asyncio.run(_sink().append_suggestions(SHEET, [ScriptSuggestion(index=0)], tab="Out")) is False


def test_simple_two_column_format():
    store = InMemorySheetsStore({SHEET: {"Manual": [
        ["Script Name", "Script Copy"],
        ["Promo A", "Three words for every place."],
        ["Empty", ""],
    ]}})

    rows = asyncio.run(_sink(store).read_existing_scripts(SHEET, "Manual"))

    assert len(rows) == 1
    assert rows[0].title == "Promo A"
    assert rows[0].content == "Three words for every place."
    assert rows[0].recording_language == "English"


def test_read_missing_tab_is_source_unavailable():
    with pytest.raises(SourceUnavailable):
        asyncio.run(_sink().read_existing_scripts(SHEET, "Missing"))


def test_ledger_continues_ids():
    store = InMemorySheetsStore({SHEET: {LEDGER_TAB: [LEDGER_HEADERS, ["10004", "10020", "0"]]}})
    sink = _sink(store, ledger_enabled=True)

    asyncio.run(sink.append_suggestions(SHEET, _generated(), tab="Out", prompt_summary="count=3", model_name="gpt-4o"))

    ledger = store.rows(SHEET, LEDGER_TAB)
    assert [r[:3] for r in ledger[2:]] == [["10005", "10021", "0"], ["10005", "10022", "0"]]
    assert ledger[3][5] == "Encuentra tu tienda."
    assert ledger[3][7] == "gpt-4o"


def test_ledger_failure_does_not_fail_the_write():
    store = InMemorySheetsStore({SHEET: {}})
    sink = _sink(store, ledger_enabled=True)
    original = store.ensure_tab

    def ensure(spreadsheet_id, tab, headers=None):
        if tab == LEDGER_TAB:
            raise ConnectionError("ledger locked")
        return original(spreadsheet_id, tab, headers)

    with mock.patch.object(store, "ensure_tab", side_effect=ensure):
        assert asyncio.run(sink.append_suggestions(SHEET, _generated(), tab="Out")) is True


def test_approval_is_scheduled_with_delay():
    channel = LogApprovalChannel()
    sink = _sink(channel=channel)

    async def run():
        sink.submit_for_approval("/uploads/videos/v.mp4", {"title": "T"}, delay_seconds=0.05)
        assert channel.submissions == []
        assert sink.notifier.pending == 1
        await sink.notifier.drain()

    asyncio.run(run())
    assert channel.submissions == [("/uploads/videos/v.mp4", {"title": "T"})]


def test_approval_failure_is_only_logged():
    sink = _sink(channel=ExplodingChannel())

    async def run():
        task = sink.submit_for_approval("/uploads/a.mp3", {"title": "T"}, delay_seconds=0)
        await sink.notifier.drain()
        return task

    task = asyncio.run(run())
    assert task.exception() is None


def test_slack_channel_posts_message_and_reactions():
    session = mock.Mock(spec=requests.Session)
    session.post.return_value.json.return_value = {"ok": True, "ts": "171.5"}
    channel = SlackApprovalChannel(token="xoxb-1", channel_id="C1", public_base_url="https://cdn.example.com/",
                                   session=session)

    channel.submit("/uploads/videos/v.mp4", {"title": "Festival", "script": "Find your tent."})

    urls = [c.args[0] for c in session.post.call_args_list]
    assert urls == [
        "https://slack.com/api/chat.postMessage",
        "https://slack.com/api/reactions.add",
        "https://slack.com/api/reactions.add",
    ]
    blocks = session.post.call_args_list[0].kwargs["json"]["blocks"]
    assert "https://cdn.example.com/uploads/videos/v.mp4" in blocks[1]["text"]["text"]


def test_slack_error_raises_notify_failed():
    session = mock.Mock(spec=requests.Session)
    session.post.return_value.json.return_value = {"ok": False, "error": "not_in_channel"}
    channel = SlackApprovalChannel(token="xoxb-1", channel_id="C1", session=session)

    with pytest.raises(NotifyFailed, match="not_in_channel"):
        channel.submit("/uploads/a.mp3", {"title": "T"})
