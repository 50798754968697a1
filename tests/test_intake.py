"""Unit tests for the startup-intake router."""

import json

import pytest

from evalset.intake import IntakeEventLog, IntakeRouter, Phase, format_command, normalize_inline


@pytest.fixture
def log(tmp_path):
    return IntakeEventLog(tmp_path / "intake.jsonl")


def _entries(log):
    return [json.loads(line) for line in log.path.read_text().splitlines()]


def test_first_message_proposes_command(log):
    router = IntakeRouter.restore(log)

    command = router.handle_input("  build a\n todo   app ")

    assert command == '/init-project-docs "build a todo app"'
    assert router.state.phase == Phase.COMMAND_PROPOSED
    assert router.state.intent == "build a todo app"
    phases = [e["data"]["phase"] for e in _entries(log)]
    assert phases == ["idle", "intent_captured", "command_proposed"]
    assert all(e["type"] == "intake-state" for e in _entries(log))


def test_only_first_message_is_processed(log):
    router = IntakeRouter.restore(log)
    router.handle_input("first")
    assert router.handle_input("second") is None
    assert router.state.intent == "first"


@pytest.mark.parametrize("text", ["", "   ", "/help", "  /init-project-docs x"])
def test_blank_and_commands_are_ignored(log, text):
    router = IntakeRouter.restore(log)
    assert router.handle_input(text) is None
    assert not router.state.first_message_processed
    assert router.state.phase == Phase.IDLE


def test_load_restores_last_entry(log):
    IntakeRouter.restore(log).handle_input("ship it")

    loaded = IntakeRouter.load(log)

    assert loaded.state.phase == Phase.COMMAND_PROPOSED
    assert loaded.state.command == '/init-project-docs "ship it"'


def test_restore_starts_a_fresh_session(log):
    IntakeRouter.restore(log).handle_input("ship it")

    router = IntakeRouter.restore(log)

    assert router.state.phase == Phase.IDLE
    assert router.state.intent is None
    assert not router.state.first_message_processed
    assert router.handle_input("next project") == '/init-project-docs "next project"'


def test_restore_skips_malformed_lines(log):
    log.path.write_text(
        '{"type": "intake-state", "data": {"phase": "command_proposed", "firstMessageProcessed": true}}\n'
        "not json\n"
        '{"type": "something-else", "data": {}}\n'
        '{"type": "intake-state", "data": {"phase": "bogus"}}\n',
    )
    assert IntakeRouter.load(log).state.phase == Phase.COMMAND_PROPOSED


def test_reset_persists_fresh_state(log):
    router = IntakeRouter.restore(log)
    router.handle_input("idea")
    router.reset()

    assert IntakeRouter.load(log).state.first_message_processed is False
    assert _entries(log)[-1]["data"]["phase"] == "idle"


def test_status_summary(log):
    router = IntakeRouter.restore(log)
    status = router.status()
    assert status["phase"] == "idle"
    assert status["intent"] == "<none>"
    assert status["first_message_processed"] == "no"
    assert status["updated_at"].endswith("Z")


def test_normalize_inline_clips_with_ellipsis():
    clipped = normalize_inline("x" * 1300)
    assert len(clipped) == 1200
    assert clipped.endswith("…")
    assert normalize_inline("a\t\tb\n c") == "a b c"


def test_format_command_quotes_arguments():
    assert format_command("init-project-docs", 'say "hi"') == '/init-project-docs "say \\"hi\\""'
