import pytest

from conftest import ScriptedClient, asset_dict, asset_json
from notra.schemas.learning_asset import GenerationContext
from notra.services.errors import GenerationFailure, ParseFailure, RepairFailure, TransportFailure
from notra.services.generation_engine import GenerationEngine, parse_repaired, repair_completion
from notra.services.llm.prompts import LEARNING_ASSET_STRICT_SYSTEM, LEARNING_ASSET_SYSTEM, build_prompt


def _run(config, *responses):
    client = ScriptedClient(*responses)
    engine = GenerationEngine(client, config)
    prompt = build_prompt("Newton's second law: F = ma.", GenerationContext())
    return engine, client, prompt


def test_valid_output_needs_one_call(config):
    engine, client, prompt = _run(config, asset_json())
    result = engine.run(prompt)
    assert result.payload.title == "Newton's Second Law"
    assert len(client.calls) == 1
    assert [a.outcome for a in result.attempts] == ["ok"]


def test_call_parameters_come_from_config(config):
    engine, client, prompt = _run(config, asset_json())
    engine.run(prompt)
    call = client.calls[0]
    assert call["temperature"] == 0.5
    assert call["json_mode"] is True
    assert call["max_tokens"] == 6000
    assert call["prompt"].system == LEARNING_ASSET_SYSTEM


def test_trailing_comma_is_repaired_without_retry(config):
    broken = asset_json()[:-1] + ",}"
    engine, client, prompt = _run(config, broken)
    result = engine.run(prompt)
    assert result.payload.summary_for_chat.startswith("Covers Newton")
    assert len(client.calls) == 1


def test_fenced_output_is_accepted(config):
    engine, client, prompt = _run(config, "```json\n" + asset_json() + "\n```")
    assert engine.run(prompt).payload.notes[0].id == "note-1"
    assert len(client.calls) == 1


def test_chatter_around_object_is_dropped(config):
    engine, client, prompt = _run(config, "Sure! Here are your materials:\n" + asset_json() + "\nGood luck!")
    assert engine.run(prompt).payload.quizzes[0].correct_index == 1
    assert len(client.calls) == 1


def test_garbage_twice_fails_after_exactly_two_calls(config):
    engine, client, prompt = _run(config, "I am unable to do that.")
    with pytest.raises(GenerationFailure) as exc:
        engine.run(prompt)
    assert len(client.calls) == 2
    assert exc.value.stage == "repair"
    assert exc.value.attempts == 2


def test_retry_uses_strict_instruction_and_same_content(config):
    engine, client, prompt = _run(config, "not json at all", asset_json())
    result = engine.run(prompt)

    assert [a.outcome for a in result.attempts] == ["repair", "ok"]
    first, second = client.calls
    assert first["prompt"].system == LEARNING_ASSET_SYSTEM
    assert second["prompt"].system == LEARNING_ASSET_STRICT_SYSTEM
    assert second["prompt"].user == first["prompt"].user


def test_out_of_range_correct_index_fails_validation(config):
    quiz = dict(asset_dict()["quizzes"][0], correctIndex=9)
    engine, client, prompt = _run(config, asset_json(quizzes=[quiz]))
    with pytest.raises(GenerationFailure) as exc:
        engine.run(prompt)
    assert exc.value.stage == "validate"
    assert "correctIndex" in exc.value.message
    assert len(client.calls) == 2


def test_short_chat_summary_fails_validation(config):
    engine, client, prompt = _run(config, asset_json(summaryForChat="short"))
    with pytest.raises(GenerationFailure) as exc:
        engine.run(prompt)
    assert exc.value.stage == "validate"


def test_empty_lists_fail_validation(config):
    engine, client, prompt = _run(config, asset_json(flashcards=[]), asset_json())
    result = engine.run(prompt)
    assert [a.outcome for a in result.attempts] == ["validate", "ok"]


def test_transport_failure_is_not_retried(config):
    engine, client, prompt = _run(config, TransportFailure("connection refused", provider="fake"))
    with pytest.raises(TransportFailure):
        engine.run(prompt)
    assert len(client.calls) == 1


def test_transport_failure_on_retry_surfaces(config):
    engine, client, prompt = _run(config, "garbage", TransportFailure("timeout", provider="fake"))
    with pytest.raises(TransportFailure):
        engine.run(prompt)
    assert len(client.calls) == 2


def test_repair_rejects_empty_and_objectless_text():
    with pytest.raises(RepairFailure):
        repair_completion("   ")
    with pytest.raises(RepairFailure):
        repair_completion("no braces here")


def test_repair_closes_truncated_object():
    repaired = repair_completion('{"title": "Cut off", "notes": [')
    assert parse_repaired(repaired)["title"] == "Cut off"


def test_parse_rejects_non_objects():
    with pytest.raises(ParseFailure):
        parse_repaired("[1, 2]")
    with pytest.raises(ParseFailure):
        parse_repaired("{oops")


def test_trailing_chatter_with_braces_is_ignored(config):
    completion = asset_json() + "\nLet me know if you want more {topics}!"
    engine, client, prompt = _run(config, completion)
    result = engine.run(prompt)
    assert result.payload.title == "Newton's Second Law"
    assert len(client.calls) == 1


def test_repair_keeps_first_complete_object():
    repaired = repair_completion('{"title": "First"} and also {"title": "Second"}')
    assert parse_repaired(repaired) == {"title": "First"}


def test_repair_takes_first_object_from_broken_sequence():
    repaired = repair_completion('{"title": "First",} then {"title": "Second"}')
    assert parse_repaired(repaired)["title"] == "First"
