import pytest

from sitegen.llm_prompts import SYSTEM_INSTRUCTIONS, build_instructions, system_instruction


@pytest.mark.parametrize("style", ["detailed", "concise"])
def test_system_instruction_states_output_contract(style):
    text = system_instruction(style)
    for key in ('"html"', '"css"', '"js"', '"description"'):
        assert key in text
    assert "ONLY" in text and "JSON" in text
    assert "body content only" in text
    assert "<head>" in text
    assert "No markdown code blocks" in text


def test_styles_differ():
    assert SYSTEM_INSTRUCTIONS["detailed"] != SYSTEM_INSTRUCTIONS["concise"]
    assert len(SYSTEM_INSTRUCTIONS["concise"]) < len(SYSTEM_INSTRUCTIONS["detailed"])


def test_user_instruction_embeds_prompt_verbatim():
    prompt = "  A portfolio for {Ada} with 100% more \"quotes\"  "
    system, user = build_instructions(prompt)
    assert system == SYSTEM_INSTRUCTIONS["detailed"]
    assert user == "Create a website based on this description: " + prompt


def test_builder_is_deterministic():
    assert build_instructions("bakery", "concise") == build_instructions("bakery", "concise")


def test_unknown_style():
    with pytest.raises(ValueError):
        build_instructions("bakery", "flashy")
