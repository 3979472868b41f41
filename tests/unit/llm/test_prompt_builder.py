"""Unit tests for PromptBuilder."""

from inference_gateway.llm.prompt_builder import PromptBuilder
from inference_gateway.models.chat_models import HistoryMessage, InferenceOptions
from inference_gateway.models.enums import Role, Sender


def test_system_content_without_memory(prompt_builder: PromptBuilder):
    content = prompt_builder.build_system_content("You are a pirate.")
    assert "You are a pirate." in content
    assert "<long_term_memory>" not in content
    assert "continuity" not in content


def test_system_content_with_memory(prompt_builder: PromptBuilder):
    content = prompt_builder.build_system_content("You are a pirate.", "User builds a Rust CLI.")
    assert content.index("You are a pirate.") < content.index("<long_term_memory>")
    assert "User builds a Rust CLI." in content
    assert "maintain continuity" in content


def test_blank_memory_treated_as_absent(prompt_builder: PromptBuilder):
    assert "<long_term_memory>" not in prompt_builder.build_system_content("p", "   ")


def test_build_chat_request_order(prompt_builder: PromptBuilder):
    history = [
        HistoryMessage(text="earlier", sender=Sender.USER),
        HistoryMessage(text="reply", sender=Sender.ASSISTANT),
    ]
    request = prompt_builder.build_chat_request(
        model="llama3.1:8b",
        system_content="SYS",
        history=history,
        current_message="now",
        options=InferenceOptions(context_window=4096),
        images=["aW1n"],
    )

    roles = [m.role for m in request.messages]
    assert roles == [Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.USER]
    assert request.messages[0].content == "SYS"
    assert request.messages[-1].content == "now"
    assert request.messages[-1].images == ["aW1n"]
    assert request.has_images


def test_payload_wire_shape(prompt_builder: PromptBuilder):
    request = prompt_builder.build_chat_request(
        model="m",
        system_content="SYS",
        history=[],
        current_message="hi",
        options=InferenceOptions(context_window=2048, temperature=0.2, repeat_penalty=1.3),
    )
    payload = request.to_payload()
    assert payload["stream"] is True
    assert payload["options"] == {"num_ctx": 2048, "temperature": 0.2, "repeat_penalty": 1.3}
    assert payload["messages"][-1] == {"role": "user", "content": "hi"}


def test_title_prompt_truncates_source(prompt_builder: PromptBuilder):
    prompt = prompt_builder.build_title_prompt("a" * 150 + "TAIL")
    assert "a" * 150 in prompt
    assert "TAIL" not in prompt


def test_summary_and_plan_prompts(prompt_builder: PromptBuilder):
    assert "chat log here" in prompt_builder.build_summary_prompt("chat log here")
    plan = prompt_builder.build_plan_prompt("ship v2")
    assert "<goal>ship v2</goal>" in plan
    assert "JSON Array" in plan
