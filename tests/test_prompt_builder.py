from models.chat import ChatMode
from orchestrator.prompt_builder import CITATION_INSTRUCTION, MODE_INSTRUCTIONS, build_prompt
from tools.web.contracts import SearchInfo, SearchOutcome, SearchResult


def _outcome(*results):
    return SearchOutcome(
        query="q",
        results=list(results),
        search_info=SearchInfo(total_results=len(results), search_time=0.2),
        provider="serper",
    )


def test_persona_and_question_without_search():
    prompt = build_prompt("gpt-5", "What is Rust?", ChatMode.CONCISE)

    assert prompt == (
        "You are GPT-5, the most advanced AI model from OpenAI. "
        f"{MODE_INSTRUCTIONS[ChatMode.CONCISE]} "
        "Use your vast knowledge to give well-reasoned responses and consider multiple perspectives."
        "\n\nQuestion: What is Rust?"
    )


def test_unknown_model_gets_generic_persona():
    prompt = build_prompt("llama-3", "hi", ChatMode.CREATIVE)

    assert prompt == f"You are an AI assistant. {MODE_INSTRUCTIONS[ChatMode.CREATIVE]}\n\nQuestion: hi"


def test_mode_accepts_its_string_value():
    assert build_prompt("claude-4", "hi", "creative") == build_prompt("claude-4", "hi", ChatMode.CREATIVE)


def test_default_mode_is_detailed():
    assert MODE_INSTRUCTIONS[ChatMode.DETAILED] in build_prompt("gemini-2.5", "hi")


def test_search_results_are_numbered_and_cited():
    outcome = _outcome(
        SearchResult("First", "Snippet one", "https://a.example", "Google Search"),
        SearchResult("Second", "Snippet two", "https://b.example", "Google Search"),
    )

    prompt = build_prompt("claude-4", "latest news?", ChatMode.DETAILED, outcome)

    assert "\n\nQuestion: latest news?\n\nWeb Search Results:\n" in prompt
    assert (
        "1. First\n   Snippet one\n   Source: https://a.example\n\n"
        "2. Second\n   Snippet two\n   Source: https://b.example\n\n"
    ) in prompt
    assert prompt.endswith(CITATION_INSTRUCTION)


def test_empty_search_outcome_is_ignored():
    assert build_prompt("gpt-5", "hi", search_outcome=_outcome()) == build_prompt("gpt-5", "hi")


def test_message_with_braces_is_included_verbatim():
    message = "Format {this} as JSON: {\"a\": 1}"
    assert build_prompt("gpt-5", message).endswith(f"Question: {message}")
