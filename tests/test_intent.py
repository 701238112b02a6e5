import pytest

from tools.web.intent import WEB_SEARCH_KEYWORDS, needs_web_search


@pytest.mark.parametrize(
    "message",
    [
        "What's the latest on the Mars mission?",
        "Any recent breakthroughs in battery tech?",
        "What is the weather like in Paris?",
        "Who is the CEO of Nvidia?",
        "What is the current price of bitcoin?",
        "Please look up the opening hours",
        "Give me TODAY'S headlines",
        "search for cheap flights to Lisbon",
    ],
)
def test_messages_needing_live_context_trigger_search(message):
    assert needs_web_search(message) is True


@pytest.mark.parametrize(
    "message",
    [
        "Explain how recursion works",
        "Write a haiku about autumn leaves",
        "Summarize the plot of Hamlet",
        "",
        None,
    ],
)
def test_other_messages_do_not_trigger_search(message):
    assert needs_web_search(message) is False


def test_every_keyword_triggers_on_its_own():
    for keyword in WEB_SEARCH_KEYWORDS:
        assert needs_web_search(f"xx {keyword.upper()} yy"), keyword


def test_keywords_match_inside_longer_words():
    # Substring matching: "updated" contains "update".
    assert needs_web_search("Has the library been updated?")
