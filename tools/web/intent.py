"""Intent detection for determining when to use web search."""

# Matched as case-insensitive substrings; order is irrelevant.
WEB_SEARCH_KEYWORDS = (
    "latest",
    "recent",
    "current",
    "today",
    "news",
    "update",
    "what happened",
    "price of",
    "stock price",
    "weather",
    "when did",
    "who is",
    "what is the current",
    "search for",
    "find information",
    "look up",
    "google",
    "bing",
)


def needs_web_search(message: str) -> bool:
    """
    Detect if a message asks about something that needs live web context.

    This is a keyword heuristic, not a classifier: messages without any of the
    listed phrases never trigger a search, even when they would benefit from one.

    Args:
        message: Raw user message

    Returns:
        True if any keyword occurs in the message
    """
    lower_message = (message or "").lower()
    return any(keyword in lower_message for keyword in WEB_SEARCH_KEYWORDS)
