"""Assemble the single prompt string sent upstream for a chat turn."""

from models.chat import ChatMode
from tools.web.contracts import SearchOutcome

MODE_INSTRUCTIONS = {
    ChatMode.DETAILED: "Provide comprehensive, detailed explanations with examples, context, and thorough analysis.",
    ChatMode.CONCISE: "Give brief, direct answers that focus on key points without unnecessary elaboration.",
    ChatMode.CREATIVE: "Respond with creativity, imagination, and original thinking. Use vivid language and explore unique perspectives.",
}

# Persona templates keyed by logical model id; {mode} receives the mode instruction.
MODEL_PERSONAS = {
    "gpt-5": "You are GPT-5, the most advanced AI model from OpenAI. {mode} Use your vast knowledge to give well-reasoned responses and consider multiple perspectives.",
    "claude-4": "You are Claude 4 from Anthropic. {mode} Respond with thoughtful, ethical considerations and careful reasoning. Be helpful, harmless, and honest.",
    "gemini-2.5": "You are Gemini 2.5 from Google. {mode} Integrate real-time information and multimodal understanding. Be factual, up-to-date, and consider practical applications.",
}
DEFAULT_PERSONA = "You are an AI assistant. {mode}"

CITATION_INSTRUCTION = (
    "Please use this current information from the web search to provide an accurate "
    "and up-to-date response. Cite the sources when relevant."
)


def build_prompt(
    model_id: str,
    message: str,
    mode: ChatMode = ChatMode.DETAILED,
    search_outcome: SearchOutcome | None = None,
) -> str:
    """
    Build the prompt for one turn.

    Args:
        model_id: Logical model id; selects the persona (unknown ids get a generic one)
        message: The user's message, included verbatim
        mode: Response style
        search_outcome: Web results to append; ignored when it has no results

    Returns:
        The prompt text. Identical inputs always give identical output.
    """
    mode = ChatMode(mode)
    persona = MODEL_PERSONAS.get(model_id, DEFAULT_PERSONA).format(mode=MODE_INSTRUCTIONS[mode])

    prompt = f"{persona}\n\nQuestion: {message}"

    if search_outcome is not None and search_outcome.has_results:
        prompt += "\n\nWeb Search Results:\n"
        for index, result in enumerate(search_outcome.results, start=1):
            prompt += f"{index}. {result.title}\n   {result.snippet}\n   Source: {result.link}\n\n"
        prompt += CITATION_INSTRUCTION

    return prompt
