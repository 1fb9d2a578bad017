import json


def parse_json_reply(text: str) -> dict:
    """Parse a JSON object from a chat reply, tolerating ```json fences."""
    text = text.strip()
    if text.startswith("```"):
        start = text.find("\n") + 1
        end = text.rfind("```")
        if end > start:
            text = text[start:end].strip()
    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed
