import json, re

FENCE_RE = re.compile(r"```([\w+-]*)[ \t]*\r?\n?([\s\S]*?)```")

def _candidates(raw: str) -> list[str]:
    fenced = [(m.group(1).lower(), m.group(2)) for m in FENCE_RE.finditer(raw)]
    ordered = [body for lang, body in fenced if lang == "json"] + [body for lang, body in fenced if lang != "json"]
    return [c for c in ordered + [raw] if c and c.strip()]

def parse_planner_output(raw: str|None) -> dict|None:
    """Pull the plan object out of planner text, or None when no candidate parses.

    ```json blocks are tried first, then other fenced blocks, then the whole
    text. A candidate is only accepted when it decodes to a JSON object
    carrying a ``phases`` list.
    """
    if not raw: return None
    for candidate in _candidates(raw):
        try: parsed = json.loads(candidate.strip())
        except json.JSONDecodeError: continue
        if isinstance(parsed, dict) and isinstance(parsed.get("phases"), list):
            return parsed
    return None
