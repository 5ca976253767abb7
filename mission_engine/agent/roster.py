import os

DEFAULT_AGENTS = (
  "main", "hippocrates", "confucius", "seneca", "archimedes",
  "leonidas", "odysseus", "spartacus", "achilles", "alexander",
  "heracles", "daedalus", "icarus", "ajax",
  "cleopatra", "homer", "hermes",
  "athena", "hephaestus", "prometheus",
)

def known_agents() -> frozenset[str]:
    raw = os.getenv("KNOWN_AGENTS", "")
    ids = [a.strip() for a in raw.split(",") if a.strip()]
    return frozenset(ids) if ids else frozenset(DEFAULT_AGENTS)
