GATE_TYPES = ("all_complete", "review_approved", "test_pass", "manual_approval")
PRIORITIES = ("low", "medium", "high", "urgent")
FAILURE_POLICIES = ("stop_phase", "stop_mission", "continue")
PLAN_STATUSES = ("draft", "approved", "superseded", "cancelled")
PHASE_STATUSES = ("pending", "active", "blocked", "completed", "failed", "skipped")
TASK_STATUSES = ("pending", "ready", "in_progress", "review", "done", "failed", "skipped")
EDGE_TYPES = ("blocks", "informs")

# Shape only. Titles, keys, agent ids, gate types and priorities, and whether a
# phase/task is an object at all, are checked field by field in validator.py.
TASK_SCHEMA = {
  "properties": {
    "domains": {"type": "array", "items": {"type": "string"}},
    "depends_on": {"type": "array", "items": {"type": "string"}},
    "informs": {"type": "array", "items": {"type": "string"}},
    "review_enabled": {"type": "boolean"},
    "review_agent_id": {"type": ["string", "null"]},
    "max_revisions": {"type": "integer", "minimum": 0},
    "output_artifacts": {
      "type": "array",
      "items": {
        "type": "object",
        "properties": {
          "key": {"type": "string"},
          "label": {"type": "string"},
          "mime_type": {"type": "string"}
        },
        "required": ["key", "label", "mime_type"]
      }
    }
  }
}

PLAN_SCHEMA = {
  "properties": {
    "description": {"type": ["string", "null"]},
    "circuit_breaker": {
      "type": "object",
      "properties": {
        "on_task_failure": {"type": "string", "enum": list(FAILURE_POLICIES)},
        "max_phase_failures": {"type": "integer", "minimum": 1}
      }
    },
    "phases": {
      "items": {
        "properties": {
          "description": {"type": ["string", "null"]},
          "tasks": {"items": TASK_SCHEMA}
        }
      }
    }
  }
}
