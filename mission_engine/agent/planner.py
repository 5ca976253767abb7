import os, json
from dotenv import load_dotenv
from openai import OpenAI
from ..utils.logger import info
from .roster import known_agents
load_dotenv()
DUMMY_PLAN = os.getenv("DUMMY_PLAN","false").lower()=="true"
SYSTEM_PLANNER = (
 "You are a mission planner. Break the objective into ordered phases of tasks and return ONE JSON object only, "
 "optionally inside a ```json fence. Shape: {title, description?, circuit_breaker?: {on_task_failure: "
 "stop_phase|stop_mission|continue, max_phase_failures}, phases: [{title, description?, gate_type?: "
 "all_complete|review_approved|test_pass|manual_approval, tasks: [{key, title, instructions, agent_id, "
 "priority?: low|medium|high|urgent, domains?, depends_on?: [task keys], informs?: [task keys], review_enabled?, "
 "review_agent_id?, max_revisions?, output_artifacts?: [{key, label, mime_type}]}]}]}. "
 "Rules: task keys are unique across the whole plan; depends_on must never form a cycle; "
 "only use these agent ids: {agents}."
)
def dummy_plan(objective: str) -> dict:
    return {
      "title": objective,
      "description": "Offline plan",
      "circuit_breaker": {"on_task_failure": "stop_phase", "max_phase_failures": 2},
      "phases": [
        {"title": "Research", "gate_type": "all_complete", "tasks": [
          {"key": "scope", "title": "Scope the objective", "instructions": f"Write a short scope for: {objective}", "agent_id": "main"},
          {"key": "research", "title": "Gather background", "instructions": "Collect the facts the scope calls for.", "agent_id": "archimedes", "depends_on": ["scope"], "domains": ["research"]}
        ]},
        {"title": "Delivery", "gate_type": "review_approved", "tasks": [
          {"key": "draft", "title": "Draft the deliverable", "instructions": "Produce the deliverable from the research.", "agent_id": "homer",
           "depends_on": ["research"], "review_enabled": True, "review_agent_id": "cleopatra", "max_revisions": 2,
           "output_artifacts": [{"key": "doc", "label": "Deliverable", "mime_type": "text/markdown"}]},
          {"key": "announce", "title": "Announce", "instructions": "Share the deliverable.", "agent_id": "hermes", "depends_on": ["draft"], "priority": "low"}
        ]}
      ]
    }
def call_llm(messages: list[dict]) -> str:
    client = OpenAI(base_url=os.getenv("OPENAI_BASE_URL"), api_key=os.getenv("OPENAI_API_KEY"))
    resp = client.chat.completions.create(model=os.getenv("LLM_MODEL"), messages=messages, temperature=0.2)
    return resp.choices[0].message.content
def request_plan(objective: str) -> str:
    """Raw planner text for ``objective``; parsing is left to the caller."""
    if DUMMY_PLAN:
        info("Using dummy plan (offline)")
        return f"```json\n{json.dumps(dummy_plan(objective), indent=2)}\n```"
    system = SYSTEM_PLANNER.replace("{agents}", ", ".join(sorted(known_agents())))
    return call_llm(
        [{"role":"system","content":system},
         {"role":"user","content":f"Objective: {objective}\nReturn only JSON."}]
    )
