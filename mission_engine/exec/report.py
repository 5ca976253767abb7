import os
from jinja2 import Template
from ..models import Plan, Phase, Task, utcnow

CONTEXT_TMPL = Template('## Upstream Context\n\n'
                        '{% for key, value in context.items() %}### Output from "{{ key }}"\n{{ value }}'
                        '{% if not loop.last %}\n\n{% endif %}{% endfor %}')

REPORT_TMPL = Template("""
# Mission Plan Report

**Plan:** {{ plan.title }} (v{{ plan.version }}, {{ plan.status }})
**Mission:** {{ plan.mission_id }}
**Circuit Breaker:** {{ plan.circuit_breaker_config.on_task_failure }} / max {{ plan.circuit_breaker_config.max_phase_failures }}
**Generated:** {{ generated }}

## Phases
{% for p in phases -%}
### {{ p.phase_index }}. {{ p.title }} - {{ p.status }} (gate: {{ p.gate_type }})
{% for t in tasks if t.phase_id == p.id -%}
- **{{ t.key }}** [{{ t.status }}] {{ t.title }} ({{ t.agent_id }})
{% if t.error_message %}  - Error: {{ t.error_message }}
{% endif -%}
{% endfor %}
{% endfor -%}
{% if log %}
## Log
{% for line in log -%}
- {{ line }}
{% endfor %}
{% endif %}
""")

def build_context_section(input_context: dict|None) -> str:
    """Format a task's input_context as a prompt section; empty context gives ''."""
    if not input_context: return ""
    return CONTEXT_TMPL.render(context=input_context)

def render_report(plan: Plan, phases: list[Phase], tasks: list[Task], log: list[str]|None = None) -> str:
    return REPORT_TMPL.render(
        plan=plan,
        phases=sorted(phases, key=lambda p: p.phase_index),
        tasks=sorted(tasks, key=lambda t: t.sort_order),
        log=log or [],
        generated=utcnow(),
    )

def write_report(path: str, plan: Plan, phases: list[Phase], tasks: list[Task], log: list[str]|None = None):
    folder = os.path.dirname(path)
    if folder: os.makedirs(folder, exist_ok=True)
    with open(path, "w") as f: f.write(render_report(plan, phases, tasks, log))
