import argparse, sys
from pathlib import Path
from dotenv import load_dotenv
from mission_engine.agent.planner import request_plan
from mission_engine.agent.parser import parse_planner_output
from mission_engine.agent.validator import validate_plan
from mission_engine.agent.normalizer import normalize_plan, IdMap, materialize
from mission_engine.exec.runner import dry_run
from mission_engine.exec.report import write_report
from mission_engine.utils.logger import panel, table, info, error, Spinner
def main(argv: list[str]|None = None) -> int:
    load_dotenv()
    ap = argparse.ArgumentParser(description="Parse, validate and dry-run a planner-agent mission plan")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument('--prompt', help='objective to send to the planner agent')
    src.add_argument('--file', help='file holding raw planner output')
    ap.add_argument('--mission-id', default='mission-local')
    ap.add_argument('--version', type=int, default=1)
    ap.add_argument('--fail', action='append', default=[], help='task key to fail during the dry run')
    ap.add_argument('--yes', action='store_true')
    ap.add_argument('--approve-manual', action='store_true', help='approve manual_approval gates during the dry run')
    ap.add_argument('--report', default='run_reports/mission.md')
    args = ap.parse_args(argv)
    if args.file:
        path = Path(args.file)
        if not path.exists(): error(f"Plan file not found: {path}"); return 1
        raw = path.read_text(encoding="utf-8")
    else:
        with Spinner("Asking planner…"): raw = request_plan(args.prompt)
    parsed = parse_planner_output(raw)
    if parsed is None: error("No plan found in planner output"); return 2
    result = validate_plan(parsed)
    if not result.valid:
        error(f"Plan invalid ({len(result.errors)} error(s))")
        for e in result.errors: error(str(e))
        return 1
    normalized = normalize_plan(parsed, args.mission_id, version=args.version, created_by="cli")
    plan, phases, tasks, edges = materialize(normalized, IdMap.generate(normalized))
    panel("Plan", f"{plan.title}\n{len(phases)} phase(s), {len(tasks)} task(s), {len(edges)} edge(s)")
    table("Tasks", ["phase", "key", "agent", "priority", "depends on"],
          [[p.phase_index, t.key, t.agent_id, t.priority,
            ", ".join(s.key for s in tasks for e in edges if e.target_task_id == t.id and e.source_task_id == s.id and e.edge_type == "blocks")]
           for p in phases for t in tasks if t.phase_id == p.id])
    if not args.yes:
        resp = input("Dry-run this plan? [y/N]: ")
        if resp.strip().lower()!='y': info("Aborted"); return 0
    outcome = dry_run(plan, phases, tasks, edges, fail_keys=set(args.fail), approve_manual=args.approve_manual)
    write_report(args.report, plan, outcome.phases, outcome.tasks, outcome.log)
    info(f"Run {outcome.status}; report written to {args.report}")
    return 0 if outcome.status == "completed" else 1
if __name__ == '__main__': sys.exit(main())
