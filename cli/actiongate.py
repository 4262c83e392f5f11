"""ActionGate CLI — validate manifests, try decisions, and query audit logs."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import yaml

# Ensure project root is importable when running as script
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def _manifest_path(args: argparse.Namespace) -> str:
    from runtime.manifest_loader import resolve_manifest_path

    path, _ = resolve_manifest_path(args.manifest)
    return path


def _load_or_exit(path: str):
    from runtime.manifest_loader import load_manifest

    try:
        return load_manifest(path)
    except FileNotFoundError:
        print(f"Error: manifest not found: {path}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        print(f"Error: invalid manifest: {exc}", file=sys.stderr)
        sys.exit(1)


def _write_manifest(path: str, manifest) -> None:
    data = manifest.model_dump(mode="json")
    Path(path).write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")


def cmd_validate(args: argparse.Namespace) -> None:
    """Validate an actiongate.yaml manifest."""
    from runtime.sandbox import describe_sandbox_config, validate_sandbox_config
    from runtime.tool_policy import ALL_TOOLS, describe_policy_summary

    path = _manifest_path(args)
    manifest = _load_or_exit(path)

    print(f"Manifest OK: {manifest.app.name} v{manifest.app.version}")
    print(f"  Policies:     {len(manifest.policies)}")
    for agent_id, policy in manifest.policies.items():
        print(f"    {agent_id}: {describe_policy_summary(policy)}")
    print(f"  Permissions:  {len(manifest.permissions)}")
    print(f"  Rate limits:  {len(manifest.rate_limits)} override(s)")
    print(f"  Sandbox:      {describe_sandbox_config(manifest.sandbox)}")
    print(f"  Audit path:   {manifest.audit.path}")

    # Validate tool references exist
    known = set(ALL_TOOLS)
    for agent_id, policy in manifest.policies.items():
        listed = policy.allowed | policy.denied | policy.always_require_approval
        for tool_name in sorted(listed - known):
            print(f"  Warning: agent '{agent_id}' lists unknown tool '{tool_name}'")

    validation = validate_sandbox_config(manifest.sandbox)
    for warning in validation.warnings:
        print(f"  Warning: sandbox: {warning}")
    if not validation.valid:
        for error in validation.errors:
            print(f"  Error: sandbox: {error}", file=sys.stderr)
        sys.exit(1)


def cmd_classify(args: argparse.Namespace) -> None:
    """Print the risk tier of each action identifier."""
    from runtime.risk import classify_action_risk, risk_meta

    for action in args.actions:
        tier = classify_action_risk(action)
        print(f"{action:32s}  {tier.value:5s}  {risk_meta(tier).label}")


def cmd_check(args: argparse.Namespace) -> None:
    """Run the full gate for one action."""
    from runtime.bootstrap import create_gate
    from runtime.logging import bind_context, clear_context, configure_logging

    manifest = _load_or_exit(_manifest_path(args))
    if args.log_level is None:
        configure_logging(manifest.logging.level, manifest.logging.json_output)
    bind_context(agent_id=args.agent, service=args.service)
    try:
        gate = create_gate(manifest)
        decision = gate.evaluate(
            args.agent, args.service, args.action,
            tool_id=args.tool, calls_this_turn=args.calls,
        )
    finally:
        clear_context()
    print(decision.model_dump_json(indent=2))
    if not decision.allowed:
        sys.exit(2)


def cmd_assess(args: argparse.Namespace) -> None:
    """Assess a shell command before sandboxed execution.

    Hardens ``--preset`` when given, otherwise the manifest's sandbox section.
    Without a named manifest and no ``actiongate.yaml`` in the working
    directory the built-in defaults apply.
    """
    from runtime.manifest_loader import resolve_manifest_path
    from runtime.sandbox import (
        DEFAULT_SANDBOX_CONFIG,
        SANDBOX_PRESETS,
        assess_command_risk,
        describe_sandbox_config,
        harden_config,
    )

    if args.preset:
        config = SANDBOX_PRESETS[args.preset]
    else:
        path, named = resolve_manifest_path(args.manifest)
        if named or Path(path).is_file():
            config = _load_or_exit(path).sandbox
        else:
            config = DEFAULT_SANDBOX_CONFIG
    assessment = assess_command_risk(args.command)
    print(f"Risk: {assessment.risk.value}")
    for reason in assessment.reasons:
        print(f"  - {reason}")

    hardened = harden_config(config, assessment)
    if hardened is None:
        print("Refused: command will not be run in the sandbox")
        sys.exit(2)
    print(f"Sandbox: {describe_sandbox_config(hardened)}")


def cmd_plan(args: argparse.Namespace) -> None:
    """Evaluate a batch of actions (YAML/JSON list of service/action/target)."""
    from runtime.dry_run import build_plan, count_high_risk, plan_requires_confirm
    from runtime.risk import risk_meta

    p = Path(args.plan_file)
    if not p.exists():
        print(f"Error: plan file not found: {p}", file=sys.stderr)
        sys.exit(1)
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        print(f"Error: invalid plan file: {exc}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(raw, list):
        print("Error: plan file must contain a list of steps", file=sys.stderr)
        sys.exit(1)
    for i, s in enumerate(raw):
        if not isinstance(s, dict):
            print(f"Error: step {i} must be a mapping, got {type(s).__name__}", file=sys.stderr)
            sys.exit(1)

    plan = build_plan(
        (str(s.get("service", "")), str(s.get("action", "")), str(s.get("target", "")))
        for s in raw
    )
    for step in plan.steps:
        meta = risk_meta(step.risk)
        print(f"{step.index:3d}  [{meta.label:13s}]  {step.service}.{step.action}  {step.target}")
    print(f"{plan.total_actions} action(s), {count_high_risk(plan)} high-risk")
    if plan_requires_confirm(plan):
        print("Confirmation required")
    else:
        print("No confirmation needed")


def cmd_set_permission(args: argparse.Namespace) -> None:
    """Set one agent's access level for a service."""
    from runtime.access import PermissionTable

    path = _manifest_path(args)
    manifest = _load_or_exit(path)
    table = PermissionTable(manifest.permissions)
    try:
        perm = table.set_permission(args.agent, args.service, args.access)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    manifest.permissions = table.all()
    _write_manifest(path, manifest)
    print(f"{perm.agent_id} → {perm.service}: {perm.access.value}")


def cmd_set_rate_limit(args: argparse.Namespace) -> None:
    """Set / update the rate limit override for a service."""
    from runtime.rate_limiter import upsert_rate_limit

    path = _manifest_path(args)
    manifest = _load_or_exit(path)
    try:
        manifest.rate_limits = upsert_rate_limit(
            manifest.rate_limits, args.service, args.max_actions, args.window_minutes
        )
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    _write_manifest(path, manifest)
    print(f"{args.service}: {args.max_actions} actions / {args.window_minutes} min")


def cmd_presets(args: argparse.Namespace) -> None:
    """List the built-in tool policy and sandbox presets."""
    from runtime.sandbox import SANDBOX_PRESETS, describe_sandbox_config
    from runtime.tool_policy import POLICY_PRESETS, describe_policy_summary

    print("Tool policies:")
    for name, policy in POLICY_PRESETS.items():
        print(f"  {name:14s} {describe_policy_summary(policy)}")
    print("Sandbox:")
    for name, config in SANDBOX_PRESETS.items():
        print(f"  {name:14s} {describe_sandbox_config(config)}")


def cmd_logs(args: argparse.Namespace) -> None:
    """Query audit logs."""
    from contracts.audit import AuditEvent
    from runtime.audit.query import query_by_agent, query_by_event, tail

    log_path = args.log_path

    if not Path(log_path).exists():
        print(f"No audit log found at {log_path}", file=sys.stderr)
        sys.exit(1)

    if args.agent:
        entries = query_by_agent(log_path, args.agent)[-args.limit:]
    elif args.event:
        try:
            event = AuditEvent(args.event)
        except ValueError:
            valid = ", ".join(e.value for e in AuditEvent)
            print(f"Unknown event type: {args.event}", file=sys.stderr)
            print(f"Valid events: {valid}", file=sys.stderr)
            sys.exit(1)
        entries = query_by_event(log_path, event, limit=args.limit)
    else:
        entries = tail(log_path, n=args.limit)

    if not entries:
        print("No matching audit entries.")
        return

    for entry in entries:
        record = json.loads(entry.model_dump_json())
        if args.json:
            print(json.dumps(record))
        else:
            ts = record["ts"][:19]
            print(f"{ts}  [{record['event']:16s}]  {record['agent_id']:12s}  "
                  f"{record['service']}.{record['action']}  {record['reason']}")


def cmd_alerts(args: argparse.Namespace) -> None:
    """Run the audit heuristics and print alerts."""
    from runtime.security import detect_alerts

    alerts = detect_alerts(args.log_path, limit=args.limit)
    if not alerts:
        print("No alerts.")
        return
    for alert in alerts:
        print(f"{alert['ts'][:19]}  {alert['severity']:8s}  {alert['type']:18s}  {alert['message']}")


def cmd_stats(args: argparse.Namespace) -> None:
    """Print aggregated decision metrics."""
    from runtime.metrics import compute_metrics

    print(json.dumps(compute_metrics(args.log_path), indent=2))


def main(argv: list[str] | None = None) -> None:
    from runtime.sandbox import SANDBOX_PRESETS

    parser = argparse.ArgumentParser(
        prog="actiongate",
        description="ActionGate — authorization and risk guardrails for agent actions",
    )
    parser.add_argument("--log-level", default=None, help="Diagnostic log level (default: WARNING)")
    sub = parser.add_subparsers(dest="command")

    def manifest_opt(p: argparse.ArgumentParser) -> None:
        p.add_argument("--manifest", "-m", help="Path to manifest (default: $ACTIONGATE_MANIFEST or actiongate.yaml)")

    # validate
    p_val = sub.add_parser("validate", help="Validate an actiongate.yaml manifest")
    p_val.add_argument("manifest", nargs="?", default=None, help="Path to manifest")
    p_val.set_defaults(func=cmd_validate)

    # classify
    p_cls = sub.add_parser("classify", help="Classify action identifiers by risk")
    p_cls.add_argument("actions", nargs="+", help="Action identifiers")
    p_cls.set_defaults(func=cmd_classify)

    # check
    p_chk = sub.add_parser("check", help="Run every guardrail for one action")
    p_chk.add_argument("agent", help="Agent ID")
    p_chk.add_argument("service", help="Target service, e.g. slack")
    p_chk.add_argument("action", help="Action identifier, e.g. send_message")
    p_chk.add_argument("--tool", help="Tool ID if it differs from the action")
    p_chk.add_argument("--calls", type=int, default=0, help="Tool calls so far this turn")
    manifest_opt(p_chk)
    p_chk.set_defaults(func=cmd_check)

    # assess
    p_as = sub.add_parser("assess", help="Assess a shell command for sandboxing")
    p_as.add_argument("command", help="Shell command (quote it)")
    p_as.add_argument("--preset", choices=list(SANDBOX_PRESETS),
                      help="Sandbox preset to harden (default: the manifest's sandbox)")
    manifest_opt(p_as)
    p_as.set_defaults(func=cmd_assess)

    # plan
    p_plan = sub.add_parser("plan", help="Dry-run a batch of actions")
    p_plan.add_argument("plan_file", help="YAML/JSON list of {service, action, target}")
    p_plan.set_defaults(func=cmd_plan)

    # set-permission
    p_perm = sub.add_parser("set-permission", help="Set an agent's access level for a service")
    p_perm.add_argument("agent", help="Agent ID")
    p_perm.add_argument("service", help="Service name")
    p_perm.add_argument("access", help="none | read | write | full")
    manifest_opt(p_perm)
    p_perm.set_defaults(func=cmd_set_permission)

    # set-rate-limit
    p_rl = sub.add_parser("set-rate-limit", help="Override a service's rate limit")
    p_rl.add_argument("service", help="Service name")
    p_rl.add_argument("max_actions", type=int, help="Actions per window")
    p_rl.add_argument("window_minutes", type=int, help="Window length in minutes")
    manifest_opt(p_rl)
    p_rl.set_defaults(func=cmd_set_rate_limit)

    # presets
    p_pre = sub.add_parser("presets", help="List built-in presets")
    p_pre.set_defaults(func=cmd_presets)

    # logs
    p_logs = sub.add_parser("logs", help="Query audit logs")
    p_logs.add_argument("log_path", help="Path to audit JSONL file")
    p_logs.add_argument("--agent", "-a", help="Filter by agent ID")
    p_logs.add_argument("--event", "-e", help="Filter by event type")
    p_logs.add_argument("--limit", "-n", type=int, default=20, help="Max entries")
    p_logs.add_argument("--json", action="store_true", help="Output raw JSON")
    p_logs.set_defaults(func=cmd_logs)

    # alerts
    p_al = sub.add_parser("alerts", help="Heuristic alerts from the audit log")
    p_al.add_argument("log_path", help="Path to audit JSONL file")
    p_al.add_argument("--limit", "-n", type=int, default=50, help="Max alerts")
    p_al.set_defaults(func=cmd_alerts)

    # stats
    p_st = sub.add_parser("stats", help="Aggregated decision metrics")
    p_st.add_argument("log_path", help="Path to audit JSONL file")
    p_st.set_defaults(func=cmd_stats)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    from runtime.logging import configure_logging

    configure_logging(args.log_level or "WARNING")
    args.func(args)


if __name__ == "__main__":
    main()
