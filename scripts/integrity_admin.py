#!/usr/bin/env python3
"""
Administrative surface for the economic integrity control plane.

Operator commands (kill switch, allow-list, standing rate, split and payout
overrides) are gated by the configured operator identity; read-only
commands (status, stats, log) are open to any administrator.

Usage:
    python3 scripts/integrity_admin.py status
    python3 scripts/integrity_admin.py stats
    python3 scripts/integrity_admin.py activate --operator operator --reason "fraud spike" \\
        --component payments --component marketplace
    python3 scripts/integrity_admin.py deactivate --operator operator
    python3 scripts/integrity_admin.py allow --operator operator --party support-7
    python3 scripts/integrity_admin.py set-rate --operator operator --rate 3.5
    python3 scripts/integrity_admin.py override-split --operator operator --txn txn-42 \\
        --from-share creator=70 --from-share platform=30 \\
        --to-share creator=90 --to-share platform=10 --reason "promo" --party creator-1
    python3 scripts/integrity_admin.py adjust-payout --operator operator --party creator-1 \\
        --original 100 --new 110 --reason goodwill
    python3 scripts/integrity_admin.py log failsafe --limit 20

Options common to every command:
    --db-url URL     SQLAlchemy URL (default: sqlite:///integrity.db)
    --config PATH    Policy YAML (default: bundled default set)

Logs go to stderr as JSON lines; command output goes to stdout.
"""

import argparse
import logging
import sys
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import SQLAlchemyError

from integrity_config import get_active_config
from integrity_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from integrity_kernel.domain.values import Actor, SystemComponent
from integrity_kernel.exceptions import IntegrityKernelError
from integrity_kernel.logging_config import configure_logging
from integrity_services.control_plane import ControlPlane

DEFAULT_DB_URL = "sqlite:///integrity.db"


def fmt_amount(v) -> str:
    """Format amount for display (e.g. $1,234.50)."""
    d = Decimal(str(v))
    return f"${d:,.2f}"


def _decimal_arg(value: str) -> Decimal:
    try:
        d = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from exc
    if not d.is_finite():
        raise argparse.ArgumentTypeError(f"not a finite number: {value!r}")
    return d


def _share_arg(value: str) -> tuple[str, Decimal]:
    """``creator=70`` -> ("creator", Decimal("70"))."""
    role, sep, pct = value.partition("=")
    if not sep or not role.strip():
        raise argparse.ArgumentTypeError(f"expected role=percent, got {value!r}")
    return role.strip(), _decimal_arg(pct.strip())


def _caller(args):
    if args.role:
        return Actor(args.operator, frozenset(args.role))
    return args.operator


def _print_result(result) -> int:
    print(result.message)
    return 0 if result.success else 1


def cmd_status(plane, args) -> int:
    status = plane.status()
    print(f"Kill switch: {'ACTIVE' if status['active'] else 'inactive'}")
    if status["active"]:
        print(f"  reason:     {status['reason']}")
        print(f"  components: {', '.join(status['affected_components'])}")
        print(f"  since:      {status['activated_at']}")
    print(f"Operator commission rate: {plane.operator_commission_rate()}%")
    return 0


def cmd_stats(plane, args) -> int:
    stats = plane.statistics()
    fs = stats.failsafe
    bc = stats.blocked_charges
    print("Failsafe events")
    print(f"  total:          {fs.total}")
    print(f"  critical:       {fs.critical}")
    print(f"  quarantined:    {fs.quarantined}")
    print(f"  auto-corrected: {fs.auto_corrected}")
    print("Blocked charges")
    print(f"  count:             {bc.count}")
    print(f"  amount blocked:    {fmt_amount(bc.total_amount)}")
    print(f"  distinct subjects: {bc.distinct_subjects}")
    print("Overrides")
    for kind, n in sorted(stats.overrides_by_kind.items()):
        print(f"  {kind.lower():<18} {n}")
    print(f"Kill switch active: {stats.kill_switch.get('active', False)}")
    return 0


def cmd_activate(plane, args) -> int:
    return _print_result(plane.activate(_caller(args), args.reason, args.component))


def cmd_deactivate(plane, args) -> int:
    return _print_result(plane.deactivate(_caller(args)))


def cmd_allow(plane, args) -> int:
    return _print_result(plane.add_allowed_party(_caller(args), args.party))


def cmd_set_rate(plane, args) -> int:
    return _print_result(plane.set_operator_commission_rate(_caller(args), args.rate))


def cmd_override_split(plane, args) -> int:
    return _print_result(
        plane.override_split(
            _caller(args),
            args.txn,
            dict(args.from_share),
            dict(args.to_share),
            args.reason,
            affected_party_id=args.party,
        )
    )


def cmd_adjust_payout(plane, args) -> int:
    result = plane.adjust_payout(_caller(args), args.party, args.original, args.new, args.reason)
    code = _print_result(result)
    if result.success:
        print(f"  difference: {fmt_amount(result.details['difference'])}")
    return code


def cmd_log(plane, args) -> int:
    if args.kind == "failsafe":
        for e in plane.recent_failsafe_events(args.limit):
            flag = " QUARANTINED" if e.quarantined else ""
            print(f"{e.occurred_at:%Y-%m-%d %H:%M:%S}  {e.severity:<8} {e.kind:<22} {e.description}{flag}")
    elif args.kind == "blocked":
        for b in plane.recent_blocked_charges(args.limit):
            print(f"{b.occurred_at:%Y-%m-%d %H:%M:%S}  {b.subject_id:<20} {fmt_amount(b.amount):>12}  {b.rule:<16} {b.reason}")
    else:
        for o in plane.recent_overrides(args.limit):
            print(f"{o.occurred_at:%Y-%m-%d %H:%M:%S}  {o.kind:<18} by {o.operator_id}: {o.original_value} -> {o.new_value}  ({o.reason})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Economic integrity control plane admin")
    parser.add_argument("--db-url", default=DEFAULT_DB_URL, help="SQLAlchemy database URL")
    parser.add_argument("--config", default=None, help="Path to a policy YAML file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    def operator_parser(name, help_text, handler):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--operator", required=True, help="Operator identity")
        p.add_argument(
            "--role",
            action="append",
            default=[],
            help="Role claim carried by the operator identity (repeatable)",
        )
        p.set_defaults(handler=handler)
        return p

    sub.add_parser("status", help="Show kill-switch status").set_defaults(handler=cmd_status)
    sub.add_parser("stats", help="Show audit statistics").set_defaults(handler=cmd_stats)

    p = operator_parser("activate", "Activate the kill switch", cmd_activate)
    p.add_argument("--reason", required=True)
    p.add_argument(
        "--component",
        action="append",
        choices=[c.value for c in SystemComponent],
        help="Component to halt (repeatable; default: all)",
    )

    operator_parser("deactivate", "Deactivate the kill switch", cmd_deactivate)

    p = operator_parser("allow", "Let a party bypass the active kill switch", cmd_allow)
    p.add_argument("--party", required=True)

    p = operator_parser("set-rate", "Set the standing operator commission rate", cmd_set_rate)
    p.add_argument("--rate", required=True, type=_decimal_arg)

    p = operator_parser("override-split", "Override the commission split of a transaction", cmd_override_split)
    p.add_argument("--txn", required=True, help="Affected transaction id")
    p.add_argument(
        "--from-share",
        action="append",
        required=True,
        type=_share_arg,
        metavar="ROLE=PCT",
        help="Share in the split being replaced (repeatable)",
    )
    p.add_argument(
        "--to-share",
        action="append",
        required=True,
        type=_share_arg,
        metavar="ROLE=PCT",
        help="Share in the replacement split (repeatable)",
    )
    p.add_argument("--reason", required=True)
    p.add_argument("--party", default=None, help="Affected party id")

    p = operator_parser("adjust-payout", "Adjust a party's payout amount", cmd_adjust_payout)
    p.add_argument("--party", required=True)
    p.add_argument("--original", required=True, type=_decimal_arg)
    p.add_argument("--new", required=True, type=_decimal_arg)
    p.add_argument("--reason", required=True)

    p = sub.add_parser("log", help="Show recent audit records")
    p.add_argument("kind", choices=["failsafe", "blocked", "overrides"])
    p.add_argument("--limit", type=int, default=20)
    p.set_defaults(handler=cmd_log)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = get_active_config(args.config)
        init_engine_from_url(args.db_url)
        create_tables()
        plane = ControlPlane(get_session_factory(), config=config)
    except (IntegrityKernelError, SQLAlchemyError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    return args.handler(plane, args)


if __name__ == "__main__":
    sys.exit(main())
