from __future__ import annotations

import argparse
import json
import sys
import time
from datetime import date

from services.errors import TrackerError
from services.logs import configure_logging
from services.rule_templates import build_template_payload, list_rule_templates
from services.workspace import Workspace

LEDGERS = ("income", "expense", "investment")


def _jsonable(value):
    if hasattr(value, "to_document"):
        return value.to_document()
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


def _emit(payload) -> None:
    print(json.dumps(_jsonable(payload), indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mtrack", description="Personal finance tracker backed by CSV/JSON files")
    parser.add_argument("--data-dir", default=None, help="Directory holding the ledgers (default: ~/Documents/MTrack)")
    parser.add_argument("--no-automation", action="store_true", help="Skip the startup automation pass")
    parser.add_argument("--log-level", default=None, help="Log level, e.g. INFO or DEBUG")
    sub = parser.add_subparsers(dest="cmd")

    records = sub.add_parser("records").add_subparsers(dest="action")
    r_list = records.add_parser("list")
    r_list.add_argument("ledger", choices=LEDGERS)
    r_add = records.add_parser("add")
    r_add.add_argument("ledger", choices=LEDGERS)
    r_add.add_argument("amount", type=float)
    r_add.add_argument("category")
    r_add.add_argument("--date", default=None, help="ISO date, defaults to today")
    r_add.add_argument("--description", default="")
    r_add.add_argument("--investment-type", default=None)
    r_del = records.add_parser("delete")
    r_del.add_argument("ledger", choices=LEDGERS)
    r_del.add_argument("id")

    rules = sub.add_parser("rules").add_subparsers(dest="action")
    rules.add_parser("list")
    rules.add_parser("templates")
    ru_add = rules.add_parser("add")
    ru_add.add_argument("name")
    ru_add.add_argument("type", choices=LEDGERS)
    ru_add.add_argument("amount", type=float)
    ru_add.add_argument("day_of_month", type=int)
    ru_add.add_argument("--category", default="")
    ru_add.add_argument("--description", default="")
    ru_add.add_argument("--frequency", default="monthly", choices=("monthly", "quarterly", "yearly"))
    ru_add.add_argument("--start-date", default=None)
    ru_add.add_argument("--expiry-date", default=None)
    ru_tpl = rules.add_parser("from-template")
    ru_tpl.add_argument("template")
    ru_tpl.add_argument("--amount", type=float, required=True)
    ru_tpl.add_argument("--day", type=int, default=None)
    ru_del = rules.add_parser("delete")
    ru_del.add_argument("id")

    goals = sub.add_parser("goals").add_subparsers(dest="action")
    goals.add_parser("list")
    g_add = goals.add_parser("add")
    g_add.add_argument("name")
    g_add.add_argument("target_amount", type=float)
    g_add.add_argument("deadline")
    g_alloc = goals.add_parser("allocate")
    g_alloc.add_argument("id")
    g_alloc.add_argument("amount", type=float)
    g_done = goals.add_parser("complete")
    g_done.add_argument("id")

    settings = sub.add_parser("settings").add_subparsers(dest="action")
    settings.add_parser("show")
    s_set = settings.add_parser("set")
    s_set.add_argument("--currency", default=None)
    s_set.add_argument("--locale", default=None)
    s_set.add_argument("--theme", default=None)

    sub.add_parser("run-automation")
    sub.add_parser("summary")
    exp = sub.add_parser("export")
    exp.add_argument("dest")
    imp = sub.add_parser("import")
    imp.add_argument("src")
    serve = sub.add_parser("serve")
    serve.add_argument("--interval-minutes", type=int, default=60)
    return parser


def _records(ws: Workspace, args):
    if args.action == "list":
        return ws.get_records(args.ledger)
    if args.action == "add":
        payload = {
            "date": args.date or date.today().isoformat(),
            "amount": args.amount,
            "category": args.category,
            "description": args.description,
            "type": args.ledger,
            "investmentType": args.investment_type,
        }
        return ws.add_record(args.ledger, payload)
    if args.action == "delete":
        return ws.delete_record(args.ledger, args.id)
    return None


def _rules(ws: Workspace, args):
    if args.action == "list":
        return ws.get_rules()
    if args.action == "templates":
        return list_rule_templates()
    if args.action == "add":
        payload = {
            "name": args.name,
            "type": args.type,
            "amount": args.amount,
            "frequency": args.frequency,
            "dayOfMonth": args.day_of_month,
            "category": args.category,
            "description": args.description,
            "startDate": args.start_date or date.today().isoformat(),
            "expiryDate": args.expiry_date,
        }
        return ws.add_rule(payload)
    if args.action == "from-template":
        return ws.add_rule(build_template_payload(args.template, amount=args.amount, day_of_month=args.day))
    if args.action == "delete":
        return ws.delete_rule(args.id)
    return None


def _goals(ws: Workspace, args):
    if args.action == "list":
        return ws.get_goals()
    if args.action == "add":
        return ws.add_goal({"name": args.name, "targetAmount": args.target_amount, "deadline": args.deadline})
    if args.action == "allocate":
        return ws.allocate_to_goal(args.id, args.amount)
    if args.action == "complete":
        return ws.complete_goal_purchase(args.id)
    return None


def _settings(ws: Workspace, args):
    if args.action == "set":
        changes = {"currency": args.currency, "currencyLocale": args.locale, "theme": args.theme}
        return ws.update_settings({k: v for k, v in changes.items() if v is not None})
    return ws.get_settings()


def _serve(ws: Workspace, args) -> None:
    scheduler = ws.start_scheduler(minutes=args.interval_minutes)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.shutdown(wait=False)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.cmd:
        parser.print_help()
        return 1

    configure_logging(args.log_level)
    startup_pass = not args.no_automation and args.cmd != "run-automation"
    handlers = {"records": _records, "rules": _rules, "goals": _goals, "settings": _settings}
    try:
        ws = Workspace.open(args.data_dir, run_automation=startup_pass)
        if args.cmd in handlers:
            result = handlers[args.cmd](ws, args)
        elif args.cmd == "run-automation":
            result = {"processed": ws.run_automation()}
        elif args.cmd == "summary":
            result = ws.summary()
        elif args.cmd == "export":
            result = {"exported": ws.export_data(args.dest)}
        elif args.cmd == "import":
            result = ws.import_data(args.src)
        else:
            _serve(ws, args)
            return 0
    except (TrackerError, KeyError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    _emit(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
