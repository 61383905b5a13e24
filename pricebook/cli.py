"""Command-line interface for the pricebook engine."""

from __future__ import annotations

import argparse
import json
import logging
from typing import Any, Dict, List, Optional

from .estimators import EstimateValidationError
from .lifecycle import CatalogSnapshot, ConfigurationManager
from .models import Result
from .service import CatalogUnavailable, estimate_for_user, supported_trades
from .settings import Settings, build_store
from .storage import StorageError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_STORAGE = 1
EXIT_INVALID = 2


class CommandError(Exception):
    def __init__(self, message: str, exit_code: int = EXIT_STORAGE) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Per-user material pricing and trade estimates")
    parser.add_argument("--database-url", help="Record store URL (overrides PRICEBOOK_DATABASE_URL)")
    parser.add_argument("--user", default="local", help="User id that owns the catalogs")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("trades", help="List trades with catalogs and estimators")

    catalog = commands.add_parser("catalog", help="Inspect and edit a trade catalog")
    actions = catalog.add_subparsers(dest="action", required=True)

    show = actions.add_parser("show", help="Show the catalog, seeding defaults on first use")
    show.add_argument("trade")

    add = actions.add_parser("add", help="Add a custom material")
    add.add_argument("trade")
    add.add_argument("--category", required=True)
    add.add_argument("--name", required=True)
    add.add_argument("--price", required=True, type=float)
    add.add_argument("--unit", default="")
    add.add_argument("--unit-spec", help="Package size, e.g. '200 sq ft'")

    upd = actions.add_parser("update", help="Edit a material")
    upd.add_argument("trade")
    upd.add_argument("material_id")
    upd.add_argument("--category")
    upd.add_argument("--name")
    upd.add_argument("--price", type=float)
    upd.add_argument("--unit")
    upd.add_argument("--unit-spec")

    for name, description in (
        ("archive", "Hide a material from estimates"),
        ("unarchive", "Make an archived material active again"),
        ("delete", "Delete a material permanently"),
    ):
        sub = actions.add_parser(name, help=description)
        sub.add_argument("trade")
        sub.add_argument("material_id")
        if name == "delete":
            sub.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    reset = actions.add_parser("reset", help="Drop all materials and overrides; defaults return on next use")
    reset.add_argument("trade")
    reset.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    override = commands.add_parser("override", help="Manage flat pricing overrides")
    override_actions = override.add_subparsers(dest="action", required=True)
    set_override = override_actions.add_parser("set", help="Set a pricing override")
    set_override.add_argument("trade")
    set_override.add_argument("key")
    set_override.add_argument("value", type=float)

    estimate = commands.add_parser("estimate", help="Estimate a project against your catalog")
    estimate.add_argument("trade")
    estimate.add_argument(
        "--input",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Project input; values are parsed as JSON when possible",
    )
    estimate.add_argument("--inputs-json", help="All project inputs as a JSON object")
    return parser


def parse_inputs(pairs: List[str], inputs_json: Optional[str] = None) -> Dict[str, Any]:
    inputs: Dict[str, Any] = {}
    if inputs_json:
        try:
            loaded = json.loads(inputs_json)
        except json.JSONDecodeError as exc:
            raise CommandError(f"--inputs-json is not valid JSON: {exc}", EXIT_INVALID) from exc
        if not isinstance(loaded, dict):
            raise CommandError("--inputs-json must be a JSON object", EXIT_INVALID)
        inputs.update(loaded)

    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key.strip():
            raise CommandError(f"Expected KEY=VALUE, got '{pair}'", EXIT_INVALID)
        try:
            inputs[key.strip()] = json.loads(raw)
        except json.JSONDecodeError:
            inputs[key.strip()] = raw
    return inputs


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ValueError as exc:
        parser.error(str(exc))
    if args.database_url:
        settings.database_url = args.database_url
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        manager = ConfigurationManager(build_store(settings), settings.load_trades())
        payload = _dispatch(args, manager)
    except CommandError as exc:
        print(f"error: {exc}")
        return exc.exit_code
    except EstimateValidationError as exc:
        for message in exc.errors:
            print(f"error: {message}")
        return EXIT_INVALID
    except ValueError as exc:
        print(f"error: {exc}")
        return EXIT_INVALID
    except (StorageError, CatalogUnavailable) as exc:
        logger.warning("Command failed: %s", exc)
        print(f"error: {exc}")
        return EXIT_STORAGE

    if args.json:
        print(json.dumps(payload, indent=2, default=str))
    else:
        print(_render(args, payload))
    return EXIT_OK


def _dispatch(args: argparse.Namespace, manager: ConfigurationManager) -> Dict[str, Any]:
    if args.command == "trades":
        return {
            "trades": manager.trades.trades,
            "estimators": supported_trades(),
        }

    if args.command == "estimate":
        inputs = parse_inputs(args.input, args.inputs_json)
        run = estimate_for_user(manager, args.user, args.trade, inputs)
        return run.estimate.to_dict()

    snapshot = _open(manager, args.user, args.trade)
    config_id = snapshot.configuration.id

    if args.command == "override":
        saved = _unwrap(manager.catalog.set_pricing_override(config_id, args.key, args.value))
        return saved.to_dict()

    if args.action == "show":
        return manager.catalog_view(snapshot).to_dict()
    if args.action == "add":
        metadata = {"unitSpec": args.unit_spec} if args.unit_spec else None
        added = manager.add_material(
            snapshot.configuration,
            category=args.category,
            name=args.name,
            price=args.price,
            unit=args.unit,
            metadata=metadata,
        )
        return _unwrap(added).to_dict()
    if args.action == "reset":
        _confirm(args, f"Reset your {args.trade} catalog? All custom materials and pricing will be lost.")
        _unwrap(manager.reset_configuration(config_id))
        return {"reset": args.trade.lower(), "configuration_id": config_id}

    if snapshot.material(args.material_id) is None:
        raise CommandError(f"No material {args.material_id} in your {args.trade} catalog", EXIT_INVALID)

    if args.action == "update":
        fields = {
            key: value
            for key, value in (
                ("category", args.category),
                ("name", args.name),
                ("price", args.price),
                ("unit", args.unit),
            )
            if value is not None
        }
        if args.unit_spec is not None:
            fields["metadata"] = {**snapshot.material(args.material_id).metadata, "unitSpec": args.unit_spec}
        if not fields:
            raise CommandError("Nothing to update", EXIT_INVALID)
        return _unwrap(manager.catalog.update_material(args.material_id, **fields)).to_dict()
    if args.action == "archive":
        return _unwrap(manager.catalog.archive_material(args.material_id)).to_dict()
    if args.action == "unarchive":
        return _unwrap(manager.catalog.unarchive_material(args.material_id)).to_dict()
    if args.action == "delete":
        _confirm(args, f"Delete '{snapshot.material(args.material_id).name}'? This cannot be undone.")
        _unwrap(manager.catalog.delete_material(args.material_id))
        return {"deleted": args.material_id}
    raise CommandError(f"Unknown action '{args.action}'", EXIT_INVALID)


def _open(manager: ConfigurationManager, user_id: str, trade: str) -> CatalogSnapshot:
    if trade not in manager.trades:
        raise CommandError(f"Unknown trade '{trade}'. Available trades: {', '.join(manager.trades.trades)}", EXIT_INVALID)
    return _unwrap(manager.open_catalog(user_id, trade))


def _confirm(args: argparse.Namespace, question: str) -> None:
    if args.yes:
        return
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        answer = ""
    if answer.strip().lower() not in ("y", "yes"):
        raise CommandError("Cancelled", EXIT_INVALID)


def _unwrap(result: Result[Any]) -> Any:
    if not result:
        code = EXIT_STORAGE if isinstance(result.cause, StorageError) else EXIT_INVALID
        raise CommandError(result.error or "Operation failed", code)
    return result.data


def _render(args: argparse.Namespace, payload: Dict[str, Any]) -> str:
    if args.command == "trades":
        lines = ["Trades:"]
        for trade in payload["trades"]:
            marker = " (estimates)" if trade in payload["estimators"] else ""
            lines.append(f"  {trade}{marker}")
        return "\n".join(lines)

    if args.command == "estimate":
        lines = [f"{payload['trade'].title()} estimate"]
        for item in payload["line_items"]:
            lines.append(
                f"  {item['label']:<40} {item['quantity']:>10.2f} {item['unit']:<12}"
                f" @ {item['unit_price']:>9.2f} = {item['cost']:>10.2f}"
            )
        lines.append(f"  {'Total':<40} {payload['total']:>47.2f}")
        for note in payload["assumptions"]:
            lines.append(f"  [{note['severity'].upper()}] {note['message']}")
        return "\n".join(lines)

    if args.command == "catalog" and args.action == "show":
        lines = [f"{payload['label']} catalog ({payload['configuration']['id']})"]
        for category in payload["categories"]:
            lines.append(f"{category['label']}:")
            for row in category["defaults"]:
                flag = " *" if row["overridden"] else ""
                lines.append(f"  {row['name']:<40} {row['price']:>9.2f} {row['unit']}{flag}")
            for material in category["custom"]:
                lines.append(f"  {material['name']:<40} {material['price']:>9.2f} {material['unit']} (custom)")
            for material in category["archived"]:
                lines.append(f"  {material['name']:<40} {material['price']:>9.2f} {material['unit']} (archived)")
        for key, value in payload["overrides"].items():
            lines.append(f"Override {key}: {value:g}")
        return "\n".join(lines)

    return json.dumps(payload, indent=2, default=str)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
