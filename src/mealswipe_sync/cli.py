from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import AppConfig, load_config
from .errors import CredentialStoreError, ValidationError
from .logging_config import configure_logging
from .models import AccountSnapshot
from .portal.parser import AccountDataParser
from .service import MealSwipeDataService
from .util.money import count_to_int, format_money, money_to_decimal, usage_percent


logger = logging.getLogger("mealswipe_sync")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mealswipe-sync")
    p.add_argument(
        "--env-file",
        default=".env",
        help="Path to a dotenv file (default: .env). If missing, env vars must already be set.",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    login = sub.add_parser("login", help="Save campus card credentials to the OS keyring and fetch balances")
    login.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")
    login.add_argument(
        "--username",
        default="",
        help="Portal username (default: CAMPUS_CARD_USERNAME). The password is read from CAMPUS_CARD_PASSWORD or prompted.",
    )
    login.add_argument("--json", action="store_true", help="Print the snapshot as JSON")

    logout = sub.add_parser("logout", help="Remove stored credentials from the OS keyring")
    logout.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")

    show = sub.add_parser("show", help="Fetch and print balances using the stored credentials")
    show.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")
    show.add_argument("--json", action="store_true", help="Print the snapshot as JSON")

    parse_html = sub.add_parser(
        "parse-html",
        help="Parse a saved account page (e.g. from data/debug/) offline. No network, no credentials.",
    )
    parse_html.add_argument("--file", required=True, help="Path to the saved HTML file")
    parse_html.add_argument("--json", action="store_true", help="Print the snapshot as JSON")
    return p


def _money_or_none(raw: str) -> Optional[Decimal]:
    try:
        return money_to_decimal(raw)
    except ValueError:
        logger.debug("Unrecognized money value %r; showing it as-is.", raw)
        return None


def _format_snapshot(snapshot: AccountSnapshot) -> str:
    plan = snapshot.plan
    lines: list[str] = []
    lines.append(f"Plan:           {plan.name if plan else '(unknown)'}")

    if snapshot.meal_swipes is not None:
        meals = count_to_int(snapshot.meal_swipes)
        if plan:
            pct = usage_percent(meals, plan.total_meals)
            lines.append(f"Meal swipes:    {meals} of {plan.total_meals} ({pct:.1f}%)")
        else:
            lines.append(f"Meal swipes:    {meals}")

    if snapshot.dining_dollars is not None:
        dd = _money_or_none(snapshot.dining_dollars)
        if plan and dd is not None:
            pct = usage_percent(dd, plan.total_dining_dollars)
            lines.append(
                f"Dining dollars: {format_money(dd)} of {format_money(plan.total_dining_dollars)} ({pct:.1f}%)"
            )
        else:
            lines.append(f"Dining dollars: {snapshot.dining_dollars}")

    if snapshot.guest_swipes is not None:
        guest = count_to_int(snapshot.guest_swipes)
        total = f" of {plan.total_guest_swipes}" if plan else ""
        lines.append(f"Guest swipes:   {guest}{total}")

    if snapshot.lion_bucks is not None:
        lines.append(f"Lion Bucks:     {snapshot.lion_bucks}")

    if not snapshot.has_balances():
        lines.append("(no balances found on the account page)")

    if snapshot.transactions:
        lines.append("")
        lines.append("Recent transactions:")
        for t in snapshot.transactions:
            lines.append(f"  {t.date} {t.time}  {t.description}  [{t.account}]  {t.amount}")
    return "\n".join(lines)


def _print_snapshot(snapshot: AccountSnapshot, *, as_json: bool) -> None:
    if as_json:
        print(snapshot.model_dump_json(indent=2))
    else:
        print(_format_snapshot(snapshot))


def _build_service(cfg: AppConfig) -> MealSwipeDataService:
    return MealSwipeDataService.from_config(cfg)


async def _login(cfg: AppConfig, *, username: str, as_json: bool) -> int:
    username = username or cfg.credentials.username
    if not username:
        username = input("Username: ").strip()
    password = cfg.credentials.password or getpass.getpass("Password: ")

    svc = _build_service(cfg)
    ok = await svc.login(username, password)
    if not ok or svc.snapshot is None:
        logger.error("Login failed: %s", svc.last_error or "unknown error")
        return 1
    _print_snapshot(svc.snapshot, as_json=as_json)
    return 0


async def _logout(cfg: AppConfig) -> int:
    svc = _build_service(cfg)
    await svc.logout()
    return 0


async def _show(cfg: AppConfig, *, as_json: bool) -> int:
    svc = _build_service(cfg)
    ok = await svc.restore()
    if svc.credentials is None:
        logger.error("No stored credentials. Run `mealswipe-sync login` first.")
        return 1
    if not ok or svc.snapshot is None:
        logger.error("Fetch failed: %s", svc.last_error or "unknown error")
        return 1
    _print_snapshot(svc.snapshot, as_json=as_json)
    return 0


def _parse_html(path: str, *, as_json: bool) -> int:
    p = Path(path)
    if not p.exists():
        raise SystemExit(f"File not found: {p}")
    snapshot = AccountDataParser().parse(p.read_text(encoding="utf-8", errors="replace"))
    if snapshot is None:
        logger.error("No account tables found in %s", p)
        return 1
    _print_snapshot(snapshot, as_json=as_json)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    env_path = Path(args.env_file)
    if env_path.exists():
        load_dotenv(env_path)

    # Default logging: can be overridden once config is loaded.
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    if args.cmd == "parse-html":
        return _parse_html(args.file, as_json=args.json)

    cfg = load_config(args.config)
    configure_logging(level=cfg.logging.level, file_path=cfg.logging.file_path or None)

    try:
        if args.cmd == "login":
            return asyncio.run(_login(cfg, username=args.username, as_json=args.json))
        if args.cmd == "logout":
            return asyncio.run(_logout(cfg))
        if args.cmd == "show":
            return asyncio.run(_show(cfg, as_json=args.json))
    except ValidationError as e:
        logger.error("%s", e)
        return 2
    except CredentialStoreError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted.")
        return 130

    raise SystemExit(f"Unknown command: {args.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
