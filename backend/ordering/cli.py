import argparse
import json
import sys
from pathlib import Path
from typing import Any

from ordering.schemas.order import OrderDraftPayload
from ordering.services.order_draft import OrderDraft, quote_draft


def _load_json(raw_path: str) -> Any:
    path = Path(raw_path)
    if not path.is_file():
        raise SystemExit(f"Input file not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON in {path}: {exc}") from exc


def quote_command(draft_path: str, offers_path: str | None) -> dict[str, Any]:
    draft = OrderDraft.from_payload(OrderDraftPayload.model_validate(_load_json(draft_path)))
    raw_offers = _load_json(offers_path) if offers_path else []
    if isinstance(raw_offers, dict):
        raw_offers = raw_offers.get("data") or []
    quote = quote_draft(draft, raw_offers)
    return quote.model_dump(mode="json")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Order quoting utilities")
    subparsers = parser.add_subparsers(dest="command")
    quote = subparsers.add_parser("quote", help="Compute discount, delivery fee and total for a draft")
    quote.add_argument("draft", help="Path to the order draft JSON")
    quote.add_argument("--offers", help="Path to the offers JSON (list or {\"data\": [...]})")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "quote":
        result = quote_command(args.draft, args.offers)
        json.dump(result, sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")
        return 0
    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
