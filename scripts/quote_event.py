#!/usr/bin/env python3
"""
Quote an event from a YAML file.

Loads the active pricing configuration, builds the event's sections as
draft rows, and prints the totals snapshot and payment split as JSON.
With ``--database-url`` the rows, snapshot and payment terms are
committed to that database; otherwise in-memory stores are used.

Usage:
    python3 scripts/quote_event.py scripts/sample_event.yaml
    python3 scripts/quote_event.py event.yaml --config my_pricing.yaml
    python3 scripts/quote_event.py event.yaml --database-url sqlite:///quotes.db
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import date
from pathlib import Path

import yaml

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from pricing_config import get_active_config  # noqa: E402
from pricing_kernel.domain import CatalogItem, DictCatalog, Money, row_type_for  # noqa: E402
from pricing_kernel.domain.numeric import to_decimal, to_quantity  # noqa: E402
from pricing_kernel.logging_config import configure_logging  # noqa: E402
from pricing_services import (  # noqa: E402
    EventPricingService,
    InMemoryPaymentTermsStore,
    InMemoryRowStore,
    InMemorySnapshotStore,
)
from pricing_services.pricing_service import EDITABLE_SECTIONS  # noqa: E402


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Quote a catering event.")
    parser.add_argument("event_file", type=Path, help="Event YAML file")
    parser.add_argument("--config", type=Path, default=None, help="Pricing config YAML")
    parser.add_argument("--database-url", default=None, help="Commit to this database")
    parser.add_argument("--verbose", action="store_true", help="Emit JSON logs on stderr")
    return parser.parse_args(argv)


def _as_date(value) -> date | None:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _catalog(entries: list[dict]) -> DictCatalog:
    return DictCatalog([
        CatalogItem(
            item_id=str(entry["item_id"]),
            unit_cost=to_decimal(entry.get("unit_cost")),
            unit_price=to_decimal(entry["unit_price"]) if entry.get("unit_price") is not None else None,
            name=str(entry.get("name", "")),
        )
        for entry in entries
    ])


def _quote(event: dict, config, stores: dict) -> dict:
    event_id = str(event.get("event_id") or "")
    budget = event.get("budget_total")
    service = EventPricingService(
        event_id,
        config,
        _catalog(event.get("catalog") or []),
        stores["rows"],
        snapshot_store=stores["snapshots"],
        section_total_store=stores.get("section_totals"),
        payment_terms_store=stores["payment_terms"],
        people_count=to_quantity(event.get("people_count")) or None,
        budget_total=Money.of(to_decimal(budget), config.currency) if budget is not None else None,
    )
    service.load()

    sections = event.get("sections") or {}
    for section in EDITABLE_SECTIONS:
        row_type = row_type_for(section)
        for payload in sections.get(section) or []:
            service.add_row(section, row_type.from_payload("", payload))

    payment = event.get("payment") or {}
    splitter = service.payment
    if payment.get("deposit_percent") is not None:
        splitter.set_deposit_percent(to_decimal(payment["deposit_percent"]))
    if payment.get("deposit_amount") is not None:
        splitter.set_deposit_amount(to_decimal(payment["deposit_amount"]))
    splitter.set_deposit_due_date(_as_date(payment.get("deposit_due_date")))
    splitter.set_balance_due_date(_as_date(payment.get("balance_due_date")))

    report = service.commit()
    return {
        "snapshot": report.snapshot.to_dict() if report.snapshot else None,
        "payment": report.payment.to_dict() if report.payment else None,
        "committed": report.ok,
        "failures": [asdict(f) for f in report.failures],
    }


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(level=logging.INFO if args.verbose else logging.WARNING)

    with open(args.event_file) as f:
        event = yaml.safe_load(f) or {}
    config = get_active_config(args.config)

    if args.database_url:
        from pricing_kernel.db import create_tables, init_engine_from_url, session_scope
        from pricing_services import (
            SqlPaymentTermsStore,
            SqlRowStore,
            SqlSectionTotalStore,
            SqlSnapshotStore,
        )

        init_engine_from_url(args.database_url)
        create_tables()
        with session_scope() as session:
            output = _quote(event, config, {
                "rows": SqlRowStore(session),
                "snapshots": SqlSnapshotStore(session),
                "section_totals": SqlSectionTotalStore(session),
                "payment_terms": SqlPaymentTermsStore(session),
            })
    else:
        output = _quote(event, config, {
            "rows": InMemoryRowStore(),
            "snapshots": InMemorySnapshotStore(),
            "payment_terms": InMemoryPaymentTermsStore(),
        })

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0 if output["committed"] else 1


if __name__ == "__main__":
    sys.exit(main())
