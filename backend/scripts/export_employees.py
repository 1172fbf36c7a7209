#!/usr/bin/env python3
"""Export the reconciled employee listing as JSON.

Runs the same read path as ``GET /api/employees`` against the configured
Cosmos DB account (read-only). Run from the backend/ directory:

    python3 scripts/export_employees.py [--counts] [--output FILE] [--verbose]

With ``--counts`` only the number of documents per candidate container is
printed, which helps when tracking down where legacy employee data lives.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from activity_log.core.config import Settings  # noqa: E402
from activity_log.core.document_store import CosmosDocumentStore, DocumentStore  # noqa: E402
from activity_log.core.identity_provider import GraphIdentityProvider  # noqa: E402
from activity_log.models.employee import Employee  # noqa: E402
from activity_log.services.employee_collections import CollectionResolver  # noqa: E402
from activity_log.services.employee_service import EmployeeService  # noqa: E402

logger = logging.getLogger(__name__)


async def collection_counts(store: DocumentStore, resolver: CollectionResolver) -> dict[str, int]:
    counts: dict[str, int] = {}
    for collection in resolver.read_candidates:
        counts[collection] = await store.count(collection)
    return counts


def render_employees(employees: list[Employee]) -> str:
    payload: dict[str, Any] = {"employees": [e.model_dump(by_alias=True) for e in employees]}
    return json.dumps(payload, ensure_ascii=False, indent=2)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Export the reconciled employee listing from Cosmos DB",
    )
    parser.add_argument(
        "--counts",
        action="store_true",
        help="Only print the number of documents per candidate container",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Write JSON to this file instead of stdout",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    return parser.parse_args(argv)


async def export(args: argparse.Namespace) -> None:
    settings = Settings()
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")

    store = CosmosDocumentStore()
    identity_provider = GraphIdentityProvider()
    await store.initialize(settings)
    await identity_provider.initialize(settings)
    if not store.initialized:
        logger.error("Cosmos DB is not configured. Exiting.")
        return

    resolver = CollectionResolver(settings.EMPLOYEE_COLLECTION)
    try:
        if args.counts:
            output = json.dumps(await collection_counts(store, resolver), indent=2)
        else:
            service = EmployeeService(store, identity_provider, resolver)
            employees = await service.list_employees()
            logger.info("Exporting %d employees", len(employees))
            output = render_employees(employees)
    finally:
        await store.close()
        await identity_provider.close()

    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(output + "\n")
        logger.info("Wrote %s", args.output)
    else:
        print(output)


def main() -> None:
    args = parse_args()
    asyncio.run(export(args))


if __name__ == "__main__":
    main()
