#!/usr/bin/env python3
"""CLI script to run the catalog pipeline once and write products plus the run report as JSON."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from adapters.config import load_env

# Load environment before project modules read their settings at import time
load_env()

from api.catalog.auth import catalog_auth  # noqa: E402
from api.catalog.core import CatalogService  # noqa: E402
from api.catalog.errors import CatalogError  # noqa: E402
from api.catalog.fetch_strategy import CatalogFetchStrategySelector  # noqa: E402
from api.catalog.media_index import MediaCatalogBuilder  # noqa: E402
from api.catalog.models import ProductsResponse  # noqa: E402
from api.catalog.pagination import Paginator, SchedulingPolicy  # noqa: E402
from api.catalog.pipeline import TransformPipeline  # noqa: E402
from api.catalog.resolver import ReferenceResolver  # noqa: E402
from utils.get_logger import get_logger, set_level  # noqa: E402

logger = get_logger(__name__)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fetch the product catalog, resolve media references and dump it as JSON.",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Output file (default: stdout).",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Page ceiling per paginated query (default: CATALOG_MAX_PAGES or 500).",
    )
    parser.add_argument("--indent", type=int, default=2, help="JSON indent (default: 2).")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")
    return parser.parse_args()


async def main() -> int:
    args = _parse_args()
    if args.verbose:
        set_level("DEBUG")

    if not catalog_auth.shop_url or not catalog_auth.access_token:
        print(
            "SHOPIFY_SHOP_URL and SHOPIFY_ACCESS_TOKEN must be set. Source config/local.env or export them.",
            file=sys.stderr,
        )
        return 1

    policy = SchedulingPolicy.from_env()
    if args.max_pages is not None:
        policy = SchedulingPolicy(
            page_delay=policy.page_delay,
            item_delay=policy.item_delay,
            throttle_backoff=policy.throttle_backoff,
            max_pages=args.max_pages,
            max_throttle_retries=policy.max_throttle_retries,
        )

    service = CatalogService.from_auth(catalog_auth)
    paginator = Paginator(service, policy)
    pipeline = TransformPipeline(
        media_builder=MediaCatalogBuilder(paginator),
        selector=CatalogFetchStrategySelector(service, paginator),
        resolver=ReferenceResolver(service),
        shop_url=service.shop_url,
    )

    try:
        result = await pipeline.run()
    except CatalogError as e:
        logger.error(f"Catalog run failed: {e}")
        return 1

    response = ProductsResponse(
        products=result.products,
        total_products=len(result.products),
        report=result.report.to_dict(mode="json"),
    )
    text = response.to_json(indent=args.indent)
    if args.output:
        args.output.write_text(text + "\n", encoding="utf-8")
        logger.info(f"Wrote {len(result.products)} products to {args.output}")
    else:
        print(text)

    summary = result.report.summary()
    logger.info(f"Run summary: {summary}")
    if summary["isDegraded"]:
        logger.warning("Run completed with degraded items; see the report for details")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
