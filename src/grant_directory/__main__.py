import argparse
import json

from grant_directory.context import get_context
from grant_directory.logs import configure_logging
from grant_directory.paths import build_listing_path
from grant_directory.search.facets import get_facet_sets
from grant_directory.search.filters import DEFAULT_PAGE_SIZE, normalize_filters
from grant_directory.search.query import search_listings


def build_parser():
    parser = argparse.ArgumentParser(
        prog="grant_directory",
        description="Grant directory search CLI",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, etc.)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit log records as JSON lines on stderr",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Run a listing search and print JSON")
    search.add_argument("--keyword", default="")
    search.add_argument("--category", default="")
    search.add_argument("--state", default="")
    search.add_argument("--city", default="")
    search.add_argument("--agency", default="")
    search.add_argument("--agency-slug", default="")
    search.add_argument("--jurisdiction", choices=("federal", "state", "local"), default=None)
    search.add_argument("--has-apply-link", action="store_true")
    search.add_argument("--page", type=int, default=1)
    search.add_argument("--page-size", type=int, default=DEFAULT_PAGE_SIZE)

    sub.add_parser("facets", help="Print category/state/agency facets as JSON")

    path = sub.add_parser("path", help="Print the canonical path for a listing")
    path.add_argument("--id", required=True)
    path.add_argument("--title", default="")
    path.add_argument("--state", default=None)
    path.add_argument("--city", default=None)

    jur = sub.add_parser("jurisdiction", help="Classify a state/city pair")
    jur.add_argument("--state", default=None)
    jur.add_argument("--city", default=None)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, json_lines=args.log_json)

    ctx = get_context()

    if args.command == "search":
        filters = normalize_filters(
            {
                "query": args.keyword,
                "category": args.category,
                "state": args.state,
                "city": args.city,
                "agency": args.agency,
                "agency_slug": args.agency_slug,
                "jurisdiction": args.jurisdiction,
                "has_apply_link": args.has_apply_link,
                "page": args.page,
                "page_size": args.page_size,
            }
        )
        result = search_listings(ctx.backend, filters, resolver=ctx.resolver)
        print(json.dumps(result.model_dump()))
    elif args.command == "facets":
        print(json.dumps(get_facet_sets(ctx.backend, resolver=ctx.resolver).model_dump()))
    elif args.command == "path":
        listing = {"id": args.id, "title": args.title, "state": args.state, "city": args.city}
        print(build_listing_path(listing, ctx.resolver))
    elif args.command == "jurisdiction":
        location = ctx.resolver.infer_jurisdiction(args.state, args.city)
        print(json.dumps(location.as_dict()))
    return 0


def _safe_main():
    try:
        main()
    except SystemExit:
        raise
    except Exception as exc:
        print(json.dumps({"error": str(exc)}))
        raise SystemExit(1)


if __name__ == "__main__":
    _safe_main()
