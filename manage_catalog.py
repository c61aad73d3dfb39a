#!/usr/bin/env python3
"""
Catalog ranking CLI for the prompt discovery engine.
Ranks a JSON catalog export by trending score or recommendation relevance.
"""

import sys
import argparse
from datetime import datetime

from discovery.core.catalog import index_by_id, load_catalog, read_catalog_records, validate_catalog
from discovery.core.config import load_recommendation_config, load_trending_config
from discovery.core.models import UserHistory, RecommendationPreferences
from discovery.core.monitoring import init_sentry, init_structured_logging
from discovery.services.recommendations import get_for_you_recommendations, get_related_recommendations
from discovery.services.trending import get_trending_prompts, get_trending_prompts_with_scores


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    init_structured_logging("DEBUG" if verbose else None)


def _parse_now(value):
    if not value:
        return None
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def _positive_int(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid --limit value: {value}")
    if number <= 0:
        raise argparse.ArgumentTypeError("Invalid --limit value. Provide a positive number.")
    return number


def _split_ids(value):
    return [v.strip() for v in (value or '').split(',') if v.strip()]


def _lookup(catalog, ids):
    found = []
    for item_id in ids:
        if item_id in catalog:
            found.append(catalog[item_id])
        else:
            print(f"! Unknown item id: {item_id}")
    return found


def _print_recommendations(recommendations):
    if not recommendations:
        print("No recommendations found")
        return
    for i, rec in enumerate(recommendations, 1):
        print(f"{i}. {rec.item.title or rec.item.id} [{rec.item.id}] score={rec.score:.4f}")
        for reason in rec.reasons:
            print(f"   - {reason}")


def trending_command(args):
    """Show trending prompts command."""
    try:
        items = load_catalog(args.catalog)
        now = _parse_now(args.now)

        if args.scores:
            ranked = get_trending_prompts_with_scores(
                items, limit=args.limit, category=args.category, now=now, config=load_trending_config()
            )
            for i, (item, score) in enumerate(ranked, 1):
                c = score.components
                print(f"{i}. {item.title or item.id} [{item.id}] total={score.total_score:.4f}")
                print(f"   views={c.view_score:.3f} copies={c.copy_score:.3f} saves={c.save_score:.3f} "
                      f"rating={c.rating_score:.3f} freshness={c.freshness_score:.3f}")
            return 0

        ranked = get_trending_prompts(
            items,
            limit=args.limit,
            min_score=args.min_score,
            category=args.category,
            exclude_ids=_split_ids(args.exclude),
            now=now,
            config=load_trending_config(),
        )
        if not ranked:
            print("No trending prompts found")
            return 0
        for i, item in enumerate(ranked, 1):
            print(f"{i}. {item.title or item.id} [{item.id}] ({item.category})")

    except (OSError, ValueError) as e:
        print(f"✗ Trending failed: {e}")
        return 1

    return 0


def related_command(args):
    """Show prompts related to one item command."""
    try:
        items = load_catalog(args.catalog)
        catalog = index_by_id(items)
        if args.item_id not in catalog:
            print(f"✗ Unknown item id: {args.item_id}")
            return 1

        recommendations = get_related_recommendations(
            catalog[args.item_id],
            items,
            limit=args.limit,
            exclude_ids=_split_ids(args.exclude),
            min_score=args.min_score,
            config=load_recommendation_config(),
        )
        _print_recommendations(recommendations)

    except (OSError, ValueError) as e:
        print(f"✗ Related lookup failed: {e}")
        return 1

    return 0


def for_you_command(args):
    """Show personalized recommendations command."""
    try:
        items = load_catalog(args.catalog)
        catalog = index_by_id(items)

        preferences = None
        if args.prefer_tags or args.exclude_tags:
            preferences = RecommendationPreferences(
                tags=_split_ids(args.prefer_tags),
                exclude_tags=_split_ids(args.exclude_tags),
            )

        history = UserHistory(
            viewed=_lookup(catalog, _split_ids(args.viewed)),
            saved=_lookup(catalog, _split_ids(args.saved)),
            runs=_lookup(catalog, _split_ids(args.runs)),
            preferences=preferences,
        )
        recommendations = get_for_you_recommendations(
            history, items, limit=args.limit, config=load_recommendation_config()
        )
        _print_recommendations(recommendations)

    except (OSError, ValueError) as e:
        print(f"✗ For-you lookup failed: {e}")
        return 1

    return 0


def validate_command(args):
    """Validate catalog records command."""
    print(f"Validating catalog: {args.catalog}")

    try:
        items, errors = validate_catalog(read_catalog_records(args.catalog))
        print(f"✓ Valid records: {len(items)}")
        if errors:
            print(f"✗ Invalid records: {len(errors)}")
            for error in errors:
                print(f"  - {error}")
            return 1

    except (OSError, ValueError) as e:
        print(f"✗ Validation failed: {e}")
        return 1

    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        description="Prompt discovery ranking tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s catalog.json trending --limit 10
  %(prog)s catalog.json trending --scores --category automation
  %(prog)s catalog.json related prompt-42
  %(prog)s catalog.json for-you --saved prompt-1 --viewed prompt-2,prompt-3
  %(prog)s catalog.json validate
        """
    )

    parser.add_argument('catalog', help='Path to a JSON catalog export')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    trending_parser = subparsers.add_parser('trending', help='Rank prompts by trending score')
    trending_parser.add_argument('--limit', type=_positive_int, help='Maximum number of results')
    trending_parser.add_argument('--category', help='Only rank prompts in this category')
    trending_parser.add_argument('--min-score', type=float, help='Drop prompts scoring below this')
    trending_parser.add_argument('--exclude', help='Comma-separated ids to leave out')
    trending_parser.add_argument('--now', help='Reference time (ISO-8601) for freshness')
    trending_parser.add_argument('--scores', action='store_true', help='Show score breakdowns')
    trending_parser.set_defaults(func=trending_command)

    related_parser = subparsers.add_parser('related', help='Prompts related to one prompt')
    related_parser.add_argument('item_id', help='Source prompt id')
    related_parser.add_argument('--limit', type=_positive_int, help='Maximum number of results')
    related_parser.add_argument('--exclude', help='Comma-separated ids to leave out')
    related_parser.add_argument('--min-score', type=float, help='Keep scores strictly above this')
    related_parser.set_defaults(func=related_command)

    for_you_parser = subparsers.add_parser('for-you', help='Personalized recommendations')
    for_you_parser.add_argument('--viewed', help='Comma-separated viewed prompt ids')
    for_you_parser.add_argument('--saved', help='Comma-separated saved prompt ids')
    for_you_parser.add_argument('--runs', help='Comma-separated run prompt ids')
    for_you_parser.add_argument('--prefer-tags', help='Comma-separated tags to boost')
    for_you_parser.add_argument('--exclude-tags', help='Comma-separated tags to hide')
    for_you_parser.add_argument('--limit', type=_positive_int, help='Maximum number of results')
    for_you_parser.set_defaults(func=for_you_command)

    validate_parser = subparsers.add_parser('validate', help='Check catalog records')
    validate_parser.set_defaults(func=validate_command)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)
    init_sentry()

    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
