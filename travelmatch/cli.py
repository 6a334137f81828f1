from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from .services import (
    DocumentStore,
    MatchingService,
    NotFoundError,
    ProfileService,
    RecommendationService,
    RemoteOperationError,
    ValidationError,
)
from .services.store_service import USERS
from .services.recommendation_service import DESTINATIONS


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Explore travel companions, like/dislike users and browse destination recommendations."
    )
    parser.add_argument("--verbose", action="store_true", help="Enable INFO logging")
    sub = parser.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed", help="Load users and destinations from a JSON file")
    seed.add_argument("file", type=Path, help='JSON with "users" and "destinations" objects keyed by id')

    explore = sub.add_parser("explore", help="Show ranked explore candidates for a user")
    explore.add_argument("--user", required=True, help="Viewer user id")
    explore.add_argument("--page", type=int, default=1, help="Explore page (default: 1)")

    like = sub.add_parser("like", help="Like another user")
    like.add_argument("--user", required=True)
    like.add_argument("--target", required=True)

    dislike = sub.add_parser("dislike", help="Dislike another user")
    dislike.add_argument("--user", required=True)
    dislike.add_argument("--target", required=True)

    recommend = sub.add_parser("recommend", help="Destination recommendations")
    recommend.add_argument("--user", help="Viewer user id (boosts matching interests)")
    recommend.add_argument("--prompt", default="", help='e.g. "Hidden gems" or "Trending destinations"')

    return parser.parse_args(argv)


def seed(path: Path) -> None:
    data = json.loads(path.read_text(encoding="utf-8"))
    store = DocumentStore.get_instance()
    for user_id, fields in (data.get("users") or {}).items():
        fields.setdefault("userId", user_id)
        store.set_document(USERS, user_id, fields)
    for dest_id, fields in (data.get("destinations") or {}).items():
        store.set_document(DESTINATIONS, dest_id, fields)
    print(f"✅ Seeded {len(data.get('users') or {})} users and {len(data.get('destinations') or {})} destinations")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    matching = MatchingService()
    try:
        if args.command == "seed":
            seed(args.file)

        elif args.command == "explore":
            result = matching.explore(args.user, page=args.page)
            print(f"🔍 {result.total_found} candidates for '{args.user}' (page {result.page})")
            for ranked in result.candidates:
                print(f"   {ranked.score:>3}  {ranked.profile.display_name or ranked.profile.id}")
            if result.has_more:
                print("   ... more on the next page")

        elif args.command == "like":
            result = matching.apply_like(args.user, args.target)
            if result.is_match:
                print(f"🎉 It's a match! ({result.match_id})")
            else:
                print(f"👍 Liked '{args.target}'")

        elif args.command == "dislike":
            matching.apply_dislike(args.user, args.target)
            print(f"👎 Disliked '{args.target}'")

        elif args.command == "recommend":
            viewer = ProfileService().get_profile(args.user) if args.user else None
            items = RecommendationService().recommend(viewer, prompt=args.prompt)
            if not items:
                print("No destinations found for your query")
            for item in items:
                dest = item.destination
                print(f"   {dest.rating:.1f}  {dest.name}, {dest.country}  [{', '.join(dest.tags)}]")

    except (ValidationError, NotFoundError, RemoteOperationError) as e:
        raise SystemExit(f"Error: {e}")


if __name__ == "__main__":
    main()
