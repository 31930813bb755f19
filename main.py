#!/usr/bin/env python3
"""
Live Auction Lobby - Main Launcher

Run the sealed-bid auction lobby server.
"""

import argparse
import logging
import sys

from fastapi import FastAPI

from shared.config import ADMIN_POLICIES, LOG_LEVEL, get_policy_name


GAMES = {
    "live_auction": {
        "name": "Live Sealed-Bid Auction",
        "description": "Admin-called timed rounds with hidden bids revealed at the deadline",
        "module": "games.live_auction"
    },
}


def list_games():
    """Print available games and admin policies."""
    print("\nAvailable Games:")
    print("-" * 50)
    for game_id, info in GAMES.items():
        print(f"  {game_id:15} - {info['name']}")
        print(f"                    {info['description']}")
    print("\nAdmin Policies:")
    print("-" * 50)
    for policy, description in ADMIN_POLICIES.items():
        print(f"  {policy:15} - {description}")
    print()


def create_app(policy: str = None) -> FastAPI:
    """Create the main FastAPI app with the game mounted under /games."""
    from games.live_auction.server import AuctionCoordinator, create_app as create_auction_app, coordinator

    app = FastAPI(title="Live Auction Lobby")

    manager = AuctionCoordinator(policy=policy) if policy else coordinator
    app.mount("/games/live_auction", create_auction_app(manager))

    @app.get("/")
    async def home():
        return {
            game_id: f"/games/{game_id}"
            for game_id in GAMES
        }

    return app


def run_app(host: str = "0.0.0.0", port: int = 8000, policy: str = None):
    """Run the main app."""
    import uvicorn
    app = create_app(policy)
    uvicorn.run(app, host=host, port=port)


def run_game(game_id: str, host: str = "0.0.0.0", port: int = 8000, policy: str = None):
    """Run a specific game server directly, WebSocket at /ws."""
    if game_id not in GAMES:
        print(f"Error: Unknown game '{game_id}'")
        list_games()
        sys.exit(1)

    game_info = GAMES[game_id]
    print(f"\nStarting {game_info['name']}...")
    print(f"Server running at http://localhost:{port}")
    print("Press Ctrl+C to stop\n")

    if game_id == "live_auction":
        from games.live_auction import run
        run(host=host, port=port, policy=policy)


def main():
    parser = argparse.ArgumentParser(
        description="Live Auction Lobby - sealed-bid rounds over WebSocket"
    )
    parser.add_argument(
        "game",
        nargs="?",
        default=None,
        help="Game to run directly (optional, runs the mounted app by default)"
    )
    parser.add_argument(
        "--list", "-l",
        action="store_true",
        help="List available games and admin policies"
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8000,
        help="Port to run on (default: 8000)"
    )
    parser.add_argument(
        "--policy",
        default=None,
        help="Admin policy: explicit or implicit (default: AUCTION_ADMIN_POLICY or explicit)"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list:
        list_games()
        return

    policy = None
    if args.policy:
        try:
            policy = get_policy_name(args.policy)
        except ValueError as e:
            parser.error(str(e))

    if args.game:
        run_game(args.game, host=args.host, port=args.port, policy=policy)
    else:
        print("\nStarting Live Auction Lobby...")
        print(f"Server running at http://localhost:{args.port}")
        print("Press Ctrl+C to stop\n")
        run_app(host=args.host, port=args.port, policy=policy)


if __name__ == "__main__":
    main()
