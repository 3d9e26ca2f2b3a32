"""
Reputation Ledger CLI
=====================

Read-only inspection of the ledger from a terminal.

RUN:
    python -m reputation threads <discussion_id>
    python -m reputation proofs --search <term>
    python -m reputation types
    python -m reputation profile --address <address>
"""

from __future__ import annotations
import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional, Tuple

from .api.mapper import map_profile, map_proofs, map_thread, map_types
from .contracts.base import ReputationError
from .contracts.entities import Comment
from .observability import configure_logging
from .service import ReputationService


class StaticWallet:
    """Wallet stand-in that always reports the same change address."""

    def __init__(self, address: Optional[str]):
        self._address = address

    async def get_change_address(self) -> Optional[str]:
        return self._address


def _print_comments(comments: Tuple[Comment, ...], depth: int = 0) -> None:
    for comment in comments:
        marker = "[spam] " if comment.is_spam else ""
        print(f"{'  ' * depth}- {comment.id[:12]} @{comment.timestamp} {marker}{comment.text}")
        _print_comments(comment.replies, depth + 1)


async def _run(args: argparse.Namespace) -> int:
    config_path = Path(args.config) if args.config else None
    address = getattr(args, "address", None)
    wallet = StaticWallet(address) if address else None

    async with ReputationService.from_config(config_path, wallet=wallet) as service:
        if args.command == "threads":
            snapshot = await service.load_threads(args.discussion_id)
            if args.json:
                print(json.dumps(map_thread(snapshot), indent=2))
            else:
                print(f"Discussion {snapshot.discussion_id}: "
                      f"{snapshot.node_count} comments ({snapshot.scan_status.value})")
                _print_comments(snapshot.comments)

        elif args.command == "proofs":
            result = await service.load_proofs(search=args.search, all_owners=args.all)
            if args.json:
                print(json.dumps(map_proofs(result), indent=2, default=str))
            else:
                for proof in result.proofs:
                    print(f"{proof.token_id}  {proof.type.type_name:<20} "
                          f"{proof.total_amount:>10}  {proof.owner_address or '-'}")
                for conflict in result.conflicts:
                    print(f"! conflict on {conflict.token_id} in box {conflict.conflicting_box_id}")

        elif args.command == "types":
            registry = await service.load_types()
            if args.json:
                print(json.dumps(map_types(registry), indent=2))
            else:
                for descriptor in registry:
                    print(f"{descriptor.token_id}  {descriptor.type_name}")

        elif args.command == "profile":
            profile = await service.load_profile()
            if args.json:
                print(json.dumps(map_profile(profile), indent=2, default=str))
            elif profile is None:
                print("No profile found")
            else:
                print(f"Profile {profile.token_id}: {profile.total_amount} units, "
                      f"{profile.number_of_boxes} boxes")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="reputation",
        description="Reputation ledger read engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m reputation threads 5f3a...e1     # Print a comment tree
  python -m reputation proofs --search news  # Search proofs
  python -m reputation profile --address 9f... # Resolve a profile
        """
    )
    parser.add_argument('--config', '-c', default=None, help='Path to network configuration file')
    parser.add_argument('--log-level', default='WARNING', help='Logging level')
    parser.add_argument('--json', action='store_true', help='Emit JSON instead of text')

    sub = parser.add_subparsers(dest='command', required=True)

    threads = sub.add_parser('threads', help='Assemble a discussion thread')
    threads.add_argument('discussion_id')

    proofs = sub.add_parser('proofs', help='List reputation proofs')
    proofs.add_argument('--search', '-s', default=None, help='Token id, type id or pointer text')
    proofs.add_argument('--address', default=None, help='Caller address')
    proofs.add_argument('--all', action='store_true', help='Include every owner')

    sub.add_parser('types', help='List registered type NFTs')

    profile = sub.add_parser('profile', help='Resolve the profile of an address')
    profile.add_argument('--address', required=True, help='Owner address')

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        return asyncio.run(_run(args))
    except ReputationError as e:
        print(f"Error [{e.code.name}]: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
