"""
CTM CLI - Command-line interface for the game.

Usage:
    ctm keygen                                  Generate a signing account
    ctm quickstart [--stake 1]                  Play a scripted game on a local ledger
    ctm draft --key KEY --session-id 7 --stake 1
                                                Draft and sign player A's artifact
    ctm import ARTIFACT --key KEY --stake 1     Countersign an artifact as player B
    ctm show ARTIFACT_OR_LINK                   Show what an artifact carries
    ctm serve [--host 127.0.0.1] [--port 8000]  Run the REST API

Every command runs against a fresh in-process ledger. Contract ids are
deterministic per network passphrase, so artifacts drafted by one run can
be imported by another.
"""

import argparse
import json
import logging
import sys

from .config import CTM_LOG_LEVEL


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Commit-Turn-Move - double rock-paper-scissors over a ledger",
        prog="ctm",
    )
    parser.add_argument("--log-level", default=CTM_LOG_LEVEL, help="Logging level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("keygen", help="Generate a signing account")

    quick_parser = subparsers.add_parser("quickstart", help="Play a scripted game locally")
    quick_parser.add_argument("--stake", default="1", help="Stake per player, in points")
    quick_parser.add_argument("--session-id", type=int, help="Session id (random if omitted)")

    draft_parser = subparsers.add_parser("draft", help="Draft player A's signed artifact")
    draft_parser.add_argument("--key", required=True, help="Player A's private key")
    draft_parser.add_argument("--session-id", type=int, help="Session id (random if omitted)")
    draft_parser.add_argument("--stake", required=True, help="Player A's stake, in points")
    draft_parser.add_argument("--ttl", type=float, help="Authorization lifetime in minutes")

    import_parser = subparsers.add_parser("import", help="Countersign an artifact as player B")
    import_parser.add_argument("artifact", help="Artifact text or share link")
    import_parser.add_argument("--key", required=True, help="Player B's private key")
    import_parser.add_argument("--stake", required=True, help="Player B's stake, in points")
    import_parser.add_argument("--ttl", type=float, help="Authorization lifetime in minutes")

    show_parser = subparsers.add_parser("show", help="Show what an artifact carries")
    show_parser.add_argument("artifact", help="Artifact text or share link")

    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "keygen": cmd_keygen,
        "quickstart": cmd_quickstart,
        "draft": cmd_draft,
        "import": cmd_import,
        "show": cmd_show,
        "serve": cmd_serve,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    from .engine_core.errors import CtmError

    try:
        command(args)
    except CtmError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _local_game():
    """A fresh local ledger with the game contract deployed."""
    from .ledger import Account, CtmContract, InMemoryGameHub, LocalLedger

    ledger = LocalLedger()
    contract_id = ledger.deploy(CtmContract(admin=Account.generate().address, hub=InMemoryGameHub()))
    return ledger, contract_id


def _points(text):
    from .client import parse_points

    units = parse_points(text)
    if not units:
        print(f"Error: Invalid point amount: {text!r}", file=sys.stderr)
        sys.exit(1)
    return units


def _account(private_key):
    from .ledger import Account

    try:
        return Account.from_private_key(private_key)
    except Exception as e:
        print(f"Error: Invalid private key: {e}", file=sys.stderr)
        sys.exit(1)


def _artifact(text):
    from .bootstrap import artifact_from_link, parse_artifact

    if "?" in text:
        return artifact_from_link(text)
    return parse_artifact(text)


def cmd_keygen(args):
    """Generate a signing account."""
    from .ledger import Account

    account = Account.generate()
    print(json.dumps({"address": account.address, "private_key": account.private_key}, indent=2))


def cmd_quickstart(args):
    """Bootstrap a session between two fresh accounts and play it out."""
    from .client import CtmClient, format_points
    from .engine_core.state import Hand
    from .ledger import Account

    ledger, contract_id = _local_game()
    alice, bob = Account.generate(), Account.generate()
    stake = _points(args.stake)

    session = CtmClient(ledger, contract_id).quickstart(alice, bob, stake, session_id=args.session_id)

    print(f"Session {session.session_id}: {format_points(stake)} points each")
    print(f"  A {alice.address}: kept {Hand(session.kept_a).name}")
    print(f"  B {bob.address}: kept {Hand(session.kept_b).name}")
    print(f"Winner: {'A' if session.winner == alice.address else 'B'} ({session.winner})")


def cmd_draft(args):
    """Draft player A's half of a session."""
    from .bootstrap import SessionBootstrap
    from .client import random_session_id

    ledger, contract_id = _local_game()
    signer = _account(args.key)
    session_id = args.session_id or random_session_id()

    artifact = SessionBootstrap(ledger, contract_id).draft(
        session_id, signer.address, _points(args.stake), signer, ttl_minutes=args.ttl,
    )
    print(json.dumps({
        **artifact.to_dict(),
        "artifact": artifact.to_text(),
        "share_link": artifact.share_link(),
    }, indent=2))


def cmd_import(args):
    """Countersign an artifact and print the transaction."""
    from .bootstrap import SessionBootstrap

    ledger, contract_id = _local_game()
    signer = _account(args.key)
    artifact = _artifact(args.artifact)

    tx_text = SessionBootstrap(ledger, contract_id).import_and_sign(
        artifact.to_text(), signer.address, _points(args.stake), signer, ttl_minutes=args.ttl,
    )
    print(tx_text)


def cmd_show(args):
    """Show what an artifact carries."""
    from .client import format_points

    artifact = _artifact(args.artifact)
    print(json.dumps({**artifact.to_dict(), "stake_a_points": format_points(artifact.stake_a)}, indent=2))


def cmd_serve(args):
    """Run the REST API with uvicorn."""
    import uvicorn

    uvicorn.run("ctm.api.app:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
