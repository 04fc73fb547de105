"""
Trust Authority Server Launcher for SecureRoad V2X.

Starts the TA REST API (registration + public-key channels), or runs
in-process demonstration sessions against a TA.

Usage:
    python server.py --ta-id TA_001 --port 5080 --api-key <key>
    python server.py --simulate 4                 # run 4 sessions in-process
    python server.py --generate-key
"""

import argparse
import json
import logging
import secrets
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from api.flask_app_factory import create_app
from config import V2X_CONSTANTS, get_entity_base_dir
from entities.trust_authority import TrustAuthority
from managers.session_manager import SessionManager
from utils.milestones import get_milestone_log


def generate_api_key():
    """Generate a secure API key and print it"""
    api_key = secrets.token_urlsafe(32)
    print("\n" + "=" * 70)
    print(" SECURE API KEY GENERATED")
    print("=" * 70)
    print(f"\n{api_key}\n")
    print("  SAVE THIS KEY SECURELY!")
    print("   Start the TA with: python server.py --api-key " + api_key + "\n")
    print("=" * 70 + "\n")
    return api_key


def run_simulation(ta: TrustAuthority, sessions: int, timeout: float) -> bool:
    """Runs concurrent in-process sessions and prints their outcome."""
    manager = SessionManager(trust_authority=ta, timeout=timeout)
    pairs = [
        (manager.create_registrant(f"VEHICLE_V_{i:03d}"), manager.create_verifier(f"VEHICLE_U_{i:03d}"))
        for i in range(1, sessions + 1)
    ]
    results = manager.run_many(pairs)

    for result in results:
        print(json.dumps(result.to_dict()))

    violations = get_milestone_log().check_correspondence()
    print(f"\n Sessioni riuscite: {sum(r.success for r in results)}/{len(results)}")
    print(f" Corrispondenza milestone: {'OK' if not violations else violations}")
    return all(r.success for r in results) and not violations


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="SecureRoad V2X Trust Authority server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python server.py --ta-id TA_001 --port 5080 --api-key my-key
  python server.py --base-dir v2x_data/ta/TA_001 --log-level DEBUG
  python server.py --simulate 4
  python server.py --generate-key
        """,
    )

    parser.add_argument("--host", default=V2X_CONSTANTS.DEFAULT_API_HOST, help="Host to bind")
    parser.add_argument("--port", type=int, default=V2X_CONSTANTS.DEFAULT_API_PORT, help="Port to bind")
    parser.add_argument("--ta-id", default="TA_001", help="Trust Authority identifier")
    parser.add_argument(
        "--api-key", action="append", default=[], help="API key accepted for registration (repeatable)"
    )
    parser.add_argument(
        "--base-dir", help="Directory for the TA master key and logs (default: v2x_data/ta/<ta-id>)"
    )
    parser.add_argument(
        "--ephemeral", action="store_true", help="Keep the master key in memory only"
    )
    parser.add_argument(
        "--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level"
    )
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    parser.add_argument("--simulate", type=int, metavar="N", help="Run N in-process sessions and exit")
    parser.add_argument("--timeout", type=float, default=5.0, help="Receive timeout for --simulate")
    parser.add_argument("--generate-key", action="store_true", help="Generate a secure API key and exit")

    args = parser.parse_args(argv)

    if args.generate_key:
        generate_api_key()
        return 0

    log_level = getattr(logging, args.log_level)
    base_dir = None
    if not args.ephemeral:
        base_dir = args.base_dir or str(get_entity_base_dir("ta", args.ta_id))

    ta = TrustAuthority(ta_id=args.ta_id, base_dir=base_dir, log_level=log_level)

    if args.simulate:
        return 0 if run_simulation(ta, args.simulate, args.timeout) else 1

    app = create_app(
        ta,
        {
            "api_keys": args.api_key,
            "log_level": args.log_level,
            "environment": "development" if args.debug else "production",
        },
    )

    print(f" Trust Authority {args.ta_id} in ascolto su http://{args.host}:{args.port}")
    if not args.api_key:
        print("  ⚠️  Nessuna API key configurata: registrazione non autenticata")

    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


if __name__ == "__main__":
    sys.exit(main())
