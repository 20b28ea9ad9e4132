#!/usr/bin/env python3
"""
AI Trainer workout generator
Command-line entry point: reads a request JSON file and prints the response.
"""

import argparse
import contextlib
import json
import os
import random
import sys

from dotenv import load_dotenv

from ai_trainer.config import load_config
from ai_trainer.quota import QuotaGate, SQLiteQuotaStore
from ai_trainer.request import GenerationError
from ai_trainer.workout_generator import WorkoutGenerator


def print_banner():
    """Print welcome banner."""
    banner = """
╔══════════════════════════════════════════════════════════════╗
║                                                              ║
║        AI TRAINER - WORKOUT GENERATOR                        ║
║                                                              ║
╚══════════════════════════════════════════════════════════════╝
    """
    print(banner, file=sys.stderr)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate AI trainer workouts from a request file.")
    parser.add_argument("request_file", help="Path to a request JSON file")
    parser.add_argument("--user-id", required=True, help="Authenticated user id")
    parser.add_argument(
        "--config",
        default=os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.yaml"),
        help="Path to config.yaml",
    )
    parser.add_argument("--provider", choices=["claude", "openai"], help="Override the LM provider")
    parser.add_argument("--seed", type=int, help="Seed for the fallback generator")
    parser.add_argument("--offline", action="store_true", help="Skip the LM and use fallback generation")
    parser.add_argument("--output", help="Write the response JSON to this file")
    return parser.parse_args(argv)


def main(argv=None):
    """Main application flow."""
    args = parse_args(argv)
    print_banner()

    load_dotenv()
    config = load_config(args.config)

    with open(args.request_file, "r") as f:
        payload = json.load(f)

    quota_config = config.get("quota", {}) or {}
    store = SQLiteQuotaStore(quota_config.get("db_path", "data/ai_trainer_usage.db"))
    generator = WorkoutGenerator(
        config=config,
        quota_gate=QuotaGate(store, daily_limit=quota_config.get("daily_limit", 10)),
        client=False if args.offline else None,
        provider=args.provider,
        rng=random.Random(args.seed) if args.seed is not None else None,
    )

    try:
        # Progress lines go to stderr so stdout stays valid JSON.
        with contextlib.redirect_stdout(sys.stderr):
            response = generator.generate(payload, auth_user_id=args.user_id)
    except GenerationError as e:
        print(f"\n❌ Request rejected ({e.code}): {e}", file=sys.stderr)
        return 2
    finally:
        store.close()

    output = json.dumps(response, ensure_ascii=False, indent=2)
    if args.output:
        with open(args.output, "w") as f:
            f.write(output + "\n")
        print(f"✓ Response written to {args.output}", file=sys.stderr)
    else:
        print(output)

    return 0 if response["success"] else 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nExiting...", file=sys.stderr)
        sys.exit(0)
