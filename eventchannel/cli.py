"""
CLI tools for eventchannel.

Runs a small publish/subscribe walkthrough against a fresh bus.
"""

import argparse
import json
import sys

from eventchannel.config import BusConfig, ErrorPolicy
from eventchannel.events import EventBus
from eventchannel.logging_config import configure_from_context


def _print_message(*args):
    print(f"  received: {list(args)}")


def build_demo_bus(config: BusConfig, topic: str) -> EventBus:
    """Create a bus with one printing handler on ``topic``."""
    bus = EventBus.from_config(config)
    bus.subscribe(topic, _print_message)
    return bus


def run_demo(config: BusConfig, topic: str) -> int:
    """Subscribe, publish, unsubscribe, publish again."""
    bus = build_demo_bus(config, topic)

    print(f"==> Subscribed to '{topic}'")
    print(f"==> Publishing to '{topic}'")
    bus.publish(topic, "Hello", topic)
    bus.publish(topic, "Delivered: published before unsubscribe")

    removed = bus.unsubscribe(topic, _print_message)
    print(f"==> Unsubscribed from '{topic}' (removed={removed})")

    results = bus.publish(topic, "Not delivered: published after unsubscribe")
    print(f"==> Publishing to '{topic}' reached {len(results)} handler(s)")

    return 0


def show_stats(config: BusConfig, topic: str) -> int:
    """Print stats for the demo wiring as JSON."""
    bus = build_demo_bus(config, topic)
    print(json.dumps(bus.get_stats(), indent=2))
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="eventchannel CLI tools")
    parser.add_argument("command", choices=["demo", "stats"], help="Command to run")
    parser.add_argument("--topic", default="Python", help="Topic used by the demo")
    parser.add_argument(
        "--error-policy",
        choices=[p.value for p in ErrorPolicy],
        help="Handler failure policy (defaults to EVENTCHANNEL_ERROR_POLICY)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logs")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON logs")

    args = parser.parse_args(argv)

    try:
        config = BusConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.error_policy:
        config.error_policy = ErrorPolicy(args.error_policy)

    configure_from_context(
        verbose=args.verbose,
        json_output=args.json_logs or config.json_logs,
        level=config.log_level,
    )

    if args.command == "demo":
        return run_demo(config, args.topic)
    elif args.command == "stats":
        return show_stats(config, args.topic)

    return 0


if __name__ == "__main__":
    sys.exit(main())
