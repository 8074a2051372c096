"""Protean Engine runner for the LeadCollect connector.

Starts Engine workers that process events asynchronously:
- OutboxProcessor: polls outbox table, publishes events to the broker
- StreamSubscriptions: reads the broker streams, invokes event handlers
  (cart abandonment routing, host order events)

Usage:
    python src/server.py
    python src/server.py --test-mode   # Process pending messages and exit
"""

import argparse
import asyncio

from protean.server.engine import Engine


def _get_domain():
    """Import and initialize the leadcollect domain."""
    from leadcollect.domain import leadcollect

    leadcollect.init()
    return leadcollect


async def run(test_mode=False):
    engine = Engine(_get_domain(), test_mode=test_mode)
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="LeadCollect Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending messages once and exit",
    )
    args = parser.parse_args()

    asyncio.run(run(test_mode=args.test_mode))


if __name__ == "__main__":
    main()
