import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional, Sequence

import httpx

from app.config import Settings
from app.core.errors import MailRelayError
from app.core.relay_service import RelayService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mail verification code relay")
    parser.add_argument("--once", action="store_true", help="Run one processing cycle and exit")
    parser.add_argument("--schedule", action="store_true", help="Run in scheduled loop")
    parser.add_argument("--interval-seconds", type=int, default=60, help="Schedule interval")
    return parser


async def run_cycle(service: RelayService) -> Dict[str, Any]:
    """Run one cycle and return the API-shaped result object"""
    try:
        result = await service.process_mails()
    except MailRelayError as e:
        logger.error(f"❌ Cycle failed: {e.message}")
        return {"success": False, "error": e.message}
    except httpx.HTTPError as e:
        logger.error(f"❌ Cycle failed: {type(e).__name__}: {e}")
        return {"success": False, "error": f"Network error: {e}"}
    except Exception as e:
        logger.error(f"❌ Cycle failed: {type(e).__name__}: {e}", exc_info=True)
        return {"success": False, "error": str(e)}
    return result.to_response()


async def run_schedule(service: RelayService, interval_seconds: int) -> None:
    while True:
        outcome = await run_cycle(service)
        print(json.dumps(outcome, ensure_ascii=False), flush=True)
        await asyncio.sleep(interval_seconds)


def main(argv: Optional[Sequence[str]] = None, settings: Optional[Settings] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.once and not args.schedule:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    service = RelayService(settings or Settings.from_env())

    if args.once:
        outcome = asyncio.run(run_cycle(service))
        print(json.dumps(outcome, ensure_ascii=False))
        return 0 if outcome["success"] else 1

    try:
        asyncio.run(run_schedule(service, args.interval_seconds))
    except KeyboardInterrupt:
        logger.info("Stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
