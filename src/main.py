"""Main entry point: replay a JSON-lines activity log for one user

Usage:
    python -m src.main --user alice activities.jsonl
    python -m src.main --user alice --show

Each line is an activity payload, e.g.
    {"type": "quest", "quest_id": "q1", "quest_type": "main", "priority": "high"}
    {"type": "checkin", "checkin_date": "2024-01-07"}
    {"type": "habit", "habit_id": "water", "completion_date": "2024-01-07"}
    {"type": "focus", "minutes": 25}
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from src.config import CATALOG_PATH, DATA_PATH, LOG_LEVEL, STORE_BACKEND, validate_config
from src.exceptions import ProgressionError
from src.gamification.xp_system import get_level_progress
from src.observability.metrics import init_metrics
from src.services.container import build_container

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO)
)

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay activities into a user's progression")
    parser.add_argument("--user", required=True, help="User id")
    parser.add_argument("activities", nargs="?", type=Path, help="JSON-lines activity file")
    parser.add_argument("--show", action="store_true", help="Print current progress and exit")
    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point"""
    args = parse_args(argv)

    logger.info("Validating configuration...")
    validate_config()
    init_metrics()

    container = build_container(
        store_backend=STORE_BACKEND,
        data_path=DATA_PATH,
        catalog_path=CATALOG_PATH,
    )
    service = container.progression_service

    if args.show or args.activities is None:
        state = await service.get_progress(args.user)
        print(json.dumps(get_level_progress(state, container.catalog)))
        print(state.model_dump_json(indent=2))
        return 0

    failures = 0
    with args.activities.open(encoding="utf-8") as f:
        for line_number, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
                result = await service.submit_activity(args.user, payload)
                print(result.model_dump_json())
            except json.JSONDecodeError as e:
                failures += 1
                logger.error(f"Line {line_number}: not valid JSON ({e})")
            except ProgressionError as e:
                failures += 1
                print(json.dumps({"line": line_number, **e.to_dict()}))

    if not await service.release(args.user):
        logger.warning(f"Progress for {args.user} could not be synced to the store")
        failures += 1

    logger.info(f"Replay finished with {failures} rejected line(s)")
    return 1 if failures else 0


def run() -> None:
    """Console script entry point"""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
