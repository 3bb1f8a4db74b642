"""
Compassmax command-line entry point.

Runs one RPC call against the configured server and prints the JSON
result:

    python main.py --config compassmax.json --service system --method rpcVersion
    python main.py --config compassmax.json --service customerProfile \\
        --method getProfile --args '[1234]'
"""

import argparse
import asyncio
import json
import logging
import sys

from config.settings  import ClientConfig, Settings
from core.errors      import ApplicationError, CompassmaxError
from services.client  import CompassClient
from traffic.dispatcher import Call

logger = logging.getLogger("Compassmax.Main")


def setup_logging(verbose: bool = False):
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else Settings.LOG_LEVEL)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(
        Settings.LOG_FORMAT, datefmt="%H:%M:%S",
    ))
    root_logger.addHandler(console_handler)


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        prog="compassmax",
        description=f"{Settings.APP_NAME} RPC client v{Settings.APP_VERSION}",
    )
    ap.add_argument("--config", required=True,
                    help="JSON file with host, port, staticPublic, "
                         "staticSecret, key and optional identifier")
    ap.add_argument("--service", default="system")
    ap.add_argument("--method", default="rpcVersion")
    ap.add_argument("--args", default="[]",
                    help="JSON array of positional method arguments")
    ap.add_argument("--id", type=int, default=None, dest="request_id")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap.parse_args(argv)


async def run(config: ClientConfig, call: Call):
    async with CompassClient(config) as client:
        return await client.send(call)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        call_args = json.loads(args.args)
    except json.JSONDecodeError as exc:
        logger.error("--args is not valid JSON: %s", exc)
        return 2
    if not isinstance(call_args, list):
        logger.error("--args must be a JSON array")
        return 2

    try:
        config = ClientConfig.from_file(args.config)
        call   = Call(args.service, args.method, call_args, args.request_id)
        result = asyncio.run(run(config, call))
    except ApplicationError as exc:
        logger.error("%s.%s failed: %s (data=%r, warnings=%r)",
                     args.service, args.method, exc, exc.data, exc.warnings)
        return 1
    except CompassmaxError as exc:
        logger.error("%s", exc)
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
