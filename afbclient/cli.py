"""
Command line client.

Usage:
    python -m afbclient --host localhost --port 1234 apis
    python -m afbclient discover [--api NAME]
    python -m afbclient infos
    python -m afbclient call hello/ping '{"count": 1}'
    python -m afbclient listen hello/tick --count 5
"""

import argparse
import json
import logging
import sys
import threading
from dataclasses import asdict
from typing import List, Optional

from .client import AfbClient
from .config import load_config, resolve_token
from .discovery import find_api
from .errors import AfbError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="afbclient", description="Talk to an application framework binder")
    parser.add_argument("--host", help="binder host (env AFB_HOST)")
    parser.add_argument("--port", help="binder port (env AFB_PORT)")
    parser.add_argument("--base", help="URL path of the websocket endpoint (env AFB_BASE)")
    parser.add_argument("--token", help="authentication token (env AFB_TOKEN)")
    parser.add_argument("--timeout", type=float, default=10.0,
                        help="seconds to wait for the handshake and for each reply")
    parser.add_argument("-v", "--verbose", action="count", default=0)

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("apis", help="list API names")
    discover = sub.add_parser("discover", help="describe APIs and their verbs")
    discover.add_argument("--api", help="only this API")
    sub.add_parser("infos", help="call <api>/info on every API")
    call = sub.add_parser("call", help="call one verb")
    call.add_argument("verb", help="api/verb")
    call.add_argument("args", nargs="?", default="{}", help="JSON arguments")
    listen = sub.add_parser("listen", help="print events")
    listen.add_argument("event", help='event name, API name, or "*"')
    listen.add_argument("--count", type=int, default=0, help="stop after N events (0 = forever)")
    return parser


def wait_ready(client: AfbClient, timeout: float) -> bool:
    done = threading.Event()
    outcome = {}

    def _on_ready(ready: bool) -> None:
        outcome["ready"] = ready
        done.set()

    unsubscribe = client.init_done.subscribe(_on_ready)
    try:
        return done.wait(timeout) and outcome["ready"]
    finally:
        unsubscribe()


def _dump(obj) -> None:
    print(json.dumps(obj, indent=2, default=str))


def run(args: argparse.Namespace) -> int:
    config = load_config(host=args.host, port=args.port, base=args.base,
                         token=resolve_token(args.token), call_timeout_s=args.timeout)
    client = AfbClient(config=config)
    client.initialize()

    logger.info("connecting to %s", client.endpoint.url())
    error = client.connect()
    if error is not None or not wait_ready(client, args.timeout):
        print(f"cannot connect to {client.endpoint.url()}", file=sys.stderr)
        client.close()
        return 2

    try:
        if args.command == "apis":
            for name in client.list_apis().result():
                print(name)
        elif args.command == "discover":
            apis = client.discover_apis().result()
            if args.api:
                api = find_api(apis, args.api)
                if api is None:
                    print(f"no such API: {args.api}", file=sys.stderr)
                    return 1
                apis = [api]
            _dump([asdict(api) for api in apis])
        elif args.command == "infos":
            _dump([{"api": i.api, "info": i.info} for i in client.list_api_infos().result()])
        elif args.command == "call":
            reply = client.invoke(args.verb, args.args).result()
            _dump(reply.raw)
            return 0 if reply.ok else 1
        elif args.command == "listen":
            seen = 0
            with client.subscribe(args.event) as events:
                for event in events:
                    _dump({"event": event.name, "data": event.data})
                    seen += 1
                    if args.count and seen >= args.count:
                        break
    except AfbError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        client.close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        return run(args)
    except AfbError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130
