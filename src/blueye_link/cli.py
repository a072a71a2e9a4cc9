from __future__ import annotations

import argparse
import logging
import sys
import threading
from typing import Optional

from . import binlog, config, json
from .client import Client
from .errors import LinkError
from .registry import Registry
from .transport import TransportError


def _emit(thing) -> None:
    sys.stdout.write(json.dumps(thing).decode("utf-8") + "\n")
    sys.stdout.flush()


def record_to_dict(registry: Registry, record: binlog.BinlogRecord) -> dict:
    return {
        "monotonic_time": record.monotonic_time,
        "wall_time": record.wall_time,
        "channel": record.channel.value,
        "key": record.key,
        "data": registry.to_dict(record.data),
        "inner_data": registry.to_dict(record.inner_data),
    }


def cmd_binlog(args: argparse.Namespace) -> int:
    registry = Registry.default(args.namespace)
    records = binlog.parse(
        args.file,
        registry,
        fix_times=not args.raw_times,
        framing=args.framing,
    )

    for record in records:
        if args.key and record.key not in args.key:
            continue
        _emit(record_to_dict(registry, record))

    return 0


def _client(args: argparse.Namespace) -> Client:
    settings = config.load(
        transport=args.transport,
        host=args.host,
        timeout=args.timeout,
        namespace=args.namespace,
    )
    return Client(settings=settings)


def cmd_request(args: argparse.Namespace) -> int:
    with _client(args) as drone:
        reply = drone.send_request(args.key)
        _emit({"key": args.key, "reply": drone.registry.to_dict(reply)})
    return 0


def cmd_telemetry(args: argparse.Namespace) -> int:
    with _client(args) as drone:
        value = drone.get_telemetry(args.key)
        _emit({"key": args.key, "data": drone.registry.to_dict(value)})
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    stop = threading.Event()

    with _client(args) as drone:
        # Subscriptions are weak references; this list keeps them alive.
        callbacks = []

        for key in args.key:
            def callback(message, key=key):
                _emit({"key": key, "data": drone.registry.to_dict(message)})

            callbacks.append(callback)
            drone.subscribe(key, callback)

        try:
            stop.wait()
        except KeyboardInterrupt:
            pass

    return 0


def main(argv: Optional[list] = None) -> int:
    p = argparse.ArgumentParser(prog="blueye-link", description="Talk to a Blueye drone, or decode its binlogs.")
    p.add_argument("-v", "--verbose", action="count", default=0)
    p.add_argument("--namespace", default=None, help="protobuf package prefix (default: %s)" % config.default_namespace)
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_connection(x: argparse.ArgumentParser) -> None:
        x.add_argument("--transport", choices=config.transports, default=None)
        x.add_argument("--host", default=None)
        x.add_argument("--timeout", type=float, default=None)

    dump = sub.add_parser("binlog", help="decode a binlog recording to JSON lines")
    dump.add_argument("file")
    dump.add_argument("--raw-times", action="store_true", help="keep wall clock times as recorded")
    dump.add_argument("--framing", choices=sorted(binlog.framings), default="varint",
                      help="length prefix: varint (drone recordings) or a fixed 4-byte uint32le/uint32be")
    dump.add_argument("--key", action="append", help="only print records of this message type")
    dump.set_defaults(func=cmd_binlog)

    request = sub.add_parser("request", help="send one request and print the reply")
    add_connection(request)
    request.add_argument("key")
    request.set_defaults(func=cmd_request)

    telemetry = sub.add_parser("telemetry", help="fetch the latest value of one telemetry message")
    add_connection(telemetry)
    telemetry.add_argument("key")
    telemetry.set_defaults(func=cmd_telemetry)

    watch = sub.add_parser("watch", help="print telemetry messages as they arrive")
    add_connection(watch)
    watch.add_argument("key", nargs="+")
    watch.set_defaults(func=cmd_watch)

    args = p.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        return int(args.func(args))
    except (LinkError, TransportError) as e:
        logging.getLogger("blueye_link").error("%s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
