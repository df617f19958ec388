"""
kube-trace command line.

`continue` is meant to run inside a Pod whose spec maps the trace-context
annotation into KUBERNETES_TRACE_CONTEXT:

    kube-trace continue --span-name "workload" --duration 2

`inspect` decodes an encoded context for debugging:

    kube-trace inspect AAC7rW...
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from typing import Optional, Sequence

import structlog

from .carrier import decode
from .config import TracingConfig
from .errors import ConfigError, DecodeError, ExporterInitError
from .exporter import TracingRuntime
from .logs import setup_logging
from .propagator import TRACE_CONTEXT_ENV
from .resources import TracedRecord

logger = structlog.get_logger(__name__)

DEFAULT_SPAN_NAME = "Deep roots are not reached by the frost"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kube-trace", description="Continue traces carried by Kubernetes objects.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    parser.add_argument("--json-logs", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    cont = sub.add_parser("continue", help="continue the trace passed in through the environment")
    cont.add_argument("--span-name", default=DEFAULT_SPAN_NAME)
    cont.add_argument("--duration", type=float, default=2.0, help="seconds to keep the span open")
    cont.add_argument("--variable", default=TRACE_CONTEXT_ENV, help="environment variable holding the context")

    insp = sub.add_parser("inspect", help="decode an encoded trace context")
    insp.add_argument("text")

    return parser


def run_continue(args: argparse.Namespace) -> int:
    encoded = os.environ.get(args.variable, "")
    logger.info("downward API passed trace context", variable=args.variable, trace_context=encoded)

    try:
        config = TracingConfig.from_env()
        runtime = TracingRuntime.from_config(config)
    except (ConfigError, ExporterInitError) as e:
        logger.error("trace exporter initialization failed", error=str(e))
        return 1

    carrier = runtime.carrier()
    resource = TracedRecord(name=os.environ.get("HOSTNAME", "workload"), trace_context=encoded)
    try:
        _, span = carrier.start_linked_span(resource, args.span_name)
    except DecodeError as e:
        logger.error("could not continue trace", error=str(e))
        runtime.shutdown()
        return 1

    logger.info("span started", trace_id=format(span.get_span_context().trace_id, "032x"))
    time.sleep(args.duration)
    span.end()

    runtime.force_flush()
    runtime.shutdown()
    logger.info("span ended")
    return 0


def run_inspect(args: argparse.Namespace) -> int:
    try:
        span_context = decode(args.text)
    except DecodeError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(f"trace_id: {span_context.trace_id:032x}")
    print(f"span_id:  {span_context.span_id:016x}")
    print(f"sampled:  {span_context.trace_flags.sampled}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.json_logs)

    if args.command == "continue":
        return run_continue(args)
    return run_inspect(args)


if __name__ == "__main__":
    sys.exit(main())
