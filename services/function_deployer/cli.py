"""
function-deployer - Deploy a function archive and use its functions.

Usage:
    function-deployer [options] <command> [command options] [application args]

Examples:
    function-deployer --location ./build/functions.zip list
    function-deployer --location ./app --definition "uppercase|reverse" invoke --payload hello
    echo '{"name": "x"}' | function-deployer --location ./app invoke --content-type application/json
    function-deployer --location ./app serve

Unrecognized arguments (e.g. --function.name=uppercase) are passed to the
archive bootstrap as application arguments.
"""

import argparse
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional

from services.common.core.logging_config import setup_logging
from services.function_context.auto_configuration import FunctionContext, build_function_context
from services.function_context.config import FunctionProperties
from services.function_context.core.exceptions import FunctionContextError, FunctionNotFoundError
from services.function_context.models.message import Message, MessageHeaders

from .arguments import ApplicationArguments
from .configuration import function_archive_deployer, load_function_properties
from .exceptions import DeployerError
from .lifecycle import LifecycleProcessor

logger = logging.getLogger("function.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="function-deployer",
        description="Deploy function archives and invoke their functions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--location", "-l", help="Function archive (directory or zip file)")
    parser.add_argument("--definition", "-d", help="Function definition, e.g. 'a|b'")
    parser.add_argument(
        "--function-class", help="Explicit 'module:attribute' targets (';' separated)"
    )
    parser.add_argument(
        "--log-config", default=None, help="Logging config file (default: LOG_CONFIG_PATH)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to execute")

    # --- list command ---
    subparsers.add_parser("list", help="List deployed functions")

    # --- invoke command ---
    invoke_parser = subparsers.add_parser("invoke", help="Invoke a function once")
    invoke_parser.add_argument("--payload", "-p", help="Input payload (default: read stdin)")
    invoke_parser.add_argument("--content-type", help="Content type of the payload")
    invoke_parser.add_argument(
        "--accept", action="append", default=[], help="Accepted output content type (repeatable)"
    )

    # --- serve command ---
    subparsers.add_parser("serve", help="Serve functions over HTTP")

    return parser


def _load_properties(args: argparse.Namespace, arguments: ApplicationArguments, cls=FunctionProperties):
    properties = load_function_properties(
        arguments,
        FUNCTIONS_LOCATION=args.location,
        FUNCTIONS_DEFINITION=args.definition,
        FUNCTIONS_FUNCTION_CLASS=args.function_class,
    )
    if cls is FunctionProperties:
        return properties
    return cls(**properties.model_dump())


@contextmanager
def open_function_context(
    properties: FunctionProperties, arguments: ApplicationArguments
) -> Iterator[FunctionContext]:
    """Build the function context and keep the archive deployed while in use."""
    context = build_function_context(properties)
    processor = LifecycleProcessor()
    if properties.FUNCTIONS_LOCATION:
        processor.add(function_archive_deployer(properties, context.catalog, arguments))
    processor.start()
    try:
        yield context
    finally:
        processor.stop()


def _list(context: FunctionContext) -> int:
    catalog = context.catalog
    for name in sorted(catalog.get_names()):
        registration = catalog.get_registration(name)
        print(f"{name}\t{registration.kind.value}")
    return 0


def _render(context: FunctionContext, result) -> str:
    if isinstance(result, Message):
        result = result.payload
    if isinstance(result, (bytes, bytearray)):
        return bytes(result).decode("utf-8", errors="replace")
    if isinstance(result, str):
        return result
    return context.json_mapper.to_json(result).decode("utf-8")


def _invoke(context: FunctionContext, args: argparse.Namespace) -> int:
    function = context.catalog.lookup(args.definition or "", *args.accept)
    if function is None:
        raise FunctionNotFoundError(args.definition or "<default>")

    if function.is_supplier():
        result = function()
    else:
        payload = args.payload if args.payload is not None else sys.stdin.read()
        headers = {}
        if args.content_type:
            headers[MessageHeaders.CONTENT_TYPE] = args.content_type
        result = function(Message(payload=payload.encode("utf-8"), headers=headers))

    if result is not None:
        print(_render(context, result))
    return 0


def _serve(args: argparse.Namespace, arguments: ApplicationArguments) -> int:
    import uvicorn

    from services.function_web.config import WebConfig
    from services.function_web.main import create_app

    config = _load_properties(args, arguments, WebConfig)
    uvicorn.run(
        create_app(config, arguments),
        host=config.bind_host,
        port=config.bind_port,
        log_config=None,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args, extra = parser.parse_known_args(argv)
    arguments = ApplicationArguments(extra)

    properties = _load_properties(args, arguments)
    setup_logging(args.log_config or properties.LOG_CONFIG_PATH)

    try:
        if args.command == "serve":
            return _serve(args, arguments)

        with open_function_context(properties, arguments) as context:
            if args.command == "list":
                return _list(context)
            return _invoke(context, args)
    except (DeployerError, FunctionContextError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print()
        return 130


if __name__ == "__main__":
    sys.exit(main())
