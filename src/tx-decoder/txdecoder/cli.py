import argparse
import json
import sys
from dataclasses import replace
from typing import Optional

from .config import load_config, validate_node_type
from .logging_config import get_logger, setup_logging
from .serialization import load_bundle, to_jsonable
from .transaction import DecodedRun, TransactionManager

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Decode Ethereum transaction call traces into a typed call graph (JSON).",
        allow_abbrev=False,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Run with debugging statements.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    trace_parser = subparsers.add_parser("trace", help="Fetch and decode transactions from an archive node")
    trace_parser.add_argument(
        "tx_hashes",
        help="Transaction hash or comma separated list of hashes, 0x-prefixed, without white space.",
    )
    trace_parser.add_argument(
        "-u",
        "--url",
        required=False,
        help="URL of the archive node with trace support. Defaults to ARCHIVE_NODE_URL env or http://localhost:8545.",
    )
    trace_parser.add_argument(
        "-n",
        "--node-type",
        required=False,
        help="geth, tgeth, openeth or nether. Defaults to ARCHIVE_NODE_TYPE env or geth.",
    )
    trace_parser.add_argument(
        "-k",
        "--etherscan-key",
        required=False,
        help="Etherscan API key. Defaults to ETHERSCAN_API_KEY env.",
    )
    _add_output_arguments(trace_parser)

    decode_parser = subparsers.add_parser("decode", help="Decode a previously fetched JSON bundle")
    decode_parser.add_argument(
        "--input",
        required=True,
        help="Path to a JSON file with transactions, traces and contracts. Use - for stdin.",
    )
    _add_output_arguments(decode_parser)

    return parser


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-d",
        "--depth",
        required=False,
        type=int,
        help="Limit the transaction call depth in the output.",
    )
    parser.add_argument(
        "-p",
        "--no-params",
        action="store_true",
        help="Hide function params, return values and event params.",
    )


def _read_bundle(path: str) -> dict:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _print_run(run: DecodedRun, args: argparse.Namespace) -> None:
    result = run.to_dict(max_depth=args.depth, include_params=not args.no_params)
    print(json.dumps(to_jsonable(result), indent=2))


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
        setup_logging("DEBUG" if args.verbose else config.log_level)

        if args.depth is not None and args.depth < 0:
            raise ValueError(f"Invalid depth {args.depth}. Must be a non-negative integer.")

        if args.command == "trace":
            if args.url:
                config = replace(config, node_url=args.url)
            if args.node_type:
                config = replace(config, node_type=validate_node_type(args.node_type))
            if args.etherscan_key:
                config = replace(config, etherscan_api_key=args.etherscan_key)

            tx_hashes = [tx_hash for tx_hash in args.tx_hashes.split(",") if tx_hash]
            manager = TransactionManager.from_config(config)
            run = manager.fetch(tx_hashes)
            _print_run(run, args)
        elif args.command == "decode":
            transactions, traces, contracts = load_bundle(_read_bundle(args.input))
            run = TransactionManager.decode(transactions, traces, contracts)
            _print_run(run, args)
        logger.debug("Done!")
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
