"""
Command-line interface for memstore.
"""

import argparse
import logging
import sys

from .config import load_config, resolve_data_dir, store_api_key
from .errors import MemStoreError
from .memory import MemoryManager, create_memory_manager


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="mem",
        description="Remember commands and find them again by describing them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Store the OpenAI API key used for embeddings
  mem set-key sk-...

  # Remember a command
  mem insert "git diff HEAD^ HEAD" "show diff between last commit and current commit"

  # Get the best matching command
  mem get "diff between commits"

  # List the 5 best matches with their scores
  mem list "files" 5
        """
    )

    parser.add_argument(
        "--data-dir",
        help="Data directory (defaults to $MEM_DATA_DIR or ~/.mem)"
    )
    parser.add_argument(
        "--provider",
        help="Embedding provider: openai, local or hash"
    )
    parser.add_argument(
        "--model",
        help="Embedding model to use"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Embedding request timeout in seconds"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Insert command
    insert_parser = subparsers.add_parser(
        "insert",
        help="Insert a memory into the store"
    )
    insert_parser.add_argument(
        "memory",
        help="The memory to store"
    )
    insert_parser.add_argument(
        "description",
        help="A description of the memory that is used for semantic retrieval"
    )

    # Get command
    get_parser = subparsers.add_parser(
        "get",
        help="Get the best matching memory from the store"
    )
    get_parser.add_argument(
        "description",
        help="A description of the memory you are looking for"
    )

    # List command
    list_parser = subparsers.add_parser(
        "list",
        help="List the best matching memories"
    )
    list_parser.add_argument(
        "description",
        help="A description of the memory you are looking for"
    )
    list_parser.add_argument(
        "count",
        nargs="?",
        type=int,
        help="The maximum number of memories to list (default: 10)"
    )

    # Set-key command
    set_key_parser = subparsers.add_parser(
        "set-key",
        help="Store the OpenAI API key in the data directory"
    )
    set_key_parser.add_argument(
        "api_key",
        help="OpenAI API key"
    )

    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose)

    try:
        if args.command == "set-key":
            handle_set_key(args)
        else:
            handle_memory(args)
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        sys.exit(130)
    except MemStoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def handle_memory(args):
    """Handle the insert, get and list commands."""
    config = load_config(
        data_dir=args.data_dir,
        provider=args.provider,
        model=args.model,
        timeout=args.timeout,
    )
    manager = create_memory_manager(config)

    try:
        if args.command == "insert":
            handle_insert(manager, args)
        elif args.command == "get":
            handle_get(manager, args)
        elif args.command == "list":
            if args.count is None:
                args.count = config.default_count
            handle_list(manager, args)
    finally:
        manager.close()


def handle_insert(manager: MemoryManager, args):
    """Insert a memory."""
    memory_id = manager.insert(args.memory, args.description)
    print(f"Memory inserted! (id {memory_id})")


def handle_get(manager: MemoryManager, args):
    """Print the best matching memory."""
    result = manager.get_best(args.description)

    if result is None:
        print("No memory found!")
        return

    print(result.record.command)


def handle_list(manager: MemoryManager, args):
    """Print the best matching memories with their scores."""
    results = manager.query(args.description, k=args.count)

    if not results:
        print("No memories found!")
        return

    for i, result in enumerate(results, 1):
        record = result.record
        print(f"{i}. [{result.score:.3f}] {record.command}")
        print(f"   {record.description}")


def handle_set_key(args):
    """Store the OpenAI API key."""
    key_path = store_api_key(args.api_key, resolve_data_dir(args.data_dir))
    print(f"API key saved to {key_path}")


if __name__ == "__main__":
    main()
