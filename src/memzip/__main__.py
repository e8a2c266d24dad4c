"""Command-line interface for memzip."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from . import MemZipError, ZlibCodec, __version__, format_size, load, new


def cmd_create(args: argparse.Namespace) -> int:
    """Handle the create command."""
    output = Path(args.output)
    files = [Path(f) for f in args.files]

    # Validate inputs
    for f in files:
        if not f.is_file():
            print(f"Error: '{f}' is not a regular file", file=sys.stderr)
            return 1

    print(f"Creating archive: {output}")
    print(f"  Compression: {'STORED' if args.store else f'DEFLATE level {args.level}'}")

    try:
        archive = new(args.comment, codec=ZlibCodec(compresslevel=args.level))
        for file_path in files:
            entry = archive.add_file(file_path.name, file_path.read_bytes(), compress=not args.store)
            if args.verbose:
                print(
                    f"  Added: {entry.name} "
                    f"({format_size(entry.uncompressed_size)} -> {format_size(entry.compressed_size)})"
                )
        archive.save(output)
    except (MemZipError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Created {output.name}: {len(archive)} file(s), {format_size(output.stat().st_size)}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """Handle the list command."""
    try:
        archive = load(args.archive)
    except MemZipError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"{'Method':<8} {'Size':>10} {'Packed':>10} {'CRC-32':>8}  {'Modified':<19}  Name")
    total = 0
    for entry in archive:
        total += entry.uncompressed_size
        print(
            f"{entry.compression_method.name:<8} {entry.uncompressed_size:>10} "
            f"{entry.compressed_size:>10} {entry.crc32:08x}  "
            f"{entry.date_time:%Y-%m-%d %H:%M:%S}  {entry.name}"
        )
    print(f"{len(archive)} file(s), {format_size(total)}")
    if archive.comment:
        print(f"Comment: {archive.comment.decode('utf-8', errors='replace')}")
    return 0


def cmd_test(args: argparse.Namespace) -> int:
    """Handle the test command."""
    try:
        archive = load(args.archive, verify=True)
    except MemZipError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for entry in archive:
        print(f"  OK {entry.name}")
    print(f"No errors detected in {len(archive)} file(s)")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="memzip",
        description="Build, list and test ZIP archives.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Create command
    create_parser = subparsers.add_parser(
        "create",
        help="Create a ZIP archive",
        description="Create a ZIP archive from files, stored under their base names.",
    )
    create_parser.add_argument(
        "-o", "--output",
        required=True,
        help="Output archive path (e.g., bundle.zip)",
    )
    create_parser.add_argument(
        "files",
        nargs="+",
        help="Files to add",
    )
    create_parser.add_argument(
        "-0", "--store",
        action="store_true",
        help="Store without compression",
    )
    create_parser.add_argument(
        "-l", "--level",
        type=int,
        default=6,
        choices=range(1, 10),
        metavar="1-9",
        help="Compression level (default: 6)",
    )
    create_parser.add_argument(
        "-c", "--comment",
        default="",
        help="Archive comment",
    )
    create_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show each file as it is added",
    )

    list_parser = subparsers.add_parser("list", help="List archive contents")
    list_parser.add_argument("archive", help="Archive to list")

    test_parser = subparsers.add_parser("test", help="Check archive CRCs")
    test_parser.add_argument("archive", help="Archive to test")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "create":
        return cmd_create(args)
    if args.command == "list":
        return cmd_list(args)
    if args.command == "test":
        return cmd_test(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
