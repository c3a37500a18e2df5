#!/usr/bin/env python3
"""
Command-line interface for pyjomap - Python Java region mapper.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from .classreader import ClassInfo, ClassPath, ClassFormatError
from .mapping import MemberRef, RegionError, RegionMapper
from .parser import ParseError, parse_file

logger = logging.getLogger(__name__)


def parse_command(args):
    """Parse Java files and output the AST as JSON."""
    for source_file in args.files:
        path = Path(source_file)
        if not path.exists():
            print(f"Error: File not found: {source_file}", file=sys.stderr)
            sys.exit(1)

        try:
            unit = parse_file(str(path))
        except ParseError as e:
            print(f"Error parsing {source_file}: {e}", file=sys.stderr)
            sys.exit(1)
        print(unit.to_json())


def _add_classpath_entries(args, classpath: ClassPath):
    if args.classpath:
        for entry in args.classpath.split(os.pathsep):
            if entry:
                classpath.add_path(entry)
    if args.jdk:
        classpath.add_jdk()


def _analyzed_class_name(args, unit) -> str:
    """Internal name of the class the source was decompiled from."""
    if args.class_name:
        return args.class_name.replace(".", "/")
    if not unit.types:
        raise RegionError("No type declaration in source; pass --class")
    name = unit.types[0].name
    if unit.package is not None:
        return unit.package.name.replace(".", "/") + "/" + name
    return name


def _load_source(args):
    path = Path(args.file)
    if not path.exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        sys.exit(1)
    return parse_file(str(path))


def _build_mapper(args, classpath: ClassPath, unit) -> RegionMapper:
    _add_classpath_entries(args, classpath)
    name = _analyzed_class_name(args, unit)
    node = classpath.find_class(name)
    if node is None:
        logger.warning("Class %s is not on the classpath, members will not be mapped", name)
        node = ClassInfo(name, super_class="java/lang/Object")

    mapper = RegionMapper(classpath, node, unit, warn_unresolved=args.warn_unresolved)
    return mapper.analyze()


def _member_json(member: MemberRef) -> dict:
    return {
        "owner": member.owner.name,
        "name": member.name,
        "descriptor": member.descriptor,
        "kind": member.kind,
    }


def regions_command(args):
    """Print every recorded class and member range as JSON."""
    unit = _load_source(args)
    with ClassPath() as classpath:
        mapper = _build_mapper(args, classpath, unit)
        classes = [
            {"name": cls.name, "ranges": [r.to_list() for r in ranges]}
            for cls, ranges in sorted(mapper.class_ranges().items(), key=lambda item: item[0].name)
        ]
        members = [
            dict(_member_json(member), ranges=[r.to_list() for r in ranges])
            for member, ranges in sorted(mapper.member_ranges().items(),
                                         key=lambda item: (item[0].owner.name, item[0].name,
                                                           item[0].descriptor))
        ]
    print(json.dumps({"class": mapper.node.name, "classes": classes, "members": members}, indent=2))


def lookup_command(args):
    """Print the class and member at a source position."""
    unit = _load_source(args)
    with ClassPath() as classpath:
        mapper = _build_mapper(args, classpath, unit)
        cls = mapper.class_at(args.line, args.column)
        member = mapper.member_at(args.line, args.column)
    result = {
        "line": args.line,
        "column": args.column,
        "class": cls.name if cls is not None else None,
        "member": _member_json(member) if member is not None else None,
    }
    print(json.dumps(result, indent=2))


def _configure_logging(args):
    if args.quiet:
        level = logging.ERROR
    elif args.verbose >= 2:
        level = logging.DEBUG
    elif args.verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv=None):
    """Main entry point for pyjomap CLI."""
    parser = argparse.ArgumentParser(
        prog="pyjomap",
        description="Python Java region mapper - map decompiled source positions to bytecode members",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress (twice for debug output)",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only log errors",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Parse command
    parse_parser = subparsers.add_parser(
        "parse",
        help="Parse Java files and output AST as JSON",
    )
    parse_parser.add_argument(
        "files",
        nargs="+",
        help="Java source files to parse",
    )
    parse_parser.set_defaults(func=parse_command)

    # Options shared by the mapping commands
    mapping_options = argparse.ArgumentParser(add_help=False)
    mapping_options.add_argument(
        "file",
        help="Decompiled Java source file",
    )
    mapping_options.add_argument(
        "-cp", "--classpath",
        help="Classpath entries holding the decompiled classes (jars, zips or directories)",
    )
    mapping_options.add_argument(
        "--jdk",
        action="store_true",
        help="Use the local JDK for runtime classes",
    )
    mapping_options.add_argument(
        "--class",
        dest="class_name",
        help="Class the source was decompiled from (default: package and first type declaration)",
    )
    mapping_options.add_argument(
        "--warn-unresolved",
        action="store_true",
        help="Warn about names that resolve to no class",
    )

    # Regions command
    regions_parser = subparsers.add_parser(
        "regions",
        parents=[mapping_options],
        help="Output every mapped class and member range as JSON",
    )
    regions_parser.set_defaults(func=regions_command)

    # Lookup command
    lookup_parser = subparsers.add_parser(
        "lookup",
        parents=[mapping_options],
        help="Output the class and member at a source position",
    )
    lookup_parser.add_argument(
        "--line",
        type=int,
        required=True,
        help="1-based line",
    )
    lookup_parser.add_argument(
        "--column",
        type=int,
        required=True,
        help="1-based column",
    )
    lookup_parser.set_defaults(func=lookup_command)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    _configure_logging(args)

    try:
        args.func(args)
    except (RegionError, ParseError, ClassFormatError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
