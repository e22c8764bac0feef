"""
Command-line driver: collect .go files, parse them once, run both passes, report.
"""

import argparse
import os
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional, TextIO

from dotenv import load_dotenv

from core.utils import debug, error, info
from core.context import ProjectContext
from reporter import OutputMode, report_violations, report_expectation_problems
from cli.helpers import validate_environment, collect_source_files
from cli.debug import dump_ast_impl, dump_types_impl, check_parser_impl


@contextmanager
def _results_file(output_dir: Optional[str], input_path: str, output_mode: OutputMode) -> Iterator[Optional[TextIO]]:
    """Yield OUT-<input name>.txt/.json inside output_dir, or None without one."""
    if not output_dir:
        yield None
        return
    os.makedirs(output_dir, exist_ok=True)
    name = os.path.basename(os.path.normpath(input_path))
    path = os.path.join(output_dir, f"OUT-{name}{'.json' if output_mode == OutputMode.JSON else '.txt'}")
    print(f"Writing results to: {path}")
    with open(path, "w", encoding="utf-8") as f:
        yield f


def _expectation_problems(ctx: ProjectContext, violations, skip_tests: bool) -> List[str]:
    from lockcheck.expect import check_expectations

    problems: List[str] = []
    for path, file_ctx in sorted(ctx.source_files.items()):
        if file_ctx.go_file is None or (skip_tests and file_ctx.is_test_file):
            continue
        problems.extend(check_expectations(file_ctx.source_code or "", violations, filename=path))
    return problems


def main(
    input_path: str,
    output_mode: OutputMode = OutputMode.SHORT,
    output_dir: Optional[str] = None,
    skip_tests: bool = False,
    dump_ast: bool = False,
    dump_types: bool = False,
    check_parser: bool = False,
    check_expectations: bool = False,
) -> int:
    """
    Analyze a .go file or a directory tree of packages.

    Returns the process exit status: 1 if anything was reported (violations,
    expectation mismatches) or a file failed to parse, else 0.
    """
    validate_environment()

    source_files = collect_source_files(input_path, skip_tests=skip_tests)
    if not source_files:
        error(f"No Go source files found at: {input_path}")
        return 1
    debug(f"Collected {len(source_files)} source file(s)")

    ctx = ProjectContext(source_files)
    if check_parser:
        return check_parser_impl(ctx)
    if dump_ast:
        dump_ast_impl(ctx)
    if dump_types:
        dump_types_impl(ctx)
        return 0

    broken = len(ctx.files_with_errors())
    if broken:
        info(f"{broken} file(s) skipped because of syntax errors")

    # Pass 1 (classification) and pass 2 (lock-state flow), package by package
    from lockcheck import run_lockcheck

    violations = run_lockcheck(ctx, skip_tests=skip_tests)

    with _results_file(output_dir, input_path, output_mode) as output_file:
        if check_expectations:
            reported = report_expectation_problems(_expectation_problems(ctx, violations, skip_tests), output_file)
        else:
            reported = report_violations(violations, ctx, output_mode, output_file)

    return 1 if reported or broken else 0


def cli(argv: Optional[List[str]] = None) -> None:
    # LOCKCHECK_DEBUG / LOCKCHECK_NO_COLORS may come from a .env file
    load_dotenv()

    parser = argparse.ArgumentParser(description="Check Go code against the mutex-discipline naming convention")
    parser.add_argument("input_path", help="Go source file or directory (walked recursively)")
    parser.add_argument("-o", "--output", choices=[m.value for m in OutputMode], default="short", help="Output format")
    parser.add_argument("-O", "--output-dir", metavar="DIR", help="Also write results to DIR/OUT-<name>.txt|json")
    parser.add_argument("--skip-tests", action="store_true", help="Ignore *_test.go files")
    parser.add_argument("-da", "--dump-ast", action="store_true", help="Print the tree-sitter tree of every file")
    parser.add_argument(
        "--dump-types", action="store_true", help="Print mutex-bearing types and method privileges, then exit"
    )
    parser.add_argument(
        "-cp", "--check-parser", action="store_true", help="Only check that every file parses without errors"
    )
    parser.add_argument(
        "--check-expectations",
        action="store_true",
        help='Verify `// want "regexp"` comments instead of printing diagnostics',
    )
    args = parser.parse_args(argv)

    status = main(
        args.input_path,
        output_mode=OutputMode(args.output),
        output_dir=args.output_dir,
        skip_tests=args.skip_tests,
        dump_ast=args.dump_ast,
        dump_types=args.dump_types,
        check_parser=args.check_parser,
        check_expectations=args.check_expectations,
    )
    sys.exit(status)


if __name__ == "__main__":
    cli()
