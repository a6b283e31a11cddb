from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from core.assembler import Assembler
from core.debug import format_assembly_dump, format_io, format_trace
from core.emulator import Emulator
from core.errors import MachineError
from core.profile import ProfileError, load_default, load_profile


logger = logging.getLogger(__name__)

TOOL_NAME = "decimal-asm"
TOOL_VERSION = "1.0.0"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=TOOL_NAME,
        description="Assemble a decimal machine program and run it.",
    )
    parser.add_argument("-debug", "--debug", action="store_true", help="Dump symbols and memory, trace every step")
    parser.add_argument("--profile", type=str, help="Machine profile JSON (defaults to the bundled profile)")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="Increase log verbosity")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only log errors")
    parser.add_argument("--log-file", type=str, help="Also write the log to a file")
    parser.add_argument("--version", action="version", version=f"{TOOL_NAME} {TOOL_VERSION}")
    parser.add_argument("source", help="Assembly source file")
    parser.add_argument("inputs", nargs="*", type=int, help="Values consumed by INP, in order")
    return parser


def setup_logging(verbose: int, quiet: bool, log_file: Optional[str]) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    handlers: List[logging.Handler] = [console]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        handlers.append(file_handler)

    root_level = logging.DEBUG if log_file else level
    logging.basicConfig(level=root_level, handlers=handlers, force=True)


def _report(error: MachineError, stderr: TextIO) -> None:
    location = f" (line {error.line_no})" if error.line_no is not None else ""
    print(f"error{location}: {error.message}", file=stderr)
    if error.text:
        print(f"  {error.text}", file=stderr)


def execute(
    source: str,
    inputs: List[int],
    debug: bool = False,
    profile_path: Optional[str] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> int:
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    try:
        profile = load_profile(profile_path) if profile_path else load_default()
    except ProfileError as exc:
        print(f"error: {exc.message}", file=stderr)
        return 1

    try:
        program = Assembler(profile).assemble_file(source)
    except MachineError as exc:
        _report(exc, stderr)
        return 1

    if debug:
        stdout.write(format_assembly_dump(program))

    emulator = Emulator.for_program(program, inputs, profile)
    cpu = emulator.cpu
    while not emulator.halted:
        if debug and cpu.in_bounds(cpu.program_counter):
            print(format_trace(cpu), file=stdout)
        outcome = emulator.step()
        if debug and outcome.word is not None:
            line = format_io(outcome.word, outcome.output, cpu.accumulator)
            if line is not None:
                print(line, file=stdout)
        elif outcome.output is not None:
            stdout.write(outcome.output)
        if outcome.error is not None:
            stdout.flush()
            _report(outcome.error, stderr)
            return 1
    stdout.flush()
    logger.info("program halted")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.quiet, args.log_file)
    return execute(args.source, args.inputs, debug=args.debug, profile_path=args.profile)


if __name__ == "__main__":
    sys.exit(main())
