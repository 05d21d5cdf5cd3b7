"""Interactive command loop for stepping a program through the processor."""

from __future__ import annotations

import re
import sys
from typing import Iterable, List, Optional, Sequence, TextIO

from .machine import MEMSIZE, Machine, load_program

__all__ = ["Session", "main"]

_DELIMITERS = re.compile(r"[ ,.\t\n\r]+")
_DECIMAL = re.compile(r"\s*([+-]?)(\d+)")
_ULONG_MAX = (1 << 64) - 1
_PROG = "minispim"


def _parse_count(token: str) -> int:
    """Read a leading decimal number as an unsigned long cut to a signed int."""
    match = _DECIMAL.match(token)
    if match is None:
        return 0
    value = min(int(match.group(2)), _ULONG_MAX)
    if match.group(1) == "-":
        value = -value & _ULONG_MAX
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _split_lines(text: str) -> List[str]:
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


class Session:
    """A command session over one machine and the program text it was loaded from."""

    def __init__(
        self,
        machine: Machine,
        program_lines: Iterable[str] = (),
        out: Optional[TextIO] = None,
        redirect: bool = False,
    ) -> None:
        self.machine = machine
        self.program_lines = list(program_lines)
        self.out = out if out is not None else sys.stdout
        self.prefix = ">" if redirect else ""

    def _write(self, text: str) -> None:
        self.out.write(text)

    def _invalid(self) -> None:
        self._write(f"{self.prefix} invalid cmd\n")

    def _memory_hex(self, args: Sequence[str]) -> None:
        start = _parse_count(args[0]) if args else 0
        end = _parse_count(args[1]) if len(args) > 1 else MEMSIZE
        try:
            self._write(self.machine.dump_memory_hex(start, end, self.prefix))
        except ValueError:
            self._invalid()

    def _hex(self, args: Sequence[str]) -> None:
        if not args:
            self._invalid()
            return
        if len(args) < 2:
            self._write(f"{self.prefix}invalid cmd\n")
            return
        try:
            self._write(
                self.machine.dump_hex(_parse_count(args[0]), _parse_count(args[1]), self.prefix)
            )
        except ValueError:
            self._invalid()

    def _print_program(self) -> None:
        for number, line in enumerate(self.program_lines):
            self._write(f"{self.prefix} {number: 5d}  {line}")

    def execute(self, line: str) -> bool:
        """Run one command line; return False once the session should end."""
        tokens = [token for token in _DELIMITERS.split(line) if token]
        if not tokens:
            return True
        self._write("\n")
        command, args = tokens[0][0].lower(), tokens[1:]
        prefix = self.prefix
        if command == "g":
            self._write(self.machine.control_signals())
        elif command == "r":
            self._write(self.machine.dump_registers(prefix))
        elif command == "m":
            self._memory_hex(args)
        elif command == "s":
            count = _parse_count(args[0]) if args else 1
            self.machine.run(max(count, 0))
            self._write(f"{prefix} step\n")
        elif command == "c":
            self.machine.run()
            self._write(f"{prefix} cont\n")
        elif command == "h":
            self._write(f"{prefix} {'true' if self.machine.halted else 'false'}\n")
        elif command == "p":
            self._print_program()
        elif command == "i":
            self._write(f"{prefix} {MEMSIZE}\n")
        elif command == "d":
            self._hex(args)
        elif command in ("x", "q"):
            self._write(f"{prefix} quit\n")
            if prefix:
                self._write(f"{prefix}{prefix}\n")
            return False
        else:
            self._invalid()
        if prefix:
            self._write(f"{prefix}{prefix}\n")
        return True

    def loop(self, stream: TextIO) -> None:
        """Reset the registers, then prompt for and run commands until quit or end of input."""
        self.machine.reset()
        while True:
            self._write(f"\n{self.prefix} cmd: ")
            self.out.flush()
            line = stream.readline()
            if not line:
                return
            if not self.execute(line):
                return


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Load a program file and start the command loop."""
    args = list(sys.argv[1:] if argv is None else argv)
    usage = f"syntax: {_PROG} input_file [-r]"
    if len(args) not in (1, 2) or args[0].startswith("-"):
        print(usage, file=sys.stderr)
        return 1
    path = args[0]
    try:
        handle = open(path, "r", encoding="latin-1", newline="")
    except OSError:
        print(f"{_PROG}: cannot open input file {path}", file=sys.stderr)
        return 1
    redirect = False
    with handle:
        if len(args) == 2:
            if args[1] != "-r":
                print(usage, file=sys.stderr)
                return 1
            redirect = True
            print(_PROG)
        try:
            text = handle.read()
        except OSError:
            print(f"{_PROG}: file {path} reading error", file=sys.stderr)
            return 1
    lines = _split_lines(text)
    errors: List[int] = []
    words = load_program(lines, errors)
    for index in errors:
        # Reported as the byte offset from the load address, plus one.
        print(
            f"{_PROG}: file {path} error in line {index * 4 + 1}, continue...",
            file=sys.stderr,
        )
    machine = Machine()
    try:
        machine.load(words)
    except ValueError as exc:
        print(f"{_PROG}: file {path}: {exc}", file=sys.stderr)
        return 1
    Session(machine, lines, sys.stdout, redirect).loop(sys.stdin)
    return 0