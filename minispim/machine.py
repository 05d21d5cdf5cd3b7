"""Processor state and the single-cycle step that drives the datapath."""

from __future__ import annotations

import re
from typing import Iterable, Iterator, List, Optional, Tuple

from .datapath import (
    WORD_MASK,
    Controls,
    Fields,
    Halt,
    alu_operations,
    instruction_decode,
    instruction_fetch,
    instruction_partition,
    read_register,
    rw_memory,
    sign_extend,
    write_register,
)

__all__ = [
    "MEMSIZE",
    "REGSIZE",
    "PC_INIT",
    "SP_INIT",
    "GP_INIT",
    "REGISTER_NAMES",
    "Machine",
    "load_program",
]

MEMSIZE = 65536 >> 2
REGSIZE = 32

PC_INIT = 0x4000
SP_INIT = 0xFFFC
GP_INIT = 0xC000

REGISTER_NAMES: Tuple[str, ...] = (
    "$zero", "$at", "$v0", "$v1", "$a0", "$a1", "$a2", "$a3",
    "$t0", "$t1", "$t2", "$t3", "$t4", "$t5", "$t6", "$t7",
    "$s0", "$s1", "$s2", "$s3", "$s4", "$s5", "$s6", "$s7",
    "$t8", "$t9", "$k0", "$k1", "$gp", "$sp", "$fp", "$ra",
    "$pc", "$stat", "$lo", "$hi",
)

_PC_INDEX = REGSIZE
_ULONG_MAX = (1 << 64) - 1
_HEX_WORD = re.compile(r"\s*([+-]?)(?:0[xX](?=[0-9a-fA-F]))?([0-9a-fA-F]+)")


def _parse_hex_word(line: str) -> Optional[int]:
    """Parse a leading hexadecimal number the way the loader reads it."""
    match = _HEX_WORD.match(line)
    if match is None:
        return None
    value = min(int(match.group(2), 16), _ULONG_MAX)
    if match.group(1) == "-":
        value = -value & _ULONG_MAX
    return value & WORD_MASK


def load_program(lines: Iterable[str], errors: Optional[List[int]] = None) -> List[int]:
    """Turn program text, one hexadecimal word per line, into words.

    A line that holds no number becomes a zero word; its zero-based
    index is appended to ``errors`` when a list is given.
    """
    words = []
    for index, line in enumerate(lines):
        value = _parse_hex_word(line)
        if value is None:
            if errors is not None:
                errors.append(index)
            value = 0
        words.append(value)
    return words


def _register_index(name: str) -> int:
    for index, reg_name in enumerate(REGISTER_NAMES):
        if name == reg_name or name == reg_name[1:]:
            return index
    raise KeyError(f"unknown register {name!r}")


def _check_range(start: int, stop: int) -> None:
    if not 0 <= start < stop <= MEMSIZE:
        raise ValueError(f"memory range {start}..{stop} outside 0..{MEMSIZE}")


class Machine:
    """Memory, registers and the latched datapath signals of the processor."""

    def __init__(self) -> None:
        self.mem: List[int] = [0] * MEMSIZE
        self.reg: List[int] = [0] * (REGSIZE + 4)
        self.halted = False
        self.controls = Controls()
        self.instruction = 0
        self.fields = instruction_partition(0)
        self.data1 = 0
        self.data2 = 0
        self.extended_value = 0
        self.alu_result = 0
        self.zero = False
        self.memdata = 0
        self.reset()

    @property
    def pc(self) -> int:
        return self.reg[_PC_INDEX]

    @pc.setter
    def pc(self, value: int) -> None:
        self.reg[_PC_INDEX] = value & WORD_MASK

    def reset(self) -> None:
        """Clear the registers and set pc, sp and gp to their start values."""
        self.reg[:] = [0] * (REGSIZE + 4)
        self.set_register("pc", PC_INIT)
        self.set_register("sp", SP_INIT)
        self.set_register("gp", GP_INIT)

    def load(self, words: Iterable[int]) -> None:
        """Clear memory and place ``words`` from the initial pc onwards."""
        words = [word & WORD_MASK for word in words]
        base = PC_INIT >> 2
        if base + len(words) > MEMSIZE:
            raise ValueError(f"program of {len(words)} words does not fit in memory")
        self.mem[:] = [0] * MEMSIZE
        self.mem[base:base + len(words)] = words

    def register(self, name: str) -> int:
        """Return a register by name, with or without the leading '$'."""
        return self.reg[_register_index(name)]

    def set_register(self, name: str, value: int) -> None:
        """Set a register by name, with or without the leading '$'."""
        self.reg[_register_index(name)] = value & WORD_MASK

    def step(self) -> bool:
        """Run one instruction through the datapath; return whether it halted."""
        try:
            self.instruction = instruction_fetch(self.pc, self.mem)
            fields: Fields = instruction_partition(self.instruction)
            self.fields = fields
            self.controls = instruction_decode(fields.op)
            controls = self.controls
            self.data1, self.data2 = read_register(fields.r1, fields.r2, self.reg)
            self.extended_value = sign_extend(fields.offset)
            self.alu_result, self.zero = alu_operations(
                self.data1,
                self.data2,
                self.extended_value,
                fields.funct,
                controls.alu_op,
                controls.alu_src,
            )
            memdata = rw_memory(
                self.alu_result,
                self.data2,
                controls.mem_write,
                controls.mem_read,
                self.mem,
            )
            if memdata is not None:
                self.memdata = memdata
            write_register(
                fields.r2,
                fields.r3,
                self.memdata,
                self.alu_result,
                controls.reg_write,
                controls.reg_dst,
                controls.mem_to_reg,
                self.reg,
            )
            self.pc = self.pc_after(fields)
        except Halt:
            self.halted = True
        else:
            self.halted = False
        return self.halted

    def pc_after(self, fields: Fields) -> int:
        from .datapath import pc_update

        return pc_update(
            self.pc,
            fields.jsec,
            self.extended_value,
            self.controls.branch,
            self.controls.jump,
            self.zero,
        )

    def run(self, count: Optional[int] = None) -> int:
        """Step until halted, or at most ``count`` times; return the steps taken."""
        steps = 0
        while not self.halted and (count is None or steps < count):
            self.step()
            steps += 1
        return steps

    def dump_registers(self, prefix: str = "") -> str:
        """Return all registers, four to a line."""
        parts = []
        for index, (name, value) in enumerate(zip(REGISTER_NAMES, self.reg)):
            lead = prefix if index % 4 == 0 else ""
            sep = "\n" if index % 4 == 3 else "     "
            parts.append(f"{lead} {name:<5} {value:08x}{sep}")
        return "".join(parts)

    def _runs(self, start: int, end: int) -> Iterator[Tuple[int, int, int]]:
        """Yield (first, last, value) for runs of equal words in [start, end)."""
        if end < start:
            end = start
        if start == end:
            _check_range(start, start + 1)
            yield start, start, self.mem[start]
            return
        _check_range(start, end)
        first, value = start, self.mem[start]
        for index in range(start + 1, end + 1):
            if index == end or self.mem[index] != value:
                yield first, index - 1, value
                if index != end:
                    first, value = index, self.mem[index]

    def dump_memory(self, start: int, end: int, prefix: str = "") -> str:
        """Return memory words in [start, end) by decimal word index, runs merged."""
        lines = []
        for first, last, value in self._runs(start, end):
            if first == last:
                lines.append(f"{prefix} {first:05d}        {value:08x}\n")
            else:
                lines.append(f"{prefix} {first:05d}-{last:05d}  {value:08x}\n")
        return "".join(lines)

    def dump_memory_hex(self, start: int, end: int, prefix: str = "") -> str:
        """Return memory words in [start, end) by hexadecimal byte address, runs merged."""
        lines = []
        for first, last, value in self._runs(start, end):
            if first == last:
                lines.append(f"{prefix} {first * 4:05x}        {value:08x}\n")
            else:
                lines.append(f"{prefix} {first * 4:05x}-{last * 4:05x}  {value:08x}\n")
        return "".join(lines)

    def dump_hex(self, start: int, end: int, prefix: str = "") -> str:
        """Return words ``start`` to ``end`` inclusive, four to a line.

        When ``end`` is below ``start`` the words are listed downwards.
        """
        for index in (start, end):
            if not 0 <= index < MEMSIZE:
                raise ValueError(f"word index {index} outside 0..{MEMSIZE - 1}")
        if end < start:
            indices = range(start, end - 1, -1)
            offset = 3
        else:
            indices = range(start, end + 1)
            offset = 0
        parts = []
        for count, index in enumerate(indices):
            if count % 4 == 0:
                parts.append(f"{prefix} {(index << 2) + offset:04x}  ")
            parts.append(f" {self.mem[index]:08x}" + ("\n" if count % 4 == 3 else ""))
        if len(indices) % 4 != 0:
            parts.append("\n")
        return "".join(parts)

    def control_signals(self) -> str:
        """Return the line showing the latched control signals."""
        return f"\tControl Signals: {self.controls.signal_string()}\n"