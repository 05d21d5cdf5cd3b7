"""Single-cycle datapath stages of a small MIPS-like processor.

Every stage is a pure function over 32-bit unsigned words, except
:func:`write_register`, which updates the register file it is given.
A stage that would stop the processor raises :class:`Halt`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import MutableSequence, Optional, Sequence, Tuple

WORD_MASK = 0xFFFFFFFF

__all__ = [
    "Halt",
    "Controls",
    "Fields",
    "alu",
    "instruction_fetch",
    "instruction_partition",
    "instruction_decode",
    "read_register",
    "sign_extend",
    "alu_operations",
    "rw_memory",
    "write_register",
    "pc_update",
]


class Halt(Exception):
    """Raised when the processor reaches a halt condition."""


@dataclass(frozen=True)
class Controls:
    """Control signals produced by the decode stage."""

    reg_dst: int = 0
    jump: int = 0
    branch: int = 0
    mem_read: int = 0
    mem_to_reg: int = 0
    alu_op: int = 0
    mem_write: int = 0
    alu_src: int = 0
    reg_write: int = 0

    def signal_string(self) -> str:
        """Return the signals as one compact hexadecimal string."""
        return (
            f"{self.reg_dst:x}{self.jump:x}{self.branch:x}{self.mem_read:x}"
            f"{self.mem_to_reg:03x}{self.alu_op:x}{self.mem_write:x}"
            f"{self.alu_src:x}{self.reg_write:x}"
        )


@dataclass(frozen=True)
class Fields:
    """The sections an instruction word is split into."""

    op: int
    r1: int
    r2: int
    r3: int
    funct: int
    offset: int
    jsec: int


def _signed(value: int) -> int:
    value &= WORD_MASK
    return value - (1 << 32) if value & 0x80000000 else value


def _mask(start: int, length: int) -> int:
    """Bit mask of ``length`` ones ending at bit ``start``, cut to 32 bits."""
    return (((1 << length) - 1) << (start - length + 1)) & WORD_MASK


_OP_MASK = _mask(32, 7)
_R1_MASK = _mask(26, 6)
_R2_MASK = _mask(20, 5)
_R3_MASK = _mask(15, 5)
_FUNCT_MASK = _mask(6, 7)
_OFFSET_MASK = _mask(16, 17)
_JSEC_MASK = _mask(26, 27)


def alu(a: int, b: int, control: int) -> Tuple[int, bool]:
    """Apply ALU operation ``control`` to ``a`` and ``b``.

    Returns the 32-bit result and whether it is zero.
    """
    a &= WORD_MASK
    b &= WORD_MASK
    if control == 0:
        result = a + b
    elif control == 1:
        result = a - b
    elif control == 2:
        result = int(_signed(a) < _signed(b))
    elif control == 3:
        result = int(a < b)
    elif control == 4:
        result = a & b
    elif control == 5:
        result = a | b
    elif control == 6:
        result = b << 16
    elif control == 7:
        result = ~a
    else:
        raise ValueError(f"unknown ALU control {control}")
    result &= WORD_MASK
    return result, result == 0


def instruction_fetch(pc: int, mem: Sequence[int]) -> int:
    """Return the word at byte address ``pc``; halt if it is not word-aligned."""
    if pc % 4 != 0:
        raise Halt(f"unaligned instruction address {pc:#x}")
    index = pc >> 2
    if index >= len(mem):
        raise Halt(f"instruction address {pc:#x} out of memory")
    return mem[index]


def instruction_partition(instruction: int) -> Fields:
    """Split an instruction word into its sections."""
    instruction &= WORD_MASK
    return Fields(
        op=(instruction & _OP_MASK) >> 26,
        r1=(instruction & _R1_MASK) >> 21,
        r2=(instruction & _R2_MASK) >> 16,
        r3=(instruction & _R3_MASK) >> 11,
        funct=instruction & _FUNCT_MASK,
        offset=instruction & _OFFSET_MASK,
        jsec=instruction & _JSEC_MASK,
    )


_SET_LESS_IMMEDIATE = Controls(alu_op=3, alu_src=1, reg_write=1)

_DECODE_TABLE = {
    2: Controls(reg_dst=2, jump=1, mem_to_reg=2, alu_src=2),
    0: Controls(reg_dst=1, alu_op=7, reg_write=1),
    43: Controls(reg_dst=2, mem_to_reg=2, mem_write=1, alu_src=1),
    35: Controls(mem_read=1, mem_to_reg=1, alu_src=1, reg_write=1),
    15: Controls(alu_op=2, alu_src=1, reg_write=1),
    8: Controls(alu_src=1, reg_write=1),
    10: _SET_LESS_IMMEDIATE,
    4: Controls(reg_dst=2, branch=1, mem_to_reg=2, alu_op=1),
    11: _SET_LESS_IMMEDIATE,
}


def instruction_decode(op: int) -> Controls:
    """Return the control signals for opcode ``op``; halt on an unknown one."""
    try:
        return _DECODE_TABLE[op]
    except KeyError:
        raise Halt(f"unknown opcode {op}") from None


def read_register(r1: int, r2: int, reg: Sequence[int]) -> Tuple[int, int]:
    """Return the contents of registers ``r1`` and ``r2``."""
    for number in (r1, r2):
        if not 0 <= number < len(reg):
            raise Halt(f"register {number} out of range")
    return reg[r1], reg[r2]


def sign_extend(offset: int) -> int:
    """Sign-extend the low 16 bits of ``offset`` to 32 bits."""
    if offset & (1 << 15):
        return (offset | 0xFFFF0000) & WORD_MASK
    return offset & 0x0000FFFF


_FUNCT_CONTROLS = {
    32: 0,  # add
    34: 1,  # sub
    42: 2,  # slt
    43: 3,  # sltu
    36: 4,  # and
    37: 5,  # or
    0: 6,  # sll
    39: 7,  # nor, computed as not
}


def alu_operations(
    data1: int,
    data2: int,
    extended_value: int,
    funct: int,
    alu_op: int,
    alu_src: int,
) -> Tuple[int, bool]:
    """Choose the ALU operation and second operand, then run the ALU.

    Halts on an ALU op or function code the datapath does not support.
    """
    if alu_op == 0:
        control = 0
    elif alu_op == 1:
        control = 1
    elif alu_op == 7:
        try:
            control = _FUNCT_CONTROLS[funct]
        except KeyError:
            raise Halt(f"unknown function code {funct}") from None
    elif alu_op == 2:
        control = 6
    else:
        raise Halt(f"unsupported ALU op {alu_op}")
    operand2 = extended_value if alu_src else data2
    return alu(data1, operand2, control)


def rw_memory(
    alu_result: int,
    data2: int,
    mem_write: int,
    mem_read: int,
    mem: MutableSequence[int],
) -> Optional[int]:
    """Read from and/or write to memory at byte address ``alu_result``.

    Returns the word read, or None when nothing is read. Halts on an
    unaligned or out-of-range address when memory is accessed.
    """
    if not mem_write and not mem_read:
        return None
    if alu_result % 4 != 0:
        raise Halt(f"unaligned data address {alu_result:#x}")
    index = alu_result // 4
    if index >= len(mem):
        raise Halt(f"data address {alu_result:#x} out of memory")
    memdata = mem[index] if mem_read == 1 else None
    if mem_write == 1:
        mem[index] = data2 & WORD_MASK
    return memdata


def write_register(
    r2: int,
    r3: int,
    memdata: int,
    alu_result: int,
    reg_write: int,
    reg_dst: int,
    mem_to_reg: int,
    reg: MutableSequence[int],
) -> None:
    """Write memory data or the ALU result to the destination register.

    Register 0 is never written.
    """
    if reg_write != 1 or mem_to_reg not in (0, 1):
        return
    dest = r3 if reg_dst == 1 else r2
    if dest == 0:
        return
    reg[dest] = (memdata if mem_to_reg == 1 else alu_result) & WORD_MASK


def pc_update(
    pc: int,
    jsec: int,
    extended_value: int,
    branch: int,
    jump: int,
    zero: bool,
) -> int:
    """Return the program counter for the next instruction."""
    pc = (pc + 4) & WORD_MASK
    if branch and zero:
        pc = (pc + (extended_value << 2)) & WORD_MASK
    if jump:
        pc = ((pc & 0xF0000000) | (jsec << 2)) & WORD_MASK
    return pc