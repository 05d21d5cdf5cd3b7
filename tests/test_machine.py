import re

import pytest

from minispim.datapath import instruction_decode
from minispim.machine import (
    GP_INIT,
    MEMSIZE,
    PC_INIT,
    REGISTER_NAMES,
    SP_INIT,
    Machine,
    load_program,
)


def _encode_i(op, rs, rt, imm):
    return (op << 26) | (rs << 21) | (rt << 16) | (imm & 0xFFFF)


def test_reset_sets_initial_pointers():
    machine = Machine()
    machine.set_register("t0", 99)
    machine.reset()
    assert machine.register("pc") == PC_INIT
    assert machine.register("$sp") == SP_INIT
    assert machine.register("gp") == GP_INIT
    assert machine.register("t0") == 0


def test_register_names_with_and_without_dollar():
    machine = Machine()
    machine.set_register("$t3", 0x1234)
    assert machine.register("t3") == 0x1234
    assert machine.reg[REGISTER_NAMES.index("$t3")] == 0x1234


def test_unknown_register_raises():
    with pytest.raises(KeyError):
        Machine().register("nope")


def test_load_program_reports_bad_lines():
    errors = []
    words = load_program(["01095020\n", "zz\n", "0x8D0B0000\n"], errors)
    assert words == [0x01095020, 0, 0x8D0B0000]
    assert errors == [1]


def test_load_places_words_at_pc():
    machine = Machine()
    machine.load([0x21080001, 0x8D0B0000])
    assert machine.mem[PC_INIT >> 2] == 0x21080001
    assert machine.mem[(PC_INIT >> 2) + 1] == 0x8D0B0000


def test_load_too_large_raises():
    with pytest.raises(ValueError):
        Machine().load([0] * MEMSIZE)


def test_step_add():
    machine = Machine()
    machine.load([0x01095020])  # add $10, $8, $9
    machine.set_register("t0", 1)
    machine.set_register("t1", 3)
    assert machine.step() is False
    assert machine.register("t2") == machine.register("t0") + machine.register("t1")
    assert machine.pc == PC_INIT + 4


def test_unknown_opcode_halts():
    machine = Machine()
    machine.load([0xFC000000])
    assert machine.step() is True
    assert machine.halted
    assert machine.pc == PC_INIT


def test_run_until_memory_end():
    machine = Machine()
    machine.load([])
    machine.run()
    assert machine.halted
    assert machine.pc == MEMSIZE * 4


def test_run_with_count():
    machine = Machine()
    machine.load([])
    assert machine.run(3) == 3
    assert machine.pc == PC_INIT + 12
    assert not machine.halted


def test_jump_to_self():
    machine = Machine()
    machine.load([(2 << 26) | (PC_INIT >> 2)])
    machine.step()
    assert machine.pc == PC_INIT


def test_branch_taken_skips_word():
    machine = Machine()
    machine.load([_encode_i(4, 0, 0, 1)])
    machine.step()
    assert machine.pc == PC_INIT + 8


def test_control_signals_follow_decode():
    machine = Machine()
    machine.load([0x01095020])
    machine.step()
    expected = instruction_decode(0).signal_string()
    assert machine.control_signals() == f"\tControl Signals: {expected}\n"


def test_dump_memory_merges_runs():
    machine = Machine()
    machine.mem[0] = machine.mem[1] = 5
    machine.mem[2] = 7
    assert machine.dump_memory(0, 4).splitlines() == [
        " 00000-00001  00000005",
        " 00002        00000007",
        " 00003        00000000",
    ]


def test_dump_memory_hex_matches_decimal_runs():
    machine = Machine()
    machine.mem[0] = machine.mem[1] = 5
    decimal = machine.dump_memory(0, 10).splitlines()
    hexa = machine.dump_memory_hex(0, 10, ">").splitlines()
    assert len(decimal) == len(hexa)
    assert all(line.startswith("> ") for line in hexa)


def test_dump_memory_single_when_end_below_start():
    machine = Machine()
    machine.mem[3] = 9
    assert machine.dump_memory(3, 1) == machine.dump_memory(3, 3)
    assert len(machine.dump_memory(3, 1).splitlines()) == 1


def test_dump_memory_bad_range():
    with pytest.raises(ValueError):
        Machine().dump_memory(MEMSIZE, MEMSIZE)


def test_dump_hex_forward_and_reverse():
    machine = Machine()
    machine.mem[0:6] = [1, 2, 3, 4, 5, 6]
    forward = machine.dump_hex(0, 5)
    backward = machine.dump_hex(5, 0)
    words = [f"{v:08x}" for v in machine.mem[0:6]]
    assert re.findall(r" ([0-9a-f]{8})", forward) == words
    assert re.findall(r" ([0-9a-f]{8})", backward) == words[::-1]
    assert len(forward.splitlines()) == 2
    assert forward.endswith("\n")


def test_dump_hex_out_of_range():
    with pytest.raises(ValueError):
        Machine().dump_hex(0, MEMSIZE)