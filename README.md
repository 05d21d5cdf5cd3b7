# minispim

minispim simulates a small single-cycle MIPS datapath. It reads a program of
hexadecimal instruction words, one word per line, and loads it at byte address
`0x4000`. You can then step through the program and inspect registers, memory
and control signals from an interactive console.

## Instructions

The decoder accepts these opcodes:

- R-type (`op` 0), with these function codes:
  - add (32)
  - sub (34)
  - slt (42)
  - sltu (43)
  - and (36)
  - or (37)
  - sll (0), which shifts the second operand left by 16 bits
  - nor (39), which computes NOT of the first operand
- `j` (2)
- `beq` (4)
- `addi` (8)
- `lui` (15)
- `lw` (35)
- `sw` (43)

Opcodes 10 and 11 (`slti`, `sltiu`) are decoded. Their ALU op is not supported
by the ALU stage, so running them halts the machine.

The machine halts in any of these cases:

- an unknown opcode or R-type function code;
- an unsupported ALU op;
- an instruction fetch from a program counter that is not word-aligned or lies
  outside memory;
- a load or store at an address that is not word-aligned or lies outside
  memory;
- a register field that names no register.

Memory is 16384 words (64 KiB). At start `$pc` is `0x4000`, `$sp` is `0xfffc`,
`$gp` is `0xc000`, and every other register is zero.

## Installation

```
pip install .
```

## Running

```
minispim program.asc
minispim program.asc -r
```

The `-r` flag puts a `>` prefix on console output, so the output is easy to
redirect and compare. Any line of the program file that holds no hexadecimal
number is loaded as a zero word, and a warning is printed to standard error.

## Console commands

The first letter of each command at the `cmd:` prompt selects the command.
Case does not matter. Arguments are decimal word indices or counts.

| Command | Effect |
|---------|--------|
| `r` | dump all registers |
| `m [from [to]]` | dump memory words from `from` up to but not including `to`, addressed in hex; equal neighbouring words are merged into a range |
| `d from to` | hex dump of the words from `from` to `to` inclusive, listed downwards if `to < from` |
| `s [n]` | execute `n` steps (default 1), stopping early on halt |
| `c` | continue until the machine halts |
| `h` | show whether the machine has halted |
| `g` | show the control signals of the last decoded instruction |
| `p` | print the loaded program file with line numbers |
| `i` | show the memory size in words |
| `x` / `q` | quit |

Any other command, and a memory range that falls outside memory, prints
`invalid cmd`.

## Using it as a library

```python
from minispim.machine import Machine, load_program

errors = []
words = load_program(["20080005", "21090003"], errors)
machine = Machine()
machine.load(words)
machine.run(2)
print(hex(machine.register("t1")))   # 0x8
print(machine.dump_registers())
```

`Machine` holds the memory (`mem`), the registers (`reg`), the `halted` flag
and the signals latched by the last step. Its main methods are these:

- `step()` and `run(count=None)` execute instructions.
- `register(name)` and `set_register(name, value)` get and set a register by
  name, with or without the `$`.
- `reset()` restores the start values of the registers.
- `dump_registers`, `dump_memory`, `dump_memory_hex`, `dump_hex` and
  `control_signals` return text.

`minispim.cli.Session` runs console commands against a machine through
`execute(line)` and `loop(stream)`.

The functions in `minispim.datapath` implement the stages of the datapath:
`alu`, `instruction_fetch`, `instruction_partition`, `instruction_decode`,
`read_register`, `sign_extend`, `alu_operations`, `rw_memory`,
`write_register` and `pc_update`. A stage that halts the machine raises
`Halt`. Decode results are `Controls` objects, and partitioned instructions are
`Fields` objects.

## What it does not do

minispim has no assembler. Programs must already be hexadecimal machine words.
It has no system calls, no multiply or divide (`$lo` and `$hi` are never
written), and no breakpoints.