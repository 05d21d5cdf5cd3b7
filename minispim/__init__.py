"""Single-cycle MIPS datapath simulator: datapath stages, machine state and a command console."""

__version__ = "0.1.0"
__all__ = ["cli", "datapath", "machine"]