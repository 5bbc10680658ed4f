"""
BytePusher Machine Core
=======================
Memory model and instruction engine for the BytePusher virtual machine.

BytePusher has a single instruction, ByteByteJump: copy one byte from A
to B, then jump to C.  A, B and C are 24-bit big-endian addresses stored
back to back at the program counter.  There are no registers or opcodes.
The PC itself lives in memory at 0x000002 and is re-read at the start of
every frame.

Memory map (fixed by the machine):
  0x000000  2 bytes  keyboard state (big-endian, one bit per key)
  0x000002  3 bytes  program counter for the next frame
  0x000005  1 byte   framebuffer page (pixels at value << 16)
  0x000006  3 bytes  audio sample address (256 signed bytes)
"""

from __future__ import annotations
import struct

# ---------------------------------------------------------------------------
#  Constants
# ---------------------------------------------------------------------------

ADDR_MAX = 0xFFFFFF                 # highest valid address (24-bit)
MEM_SIZE = 0x1000000                # nominal 16 MiB
MEM_HEADROOM = 8                    # slack for 32-bit loads at ADDR_MAX
MEM_CAPACITY = MEM_SIZE + MEM_HEADROOM

KEYBOARD_ADDR = 0x000000
PC_ADDR       = 0x000002
FB_PAGE_ADDR  = 0x000005
AUDIO_ADDR    = 0x000006

ITERATIONS_PER_FRAME = 65536
INSTRUCTION_SIZE = 9                # A (3) + B (3) + C (3)

_U32 = struct.Struct(">I")
_U16 = struct.Struct(">H")

# ---------------------------------------------------------------------------
#  Errors
# ---------------------------------------------------------------------------

class BytePusherError(Exception):
    """Base for machine-level faults."""
    pass

class OutOfBoundsError(BytePusherError):
    def __init__(self, addr: int, message: str = ""):
        self.addr = addr
        super().__init__(message or f"Address out of bounds @ {addr:#08x}")

class ImageTooLargeError(BytePusherError):
    def __init__(self, size: int, capacity: int = MEM_CAPACITY):
        self.size = size
        self.capacity = capacity
        super().__init__(
            f"Program image is {size} bytes; memory holds {capacity}")


def _check(addr: int):
    if addr < 0 or addr > ADDR_MAX:
        raise OutOfBoundsError(addr)

# ---------------------------------------------------------------------------
#  Memory
# ---------------------------------------------------------------------------

class Memory:
    """Flat 16 MiB byte store with big-endian accessors.

    The backing bytearray is 8 bytes longer than the address space so a
    32-bit load at 0xFFFFFF stays inside the buffer.  Addresses outside
    [0, 0xFFFFFF] raise OutOfBoundsError; nothing is wrapped or clamped.
    """

    def __init__(self):
        self.data = bytearray(MEM_CAPACITY)

    def __len__(self) -> int:
        return len(self.data)

    # -- Single bytes --

    def read_byte(self, addr: int) -> int:
        _check(addr)
        return self.data[addr]

    def write_byte(self, addr: int, value: int):
        _check(addr)
        self.data[addr] = value & 0xFF

    # -- Multi-byte (big-endian) --

    def read_uint24(self, addr: int) -> int:
        """32-bit big-endian load at *addr*, low byte discarded."""
        _check(addr)
        return _U32.unpack_from(self.data, addr)[0] >> 8

    def write_uint16(self, addr: int, value: int):
        _check(addr)
        _U16.pack_into(self.data, addr, value & 0xFFFF)

    def copy_byte(self, src_addr: int, dest_addr: int):
        """Copy memory[*src_addr] -> memory[*dest_addr] (both indirect)."""
        _check(src_addr)
        _check(dest_addr)
        src = self.read_uint24(src_addr)
        dest = self.read_uint24(dest_addr)
        self.data[dest] = self.data[src]

    def view(self, addr: int, length: int) -> memoryview:
        """Read-only window starting at *addr*, cut at the top of the address space."""
        _check(addr)
        end = min(addr + length, MEM_SIZE)
        return memoryview(self.data)[addr:end].toreadonly()

    # -- Whole-image operations --

    def load_image(self, data: bytes | bytearray):
        """Replace memory with *data*; bytes past the image are zeroed."""
        size = len(data)
        if size > MEM_CAPACITY:
            raise ImageTooLargeError(size)
        self.data[:size] = data
        self.data[size:] = bytes(MEM_CAPACITY - size)

    def load_image_file(self, path: str):
        with open(path, "rb") as f:
            data = f.read()
        self.load_image(data)

    def clear(self):
        self.data[:] = bytes(MEM_CAPACITY)

# ---------------------------------------------------------------------------
#  Instruction engine
# ---------------------------------------------------------------------------

class ByteByteJump:
    """Runs ByteByteJump bursts against a shared Memory.

    The PC is never carried between bursts: each burst starts from the
    24-bit value at PC_ADDR, so a program redirects its next frame by
    writing there.  ``last_pc`` and ``bursts`` are for inspection only.
    """

    def __init__(self, memory: Memory):
        self.memory = memory
        self.bursts: int = 0
        self.last_pc: int = 0

    def step(self, pc: int) -> int:
        """Execute one instruction at *pc* via the Memory accessors.

        Returns the next PC.
        """
        mem = self.memory
        mem.copy_byte(pc, pc + 3)
        return mem.read_uint24(pc + 6)

    def run_burst(self, iterations: int = ITERATIONS_PER_FRAME) -> int:
        """Execute one frame's worth of instructions.  Returns the final PC.

        Inlined over the raw buffer for speed.  Reading bytes a..a+2 is
        the high three bytes of the 32-bit window read_uint24 uses, so
        the results are identical; the bounds checks mirror copy_byte
        followed by read_uint24.
        """
        m = self.memory.data
        pc = self.memory.read_uint24(PC_ADDR)
        for _ in range(iterations):
            if pc + 3 > ADDR_MAX:
                raise OutOfBoundsError(pc + 3)
            src = (m[pc] << 16) | (m[pc + 1] << 8) | m[pc + 2]
            dst = (m[pc + 3] << 16) | (m[pc + 4] << 8) | m[pc + 5]
            m[dst] = m[src]
            if pc + 6 > ADDR_MAX:
                raise OutOfBoundsError(pc + 6)
            pc = (m[pc + 6] << 16) | (m[pc + 7] << 8) | m[pc + 8]
        self.last_pc = pc
        self.bursts += 1
        return pc

    def dump_regs(self) -> str:
        mem = self.memory
        return "\n".join([
            f"  PC     = {mem.read_uint24(PC_ADDR):#08x}  "
            f"(last burst ended at {self.last_pc:#08x})",
            f"  KEYS   = {mem.read_byte(KEYBOARD_ADDR) << 8 | mem.read_byte(KEYBOARD_ADDR + 1):#06x}",
            f"  FB     = {mem.read_byte(FB_PAGE_ADDR) << 16:#08x}",
            f"  AUDIO  = {mem.read_uint24(AUDIO_ADDR):#08x}",
            f"  Bursts = {self.bursts}",
        ])


def encode_instruction(src: int, dest: int, jump: int) -> bytes:
    """Pack an (A, B, C) triple into the 9-byte instruction layout."""
    out = bytearray()
    for v in (src, dest, jump):
        if v < 0 or v > ADDR_MAX:
            raise OutOfBoundsError(v)
        out += v.to_bytes(3, "big")
    return bytes(out)
