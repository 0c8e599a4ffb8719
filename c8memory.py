from array import array

from c8errors import MemoryOutOfBoundsException, RomTooLargeException

# 4096 Bytes of RAM
MEMORY_SIZE = 4096
# Programs are loaded here; 0x000-0x1FF is reserved for the interpreter
PROGRAM_START = 0x200
PROGRAM_CAPACITY = MEMORY_SIZE - PROGRAM_START
FONT_START = 0x50
FONT_GLYPH_SIZE = 5

# Video in the CHIP-8 is sprite-driven.  A font representing 0..9 + A..F is required for proper
# operation.  Each glyph is 4 pixels wide (high nibble of each row) and 5 rows high.  Example for 2:
#
#            ****....
#            ...*....
#            ****....
#            *.......
#            ****....
FONT = (0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
        0x20, 0x60, 0x20, 0x20, 0x70,  # 1
        0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
        0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
        0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
        0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
        0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
        0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
        0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
        0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
        0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
        0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
        0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
        0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
        0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
        0xF0, 0x80, 0xF0, 0x80, 0x80)  # F


class C8Memory:

    def __init__(self, font=FONT):
        self.RAM = array('B', [0 for i in range(MEMORY_SIZE)])
        self.load(FONT_START, font)

    def __len__(self):
        return MEMORY_SIZE

    def _check(self, address):
        if not 0 <= address < MEMORY_SIZE:
            raise MemoryOutOfBoundsException(address)

    def read(self, address):
        self._check(address)
        return self.RAM[address]

    def write(self, address, value):
        self._check(address)
        self.RAM[address] = value & 0xFF

    def load(self, base, data):
        '''
        Bulk-write data starting at base.  The whole destination range is checked first, so a
        failed load leaves memory untouched.
        '''
        data = bytes(data)
        if len(data) == 0:
            return
        self._check(base)
        self._check(base + len(data) - 1)
        self.RAM[base:base + len(data)] = array('B', data)

    def load_program(self, data):
        data = bytes(data)
        if len(data) > PROGRAM_CAPACITY:
            raise RomTooLargeException(len(data), PROGRAM_CAPACITY)
        self.load(PROGRAM_START, data)

    def font_address(self, digit):
        # only the low nibble selects a glyph
        return FONT_START + FONT_GLYPH_SIZE * (digit & 0xF)
