from array import array
from collections import namedtuple
import random

from c8display import C8Framebuffer
from c8errors import InvalidOpCodeException, StackOverflowException, StackUnderflowException
from c8memory import C8Memory, MEMORY_SIZE, PROGRAM_START

# Config options to cover differences between modern CHIP-8 interpreters and the original
INCREMENT_I_FX55_FX65 = False  # False is the modern way; True matches original
SHIFT_VY_8XY6_8XYE = False  # False is the modern way; True matches original
RESET_VF_8XY1_8XY3 = False  # False is the modern way; True matches original

NUM_REGISTERS = 16
NUM_KEYS = 16
STACK_DEPTH = 16

# Every way an opcode can be sliced; each handler only looks at the fields it needs.
#   word: the whole 16-bit opcode, x: bits 8-11, y: bits 4-7, n: bits 0-3,
#   kk: low byte, nnn: low 12 bits (an address)
C8Opcode = namedtuple('C8Opcode', ['word', 'x', 'y', 'n', 'kk', 'nnn'])


def split_opcode(opcode):
    return C8Opcode(opcode, opcode >> 8 & 0xF, opcode >> 4 & 0xF, opcode & 0xF, opcode & 0xFF, opcode & 0xFFF)


class C8Computer:

    def __init__(self, memory=None, screen=None, rng=None, seed=None, shift_vy=None, increment_i=None,
                 reset_vf=None):
        self.memory = memory if memory is not None else C8Memory()
        self.screen = screen if screen is not None else C8Framebuffer()
        # The 16 registers are named V0..VF
        self.V = array('B', [0 for i in range(NUM_REGISTERS)])
        # Special-purpose 16-bit register; low 12 are used for an address
        self.I = 0
        self.delay_register = 0
        self.sound_register = 0
        # Program Counter
        self.PC = PROGRAM_START
        self.stack = array('H', [0 for i in range(STACK_DEPTH)])
        self.SP = 0
        self.keys_pressed = [0 for i in range(NUM_KEYS)]  # used for the Ex9E and ExA1 instructions
        self.blocking_on_fx0a = False
        self.fx0a_key_pressed = None
        self.fx0a_key_up = None
        # One generator per machine, so separate machines never share random state
        self.rng = rng if rng is not None else random.Random(seed)

        self.shift_vy = SHIFT_VY_8XY6_8XYE if shift_vy is None else shift_vy
        self.increment_i = INCREMENT_I_FX55_FX65 if increment_i is None else increment_i
        self.reset_vf = RESET_VF_8XY1_8XY3 if reset_vf is None else reset_vf

        # Decode table, indexed by the high-order nibble.  There is one instruction for each of
        # 1, 2, 3, 4, 6, 7, A, B, C and D.  The others are a (table, field) pair: the named field of
        # the opcode selects the instruction from the table.
        self.operation_list = [
            ({0x00E0: self._00E0, 0x00EE: self._00EE}, 'word'),
            self._1nnn, self._2nnn, self._3xkk, self._4xkk,
            ({0x0: self._5xy0}, 'n'),
            self._6xkk, self._7xkk,
            ({0x0: self._8xy0, 0x1: self._8xy1, 0x2: self._8xy2, 0x3: self._8xy3, 0x4: self._8xy4,
              0x5: self._8xy5, 0x6: self._8xy6, 0x7: self._8xy7, 0xE: self._8xyE}, 'n'),
            ({0x0: self._9xy0}, 'n'),
            self._Annn, self._Bnnn, self._Cxkk, self._Dxyn,
            ({0x9E: self._Ex9E, 0xA1: self._ExA1}, 'kk'),
            ({0x07: self._Fx07, 0x0A: self._Fx0A, 0x15: self._Fx15, 0x18: self._Fx18, 0x1E: self._Fx1E,
              0x29: self._Fx29, 0x33: self._Fx33, 0x55: self._Fx55, 0x65: self._Fx65}, 'kk'),
        ]

    def load_rom(self, rom_file):
        with open(rom_file, "rb") as infile:
            self.load_program(infile.read())

    def load_program(self, data):
        self.memory.load_program(data)

    def press_key(self, key):
        if not 0 <= key < NUM_KEYS:
            raise ValueError("no such key: {}".format(key))
        self.keys_pressed[key] = 1
        if self.blocking_on_fx0a:
            self.fx0a_key_pressed = key

    def release_key(self, key):
        if not 0 <= key < NUM_KEYS:
            raise ValueError("no such key: {}".format(key))
        self.keys_pressed[key] = 0
        if self.blocking_on_fx0a and self.fx0a_key_pressed == key:
            self.fx0a_key_up = key
            self.fx0a_key_pressed = None

    @property
    def sound_active(self):
        return self.sound_register > 0

    def tick_timers(self):
        # Called by the driver at 60 Hz, independent of how fast instructions run
        if self.delay_register > 0:
            self.delay_register -= 1
        if self.sound_register > 0:
            self.sound_register -= 1

    def debug_dump(self, filename="debug.txt"):
        ram = self.memory.RAM
        with open(filename, "w") as outfile:
            outfile.write("PC: 0x{:03X}\n".format(self.PC))
            if 0 <= self.PC < MEMORY_SIZE - 1:
                outfile.write("Next instr.: 0x{:04X}\n".format(ram[self.PC] << 8 | ram[self.PC + 1]))
            outfile.write("I: 0x{:03X}\n".format(self.I))
            for i in range(NUM_REGISTERS):
                outfile.write("V{:X}: 0x{:02X}".format(i, self.V[i]))
                if i % 4 == 3:
                    outfile.write('\n')
                else:
                    outfile.write('\t')
            outfile.write("delay register: 0x{:02X}\n".format(self.delay_register))
            outfile.write("sound register: 0x{:02X}\n".format(self.sound_register))
            outfile.write("stack: [{}]\n".format(", ".join("0x{:03X}".format(self.stack[i])
                                                           for i in range(self.SP))))
            outfile.write("\n\nRAM:\n")
            for i in range(MEMORY_SIZE):
                if i % 32 == 0:
                    outfile.write("0x{:03X} - 0x{:03X}:  ".format(i, i + 31))
                outfile.write("{:02X}".format(ram[i]))
                if i % 32 == 31:
                    outfile.write("\n")

    def _00E0(self, op):
        # 00E0 - CLS
        # clear the screen
        self.screen.clear()

    def _00EE(self, op):
        # 00EE - RET
        # Return from a subroutine
        if self.SP == 0:
            raise StackUnderflowException("return with no subroutine call pending")
        self.SP -= 1
        self.PC = self.stack[self.SP]

    def _1nnn(self, op):
        # 1nnn - JP addr
        # Jump to location nnn
        self.PC = op.nnn

    def _2nnn(self, op):
        # 2nnn - CALL addr
        # Call subroutine at nnn.  PC already points past this instruction, which is the return address.
        if self.SP == STACK_DEPTH:
            raise StackOverflowException(op.nnn)
        self.stack[self.SP] = self.PC
        self.SP += 1
        self.PC = op.nnn

    def _3xkk(self, op):
        # 3xkk - SE Vx, byte
        # Skip next instruction if Vx == kk
        if self.V[op.x] == op.kk:
            self.PC += 2

    def _4xkk(self, op):
        # 4xkk - SNE Vx, byte
        # Skip next instruction if Vx != kk
        if self.V[op.x] != op.kk:
            self.PC += 2

    def _5xy0(self, op):
        # 5xy0 - SE Vx, Vy
        # Skip next instruction if Vx == Vy
        if self.V[op.x] == self.V[op.y]:
            self.PC += 2

    def _6xkk(self, op):
        # 6xkk - LD Vx, byte
        # Set Vx = kk
        self.V[op.x] = op.kk

    def _7xkk(self, op):
        # 7xkk - ADD Vx, byte
        # Add value in kk to vx, stores result in vx, does NOT set overflow flag
        self.V[op.x] = (self.V[op.x] + op.kk) & 0xFF

    def _8xy0(self, op):
        # 8xy0 - LD Vx, Vy
        # Set Vx = Vy
        self.V[op.x] = self.V[op.y]

    def _8xy1(self, op):
        # 8xy1 - OR Vx, Vy
        # Set Vx = Vx OR Vy.
        # Historical quirk: this op also set VF = 0
        self.V[op.x] = self.V[op.x] | self.V[op.y]
        if self.reset_vf:
            self.V[0xF] = 0

    def _8xy2(self, op):
        # 8xy2 - AND Vx, Vy
        # Set Vx = Vx AND Vy
        self.V[op.x] = self.V[op.x] & self.V[op.y]
        if self.reset_vf:
            self.V[0xF] = 0

    def _8xy3(self, op):
        # 8xy3 - XOR Vx, Vy
        # Set Vx = Vx XOR Vy
        self.V[op.x] = self.V[op.x] ^ self.V[op.y]
        if self.reset_vf:
            self.V[0xF] = 0

    # For all the flag-setting ops below VF is written last, so with x == F the flag wins.

    def _8xy4(self, op):
        # 8xy4 - ADD Vx, Vy
        # Set Vx = Vx + Vy, set VF = carry.  Must be done in this order.
        total = self.V[op.x] + self.V[op.y]
        self.V[op.x] = total & 0xFF
        if total > 255:
            self.V[0xF] = 1
        else:
            self.V[0xF] = 0

    def _8xy5(self, op):
        # 8xy5 - SUB Vx, Vy
        # Set Vx = Vx - Vy.  Set VF = NOT borrow (VF = 1 if Vx > Vy)
        if self.V[op.x] > self.V[op.y]:
            notborrow = 1
        else:
            notborrow = 0
        self.V[op.x] = (self.V[op.x] - self.V[op.y]) & 0xFF
        self.V[0xF] = notborrow

    def _8xy6(self, op):
        # 8xy6 - SHR Vx, Vy
        # ORIGINAL IMPLEMENTATION: copy Vy into Vx, then shift Vx right by 1.
        # MODERN IMPLEMENTATION: shift Vx right by 1 in place
        # In both, VF is set to the least significant bit of Vx before the shift
        # See: https://tobiasvl.github.io/blog/write-a-chip-8-emulator/#8xy6-and-8xye-shift
        if self.shift_vy:
            self.V[op.x] = self.V[op.y]
        lsb = self.V[op.x] & 0x1
        self.V[op.x] = self.V[op.x] >> 1
        self.V[0xF] = lsb

    def _8xy7(self, op):
        # 8xy7 - SUBN Vx, Vy
        # Set Vx = Vy - Vx.  Set VF = NOT borrow (VF = 1 if Vy > Vx)
        if self.V[op.y] > self.V[op.x]:
            notborrow = 1
        else:
            notborrow = 0
        self.V[op.x] = (self.V[op.y] - self.V[op.x]) & 0xFF
        self.V[0xF] = notborrow

    def _8xyE(self, op):
        # 8xyE - SHL Vx, Vy
        # Same quirk as 8xy6.  VF is the most significant bit of Vx before the shift, as 0 or 1.
        if self.shift_vy:
            self.V[op.x] = self.V[op.y]
        msb = self.V[op.x] & 0x80
        self.V[op.x] = (self.V[op.x] << 1) & 0xFF
        if msb:
            self.V[0xF] = 0x1
        else:
            self.V[0xF] = 0x0

    def _9xy0(self, op):
        # 9xy0 - SNE Vx, Vy
        # Skip next instruction if Vx != Vy
        if self.V[op.x] != self.V[op.y]:
            self.PC += 2

    def _Annn(self, op):
        # Annn - LD I, addr
        # The value of register I is set to nnn
        self.I = op.nnn

    def _Bnnn(self, op):
        # Bnnn - JP V0, addr
        # The program counter is set to nnn plus the value of V0.  Past 0xFFF the next fetch faults.
        self.PC = op.nnn + self.V[0]

    def _Cxkk(self, op):
        # Cxkk - RND Vx, byte
        # Set Vx = random byte AND kk
        self.V[op.x] = self.rng.randrange(256) & op.kk

    def _Dxyn(self, op):
        # Dxyn - DRW Vx, Vy, nibble
        # Draw the n-byte sprite at I to (Vx, Vy).  Every pixel wraps around the screen on its own;
        # VF = 1 if any set pixel was turned off.
        x = self.V[op.x] % self.screen.xsize
        y = self.V[op.y] % self.screen.ysize
        collision = 0
        for row in range(op.n):
            sprite_byte = self.memory.read(self.I + row)
            for col in range(8):
                if (sprite_byte << col) & 0x80:
                    if self.screen.toggle(x + col, y + row):
                        collision = 1
        self.screen.mark_dirty(x, y, 8, op.n)
        self.V[0xF] = collision

    def _Ex9E(self, op):
        # Ex9E - SKP Vx
        # Skip next instruction if key with value of Vx is pressed
        if self.keys_pressed[self.V[op.x] & 0xF]:
            self.PC += 2

    def _ExA1(self, op):
        # ExA1 - SKNP Vx
        # Skip next instruction if key with value of Vx is NOT pressed
        if not self.keys_pressed[self.V[op.x] & 0xF]:
            self.PC += 2

    def _Fx07(self, op):
        # Fx07 - LD Vx, DT
        # The value of the Delay Timer is placed into Vx.
        self.V[op.x] = self.delay_register

    def _Fx0A(self, op):
        # Fx0A - LD, Vx, Key
        # Wait for a key press, store the value of the key in Vx
        # NOTE: The original CHIP-8 waited until a key was pressed and then released.
        # While waiting, PC is stepped back so this instruction runs again next cycle.
        if not self.blocking_on_fx0a:
            self.blocking_on_fx0a = True
            self.fx0a_key_pressed = None
            self.fx0a_key_up = None
            self.PC -= 2
        elif self.fx0a_key_up is None:
            self.PC -= 2
        else:
            self.V[op.x] = self.fx0a_key_up
            self.blocking_on_fx0a = False
            self.fx0a_key_up = None
            self.fx0a_key_pressed = None

    def _Fx15(self, op):
        # Fx15 - LD DT, Vx
        # Set Delay Timer = Vx
        self.delay_register = self.V[op.x]

    def _Fx18(self, op):
        # Fx18 - LD ST, Vx
        # Set Sound Timer = Vx
        self.sound_register = self.V[op.x]

    def _Fx1E(self, op):
        # Fx1E - Set I = I + Vx - do not set the overflow flag
        self.I = (self.I + self.V[op.x]) & 0xFFFF

    def _Fx29(self, op):
        # Fx29 - LD F, Vx
        # Set I = location of sprite for digit Vx ("F" = Font)
        self.I = self.memory.font_address(self.V[op.x])

    def _Fx33(self, op):
        # Fx33 - LD B, Fx
        # Store binary coded decimal value of Vx in memory locations I, I+1, I+2
        val = self.V[op.x]
        self.memory.write(self.I, val // 100)
        self.memory.write(self.I + 1, (val // 10) % 10)
        self.memory.write(self.I + 2, val % 10)

    def _Fx55(self, op):
        # Fx55 - LD[I], Vx
        # Store registers V0 through Vx in memory starting at location I
        # Note that in the original CHIP-8 on the COSMAC VIP, I was incremented during this
        # loop.  See: https://laurencescotford.com/chip-8-on-the-cosmac-vip-loading-and-saving-variables/
        for i in range(op.x + 1):
            self.memory.write(self.I + i, self.V[i])
        if self.increment_i:
            self.I += op.x + 1

    def _Fx65(self, op):
        # Fx65 - LD Vx, [I]
        # Read values from memory starting at location I into registers V0 through Vx
        for i in range(op.x + 1):
            self.V[i] = self.memory.read(self.I + i)
        if self.increment_i:
            self.I += op.x + 1

    def fetch(self):
        # Opcodes are stored big-endian
        return self.memory.read(self.PC) << 8 | self.memory.read(self.PC + 1)

    def decode(self, opcode):
        op = split_opcode(opcode)
        entry = self.operation_list[opcode >> 12]
        if isinstance(entry, tuple):
            table, field = entry
            entry = table.get(getattr(op, field))
            if entry is None:
                raise InvalidOpCodeException(opcode)
        return entry, op

    def cycle(self):
        '''
        Instructions have one of 6 patterns:
        All 4 nibbles fixed:
            00E0, 00EE
        Operation + nnn (address)
            1nnn, 2nnn, Annn, Bnnn
        Operation + Vx + kk (byte)
            3xkk, 4xkk, 6xkk, 7xkk, Cxkk
        Operation + Vx + Vy + nibble-type
            5xy0, 8xy0, 8xy1, 8xy2, 8xy3,
            8xy4, 8xy5, 8xy6, 8xy7, 8xyE, 9xy0
        Operation + Vx + Vy + n (nibble)
            Dxyn
        Operation + Vx + byte-type
            Ex9E, ExA1, Fx07, Fx0A, Fx15,
            Fx18, Fx1E, Fx29, Fx33, Fx55,
            Fx65

        PC is advanced before the instruction runs, so jumps and calls simply overwrite it.
        '''
        opcode = self.fetch()
        self.PC += 2
        handler, op = self.decode(opcode)
        handler(op)
        return opcode

    def run(self, num_cycles):
        for i in range(num_cycles):
            self.cycle()
