class C8Exception(Exception):
    pass


class InvalidOpCodeException(C8Exception):
    # no entry in the decode table for this opcode
    def __init__(self, opcode):
        super().__init__("invalid opcode 0x{:04X}".format(opcode))
        self.opcode = opcode


class MemoryOutOfBoundsException(C8Exception):
    def __init__(self, address):
        super().__init__("memory access out of bounds at 0x{:X}".format(address))
        self.address = address


class StackOverflowException(C8Exception):
    def __init__(self, address):
        super().__init__("stack overflow calling 0x{:03X}".format(address))
        self.address = address


class StackUnderflowException(C8Exception):
    pass


class RomTooLargeException(C8Exception):
    def __init__(self, size, capacity):
        super().__init__("ROM is {} bytes; only {} bytes available".format(size, capacity))
        self.size = size
        self.capacity = capacity
