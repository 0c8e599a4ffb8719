import pytest

from c8computer import C8Computer
from c8errors import MemoryOutOfBoundsException, StackOverflowException, StackUnderflowException

SAMPLES = list(range(0, 256, 5)) + [1, 127, 128, 254, 255]


def step(c8, opcode, pc=0x200):
    c8.PC = pc
    c8.memory.write(pc, opcode >> 8)
    c8.memory.write(pc + 1, opcode & 0xFF)
    c8.cycle()


def write_word(c8, address, opcode):
    c8.memory.write(address, opcode >> 8)
    c8.memory.write(address + 1, opcode & 0xFF)


def test_00E0_clears_screen(computer):
    computer.screen.toggle(10, 10)
    step(computer, 0x00E0)
    assert computer.screen.getpx(10, 10) == 0
    assert computer.PC == 0x202


def test_00EE_without_call_underflows(computer):
    with pytest.raises(StackUnderflowException):
        step(computer, 0x00EE)


def test_1nnn_jumps(computer):
    step(computer, 0x1ABC)
    assert computer.PC == 0xABC


def test_call_then_return(computer):
    write_word(computer, 0x200, 0x2300)
    write_word(computer, 0x300, 0x00EE)
    computer.cycle()
    assert computer.PC == 0x300
    assert computer.SP == 1
    assert computer.stack[0] == 0x202
    computer.cycle()
    assert computer.PC == 0x202
    assert computer.SP == 0


def _nested_calls(c8, depth):
    # 0x200 calls sub 0; sub k calls sub k+1; the deepest sub returns, as does each sub after its call
    subs = [0x300 + 0x10 * k for k in range(depth + 1)]
    write_word(c8, 0x200, 0x2000 | subs[0])
    for k in range(depth):
        write_word(c8, subs[k], 0x2000 | subs[k + 1])
        write_word(c8, subs[k] + 2, 0x00EE)


@pytest.mark.parametrize("depth", [1, 2, 8, 16])
def test_nested_calls_unwind(computer, depth):
    _nested_calls(computer, depth - 1)
    write_word(computer, 0x300 + 0x10 * (depth - 1), 0x00EE)
    computer.run(depth)
    assert computer.SP == depth
    computer.run(depth)
    assert computer.SP == 0
    assert computer.PC == 0x202


def test_seventeenth_call_overflows(computer):
    _nested_calls(computer, 16)
    computer.run(16)
    assert computer.SP == 16
    with pytest.raises(StackOverflowException):
        computer.cycle()
    assert computer.SP == 16


def test_skips(computer):
    computer.V[1] = 0x42
    computer.V[2] = 0x42
    computer.V[3] = 0x07
    step(computer, 0x3142)
    assert computer.PC == 0x204
    step(computer, 0x3143)
    assert computer.PC == 0x202
    step(computer, 0x4143)
    assert computer.PC == 0x204
    step(computer, 0x4142)
    assert computer.PC == 0x202
    step(computer, 0x5120)
    assert computer.PC == 0x204
    step(computer, 0x5130)
    assert computer.PC == 0x202
    step(computer, 0x9130)
    assert computer.PC == 0x204
    step(computer, 0x9120)
    assert computer.PC == 0x202


def test_6xkk_and_7xkk_wrap_without_flag(computer):
    computer.V[0xF] = 0x33
    step(computer, 0x65FE)
    assert computer.V[5] == 0xFE
    step(computer, 0x7505)
    assert computer.V[5] == 0x03
    assert computer.V[0xF] == 0x33


def test_bitwise_ops(computer):
    computer.V[0xF] = 7
    computer.V[1] = 0b1100
    computer.V[2] = 0b1010
    step(computer, 0x8121)
    assert computer.V[1] == 0b1110
    computer.V[1] = 0b1100
    step(computer, 0x8122)
    assert computer.V[1] == 0b1000
    computer.V[1] = 0b1100
    step(computer, 0x8123)
    assert computer.V[1] == 0b0110
    step(computer, 0x8120)
    assert computer.V[1] == 0b1010
    assert computer.V[0xF] == 7


def test_reset_vf_quirk():
    c8 = C8Computer(reset_vf=True)
    c8.V[0xF] = 7
    step(c8, 0x8121)
    assert c8.V[0xF] == 0


def test_8xy4_add_with_carry(computer):
    for a in SAMPLES:
        for b in SAMPLES:
            computer.V[1] = a
            computer.V[2] = b
            step(computer, 0x8124)
            assert computer.V[1] == (a + b) % 256
            assert computer.V[0xF] == (1 if a + b > 255 else 0)


def test_8xy5_and_8xy7_subtract(computer):
    for a in SAMPLES:
        for b in SAMPLES:
            computer.V[1] = a
            computer.V[2] = b
            step(computer, 0x8125)
            assert computer.V[1] == (a - b) % 256
            assert computer.V[0xF] == (1 if a > b else 0)
            computer.V[1] = a
            step(computer, 0x8127)
            assert computer.V[1] == (b - a) % 256
            assert computer.V[0xF] == (1 if b > a else 0)


def test_shifts_set_normalized_flag(computer):
    for a in SAMPLES:
        computer.V[3] = a
        step(computer, 0x8306)
        assert computer.V[3] == a >> 1
        assert computer.V[0xF] == a & 1
        computer.V[3] = a
        step(computer, 0x830E)
        assert computer.V[3] == (a << 1) & 0xFF
        assert computer.V[0xF] == (1 if a & 0x80 else 0)


def test_shift_vy_quirk():
    c8 = C8Computer(shift_vy=True)
    c8.V[1] = 0
    c8.V[2] = 0x81
    step(c8, 0x8126)
    assert c8.V[1] == 0x40
    assert c8.V[0xF] == 1
    step(c8, 0x812E)
    assert c8.V[1] == 0x02
    assert c8.V[0xF] == 1


@pytest.mark.parametrize("opcode,vf,vy,expected", [
    (0x8F14, 0xFF, 0x01, 1),   # carry wins over the sum
    (0x8F15, 0x10, 0x01, 1),
    (0x8F17, 0x10, 0x01, 0),
    (0x8F06, 0x02, 0x00, 0),
    (0x8F0E, 0x80, 0x00, 1),
])
def test_flag_written_last_when_vf_is_destination(computer, opcode, vf, vy, expected):
    computer.V[0xF] = vf
    computer.V[opcode >> 4 & 0xF] = vy
    step(computer, opcode)
    assert computer.V[0xF] == expected


def test_Annn_and_Bnnn(computer):
    step(computer, 0xA123)
    assert computer.I == 0x123
    computer.V[0] = 0x10
    step(computer, 0xB300)
    assert computer.PC == 0x310


def test_Bnnn_past_memory_faults_on_fetch(computer):
    computer.V[0] = 0xFF
    step(computer, 0xBFFF)
    assert computer.PC == 0x10FE
    with pytest.raises(MemoryOutOfBoundsException):
        computer.cycle()


def test_Cxkk_masks_random_byte(fixed_rng):
    c8 = C8Computer(rng=fixed_rng(0xB7))
    step(c8, 0xC30F)
    assert c8.V[3] == 0x07
    step(c8, 0xC3FF)
    assert c8.V[3] == 0xB7


def test_Cxkk_never_exceeds_mask(computer):
    for kk in (0x00, 0x01, 0x0F, 0x3C, 0xFF):
        for i in range(50):
            step(computer, 0xC400 | kk)
            assert (computer.V[4] & ~kk) == 0
            assert computer.V[4] <= kk


def test_Cxkk_seeded_machines_agree():
    a = C8Computer(seed=99)
    b = C8Computer(seed=99)
    for i in range(20):
        step(a, 0xC1FF)
        step(b, 0xC1FF)
        assert a.V[1] == b.V[1]


def test_key_skips(computer):
    computer.V[2] = 0xA
    step(computer, 0xE29E)
    assert computer.PC == 0x202
    step(computer, 0xE2A1)
    assert computer.PC == 0x204
    computer.press_key(0xA)
    step(computer, 0xE29E)
    assert computer.PC == 0x204
    step(computer, 0xE2A1)
    assert computer.PC == 0x202


def test_press_unknown_key(computer):
    with pytest.raises(ValueError):
        computer.press_key(16)


def test_Fx0A_waits_for_press_and_release(computer):
    write_word(computer, 0x200, 0xF50A)
    computer.cycle()
    assert computer.PC == 0x200
    computer.cycle()
    assert computer.PC == 0x200
    computer.press_key(7)
    computer.cycle()
    assert computer.PC == 0x200
    computer.release_key(7)
    computer.cycle()
    assert computer.PC == 0x202
    assert computer.V[5] == 7
    assert computer.blocking_on_fx0a is False


def test_timers(computer):
    computer.V[1] = 2
    step(computer, 0xF115)
    step(computer, 0xF118)
    assert computer.sound_active
    computer.tick_timers()
    step(computer, 0xF207)
    assert computer.V[2] == 1
    computer.tick_timers()
    computer.tick_timers()
    assert computer.delay_register == 0
    assert computer.sound_register == 0
    assert not computer.sound_active


def test_Fx1E_adds_to_index_without_flag(computer):
    computer.I = 0x0FF
    computer.V[1] = 0x01
    computer.V[0xF] = 9
    step(computer, 0xF11E)
    assert computer.I == 0x100
    assert computer.V[0xF] == 9


def test_Fx29_points_at_glyph(computer):
    computer.V[1] = 0xB
    step(computer, 0xF129)
    assert computer.I == computer.memory.font_address(0xB)
    assert computer.memory.read(computer.I) == 0xE0


def test_Fx33_bcd(computer):
    computer.V[1] = 254
    computer.I = 0x400
    step(computer, 0xF133)
    assert [computer.memory.read(0x400 + i) for i in range(3)] == [2, 5, 4]


def test_Fx55_Fx65_round_trip(computer):
    for i in range(4):
        computer.V[i] = 0x10 + i
    computer.I = 0x500
    step(computer, 0xF355)
    assert computer.I == 0x500
    assert computer.memory.read(0x504) == 0
    for i in range(4):
        computer.V[i] = 0
    step(computer, 0xF365)
    assert list(computer.V[:4]) == [0x10, 0x11, 0x12, 0x13]


def test_increment_i_quirk():
    c8 = C8Computer(increment_i=True)
    c8.I = 0x500
    step(c8, 0xF255)
    assert c8.I == 0x503


def test_Fx55_past_end_of_memory(computer):
    computer.I = 0xFFE
    with pytest.raises(MemoryOutOfBoundsException):
        step(computer, 0xF255)
