import argparse
from array import array
import datetime

import pygame

from c8computer import C8Computer
from c8display import C8Framebuffer

SCALE_FACTOR = 8
PIXEL_OFF = (0, 0, 0)
PIXEL_ON = (255, 255, 255)

# Tweak this per ROM - how many microseconds to wait before executing an instruction.  Smaller means more frequent
# instruction executions, which makes things faster.
INSTRUCTION_DELAY = 2000
TIMER_INTERVAL_MS = 17  # 17ms ~= 60Hz


# The keyboard layout for the CHIP-8 assumes:
#   1 2 3 C
#   4 5 6 D
#   7 8 9 E
#   A 0 B F
#
# We map this to the following keys on our keyboard:
#   1 2 3 4
#   Q W E R
#   A S D F
#   Z X C V

KEYMAPPING = {
    pygame.K_1: 0x01,
    pygame.K_2: 0x02,
    pygame.K_3: 0x03,
    pygame.K_4: 0x0C,
    pygame.K_q: 0x04,
    pygame.K_w: 0x05,
    pygame.K_e: 0x06,
    pygame.K_r: 0x0D,
    pygame.K_a: 0x07,
    pygame.K_s: 0x08,
    pygame.K_d: 0x09,
    pygame.K_f: 0x0E,
    pygame.K_z: 0x0A,
    pygame.K_x: 0x00,
    pygame.K_c: 0x0B,
    pygame.K_v: 0x0F
}


def build_pygame_sound_samples():
    # modified from: https://gist.github.com/ohsqueezy/6540433
    period = int(round(pygame.mixer.get_init()[0] / 440))
    samples = array("h", [0] * period)
    amplitude = 2 ** (abs(pygame.mixer.get_init()[1]) - 1) - 1
    for time in range(period):
        if time < period / 2:
            samples[time] = amplitude
        else:
            samples[time] = -amplitude
    return samples


class C8Screen:
    '''Paints a C8Framebuffer into a pygame window, one scaled block per CHIP-8 pixel.'''

    def __init__(self, window, framebuffer, scale=SCALE_FACTOR):
        self.window = window
        self.framebuffer = framebuffer
        self.scale = scale
        self.num_renders = 0
        self.render_time_ps = 0

    def draw(self):
        self.num_renders += 1
        start_time = datetime.datetime.now()
        pygamerects = []
        for item in self.framebuffer.take_dirty_rects():
            for x in range(item[0], item[2]):
                for y in range(item[1], item[3]):
                    if self.framebuffer.getpx(x, y) == 0:
                        color = PIXEL_OFF
                    else:
                        color = PIXEL_ON
                    self.window.fill(color, pygame.Rect(x * self.scale, y * self.scale, self.scale, self.scale))
            rectx = item[0] * self.scale
            recty = item[1] * self.scale
            rect_width = (item[2] - item[0]) * self.scale
            rect_height = (item[3] - item[1]) * self.scale
            pygamerects.append(pygame.Rect(rectx, recty, rect_width, rect_height))
        pygame.display.update(pygamerects)
        self.render_time_ps += (datetime.datetime.now() - start_time).total_seconds()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="CHIP-8 emulator")
    parser.add_argument("rom", help="path to a CHIP-8 ROM image")
    parser.add_argument("--scale", type=int, default=SCALE_FACTOR, metavar="N",
                        help="window pixels per CHIP-8 pixel (default: %(default)s)")
    parser.add_argument("--delay", type=int, default=INSTRUCTION_DELAY, metavar="USEC",
                        help="microseconds between instructions (default: %(default)s)")
    parser.add_argument("--seed", type=int, default=None,
                        help="seed for the Cxkk random number generator")
    parser.add_argument("--shift-vy", action="store_true",
                        help="8xy6/8xyE shift Vy into Vx, as the original CHIP-8 did")
    parser.add_argument("--increment-i", action="store_true",
                        help="Fx55/Fx65 leave I incremented, as the original CHIP-8 did")
    parser.add_argument("--reset-vf", action="store_true",
                        help="8xy1/8xy2/8xy3 clear VF, as the original CHIP-8 did")
    parser.add_argument("--dump", default="debug.txt", metavar="FILE",
                        help="where to write the machine state on exit (default: %(default)s)")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    pygame.mixer.pre_init(44100, -16, 1, 1024)
    pygame.init()
    window = pygame.display.set_mode((64 * args.scale, 32 * args.scale))
    pygame.display.set_caption("CHIP-8: {}".format(args.rom))
    window.fill(0)

    beep = pygame.mixer.Sound(build_pygame_sound_samples())
    beep.set_volume(0.1)
    beeping = False

    framebuffer = C8Framebuffer()
    myscreen = C8Screen(window, framebuffer, args.scale)
    c8 = C8Computer(screen=framebuffer, seed=args.seed, shift_vy=args.shift_vy,
                    increment_i=args.increment_i, reset_vf=args.reset_vf)
    c8.load_rom(args.rom)

    run = True

    start_time = datetime.datetime.now()
    num_instr = 0

    timer_event = pygame.USEREVENT + 1
    pygame.time.set_timer(timer_event, TIMER_INTERVAL_MS)

    last_instruction_time = datetime.datetime.now()

    while run:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                run = False
                c8.debug_dump(args.dump)
            elif event.type == pygame.KEYDOWN:
                if event.key in KEYMAPPING:
                    c8.press_key(KEYMAPPING[event.key])
            elif event.type == pygame.KEYUP:
                if event.key in KEYMAPPING:
                    c8.release_key(KEYMAPPING[event.key])
            elif event.type == timer_event:
                c8.tick_timers()
                if c8.sound_active and not beeping:
                    beep.play(-1)
                    beeping = True
                elif not c8.sound_active and beeping:
                    beep.stop()
                    beeping = False

        curtime = datetime.datetime.now()
        elapsed = (curtime - last_instruction_time).total_seconds() * 1000000
        if elapsed >= args.delay:
            try:
                c8.cycle()
            except Exception:
                c8.debug_dump(args.dump)
                myscreen.draw()
                raise
            num_instr += 1
            last_instruction_time = curtime
            # logic is that the CPU runs at 500 Hz and display at 60 Hz or 1/8th, roughly
            if num_instr % 8 == 0 and framebuffer.needs_draw:
                myscreen.draw()
    end_time = datetime.datetime.now()
    duration = (end_time - start_time).total_seconds()

    print("Start: {}".format(start_time))
    print("End: {}".format(end_time))
    print("Duration: {} sec.".format(duration))
    print("Performance: {} instructions per second".format(num_instr / duration))
    print("Screen num renders: {}".format(myscreen.num_renders))
    if myscreen.num_renders:
        print("Average microseconds per render: {}".format((1000000 * myscreen.render_time_ps) / myscreen.num_renders))

    pygame.quit()


if __name__ == "__main__":
    # call the main function
    main()
