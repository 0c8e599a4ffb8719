from array import array

DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32


class C8Framebuffer:
    '''
    Monochrome 64x32 pixel grid.  Pixels are only ever flipped by XOR (or cleared all at once),
    never set directly.  Rectangles touched since the last render are kept in draw_rect_list as
    (x0, y0, x1, y1) with exclusive upper bounds, so a renderer can repaint just those.
    '''

    def __init__(self, xsize=DISPLAY_WIDTH, ysize=DISPLAY_HEIGHT):
        self.xsize = xsize
        self.ysize = ysize
        self.vram = array('B', [0 for i in range(self.xsize * self.ysize)])
        self.draw_rect_list = []
        self.needs_draw = False
        self.clear()

    def clear(self):
        for i in range(self.xsize * self.ysize):
            self.vram[i] = 0
        self.draw_rect_list = [(0, 0, self.xsize, self.ysize)]
        self.needs_draw = True

    def getpx(self, x, y):
        return self.vram[((y % self.ysize) * self.xsize) + (x % self.xsize)]

    def toggle(self, x, y):
        # Each coordinate wraps independently; returns True if an on pixel was turned off
        vramcell = ((y % self.ysize) * self.xsize) + (x % self.xsize)
        collision = self.vram[vramcell] == 1
        self.vram[vramcell] ^= 1
        self.needs_draw = True
        return collision

    def mark_dirty(self, x, y, width, height):
        # split a rectangle that runs off the right or bottom edge into the wrapped pieces
        x %= self.xsize
        y %= self.ysize
        xspans = [(x, min(x + width, self.xsize))]
        if x + width > self.xsize:
            xspans.append((0, min(x + width - self.xsize, x)))
        yspans = [(y, min(y + height, self.ysize))]
        if y + height > self.ysize:
            yspans.append((0, min(y + height - self.ysize, y)))
        for x0, x1 in xspans:
            for y0, y1 in yspans:
                if x1 > x0 and y1 > y0:
                    self.draw_rect_list.append((x0, y0, x1, y1))

    def take_dirty_rects(self):
        rects = self.draw_rect_list
        self.draw_rect_list = []
        self.needs_draw = False
        return rects

    def snapshot(self):
        return tuple(tuple(self.vram[y * self.xsize:(y + 1) * self.xsize]) for y in range(self.ysize))

    def __str__(self):
        return '\n'.join(''.join('*' if px else '.' for px in row) for row in self.snapshot())
