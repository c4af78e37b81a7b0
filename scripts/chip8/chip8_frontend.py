import argparse
import logging
import sys
from array import array

import os
os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "no welcome message"   # this env var disable pygame's welcome message when imported
import pygame
from pygame.locals import (
    K_0, K_1, K_2, K_3,
    K_4, K_5, K_6, K_7,
    K_8, K_9, K_a, K_b,
    K_c, K_d, K_e, K_f,
)

from chip8 import Chip8, Chip8Error, SCREEN_HEIGHT, SCREEN_WIDTH, TIMER_HZ

logger = logging.getLogger(__name__)


# ******************** STATIC SECTION
KEY_MAPPINGS = {
    K_0: 0x0,
    K_1: 0x1,
    K_2: 0x2,
    K_3: 0x3,
    K_4: 0x4,
    K_5: 0x5,
    K_6: 0x6,
    K_7: 0x7,
    K_8: 0x8,
    K_9: 0x9,
    K_a: 0xA,
    K_b: 0xB,
    K_c: 0xC,
    K_d: 0xD,
    K_e: 0xE,
    K_f: 0xF,
}

DEFAULT_IPS = 600           # instructions per second
SCALE = 15
BLUE = pygame.Color(80,69,155,255)
LIGHT_BLUE = pygame.Color(136,126,203,255)
SAMPLE_RATE = 44100
BEEP_FREQUENCY = 440
BEEP_VOLUME = 4096


# ******************** UTILITIES SECTION
def debug_enabled():
    """DEBUG=1 (or any number >= 1) turns on the instruction trace, anything else is ignored"""
    try:
        return int(os.getenv('DEBUG', 0)) >= 1
    except ValueError:
        return False

def get_args(argv=None):
    parser = argparse.ArgumentParser(description="run a CHIP-8 ROM")
    parser.add_argument("-f", "--file", required=True, help="input rom file")
    parser.add_argument("--ips", type=int, default=DEFAULT_IPS, help="instructions executed per second")
    parser.add_argument("--scale", type=int, default=SCALE, help="size in pixels of a CHIP-8 pixel")
    args = parser.parse_args(argv)
    if args.ips < TIMER_HZ:
        parser.error(f"--ips must be at least {TIMER_HZ}")
    if args.scale < 1:
        parser.error("--scale must be a positive number")
    return args

def read_rom(path):
    """read the whole ROM file, loading it into memory is up to the machine"""
    with open(path, mode='rb') as f:
        rom = f.read()
    logger.debug("The ROM at path %s has been read (%d bytes)", path, len(rom))
    return rom

def run_frame(chip, cycles):
    """
    emulate one 60Hz frame: up to `cycles` instructions followed by a single timer tick
    stepping stops early while the program waits for a key, since nothing would change
    return True if the screen needs to be refreshed
    """
    redraw = False
    for _ in range(cycles):
        result = chip.step()
        redraw = redraw or result.redraw
        if result.waiting:
            break
    chip.tick_timers()
    return redraw


# ******************** I/O SECTION
class Screen:
    def __init__(self, w=SCREEN_WIDTH, h=SCREEN_HEIGHT, s=SCALE, bg_color=BLUE, fg_color=LIGHT_BLUE):
        self.w, self.h, self.scale = w, h, s
        self.background = bg_color
        self.foreground = fg_color
        self.surface = pygame.display.set_mode(
            (w * self.scale, h * self.scale),
        )
        self.surface.fill(self.background)

    def render(self, pixels):
        """paint every lit pixel of the CHIP-8 framebuffer, then flip"""
        self.surface.fill(self.background)
        for y, row in enumerate(pixels):
            for x, lit in enumerate(row):
                if lit:
                    pygame.draw.rect(
                        self.surface,
                        self.foreground,
                        (x * self.scale, y * self.scale, self.scale, self.scale)
                    )
        pygame.display.flip()

class Beeper:
    """square wave played in loop as long as the sound timer is active"""

    def __init__(self, frequency=BEEP_FREQUENCY, volume=BEEP_VOLUME):
        self.sound = None
        self.playing = False
        try:
            pygame.mixer.init(frequency=SAMPLE_RATE, size=-16, channels=1)
        except pygame.error as err:
            logger.warning("No audio device available, the beep is disabled: %s", err)
            return
        period = SAMPLE_RATE // frequency
        samples = array('h', [volume if i < period // 2 else -volume for i in range(period)])
        self.sound = pygame.mixer.Sound(buffer=samples)

    def update(self, sound_timer):
        if self.sound is None:
            return
        if sound_timer > 0 and not self.playing:
            self.sound.play(loops=-1)
            self.playing = True
        elif sound_timer == 0 and self.playing:
            self.sound.stop()
            self.playing = False


# ******************** ENTRY POINT SECTION
def main(argv=None):
    logging.basicConfig(
        level=logging.DEBUG if debug_enabled() else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stdout,
    )
    args = get_args(argv)
    try:
        rom = read_rom(args.file)
        chip = Chip8(rom)
    except (OSError, Chip8Error) as err:
        sys.exit(f"Cannot load {args.file}: {err}")
    # pygame initialization
    pygame.init()
    clock = pygame.time.Clock()
    pygame.display.set_caption(os.path.basename(args.file))
    # IO
    screen = Screen(s=args.scale)
    beeper = Beeper()
    cycles = args.ips // TIMER_HZ
    # emulation loop
    run = True
    try:
        while run:
            # frames per second, the timers are ticked once per frame
            clock.tick(TIMER_HZ)
            # process user input
            # loop throught the event queue
            for event in pygame.event.get():
                if event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        run = False
                    elif event.key in KEY_MAPPINGS:
                        chip.set_key(KEY_MAPPINGS[event.key], True)     # register keypress
                elif event.type == pygame.KEYUP:
                    if event.key in KEY_MAPPINGS:
                        chip.set_key(KEY_MAPPINGS[event.key], False)
                elif event.type == pygame.QUIT:
                    run = False
            run_frame(chip, cycles)
            if chip.display.take_dirty():
                screen.render(chip.get_display())
            beeper.update(chip.get_sound_timer())
    except Chip8Error as err:
        logger.error("%s", err)
        sys.exit(f"********** THE EMULATOR CRASHED WITH THE FOLLOWING STATE\n{chip}")
    finally:
        pygame.quit()


if __name__ == "__main__":
    main()
