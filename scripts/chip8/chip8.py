# CHIP-8 INFO
# https://chip-8.github.io/extensions/#chip-8
# https://chip-8.github.io/links/
#
# COMPATIBILITY QUIRKS TABLE
# https://games.gulrak.net/cadmium/chip8-opcode-table.html#quirk6
#
# MASTERING CHIP-8
# https://github.com/mattmikolay/chip-8/wiki/Mastering-CHIP%E2%80%908
#
# TEST SUITE
# https://github.com/Timendus/chip8-test-suite


import logging
import random
from collections import namedtuple
from functools import wraps

logger = logging.getLogger(__name__)


# ******************** STATIC SECTION
C8_FONTS = [0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
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
            0xF0, 0x80, 0xF0, 0x80, 0x80]  # F

MEMORY_SIZE = 4096
FONT_ADDRESS = 0x000
FONT_GLYPH_SIZE = 5
ROM_START_ADDRESS = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - ROM_START_ADDRESS
STACK_DEPTH = 16
REGISTERS_COUNT = 16
KEYS_COUNT = 16
SCREEN_HEIGHT = 32
SCREEN_WIDTH = 64
TIMER_HZ = 60

# WATCH OUT: masks order is important!!!
# decode stops at the first mask whose masked opcode is a known instruction
OPCODE_MASKS = (
    (0xFFFF, frozenset([0x00E0, 0x00EE])),
    (0xF0FF, frozenset([0xE09E, 0xE0A1, 0xF007, 0xF00A, 0xF015, 0xF018, 0xF01E, 0xF029, 0xF033, 0xF055, 0xF065])),
    (0xF00F, frozenset([0x5000, 0x8000, 0x8001, 0x8002, 0x8003, 0x8004, 0x8005, 0x8006, 0x8007, 0x800E, 0x9000])),
    (0xF000, frozenset([0x0000, 0x1000, 0x2000, 0x3000, 0x4000, 0x6000, 0x7000, 0xA000, 0xB000, 0xC000, 0xD000])),
)

# result of a single step, redraw is set by CLS/DRW and waiting while LD Vx, K has no key
StepResult = namedtuple("StepResult", ["redraw", "waiting"])


# ******************** ERRORS SECTION
class Chip8Error(Exception):
    """base class of every condition the interpreter signals to its host"""

    def __init__(self, message, address=None, opcode=None):
        super().__init__(message)
        self.message = message
        self.address = address
        self.opcode = opcode

    def locate(self, address, opcode):
        """attach the faulting instruction, keeping whatever was already known"""
        if self.address is None:
            self.address = address
        if self.opcode is None:
            self.opcode = opcode
        return self

    def __str__(self):
        if self.opcode is None:
            return self.message
        if self.address is None:
            return f"{self.message} (opcode 0x{self.opcode:04x})"
        return f"{self.message} (opcode 0x{self.opcode:04x} at 0x{self.address:03x})"

class ProgramTooLarge(Chip8Error):
    pass

class StackOverflow(Chip8Error):
    pass

class StackUnderflow(Chip8Error):
    pass

class InvalidOpcode(Chip8Error):
    pass

class OutOfRangeAddress(Chip8Error):
    pass


# ******************** UTILITIES SECTION
def asm(msg):
    """decorator to log the ASM of the instruction being called"""
    def decorator(fn):
        @wraps(fn)
        def wrapper_fn(*args, **kwargs):
            mem_addr = args[0].pc - 0x2     # args[0] equals self, pc already points past the instruction
            vals = fn(*args, **kwargs)      # use the locals() values of each decorated function in the message
            if logger.isEnabledFor(logging.DEBUG):
                vals['mem_addr'] = mem_addr
                logger.debug(msg.format(**vals))
        return wrapper_fn
    return decorator


# ******************** I/O SECTION
class Display:
    """64x32 monochrome framebuffer, the host reads it and only CLS/DRW write it"""

    def __init__(self, w=SCREEN_WIDTH, h=SCREEN_HEIGHT):
        self.w, self.h = w, h
        self.buffer = [[False] * w for _ in range(h)]
        self.dirty = False

    def __repr__(self):
        lit = sum(row.count(True) for row in self.buffer)
        return f"Display({self.w}x{self.h}, lit={lit}, dirty={self.dirty})"

    @property
    def pixels(self):
        """read-only snapshot of the buffer, one tuple per row"""
        return tuple(tuple(row) for row in self.buffer)

    def read_pixel(self, x, y):
        """return True if pixel is ON, return False if pixel is OFF"""
        return self.buffer[y % self.h][x % self.w]

    def clear(self):
        for row in self.buffer:
            row[:] = [False] * self.w
        self.dirty = True

    def draw_sprite(self, x, y, rows):
        """
        XOR the sprite rows onto the buffer starting at (x, y), wrapping around both axes
        return True if any pixel has been switched from ON to OFF (collision)
        """
        collision = False
        for i, sprite_byte in enumerate(rows):
            y_coordinate = (y + i) % self.h
            row = self.buffer[y_coordinate]
            for j in range(8):
                if not sprite_byte & (0x80 >> j):
                    continue
                x_coordinate = (x + j) % self.w
                if row[x_coordinate]:
                    collision = True
                row[x_coordinate] = not row[x_coordinate]
        self.dirty = True
        return collision

    def take_dirty(self):
        """
        return the dirty flag and reset it, hosts call this before rendering
        the flag is raised at power-on since reset clears the buffer, so the first frame gets painted
        """
        dirty, self.dirty = self.dirty, False
        return dirty

class Keypad:
    """
    state of the 16 keys, written by the host and read by the key instructions
    presses are only queued while an LD Vx, K instruction is listening for them
    """

    def __init__(self):
        self.keys = [False] * KEYS_COUNT
        self.pressed_keys = []
        self.listening = False

    def __repr__(self):
        down = [f"{k:X}" for k, pressed in enumerate(self.keys) if pressed]
        return f"Keypad(down={down}, listening={self.listening})"

    def __getitem__(self, key):
        return self.keys[key & 0xF]

    def __setitem__(self, key, pressed):
        if not 0 <= key < KEYS_COUNT:
            raise ValueError(f"CHIP-8 keys go from 0x0 to 0xF, got {key!r}")
        if pressed and not self.keys[key] and self.listening:
            self.pressed_keys.append(key)
        self.keys[key] = bool(pressed)

    def listen(self):
        """start queueing key presses, older ones are forgotten"""
        self.pressed_keys.clear()
        self.listening = True

    def untouched(self):
        return len(self.pressed_keys) == 0

    def first(self):
        """get first button pressed present in the queue and stop listening"""
        self.listening = False
        return self.pressed_keys.pop(0)

    def clear(self):
        self.keys[:] = [False] * KEYS_COUNT
        self.pressed_keys.clear()
        self.listening = False


# ******************** MEMORY SECTION
# ********** WRAPS A LIST TO REPRESENT A STACK WITH A LIMITED SIZE OF 16 ADDRESSES
class Stack:
    def __init__(self, depth=STACK_DEPTH):
        self.addr_list = []
        self.depth = depth

    def __len__(self):
        return len(self.addr_list)

    def __repr__(self):
        return "[" + ", ".join(f"0x{a:03x}" for a in self.addr_list) + "]"

    def append(self, address):
        if len(self.addr_list) >= self.depth:
            raise StackOverflow(f"The CHIP-8 stack can contain at most {self.depth} addresses. Limit exceeded")
        self.addr_list.append(address)

    def pop(self):
        if not self.addr_list:
            raise StackUnderflow("Tried to return from a subroutine with an empty stack")
        return self.addr_list.pop()

    def clear(self):
        self.addr_list.clear()

# ********** WRAPS A LIST TO REPRESENT THE MAIN MEMORY WITH A LIMITED SIZE OF 4KB
class Memory:
    """
    flat 4KB address space, the first 512 bytes belong to the interpreter (fonts)
    every access is bounds checked: python lists would silently accept negative indexes
    and programs are never allowed to write below ROM_START_ADDRESS
    """

    def __init__(self):
        self.inner = [0] * MEMORY_SIZE
        self.reset()

    def __len__(self):
        return MEMORY_SIZE

    def _bounds(self, key):
        if isinstance(key, slice):
            if key.step not in (None, 1) or key.start is None or key.stop is None:
                raise TypeError("memory slices need an explicit start and stop and no step")
            return key.start, key.stop
        return key, key + 1

    def _check(self, key, writing=False):
        start, stop = self._bounds(key)
        if start < 0 or stop > MEMORY_SIZE or stop < start:
            raise OutOfRangeAddress(f"Memory access 0x{start:x}-0x{stop - 1:x} is out of range")
        if writing and start < ROM_START_ADDRESS and stop > start:
            raise OutOfRangeAddress(f"Memory write at 0x{start:03x} would overwrite the interpreter area")
        return start, stop

    def __getitem__(self, key):
        self._check(key)
        return self.inner[key]

    def __setitem__(self, key, value):
        start, stop = self._check(key, writing=True)
        if isinstance(key, slice):
            value = [v & 0xFF for v in value]
            if len(value) != stop - start:
                raise ValueError("memory slices cannot change size")
        else:
            value &= 0xFF
        self.inner[key] = value

    def reset(self, program=b""):
        """zero everything, then put back the fonts and the program"""
        self.inner[:] = [0] * MEMORY_SIZE
        self.inner[FONT_ADDRESS:FONT_ADDRESS+len(C8_FONTS)] = C8_FONTS
        self.inner[ROM_START_ADDRESS:ROM_START_ADDRESS+len(program)] = list(program)


# ******************** CPU SECTION
class Chip8:
    """
    a whole CHIP-8 machine: memory, registers, stack, timers, display and keypad

    the host drives it by calling step() as often as it likes and tick_timers() at 60Hz,
    writing keys with set_key() and reading get_display() / get_sound_timer()

    the quirk flags enable the original COSMAC VIP behaviours:
      shift_quirk   8xy6/8xyE shift Vy and store the result in Vx
      memory_quirk  Fx55/Fx65 leave I pointing after the last register copied
      logic_quirk   8xy1/8xy2/8xy3 reset VF
    """

    def __init__(self, program=b"", rng=None, shift_quirk=False, memory_quirk=False, logic_quirk=False):
        self.rng = rng if rng is not None else random.Random()
        self.shift_quirk = shift_quirk
        self.memory_quirk = memory_quirk
        self.logic_quirk = logic_quirk
        self.mem = Memory()
        self.stack = Stack()
        self.display = Display()
        self.keypad = Keypad()
        self.v_regs = [0] * REGISTERS_COUNT
        self.pc = ROM_START_ADDRESS
        self.idx = 0    # specify where the sprites reside in memory
        self.dt = 0     # delay timer, active when non-zero
        self.st = 0     # sound timer, active when non-zero
        self.draw = False
        self.program = b""
        self.instructions = {
            0x00E0: self._clear_screen,
            0x00EE: self._return,
            0x0000: self._sys,
            0x1000: self._jump,
            0x2000: self._call_addr,
            0x3000: self._skip_if_eq,
            0x4000: self._skip_if_not_eq,
            0x5000: self._skip_if_eq_regs,
            0x6000: self._set_vk,
            0x7000: self._add_to_vk,
            0x8000: self._set_vx_to_vy,
            0x8001: self._set_vx_or_vy,
            0x8002: self._set_vx_and_vy,
            0x8003: self._set_vx_xor_vy,
            0x8004: self._add_vx_vy,
            0x8005: self._sub_vx_vy,
            0x8006: self._shr,
            0x8007: self._subn_vx_vy,
            0x800E: self._shl,
            0x9000: self._skip_if_not_eq_regs,
            0xA000: self._set_idx,
            0xB000: self._jump_plus,
            0xC000: self._random_byte_and,
            0xD000: self._to_screen,
            0xE09E: self._skip_if_pressed,
            0xE0A1: self._skip_if_not_pressed,
            0xF007: self._set_vx_dt,
            0xF00A: self._wait_keypress,
            0xF015: self._set_dt_vx,
            0xF018: self._set_st,
            0xF01E: self._add_to_idx,
            0xF029: self._select_char,
            0xF033: self._bcd_repr,
            0xF055: self._store_vregs,
            0xF065: self._load_vregs,
        }
        self.load_program(program)

    def __str__(self):
        registers = " ".join(f"V{i:X}:0x{v:02x}" for i, v in enumerate(self.v_regs))
        registers = f"PC_REGISTER:0x{self.pc:03x} | IDX_REGISTER:0x{self.idx:03x} | VARIABLE_REGISTERS:{registers}"
        stack = f"STACK:{self.stack}"
        timers = f"DT:{self.dt} | ST:{self.st}"
        devices = f"SCREEN:{self.display} | KEYPAD:{self.keypad}"
        return f"{registers}\n{stack}\n{timers}\n{devices}"

    @property
    def sp(self):
        """the stack pointer, i.e. how many return addresses are on the stack"""
        return len(self.stack)

    # ********** HOST INTERFACE
    def reset(self):
        """bring the machine back to its power-on state with the current program loaded"""
        self.mem.reset(self.program)
        self.stack.clear()
        self.display.clear()
        self.keypad.clear()
        self.v_regs[:] = [0] * REGISTERS_COUNT
        self.pc = ROM_START_ADDRESS
        self.idx = 0
        self.dt = 0
        self.st = 0
        self.draw = False

    def load_program(self, program):
        """load a ROM image at ROM_START_ADDRESS and reset, a rejected image leaves the machine untouched"""
        program = bytes(program)
        if len(program) > MAX_PROGRAM_SIZE:
            raise ProgramTooLarge(f"The program is {len(program)} bytes long, at most {MAX_PROGRAM_SIZE} fit in memory")
        self.program = program
        self.reset()
        logger.info("Loaded a %d bytes program at 0x%03x", len(program), ROM_START_ADDRESS)

    def set_key(self, index, pressed):
        self.keypad[index] = pressed

    def get_delay_timer(self):
        return self.dt

    def get_sound_timer(self):
        return self.st

    def get_display(self):
        return self.display.pixels

    def tick_timers(self):
        """delay/sound timers (dt/st) count down at 60Hz and stop at zero"""
        if self.dt > 0:
            self.dt -= 1
        if self.st > 0:
            self.st -= 1

    def step(self):
        """
        fetch, decode and execute a single instruction
        errors leave pc on the faulting instruction and are raised with its address and opcode
        """
        self.draw = False
        address, opcode = self.pc, None
        try:
            # fetch (each instruction is two bytes long)
            opcode = self.mem[address] << 8 | self.mem[address + 1]
            self._goto_next_instruction()
            # decode + execute
            instruction = self.decode(opcode)
            instruction(opcode)
        except Chip8Error as err:
            self.pc = address
            raise err.locate(address, opcode)
        return StepResult(self.draw, self.keypad.listening)

    def decode(self, opcode):
        """decode opcodes using masks and return respective function"""
        for mask, ops in OPCODE_MASKS:
            if (opcode & mask) in ops:
                return self.instructions[opcode & mask]
        raise InvalidOpcode(f"Unknown opcode 0x{opcode:04x}", opcode=opcode)

    def _goto_next_instruction(self):
        self.pc += 0x2

    # ********** INSTRUCTIONS
    @asm("mem_addr: 0x{mem_addr:04x}    instruction: CLS")
    def _clear_screen(self, opcode):
        self.display.clear()
        self.draw = True
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: RET")
    def _return(self, opcode):
        """return from a subroutine"""
        self.pc = self.stack.pop()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SYS 0x{address:03x}")
    def _sys(self, opcode):
        """jump to a machine code routine of the host CPU, modern interpreters ignore it"""
        address = opcode & 0x0FFF
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: JP 0x{address:04x}")
    def _jump(self, opcode):
        address = opcode & 0x0FFF
        self.pc = address
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: CALL 0x{address:04x}")
    def _call_addr(self, opcode):
        address = opcode & 0x0FFF
        self.stack.append(self.pc)
        self.pc = address
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SE V{x:X}, {comparison_value}")
    def _skip_if_eq(self, opcode):
        x = (opcode & 0x0F00) >> 8
        comparison_value = opcode & 0x00FF
        if self.v_regs[x] == comparison_value:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SNE V{x:X}, {comparison_value}")
    def _skip_if_not_eq(self, opcode):
        x = (opcode & 0x0F00) >> 8
        comparison_value = opcode & 0x00FF
        if self.v_regs[x] != comparison_value:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SE V{x:X}, V{y:X}")
    def _skip_if_eq_regs(self, opcode):
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        if self.v_regs[x] == self.v_regs[y]:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SNE V{x:X}, V{y:X}")
    def _skip_if_not_eq_regs(self, opcode):
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        if self.v_regs[x] != self.v_regs[y]:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x:X}, {value}")
    def _set_vk(self, opcode):
        """set the value of one of the 16 variable registers, Vx"""
        x, value = (opcode & 0x0F00) >> 8, opcode & 0x00FF
        self.v_regs[x] = value
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: ADD V{x:X}, {value}")
    def _add_to_vk(self, opcode):
        """add to the value already present in one of the variable registers, VF = carry"""
        x, value = (opcode & 0x0F00) >> 8, opcode & 0x00FF
        sum = self.v_regs[x] + value
        self.v_regs[x] = sum & 0xFF     # keep only the lowest 8 bits from the result and store them in Vx
        self.v_regs[0xF] = 1 if sum > 255 else 0
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x:X}, V{y:X}")
    def _set_vx_to_vy(self, opcode):
        """set the value of Vx equal to that of Vy"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        self.v_regs[x] = self.v_regs[y]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: OR V{x:X}, V{y:X}")
    def _set_vx_or_vy(self, opcode):
        """set the value of Vx to Vx OR Vy"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        self.v_regs[x] |= self.v_regs[y]
        if self.logic_quirk:
            self.v_regs[0xF] = 0
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: AND V{x:X}, V{y:X}")
    def _set_vx_and_vy(self, opcode):
        """set the value of Vx to Vx AND Vy"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        self.v_regs[x] &= self.v_regs[y]
        if self.logic_quirk:
            self.v_regs[0xF] = 0
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: XOR V{x:X}, V{y:X}")
    def _set_vx_xor_vy(self, opcode):
        """set the value of Vx to Vx XOR Vy"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        self.v_regs[x] ^= self.v_regs[y]
        if self.logic_quirk:
            self.v_regs[0xF] = 0
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: ADD V{x:X}, V{y:X}")
    def _add_vx_vy(self, opcode):
        """set the value of Vx to Vx + Vy, VF = carry"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        sum = self.v_regs[x] + self.v_regs[y]
        self.v_regs[x] = sum & 0xFF     # keep only the lowest 8 bits from the result and store them in Vx
        self.v_regs[0xF] = 1 if sum > 255 else 0
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SUB V{x:X}, V{y:X}")
    def _sub_vx_vy(self, opcode):
        """set the value of Vx to Vx - Vy, VF = NOT borrow"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        no_borrow = 1 if self.v_regs[x] >= self.v_regs[y] else 0
        self.v_regs[x] = (self.v_regs[x] - self.v_regs[y]) & 0xFF
        self.v_regs[0xF] = no_borrow
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SUBN V{x:X}, V{y:X}")
    def _subn_vx_vy(self, opcode):
        """set the value of Vx to Vy - Vx, VF = NOT borrow"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        no_borrow = 1 if self.v_regs[y] >= self.v_regs[x] else 0
        self.v_regs[x] = (self.v_regs[y] - self.v_regs[x]) & 0xFF
        self.v_regs[0xF] = no_borrow
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SHR V{x:X}, V{y:X}")
    def _shr(self, opcode):
        """set Vx equal to Vx SHR 1, VF = bit shifted out"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        value = self.v_regs[y] if self.shift_quirk else self.v_regs[x]
        LSB = value & 0x1
        self.v_regs[x] = value >> 1
        self.v_regs[0xF] = LSB
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SHL V{x:X}, V{y:X}")
    def _shl(self, opcode):
        """set Vx equal to Vx SHL 1, VF = bit shifted out"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        value = self.v_regs[y] if self.shift_quirk else self.v_regs[x]
        MSB = (value & 0x80) >> 7
        self.v_regs[x] = (value << 1) & 0xFF    # multiply by 2 and keep only the lowest 8 bits from the result
        self.v_regs[0xF] = MSB
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD I, 0x{value:04x}")
    def _set_idx(self, opcode):
        """set the value of the I register"""
        value = opcode & 0x0FFF
        self.idx = value
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: JP V0, 0x{address:04x}")
    def _jump_plus(self, opcode):
        address = opcode & 0x0FFF
        target = address + self.v_regs[0x0]
        if target >= MEMORY_SIZE:
            raise OutOfRangeAddress(f"Jump target 0x{target:04x} is out of memory")
        self.pc = target
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: RND V{x:X}, 0x{kk:02x}")
    def _random_byte_and(self, opcode):
        x, kk = (opcode & 0x0F00) >> 8, opcode & 0x00FF
        rnd = self.rng.randint(0, 255)
        self.v_regs[x] = rnd & kk
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: DRW V{x:X}, V{y:X}, {n_bytes}")
    def _to_screen(self, opcode):
        """display n-byte sprite starting at memory location I at (Vx, Vy), set VF = collision"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        n_bytes = opcode & 0x000F
        sprite = self.mem[self.idx:self.idx + n_bytes]
        # sprites are XORed onto the existing screen and if this
        # causes any pixel to be erased then VF=1, otherwise VF=0
        collision = self.display.draw_sprite(self.v_regs[x], self.v_regs[y], sprite)
        self.v_regs[0xF] = 1 if collision else 0
        self.draw = True
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SKP V{x:X}")
    def _skip_if_pressed(self, opcode):
        """skip the following instruction if the key corresponding to the hex value stored in Vx is pressed"""
        x = (opcode & 0x0F00) >> 8
        key = self.v_regs[x]
        if self.keypad[key]:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SKNP V{x:X}")
    def _skip_if_not_pressed(self, opcode):
        """skip the following instruction if the key corresponding to the hex value stored in Vx is NOT pressed"""
        x = (opcode & 0x0F00) >> 8
        key = self.v_regs[x]
        if not self.keypad[key]:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x:X}, DT")
    def _set_vx_dt(self, opcode):
        """set Vx = DT (delay timer) value"""
        x = (opcode & 0x0F00) >> 8
        self.v_regs[x] = self.dt
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x:X}, K")
    def _wait_keypress(self, opcode):
        """wait for a key press and store its value in Vx"""
        x = (opcode & 0x0F00) >> 8
        if not self.keypad.listening:
            self.keypad.listen()
        if self.keypad.untouched():
            self.pc -= 0x2      # stay on the same instruction until a key is pressed
        else:
            self.v_regs[x] = self.keypad.first()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD DT, V{x:X}")
    def _set_dt_vx(self, opcode):
        """set DT (delay timer) = Vx"""
        x = (opcode & 0x0F00) >> 8
        self.dt = self.v_regs[x]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD ST, V{register:X}")
    def _set_st(self, opcode):
        """set ST = Vx"""
        register = (opcode & 0x0F00) >> 8
        self.st = self.v_regs[register]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: ADD I, V{register:X}")
    def _add_to_idx(self, opcode):
        """set I = I + Vx"""
        register = (opcode & 0x0F00) >> 8
        self.idx = (self.idx + self.v_regs[register]) & 0xFFFF
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD F, V{register:X}")
    def _select_char(self, opcode):
        """set I to location of sprite for digit Vx"""
        register = (opcode & 0x0F00) >> 8
        self.idx = FONT_ADDRESS + (self.v_regs[register] & 0xF) * FONT_GLYPH_SIZE
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD B, V{x:X}")
    def _bcd_repr(self, opcode):
        """takes the decimal value of Vx and the hundreds digit in memory at I, the tens digit at I+1, the ones digit at I+2"""
        x = (opcode & 0x0F00) >> 8
        value = self.v_regs[x]
        hundreds, tens, ones = value // 100, (value // 10) % 10, value % 10
        self.mem[self.idx:self.idx+3] = [hundreds, tens, ones]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD [I], V{x:X}")
    def _store_vregs(self, opcode):
        """store registers V0 through Vx (included) in memory starting at location I"""
        x = (opcode & 0x0F00) >> 8
        self.mem[self.idx:self.idx+x+1] = self.v_regs[:x+1]
        if self.memory_quirk:
            self.idx = (self.idx + x + 1) & 0xFFFF
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x:X}, [I]")
    def _load_vregs(self, opcode):
        """read registers V0 through Vx (included) from memory starting at location I"""
        x = (opcode & 0x0F00) >> 8
        self.v_regs[:x+1] = self.mem[self.idx:self.idx+x+1]
        if self.memory_quirk:
            self.idx = (self.idx + x + 1) & 0xFFFF
        return locals()
