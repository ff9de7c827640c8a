'''
This module contains the lookup tables used by the packets of the movie.

Each member carries the code written into the file and the label shown to humans.
'''
from enum import Enum


class LabeledEnum(Enum):

    def __new__(cls, code, label):
        member = object.__new__(cls)
        member._value_ = code
        member.label = label
        return member

    @classmethod
    def describe(cls, value, unknown='Unknown ({:02X})'):
        '''Label of a value that can be a member or a plain integer outside the table.'''
        if isinstance(value, cls):
            return value.label

        try:
            return cls(value).label
        except ValueError:
            return unknown.format(value)


class Console(LabeledEnum):
    NES     = (0x01, 'NES')
    SNES    = (0x02, 'SNES')
    N64     = (0x03, 'N64')
    GC      = (0x04, 'GC')
    GB      = (0x05, 'GB')
    GBC     = (0x06, 'GBC')
    GBA     = (0x07, 'GBA')
    GENESIS = (0x08, 'Genesis')
    A2600   = (0x09, 'A2600')
    CUSTOM  = (0xFF, 'Custom')


class Region(LabeledEnum):
    NTSC = (0x01, 'NTSC')
    PAL  = (0x02, 'PAL')


class MemoryInitKind(LabeledEnum):
    NONE_REQUIRED = (0x01, 'No initialization required')
    CUSTOM        = (0x02, 'Custom')
    ALL_00        = (0x03, 'All 0x00')
    ALL_FF        = (0x04, 'All 0xFF')
    PATTERN_00_FF = (0x05, '00 00 00 00 FF FF FF FF (repeating)')
    RANDOM        = (0x06, 'Random (implementation-dependent)')


class TransitionKind(LabeledEnum):
    SOFT_RESET      = (0x01, '"Soft" Reset')
    POWER_RESET     = (0x02, 'Power Reset')
    CONTROLLER_SWAP = (0x03, 'Controller Swap')
    PACKET_DERIVED  = (0xFF, 'Packet Derived')


class Controller(LabeledEnum):
    '''The high byte is the console, the low byte the device.'''
    NES_STANDARD           = (0x0101, 'NES Standard Controller')
    NES_FOUR_SCORE         = (0x0102, 'NES Four Score')
    NES_ZAPPER             = (0x0103, 'NES Zapper')
    NES_POWER_PAD          = (0x0104, 'NES Power Pad')
    FAMICOM_KEYBOARD       = (0x0105, 'Famicom Family BASIC Keyboard')
    SNES_STANDARD          = (0x0201, 'SNES Standard Controller')
    SNES_MULTITAP          = (0x0202, 'SNES Super Multitap')
    SNES_MOUSE             = (0x0203, 'SNES Mouse')
    SNES_SUPERSCOPE        = (0x0204, 'SNES Superscope')
    N64_STANDARD           = (0x0301, 'N64 Standard Controller')
    N64_RUMBLE_PAK         = (0x0302, 'N64 Standard Controller with Rumble Pak')
    N64_CONTROLLER_PAK     = (0x0303, 'N64 Standard Controller with Controller Pak')
    N64_TRANSFER_PAK       = (0x0304, 'N64 Standard Controller with Transfer Pak')
    N64_MOUSE              = (0x0305, 'N64 Mouse')
    N64_VOICE_RECOGNITION  = (0x0306, 'N64 Voice Recognition Unit (VRU)')
    N64_RANDNET_KEYBOARD   = (0x0307, 'N64 RandNet Keyboard')
    N64_DENSHA_DE_GO       = (0x0308, 'N64 Densha de Go')
    GC_STANDARD            = (0x0401, 'GC Standard Controller')
    GC_KEYBOARD            = (0x0402, 'GC Keyboard')
    GB_GAMEPAD             = (0x0501, 'GB Gamepad')
    GBC_GAMEPAD            = (0x0601, 'GBC Gamepad')
    GBA_GAMEPAD            = (0x0701, 'GBA Gamepad')
    GENESIS_3_BUTTON       = (0x0801, 'Genesis (Mega Drive) 3-Button')
    GENESIS_6_BUTTON       = (0x0802, 'Genesis (Mega Drive) 6-Button')
    A2600_JOYSTICK         = (0x0901, 'A2600 Joystick')
    A2600_PADDLE           = (0x0902, 'A2600 Paddle')
    A2600_KEYBOARD         = (0x0903, 'A2600 Keyboard Controller')
