"""hafiz: spaced-repetition scheduling and progress tracking for vocabulary study."""

from hafiz.consts import VERSION

__version__ = VERSION
