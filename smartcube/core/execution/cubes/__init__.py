"""
Built-in cube handlers
"""
from .loaders import LoaderTextCube, LoaderJsonCube, LoaderImageCube
from .recognition import RecognitionSeeingCube, RecognitionHearingCube
from .math_cube import MathCube
from .decider import DeciderCube
from .text import TextCube
from .image import ImageCube
from .savers import SaverTextCube, SaverImageCube, SaverTableCube, SaverJsonCube

__all__ = [
    'LoaderTextCube',
    'LoaderJsonCube',
    'LoaderImageCube',
    'RecognitionSeeingCube',
    'RecognitionHearingCube',
    'MathCube',
    'DeciderCube',
    'TextCube',
    'ImageCube',
    'SaverTextCube',
    'SaverImageCube',
    'SaverTableCube',
    'SaverJsonCube',
]
