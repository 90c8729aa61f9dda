from .errors import AlreadyProcessed, DecodeFailure, EncodeFailure, JewelCaseError, UnsupportedFormat
from .frames import FRAME_SIZE, TARGET_SIZE, get_frame
from .pipeline import EffectOptions, ImagePipeline, process, process_directory, process_file

__version__ = '1.0.0'
